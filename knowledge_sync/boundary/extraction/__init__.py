"""
Extraction boundary modules.

Exports: PdfPageDecoder, DocumentTextExtractor
"""

from .pdf_decoder import PdfPageDecoder
from .text_extractor import DocumentTextExtractor

__all__ = ["DocumentTextExtractor", "PdfPageDecoder"]
