"""
Page-aware PDF decoder.

Counts pages and cuts a contiguous page window out of a PDF into a new,
standalone PDF. Used by the batch splitter to materialize window artifacts.

Dependencies: pypdf
System role: Page-aware decoder for the batch splitter
"""

import io

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from knowledge_sync.core.exceptions import BatchSplitError


class PdfPageDecoder:
    """Page counting and page-window slicing for PDF bytes."""

    def count_pages(self, data: bytes) -> int:
        """
        Count pages in a PDF.

        Args:
            data: PDF bytes

        Returns:
            int: Number of pages

        Raises:
            BatchSplitError: When the bytes are not a readable PDF
        """
        try:
            return len(PdfReader(io.BytesIO(data)).pages)
        except (PdfReadError, ValueError) as e:
            raise BatchSplitError(f"Unreadable PDF: {e}") from e

    def extract_pages(self, data: bytes, page_start: int, page_end: int) -> bytes:
        """
        Copy pages page_start..page_end (1-indexed, inclusive) into a new PDF.

        Args:
            data: Source PDF bytes
            page_start: First page, 1-indexed
            page_end: Last page, 1-indexed, inclusive

        Returns:
            bytes: The window as a standalone PDF

        Raises:
            BatchSplitError: On an invalid range or unreadable source
        """
        try:
            reader = PdfReader(io.BytesIO(data))
        except (PdfReadError, ValueError) as e:
            raise BatchSplitError(f"Unreadable PDF: {e}") from e

        total = len(reader.pages)
        if page_start < 1 or page_end < page_start or page_end > total:
            raise BatchSplitError(
                f"Invalid page range [{page_start}, {page_end}] for {total} pages"
            )

        writer = PdfWriter()
        for index in range(page_start - 1, page_end):
            writer.add_page(reader.pages[index])
        buffer = io.BytesIO()
        writer.write(buffer)
        return buffer.getvalue()
