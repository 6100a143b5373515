"""
Document text extraction using LangChain PyPDFLoader.

The extractor honours the pipeline's opaque contract: it never raises,
it returns (text, error) where error is None on success. PDF pages are
joined with a form feed.

Dependencies: langchain_community.document_loaders
System role: Text extraction for extract and page_batch stages
"""

import logging
import os
import tempfile
from pathlib import Path

from langchain_community.document_loaders import PyPDFLoader

logger = logging.getLogger(__name__)

_TEXT_SUFFIXES = {".txt", ".md", ".csv", ".json", ".html", ".htm"}
PAGE_SEPARATOR = "\f"


class DocumentTextExtractor:
    """Extract plain text from PDF or text blobs."""

    def extract(self, data: bytes, file_name: str) -> tuple[str, str | None]:
        """
        Extract text from a blob.

        Args:
            data: Raw document bytes
            file_name: Name used to pick the decoder (by suffix)

        Returns:
            tuple[str, str | None]: (text, error); text is "" when error is set
        """
        suffix = Path(file_name).suffix.lower()
        if suffix in _TEXT_SUFFIXES:
            return data.decode("utf-8", errors="replace"), None
        if suffix != ".pdf" and not data.startswith(b"%PDF"):
            return "", f"Unsupported file format: {suffix or 'unknown'}"

        fd, temp_path = tempfile.mkstemp(prefix="knowledge_sync_", suffix=".pdf")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            documents = PyPDFLoader(temp_path).load()
            text = PAGE_SEPARATOR.join(doc.page_content for doc in documents if doc.page_content)
            return text, None
        except Exception as e:
            logger.warning(
                f"{__name__}:extract - Failed to parse PDF",
                extra={"file_name": file_name, "error": str(e)},
            )
            return "", f"Failed to parse PDF: {e}"
        finally:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
