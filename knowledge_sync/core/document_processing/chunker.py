"""
Text chunking using RecursiveCharacterTextSplitter.

The splitter is restricted to the empty separator with whitespace
stripping off, which turns it into a fixed-size character window: the
same (text, size, overlap) always yields the same chunks, every
character is covered, and no chunk exceeds size.

Dependencies: langchain_text_splitters
System role: Chunking stage of document ingestion
"""

from functools import lru_cache

from langchain_text_splitters import RecursiveCharacterTextSplitter

from knowledge_sync.core.exceptions import ValidationError


def validate_window(chunk_size: int, chunk_overlap: int) -> None:
    """
    Reject window parameters that would not advance.

    Raises:
        ValidationError: If size <= 0, overlap < 0 or overlap >= size
    """
    if chunk_size <= 0:
        raise ValidationError("chunk_size must be positive", field="chunk_size")
    if chunk_overlap < 0:
        raise ValidationError("chunk_overlap must not be negative", field="chunk_overlap")
    if chunk_overlap >= chunk_size:
        raise ValidationError(
            "chunk_overlap must be smaller than chunk_size",
            field="chunk_overlap",
            details={"chunk_size": chunk_size, "chunk_overlap": chunk_overlap},
        )


@lru_cache(maxsize=16)
def get_splitter(chunk_size: int, chunk_overlap: int) -> RecursiveCharacterTextSplitter:
    """
    Build (once per window) the splitter used by chunk_text.

    Args:
        chunk_size: Maximum characters per chunk
        chunk_overlap: Characters shared by consecutive chunks

    Returns:
        RecursiveCharacterTextSplitter: Character-window splitter
    """
    validate_window(chunk_size, chunk_overlap)
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=[""],
        strip_whitespace=False,
        length_function=len,
    )


def chunk_text(text: str, chunk_size: int, chunk_overlap: int) -> list[str]:
    """
    Split text into overlapping windows, in document order.

    Any non-empty text of at most chunk_size characters, whitespace
    included, is returned as a single chunk. Deciding whether text is
    usable is the caller's job.

    Args:
        text: Normalized document text
        chunk_size: Maximum characters per chunk
        chunk_overlap: Characters shared by consecutive chunks

    Returns:
        list[str]: Chunk texts

    Raises:
        ValidationError: If the window cannot advance
    """
    splitter = get_splitter(chunk_size, chunk_overlap)
    if not text:
        return []
    if len(text) <= chunk_size:
        return [text]
    return splitter.split_text(text)


def normalize_text(text: str) -> str:
    """
    Normalize extracted text before chunking.

    Unifies line endings and drops NUL characters, which PostgreSQL text
    columns reject.
    """
    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
