"""
Input validation for source documents.

Checks that a file is non-empty, within the size limit, and is one of the
supported formats. The media type is sniffed from the file's leading
bytes; a declared type (from an extension or upload header) must agree
with it.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Optional

from .models import SourceDocument
from .exceptions import InvalidSource, UnsupportedFormat
from .redaction import normalize_mime_type, is_supported


logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB

SUPPORTED_EXTENSIONS = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".pdf": "application/pdf",
}

# Leading bytes of each supported format
MAGIC_NUMBERS = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"%PDF-", "application/pdf"),
)

# PDF allows up to 1024 bytes of junk before the header
PDF_HEADER_SEARCH = 1024


def _too_large(name: str, size: int, max_file_size: int) -> InvalidSource:
    mb = 1024 * 1024
    return InvalidSource(name, f"file is {size / mb:.1f} MB, limit is {max_file_size / mb:.1f} MB")


def sniff_mime_type(data: bytes) -> Optional[str]:
    """
    Identify a supported format from its leading bytes.

    Args:
        data: File contents

    Returns:
        Media type, or None if the bytes match no supported format
    """
    for magic, mime_type in MAGIC_NUMBERS:
        if data.startswith(magic):
            return mime_type
    if b"%PDF-" in data[:PDF_HEADER_SEARCH]:
        return "application/pdf"
    return None


def mime_type_for_path(path: Path) -> Optional[str]:
    """Declared media type from a file name's extension."""
    suffix = path.suffix.lower()
    if suffix in SUPPORTED_EXTENSIONS:
        return SUPPORTED_EXTENSIONS[suffix]
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed


def validate_source(
    source: SourceDocument,
    max_file_size: int = MAX_FILE_SIZE
) -> SourceDocument:
    """
    Validate a source document and settle its media type.

    Args:
        source: Document to check; its mime_type is treated as declared
        max_file_size: Largest accepted size in bytes

    Returns:
        SourceDocument carrying the sniffed media type

    Raises:
        InvalidSource: If the file is empty, too large, or its content
            contradicts the declared type
        UnsupportedFormat: If the content is not PNG, JPEG or PDF
    """
    size = len(source.data)
    if size == 0:
        raise InvalidSource(source.name, "file is empty")
    if size > max_file_size:
        raise _too_large(source.name, size, max_file_size)

    declared = normalize_mime_type(source.mime_type)
    if declared == "image/jpg":
        declared = "image/jpeg"

    sniffed = sniff_mime_type(source.data)
    if sniffed is None:
        raise UnsupportedFormat(source.mime_type or "unknown")

    if declared and declared != sniffed:
        if is_supported(declared):
            raise InvalidSource(
                source.name, f"declared as {declared} but content is {sniffed}"
            )
        logger.debug(f"{source.name}: ignoring declared type {declared}, content is {sniffed}")

    return SourceDocument(data=source.data, mime_type=sniffed, name=source.name)


def load_source(path: Path, max_file_size: int = MAX_FILE_SIZE) -> SourceDocument:
    """
    Read and validate a document from disk.

    Args:
        path: File to read
        max_file_size: Largest accepted size in bytes

    Returns:
        Validated SourceDocument
    """
    path = Path(path)
    if not path.is_file():
        raise InvalidSource(path.name, "not a file")

    size = path.stat().st_size
    if size > max_file_size:
        raise _too_large(path.name, size, max_file_size)

    source = SourceDocument(
        data=path.read_bytes(),
        mime_type=mime_type_for_path(path) or "",
        name=path.name,
    )
    return validate_source(source, max_file_size)
