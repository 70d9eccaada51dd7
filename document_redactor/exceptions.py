"""Custom exceptions for the redaction pipeline."""

from typing import Optional


class RedactionError(Exception):
    """Base exception for redaction pipeline errors."""


class UnmappedMatch(RedactionError):
    """Raised when a text match overlaps no token and so has no geometry."""

    def __init__(self, page_number: int, span: tuple[int, int]):
        self.page_number = page_number
        self.span = span
        super().__init__(
            f"No token geometry for span {span[0]}:{span[1]} on page {page_number}"
        )


class UnsupportedFormat(RedactionError):
    """Raised when a source is neither a supported image nor a PDF."""

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(f"Unsupported document type: {mime_type or 'unknown'}")


class PageRenderFailure(RedactionError):
    """Raised when a page cannot be decoded, painted or captured."""

    def __init__(self, page_number: int, message: str):
        self.page_number = page_number
        super().__init__(f"Failed to redact page {page_number}: {message}")


class EncodeFailure(RedactionError):
    """Raised when the redacted document cannot be re-serialized."""

    def __init__(self, mime_type: str, message: str):
        self.mime_type = mime_type
        super().__init__(f"Failed to encode {mime_type}: {message}")


class InvalidSource(RedactionError):
    """Raised when an input file fails validation."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"Invalid source {name}: {message}")


class ExtractionFailure(RedactionError):
    """Raised when text extraction (OCR) fails for a document."""

    def __init__(self, name: str, message: str, page_number: Optional[int] = None):
        self.name = name
        self.page_number = page_number
        where = f" (page {page_number})" if page_number is not None else ""
        super().__init__(f"Text extraction failed for {name}{where}: {message}")
