"""
Document Redactor - permanent redaction of personal identifiers in scanned documents.

This package takes OCR output (text tokens with page geometry), finds
identity numbers, phone numbers and postal addresses despite OCR noise,
and paints opaque overlays over them in PNG/JPEG images and PDF documents.
"""

from .models import (
    BoundingBox,
    TextToken,
    Page,
    Category,
    MatchPass,
    Detection,
    DetectionSet,
    SourceDocument,
    RedactedArtifact,
    DetectionParams,
    RedactionParams,
)
from .detection import detect
from .redaction import redact
from .extraction import extract_pages
from .verify import verify_artifact

__all__ = [
    "BoundingBox", "TextToken", "Page",
    "Category", "MatchPass", "Detection", "DetectionSet",
    "SourceDocument", "RedactedArtifact",
    "DetectionParams", "RedactionParams",
    "extract_pages", "detect", "redact", "verify_artifact",
]
__version__ = "0.1.0"
