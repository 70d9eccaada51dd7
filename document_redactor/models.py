"""
Data models for detection and redaction.

Defines dataclasses for OCR pages and tokens, categorized detections,
source documents, redacted artifacts, and the tunable parameters of both
pipeline stages.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Callable
from enum import Enum


class Category(Enum):
    """Kind of sensitive value a detection represents."""
    IDENTIFIER_A = "identifier_a"  # 12/16 digit national identity number
    IDENTIFIER_B = "identifier_b"  # 10 char tax identifier, AAAAA9999A
    PHONE = "phone"
    ADDRESS = "address"


class MatchPass(Enum):
    """Which matching strategy produced a detection."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    AGGRESSIVE = "aggressive"
    CONTEXT = "context"


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box in a page's pixel space.

    Origin is top-left with Y increasing downward, the convention used by
    OCR engines and raster images.
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative box size: {self.width}x{self.height}")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "BoundingBox":
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
        )


@dataclass(frozen=True)
class TextToken:
    """A unit of recognized text with its confidence and geometry."""
    text: str
    confidence: float
    bbox: BoundingBox


@dataclass(frozen=True)
class Page:
    """
    One page of extraction output.

    Token order is the reading order produced by the OCR engine and
    defines the order in which tokens are concatenated for matching.
    """
    page_number: int  # 1-indexed
    width: float
    height: float
    tokens: tuple[TextToken, ...] = ()

    @property
    def text(self) -> str:
        return " ".join(token.text for token in self.tokens)


@dataclass(frozen=True)
class Detection:
    """A sensitive value located on a page."""
    category: Category
    value: str
    confidence: float
    bbox: BoundingBox
    page_number: int
    match_pass: MatchPass = MatchPass.EXACT
    span: tuple[int, int] = (0, 0)  # offsets in the page's linearized text

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "category": self.category.value,
            "value": self.value,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict(),
            "page_number": self.page_number,
            "match_pass": self.match_pass.value,
            "span": list(self.span),
        }

    def to_csv_row(self) -> dict:
        """Convert to flat dictionary for CSV output."""
        return {
            "page_number": self.page_number,
            "category": self.category.value,
            "value": self.value,
            "confidence": self.confidence,
            "match_pass": self.match_pass.value,
            "bbox_x": self.bbox.x,
            "bbox_y": self.bbox.y,
            "bbox_width": self.bbox.width,
            "bbox_height": self.bbox.height,
            "span_start": self.span[0],
            "span_end": self.span[1],
        }


@dataclass(frozen=True)
class DetectionSet:
    """Detections grouped by category."""
    identifier_a: tuple[Detection, ...] = ()
    identifier_b: tuple[Detection, ...] = ()
    phones: tuple[Detection, ...] = ()
    addresses: tuple[Detection, ...] = ()

    @classmethod
    def from_detections(cls, detections: list[Detection]) -> "DetectionSet":
        """Bucket a flat list of detections by category, keeping order."""
        by_category = {category: [] for category in Category}
        for detection in detections:
            by_category[detection.category].append(detection)
        return cls(
            identifier_a=tuple(by_category[Category.IDENTIFIER_A]),
            identifier_b=tuple(by_category[Category.IDENTIFIER_B]),
            phones=tuple(by_category[Category.PHONE]),
            addresses=tuple(by_category[Category.ADDRESS]),
        )

    def by_category(self, category: Category) -> tuple[Detection, ...]:
        return {
            Category.IDENTIFIER_A: self.identifier_a,
            Category.IDENTIFIER_B: self.identifier_b,
            Category.PHONE: self.phones,
            Category.ADDRESS: self.addresses,
        }[category]

    def all(self) -> list[Detection]:
        return [*self.identifier_a, *self.identifier_b, *self.phones, *self.addresses]

    def for_page(self, page_number: int) -> list[Detection]:
        return [d for d in self.all() if d.page_number == page_number]

    def filter(self, predicate: Callable[[Detection], bool]) -> "DetectionSet":
        return DetectionSet.from_detections([d for d in self.all() if predicate(d)])

    def counts(self) -> dict[str, int]:
        return {category.value: len(self.by_category(category)) for category in Category}

    @property
    def total(self) -> int:
        return sum(self.counts().values())

    @property
    def is_empty(self) -> bool:
        return self.total == 0


@dataclass(frozen=True)
class SourceDocument:
    """An original document as raw bytes plus its media type."""
    data: bytes
    mime_type: str
    name: str = "document"


@dataclass(frozen=True)
class RedactedArtifact:
    """
    A redacted copy of a source document.

    Raster artifacts carry width/height; paginated artifacts carry the
    size of every page in PDF points.
    """
    data: bytes
    mime_type: str
    width: Optional[int] = None
    height: Optional[int] = None
    page_sizes: tuple[tuple[float, float], ...] = ()
    redactions_applied: int = 0

    @property
    def is_paginated(self) -> bool:
        return bool(self.page_sizes)


def _default_address_keywords() -> tuple[str, ...]:
    return (
        "street", "road", "avenue", "lane", "colony", "sector",
        "city", "town", "village", "district", "state",
        "pin", "pincode", "postal", "zip",
        "address", "residence", "house", "flat", "apartment",
        "building", "block", "floor",
        "nagar", "marg", "gali", "chowk", "pura", "pur", "ganj",
    )


@dataclass(frozen=True)
class DetectionParams:
    """Parameters for pattern detection."""
    address_window: int = 200  # Characters inspected on each side of a postal code
    address_keywords: tuple[str, ...] = field(default_factory=_default_address_keywords)
    address_overlap_threshold: float = 0.5  # Fraction of either box that must overlap to merge
    aggressive_matching: bool = True  # Sliding-window pass over fused words
    min_confidence: tuple[tuple[Category, float], ...] = ()  # (category, floor) pairs

    def threshold_for(self, category: Category) -> float:
        return dict(self.min_confidence).get(category, 0.0)


@dataclass(frozen=True)
class RedactionParams:
    """Parameters for painting redactions."""
    fill_color: tuple[int, int, int] = (0, 0, 0)  # Opaque RGB, 0-255
    jpeg_quality: object = "keep"  # Pillow quality value, "keep" reuses source tables

    @property
    def fill_hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self.fill_color)

    @property
    def fill_unit(self) -> tuple[float, float, float]:
        """Fill colour scaled to 0-1, as PDF drawing expects."""
        return tuple(c / 255.0 for c in self.fill_color)


@dataclass
class PipelineOptions:
    """Parameters for running the full pipeline over a document."""
    detection: DetectionParams = field(default_factory=DetectionParams)
    redaction: RedactionParams = field(default_factory=RedactionParams)
    lang: str = "eng"  # Tesseract language code(s)
    ocr_zoom: float = 2.0  # Render scale for OCR of PDF pages
    verify: bool = True  # Re-render the output and check coverage
    max_file_size: int = 10 * 1024 * 1024  # Bytes


@dataclass
class CoverageResult:
    """Outcome of checking a single redacted region in an output artifact."""
    page_number: int
    bbox: BoundingBox
    total_pixels: int
    leaked_pixels: int
    residual_text: str = ""

    @property
    def is_covered(self) -> bool:
        return self.leaked_pixels == 0 and not self.residual_text


@dataclass
class DocumentResult:
    """Results from running the pipeline over a single input file."""
    doc_id: str
    file_path: str
    mime_type: str = ""
    total_pages: int = 0
    detections: DetectionSet = field(default_factory=DetectionSet)
    artifact: Optional[RedactedArtifact] = None
    coverage: list[CoverageResult] = field(default_factory=list)
    output_path: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None  # Exception class name, e.g. "PageRenderFailure"
    error_page: Optional[int] = None

    @property
    def total_detections(self) -> int:
        return self.detections.total

    @property
    def uncovered_regions(self) -> int:
        return sum(1 for c in self.coverage if not c.is_covered)


@dataclass
class CorpusResult:
    """Results from processing a batch of documents."""
    documents: list[DocumentResult] = field(default_factory=list)

    @property
    def total_documents(self) -> int:
        return len(self.documents)

    @property
    def total_pages(self) -> int:
        return sum(d.total_pages for d in self.documents)

    @property
    def total_detections(self) -> int:
        return sum(d.total_detections for d in self.documents)

    @property
    def all_detections(self) -> list[tuple[DocumentResult, Detection]]:
        return [(doc, d) for doc in self.documents for d in doc.detections.all()]
