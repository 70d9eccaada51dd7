"""
Paginated document codec for redaction (PDF via PyMuPDF).

OCR boxes arrive in top-left-origin pixel space of a rendered page. PDF
content lives in bottom-left-origin point space. Each box is scaled to
points, derotated, flipped into PDF space with to_document_space()
against the visible (CropBox) height, offset to the CropBox origin, and
mapped into PyMuPDF's rectangle space through the page transformation
matrix before being painted.

Painting uses redaction annotations that are applied immediately, which
removes text, vector graphics and image pixels underneath and draws an
opaque fill in their place.
"""

import logging
from typing import Optional

import fitz

from .models import BoundingBox
from .geometry import scale_bbox, to_document_space


logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


def decode(data: bytes) -> fitz.Document:
    """
    Open PDF bytes as an editable document.

    Args:
        data: Encoded PDF bytes

    Returns:
        PyMuPDF document (caller closes it)
    """
    return fitz.open(stream=data, filetype="pdf")


def page_size(page: fitz.Page) -> tuple[float, float]:
    """Visible page size in points, as the page is displayed."""
    return (page.rect.width, page.rect.height)


def extraction_scale(
    page: fitz.Page,
    extraction_size: Optional[tuple[float, float]]
) -> tuple[float, float]:
    """
    Scale factors from OCR pixel space to page points.

    Args:
        page: PyMuPDF page object
        extraction_size: (width, height) of the image OCR ran on, if known

    Returns:
        (scale_x, scale_y); (1, 1) when the OCR size is unknown
    """
    if not extraction_size or not extraction_size[0] or not extraction_size[1]:
        return (1.0, 1.0)
    width, height = page_size(page)
    return (width / extraction_size[0], height / extraction_size[1])


def to_library_rect(page: fitz.Page, bbox: BoundingBox) -> fitz.Rect:
    """
    Map a displayed-page box (points, top-left origin) into PyMuPDF space.

    Displayed coordinates are relative to the visible area (the CropBox),
    which need not start at the MediaBox origin. The box is flipped into
    PDF space against the visible height, offset by the visible area's
    lower-left corner, then mapped through the page transformation matrix.

    Args:
        page: PyMuPDF page object
        bbox: Box in displayed page points, origin top-left, Y down

    Returns:
        Rectangle in PyMuPDF's unrotated page coordinates
    """
    if page.rotation:
        rect = fitz.Rect(bbox.x, bbox.y, bbox.right, bbox.bottom) * page.derotation_matrix
        rect.normalize()
        bbox = BoundingBox(x=rect.x0, y=rect.y0, width=rect.width, height=rect.height)

    visible = page.rect * page.derotation_matrix
    visible.normalize()
    x, draw_y, width, height = to_document_space(bbox, visible.height)

    # Lower-left corner of the visible area in PDF space
    origin = fitz.Point(0, visible.height) * ~page.transformation_matrix
    x, draw_y = origin.x + x, origin.y + draw_y

    # PDF space -> PyMuPDF space
    rect = fitz.Rect(x, draw_y, x + width, draw_y + height) * page.transformation_matrix
    rect.normalize()
    return rect


def paint_rect(
    page: fitz.Page,
    bbox: BoundingBox,
    color: tuple[float, float, float] = (0.0, 0.0, 0.0)
) -> Optional[fitz.Rect]:
    """
    Mark a region of the page for opaque redaction.

    Args:
        page: PyMuPDF page object
        bbox: Region in displayed page points, origin top-left
        color: Fill colour, RGB 0-1

    Returns:
        The annotated rectangle, or None if nothing of it lies on the page
    """
    if bbox.is_degenerate:
        return None

    unrotated = page.rect * page.derotation_matrix
    unrotated.normalize()
    rect = to_library_rect(page, bbox) & unrotated
    if rect.is_empty:
        return None

    page.add_redact_annot(rect, fill=color, cross_out=False)
    return rect


def apply(page: fitz.Page) -> None:
    """
    Burn in every redaction annotation on the page.

    Text and vector graphics under the annotations are removed; image
    pixels under them are blanked before the opaque fill is drawn.
    """
    page.apply_redactions(images=fitz.PDF_REDACT_IMAGE_PIXELS)


def encode(doc: fitz.Document) -> bytes:
    """
    Serialize the document.

    Garbage collection drops the content objects that redaction replaced,
    so the original text does not survive as an unreferenced object.
    """
    return doc.tobytes(garbage=4, deflate=True)


def to_page_points(
    page: fitz.Page,
    bbox: BoundingBox,
    extraction_size: Optional[tuple[float, float]] = None
) -> BoundingBox:
    """Scale an OCR box into the page's displayed point space."""
    scale_x, scale_y = extraction_scale(page, extraction_size)
    if scale_x == 1.0 and scale_y == 1.0:
        return bbox
    return scale_bbox(bbox, scale_x, scale_y)
