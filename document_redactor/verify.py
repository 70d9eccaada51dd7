"""
Coverage verification for redacted artifacts.

Re-opens a redacted artifact and confirms that every detection region is
solid fill:
1. Render the page (Pillow for images, PyMuPDF pixmap for PDF pages)
2. Map the detection box into rendered pixels
3. Count pixels that differ from the fill colour (OpenCV absdiff)
4. For PDFs, check no extractable text remains inside the region
"""

import logging
from io import BytesIO
from typing import Iterable, Optional

import cv2
import fitz
import numpy as np
from PIL import Image

from .models import (
    BoundingBox, CoverageResult, DetectionSet, Page, RedactedArtifact, RedactionParams,
)
from .geometry import scale_bbox, snap_to_pixels
from .redaction import group_by_page, normalize_mime_type
from . import pdf_document


logger = logging.getLogger(__name__)

# Per-channel difference tolerated before a pixel counts as leaked
PNG_TOLERANCE = 0
JPEG_TOLERANCE = 48  # block artifacts from lossy re-encoding
JPEG_INSET = 2  # pixels ignored along region edges, where ringing is strongest
PDF_TOLERANCE = 8

VERIFY_ZOOM = 2.0


def image_to_array(image: Image.Image) -> np.ndarray:
    """Convert a Pillow image to a BGR numpy array for OpenCV."""
    rgb = np.asarray(image.convert("RGB"))
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


def render_page_to_image(page: fitz.Page, zoom: float = VERIFY_ZOOM) -> np.ndarray:
    """
    Render a PyMuPDF page to a numpy array (BGR format for OpenCV).

    Args:
        page: PyMuPDF page object
        zoom: Scale factor over the page's point size

    Returns:
        numpy array in BGR format
    """
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
    img = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, pix.n)
    return cv2.cvtColor(img, cv2.COLOR_RGB2BGR)


def inset_region(
    region: Optional[tuple[int, int, int, int]],
    inset: int
) -> Optional[tuple[int, int, int, int]]:
    """Shrink a pixel region on every side, or None if nothing is left."""
    if region is None:
        return None
    x0, y0, x1, y1 = region
    x0, y0, x1, y1 = x0 + inset, y0 + inset, x1 - inset, y1 - inset
    if x1 <= x0 or y1 <= y0:
        return None
    return (x0, y0, x1, y1)


def count_leaked_pixels(
    image: np.ndarray,
    region: tuple[int, int, int, int],
    fill_color: tuple[int, int, int],
    tolerance: int = 0
) -> tuple[int, int]:
    """
    Count pixels inside a region that are not the fill colour.

    Args:
        image: BGR image
        region: (x0, y0, x1, y1) with exclusive x1/y1
        fill_color: Expected RGB fill
        tolerance: Largest per-channel difference still counted as fill

    Returns:
        (total_pixels, leaked_pixels)
    """
    x0, y0, x1, y1 = region
    patch = image[y0:y1, x0:x1]
    if patch.size == 0:
        return (0, 0)

    expected = np.empty_like(patch)
    expected[:] = fill_color[::-1]  # RGB -> BGR
    diff = cv2.absdiff(patch, expected).max(axis=2)

    total = patch.shape[0] * patch.shape[1]
    leaked = int(np.count_nonzero(diff > tolerance))
    return (total, leaked)


def verify_raster(
    artifact: RedactedArtifact,
    detections: DetectionSet,
    params: RedactionParams,
    extraction_size: Optional[tuple[float, float]] = None
) -> list[CoverageResult]:
    """Check page 1 detections against a redacted image."""
    is_jpeg = normalize_mime_type(artifact.mime_type) in ("image/jpeg", "image/jpg")
    tolerance = JPEG_TOLERANCE if is_jpeg else PNG_TOLERANCE
    inset = JPEG_INSET if is_jpeg else 0

    with Image.open(BytesIO(artifact.data)) as image:
        image.load()
        pixels = image_to_array(image)
        width, height = image.size

    scale_x, scale_y = 1.0, 1.0
    if extraction_size and extraction_size[0] and extraction_size[1]:
        scale_x, scale_y = width / extraction_size[0], height / extraction_size[1]

    results = []
    for detection in detections.for_page(1):
        if detection.bbox.is_degenerate:
            continue
        bbox = scale_bbox(detection.bbox, scale_x, scale_y)
        region = inset_region(snap_to_pixels(bbox, width, height), inset)
        if region is None:
            continue
        total, leaked = count_leaked_pixels(pixels, region, params.fill_color, tolerance)
        results.append(CoverageResult(
            page_number=1, bbox=detection.bbox, total_pixels=total, leaked_pixels=leaked,
        ))

    return results


def residual_text(page: fitz.Page, bbox: BoundingBox) -> str:
    """
    Text still extractable from inside a redacted region.

    The region is shrunk by a point on each side so glyphs that merely
    touch its border are not reported.
    """
    rect = pdf_document.to_library_rect(page, bbox)
    rect = fitz.Rect(rect.x0 + 1, rect.y0 + 1, rect.x1 - 1, rect.y1 - 1)
    if rect.is_empty:
        return ""
    return page.get_text("text", clip=rect).strip()


def verify_pdf(
    artifact: RedactedArtifact,
    detections: DetectionSet,
    params: RedactionParams,
    extraction_sizes: Optional[dict[int, tuple[float, float]]] = None,
    zoom: float = VERIFY_ZOOM
) -> list[CoverageResult]:
    """Check every detection against its page of a redacted PDF."""
    extraction_sizes = extraction_sizes or {}
    results = []

    doc = pdf_document.decode(artifact.data)
    try:
        for page_number, page_detections in sorted(group_by_page(detections.all()).items()):
            if not 1 <= page_number <= doc.page_count:
                continue

            page = doc[page_number - 1]
            pixels = render_page_to_image(page, zoom)
            height, width = pixels.shape[:2]

            for detection in page_detections:
                if detection.bbox.is_degenerate:
                    continue
                bbox = pdf_document.to_page_points(
                    page, detection.bbox, extraction_sizes.get(page_number)
                )
                # Edge pixels are anti-aliased against the background
                region = inset_region(snap_to_pixels(scale_bbox(bbox, zoom, zoom), width, height), 1)
                if region is None:
                    continue
                total, leaked = count_leaked_pixels(pixels, region, params.fill_color, PDF_TOLERANCE)
                results.append(CoverageResult(
                    page_number=page_number,
                    bbox=detection.bbox,
                    total_pixels=total,
                    leaked_pixels=leaked,
                    residual_text=residual_text(page, bbox),
                ))
    finally:
        doc.close()

    return results


def verify_artifact(
    artifact: RedactedArtifact,
    detections: DetectionSet,
    params: Optional[RedactionParams] = None,
    pages: Optional[Iterable[Page]] = None
) -> list[CoverageResult]:
    """
    Confirm every detection region of an artifact is fully covered.

    Args:
        artifact: Output of the redaction engine
        detections: Detections that were redacted
        params: Redaction parameters used (for the fill colour)
        pages: Extraction pages, for scaling boxes as redaction did

    Returns:
        One CoverageResult per checked region
    """
    params = params or RedactionParams()
    extraction_sizes = {p.page_number: (p.width, p.height) for p in pages or ()}

    if artifact.is_paginated or normalize_mime_type(artifact.mime_type) == pdf_document.PDF_MIME_TYPE:
        results = verify_pdf(artifact, detections, params, extraction_sizes)
    else:
        results = verify_raster(artifact, detections, params, extraction_sizes.get(1))

    uncovered = [r for r in results if not r.is_covered]
    if uncovered:
        logger.warning(f"{len(uncovered)} of {len(results)} redacted region(s) not fully covered")
    else:
        logger.debug(f"All {len(results)} redacted region(s) fully covered")

    return results
