"""
Redaction engine.

Turns a DetectionSet into a permanently redacted copy of the source
document, in the same format and with the same dimensions:
- Raster images: detections on page 1 are painted as solid rectangles
  in the image's own top-left pixel space.
- PDF documents: detections are grouped by page, converted into PDF
  space and burned in as opaque redactions.

The artifact is only returned once every page with detections has been
painted and the document re-encoded. Any failure raises instead.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from .models import (
    Detection, DetectionSet, Page, RedactedArtifact, RedactionParams, SourceDocument,
)
from .exceptions import EncodeFailure, PageRenderFailure, RedactionError, UnsupportedFormat
from .geometry import scale_bbox
from . import raster, pdf_document


logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = (*raster.RASTER_FORMATS, pdf_document.PDF_MIME_TYPE)


def normalize_mime_type(mime_type: str) -> str:
    """Lower-case a media type and drop any parameters."""
    return (mime_type or "").split(";")[0].strip().lower()


def is_supported(mime_type: str) -> bool:
    return normalize_mime_type(mime_type) in SUPPORTED_MIME_TYPES


def group_by_page(detections: Iterable[Detection]) -> dict[int, list[Detection]]:
    """Group detections by page number."""
    by_page: dict[int, list[Detection]] = defaultdict(list)
    for detection in detections:
        by_page[detection.page_number].append(detection)
    return dict(by_page)


def redact(
    source: SourceDocument,
    detections: DetectionSet,
    params: Optional[RedactionParams] = None,
    pages: Optional[Iterable[Page]] = None
) -> RedactedArtifact:
    """
    Produce a redacted copy of a document.

    Args:
        source: Original document bytes and media type
        detections: Regions to redact, in extraction pixel space
        params: Redaction parameters (fill colour, JPEG quality)
        pages: Extraction pages; their sizes let boxes be scaled when OCR
            ran on a resampled rendering of the document

    Returns:
        RedactedArtifact with the source's media type and dimensions

    Raises:
        UnsupportedFormat: If the media type is not PNG, JPEG or PDF
        PageRenderFailure: If a page cannot be decoded or painted
        EncodeFailure: If the redacted document cannot be re-encoded
    """
    params = params or RedactionParams()
    mime_type = normalize_mime_type(source.mime_type)
    extraction_sizes = {p.page_number: (p.width, p.height) for p in pages or ()}

    if mime_type in raster.RASTER_FORMATS:
        return redact_raster(source, detections, params, extraction_sizes.get(1))
    if mime_type == pdf_document.PDF_MIME_TYPE:
        return redact_pdf(source, detections, params, extraction_sizes)

    raise UnsupportedFormat(source.mime_type)


def redact_raster(
    source: SourceDocument,
    detections: DetectionSet,
    params: RedactionParams,
    extraction_size: Optional[tuple[float, float]] = None
) -> RedactedArtifact:
    """
    Paint detections over a single-page raster image.

    Args:
        source: PNG or JPEG source
        detections: Detections; only page 1 applies to an image
        params: Redaction parameters
        extraction_size: (width, height) OCR saw, if different from the image

    Returns:
        Redacted image artifact
    """
    image_format = raster.RASTER_FORMATS[normalize_mime_type(source.mime_type)]

    try:
        image = raster.decode(source.data)
    except Exception as e:
        raise PageRenderFailure(1, f"cannot decode image: {e}") from e

    try:
        width, height = image.size
        scale_x, scale_y = 1.0, 1.0
        if extraction_size and extraction_size[0] and extraction_size[1]:
            scale_x = width / extraction_size[0]
            scale_y = height / extraction_size[1]

        skipped = [d for d in detections.all() if d.page_number != 1]
        if skipped:
            logger.warning(f"Ignoring {len(skipped)} detection(s) not on page 1 of an image")

        painted = 0
        try:
            for detection in detections.for_page(1):
                bbox = detection.bbox
                if (scale_x, scale_y) != (1.0, 1.0):
                    bbox = scale_bbox(bbox, scale_x, scale_y)
                if raster.paint_rect(image, bbox, params.fill_color) is not None:
                    painted += 1
        except Exception as e:
            raise PageRenderFailure(1, str(e)) from e

        try:
            data = raster.encode(image, image_format, params.jpeg_quality)
        except Exception as e:
            raise EncodeFailure(source.mime_type, str(e)) from e
    finally:
        image.close()

    logger.info(f"Painted {painted} redaction(s) on {source.name} ({width}x{height})")

    return RedactedArtifact(
        data=data,
        mime_type=source.mime_type,
        width=width,
        height=height,
        redactions_applied=painted,
    )


def redact_pdf(
    source: SourceDocument,
    detections: DetectionSet,
    params: RedactionParams,
    extraction_sizes: Optional[dict[int, tuple[float, float]]] = None
) -> RedactedArtifact:
    """
    Burn detections into the pages of a PDF.

    Pages without detections are left untouched. Detections pointing at
    pages the document does not have are skipped.

    Args:
        source: PDF source
        detections: Detections, grouped internally by page
        params: Redaction parameters
        extraction_sizes: Page number -> (width, height) OCR saw

    Returns:
        Redacted PDF artifact
    """
    extraction_sizes = extraction_sizes or {}

    try:
        doc = pdf_document.decode(source.data)
    except Exception as e:
        raise PageRenderFailure(1, f"cannot open document: {e}") from e

    try:
        painted = 0
        for page_number, page_detections in sorted(group_by_page(detections.all()).items()):
            if not 1 <= page_number <= doc.page_count:
                logger.warning(
                    f"Skipping {len(page_detections)} detection(s) for missing page {page_number}"
                )
                continue

            try:
                page = doc[page_number - 1]
                for detection in page_detections:
                    bbox = pdf_document.to_page_points(
                        page, detection.bbox, extraction_sizes.get(page_number)
                    )
                    if pdf_document.paint_rect(page, bbox, params.fill_unit) is not None:
                        painted += 1
                pdf_document.apply(page)
            except RedactionError:
                raise
            except Exception as e:
                raise PageRenderFailure(page_number, str(e)) from e

            logger.debug(f"Page {page_number}: {len(page_detections)} redaction(s) applied")

        page_sizes = tuple(pdf_document.page_size(page) for page in doc)

        try:
            data = pdf_document.encode(doc)
        except Exception as e:
            raise EncodeFailure(source.mime_type, str(e)) from e
    finally:
        doc.close()

    logger.info(f"Applied {painted} redaction(s) across {len(page_sizes)} page(s) of {source.name}")

    return RedactedArtifact(
        data=data,
        mime_type=source.mime_type,
        page_sizes=page_sizes,
        redactions_applied=painted,
    )
