"""
Bounding box arithmetic and coordinate-space conversion.

Extraction geometry is top-left origin, Y down (OCR pixel space). PDF
drawing space is bottom-left origin, Y up. Conversions between the two
are kept here as pure functions so they can be tested on their own.
"""

import math
from typing import Iterable, Optional

from .models import BoundingBox


def merge_bboxes(boxes: Iterable[BoundingBox]) -> Optional[BoundingBox]:
    """
    Compute the tightest box enclosing all given boxes.

    Args:
        boxes: Boxes to merge

    Returns:
        Enclosing box, or None if no boxes were given
    """
    boxes = list(boxes)
    if not boxes:
        return None
    if len(boxes) == 1:
        return boxes[0]

    x0 = min(b.x for b in boxes)
    y0 = min(b.y for b in boxes)
    x1 = max(b.right for b in boxes)
    y1 = max(b.bottom for b in boxes)

    return BoundingBox(x=x0, y=y0, width=x1 - x0, height=y1 - y0)


def intersection_area(box1: BoundingBox, box2: BoundingBox) -> float:
    """
    Area of the overlap between two boxes.

    Args:
        box1: First box
        box2: Second box

    Returns:
        Overlap area, 0 when the boxes only touch or are disjoint
    """
    x0 = max(box1.x, box2.x)
    y0 = max(box1.y, box2.y)
    x1 = min(box1.right, box2.right)
    y1 = min(box1.bottom, box2.bottom)

    if x1 <= x0 or y1 <= y0:
        return 0.0

    return (x1 - x0) * (y1 - y0)


def overlaps_significantly(
    box1: BoundingBox,
    box2: BoundingBox,
    threshold: float = 0.5
) -> bool:
    """
    Check whether the overlap exceeds `threshold` of either box's area.

    Args:
        box1: First box
        box2: Second box
        threshold: Fraction of a box's area the overlap must exceed

    Returns:
        True if the boxes should be treated as the same region
    """
    overlap = intersection_area(box1, box2)
    return overlap > box1.area * threshold or overlap > box2.area * threshold


def scale_bbox(bbox: BoundingBox, scale_x: float, scale_y: float) -> BoundingBox:
    """Scale a box from one pixel space into another (e.g. OCR pixels to PDF points)."""
    return BoundingBox(
        x=bbox.x * scale_x,
        y=bbox.y * scale_y,
        width=bbox.width * scale_x,
        height=bbox.height * scale_y,
    )


def to_document_space(bbox: BoundingBox, page_height: float) -> tuple[float, float, float, float]:
    """
    Convert a top-left-origin box into bottom-left-origin PDF space.

    Only the Y axis moves: the box's lower edge in PDF space sits
    `page_height - y - height` above the bottom of the page.

    Args:
        bbox: Box in extraction space, origin top-left, Y down
        page_height: Height of the page in the same units as the box

    Returns:
        (x, draw_y, width, height), origin bottom-left, Y up
    """
    draw_y = page_height - bbox.y - bbox.height
    return (bbox.x, draw_y, bbox.width, bbox.height)


def from_document_space(
    rect: tuple[float, float, float, float],
    page_height: float
) -> BoundingBox:
    """Inverse of to_document_space."""
    x, draw_y, width, height = rect
    return BoundingBox(x=x, y=page_height - draw_y - height, width=width, height=height)


def snap_to_pixels(
    bbox: BoundingBox,
    image_width: int,
    image_height: int
) -> Optional[tuple[int, int, int, int]]:
    """
    Expand a fractional box outward to whole pixels and clamp it to the image.

    Args:
        bbox: Box in pixel space, possibly fractional
        image_width: Image width in pixels
        image_height: Image height in pixels

    Returns:
        (x0, y0, x1, y1) with x1/y1 exclusive, or None if nothing remains
    """
    x0 = max(0, math.floor(bbox.x))
    y0 = max(0, math.floor(bbox.y))
    x1 = min(image_width, math.ceil(bbox.right))
    y1 = min(image_height, math.ceil(bbox.bottom))

    if x1 <= x0 or y1 <= y0:
        return None

    return (x0, y0, x1, y1)
