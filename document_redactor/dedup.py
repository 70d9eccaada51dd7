"""
Deduplication of detections found by several patterns or passes.

Two strategies are used:
- Text-level: candidates sharing a key whose spans overlap in the page's
  linearized text are the same occurrence; the best-ranked one is kept.
- Box-level: address regions whose boxes overlap heavily on the same page
  are the same physical address block; the largest box is kept.
"""

from collections import defaultdict
from typing import Callable, Hashable

from .models import Detection, DetectionParams
from .geometry import overlaps_significantly


def spans_overlap(span1: tuple[int, int], span2: tuple[int, int]) -> bool:
    return span1[0] < span2[1] and span2[0] < span1[1]


def span_length(detection: Detection) -> int:
    return detection.span[1] - detection.span[0]


def rank_by_confidence(detection: Detection) -> tuple:
    """Highest confidence first, longer spans break ties."""
    return (-detection.confidence, -span_length(detection), detection.span[0])


def rank_by_length(detection: Detection) -> tuple:
    """Longest span first, so separators and prefixes stay covered."""
    return (-span_length(detection), -detection.confidence, detection.span[0])


def collapse_duplicates(
    detections: list[Detection],
    key: Callable[[Detection], Hashable],
    rank: Callable[[Detection], tuple] = rank_by_confidence
) -> list[Detection]:
    """
    Collapse repeated sightings of the same occurrence to a single detection.

    Candidates are grouped by `key`. Within a group, candidates are visited
    best-ranked first and kept only if their span does not overlap a span
    already kept, so distinct occurrences of the same value on a page
    survive while cross-pass duplicates do not.

    Args:
        detections: Candidate detections
        key: Grouping key, e.g. (page_number, normalized value)
        rank: Sort key; smaller sorts first and wins

    Returns:
        Deduplicated detections in page and text order
    """
    groups: dict[Hashable, list[Detection]] = defaultdict(list)
    for detection in detections:
        groups[key(detection)].append(detection)

    keep = []
    for candidates in groups.values():
        kept_in_group: list[Detection] = []
        for candidate in sorted(candidates, key=rank):
            if any(spans_overlap(candidate.span, k.span) for k in kept_in_group):
                continue
            kept_in_group.append(candidate)
        keep.extend(kept_in_group)

    return sorted(keep, key=lambda d: (d.page_number, d.span[0], d.span[1]))


def deduplicate_addresses(
    detections: list[Detection],
    overlap_threshold: float = 0.5
) -> list[Detection]:
    """
    Merge address regions that cover the same part of a page.

    When two boxes on the same page overlap by more than `overlap_threshold`
    of either box's area, the larger (more complete) box is kept.

    Args:
        detections: Address detections
        overlap_threshold: Fraction of a box's area that counts as a duplicate

    Returns:
        Deduplicated address detections in page and text order
    """
    if len(detections) <= 1:
        return list(detections)

    # Largest first; sorted() is stable so equal areas keep text order
    sorted_dets = sorted(detections, key=lambda d: d.bbox.area, reverse=True)

    keep = []
    for det in sorted_dets:
        is_duplicate = False
        for kept in keep:
            if kept.page_number != det.page_number:
                continue
            if overlaps_significantly(det.bbox, kept.bbox, overlap_threshold):
                is_duplicate = True
                break

        if not is_duplicate:
            keep.append(det)

    return sorted(keep, key=lambda d: (d.page_number, d.span[0], d.span[1]))


def filter_by_confidence(
    detections: list[Detection],
    params: DetectionParams
) -> list[Detection]:
    """
    Drop detections below their category's minimum confidence.

    Args:
        detections: Detections of any category
        params: Detection parameters holding per-category thresholds

    Returns:
        Filtered list of detections
    """
    return [d for d in detections if d.confidence >= params.threshold_for(d.category)]
