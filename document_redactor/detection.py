"""
Pattern detection engine.

Runs every category matcher over each page of extraction output and
gathers the results into a DetectionSet. Pages are independent, so they
can be fanned out to a process pool; results are always assembled in
input page order.
"""

import logging
import multiprocessing
from typing import Iterable, Optional

from .models import Page, Detection, DetectionSet, DetectionParams
from .linearize import linearize
from .matchers import match_identifier_a, match_identifier_b, match_phone, match_address
from .dedup import filter_by_confidence


logger = logging.getLogger(__name__)


def detect_page(page: Page, params: Optional[DetectionParams] = None) -> list[Detection]:
    """
    Detect every category of sensitive value on a single page.

    Args:
        page: Page of extraction output
        params: Detection parameters

    Returns:
        Detections for the page, ordered by category
    """
    params = params or DetectionParams()

    if not page.tokens:
        return []

    linear = linearize(page)

    detections = []
    detections.extend(match_identifier_a(linear))
    detections.extend(match_identifier_b(linear, aggressive=params.aggressive_matching))
    detections.extend(match_phone(linear))
    detections.extend(match_address(linear, params))

    detections = filter_by_confidence(detections, params)

    logger.debug(f"Page {page.page_number}: {len(detections)} detection(s)")
    return detections


def _detect_page_wrapper(args: tuple) -> list[Detection]:
    """
    Wrapper for multiprocessing - unpacks arguments.
    """
    page, params = args
    return detect_page(page, params)


def detect(
    pages: Iterable[Page],
    params: Optional[DetectionParams] = None,
    workers: int = 1
) -> DetectionSet:
    """
    Detect sensitive values across all pages of a document.

    Args:
        pages: Extraction output, in page order
        params: Detection parameters
        workers: Number of worker processes (1 = run in-process)

    Returns:
        DetectionSet with one deduplicated sequence per category
    """
    params = params or DetectionParams()
    pages = list(pages)

    if not pages:
        return DetectionSet()

    args_list = [(page, params) for page in pages]

    if workers <= 1 or len(pages) == 1:
        per_page = [_detect_page_wrapper(args) for args in args_list]
    else:
        with multiprocessing.Pool(min(workers, len(pages))) as pool:
            # imap keeps input order
            per_page = list(pool.imap(_detect_page_wrapper, args_list))

    detections = [d for page_detections in per_page for d in page_detections]
    result = DetectionSet.from_detections(detections)

    logger.info(
        f"Detected {result.total} value(s) across {len(pages)} page(s): {result.counts()}"
    )
    return result
