"""
Category matchers run over a page's linearized text.

Each matcher is independent: it scans the page text with its own
patterns, normalizes and validates candidates, reconciles surviving
matches back to token geometry and deduplicates within the page.
Matches that cannot be tied to any token are dropped.
"""

import logging
import re
from typing import Optional

from .models import Category, Detection, DetectionParams, MatchPass
from .linearize import LinearText
from .exceptions import UnmappedMatch
from .normalization import (
    IDENTIFIER_B_LENGTH,
    digits_only,
    normalize_identifier_b,
    normalize_phone,
    is_valid_mobile,
)
from .patterns import (
    IDENTIFIER_A_PATTERNS,
    IDENTIFIER_A_LENGTHS,
    IDENTIFIER_B_EXACT,
    IDENTIFIER_B_CANDIDATE,
    IDENTIFIER_B_SHAPE,
    WORD,
    AGGRESSIVE_WORD_LENGTHS,
    PHONE_PATTERNS,
    POSTAL_CODE,
)
from .dedup import collapse_duplicates, deduplicate_addresses, rank_by_length


logger = logging.getLogger(__name__)

IDENTIFIER_A_CONFIDENCE = 0.90
IDENTIFIER_B_EXACT_CONFIDENCE = 0.90
IDENTIFIER_B_FUZZY_CONFIDENCE = 0.75
IDENTIFIER_B_AGGRESSIVE_CONFIDENCE = 0.65
PHONE_CONFIDENCE = 0.85
ADDRESS_CONFIDENCE = 0.75

_ALNUM_CHAR = re.compile(r"[A-Za-z0-9]")


def locate(
    linear: LinearText,
    category: Category,
    value: str,
    confidence: float,
    start: int,
    end: int,
    match_pass: MatchPass = MatchPass.EXACT
) -> Optional[Detection]:
    """
    Build a detection for a matched range, or None if it has no geometry.

    Args:
        linear: Linearized page text
        category: Detection category
        value: Value to report
        confidence: Confidence to report
        start: Match start offset
        end: Match end offset (exclusive)
        match_pass: Strategy that produced the match

    Returns:
        Detection with a box merged from the overlapping tokens
    """
    try:
        bbox = linear.reconcile(start, end)
    except UnmappedMatch as e:
        logger.debug(f"Dropping {category.value} match {value!r}: {e}")
        return None

    return Detection(
        category=category,
        value=value,
        confidence=confidence,
        bbox=bbox,
        page_number=linear.page_number,
        match_pass=match_pass,
        span=(start, end),
    )


def match_identifier_a(linear: LinearText) -> list[Detection]:
    """
    Find 12/16 digit identity numbers under every separator convention.

    A number matched by several conventions, or read both as a 12 and a
    16 digit number, collapses to the longest matching span.
    """
    candidates = []
    for pattern in IDENTIFIER_A_PATTERNS:
        for m in pattern.finditer(linear.text):
            if len(digits_only(m.group())) not in IDENTIFIER_A_LENGTHS:
                continue
            detection = locate(
                linear, Category.IDENTIFIER_A, m.group(),
                IDENTIFIER_A_CONFIDENCE, m.start(), m.end()
            )
            if detection is not None:
                candidates.append(detection)

    return collapse_duplicates(candidates, key=lambda d: d.page_number, rank=rank_by_length)


def _exact_identifier_b(linear: LinearText) -> list[Detection]:
    detections = []
    for m in IDENTIFIER_B_EXACT.finditer(linear.text):
        detection = locate(
            linear, Category.IDENTIFIER_B, m.group().upper(),
            IDENTIFIER_B_EXACT_CONFIDENCE, m.start(), m.end(), MatchPass.EXACT
        )
        if detection is not None:
            detections.append(detection)
    return detections


def _fuzzy_identifier_b(linear: LinearText) -> list[Detection]:
    detections = []
    for m in IDENTIFIER_B_CANDIDATE.finditer(linear.text):
        normalized = normalize_identifier_b(m.group())
        if not IDENTIFIER_B_SHAPE.fullmatch(normalized):
            continue
        detection = locate(
            linear, Category.IDENTIFIER_B, normalized,
            IDENTIFIER_B_FUZZY_CONFIDENCE, m.start(), m.end(), MatchPass.FUZZY
        )
        if detection is not None:
            detections.append(detection)
    return detections


def _aggressive_identifier_b(linear: LinearText) -> list[Detection]:
    """
    Slide a 10 character window over noisy words.

    Watermarks and scan noise can fuse an identifier to neighbouring
    characters. Words of 10-12 alphanumerics are searched window by window
    and the first window that normalizes to a valid identifier is taken.
    """
    detections = []
    for word in WORD.finditer(linear.text):
        positions = [c.start() for c in _ALNUM_CHAR.finditer(word.group())]
        if len(positions) not in AGGRESSIVE_WORD_LENGTHS:
            continue

        cleaned = "".join(word.group()[p] for p in positions)
        for i in range(len(cleaned) - IDENTIFIER_B_LENGTH + 1):
            normalized = normalize_identifier_b(cleaned[i:i + IDENTIFIER_B_LENGTH])
            if not IDENTIFIER_B_SHAPE.fullmatch(normalized):
                continue
            start = word.start() + positions[i]
            end = word.start() + positions[i + IDENTIFIER_B_LENGTH - 1] + 1
            detection = locate(
                linear, Category.IDENTIFIER_B, normalized,
                IDENTIFIER_B_AGGRESSIVE_CONFIDENCE, start, end, MatchPass.AGGRESSIVE
            )
            if detection is not None:
                detections.append(detection)
            break

    return detections


def match_identifier_b(linear: LinearText, aggressive: bool = True) -> list[Detection]:
    """
    Find 10 character tax identifiers with exact, fuzzy and aggressive passes.

    Sightings of the same normalized value at the same place collapse to
    the highest-confidence pass.

    Args:
        linear: Linearized page text
        aggressive: Whether to run the sliding-window pass

    Returns:
        Deduplicated detections
    """
    candidates = _exact_identifier_b(linear) + _fuzzy_identifier_b(linear)
    if aggressive:
        candidates += _aggressive_identifier_b(linear)

    return collapse_duplicates(candidates, key=lambda d: (d.page_number, d.value))


def match_phone(linear: LinearText) -> list[Detection]:
    """
    Find 10 digit mobile numbers, with or without a country code.

    Only numbers whose local part starts with 6-9 are accepted. Sightings
    of the same number at the same place collapse to the longest span, so
    a country-code prefix is covered too.
    """
    candidates = []
    for pattern in PHONE_PATTERNS:
        for m in pattern.finditer(linear.text):
            local = normalize_phone(m.group())
            if not is_valid_mobile(local):
                continue
            detection = locate(
                linear, Category.PHONE, m.group(),
                PHONE_CONFIDENCE, m.start(), m.end()
            )
            if detection is not None:
                candidates.append(detection)

    return collapse_duplicates(
        candidates,
        key=lambda d: (d.page_number, normalize_phone(d.value)),
        rank=rank_by_length,
    )


def match_address(linear: LinearText, params: DetectionParams) -> list[Detection]:
    """
    Find address blocks anchored on 6 digit postal codes.

    The text within `params.address_window` characters either side of each
    postal code is searched for address keywords. If one is present, every
    token in the window becomes part of the address region. Overlapping
    regions are then merged.

    Args:
        linear: Linearized page text
        params: Detection parameters (window size, keywords, merge threshold)

    Returns:
        Deduplicated address detections
    """
    keywords = [k.lower() for k in params.address_keywords]
    text = linear.text

    candidates = []
    for m in POSTAL_CODE.finditer(text):
        window_start = max(0, m.start() - params.address_window)
        window_end = min(len(text), m.end() + params.address_window)
        context = text[window_start:window_end].lower()

        if not any(keyword in context for keyword in keywords):
            continue

        detection = locate(
            linear, Category.ADDRESS, linear.joined_text(window_start, window_end),
            ADDRESS_CONFIDENCE, window_start, window_end, MatchPass.CONTEXT
        )
        if detection is not None:
            candidates.append(detection)

    return deduplicate_addresses(candidates, params.address_overlap_threshold)
