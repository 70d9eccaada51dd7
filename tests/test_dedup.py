"""Tests for detection deduplication and filtering."""

from document_redactor.models import BoundingBox, Category, Detection, DetectionParams, MatchPass
from document_redactor.dedup import (
    collapse_duplicates,
    deduplicate_addresses,
    filter_by_confidence,
    rank_by_length,
)


def _detection(span, confidence=0.9, category=Category.IDENTIFIER_B, value="ABCDE1234F",
               bbox=None, page_number=1, match_pass=MatchPass.EXACT):
    return Detection(
        category=category,
        value=value,
        confidence=confidence,
        bbox=bbox or BoundingBox(span[0], 0, span[1] - span[0], 10),
        page_number=page_number,
        match_pass=match_pass,
        span=span,
    )


class TestCollapseDuplicates:
    def test_best_confidence_wins(self):
        exact = _detection((4, 14), 0.90)
        fuzzy = _detection((4, 14), 0.75, match_pass=MatchPass.FUZZY)
        aggressive = _detection((3, 14), 0.65, match_pass=MatchPass.AGGRESSIVE)
        kept = collapse_duplicates([aggressive, fuzzy, exact], key=lambda d: d.value)
        assert kept == [exact]

    def test_separate_occurrences_survive(self):
        first = _detection((0, 10))
        second = _detection((20, 30))
        kept = collapse_duplicates([second, first], key=lambda d: d.value)
        assert kept == [first, second]

    def test_rank_by_length_keeps_longest(self):
        short = _detection((4, 14), category=Category.PHONE, value="9876543210")
        long = _detection((0, 14), category=Category.PHONE, value="+91 9876543210")
        kept = collapse_duplicates([short, long], key=lambda d: d.page_number, rank=rank_by_length)
        assert kept == [long]

    def test_different_keys_are_independent(self):
        a = _detection((0, 10), value="ABCDE1234F")
        b = _detection((0, 10), value="ABCDE1254F")
        assert len(collapse_duplicates([a, b], key=lambda d: d.value)) == 2


class TestDeduplicateAddresses:
    def test_larger_box_kept(self):
        small = _detection((0, 5), category=Category.ADDRESS, bbox=BoundingBox(10, 10, 100, 50))
        large = _detection((0, 9), category=Category.ADDRESS, bbox=BoundingBox(0, 0, 200, 100))
        assert deduplicate_addresses([small, large]) == [large]

    def test_order_independent(self):
        small = _detection((0, 5), category=Category.ADDRESS, bbox=BoundingBox(10, 10, 100, 50))
        large = _detection((0, 9), category=Category.ADDRESS, bbox=BoundingBox(0, 0, 200, 100))
        assert deduplicate_addresses([small, large]) == deduplicate_addresses([large, small])

    def test_other_pages_untouched(self):
        one = _detection((0, 5), category=Category.ADDRESS, bbox=BoundingBox(0, 0, 100, 50))
        two = _detection((0, 5), category=Category.ADDRESS, bbox=BoundingBox(0, 0, 100, 50), page_number=2)
        assert len(deduplicate_addresses([one, two])) == 2

    def test_disjoint_boxes_kept(self):
        top = _detection((0, 5), category=Category.ADDRESS, bbox=BoundingBox(0, 0, 100, 50))
        bottom = _detection((50, 60), category=Category.ADDRESS, bbox=BoundingBox(0, 300, 100, 50))
        assert len(deduplicate_addresses([top, bottom])) == 2


class TestFilterByConfidence:
    def test_default_keeps_everything(self):
        detections = [_detection((0, 10), 0.1)]
        assert filter_by_confidence(detections, DetectionParams()) == detections

    def test_threshold_per_category(self):
        low_b = _detection((0, 10), 0.65)
        phone = _detection((20, 30), 0.85, category=Category.PHONE, value="9876543210")
        params = DetectionParams(min_confidence=((Category.IDENTIFIER_B, 0.7),))
        assert filter_by_confidence([low_b, phone], params) == [phone]
