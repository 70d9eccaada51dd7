"""Tests for the pattern detection engine."""

from document_redactor.models import Category, DetectionParams, MatchPass
from document_redactor.detection import detect, detect_page
from document_redactor.normalization import digits_only


class TestIdentifierA:
    def test_twelve_digit_token(self, page_factory):
        result = detect([page_factory(["UID 123456789012"])])
        assert len(result.identifier_a) == 1
        assert digits_only(result.identifier_a[0].value) == "123456789012"
        assert result.identifier_a[0].confidence == 0.90

    def test_sixteen_digit_token(self, page_factory):
        result = detect([page_factory(["VID 1234567890123456"])])
        assert len(result.identifier_a) == 1
        assert digits_only(result.identifier_a[0].value) == "1234567890123456"

    def test_space_grouped(self, page_factory):
        result = detect([page_factory(["1234 5678 9012"])])
        assert len(result.identifier_a) == 1
        assert result.identifier_a[0].value == "1234 5678 9012"

    def test_hyphen_grouped(self, page_factory):
        result = detect([page_factory(["1234-5678-9012"])])
        assert len(result.identifier_a) == 1
        assert digits_only(result.identifier_a[0].value) == "123456789012"

    def test_grouped_box_covers_every_group(self, page_factory):
        page = page_factory(["1234 5678 9012"])
        detection = detect([page]).identifier_a[0]
        first, last = page.tokens[0].bbox, page.tokens[-1].bbox
        assert detection.bbox.x == first.x
        assert detection.bbox.right == last.right
        assert detection.bbox.y == first.y
        assert detection.bbox.height == first.height

    def test_two_numbers_on_one_page(self, page_factory):
        result = detect([page_factory(["123456789012 and 210987654321"])])
        assert len(result.identifier_a) == 2

    def test_eleven_digits_ignored(self, page_factory):
        result = detect([page_factory(["12345678901"])])
        assert result.identifier_a == ()


class TestIdentifierB:
    def test_exact_match(self, page_factory):
        result = detect([page_factory(["PAN ABCDE1234F"])])
        assert len(result.identifier_b) == 1
        detection = result.identifier_b[0]
        assert detection.value == "ABCDE1234F"
        assert detection.confidence == 0.90
        assert detection.match_pass == MatchPass.EXACT

    def test_lowercase_is_exact(self, page_factory):
        result = detect([page_factory(["pan abcde1234f"])])
        assert [d.value for d in result.identifier_b] == ["ABCDE1234F"]

    def test_fuzzy_match(self, page_factory):
        result = detect([page_factory(["PAN ABCDE12S4F"])])
        assert len(result.identifier_b) == 1
        detection = result.identifier_b[0]
        assert detection.value == "ABCDE1254F"
        assert detection.confidence == 0.75
        assert detection.match_pass == MatchPass.FUZZY

    def test_aggressive_match_on_fused_word(self, page_factory):
        result = detect([page_factory(["PAN XABCDE1234F"])])
        assert len(result.identifier_b) == 1
        detection = result.identifier_b[0]
        assert detection.value == "ABCDE1234F"
        assert detection.match_pass == MatchPass.AGGRESSIVE
        assert detection.confidence == 0.65

    def test_aggressive_pass_can_be_disabled(self, page_factory):
        params = DetectionParams(aggressive_matching=False)
        result = detect([page_factory(["PAN XABCDE1234F"])], params)
        assert result.identifier_b == ()

    def test_same_value_twice_is_two_detections(self, page_factory):
        result = detect([page_factory(["ABCDE1234F", "copy ABCDE1234F"])])
        assert len(result.identifier_b) == 2


class TestPhone:
    def test_valid_mobile(self, page_factory):
        result = detect([page_factory(["Call 9876543210"])])
        assert len(result.phones) == 1
        assert result.phones[0].confidence == 0.85

    def test_invalid_leading_digit(self, page_factory):
        result = detect([page_factory(["Call 5876543210"])])
        assert result.phones == ()

    def test_country_code_is_covered(self, page_factory):
        page = page_factory(["Mobile +91 98765 43210"])
        result = detect([page])
        assert len(result.phones) == 1
        country_code_token = page.tokens[1]
        assert result.phones[0].bbox.x == country_code_token.bbox.x

    def test_three_three_four_grouping(self, page_factory):
        result = detect([page_factory(["Tel 987-654-3210"])])
        assert len(result.phones) == 1


class TestAddress:
    def test_postal_code_with_keyword(self, page_factory):
        page = page_factory(["123 Main Street", "City Name", "PIN: 560001"])
        result = detect([page])
        assert len(result.addresses) >= 1
        assert any("560001" in d.value for d in result.addresses)
        assert result.addresses[0].match_pass == MatchPass.CONTEXT

    def test_postal_code_without_keyword(self, page_factory):
        result = detect([page_factory(["Invoice total 560001 units"])])
        assert result.addresses == ()

    def test_nearby_postal_codes_merge(self, page_factory):
        page = page_factory(["12 MG Road Bangalore 560001 near 560002"])
        result = detect([page])
        assert len(result.addresses) == 1

    def test_window_is_configurable(self, page_factory):
        filler = " ".join(["word"] * 10)
        page = page_factory([f"street {filler} 560001"])
        assert detect([page], DetectionParams(address_window=20)).addresses == ()
        assert len(detect([page], DetectionParams(address_window=200)).addresses) == 1


class TestDetect:
    def test_plain_prose_has_no_detections(self, page_factory):
        page = page_factory([
            "The quick brown fox jumps over the lazy dog",
            "and then rests under a shady tree for a while",
        ])
        result = detect([page])
        assert result.is_empty
        assert result.counts() == {c.value: 0 for c in Category}

    def test_empty_input(self):
        assert detect([]).is_empty

    def test_page_without_tokens(self, page_factory):
        assert detect_page(page_factory([])) == []

    def test_boxes_are_non_negative(self, identifier_page):
        for detection in detect([identifier_page]).all():
            assert detection.bbox.x >= 0
            assert detection.bbox.y >= 0
            assert detection.bbox.width > 0
            assert detection.bbox.height > 0

    def test_every_category_found(self, identifier_page):
        result = detect([identifier_page])
        assert len(result.identifier_a) == 1
        assert len(result.identifier_b) == 1
        assert len(result.phones) == 1

    def test_idempotent(self, identifier_page):
        assert detect([identifier_page]) == detect([identifier_page])

    def test_page_numbers_are_kept(self, page_factory):
        pages = [page_factory(["nothing"], page_number=1), page_factory(["9876543210"], page_number=2)]
        result = detect(pages)
        assert [d.page_number for d in result.phones] == [2]

    def test_workers_give_same_result(self, page_factory):
        pages = [page_factory(["PAN ABCDE1234F"], page_number=n) for n in range(1, 4)]
        assert detect(pages, workers=2) == detect(pages, workers=1)

    def test_min_confidence_filters(self, page_factory):
        page = page_factory(["PAN ABCDE12S4F", "9876543210"])
        params = DetectionParams(min_confidence=((Category.IDENTIFIER_B, 0.8),))
        result = detect([page], params)
        assert result.identifier_b == ()
        assert len(result.phones) == 1

    def test_params_are_hashable(self):
        params = DetectionParams(min_confidence=((Category.PHONE, 0.9),))
        assert hash(params) == hash(DetectionParams(min_confidence=((Category.PHONE, 0.9),)))
        assert params.threshold_for(Category.PHONE) == 0.9
        assert params.threshold_for(Category.ADDRESS) == 0.0
