"""Tests for OCR-noise normalization."""

from document_redactor.normalization import (
    digits_only,
    alnum_only,
    normalize_identifier_b,
    strip_country_code,
    normalize_phone,
    is_valid_mobile,
)


class TestIdentifierBNormalization:
    def test_digit_positions_are_corrected(self):
        assert normalize_identifier_b("ABCDE12S4F") == "ABCDE1254F"

    def test_every_confusion(self):
        assert normalize_identifier_b("abcdeOIZSf") == "ABCDE0125F"
        assert normalize_identifier_b("ABCDEBGT1F") == "ABCDE8671F"

    def test_letter_positions_are_only_uppercased(self):
        # O at position 0 stays a letter
        assert normalize_identifier_b("Obcde1234s") == "OBCDE1234S"


class TestPhoneNormalization:
    def test_strips_separators_and_country_code(self):
        assert normalize_phone("+91 98765-43210") == "9876543210"
        assert normalize_phone("(91) 9876543210") == "9876543210"

    def test_ten_digit_number_starting_with_91_is_kept(self):
        assert strip_country_code("9198765432") == "9198765432"

    def test_valid_mobile(self):
        assert is_valid_mobile("9876543210")
        assert is_valid_mobile("6000000000")
        assert not is_valid_mobile("5876543210")
        assert not is_valid_mobile("987654321")


class TestStripping:
    def test_digits_only(self):
        assert digits_only("1234-5678 9012") == "123456789012"

    def test_alnum_only(self):
        assert alnum_only("*ABCDE1234F.") == "ABCDE1234F"
