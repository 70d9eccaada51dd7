"""
Normalization of OCR-noisy identifier text.

OCR engines routinely read digits as similar-looking letters. These
helpers undo that where a position is known to hold a digit, and reduce
numbers to bare digit strings for comparison.
"""

import re


# Letters OCR commonly produces in place of digits
OCR_DIGIT_CONFUSIONS = {
    "O": "0",
    "I": "1",
    "Z": "2",
    "S": "5",
    "B": "8",
    "G": "6",
    "T": "7",
}

# Positions of the tax identifier (AAAAA9999A) that must be digits
IDENTIFIER_B_DIGIT_POSITIONS = range(5, 9)
IDENTIFIER_B_LENGTH = 10

COUNTRY_CODE = "91"
VALID_MOBILE_LEADING_DIGITS = frozenset("6789")

_NON_DIGIT = re.compile(r"\D")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def digits_only(text: str) -> str:
    """Strip every non-digit character."""
    return _NON_DIGIT.sub("", text)


def alnum_only(text: str) -> str:
    """Strip every non-alphanumeric character."""
    return _NON_ALNUM.sub("", text)


def normalize_identifier_b(candidate: str) -> str:
    """
    Apply OCR-confusion correction to a 10-character identifier candidate.

    The four digit positions get letter-to-digit substitution; every other
    position is only uppercased.

    Args:
        candidate: 10-character alphanumeric string

    Returns:
        Normalized, uppercased string of the same length
    """
    chars = list(candidate.upper())
    for i in IDENTIFIER_B_DIGIT_POSITIONS:
        if i < len(chars):
            chars[i] = OCR_DIGIT_CONFUSIONS.get(chars[i], chars[i])
    return "".join(chars)


def strip_country_code(digits: str) -> str:
    """Drop a leading country code from a 12-digit phone number."""
    if len(digits) == 12 and digits.startswith(COUNTRY_CODE):
        return digits[len(COUNTRY_CODE):]
    return digits


def normalize_phone(text: str) -> str:
    """Reduce a phone match to its 10 local digits (country code removed)."""
    return strip_country_code(digits_only(text))


def is_valid_mobile(digits: str) -> bool:
    """Ten digits starting with a valid mobile leading digit."""
    return len(digits) == 10 and digits[0] in VALID_MOBILE_LEADING_DIGITS
