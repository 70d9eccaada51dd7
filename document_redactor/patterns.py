"""
Declarative token-class patterns for each detection category.

Each category gets a list of compiled patterns covering the separator
conventions seen in scanned documents. Digit runs are delimited with
lookarounds rather than word boundaries so that OCR output such as
"No:123456789012" or "Mob.9876543210" still matches.
"""

import re


# Identifier A: 12 digits (or 16 digit long form), optionally in groups of 4
IDENTIFIER_A_PATTERNS: list[re.Pattern] = [
    re.compile(r"(?<!\d)\d{12}(?!\d)"),
    re.compile(r"(?<!\d)\d{16}(?!\d)"),
    re.compile(r"(?<!\d)\d{4}\s\d{4}\s\d{4}(?:\s\d{4})?(?!\d)"),
    re.compile(r"(?<!\d)\d{4}-\d{4}-\d{4}(?:-\d{4})?(?!\d)"),
    re.compile(r"(?<!\d)\d{4}[\s-]?\d{4}[\s-]?\d{4}(?:[\s-]?\d{4})?(?!\d)"),
]
IDENTIFIER_A_LENGTHS = (12, 16)

# Identifier B: 5 letters, 4 digits, 1 letter
IDENTIFIER_B_EXACT = re.compile(r"\b[A-Z]{5}\d{4}[A-Z]\b", re.IGNORECASE)
IDENTIFIER_B_CANDIDATE = re.compile(r"\b[A-Za-z0-9]{10}\b")
IDENTIFIER_B_SHAPE = re.compile(r"[A-Z]{5}\d{4}[A-Z]")
WORD = re.compile(r"\S+")
AGGRESSIVE_WORD_LENGTHS = range(10, 13)

# Phone: 10 digit mobile with an optional +91 / 91 / (91) / (+91) prefix
_COUNTRY_PREFIX = r"(?:(?:\+91|\(\+?91\)|91)[\s-]?)?"
PHONE_PATTERNS: list[re.Pattern] = [
    re.compile(r"(?<![\d+])" + _COUNTRY_PREFIX + r"\d{10}(?!\d)"),
    re.compile(r"(?<![\d+])" + _COUNTRY_PREFIX + r"\d{5}[\s-]\d{5}(?!\d)"),
    re.compile(r"(?<![\d+])" + _COUNTRY_PREFIX + r"\d{3}[\s-]\d{3}[\s-]\d{4}(?!\d)"),
]

# Address: a 6 digit postal code anchors the search for address keywords
POSTAL_CODE = re.compile(r"(?<!\d)\d{6}(?!\d)")
