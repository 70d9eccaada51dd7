"""Tests for source validation."""

import pytest

from document_redactor.models import SourceDocument
from document_redactor.validation import (
    sniff_mime_type,
    validate_source,
    load_source,
    mime_type_for_path,
)
from document_redactor.exceptions import InvalidSource, UnsupportedFormat


class TestSniffing:
    def test_png(self, png_bytes):
        assert sniff_mime_type(png_bytes) == "image/png"

    def test_jpeg(self, jpeg_bytes):
        assert sniff_mime_type(jpeg_bytes) == "image/jpeg"

    def test_pdf(self, pdf_bytes):
        assert sniff_mime_type(pdf_bytes) == "application/pdf"

    def test_pdf_with_leading_junk(self):
        assert sniff_mime_type(b"\n\n%PDF-1.7\n") == "application/pdf"

    def test_unknown(self):
        assert sniff_mime_type(b"GIF89a....") is None


class TestValidateSource:
    def test_declared_type_is_settled(self, jpeg_bytes):
        source = validate_source(SourceDocument(data=jpeg_bytes, mime_type="image/jpg", name="a.jpg"))
        assert source.mime_type == "image/jpeg"

    def test_missing_declared_type(self, png_bytes):
        assert validate_source(SourceDocument(data=png_bytes, mime_type="")).mime_type == "image/png"

    def test_mismatched_declared_type(self, png_bytes):
        with pytest.raises(InvalidSource):
            validate_source(SourceDocument(data=png_bytes, mime_type="application/pdf"))

    def test_empty_file(self):
        with pytest.raises(InvalidSource):
            validate_source(SourceDocument(data=b"", mime_type="image/png"))

    def test_too_large(self, png_bytes):
        with pytest.raises(InvalidSource) as exc:
            validate_source(SourceDocument(data=png_bytes, mime_type="image/png"), max_file_size=10)
        assert "limit" in str(exc.value)

    def test_unsupported_content(self):
        with pytest.raises(UnsupportedFormat):
            validate_source(SourceDocument(data=b"GIF89a....", mime_type="image/gif"))


class TestLoadSource:
    def test_reads_file(self, tmp_path, pdf_bytes):
        path = tmp_path / "statement.PDF"
        path.write_bytes(pdf_bytes)
        source = load_source(path)
        assert source.mime_type == "application/pdf"
        assert source.name == "statement.PDF"
        assert source.data == pdf_bytes

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidSource):
            load_source(tmp_path / "missing.png")

    def test_extension_mapping(self, tmp_path):
        assert mime_type_for_path(tmp_path / "scan.JPEG") == "image/jpeg"
        assert mime_type_for_path(tmp_path / "scan.png") == "image/png"
