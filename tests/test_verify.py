"""Tests for coverage verification of redacted artifacts."""

import fitz

from document_redactor.models import (
    BoundingBox, Category, Detection, DetectionSet, RedactedArtifact, SourceDocument,
)
from document_redactor.redaction import redact
from document_redactor.verify import verify_artifact, inset_region


def _detections(*boxes, page_number=1):
    return DetectionSet.from_detections([
        Detection(
            category=Category.PHONE, value="9876543210", confidence=0.85,
            bbox=box, page_number=page_number,
        )
        for box in boxes
    ])


class TestRasterCoverage:
    def test_redacted_png_is_covered(self, png_source):
        detections = _detections(BoundingBox(10.5, 20.2, 30, 10), BoundingBox(200, 100, 50, 50))
        artifact = redact(png_source, detections)
        results = verify_artifact(artifact, detections)
        assert len(results) == 2
        assert all(r.is_covered for r in results)
        assert results[0].total_pixels == 31 * 11

    def test_unredacted_png_leaks(self, png_source):
        detections = _detections(BoundingBox(10, 20, 30, 10))
        original = RedactedArtifact(data=png_source.data, mime_type="image/png", width=400, height=200)
        results = verify_artifact(original, detections)
        assert results[0].leaked_pixels > 0
        assert not results[0].is_covered

    def test_degenerate_boxes_not_checked(self, png_source):
        detections = _detections(BoundingBox(10, 20, 0, 10))
        artifact = redact(png_source, detections)
        assert verify_artifact(artifact, detections) == []


class TestPdfCoverage:
    def _identifier_box(self, pdf_bytes):
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        rect = doc[0].search_for("ABCDE1234F")[0]
        doc.close()
        return BoundingBox(rect.x0 - 1, rect.y0 - 1, rect.width + 2, rect.height + 2)

    def test_redacted_pdf_is_covered(self, pdf_source, pdf_bytes):
        detections = _detections(self._identifier_box(pdf_bytes))
        artifact = redact(pdf_source, detections)
        results = verify_artifact(artifact, detections)
        assert len(results) == 1
        assert results[0].leaked_pixels == 0
        assert results[0].residual_text == ""

    def test_unredacted_pdf_leaks(self, pdf_source, pdf_bytes):
        detections = _detections(self._identifier_box(pdf_bytes))
        original = RedactedArtifact(
            data=pdf_source.data, mime_type="application/pdf", page_sizes=((595, 842), (595, 842))
        )
        results = verify_artifact(original, detections)
        assert not results[0].is_covered


class TestInsetRegion:
    def test_shrinks(self):
        assert inset_region((10, 10, 20, 20), 2) == (12, 12, 18, 18)

    def test_too_small(self):
        assert inset_region((10, 10, 12, 12), 1) is None
        assert inset_region(None, 1) is None


class TestCroppedPdfCoverage:
    def test_cropped_page_is_covered(self, cropped_pdf_bytes):
        doc = fitz.open(stream=cropped_pdf_bytes, filetype="pdf")
        rect = doc[0].search_for("SECRET")[0]
        doc.close()
        detections = _detections(BoundingBox(rect.x0 - 1, rect.y0 - 1, rect.width + 2, rect.height + 2))
        source = SourceDocument(data=cropped_pdf_bytes, mime_type="application/pdf", name="c.pdf")

        results = verify_artifact(redact(source, detections), detections)
        assert len(results) == 1
        assert results[0].is_covered
