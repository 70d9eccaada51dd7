"""Shared test fixtures for Document Redactor."""

import json
from io import BytesIO

import fitz
import pytest
from PIL import Image, ImageDraw

from document_redactor.models import BoundingBox, Page, SourceDocument, TextToken
from document_redactor.extraction import page_to_dict


def layout_page(lines, page_number=1, width=1000, height=800, confidence=0.95):
    """Lay words out left to right, one text line per row, 10px per character."""
    tokens = []
    for row, line in enumerate(lines):
        x, y = 10, 10 + row * 30
        for word in line.split():
            w = len(word) * 10
            tokens.append(TextToken(text=word, confidence=confidence, bbox=BoundingBox(x, y, w, 20)))
            x += w + 10
    return Page(page_number=page_number, width=width, height=height, tokens=tuple(tokens))


def striped_image(size=(400, 200)) -> Image.Image:
    """RGB image with coloured stripes so untouched regions are distinguishable."""
    image = Image.new("RGB", size, (255, 255, 255))
    draw = ImageDraw.Draw(image)
    for i, x in enumerate(range(0, size[0], 20)):
        draw.rectangle([x, 0, x + 9, size[1] - 1], fill=((i * 40) % 256, 120, 200))
    return image


def encode_image(image: Image.Image, fmt: str) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def page_factory():
    return layout_page


@pytest.fixture
def png_bytes() -> bytes:
    return encode_image(striped_image(), "PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_image(striped_image(), "JPEG")


@pytest.fixture
def png_source(png_bytes: bytes) -> SourceDocument:
    return SourceDocument(data=png_bytes, mime_type="image/png", name="card.png")


@pytest.fixture
def jpeg_source(jpeg_bytes: bytes) -> SourceDocument:
    return SourceDocument(data=jpeg_bytes, mime_type="image/jpeg", name="card.jpg")


@pytest.fixture
def pdf_bytes() -> bytes:
    """Two A4 pages; page 1 holds a tax identifier above a line that must survive."""
    doc = fitz.open()
    page = doc.new_page(width=595, height=842)
    page.insert_text((72, 100), "PAN ABCDE1234F", fontsize=12)
    page.insert_text((72, 300), "Keep this line", fontsize=12)
    second = doc.new_page(width=595, height=842)
    second.insert_text((72, 100), "Nothing to hide here", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_source(pdf_bytes: bytes) -> SourceDocument:
    return SourceDocument(data=pdf_bytes, mime_type="application/pdf", name="statement.pdf")


@pytest.fixture
def identifier_page() -> Page:
    """Page with one identity number, one tax identifier and one phone number."""
    return layout_page([
        "Name Ravi Kumar",
        "Aadhaar 1234 5678 9012",
        "PAN ABCDE1234F",
        "Mobile +91 98765 43210",
    ])


@pytest.fixture
def pages_json_file(tmp_path, identifier_page: Page):
    """Saved extraction output for a 400x200 image, scaled from the 1000x800 layout."""
    path = tmp_path / "card.pages.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"pages": [page_to_dict(identifier_page)]}, f)
    return path


@pytest.fixture
def cropped_pdf_bytes() -> bytes:
    """A page whose visible area is offset from the MediaBox origin."""
    doc = fitz.open()
    page = doc.new_page(width=600, height=800)
    page.insert_text((250, 400), "SECRET", fontsize=14)
    page.insert_text((250, 500), "Visible", fontsize=14)
    page.set_cropbox(fitz.Rect(100, 100, 500, 700))
    data = doc.tobytes()
    doc.close()
    return data
