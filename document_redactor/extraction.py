"""
Text extraction adapter.

Produces the ordered Page records the detection engine consumes, either
by running Tesseract OCR over the document or by loading extraction
output saved as JSON.

OCR flow:
1. Images are recognized directly at their native resolution
2. PDF pages are rendered with PyMuPDF at `zoom` and recognized one by one
3. Word-level results become tokens in Tesseract's reading order

Boxes stay in the pixel space OCR saw; each Page records that space's
size so the redaction engine can scale boxes back onto the document.
"""

import json
import logging
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

import fitz
import pytesseract
from PIL import Image

from .models import BoundingBox, Page, SourceDocument, TextToken
from .exceptions import ExtractionFailure, UnsupportedFormat
from .redaction import normalize_mime_type
from . import raster, pdf_document


logger = logging.getLogger(__name__)

DEFAULT_LANG = "eng"
DEFAULT_ZOOM = 2.0


def tokens_from_ocr_data(data: dict) -> tuple[TextToken, ...]:
    """
    Convert pytesseract image_to_data output into tokens.

    Entries with empty text or no confidence (layout rows, conf -1) are
    dropped. Confidence is rescaled from 0-100 to 0-1.

    Args:
        data: Dictionary from image_to_data(output_type=Output.DICT)

    Returns:
        Tokens in reading order
    """
    tokens = []
    for i, text in enumerate(data.get("text", [])):
        text = (text or "").strip()
        if not text:
            continue

        conf = float(data["conf"][i])
        if conf < 0:
            continue

        width = max(0, int(data["width"][i]))
        height = max(0, int(data["height"][i]))
        tokens.append(TextToken(
            text=text,
            confidence=min(conf, 100.0) / 100.0,
            bbox=BoundingBox(
                x=max(0, int(data["left"][i])),
                y=max(0, int(data["top"][i])),
                width=width,
                height=height,
            ),
        ))

    return tuple(tokens)


def ocr_image(image: Image.Image, page_number: int = 1, lang: str = DEFAULT_LANG) -> Page:
    """
    Recognize the words on one image.

    Args:
        image: Pillow image
        page_number: Page number to assign (1-indexed)
        lang: Tesseract language code(s), e.g. "eng" or "eng+hin"

    Returns:
        Page sized to the image
    """
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    data = pytesseract.image_to_data(image, lang=lang, output_type=pytesseract.Output.DICT)
    tokens = tokens_from_ocr_data(data)

    logger.debug(f"Page {page_number}: {len(tokens)} word(s) recognized")
    return Page(page_number=page_number, width=image.width, height=image.height, tokens=tokens)


def render_page(page: fitz.Page, zoom: float = DEFAULT_ZOOM) -> Image.Image:
    """
    Render a PyMuPDF page to a Pillow image.

    Args:
        page: PyMuPDF page object
        zoom: Scale factor over the page's point size (2.0 = 144 DPI)

    Returns:
        RGB image of the page as displayed
    """
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
    return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


def extract_image(source: SourceDocument, lang: str = DEFAULT_LANG) -> list[Page]:
    """OCR a single-page raster image."""
    try:
        with Image.open(BytesIO(source.data)) as image:
            image.load()
            return [ocr_image(image, 1, lang)]
    except Exception as e:
        raise ExtractionFailure(source.name, str(e), page_number=1) from e


def extract_pdf(
    source: SourceDocument,
    lang: str = DEFAULT_LANG,
    zoom: float = DEFAULT_ZOOM
) -> list[Page]:
    """
    OCR every page of a PDF.

    A failure on the first page is fatal. Failures on later pages are
    logged and the page is left out; callers find the gaps with
    unscanned_pages() and must not treat the document as redacted.

    Args:
        source: PDF source
        lang: Tesseract language code(s)
        zoom: Render scale for OCR

    Returns:
        Pages that were recognized, in page order
    """
    try:
        doc = pdf_document.decode(source.data)
    except Exception as e:
        raise ExtractionFailure(source.name, f"cannot open document: {e}") from e

    pages = []
    try:
        for index in range(doc.page_count):
            page_number = index + 1
            try:
                image = render_page(doc[index], zoom)
                pages.append(ocr_image(image, page_number, lang))
                image.close()
            except Exception as e:
                if page_number == 1:
                    raise ExtractionFailure(source.name, str(e), page_number=1) from e
                logger.warning(f"{source.name}: skipping page {page_number}, OCR failed: {e}")
    finally:
        doc.close()

    return pages


def unscanned_pages(pages: list[Page], page_count: int) -> list[int]:
    """Page numbers in 1..page_count that have no extraction output."""
    scanned = {p.page_number for p in pages}
    return [n for n in range(1, page_count + 1) if n not in scanned]


def extract_pages(
    source: SourceDocument,
    lang: str = DEFAULT_LANG,
    zoom: float = DEFAULT_ZOOM
) -> list[Page]:
    """
    Run OCR over a document.

    Args:
        source: Validated source document
        lang: Tesseract language code(s)
        zoom: Render scale used for PDF pages

    Returns:
        Ordered pages of extraction output

    Raises:
        UnsupportedFormat: If the media type is not PNG, JPEG or PDF
        ExtractionFailure: If OCR fails or yields no pages
    """
    mime_type = normalize_mime_type(source.mime_type)

    if mime_type in raster.RASTER_FORMATS:
        pages = extract_image(source, lang)
    elif mime_type == pdf_document.PDF_MIME_TYPE:
        pages = extract_pdf(source, lang, zoom)
    else:
        raise UnsupportedFormat(source.mime_type)

    if not pages:
        raise ExtractionFailure(source.name, "no pages could be extracted")

    words = sum(len(p.tokens) for p in pages)
    logger.info(f"Extracted {words} word(s) from {len(pages)} page(s) of {source.name}")
    return pages


def page_to_dict(page: Page) -> dict:
    return {
        "page_number": page.page_number,
        "width": page.width,
        "height": page.height,
        "tokens": [
            {"text": t.text, "confidence": t.confidence, "bbox": t.bbox.to_dict()}
            for t in page.tokens
        ],
    }


def page_from_dict(data: dict) -> Page:
    return Page(
        page_number=int(data["page_number"]),
        width=float(data["width"]),
        height=float(data["height"]),
        tokens=tuple(
            TextToken(
                text=str(t["text"]),
                confidence=float(t.get("confidence", 1.0)),
                bbox=BoundingBox.from_dict(t["bbox"]),
            )
            for t in data.get("tokens", [])
        ),
    )


def pages_to_json(pages: list[Page], output_path: Optional[Path] = None) -> str:
    """
    Serialize extraction output.

    Args:
        pages: Pages to serialize
        output_path: If given, the JSON is also written there

    Returns:
        JSON text
    """
    text = json.dumps({"pages": [page_to_dict(p) for p in pages]}, indent=2, ensure_ascii=False)
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
    return text


def load_pages_json(path: Union[str, Path]) -> list[Page]:
    """
    Load extraction output saved as JSON.

    Accepts either {"pages": [...]} or a bare list of pages.

    Args:
        path: JSON file

    Returns:
        Pages sorted by page number
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        records = data["pages"] if isinstance(data, dict) else data
        pages = [page_from_dict(record) for record in records]
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise ExtractionFailure(path.name, f"cannot load pages: {e}") from e

    return sorted(pages, key=lambda p: p.page_number)
