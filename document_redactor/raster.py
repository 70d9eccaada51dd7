"""
Raster image codec for redaction (PNG/JPEG via Pillow).

Exposes the three operations the redaction engine needs:
1. decode: bytes -> editable image of identical pixel dimensions
2. paint_rect: fill a box with a solid colour, no anti-aliasing
3. encode: image -> bytes in the source's format
"""

import logging
from io import BytesIO
from typing import Optional

from PIL import Image, ImageColor, ImageDraw

from .models import BoundingBox
from .geometry import snap_to_pixels


logger = logging.getLogger(__name__)

RASTER_FORMATS = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
}

# Metadata carried over to the output. EXIF is dropped on purpose: it can
# embed a thumbnail of the unredacted image.
PRESERVED_INFO_KEYS = ("dpi", "icc_profile", "transparency")


def decode(data: bytes) -> Image.Image:
    """
    Decode image bytes into an editable Pillow image.

    Palette images are expanded to RGB(A) so a true black can be painted.

    Args:
        data: Encoded PNG or JPEG bytes

    Returns:
        Loaded image with the source's pixel dimensions
    """
    image = Image.open(BytesIO(data))
    image.load()

    if image.mode in ("P", "PA"):
        has_alpha = image.mode == "PA" or "transparency" in image.info
        converted = image.convert("RGBA" if has_alpha else "RGB")
        # A palette transparency index means nothing once expanded
        converted.info.update({
            k: image.info[k] for k in PRESERVED_INFO_KEYS if k in image.info and k != "transparency"
        })
        image.close()
        image = converted

    return image


def fill_for_mode(color: tuple[int, int, int], mode: str):
    """
    Express an RGB colour as a pixel value for an image mode.

    Args:
        color: RGB tuple, 0-255
        mode: Pillow image mode

    Returns:
        Pixel value suitable for ImageDraw fill in that mode (opaque)
    """
    if mode == "CMYK":
        return Image.new("RGB", (1, 1), color).convert("CMYK").getpixel((0, 0))
    return ImageColor.getcolor("#{:02x}{:02x}{:02x}".format(*color), mode)


def paint_rect(
    image: Image.Image,
    bbox: BoundingBox,
    color: tuple[int, int, int] = (0, 0, 0)
) -> Optional[tuple[int, int, int, int]]:
    """
    Paint a fully opaque rectangle over a region of the image.

    The box is expanded outward to whole pixels so no partially covered
    pixel keeps original data. Pixels are replaced, never blended.

    Args:
        image: Image to modify in place
        bbox: Region in image pixel space, origin top-left
        color: RGB fill colour

    Returns:
        Painted (x0, y0, x1, y1) with exclusive x1/y1, or None if the box
        lies outside the image or has no area
    """
    if bbox.is_degenerate:
        return None

    region = snap_to_pixels(bbox, image.width, image.height)
    if region is None:
        return None

    x0, y0, x1, y1 = region
    draw = ImageDraw.Draw(image)
    # ImageDraw rectangles include their far edge
    draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=fill_for_mode(color, image.mode))

    return region


def encode(
    image: Image.Image,
    image_format: str,
    jpeg_quality: object = "keep"
) -> bytes:
    """
    Encode the image back to its source format.

    Args:
        image: Image to encode
        image_format: Pillow format name ("PNG" or "JPEG")
        jpeg_quality: Pillow JPEG quality; "keep" reuses the source tables

    Returns:
        Encoded bytes
    """
    save_kwargs = {k: image.info[k] for k in PRESERVED_INFO_KEYS if k in image.info}
    if image_format != "PNG" or image.mode not in ("1", "L", "I", "RGB"):
        # tRNS colour keys only exist for these PNG modes
        save_kwargs.pop("transparency", None)

    if image_format == "JPEG":
        if jpeg_quality == "keep" and image.format != "JPEG":
            # Quantization tables are only available on a decoded JPEG
            jpeg_quality = 95
        save_kwargs["quality"] = jpeg_quality
        if jpeg_quality == "keep":
            save_kwargs["subsampling"] = "keep"

    buffer = BytesIO()
    image.save(buffer, format=image_format, **save_kwargs)
    return buffer.getvalue()
