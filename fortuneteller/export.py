"""Export logic – save the composited print page to disk."""

from __future__ import annotations

import logging
import os

from PIL import Image
from PyQt6.QtGui import QImage

from fortuneteller.imaging import qimage_to_rgba_array

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("png", "jpg", "tif")
DEFAULT_FILENAME = "fortune-teller.png"


def qimage_to_pil(image: QImage) -> Image.Image:
    return Image.fromarray(qimage_to_rgba_array(image))


def save_page(page: QImage, filepath: str) -> str:
    """Save a rendered page; the format follows the file extension.

    Returns the saved file path.
    """
    ext = os.path.splitext(filepath)[1].lower().lstrip(".")
    if ext == "jpeg":
        ext = "jpg"
    elif ext == "tiff":
        ext = "tif"
    if ext not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {ext or '(none)'}")

    folder = os.path.dirname(filepath)
    if folder:
        os.makedirs(folder, exist_ok=True)

    pil_img = qimage_to_pil(page)

    save_kwargs = {}
    if ext == "jpg":
        # JPEG has no alpha; the page background is opaque white anyway
        pil_img = pil_img.convert("RGB")
        save_kwargs["quality"] = 95
    elif ext == "tif":
        save_kwargs["compression"] = "tiff_lzw"

    pil_img.save(filepath, **save_kwargs)
    logger.info("Saved page %dx%d to %s", page.width(), page.height(), filepath)
    return filepath
