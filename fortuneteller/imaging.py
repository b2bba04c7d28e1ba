"""Image intake helpers: decoding, display scaling and numpy conversion."""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QImage

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".gif", ".webp"}

# Largest size the source image is shown at while drawing selections
DISPLAY_MAX_WIDTH = 640
DISPLAY_MAX_HEIGHT = 400


def load_image(path: str) -> QImage:
    """Decode *path* with Qt's image readers."""
    image = QImage(path)
    if image.isNull():
        raise FileNotFoundError(f"Cannot read image: {path}")
    logger.info("Loaded %s (%dx%d)", path, image.width(), image.height())
    return image.convertToFormat(QImage.Format.Format_ARGB32_Premultiplied)


def display_size(width: int, height: int, max_width: float, max_height: float) -> Tuple[float, float]:
    """Shrink ``width x height`` to fit the display box, keeping the aspect ratio."""
    w, h = float(width), float(height)
    if w > max_width:
        h = max_width / w * h
        w = max_width
    if h > max_height:
        w = max_height / h * w
        h = max_height
    return w, h


def fit_to_display(
    image: QImage,
    max_width: float = DISPLAY_MAX_WIDTH,
    max_height: float = DISPLAY_MAX_HEIGHT,
) -> Tuple[QImage, float, float]:
    """Return the display image and the ``(sx, sy)`` display-to-source scale."""
    w, h = display_size(image.width(), image.height(), max_width, max_height)
    display_w = max(1, round(w))
    display_h = max(1, round(h))
    scaled = image.scaled(
        display_w,
        display_h,
        Qt.AspectRatioMode.IgnoreAspectRatio,
        Qt.TransformationMode.SmoothTransformation,
    )
    return scaled, image.width() / display_w, image.height() / display_h


def qimage_to_rgba_array(image: QImage) -> np.ndarray:
    """Copy a QImage into an ``H x W x 4`` uint8 RGBA array (straight alpha)."""
    rgba = image.convertToFormat(QImage.Format.Format_RGBA8888)
    width, height = rgba.width(), rgba.height()
    if width == 0 or height == 0:
        return np.zeros((height, width, 4), dtype=np.uint8)
    ptr = rgba.constBits()
    ptr.setsize(rgba.sizeInBytes())
    buf = np.frombuffer(ptr, dtype=np.uint8).reshape(height, rgba.bytesPerLine())
    return buf[:, : width * 4].reshape(height, width, 4).copy()
