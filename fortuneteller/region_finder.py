"""Automatic region detection on a source image.

Two strategies, both producing rectangular regions:

1. Background-classified flood fill – every pixel is classified as background
   or foreground, foreground pixels are grouped into 4-connected components
   with an explicit work list, small components are dropped and the rest are
   padded and ordered roughly left-to-right, top-to-bottom.
2. Uniform grid – the image is cut into ``N x N`` cells; the last row and
   column absorb any rounding remainder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import cv2
import numpy as np

from fortuneteller.models import Selection

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

REGION_PADDING = 5  # pixels added around every detected component
ROW_BANDS = 4  # coarse rows used for ordering detected regions
OPAQUE_ALPHA = 128  # white/black rules treat alpha below this as background

DEFAULT_MIN_SIZE = 100
DEFAULT_GRID_SIZE = 4


class BackgroundType(str, Enum):
    WHITE = "white"
    BLACK = "black"
    TRANSPARENT = "transparent"
    CUSTOM = "custom"
    GRID = "grid"


DEFAULT_THRESHOLDS = {
    BackgroundType.WHITE: 240,
    BackgroundType.BLACK: 30,
    BackgroundType.TRANSPARENT: 128,
    BackgroundType.CUSTOM: 30,
    BackgroundType.GRID: 0,
}


def parse_hex_color(value: str) -> RGB:
    """``"#rrggbb"`` -> ``(r, g, b)``."""
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ValueError(f"Expected a #rrggbb colour, got {value!r}")
    return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)


@dataclass
class SegmentOptions:
    """Auto-segmentation parameters chosen in the settings panel."""

    bg_type: BackgroundType = BackgroundType.WHITE
    threshold: int = DEFAULT_THRESHOLDS[BackgroundType.WHITE]
    min_size: int = DEFAULT_MIN_SIZE
    custom_color: Optional[RGB] = None
    grid_size: int = DEFAULT_GRID_SIZE

    @classmethod
    def for_background(cls, bg_type: BackgroundType, **overrides) -> SegmentOptions:
        """Options with the default threshold for *bg_type*."""
        bg_type = BackgroundType(bg_type)
        overrides.setdefault("threshold", DEFAULT_THRESHOLDS[bg_type])
        return cls(bg_type=bg_type, **overrides)


@dataclass
class Region:
    """Axis-aligned rectangle in source-image pixels."""

    x: int
    y: int
    width: int
    height: int
    pixel_count: int

    def to_selection(self) -> Selection:
        return Selection.from_rect(float(self.x), float(self.y),
                                   float(self.width), float(self.height))


@dataclass
class Component:
    """Raw 4-connected foreground component (inclusive pixel bounds)."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int
    pixel_count: int


# ── background classification ────────────────────────────────────────────

def background_mask(
    pixels: np.ndarray,
    bg_type: BackgroundType = BackgroundType.WHITE,
    threshold: int = DEFAULT_THRESHOLDS[BackgroundType.WHITE],
    custom_color: Optional[RGB] = None,
) -> np.ndarray:
    """Classify every pixel of an ``H x W x 4`` RGBA array; True = background."""
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected an RGBA array, got shape {pixels.shape}")

    rgb = pixels[:, :, :3].astype(np.int32)
    alpha = pixels[:, :, 3].astype(np.int32)
    bg_type = BackgroundType(bg_type)

    if bg_type is BackgroundType.WHITE:
        return (alpha < OPAQUE_ALPHA) | np.all(rgb >= threshold, axis=2)
    if bg_type is BackgroundType.BLACK:
        return (alpha < OPAQUE_ALPHA) | np.all(rgb <= threshold, axis=2)
    if bg_type is BackgroundType.TRANSPARENT:
        return alpha < threshold
    if bg_type is BackgroundType.CUSTOM:
        if custom_color is None:
            return np.zeros(alpha.shape, dtype=bool)
        diff = rgb - np.array(custom_color, dtype=np.int32)
        distance = np.sqrt(np.sum(diff * diff, axis=2))
        return distance <= threshold
    raise ValueError(f"{bg_type.value!r} is not a background classification")


# ── flood fill ───────────────────────────────────────────────────────────

def flood_fill_components(background: np.ndarray) -> Tuple[List[Component], np.ndarray]:
    """Group foreground pixels into 4-connected components.

    Returns the components in row-major discovery order and a per-pixel visit
    counter; every pixel, background or foreground, is visited exactly once.
    """
    height, width = background.shape
    # Background pixels are settled by the row-major scan up front
    visited = bytearray(background.astype(np.uint8).tobytes())
    components: List[Component] = []

    for start in np.flatnonzero(~background).tolist():
        if visited[start]:
            continue
        sy, sx = divmod(start, width)

        min_x = max_x = sx
        min_y = max_y = sy
        count = 0
        stack = [(sx, sy)]
        while stack:
            x, y = stack.pop()
            if x < 0 or x >= width or y < 0 or y >= height:
                continue
            idx = y * width + x
            if visited[idx]:
                continue
            visited[idx] += 1
            count += 1
            if x < min_x:
                min_x = x
            elif x > max_x:
                max_x = x
            if y < min_y:
                min_y = y
            elif y > max_y:
                max_y = y
            stack.append((x + 1, y))
            stack.append((x - 1, y))
            stack.append((x, y + 1))
            stack.append((x, y - 1))

        components.append(Component(min_x, min_y, max_x, max_y, count))

    counts = np.frombuffer(bytes(visited), dtype=np.uint8).reshape(height, width)
    return components, counts


def _pad_and_clamp(comp: Component, width: int, height: int,
                   padding: int = REGION_PADDING) -> Region:
    x0 = max(0, comp.min_x - padding)
    y0 = max(0, comp.min_y - padding)
    x1 = min(width, comp.max_x + 1 + padding)
    y1 = min(height, comp.max_y + 1 + padding)
    return Region(x0, y0, x1 - x0, y1 - y0, comp.pixel_count)


def sort_regions(regions: List[Region], height: int) -> List[Region]:
    """Order by coarse row band, then by x.

    Approximates reading order; regions in the same quarter of the image are
    ordered purely left to right.
    """
    band = height / ROW_BANDS
    return sorted(regions, key=lambda r: (int(r.y // band), r.x))


def find_regions(
    pixels: np.ndarray,
    threshold: int = DEFAULT_THRESHOLDS[BackgroundType.WHITE],
    min_size: int = DEFAULT_MIN_SIZE,
    bg_type: BackgroundType = BackgroundType.WHITE,
    custom_color: Optional[RGB] = None,
) -> List[Region]:
    """Detect foreground objects separated by background in an RGBA array."""
    height, width = pixels.shape[:2]
    background = background_mask(pixels, bg_type, threshold, custom_color)
    components, _ = flood_fill_components(background)

    regions = [
        _pad_and_clamp(comp, width, height)
        for comp in components
        if comp.pixel_count >= min_size
    ]
    logger.debug(
        "Flood fill: %d components, %d kept (min_size=%d, bg=%s, threshold=%d)",
        len(components), len(regions), min_size, BackgroundType(bg_type).value, threshold,
    )
    return sort_regions(regions, height)


# ── grid ─────────────────────────────────────────────────────────────────

def find_grid_regions(width: int, height: int, grid_size: int) -> List[Region]:
    """Split a ``width x height`` image into ``grid_size**2`` cells, row-major."""
    if grid_size < 1:
        raise ValueError(f"Grid size must be at least 1, got {grid_size}")

    cell_w = width // grid_size
    cell_h = height // grid_size
    regions: List[Region] = []
    for row in range(grid_size):
        for col in range(grid_size):
            x = col * cell_w
            y = row * cell_h
            # Last row/column extends to the edge
            w = width - x if col == grid_size - 1 else cell_w
            h = height - y if row == grid_size - 1 else cell_h
            regions.append(Region(x, y, w, h, w * h))
    return regions


# ── drivers ──────────────────────────────────────────────────────────────

def segment_pixels(pixels: np.ndarray, options: SegmentOptions) -> List[Region]:
    """Run the strategy selected by *options* on an RGBA array."""
    if BackgroundType(options.bg_type) is BackgroundType.GRID:
        height, width = pixels.shape[:2]
        return find_grid_regions(width, height, options.grid_size)
    return find_regions(
        pixels,
        threshold=options.threshold,
        min_size=options.min_size,
        bg_type=options.bg_type,
        custom_color=options.custom_color,
    )


def load_rgba_pixels(image_path: str) -> np.ndarray:
    """Read an image file as an ``H x W x 4`` RGBA uint8 array."""
    img = cv2.imread(image_path, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise FileNotFoundError(f"Cannot read image: {image_path}")
    if img.dtype != np.uint8:
        img = cv2.convertScaleAbs(img, alpha=255.0 / max(int(img.max()), 1))
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    raise ValueError(f"Unsupported channel count {img.shape[2]} in {image_path}")
