"""Data model: points, polygons, selections and the records that own their rasters."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

from PyQt6.QtGui import QImage

from fortuneteller.errors import InsufficientPointsError

MIN_POLYGON_POINTS = 3


@dataclass(frozen=True)
class Point:
    """A canvas coordinate (display, template or source-image space)."""

    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


Polygon = Tuple[Point, ...]


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box; ``width`` and ``height`` are never negative."""

    x: float
    y: float
    width: float
    height: float

    def scaled(self, sx: float, sy: float) -> BoundingBox:
        return BoundingBox(self.x * sx, self.y * sy, self.width * sx, self.height * sy)


# ── geometry helpers ─────────────────────────────────────────────────────

def get_bounds(points: Iterable[Point]) -> BoundingBox:
    """Return the tight axis-aligned rectangle enclosing *points*."""
    pts = list(points)
    if not pts:
        return BoundingBox(0.0, 0.0, 0.0, 0.0)
    xs = [p.x for p in pts]
    ys = [p.y for p in pts]
    min_x, min_y = min(xs), min(ys)
    return BoundingBox(min_x, min_y, max(xs) - min_x, max(ys) - min_y)


def point_in_polygon(px: float, py: float, vertices: Sequence[Point]) -> bool:
    """Ray-casting point-in-polygon test (half-open on horizontal edges)."""
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i].x, vertices[i].y
        xj, yj = vertices[j].x, vertices[j].y
        if (yi > py) != (yj > py):
            # yi != yj is guaranteed by the straddle test above
            if px < (xj - xi) * (py - yi) / (yj - yi) + xi:
                inside = not inside
        j = i
    return inside


def centroid(vertices: Sequence[Point]) -> Point:
    """Vertex average (not the area centroid)."""
    n = len(vertices)
    return Point(sum(v.x for v in vertices) / n, sum(v.y for v in vertices) / n)


# ── selections ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Selection:
    """A polygon region of an image together with its bounding box."""

    points: Polygon
    bounds: BoundingBox

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> Selection:
        pts = tuple(points)
        if len(pts) < MIN_POLYGON_POINTS:
            raise InsufficientPointsError(len(pts))
        return cls(points=pts, bounds=get_bounds(pts))

    @classmethod
    def from_rect(cls, x: float, y: float, width: float, height: float) -> Selection:
        """Rectangular selection, vertices ordered TL, TR, BR, BL."""
        return cls(
            points=(
                Point(x, y),
                Point(x + width, y),
                Point(x + width, y + height),
                Point(x, y + height),
            ),
            bounds=BoundingBox(x, y, width, height),
        )

    def scaled(self, sx: float, sy: float) -> Selection:
        """Map display-space geometry into source-image space."""
        return Selection(
            points=tuple(Point(p.x * sx, p.y * sy) for p in self.points),
            bounds=self.bounds.scaled(sx, sy),
        )


@dataclass
class SourceImage:
    """A decoded photo loaded into the session."""

    id: str
    name: str
    image: QImage
    path: Optional[str] = None  # file the image was decoded from, if any


@dataclass
class SelectionRecord:
    """A completed selection and the raster extracted from it.

    The session owns records; template assignments only reference them.
    """

    id: str
    name: str
    source_image_id: str
    selection: Selection
    raster: QImage = field(repr=False)
    source_name: Optional[str] = None
