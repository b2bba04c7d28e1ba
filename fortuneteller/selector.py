"""Free-form polygon selection over a source canvas, and raster extraction."""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import List, Optional

from PyQt6.QtCore import QObject, QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QBrush, QColor, QImage, QPainter, QPainterPath, QPen

from fortuneteller.errors import InsufficientPointsError
from fortuneteller.models import MIN_POLYGON_POINTS, Point, Selection
from fortuneteller.painting import polygon_path, saved_state

logger = logging.getLogger(__name__)

CLOSE_THRESHOLD = 15  # pixels from the first point that close the polygon
THUMBNAIL_SIZE = 50
DUPLICATE_VERTEX_DISTANCE = 2  # presses closer than this are one vertex

# Visual constants
FILL_COLOR = QColor(74, 105, 189, 77)
EDGE_COLOR = QColor("#4a69bd")
FIRST_VERTEX_COLOR = QColor("#e74c3c")
VERTEX_OUTLINE_COLOR = QColor("#fff")
CLOSE_RING_COLOR = QColor(231, 76, 60, 128)
FIRST_VERTEX_RADIUS = 8
VERTEX_RADIUS = 5
THUMBNAIL_BACKGROUND = QColor("#2d3a5a")

RASTER_FORMAT = QImage.Format.Format_ARGB32_Premultiplied


class SelectorState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"


class PolygonSelector(QObject):
    """Collects polygon vertices from pointer input.

    ``Idle -> Drawing -> Idle``; the terminal transitions emit
    ``selection_completed`` or ``selection_cancelled`` exactly once.
    """

    selection_completed = pyqtSignal(object)  # Selection
    selection_cancelled = pyqtSignal()
    changed = pyqtSignal()  # preview needs repainting

    def __init__(self, close_threshold: float = CLOSE_THRESHOLD,
                 parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.close_threshold = close_threshold
        self.state = SelectorState.IDLE
        self.points: List[Point] = []
        self.current_pos: Optional[Point] = None

    # ── state ────────────────────────────────────────────────────────────

    @property
    def is_drawing(self) -> bool:
        return self.state is SelectorState.DRAWING

    @property
    def can_finish(self) -> bool:
        return self.is_drawing and len(self.points) >= MIN_POLYGON_POINTS

    def _near_first(self, pos: Point) -> bool:
        return (
            len(self.points) >= MIN_POLYGON_POINTS
            and pos.distance_to(self.points[0]) < self.close_threshold
        )

    def is_near_first_point(self) -> bool:
        """True when the live pointer would close the polygon."""
        return self.is_drawing and self.current_pos is not None and self._near_first(self.current_pos)

    def _reset(self) -> None:
        self.state = SelectorState.IDLE
        self.points = []
        self.current_pos = None

    # ── input ────────────────────────────────────────────────────────────

    def start(self) -> None:
        self.state = SelectorState.DRAWING
        self.points = []
        self.current_pos = None
        logger.debug("Polygon selection started")
        self.changed.emit()

    def click(self, x: float, y: float) -> None:
        """Primary click: append a vertex, or close when near the first one."""
        if not self.is_drawing:
            return
        pos = Point(x, y)
        if self._near_first(pos):
            self.finish()
            return
        self.points.append(pos)
        self.changed.emit()

    def move(self, x: float, y: float) -> None:
        if not self.is_drawing:
            return
        self.current_pos = Point(x, y)
        self.changed.emit()

    def undo(self) -> None:
        """Remove the most recently added vertex."""
        if self.is_drawing and self.points:
            self.points.pop()
            self.changed.emit()

    def double_click(self) -> None:
        """Finish at once.

        A double-click whose presses both reached ``click`` leaves the same
        vertex twice; the duplicate is dropped. Below three vertices the
        polygon stays open.
        """
        if not self.is_drawing:
            return
        if (len(self.points) >= 2
                and self.points[-1].distance_to(self.points[-2]) < DUPLICATE_VERTEX_DISTANCE):
            self.points.pop()
            self.changed.emit()
        if len(self.points) >= MIN_POLYGON_POINTS:
            self.finish()

    def finish(self) -> Selection:
        """Complete the polygon.

        Raises InsufficientPointsError (leaving the drawing untouched) when
        fewer than three vertices exist.
        """
        if len(self.points) < MIN_POLYGON_POINTS:
            raise InsufficientPointsError(len(self.points))

        selection = Selection.from_points(self.points)
        self._reset()
        logger.info(
            "Polygon selection finished with %d points (%.0fx%.0f)",
            len(selection.points), selection.bounds.width, selection.bounds.height,
        )
        self.changed.emit()
        self.selection_completed.emit(selection)
        return selection

    def cancel(self) -> None:
        self._reset()
        logger.debug("Polygon selection cancelled")
        self.changed.emit()
        self.selection_cancelled.emit()

    def clear(self) -> None:
        """Drop any in-progress polygon without notifying listeners."""
        self._reset()
        self.changed.emit()

    # ── preview ──────────────────────────────────────────────────────────

    def paint_preview(self, painter: QPainter) -> None:
        """Draw the in-progress polygon, its vertices and the close ring."""
        if not self.is_drawing or not self.points:
            return

        with saved_state(painter):
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)

            path = QPainterPath()
            path.moveTo(QPointF(self.points[0].x, self.points[0].y))
            for p in self.points[1:]:
                path.lineTo(QPointF(p.x, p.y))
            if self.current_pos is not None:
                path.lineTo(QPointF(self.current_pos.x, self.current_pos.y))
            painter.fillPath(path, QBrush(FILL_COLOR))
            painter.setPen(QPen(EDGE_COLOR, 2))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawPath(path)

            painter.setPen(QPen(VERTEX_OUTLINE_COLOR, 2))
            for i, p in enumerate(self.points):
                first = i == 0
                radius = FIRST_VERTEX_RADIUS if first else VERTEX_RADIUS
                painter.setBrush(QBrush(FIRST_VERTEX_COLOR if first else EDGE_COLOR))
                painter.drawEllipse(QPointF(p.x, p.y), radius, radius)

            if self.is_near_first_point():
                first = self.points[0]
                painter.setPen(QPen(CLOSE_RING_COLOR, 2))
                painter.setBrush(Qt.BrushStyle.NoBrush)
                painter.drawEllipse(QPointF(first.x, first.y),
                                    self.close_threshold, self.close_threshold)


# ── extraction ───────────────────────────────────────────────────────────

def extract_selection(source: QImage, selection: Selection) -> QImage:
    """Copy the part of *source* inside the selection polygon.

    The result is exactly ``ceil(width) x ceil(height)`` pixels; pixels outside
    the polygon stay transparent.
    """
    bounds = selection.bounds
    width = math.ceil(bounds.width)
    height = math.ceil(bounds.height)

    raster = QImage(width, height, RASTER_FORMAT)
    if raster.isNull():
        # Degenerate (zero-area) selection
        return raster
    raster.fill(Qt.GlobalColor.transparent)

    painter = QPainter(raster)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setClipPath(polygon_path(selection.points, -bounds.x, -bounds.y))
        painter.drawImage(
            QRectF(0, 0, bounds.width, bounds.height),
            source,
            QRectF(bounds.x, bounds.y, bounds.width, bounds.height),
        )
    finally:
        painter.end()
    return raster


def fit_thumbnail(raster: QImage, size: int,
                  background: Optional[QColor] = THUMBNAIL_BACKGROUND) -> QImage:
    """Scale *raster* to fit a ``size`` square, centred, over *background*."""
    thumb = QImage(size, size, RASTER_FORMAT)
    thumb.fill(background if background is not None else Qt.GlobalColor.transparent)
    if raster.isNull() or raster.width() == 0 or raster.height() == 0:
        return thumb

    scale = min(size / raster.width(), size / raster.height())
    w = raster.width() * scale
    h = raster.height() * scale

    painter = QPainter(thumb)
    try:
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.drawImage(QRectF((size - w) / 2, (size - h) / 2, w, h), raster)
    finally:
        painter.end()
    return thumb


def create_thumbnail(source: QImage, selection: Selection, size: int = THUMBNAIL_SIZE) -> QImage:
    """Extract the selection and fit it into a square preview tile."""
    return fit_thumbnail(extract_selection(source, selection), size)
