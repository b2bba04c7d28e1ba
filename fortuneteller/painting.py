"""Small QPainter helpers shared by the template renderer and the selector preview."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Sequence

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QFont, QPainter, QPainterPath

from fortuneteller.models import Point

FONT_FAMILY = "Arial"


@contextmanager
def saved_state(painter: QPainter) -> Iterator[QPainter]:
    """Scope transform/clip/pen changes; restores on every exit path."""
    painter.save()
    try:
        yield painter
    finally:
        painter.restore()


def polygon_path(vertices: Sequence[Point], dx: float = 0.0, dy: float = 0.0) -> QPainterPath:
    """Closed path through *vertices*, shifted by ``(dx, dy)``."""
    path = QPainterPath()
    if not vertices:
        return path
    first = vertices[0]
    path.moveTo(QPointF(first.x + dx, first.y + dy))
    for v in vertices[1:]:
        path.lineTo(QPointF(v.x + dx, v.y + dy))
    path.closeSubpath()
    return path


def make_font(pixel_size: int, bold: bool = False) -> QFont:
    font = QFont(FONT_FAMILY)
    font.setPixelSize(pixel_size)
    font.setBold(bold)
    return font


def draw_centered_text(painter: QPainter, text: str, x: float, y: float) -> None:
    """Draw *text* horizontally centred on *x* with its middle on *y*."""
    fm = painter.fontMetrics()
    width = fm.horizontalAdvance(text)
    baseline = y + (fm.ascent() - fm.descent()) / 2
    painter.drawText(QPointF(x - width / 2, baseline), text)
