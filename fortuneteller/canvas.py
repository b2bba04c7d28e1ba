"""Source canvas: shows the current photo and feeds pointer input to the selector."""

from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import QPointF, QSize, Qt
from PyQt6.QtGui import QColor, QImage, QKeyEvent, QMouseEvent, QPainter, QPaintEvent
from PyQt6.QtWidgets import QSizePolicy, QWidget

from fortuneteller.selector import PolygonSelector

EMPTY_BG = QColor("#1e2a44")
EMPTY_TEXT = QColor("#8894b0")


class SourceCanvas(QWidget):
    """Displays a display-scaled image; coordinates are in display pixels."""

    def __init__(self, selector: PolygonSelector, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._selector = selector
        self._image: Optional[QImage] = None
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self.setFixedSize(QSize(640, 400))
        selector.changed.connect(self.update)

    # ── public API ───────────────────────────────────────────────────────

    def set_image(self, image: Optional[QImage]) -> None:
        """Show *image* (already display-scaled) and drop any in-progress polygon."""
        self._image = image
        self._selector.clear()
        if image is not None:
            self.setFixedSize(image.size())
        self._update_cursor()
        self.update()

    def has_image(self) -> bool:
        return self._image is not None

    def _update_cursor(self) -> None:
        if self._selector.is_drawing:
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.setCursor(Qt.CursorShape.ArrowCursor)

    # ── mouse handling ───────────────────────────────────────────────────

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        pos = event.position()
        if event.button() == Qt.MouseButton.LeftButton:
            self._selector.click(pos.x(), pos.y())
        elif event.button() == Qt.MouseButton.RightButton:
            self._selector.undo()
        self._update_cursor()

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton:
            self._selector.double_click()
        self._update_cursor()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        pos = event.position()
        self._selector.move(pos.x(), pos.y())

    # ── keyboard handling ────────────────────────────────────────────────

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802
        if event.key() == Qt.Key.Key_Escape and self._selector.is_drawing:
            self._selector.cancel()
            self._update_cursor()
        elif event.key() in (Qt.Key.Key_Return, Qt.Key.Key_Enter) and self._selector.can_finish:
            self._selector.finish()
            self._update_cursor()
        else:
            super().keyPressEvent(event)

    # ── painting ─────────────────────────────────────────────────────────

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802
        painter = QPainter(self)
        try:
            if self._image is None:
                painter.fillRect(self.rect(), EMPTY_BG)
                painter.setPen(EMPTY_TEXT)
                painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter,
                                 "Open an image to start selecting")
                return
            painter.drawImage(QPointF(0, 0), self._image)
            self._selector.paint_preview(painter)
        finally:
            painter.end()
