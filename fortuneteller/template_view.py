"""Widget showing the live template surface and reporting clicked sections."""

from __future__ import annotations

from PyQt6.QtCore import QPointF, Qt, pyqtSignal
from PyQt6.QtGui import QMouseEvent, QPainter, QPaintEvent
from PyQt6.QtWidgets import QWidget

from fortuneteller.template import FortuneTellerTemplate


class TemplateView(QWidget):
    """Paints ``template.image`` 1:1 and highlights the hovered section."""

    section_clicked = pyqtSignal(str)  # section id, left button
    section_cleared = pyqtSignal(str)  # section id, right button

    def __init__(self, template: FortuneTellerTemplate, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._template = template
        self.setMouseTracking(True)
        self.setFixedSize(template.size, template.size)
        template.rendered.connect(self.update)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        pos = event.position()
        self._template.highlight_section_at(pos.x(), pos.y())

    def leaveEvent(self, event) -> None:  # noqa: N802
        self._template.clear_highlight()
        super().leaveEvent(event)

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        pos = event.position()
        section = self._template.locate_section(pos.x(), pos.y())
        if section is None:
            return
        if event.button() == Qt.MouseButton.RightButton:
            self.section_cleared.emit(section.id)
        else:
            self.section_clicked.emit(section.id)

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802
        painter = QPainter(self)
        try:
            painter.drawImage(QPointF(0, 0), self._template.image)
        finally:
            painter.end()
