from PyQt6.QtGui import QColor, QImage, QPainter

from fortuneteller.models import Selection, SelectionRecord


def solid_image(width: int, height: int, color: str = "white") -> QImage:
    image = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(QColor(color))
    return image


def paint_rect(image: QImage, x: int, y: int, w: int, h: int, color: str = "black") -> QImage:
    painter = QPainter(image)
    try:
        painter.fillRect(x, y, w, h, QColor(color))
    finally:
        painter.end()
    return image


def make_record(record_id: str = "sel_1", color: str = "red", size: int = 50) -> SelectionRecord:
    return SelectionRecord(
        id=record_id,
        name=record_id,
        source_image_id="img_1",
        selection=Selection.from_rect(0, 0, size, size),
        raster=solid_image(size, size, color),
    )
