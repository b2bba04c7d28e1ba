"""Fortune teller template: fixed fold geometry, hit testing and compositing.

Layout of the unfolded square sheet of side ``S``:

* 4 corner squares of side ``S/4`` (colours / main pictures),
* 8 outer right triangles between the corner squares and the edge midpoints
  (numbers),
* 8 inner triangles splitting the central diamond through the centre
  (fortunes).

Fold lines run from the centre to the edge midpoints and to the inner corner
of every corner square.  Each section carries a fixed rotation so that its
content reads upright once the sheet is folded.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QObject, QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QBrush, QColor, QFont, QFontMetricsF, QImage, QPainter, QPen, QPolygonF

from fortuneteller.models import (
    BoundingBox,
    Point,
    SelectionRecord,
    centroid,
    get_bounds,
    point_in_polygon,
)
from fortuneteller.painting import (
    draw_centered_text,
    make_font,
    polygon_path,
    saved_state,
)

logger = logging.getLogger(__name__)

DEFAULT_SIZE = 600

# Print page (US Letter at 96 dpi) and the template inset drawn on it
PAGE_WIDTH = 816
PAGE_HEIGHT = 1056
PRINT_TEMPLATE_SIZE = 672

# Fraction of the section bounding box an assigned picture may fill
SQUARE_FIT_FACTOR = 0.85
TRIANGLE_FIT_FACTOR = 0.5

IMAGE_FORMAT = QImage.Format.Format_ARGB32_Premultiplied

# Visual constants
BACKGROUND_COLOR = QColor("white")
PLACEHOLDER_COLORS = {
    "corner": QColor("#f0f0f0"),
    "outer": QColor("#f8f8f8"),
    "inner": QColor("#fafafa"),
}
PLACEHOLDER_LABEL_COLOR = QColor("#bbb")
FOLD_LINE_COLOR = QColor("#666")
STRUCTURE_LINE_COLOR = QColor("#333")
HIGHLIGHT_FILL = QColor(74, 105, 189, 77)
HIGHLIGHT_STROKE = QColor("#4a69bd")

NUMBER_CORNER_COLORS = ("#FFEB3B", "#4CAF50", "#2196F3", "#F44336")
NUMBER_CORNER_NAMES = ("Yellow", "Green", "Blue", "Red")
FORTUNES = (
    "Great things await.",
    "Many friends ahead.",
    "Success is yours.",
    "Love surrounds you.",
    "Adventure calls.",
    "Wisdom grows.",
    "Joy follows.",
    "Dreams come true.",
)
FORTUNE_MAX_WIDTH = 50
FORTUNE_LINE_HEIGHT = 11
FORTUNE_FIRST_LINE_Y = -8


class SectionKind(str, Enum):
    CORNER = "corner"
    OUTER = "outer"
    INNER = "inner"


class Mode(str, Enum):
    BOTH = "both"
    CORNERS = "corners"
    OUTER = "outer"
    INNER = "inner"
    NUMBERS = "numbers"


# Section kinds that can be rendered and assigned in each mode
MODE_KINDS: Dict[Mode, Tuple[SectionKind, ...]] = {
    Mode.BOTH: (SectionKind.CORNER, SectionKind.OUTER, SectionKind.INNER),
    Mode.CORNERS: (SectionKind.CORNER,),
    Mode.OUTER: (SectionKind.CORNER, SectionKind.OUTER),
    Mode.INNER: (SectionKind.INNER,),
    Mode.NUMBERS: (),
}

KIND_TITLES = {
    SectionKind.CORNER: "Corner",
    SectionKind.OUTER: "Number",
    SectionKind.INNER: "Fortune",
}
GROUP_TITLES = {
    SectionKind.CORNER: "Corners",
    SectionKind.OUTER: "Numbers",
    SectionKind.INNER: "Fortunes",
}


@dataclass(frozen=True)
class TemplateSection:
    """One foldable region of the sheet, in template coordinates."""

    id: str
    label: str
    kind: SectionKind
    vertices: Tuple[Point, ...]
    anchor: Point  # where the placeholder label is drawn
    rotation: float  # radians

    @property
    def centroid(self) -> Point:
        return centroid(self.vertices)

    @property
    def bounds(self) -> BoundingBox:
        return get_bounds(self.vertices)

    @property
    def is_square(self) -> bool:
        return self.kind is SectionKind.CORNER

    def contains(self, x: float, y: float) -> bool:
        return point_in_polygon(x, y, self.vertices)


@dataclass(frozen=True)
class AvailableSection:
    """Assignable section as shown to the assignment widgets."""

    id: str
    label: str
    kind: SectionKind


# ── geometry ─────────────────────────────────────────────────────────────

def define_sections(size: float) -> List[TemplateSection]:
    """Build the 4 + 8 + 8 sections for a sheet of side *size*.

    Order is corners, outer triangles, inner triangles; hit testing relies on it.
    """
    s = float(size)
    h = s / 2
    c = s / 4
    third = (h - c) / 3

    center = Point(h, h)

    tl, tr, bl, br = Point(0, 0), Point(s, 0), Point(0, s), Point(s, s)
    top, bottom, left, right = Point(h, 0), Point(h, s), Point(0, h), Point(s, h)
    tl_in, tr_in = Point(c, c), Point(s - c, c)
    bl_in, br_in = Point(c, s - c), Point(s - c, s - c)

    corner, outer, inner = SectionKind.CORNER, SectionKind.OUTER, SectionKind.INNER
    pi = math.pi

    corners = [
        # Top squares end up upside down when folded
        TemplateSection("corner1", "A", corner,
                        (tl, Point(c, 0), tl_in, Point(0, c)),
                        Point(c / 2, c / 2), pi),
        TemplateSection("corner2", "B", corner,
                        (Point(s - c, 0), tr, Point(s, c), tr_in),
                        Point(s - c / 2, c / 2), pi),
        TemplateSection("corner3", "C", corner,
                        (Point(0, s - c), bl_in, Point(c, s), bl),
                        Point(c / 2, s - c / 2), 0.0),
        TemplateSection("corner4", "D", corner,
                        (br_in, Point(s, s - c), br, Point(s - c, s)),
                        Point(s - c / 2, s - c / 2), 0.0),
    ]

    outers = [
        # top edge
        TemplateSection("outer5", "5", outer, (Point(c, 0), top, tl_in),
                        Point(c + third, c / 3), 0.0),
        TemplateSection("outer8", "8", outer, (top, Point(s - c, 0), tr_in),
                        Point(s - c - third, c / 3), 0.0),
        # left / right edges, upper half
        TemplateSection("outer4", "4", outer, (Point(0, c), tl_in, left),
                        Point(c / 3, c + third), pi / 2),
        TemplateSection("outer3", "3", outer, (tr_in, Point(s, c), right),
                        Point(s - c / 3, c + third), -pi / 2),
        # left / right edges, lower half
        TemplateSection("outer1", "1", outer, (left, bl_in, Point(0, s - c)),
                        Point(c / 3, s - c - third), pi / 2),
        TemplateSection("outer6", "6", outer, (right, Point(s, s - c), br_in),
                        Point(s - c / 3, s - c - third), -pi / 2),
        # bottom edge
        TemplateSection("outer2", "2", outer, (bl_in, Point(c, s), bottom),
                        Point(c + third, s - c / 3), pi),
        TemplateSection("outer7", "7", outer, (bottom, Point(s - c, s), br_in),
                        Point(s - c - third, s - c / 3), pi),
    ]

    inners = [
        TemplateSection("inner1", "F1", inner, (top, center, tl_in),
                        Point(h - third, c + third), -pi / 4),
        TemplateSection("inner2", "F2", inner, (top, tr_in, center),
                        Point(h + third, c + third), pi / 4),
        TemplateSection("inner3", "F3", inner, (tr_in, right, center),
                        Point(s - c - third, h - third), -pi / 4),
        TemplateSection("inner4", "F4", inner, (right, br_in, center),
                        Point(s - c - third, h + third), pi / 4),
        TemplateSection("inner5", "F5", inner, (br_in, bottom, center),
                        Point(h + third, s - c - third), -pi / 4),
        TemplateSection("inner6", "F6", inner, (bottom, bl_in, center),
                        Point(h - third, s - c - third), pi / 4),
        TemplateSection("inner7", "F7", inner, (bl_in, left, center),
                        Point(c + third, h + third), -pi / 4),
        TemplateSection("inner8", "F8", inner, (left, tl_in, center),
                        Point(c + third, h - third), pi / 4),
    ]

    return corners + outers + inners


def wrap_words(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """Greedy word wrap.

    A candidate line is the current line plus the next word and a trailing
    space; when it measures wider than *max_width* and the current line is not
    empty, the current line is flushed.
    """
    lines: List[str] = []
    line = ""
    for word in text.split(" "):
        candidate = line + word + " "
        if measure(candidate) > max_width and line != "":
            lines.append(line.strip())
            line = word + " "
        else:
            line = candidate
    lines.append(line.strip())
    return lines


# ── renderer ─────────────────────────────────────────────────────────────

class FortuneTellerTemplate(QObject):
    """Owns the template surface, the active mode and the assignment mapping."""

    rendered = pyqtSignal()  # emitted after every render of the live surface

    def __init__(self, size: int = DEFAULT_SIZE, mode: Mode = Mode.BOTH,
                 parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.size: int = size
        self.image: QImage = self._new_surface(size)
        self.mode: Mode = Mode(mode)
        self.assignments: Dict[str, SelectionRecord] = {}
        self.highlighted_section_id: Optional[str] = None
        self.sections: List[TemplateSection] = define_sections(size)

    # ── section lookup ───────────────────────────────────────────────────

    @staticmethod
    def _new_surface(size: int) -> QImage:
        image = QImage(size, size, IMAGE_FORMAT)
        image.fill(BACKGROUND_COLOR)
        return image

    def sections_of_kind(self, kind: SectionKind) -> List[TemplateSection]:
        return [s for s in self.sections if s.kind is kind]

    def section(self, section_id: str) -> Optional[TemplateSection]:
        for s in self.sections:
            if s.id == section_id:
                return s
        return None

    def enabled_sections(self) -> List[TemplateSection]:
        """Sections renderable/assignable in the current mode, in fixed order."""
        kinds = MODE_KINDS[self.mode]
        return [s for s in self.sections if s.kind in kinds]

    def locate_section(self, x: float, y: float) -> Optional[TemplateSection]:
        """Return the first enabled section containing ``(x, y)``, if any."""
        for s in self.enabled_sections():
            if s.contains(x, y):
                return s
        return None

    def get_available_sections(self) -> List[AvailableSection]:
        return [
            AvailableSection(s.id, f"{KIND_TITLES[s.kind]} {s.label}", s.kind)
            for s in self.enabled_sections()
        ]

    def grouped_available_sections(self) -> List[Tuple[str, List[AvailableSection]]]:
        """Available sections grouped as (group title, sections), empty groups skipped."""
        available = self.get_available_sections()
        groups = []
        for kind in SectionKind:
            members = [a for a in available if a.kind is kind]
            if members:
                groups.append((GROUP_TITLES[kind], members))
        return groups

    # ── mode & assignments ───────────────────────────────────────────────

    def set_mode(self, mode: Mode) -> None:
        self.mode = Mode(mode)
        self.highlighted_section_id = None
        logger.debug("Template mode set to %s", self.mode.value)
        self.render()

    def set_assignment(self, section_id: str, record: SelectionRecord) -> None:
        # Membership is not checked: entries for disabled sections are kept
        self.assignments[section_id] = record
        logger.debug("Assigned %s to %s", record.id, section_id)
        self.render()

    def clear_assignment(self, section_id: str) -> None:
        if self.assignments.pop(section_id, None) is None:
            logger.debug("No assignment to clear for section %s", section_id)
        self.render()

    def clear_all_assignments(self) -> None:
        self.assignments = {}
        self.render()

    def sections_assigned_to(self, record_id: str) -> List[str]:
        return [sid for sid, rec in self.assignments.items() if rec.id == record_id]

    # ── rendering ────────────────────────────────────────────────────────

    def render(self) -> None:
        """Repaint the live surface, keeping any hover highlight, and notify listeners."""
        self._paint_surface()
        if self.highlighted_section_id is not None:
            self._paint_highlight(self.highlighted_section_id)
        self.rendered.emit()

    def _paint_surface(self) -> None:
        painter = QPainter(self.image)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
            painter.fillRect(QRectF(0, 0, self.size, self.size), BACKGROUND_COLOR)

            if self.mode is Mode.NUMBERS:
                self._paint_numbers_only(painter)
            else:
                for section in self.enabled_sections():
                    self._paint_section(painter, section)

            self._paint_structure_lines(painter)
        finally:
            painter.end()

    def _paint_section(self, painter: QPainter, section: TemplateSection) -> None:
        path = polygon_path(section.vertices)
        record = self.assignments.get(section.id)

        if record is not None and not record.raster.isNull():
            with saved_state(painter):
                painter.setClipPath(path)
                self._paint_image_in_section(painter, record.raster, section)
            return

        # No assignment: placeholder fill plus the rotated label
        painter.fillPath(path, QBrush(PLACEHOLDER_COLORS[section.kind.value]))
        if section.kind is SectionKind.CORNER:
            font = make_font(28, bold=True)
        elif section.kind is SectionKind.INNER:
            font = make_font(18)
        else:
            font = make_font(32, bold=True)
        with saved_state(painter):
            painter.translate(section.anchor.x, section.anchor.y)
            painter.rotate(math.degrees(section.rotation))
            painter.setFont(font)
            painter.setPen(PLACEHOLDER_LABEL_COLOR)
            draw_centered_text(painter, section.label, 0, 0)

    def _paint_image_in_section(self, painter: QPainter, raster: QImage,
                                section: TemplateSection) -> None:
        bounds = section.bounds
        center = section.centroid
        fit = SQUARE_FIT_FACTOR if section.is_square else TRIANGLE_FIT_FACTOR
        scale = min(bounds.width / raster.width(), bounds.height / raster.height()) * fit
        draw_w = raster.width() * scale
        draw_h = raster.height() * scale

        painter.translate(center.x, center.y)
        painter.rotate(math.degrees(section.rotation))
        painter.drawImage(QRectF(-draw_w / 2, -draw_h / 2, draw_w, draw_h), raster)

    def _paint_structure_lines(self, painter: QPainter) -> None:
        s = self.size
        h = s / 2
        c = s / 4

        with saved_state(painter):
            # Dashed fold lines
            pen = QPen(FOLD_LINE_COLOR, 1)
            pen.setDashPattern([8, 4])
            painter.setPen(pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(QRectF(1, 1, s - 2, s - 2))
            painter.drawLine(QPointF(0, h), QPointF(s, h))
            painter.drawLine(QPointF(h, 0), QPointF(h, s))

            # Solid cut/fold structure
            painter.setPen(QPen(STRUCTURE_LINE_COLOR, 1.5))
            corner_outlines = (
                ((c, 0), (c, c), (0, c)),
                ((s - c, 0), (s - c, c), (s, c)),
                ((0, s - c), (c, s - c), (c, s)),
                ((s, s - c), (s - c, s - c), (s - c, s)),
            )
            for outline in corner_outlines:
                painter.drawPolyline(QPolygonF([QPointF(x, y) for x, y in outline]))

            center = QPointF(h, h)
            for x, y in ((h, 0), (h, s), (0, h), (s, h),
                         (c, c), (s - c, c), (c, s - c), (s - c, s - c)):
                painter.drawLine(center, QPointF(x, y))

    def _paint_numbers_only(self, painter: QPainter) -> None:
        for i, section in enumerate(self.sections_of_kind(SectionKind.CORNER)):
            painter.fillPath(polygon_path(section.vertices), QBrush(QColor(NUMBER_CORNER_COLORS[i])))
            self._paint_rotated_lines(painter, section, [NUMBER_CORNER_NAMES[i]],
                                      make_font(18, bold=True), QColor("#000"), 0)

        for section in self.sections_of_kind(SectionKind.OUTER):
            painter.fillPath(polygon_path(section.vertices), QBrush(QColor("#fff")))
            self._paint_rotated_lines(painter, section, [section.label],
                                      make_font(36, bold=True), QColor("#333"), 0)

        fortune_font = make_font(9)
        metrics = QFontMetricsF(fortune_font)
        for i, section in enumerate(self.sections_of_kind(SectionKind.INNER)):
            painter.fillPath(polygon_path(section.vertices), QBrush(QColor("#fff")))
            lines = wrap_words(FORTUNES[i], FORTUNE_MAX_WIDTH, metrics.horizontalAdvance)
            self._paint_rotated_lines(painter, section, lines, fortune_font,
                                      QColor("#666"), FORTUNE_FIRST_LINE_Y)

    @staticmethod
    def _paint_rotated_lines(painter: QPainter, section: TemplateSection,
                             lines: Sequence[str], font: QFont, color: QColor,
                             first_y: float) -> None:
        with saved_state(painter):
            painter.translate(section.anchor.x, section.anchor.y)
            painter.rotate(math.degrees(section.rotation))
            painter.setFont(font)
            painter.setPen(color)
            y = first_y
            for line in lines:
                draw_centered_text(painter, line, 0, y)
                y += FORTUNE_LINE_HEIGHT

    # ── drag-over highlighting ───────────────────────────────────────────

    def highlight_section_at(self, x: float, y: float) -> None:
        section = self.locate_section(x, y)
        if section is not None and section.id != self.highlighted_section_id:
            self.render_with_highlight(section.id)
        elif section is None and self.highlighted_section_id:
            self.clear_highlight()

    def clear_highlight(self) -> None:
        if self.highlighted_section_id:
            self.highlighted_section_id = None
            self.render()

    def render_with_highlight(self, section_id: str) -> None:
        self.highlighted_section_id = section_id
        self.render()

    def _paint_highlight(self, section_id: str) -> None:
        section = self.section(section_id)
        if section is None:
            return
        painter = QPainter(self.image)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            path = polygon_path(section.vertices)
            painter.fillPath(path, QBrush(HIGHLIGHT_FILL))
            painter.setPen(QPen(HIGHLIGHT_STROKE, 3))
            painter.drawPath(path)
        finally:
            painter.end()

    # ── export ───────────────────────────────────────────────────────────

    def render_for_print(self, target: Optional[QImage] = None) -> QImage:
        """Return a print page with the template rendered at print resolution.

        The page is *target* when given, otherwise a new US Letter page; it
        is cleared to white and the template is centred on it. The geometry
        is rebuilt at PRINT_TEMPLATE_SIZE for the duration of the call; size,
        sections and surface are restored afterwards.
        """
        page = target if target is not None else QImage(PAGE_WIDTH, PAGE_HEIGHT, IMAGE_FORMAT)
        page.fill(BACKGROUND_COLOR)

        offset_x = (page.width() - PRINT_TEMPLATE_SIZE) / 2
        offset_y = (page.height() - PRINT_TEMPLATE_SIZE) / 2

        old_size, old_sections, old_image = self.size, self.sections, self.image
        try:
            self.size = PRINT_TEMPLATE_SIZE
            self.sections = define_sections(PRINT_TEMPLATE_SIZE)
            self.image = self._new_surface(PRINT_TEMPLATE_SIZE)
            self._paint_surface()
            offscreen = self.image
        finally:
            self.size, self.sections, self.image = old_size, old_sections, old_image

        painter = QPainter(page)
        try:
            painter.drawImage(QPointF(offset_x, offset_y), offscreen)
        finally:
            painter.end()
        logger.info("Rendered print page %dx%d", page.width(), page.height())
        return page
