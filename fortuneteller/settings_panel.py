"""Settings / controls panel (right side): images, mode, selection, auto-segment, output."""

from __future__ import annotations

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import (
    QColorDialog,
    QComboBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSlider,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from fortuneteller.region_finder import (
    DEFAULT_GRID_SIZE,
    DEFAULT_MIN_SIZE,
    DEFAULT_THRESHOLDS,
    RGB,
    BackgroundType,
    SegmentOptions,
    parse_hex_color,
)
from fortuneteller.template import Mode

MODE_LABELS = {
    Mode.BOTH: "Corners + numbers + fortunes",
    Mode.CORNERS: "Corners only",
    Mode.OUTER: "Corners + numbers",
    Mode.INNER: "Fortunes only",
    Mode.NUMBERS: "Numbers only (no pictures)",
}

BACKGROUND_HINTS = {
    BackgroundType.WHITE: "Detects white/light backgrounds. Higher threshold = stricter white detection.",
    BackgroundType.BLACK: "Detects black/dark backgrounds. Lower threshold = stricter black detection.",
    BackgroundType.TRANSPARENT: "Detects transparent areas. Threshold controls alpha sensitivity.",
    BackgroundType.GRID: "Splits image into a uniform grid (4 = 4x4 = 16 regions).",
    BackgroundType.CUSTOM: "Select a background color to detect. Threshold controls color tolerance.",
}


class SettingsPanel(QWidget):
    """Right-hand panel with the drawing, segmentation and output actions."""

    open_images_clicked = pyqtSignal()
    image_selected = pyqtSignal(int)  # index into the session images
    mode_changed = pyqtSignal(str)
    new_selection_clicked = pyqtSignal()
    finish_selection_clicked = pyqtSignal()
    cancel_selection_clicked = pyqtSignal()
    run_segment_clicked = pyqtSignal()
    quick_fill_clicked = pyqtSignal()
    clear_all_clicked = pyqtSignal()
    save_page_clicked = pyqtSignal()

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._custom_color = QColor("#ffffff")
        self._build_ui()
        self._on_bg_type_changed()

    # ── UI ───────────────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)

        # ── Images ───────────────────────────────────────────────────────
        image_group = QGroupBox("Images")
        image_layout = QVBoxLayout(image_group)
        self._btn_open = QPushButton("Add Images…")
        self._btn_open.clicked.connect(self.open_images_clicked.emit)
        image_layout.addWidget(self._btn_open)
        self._combo_images = QComboBox()
        self._combo_images.currentIndexChanged.connect(self._on_image_index_changed)
        image_layout.addWidget(self._combo_images)
        layout.addWidget(image_group)

        # ── Template mode ────────────────────────────────────────────────
        mode_group = QGroupBox("Template")
        mode_form = QFormLayout(mode_group)
        self._combo_mode = QComboBox()
        for mode, text in MODE_LABELS.items():
            self._combo_mode.addItem(text, mode.value)
        self._combo_mode.currentIndexChanged.connect(
            lambda _i: self.mode_changed.emit(self._combo_mode.currentData())
        )
        mode_form.addRow("Mode:", self._combo_mode)
        layout.addWidget(mode_group)

        # ── Polygon selection ────────────────────────────────────────────
        sel_group = QGroupBox("Selection")
        sel_layout = QHBoxLayout(sel_group)
        self._btn_new = QPushButton("New")
        self._btn_new.clicked.connect(self.new_selection_clicked.emit)
        self._btn_finish = QPushButton("Finish")
        self._btn_finish.clicked.connect(self.finish_selection_clicked.emit)
        self._btn_cancel = QPushButton("Cancel")
        self._btn_cancel.clicked.connect(self.cancel_selection_clicked.emit)
        for btn in (self._btn_new, self._btn_finish, self._btn_cancel):
            sel_layout.addWidget(btn)
        layout.addWidget(sel_group)

        # ── Auto-segment ─────────────────────────────────────────────────
        auto_group = QGroupBox("Auto-Segment")
        auto_form = QFormLayout(auto_group)

        self._combo_bg = QComboBox()
        for bg in BackgroundType:
            self._combo_bg.addItem(bg.value.capitalize(), bg.value)
        self._combo_bg.currentIndexChanged.connect(self._on_bg_type_changed)
        auto_form.addRow("Background:", self._combo_bg)

        self._slider_threshold = QSlider(Qt.Orientation.Horizontal)
        self._slider_threshold.setRange(0, 255)
        self._lbl_threshold = QLabel()
        self._slider_threshold.valueChanged.connect(
            lambda v: self._lbl_threshold.setText(str(v))
        )
        threshold_row = QHBoxLayout()
        threshold_row.addWidget(self._slider_threshold)
        threshold_row.addWidget(self._lbl_threshold)
        auto_form.addRow("Threshold:", threshold_row)

        self._btn_color = QPushButton()
        self._btn_color.clicked.connect(self._on_pick_color)
        self._update_color_button()
        auto_form.addRow("Color:", self._btn_color)

        self._spin_grid = QSpinBox()
        self._spin_grid.setRange(1, 20)
        self._spin_grid.setValue(DEFAULT_GRID_SIZE)
        auto_form.addRow("Grid size:", self._spin_grid)

        self._slider_min_size = QSlider(Qt.Orientation.Horizontal)
        self._slider_min_size.setRange(10, 5000)
        self._slider_min_size.setValue(DEFAULT_MIN_SIZE)
        self._lbl_min_size = QLabel(str(DEFAULT_MIN_SIZE))
        self._slider_min_size.valueChanged.connect(
            lambda v: self._lbl_min_size.setText(str(v))
        )
        min_row = QHBoxLayout()
        min_row.addWidget(self._slider_min_size)
        min_row.addWidget(self._lbl_min_size)
        auto_form.addRow("Min size:", min_row)

        self._lbl_hint = QLabel()
        self._lbl_hint.setWordWrap(True)
        auto_form.addRow(self._lbl_hint)

        self._btn_run = QPushButton("Find Regions")
        self._btn_run.setStyleSheet("QPushButton { background-color: #CCE5FF; }")
        self._btn_run.clicked.connect(self.run_segment_clicked.emit)
        auto_form.addRow(self._btn_run)

        layout.addWidget(auto_group)

        # ── Assignment & output ──────────────────────────────────────────
        out_group = QGroupBox()
        out_group.setFlat(True)
        out_layout = QVBoxLayout(out_group)
        out_layout.setContentsMargins(0, 4, 0, 4)

        self._btn_quick_fill = QPushButton("Quick Fill")
        self._btn_quick_fill.clicked.connect(self.quick_fill_clicked.emit)
        out_layout.addWidget(self._btn_quick_fill)

        self._btn_clear_all = QPushButton("Clear All Selections")
        self._btn_clear_all.setStyleSheet("QPushButton { background-color: #FFCCCC; }")
        self._btn_clear_all.clicked.connect(self.clear_all_clicked.emit)
        out_layout.addWidget(self._btn_clear_all)

        self._btn_save = QPushButton("Save Page…")
        self._btn_save.setStyleSheet(
            "QPushButton { background-color: #0078D4; color: white; padding: 8px; font-weight: bold; }"
        )
        self._btn_save.clicked.connect(self.save_page_clicked.emit)
        out_layout.addWidget(self._btn_save)

        layout.addWidget(out_group)
        layout.addStretch(1)

        self.setMinimumWidth(220)
        self.setMaximumWidth(300)

    # ── public API ───────────────────────────────────────────────────────

    def add_image_entry(self, name: str) -> None:
        self._combo_images.addItem(name)

    def select_image(self, index: int) -> None:
        self._combo_images.setCurrentIndex(index)

    @property
    def mode(self) -> Mode:
        return Mode(self._combo_mode.currentData())

    @property
    def bg_type(self) -> BackgroundType:
        return BackgroundType(self._combo_bg.currentData())

    @property
    def custom_color(self) -> RGB:
        return parse_hex_color(self._custom_color.name())

    def segment_options(self) -> SegmentOptions:
        """Snapshot of the auto-segment controls."""
        return SegmentOptions(
            bg_type=self.bg_type,
            threshold=self._slider_threshold.value(),
            min_size=self._slider_min_size.value(),
            custom_color=self.custom_color if self.bg_type is BackgroundType.CUSTOM else None,
            grid_size=self._spin_grid.value(),
        )

    def set_selection_state(self, has_image: bool, drawing: bool, can_finish: bool) -> None:
        self._btn_new.setEnabled(has_image and not drawing)
        self._btn_finish.setEnabled(can_finish)
        self._btn_cancel.setEnabled(drawing)
        self._btn_run.setEnabled(has_image and not drawing)

    # ── slots ────────────────────────────────────────────────────────────

    def _on_image_index_changed(self, index: int) -> None:
        if index >= 0:
            self.image_selected.emit(index)

    def _on_bg_type_changed(self, *_args) -> None:
        bg = self.bg_type
        self._btn_color.setEnabled(bg is BackgroundType.CUSTOM)
        self._spin_grid.setEnabled(bg is BackgroundType.GRID)
        self._slider_threshold.setEnabled(bg is not BackgroundType.GRID)
        self._slider_min_size.setEnabled(bg is not BackgroundType.GRID)
        if bg is not BackgroundType.GRID:
            self._slider_threshold.setValue(DEFAULT_THRESHOLDS[bg])
            self._lbl_threshold.setText(str(DEFAULT_THRESHOLDS[bg]))
        self._lbl_hint.setText(BACKGROUND_HINTS[bg])

    def _on_pick_color(self) -> None:
        color = QColorDialog.getColor(self._custom_color, self, "Background Color")
        if color.isValid():
            self._custom_color = color
            self._update_color_button()

    def _update_color_button(self) -> None:
        self._btn_color.setText(self._custom_color.name())
        self._btn_color.setStyleSheet(
            f"QPushButton {{ background-color: {self._custom_color.name()}; }}"
        )
