"""Main application window – assembles all panels and coordinates behaviour."""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Tuple

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QImage, QKeySequence, QShortcut
from PyQt6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QMainWindow,
    QMessageBox,
    QSplitter,
    QStatusBar,
    QVBoxLayout,
    QWidget,
)

from fortuneteller.canvas import SourceCanvas
from fortuneteller.errors import FortuneTellerError
from fortuneteller.export import DEFAULT_FILENAME, save_page
from fortuneteller.imaging import IMAGE_EXTENSIONS, fit_to_display, load_image
from fortuneteller.models import Selection, SourceImage
from fortuneteller.selections_panel import SelectionsPanel
from fortuneteller.selector import PolygonSelector
from fortuneteller.session import Session
from fortuneteller.settings_panel import SettingsPanel
from fortuneteller.template import FortuneTellerTemplate
from fortuneteller.template_view import TemplateView

logger = logging.getLogger(__name__)

IDLE_HINT = 'Click "New" to start drawing a polygon region.'
DRAWING_HINT = "Click to add points. Right-click to undo. Double-click or click near start to finish."


class MainWindow(QMainWindow):
    """Top-level window for the Fortune Teller Maker."""

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Fortune Teller Maker")
        self.resize(1500, 820)

        self._template = FortuneTellerTemplate()
        self._session = Session(self._template)
        self._selector = PolygonSelector()

        # Currently displayed image and its display-to-source scale
        self._current: Optional[SourceImage] = None
        self._scale: Tuple[float, float] = (1.0, 1.0)

        self._build_ui()
        self._connect_signals()
        self._setup_shortcuts()

        self._template.render()
        self._update_button_states()

    # ── UI construction ──────────────────────────────────────────────────

    def _build_ui(self) -> None:
        self._splitter = QSplitter(Qt.Orientation.Horizontal)

        self._selections = SelectionsPanel(self._session)
        self._canvas = SourceCanvas(self._selector)
        self._template_view = TemplateView(self._template)
        self._settings = SettingsPanel()

        center = QWidget()
        center_layout = QHBoxLayout(center)
        left_col = QVBoxLayout()
        left_col.addWidget(self._canvas, alignment=Qt.AlignmentFlag.AlignTop)
        left_col.addStretch(1)
        center_layout.addLayout(left_col)
        center_layout.addWidget(self._template_view, alignment=Qt.AlignmentFlag.AlignTop)

        self._splitter.addWidget(self._selections)
        self._splitter.addWidget(center)
        self._splitter.addWidget(self._settings)
        self._splitter.setStretchFactor(0, 0)
        self._splitter.setStretchFactor(1, 1)
        self._splitter.setStretchFactor(2, 0)

        self.setCentralWidget(self._splitter)

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Ready – add images to begin.")

    # ── signal wiring ────────────────────────────────────────────────────

    def _connect_signals(self) -> None:
        # Settings → session / selector / template
        self._settings.open_images_clicked.connect(self._on_open_images)
        self._settings.image_selected.connect(self._on_image_selected)
        self._settings.mode_changed.connect(self._on_mode_changed)
        self._settings.new_selection_clicked.connect(self._on_new_selection)
        self._settings.finish_selection_clicked.connect(self._on_finish_selection)
        self._settings.cancel_selection_clicked.connect(self._selector.cancel)
        self._settings.run_segment_clicked.connect(self._on_run_segment)
        self._settings.quick_fill_clicked.connect(self._on_quick_fill)
        self._settings.clear_all_clicked.connect(self._on_clear_all)
        self._settings.save_page_clicked.connect(self._on_save_page)

        # Selector terminal transitions
        self._selector.selection_completed.connect(self._on_selection_complete)
        self._selector.selection_cancelled.connect(self._on_selection_cancelled)
        self._selector.changed.connect(self._update_button_states)

        # Template clicks → assignments
        self._template_view.section_clicked.connect(self._on_section_clicked)
        self._template_view.section_cleared.connect(self._on_section_cleared)

        # Selection list
        self._selections.selection_chosen.connect(self._on_selection_chosen)
        self._selections.delete_requested.connect(self._on_delete_selection)

    def _setup_shortcuts(self) -> None:
        save_shortcut = QShortcut(QKeySequence.StandardKey.Save, self)
        save_shortcut.activated.connect(self._on_save_page)

    def _update_button_states(self) -> None:
        self._settings.set_selection_state(
            has_image=self._current is not None,
            drawing=self._selector.is_drawing,
            can_finish=self._selector.can_finish,
        )

    # ── images ───────────────────────────────────────────────────────────

    def _on_open_images(self) -> None:
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        files, _ = QFileDialog.getOpenFileNames(
            self, "Add Images", "", f"Image Files ({patterns});;All Files (*)"
        )
        if not files:
            return

        added: List[SourceImage] = []
        for path in files:
            try:
                image = load_image(path)
            except FileNotFoundError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                continue
            source = self._session.add_image(os.path.basename(path), image, path)
            self._settings.add_image_entry(source.name)
            added.append(source)

        if not added:
            QMessageBox.warning(self, "No Images", "None of the selected files could be read.")
            return
        if self._current is None:
            self._settings.select_image(len(self._session.images) - len(added))
        count = len(self._session.images)
        self._status.showMessage(f"{count} image{'s' if count != 1 else ''} loaded.")

    def _on_image_selected(self, index: int) -> None:
        if not 0 <= index < len(self._session.images):
            return
        source = self._session.images[index]
        display, sx, sy = fit_to_display(source.image)
        self._current = source
        self._scale = (sx, sy)
        self._canvas.set_image(display)
        self._update_button_states()
        self._status.showMessage(
            f"{source.name}: {source.image.width()}x{source.image.height()}"
        )

    # ── polygon selection ────────────────────────────────────────────────

    def _on_new_selection(self) -> None:
        if self._current is None:
            return
        self._selector.start()
        self._canvas.setFocus()
        self._status.showMessage(DRAWING_HINT)

    def _on_finish_selection(self) -> None:
        try:
            self._selector.finish()
        except FortuneTellerError as exc:
            QMessageBox.warning(self, "Selection", str(exc))

    def _on_selection_complete(self, selection: Selection) -> None:
        if self._current is None:
            return
        sx, sy = self._scale
        record = self._session.complete_selection(self._current.id, selection, sx, sy)
        self._selections.refresh()
        self._update_button_states()
        self._status.showMessage(
            f"{record.name} saved! Click a template section to assign it, or draw another."
        )

    def _on_selection_cancelled(self) -> None:
        self._update_button_states()
        self._status.showMessage(IDLE_HINT)

    # ── auto-segmentation ────────────────────────────────────────────────

    def _on_run_segment(self) -> None:
        if self._current is None:
            QMessageBox.warning(self, "No Image", "Please add an image first.")
            return
        options = self._settings.segment_options()
        self.setCursor(Qt.CursorShape.WaitCursor)
        try:
            records = self._session.auto_segment(self._current.id, options)
        except FortuneTellerError as exc:
            QMessageBox.information(self, "Auto-Segment", str(exc))
            return
        finally:
            self.unsetCursor()
        self._selections.refresh()
        self._status.showMessage(
            f"Found {len(records)} regions! Click a template section to assign them."
        )

    # ── assignments ──────────────────────────────────────────────────────

    def _on_mode_changed(self, _mode: str) -> None:
        self._template.set_mode(self._settings.mode)
        groups = self._template.grouped_available_sections()
        if groups:
            summary = ", ".join(f"{title}: {len(members)}" for title, members in groups)
            self._status.showMessage(f"Assignable sections – {summary}")
        else:
            self._status.showMessage("No sections available in this mode.")

    def _on_section_clicked(self, section_id: str) -> None:
        selection_id = self._selections.current_selection_id()
        if selection_id is None:
            self._status.showMessage("Pick a selection in the list first.")
            return
        if self._session.assign(section_id, selection_id):
            record = self._session.find_selection(selection_id)
            self._status.showMessage(f"Assigned {record.name} to {section_id}.")

    def _on_section_cleared(self, section_id: str) -> None:
        self._template.clear_assignment(section_id)
        self._status.showMessage(f"Cleared {section_id}.")

    def _on_quick_fill(self) -> None:
        assigned = self._session.quick_fill()
        if assigned:
            self._status.showMessage(f"Quick filled {assigned} sections!")
        else:
            self._status.showMessage("No selections available to assign.")

    def _on_selection_chosen(self, selection_id: str) -> None:
        record = self._session.find_selection(selection_id)
        if record is not None:
            self._status.showMessage(f"{record.name} picked. Click a template section to place it.")

    def _on_delete_selection(self, selection_id: str) -> None:
        self._session.delete_selection(selection_id)
        self._selections.refresh()

    def _on_clear_all(self) -> None:
        reply = QMessageBox.question(
            self,
            "Clear All",
            "Clear all selections and assignments?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if reply != QMessageBox.StandardButton.Yes:
            return
        self._session.clear_all()
        self._selections.refresh()
        self._status.showMessage("All selections cleared.")

    # ── export ───────────────────────────────────────────────────────────

    def _on_save_page(self) -> None:
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Page", DEFAULT_FILENAME,
            "PNG (*.png);;JPEG (*.jpg);;TIFF (*.tif)",
        )
        if not path:
            return
        page: QImage = self._template.render_for_print()
        try:
            saved = save_page(page, path)
        except (ValueError, OSError) as exc:
            QMessageBox.critical(self, "Save Error", f"Failed to save: {exc}")
            return
        self._status.showMessage(f"Saved {saved}")
