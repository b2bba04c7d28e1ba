"""Side panel listing extracted selections (thumbnails) for assignment."""

from __future__ import annotations

from typing import List, Optional

from PyQt6.QtCore import QSize, Qt, pyqtSignal
from PyQt6.QtGui import QIcon, QKeyEvent, QPixmap
from PyQt6.QtWidgets import QLabel, QListWidget, QListWidgetItem, QVBoxLayout, QWidget

from fortuneteller.models import SelectionRecord
from fortuneteller.session import Session

THUMB_SIZE = 70
ID_ROLE = Qt.ItemDataRole.UserRole


class SelectionsPanel(QWidget):
    """Vertical list of selection thumbnails."""

    # Emitted when the user picks a selection.  Carries the selection id.
    selection_chosen = pyqtSignal(str)
    # Emitted when the user presses Delete on a selection.  Carries the selection id.
    delete_requested = pyqtSignal(str)

    def __init__(self, session: Session, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._session = session
        self._build_ui()

    # ── UI construction ──────────────────────────────────────────────────

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        self._label = QLabel("No selections yet")
        self._label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._label)

        self._list = QListWidget()
        self._list.setIconSize(QSize(THUMB_SIZE, THUMB_SIZE))
        self._list.setSpacing(4)
        self._list.setViewMode(QListWidget.ViewMode.IconMode)
        self._list.setResizeMode(QListWidget.ResizeMode.Adjust)
        self._list.setMovement(QListWidget.Movement.Static)
        self._list.currentItemChanged.connect(self._on_current_changed)
        layout.addWidget(self._list, stretch=1)

        self.setMinimumWidth(170)
        self.setMaximumWidth(260)

    # ── public API ───────────────────────────────────────────────────────

    def refresh(self) -> None:
        """Rebuild the list from the session, keeping the current pick if it survives."""
        keep = self.current_selection_id()
        self._list.blockSignals(True)
        self._list.clear()
        records: List[SelectionRecord] = self._session.selections
        for record in records:
            thumb = self._session.thumbnail(record, THUMB_SIZE)
            item = QListWidgetItem(QIcon(QPixmap.fromImage(thumb)), record.name)
            item.setData(ID_ROLE, record.id)
            item.setToolTip(f"{record.name} ({record.source_name})")
            item.setSizeHint(QSize(THUMB_SIZE + 16, THUMB_SIZE + 28))
            self._list.addItem(item)
            if record.id == keep:
                self._list.setCurrentItem(item)
        self._list.blockSignals(False)

        count = len(records)
        self._label.setText(
            f"{count} selection{'s' if count != 1 else ''}" if count else "No selections yet"
        )

    def current_selection_id(self) -> Optional[str]:
        item = self._list.currentItem()
        return item.data(ID_ROLE) if item is not None else None

    # ── slots ────────────────────────────────────────────────────────────

    def _on_current_changed(self, current: QListWidgetItem | None, _previous) -> None:
        if current is not None:
            self.selection_chosen.emit(current.data(ID_ROLE))

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802
        if event.key() in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            selection_id = self.current_selection_id()
            if selection_id is not None:
                self.delete_requested.emit(selection_id)
        else:
            super().keyPressEvent(event)
