"""Side panel listing the annotations of the current image."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QAbstractItemView, QLabel, QListWidget, QListWidgetItem,
    QPushButton, QVBoxLayout, QWidget
)

from ..core.editor import AnnotationEditor
from ..core.models import to_qcolor

logger = logging.getLogger(__name__)


def format_entry(index: int, label: str, x: float, y: float, width: float, height: float) -> str:
    """Text of one list row, e.g. ``"1. car (200, 200) - 400×400"``."""
    return f"{index + 1}. {label} ({round(x)}, {round(y)}) - {round(width)}×{round(height)}"


class AnnotationListPanel(QWidget):
    """
    List of annotations with a count header and a delete button.

    Selection is synced both ways with the editor: choosing a row selects
    the annotation on the canvas and vice versa.
    """

    def __init__(self, editor: AnnotationEditor, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.editor = editor

        layout = QVBoxLayout(self)

        self.count_label = QLabel()
        layout.addWidget(self.count_label)

        self.list_widget = QListWidget()
        self.list_widget.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.list_widget.itemSelectionChanged.connect(self._select_from_list)
        layout.addWidget(self.list_widget)

        self.delete_button = QPushButton("Delete selected annotation")
        self.delete_button.clicked.connect(self._delete_selected)
        layout.addWidget(self.delete_button)

        hint = QLabel("Drag to create boxes • Double-click to delete")
        hint.setWordWrap(True)
        hint.setStyleSheet("QLabel { color: gray; }")
        layout.addWidget(hint)

        self.editor.annotations_changed.connect(self.refresh)
        self.editor.selection_changed.connect(self._on_editor_selection_changed)
        self.refresh()

    def refresh(self) -> None:
        """Sync the list with the editor's annotations."""
        records = self.editor.get_annotations()
        count = len(records)
        self.count_label.setText(f"{count} annotation{'' if count == 1 else 's'}")

        self.list_widget.blockSignals(True)
        try:
            if count == self.list_widget.count():
                # Same rows (e.g. during a drag): only rewrite what changed
                for i, record in enumerate(records):
                    self._update_item(self.list_widget.item(i), i, record)
            else:
                self.list_widget.clear()
                for i, record in enumerate(records):
                    item = QListWidgetItem()
                    item.setData(Qt.ItemDataRole.UserRole, i)
                    self._update_item(item, i, record)
                    self.list_widget.addItem(item)
            self._show_selection(self.editor.selected_index)
        finally:
            self.list_widget.blockSignals(False)

        self.delete_button.setEnabled(count > 0)

    def _update_item(self, item: QListWidgetItem, index: int, record: Dict[str, Any]) -> None:
        text = format_entry(
            index, record["label"], record["x"], record["y"], record["width"], record["height"]
        )
        if item.text() != text:
            item.setText(text)
        color = to_qcolor(record["color"]).darker(150)
        if item.foreground().color() != color:
            item.setForeground(color)

    def _show_selection(self, index: Optional[int]) -> None:
        if index is None or not 0 <= index < self.list_widget.count():
            self.list_widget.clearSelection()
        else:
            self.list_widget.setCurrentRow(index)

    def _on_editor_selection_changed(self, index: int) -> None:
        """Mirror canvas selection in the list without feeding it back."""
        self.list_widget.blockSignals(True)
        try:
            self._show_selection(None if index < 0 else index)
        finally:
            self.list_widget.blockSignals(False)

    def _select_from_list(self) -> None:
        selected = self.list_widget.selectedItems()
        index = selected[0].data(Qt.ItemDataRole.UserRole) if selected else None
        self.editor.select(index)

    def _delete_selected(self) -> None:
        selected = self.list_widget.selectedItems()
        if selected:
            index = selected[0].data(Qt.ItemDataRole.UserRole)
            logger.info(f"Deleting annotation {index} from list")
            self.editor.delete_annotation(index)
