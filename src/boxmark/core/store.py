"""Ordered annotation storage with positional selection."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from .models import DEFAULT_LABEL, Annotation, Rect, palette_color

logger = logging.getLogger(__name__)

NO_SELECTION = -1


class AnnotationStore(QObject):
    """
    Ordered collection of annotations for the current image.

    Position is the only identity: insertion order is both save order and
    z-order. The selected annotation is tracked by index and re-indexed on
    removal so it keeps pointing at the same logical annotation.
    """

    annotations_changed = pyqtSignal()
    selection_changed = pyqtSignal(int)  # index, or -1 when cleared

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._annotations: List[Annotation] = []
        self._selected: Optional[int] = None

    def __len__(self) -> int:
        return len(self._annotations)

    def __getitem__(self, index: int) -> Annotation:
        return self._annotations[index]

    def __iter__(self):
        return iter(self._annotations)

    @property
    def annotations(self) -> List[Annotation]:
        """Live list of annotations; treat as read-only."""
        return self._annotations

    @property
    def selected_index(self) -> Optional[int]:
        return self._selected

    @property
    def selected(self) -> Optional[Annotation]:
        if self._selected is None:
            return None
        return self._annotations[self._selected]

    def select(self, index: Optional[int]) -> None:
        """Select an annotation by index, or clear the selection with None."""
        if index is not None and not 0 <= index < len(self._annotations):
            logger.warning(f"Cannot select annotation {index}: out of range")
            return
        if index == self._selected:
            return
        self._selected = index
        self.selection_changed.emit(NO_SELECTION if index is None else index)

    def append(
        self,
        rect: Rect,
        label: str = DEFAULT_LABEL,
        color: Optional[int] = None,
    ) -> int:
        """
        Append a new annotation.

        Args:
            rect: Image-space rectangle
            label: Annotation label
            color: Packed RGB color, or None for the next palette slot

        Returns:
            Index of the new annotation
        """
        index = len(self._annotations)
        if color is None:
            color = palette_color(index)
        self._annotations.append(
            Annotation(rect.x, rect.y, rect.width, rect.height, label or DEFAULT_LABEL, color)
        )
        logger.debug(f"Appended annotation {index}: {label} {rect}")
        self.annotations_changed.emit()
        return index

    def update(self, index: int, **changes: Any) -> None:
        """
        Update fields of an annotation in place.

        Args:
            index: Annotation index
            **changes: Field values (x, y, width, height, label, color)
        """
        annotation = self._annotations[index]
        for key, value in changes.items():
            if not hasattr(annotation, key):
                raise AttributeError(f"Unknown annotation field: {key}")
            setattr(annotation, key, value)
        self.annotations_changed.emit()

    def remove(self, index: int) -> Annotation:
        """
        Remove an annotation; later entries shift down by one.

        Args:
            index: Annotation index

        Returns:
            The removed annotation
        """
        removed = self._annotations.pop(index)

        if self._selected is not None:
            if self._selected == index:
                self._selected = None
                self.selection_changed.emit(NO_SELECTION)
            elif index < self._selected:
                self._selected -= 1
                self.selection_changed.emit(self._selected)

        logger.debug(f"Removed annotation {index}: {removed.label}")
        self.annotations_changed.emit()
        return removed

    def replace(self, annotations: Iterable[Annotation]) -> None:
        """Replace all annotations and clear the selection."""
        self._annotations = [a.copy() for a in annotations]
        if self._selected is not None:
            self._selected = None
            self.selection_changed.emit(NO_SELECTION)
        self.annotations_changed.emit()

    def clear(self) -> None:
        """Remove all annotations."""
        self.replace([])

    def resolved_color(self, index: int) -> int:
        """Color of an annotation, falling back to its palette slot."""
        color = self._annotations[index].color
        return color if color is not None else palette_color(index)

    def snapshot(self) -> List[Dict[str, Any]]:
        """Detached copy of the annotation list in the persisted record shape."""
        return [a.to_record(i) for i, a in enumerate(self._annotations)]
