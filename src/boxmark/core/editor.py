"""Host-facing facade wiring the annotation editing engine together."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from .config import AppConfig
from .hit_testing import HitTester
from .interaction import InputEvent, InteractionController
from .models import Annotation
from .render_sync import DrawingSurface, RenderSync
from .store import AnnotationStore
from .timers import CoalescingTimer
from .viewport import ViewportManager

logger = logging.getLogger(__name__)


class AnnotationEditor(QObject):
    """
    Annotation editor for a single image at a time.

    Owns the viewport, the annotation store, the interaction controller and
    the render pipeline, and exposes the operations a host needs: loading an
    image, replacing and snapshotting the annotation list, and feeding input.
    """

    annotations_changed = pyqtSignal()
    selection_changed = pyqtSignal(int)
    label_requested = pyqtSignal(object)
    layout_changed = pyqtSignal()

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        surface: Optional[DrawingSurface] = None,
        resize_timer: Optional[CoalescingTimer] = None,
        render_timer: Optional[CoalescingTimer] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.config = config or AppConfig()

        self.viewport_manager = ViewportManager(
            timer=resize_timer,
            debounce_ms=self.config.resize_debounce_ms,
            threshold=self.config.resize_threshold,
            min_width=self.config.min_container_width,
            min_height=self.config.min_container_height,
            parent=self,
        )
        self.store = AnnotationStore(self)
        self.controller = InteractionController(
            self.store,
            self.viewport_manager,
            hit_tester=HitTester(self.viewport_manager.mapper, self.config.handle_size),
            draw_threshold=self.config.draw_threshold,
            move_threshold=self.config.move_threshold,
            min_size=self.config.min_box_size,
            default_label=self.config.default_label,
            parent=self,
        )
        self.render_sync = RenderSync(
            surface,
            timer=render_timer,
            debounce_ms=self.config.render_debounce_ms,
            handle_size=self.config.handle_size,
            parent=self,
        )

        self.image_url: Optional[str] = None
        self._container_size: Tuple[float, float] = (
            float(self.config.min_container_width),
            float(self.config.min_container_height),
        )

        self.store.annotations_changed.connect(self._on_annotations_changed)
        self.store.selection_changed.connect(self._on_selection_changed)
        self.viewport_manager.layout_changed.connect(self._on_layout_changed)
        self.controller.preview_changed.connect(self.render_sync.set_preview)
        self.controller.label_requested.connect(self.label_requested)

    # === Host interface ===

    @property
    def has_image(self) -> bool:
        return self.image_url is not None

    @property
    def image_size(self) -> Tuple[float, float]:
        return self.viewport_manager.image_size

    @property
    def selected_index(self) -> Optional[int]:
        return self.store.selected_index

    def load_image(self, url: str, natural_width: float, natural_height: float) -> None:
        """
        Switch the editor to a new image.

        Interaction state, annotations and viewport are fully reset before
        the new image is fitted, so nothing carries over between images.

        Args:
            url: Image location, kept for the host
            natural_width: Image width in pixels
            natural_height: Image height in pixels
        """
        self.close_image()
        self.image_url = url
        width, height = self._container_size
        self.viewport_manager.set_image(natural_width, natural_height, width, height)
        logger.info(f"Loaded image {url} ({natural_width}x{natural_height})")

    def close_image(self) -> None:
        """Drop the current image and all state tied to it."""
        self.controller.reset()
        self.render_sync.cancel()
        self.store.clear()
        self.viewport_manager.reset()
        self.image_url = None

    def get_annotations(self) -> List[Dict[str, Any]]:
        """
        Snapshot of the annotation list in the persisted record shape.

        The returned records are detached copies with resolved colors; later
        edits do not affect them.
        """
        return self.store.snapshot()

    def set_annotations(self, records: Iterable[Dict[str, Any]]) -> None:
        """
        Replace the annotation list, e.g. after loading from persistence.

        Args:
            records: Records with x, y, width, height and optional label/color
        """
        self.controller.reset()
        annotations = [Annotation.from_record(record, i) for i, record in enumerate(records)]
        for i, annotation in enumerate(annotations):
            if not annotation.is_valid():
                logger.warning(f"Annotation {i} has malformed geometry {annotation.rect}; kept but not drawn")
        self.store.replace(annotations)

    def resize(self, width: float, height: float) -> None:
        """Report a new container size; the refit is debounced."""
        self._container_size = (width, height)
        if self.has_image:
            self.viewport_manager.notify_resize(width, height)

    def handle_event(self, event: InputEvent) -> None:
        self.controller.handle_event(event)

    def confirm_label(self, label: str) -> Optional[int]:
        return self.controller.confirm_label(label)

    def cancel_label(self) -> None:
        self.controller.cancel_label()

    def select(self, index: Optional[int]) -> None:
        self.store.select(index)

    def delete_annotation(self, index: int) -> None:
        """Remove an annotation by position (list panel removal)."""
        if not 0 <= index < len(self.store):
            logger.warning(f"Cannot delete annotation {index}: out of range")
            return
        self.controller.reset()
        self.store.remove(index)

    def set_surface(self, surface: Optional[DrawingSurface]) -> None:
        self.render_sync.set_surface(surface)

    # === Change propagation ===

    def _sync_render_state(self) -> None:
        self.render_sync.update_state(
            self.store.annotations,
            self.viewport_manager.viewport,
            self.store.selected_index,
        )

    def _on_annotations_changed(self) -> None:
        self._sync_render_state()
        self.annotations_changed.emit()

    def _on_selection_changed(self, index: int) -> None:
        self._sync_render_state()
        self.selection_changed.emit(index)

    def _on_layout_changed(self) -> None:
        self._sync_render_state()
        self.layout_changed.emit()
