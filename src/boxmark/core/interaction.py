"""Pointer/keyboard interaction state machine for box editing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from .hit_testing import HitKind, HitTester
from .models import DEFAULT_LABEL, MIN_BOX_SIZE, Annotation, Rect, palette_color
from .store import AnnotationStore
from .viewport import ViewportManager

logger = logging.getLogger(__name__)

DRAW_THRESHOLD = 10.0
MOVE_THRESHOLD = 3.0
DELETE_KEYS = ("Delete", "Backspace")

# Handle indices, clockwise from the top-left corner
TOP_LEFT, TOP, TOP_RIGHT, RIGHT, BOTTOM_RIGHT, BOTTOM, BOTTOM_LEFT, LEFT = range(8)

# Handles that move the left edge / top edge of the box
_LEFT_EDGE_HANDLES = (TOP_LEFT, BOTTOM_LEFT, LEFT)
_TOP_EDGE_HANDLES = (TOP_LEFT, TOP, TOP_RIGHT)


class Mode(str, Enum):
    """Interaction modes."""

    IDLE = "idle"
    DRAWING = "drawing"
    PENDING_SELECT = "pending_select"
    MOVING = "moving"
    RESIZING = "resizing"


class EventKind(str, Enum):
    """Kinds of input events the controller consumes."""

    POINTER_DOWN = "pointer_down"
    POINTER_MOVE = "pointer_move"
    POINTER_UP = "pointer_up"
    POINTER_LEAVE = "pointer_leave"
    DOUBLE_CLICK = "double_click"
    KEY_DOWN = "key_down"


@dataclass(frozen=True)
class InputEvent:
    """A pointer or keyboard event in canvas coordinates."""

    kind: EventKind
    x: float = 0.0
    y: float = 0.0
    key: str = ""

    @classmethod
    def down(cls, x: float, y: float) -> InputEvent:
        return cls(EventKind.POINTER_DOWN, x, y)

    @classmethod
    def move(cls, x: float, y: float) -> InputEvent:
        return cls(EventKind.POINTER_MOVE, x, y)

    @classmethod
    def up(cls, x: float, y: float) -> InputEvent:
        return cls(EventKind.POINTER_UP, x, y)

    @classmethod
    def leave(cls) -> InputEvent:
        return cls(EventKind.POINTER_LEAVE)

    @classmethod
    def double_click(cls, x: float, y: float) -> InputEvent:
        return cls(EventKind.DOUBLE_CLICK, x, y)

    @classmethod
    def key_down(cls, key: str) -> InputEvent:
        return cls(EventKind.KEY_DOWN, key=key)


@dataclass
class InteractionState:
    """Transient state of the gesture in progress."""

    mode: Mode = Mode.IDLE
    drag_start: Optional[Tuple[float, float]] = None
    handle_index: Optional[int] = None
    annotation_index: Optional[int] = None
    annotation_start: Optional[Rect] = None
    preview: Optional[Rect] = field(default=None)

    def reset(self) -> None:
        self.mode = Mode.IDLE
        self.drag_start = None
        self.handle_index = None
        self.annotation_index = None
        self.annotation_start = None
        self.preview = None


def resize_rect(start: Rect, handle: int, dx: float, dy: float, min_size: float = MIN_BOX_SIZE) -> Rect:
    """
    Compute the rectangle produced by dragging a resize handle.

    Args:
        start: Image-space rectangle at drag start
        handle: Handle index 0-7 (TL, T, TR, R, BR, B, BL, L)
        dx: Image-space pointer delta on x since drag start
        dy: Image-space pointer delta on y since drag start
        min_size: Minimum width and height

    Returns:
        The resized rectangle with minimum size and origin clamps applied
    """
    x, y, w, h = start.x, start.y, start.width, start.height

    if handle == TOP_LEFT:
        x, y, w, h = x + dx, y + dy, w - dx, h - dy
    elif handle == TOP:
        y, h = y + dy, h - dy
    elif handle == TOP_RIGHT:
        y, w, h = y + dy, w + dx, h - dy
    elif handle == RIGHT:
        w = w + dx
    elif handle == BOTTOM_RIGHT:
        w, h = w + dx, h + dy
    elif handle == BOTTOM:
        h = h + dy
    elif handle == BOTTOM_LEFT:
        x, w, h = x + dx, w - dx, h + dy
    elif handle == LEFT:
        x, w = x + dx, w - dx
    else:
        raise ValueError(f"Invalid handle index: {handle}")

    # Keep the opposite edge fixed when the dragged edge crosses it
    if w < min_size:
        w = min_size
        if handle in _LEFT_EDGE_HANDLES:
            x = start.x + start.width - min_size
    if h < min_size:
        h = min_size
        if handle in _TOP_EDGE_HANDLES:
            y = start.y + start.height - min_size

    return Rect(max(0.0, x), max(0.0, y), w, h)


class InteractionController(QObject):
    """
    State machine turning pointer and keyboard events into annotation edits.

    All input goes through ``handle_event``, which dispatches on the current
    mode and the event kind. A completed draw does not write to the store
    directly; it emits ``label_requested`` and waits for ``confirm_label`` or
    ``cancel_label``. Input is ignored while that proposal is pending.
    """

    label_requested = pyqtSignal(object)  # proposed Annotation
    preview_changed = pyqtSignal(object)  # canvas-space Rect or None
    mode_changed = pyqtSignal(str)

    def __init__(
        self,
        store: AnnotationStore,
        viewport_manager: ViewportManager,
        hit_tester: Optional[HitTester] = None,
        draw_threshold: float = DRAW_THRESHOLD,
        move_threshold: float = MOVE_THRESHOLD,
        min_size: float = MIN_BOX_SIZE,
        default_label: str = DEFAULT_LABEL,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.store = store
        self.viewport_manager = viewport_manager
        self.mapper = viewport_manager.mapper
        self.hit_tester = hit_tester or HitTester(self.mapper)
        self.draw_threshold = draw_threshold
        self.move_threshold = move_threshold
        self.min_size = min_size
        self.default_label = default_label

        self.state = InteractionState()
        self.pending: Optional[Annotation] = None

        self._handlers: Dict[Tuple[Mode, EventKind], Callable[[InputEvent], None]] = {
            (Mode.IDLE, EventKind.POINTER_DOWN): self._on_idle_down,
            (Mode.DRAWING, EventKind.POINTER_MOVE): self._on_drawing_move,
            (Mode.DRAWING, EventKind.POINTER_UP): self._on_drawing_up,
            (Mode.PENDING_SELECT, EventKind.POINTER_MOVE): self._on_pending_select_move,
            (Mode.MOVING, EventKind.POINTER_MOVE): self._on_moving_move,
            (Mode.RESIZING, EventKind.POINTER_MOVE): self._on_resizing_move,
        }
        # Rows that apply in every mode
        self._any_mode_handlers: Dict[EventKind, Callable[[InputEvent], None]] = {
            EventKind.POINTER_UP: self._on_release,
            EventKind.POINTER_LEAVE: self._on_leave,
            EventKind.DOUBLE_CLICK: self._on_double_click,
            EventKind.KEY_DOWN: self._on_key_down,
        }

    @property
    def mode(self) -> Mode:
        return self.state.mode

    def handle_event(self, event: InputEvent) -> None:
        """Dispatch a single input event."""
        if self.pending is not None:
            logger.debug(f"Ignoring {event.kind.value} while label entry is open")
            return

        handler = self._handlers.get((self.state.mode, event.kind))
        if handler is None:
            handler = self._any_mode_handlers.get(event.kind)
        if handler is not None:
            handler(event)

    def reset(self) -> None:
        """Abandon any gesture and pending proposal without committing."""
        had_preview = self.state.preview is not None
        self.pending = None
        self._set_idle()
        if had_preview:
            self.preview_changed.emit(None)

    # === Label entry ===

    def confirm_label(self, label: str) -> Optional[int]:
        """
        Commit the pending proposal with the given label.

        Returns:
            Index of the appended annotation, or None if nothing was pending
        """
        proposal, self.pending = self.pending, None
        if proposal is None:
            return None
        label = (label or "").strip() or self.default_label
        index = self.store.append(proposal.rect, label, proposal.color)
        logger.info(f"Created annotation {index} '{label}'")
        return index

    def cancel_label(self) -> None:
        """Discard the pending proposal."""
        if self.pending is not None:
            logger.debug("Label entry cancelled, proposal discarded")
        self.pending = None

    # === Transitions ===

    def _on_idle_down(self, event: InputEvent) -> None:
        hit = self.hit_tester.hit_test(
            event.x, event.y, self.store.annotations, self.store.selected_index
        )

        if hit is not None and hit.kind is HitKind.HANDLE:
            self._begin_drag(Mode.RESIZING, hit.annotation_index, event)
            self.state.handle_index = hit.handle_index
            return

        if hit is not None:
            self.store.select(hit.annotation_index)
            self._begin_drag(Mode.PENDING_SELECT, hit.annotation_index, event)
            return

        if self.viewport_manager.viewport.is_valid and \
                self.viewport_manager.image_bounds().contains(event.x, event.y):
            self.store.select(None)
            self.state.drag_start = (event.x, event.y)
            self._set_mode(Mode.DRAWING)
            return

        self.store.select(None)

    def _begin_drag(self, mode: Mode, index: int, event: InputEvent) -> None:
        self.state.annotation_index = index
        self.state.drag_start = (event.x, event.y)
        self.state.annotation_start = self.store[index].rect
        self._set_mode(mode)

    def _on_drawing_move(self, event: InputEvent) -> None:
        sx, sy = self.state.drag_start
        self.state.preview = Rect.from_points(sx, sy, event.x, event.y)
        self.preview_changed.emit(self.state.preview)

    def _on_drawing_up(self, event: InputEvent) -> None:
        sx, sy = self.state.drag_start
        dw = event.x - sx
        dh = event.y - sy
        had_preview = self.state.preview is not None
        self._set_idle()
        if had_preview:
            self.preview_changed.emit(None)

        if abs(dw) <= self.draw_threshold or abs(dh) <= self.draw_threshold:
            logger.debug(f"Draw of {abs(dw):.0f}x{abs(dh):.0f} below threshold, discarded")
            return
        if not self.viewport_manager.viewport.is_valid:
            return

        rect = self._clamp_new_rect(
            self.mapper.rect_to_image(Rect.from_points(sx, sy, event.x, event.y))
        )
        self.pending = Annotation(
            rect.x, rect.y, rect.width, rect.height,
            label=self.default_label,
            color=palette_color(len(self.store)),
        )
        self.label_requested.emit(self.pending)

    def _clamp_new_rect(self, rect: Rect) -> Rect:
        """Pull the origin into the image and enforce the minimum size."""
        x, y, w, h = rect.x, rect.y, rect.width, rect.height
        if x < 0:
            w += x
            x = 0.0
        if y < 0:
            h += y
            y = 0.0
        return Rect(x, y, max(w, self.min_size), max(h, self.min_size))

    def _on_pending_select_move(self, event: InputEvent) -> None:
        sx, sy = self.state.drag_start
        if abs(event.x - sx) > self.move_threshold or abs(event.y - sy) > self.move_threshold:
            self._set_mode(Mode.MOVING)
            self._on_moving_move(event)

    def _on_moving_move(self, event: InputEvent) -> None:
        if not self.viewport_manager.viewport.is_valid:
            return
        dx, dy = self._image_delta(event)
        start = self.state.annotation_start
        self.store.update(
            self.state.annotation_index,
            x=max(0.0, start.x + dx),
            y=max(0.0, start.y + dy),
        )

    def _on_resizing_move(self, event: InputEvent) -> None:
        if not self.viewport_manager.viewport.is_valid:
            return
        dx, dy = self._image_delta(event)
        rect = resize_rect(
            self.state.annotation_start, self.state.handle_index, dx, dy, self.min_size
        )
        self.store.update(
            self.state.annotation_index,
            x=rect.x, y=rect.y, width=rect.width, height=rect.height,
        )

    def _on_release(self, event: InputEvent) -> None:
        # Selection is retained after move/resize; Idle stays Idle
        self._set_idle()

    def _on_leave(self, event: InputEvent) -> None:
        mode = self.state.mode
        if mode in (Mode.MOVING, Mode.RESIZING):
            start = self.state.annotation_start
            logger.debug(f"Pointer left during {mode.value}, restoring annotation")
            self.store.update(
                self.state.annotation_index,
                x=start.x, y=start.y, width=start.width, height=start.height,
            )
        had_preview = self.state.preview is not None
        self._set_idle()
        if had_preview:
            self.preview_changed.emit(None)

    def _on_double_click(self, event: InputEvent) -> None:
        hit = self.hit_tester.hit_test(
            event.x, event.y, self.store.annotations, self.store.selected_index
        )
        if hit is None or hit.kind is not HitKind.BOX:
            return
        self._set_idle()
        self.store.remove(hit.annotation_index)
        self.store.select(None)
        logger.info(f"Deleted annotation {hit.annotation_index} (double-click)")

    def _on_key_down(self, event: InputEvent) -> None:
        if event.key not in DELETE_KEYS:
            return
        index = self.store.selected_index
        if index is None:
            return
        self._set_idle()
        self.store.remove(index)
        self.store.select(None)
        logger.info(f"Deleted annotation {index} ({event.key})")

    # === Helpers ===

    def _image_delta(self, event: InputEvent) -> Tuple[float, float]:
        sx, sy = self.state.drag_start
        return self.mapper.canvas_delta_to_image(event.x - sx, event.y - sy)

    def _set_mode(self, mode: Mode) -> None:
        if mode is not self.state.mode:
            self.state.mode = mode
            self.mode_changed.emit(mode.value)

    def _set_idle(self) -> None:
        changed = self.state.mode is not Mode.IDLE
        self.state.reset()
        if changed:
            self.mode_changed.emit(Mode.IDLE.value)
