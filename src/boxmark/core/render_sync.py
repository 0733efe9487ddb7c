"""Derivation of draw commands and debounced redraw scheduling."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from PyQt6.QtCore import QObject

from .hit_testing import HANDLE_SIZE, handle_rects
from .models import DEFAULT_LABEL, Annotation, Rect, palette_color
from .timers import CoalescingTimer
from .viewport import CoordinateMapper, Viewport

logger = logging.getLogger(__name__)

RENDER_DEBOUNCE_MS = 100
LABEL_OFFSET = 18.0
SELECTED_STROKE = 3
DEFAULT_STROKE = 2
PREVIEW_COLOR = 0xFF0000
HANDLE_FILL = 0xFFFFFF
HANDLE_OUTLINE = 0x000000


@dataclass(frozen=True)
class RectCommand:
    """Stroke (and optionally fill) a canvas-space rectangle."""

    rect: Rect
    color: int
    width: int
    fill: Optional[int] = None


@dataclass(frozen=True)
class TextCommand:
    """Draw text with its top-left corner at a canvas position."""

    text: str
    x: float
    y: float
    color: int


DrawCommand = Union[RectCommand, TextCommand]


class DrawingSurface(ABC):
    """Drawing capability RenderSync renders onto."""

    @abstractmethod
    def clear(self) -> None:
        """Discard everything drawn since the last present."""

    @abstractmethod
    def draw_rect(self, rect: Rect, color: int, width: int, fill: Optional[int] = None) -> None:
        """Draw a rectangle outline, optionally filled."""

    @abstractmethod
    def draw_text(self, text: str, x: float, y: float, color: int) -> None:
        """Draw a text label."""

    @abstractmethod
    def present(self) -> None:
        """Make the drawn frame visible."""


def build_draw_commands(
    annotations: Sequence[Annotation],
    viewport: Viewport,
    selected_index: Optional[int] = None,
    preview: Optional[Rect] = None,
    handle_size: float = HANDLE_SIZE,
) -> List[DrawCommand]:
    """
    Derive the draw commands for the current editor state.

    Annotations whose canvas geometry is not finite or not positive are
    skipped. Nothing is drawn while the viewport has no valid scale.

    Args:
        annotations: Annotations in store order (also the z-order)
        viewport: Current viewport fit
        selected_index: Selected annotation index, if any
        preview: Live draw preview in canvas space, if any
        handle_size: Edge length of the resize handles

    Returns:
        Ordered list of draw commands
    """
    if not viewport.is_valid:
        return []

    mapper = CoordinateMapper(lambda: viewport)
    commands: List[DrawCommand] = []

    for index, annotation in enumerate(annotations):
        canvas_rect = mapper.rect_to_canvas(annotation.rect)
        if not canvas_rect.is_finite() or canvas_rect.width <= 0 or canvas_rect.height <= 0:
            logger.debug(f"Skipping annotation {index}: unusable geometry {annotation.rect}")
            continue

        color = annotation.color if annotation.color is not None else palette_color(index)
        is_selected = index == selected_index

        commands.append(RectCommand(
            canvas_rect, color, SELECTED_STROKE if is_selected else DEFAULT_STROKE
        ))
        commands.append(TextCommand(
            annotation.label or DEFAULT_LABEL,
            canvas_rect.x,
            max(0.0, canvas_rect.y - LABEL_OFFSET),
            color,
        ))
        if is_selected:
            for handle in handle_rects(canvas_rect, handle_size):
                commands.append(RectCommand(handle, HANDLE_OUTLINE, DEFAULT_STROKE, fill=HANDLE_FILL))

    if preview is not None:
        commands.append(RectCommand(preview, PREVIEW_COLOR, DEFAULT_STROKE))

    return commands


class RenderSync(QObject):
    """
    Keeps a drawing surface in sync with the editor state.

    Changes to annotations, viewport or selection schedule a debounced
    redraw so a just-applied viewport fit settles before positions are read.
    The live draw preview is rendered immediately.
    """

    def __init__(
        self,
        surface: Optional[DrawingSurface] = None,
        timer: Optional[CoalescingTimer] = None,
        debounce_ms: int = RENDER_DEBOUNCE_MS,
        handle_size: float = HANDLE_SIZE,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.surface = surface
        self.debounce_ms = debounce_ms
        self.handle_size = handle_size
        self._timer = timer or CoalescingTimer(self)

        self._annotations: Sequence[Annotation] = ()
        self._viewport = Viewport()
        self._selected: Optional[int] = None
        self._preview: Optional[Rect] = None
        self.last_commands: List[DrawCommand] = []

    def set_surface(self, surface: Optional[DrawingSurface]) -> None:
        self.surface = surface
        self.schedule()

    def update_state(
        self,
        annotations: Sequence[Annotation],
        viewport: Viewport,
        selected_index: Optional[int],
    ) -> None:
        """Record new editor state and schedule a redraw."""
        self._annotations = annotations
        self._viewport = viewport
        self._selected = selected_index
        self.schedule()

    def set_preview(self, preview: Optional[Rect]) -> None:
        """Update the live draw preview and redraw right away."""
        self._preview = preview
        self.render_now()

    def schedule(self) -> None:
        self._timer.schedule(self.debounce_ms, self.render_now)

    def cancel(self) -> None:
        self._timer.cancel_pending()

    def render_now(self) -> List[DrawCommand]:
        """Rebuild the draw commands and replay them onto the surface."""
        if not self._viewport.is_valid:
            logger.debug("Render skipped: no valid viewport")
            self.last_commands = []
            return self.last_commands

        self.last_commands = build_draw_commands(
            self._annotations, self._viewport, self._selected, self._preview, self.handle_size
        )
        if self.surface is not None:
            self.surface.clear()
            for command in self.last_commands:
                if isinstance(command, RectCommand):
                    self.surface.draw_rect(command.rect, command.color, command.width, command.fill)
                else:
                    self.surface.draw_text(command.text, command.x, command.y, command.color)
            self.surface.present()
        return self.last_commands
