"""Viewport fitting and canvas/image coordinate mapping."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from .models import Rect
from .timers import CoalescingTimer

logger = logging.getLogger(__name__)

MIN_CONTAINER_WIDTH = 400
MIN_CONTAINER_HEIGHT = 300
RESIZE_DEBOUNCE_MS = 200
RESIZE_THRESHOLD = 5


@dataclass
class Viewport:
    """Current fit of the image inside its container."""

    scale: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def is_valid(self) -> bool:
        return self.scale > 0


def fit(
    container_w: float,
    container_h: float,
    image_w: float,
    image_h: float,
    min_width: float = MIN_CONTAINER_WIDTH,
    min_height: float = MIN_CONTAINER_HEIGHT,
) -> Viewport:
    """
    Fit an image inside a container, centered with aspect ratio preserved.

    Args:
        container_w: Container width in canvas units
        container_h: Container height in canvas units
        image_w: Natural image width in pixels
        image_h: Natural image height in pixels
        min_width: Floor applied to the container width
        min_height: Floor applied to the container height

    Returns:
        Viewport with scale 0 when the image dimensions are degenerate
    """
    width = max(min_width, container_w)
    height = max(min_height, container_h)

    if image_w <= 0 or image_h <= 0:
        return Viewport(scale=0.0, width=width, height=height)

    scale = min(width / image_w, height / image_h)
    return Viewport(
        scale=scale,
        offset_x=(width - image_w * scale) / 2,
        offset_y=(height - image_h * scale) / 2,
        width=width,
        height=height,
    )


class CoordinateMapper:
    """
    Bidirectional transform between canvas space and image space.

    Reads the viewport through a provider on every call so it always uses
    the latest fit.
    """

    def __init__(self, viewport_provider: Callable[[], Viewport]) -> None:
        self._viewport = viewport_provider

    def canvas_to_image(self, cx: float, cy: float) -> Tuple[float, float]:
        vp = self._viewport()
        return ((cx - vp.offset_x) / vp.scale, (cy - vp.offset_y) / vp.scale)

    def image_to_canvas(self, ix: float, iy: float) -> Tuple[float, float]:
        vp = self._viewport()
        return (vp.offset_x + ix * vp.scale, vp.offset_y + iy * vp.scale)

    def canvas_delta_to_image(self, dx: float, dy: float) -> Tuple[float, float]:
        scale = self._viewport().scale
        return (dx / scale, dy / scale)

    def rect_to_canvas(self, rect: Rect) -> Rect:
        scale = self._viewport().scale
        x, y = self.image_to_canvas(rect.x, rect.y)
        return Rect(x, y, rect.width * scale, rect.height * scale)

    def rect_to_image(self, rect: Rect) -> Rect:
        scale = self._viewport().scale
        x, y = self.canvas_to_image(rect.x, rect.y)
        return Rect(x, y, rect.width / scale, rect.height / scale)


class ViewportManager(QObject):
    """
    Owns the image-to-container fit and recomputes it on resize.

    Resize notifications are debounced and filtered by a size threshold so
    that resizing the render surface does not feed back into more resizes.
    """

    layout_changed = pyqtSignal()

    def __init__(
        self,
        timer: Optional[CoalescingTimer] = None,
        debounce_ms: int = RESIZE_DEBOUNCE_MS,
        threshold: float = RESIZE_THRESHOLD,
        min_width: float = MIN_CONTAINER_WIDTH,
        min_height: float = MIN_CONTAINER_HEIGHT,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.debounce_ms = debounce_ms
        self.threshold = threshold
        self.min_width = min_width
        self.min_height = min_height

        self._timer = timer or CoalescingTimer(self)
        self._viewport = Viewport()
        self._image_size: Tuple[float, float] = (0.0, 0.0)
        self._applied_size: Optional[Tuple[float, float]] = None
        self._pending_size: Optional[Tuple[float, float]] = None
        self.mapper = CoordinateMapper(lambda: self._viewport)

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def image_size(self) -> Tuple[float, float]:
        return self._image_size

    def image_bounds(self) -> Rect:
        """Canvas-space rectangle covered by the image."""
        w, h = self._image_size
        return self.mapper.rect_to_canvas(Rect(0, 0, w, h))

    def set_image(self, image_w: float, image_h: float, container_w: float, container_h: float) -> None:
        """
        Apply the initial fit for a newly loaded image.

        Bypasses the debounce and threshold, then emits ``layout_changed``.
        """
        self._timer.cancel_pending()
        self._pending_size = None
        self._image_size = (image_w, image_h)
        self._apply(container_w, container_h)

    def reset(self) -> None:
        """Forget the current image and fit."""
        self._timer.cancel_pending()
        self._pending_size = None
        self._image_size = (0.0, 0.0)
        self._applied_size = None
        self._viewport = Viewport()

    def notify_resize(self, container_w: float, container_h: float) -> None:
        """Record a container resize; the recompute is debounced."""
        self._pending_size = (container_w, container_h)
        self._timer.schedule(self.debounce_ms, self._on_resize_settled)

    def _on_resize_settled(self) -> None:
        if self._pending_size is None:
            return
        width, height = self._pending_size
        self._pending_size = None

        if self._applied_size is not None:
            last_w, last_h = self._applied_size
            floored_w = max(self.min_width, width)
            floored_h = max(self.min_height, height)
            if abs(floored_w - last_w) <= self.threshold and abs(floored_h - last_h) <= self.threshold:
                logger.debug(f"Ignoring resize to {width}x{height}, below threshold")
                return

        self._apply(width, height)

    def _apply(self, container_w: float, container_h: float) -> None:
        image_w, image_h = self._image_size
        self._viewport = fit(
            container_w, container_h, image_w, image_h,
            min_width=self.min_width, min_height=self.min_height,
        )
        self._applied_size = (self._viewport.width, self._viewport.height)

        if not self._viewport.is_valid:
            logger.warning(f"Degenerate image size {image_w}x{image_h}, rendering suspended")
        else:
            logger.debug(
                f"Viewport fit: scale={self._viewport.scale:.4f} "
                f"offset=({self._viewport.offset_x:.1f}, {self._viewport.offset_y:.1f})"
            )
        self.layout_changed.emit()
