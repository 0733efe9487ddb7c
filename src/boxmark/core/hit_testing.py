"""Hit-testing of resize handles and annotation boxes in canvas space."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .models import Annotation, Rect
from .viewport import CoordinateMapper

logger = logging.getLogger(__name__)

HANDLE_SIZE = 8.0
HANDLE_COUNT = 8


class HitKind(str, Enum):
    """What a pointer landed on."""

    HANDLE = "handle"
    BOX = "box"


@dataclass(frozen=True)
class HitResult:
    """Topmost interactive target under a point."""

    kind: HitKind
    annotation_index: int
    handle_index: Optional[int] = None


def handle_rects(canvas_rect: Rect, size: float = HANDLE_SIZE) -> List[Rect]:
    """Square handle rectangles centered on the corners and edge midpoints."""
    half = size / 2
    return [Rect(cx - half, cy - half, size, size) for cx, cy in canvas_rect.handle_centers()]


class HitTester:
    """
    Finds the interactive target under a canvas point.

    Handles of the selected annotation win over boxes. Boxes are scanned in
    store order and the first containing box is returned, so when boxes
    overlap the earlier-inserted one takes priority.
    """

    def __init__(self, mapper: CoordinateMapper, handle_size: float = HANDLE_SIZE) -> None:
        self.mapper = mapper
        self.handle_size = handle_size

    def hit_test(
        self,
        px: float,
        py: float,
        annotations: Sequence[Annotation],
        selected_index: Optional[int] = None,
    ) -> Optional[HitResult]:
        """
        Return the topmost target at (px, py), or None.

        Args:
            px: Canvas x coordinate
            py: Canvas y coordinate
            annotations: Annotations in store order
            selected_index: Index of the selected annotation, if any

        Returns:
            HitResult for a handle or box, None if nothing was hit
        """
        if selected_index is not None and 0 <= selected_index < len(annotations):
            canvas_rect = self._canvas_rect(annotations[selected_index])
            if canvas_rect is not None:
                for handle_index, rect in enumerate(handle_rects(canvas_rect, self.handle_size)):
                    if rect.contains(px, py):
                        return HitResult(HitKind.HANDLE, selected_index, handle_index)

        for index, annotation in enumerate(annotations):
            canvas_rect = self._canvas_rect(annotation)
            if canvas_rect is not None and canvas_rect.contains(px, py):
                return HitResult(HitKind.BOX, index)

        return None

    def _canvas_rect(self, annotation: Annotation) -> Optional[Rect]:
        if not annotation.rect.is_finite():
            return None
        canvas_rect = self.mapper.rect_to_canvas(annotation.rect)
        if not canvas_rect.is_finite() or canvas_rect.width <= 0 or canvas_rect.height <= 0:
            return None
        return canvas_rect
