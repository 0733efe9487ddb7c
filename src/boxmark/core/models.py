"""Data models for Boxmark annotations."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from PyQt6.QtGui import QColor

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "object"
MIN_BOX_SIZE = 10.0

# Fixed palette, indexed by insertion position
PALETTE: Tuple[int, ...] = (
    0x00FF00, 0xFF0000, 0x0000FF, 0xFFFF00, 0xFF00FF,
    0x00FFFF, 0xFF8800, 0x8800FF, 0x00FF88, 0xFF0088,
)


def palette_color(index: int) -> int:
    """Return the default color for an annotation at the given position."""
    return PALETTE[index % len(PALETTE)]


def to_qcolor(color: int) -> QColor:
    """Convert a packed 0xRRGGBB integer to a QColor."""
    return QColor((color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF)


@dataclass
class Rect:
    """Axis-aligned rectangle, used for both image and canvas space."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_points(cls, x1: float, y1: float, x2: float, y2: float) -> Rect:
        """Build a normalized rectangle from two opposite corners."""
        return cls(min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, px: float, py: float) -> bool:
        """Inclusive containment test."""
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height))

    def handle_centers(self) -> List[Tuple[float, float]]:
        """
        Centers of the 8 resize handles.

        Order is TL, T, TR, R, BR, B, BL, L.
        """
        cx = self.x + self.width / 2
        cy = self.y + self.height / 2
        return [
            (self.x, self.y),
            (cx, self.y),
            (self.right, self.y),
            (self.right, cy),
            (self.right, self.bottom),
            (cx, self.bottom),
            (self.x, self.bottom),
            (self.x, cy),
        ]


@dataclass
class Annotation:
    """
    A single bounding box annotation in image space.

    Coordinates are unscaled source-image pixels. ``color`` is a packed
    0xRRGGBB integer, or None to fall back to the palette slot of the
    annotation's position.
    """

    x: float
    y: float
    width: float
    height: float
    label: str = DEFAULT_LABEL
    color: Optional[int] = None

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def is_valid(self) -> bool:
        """Check finite, non-negative geometry (malformed records fail this)."""
        values = (self.x, self.y, self.width, self.height)
        return (
            all(isinstance(v, (int, float)) and math.isfinite(v) for v in values)
            and self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
        )

    def copy(self) -> Annotation:
        return Annotation(self.x, self.y, self.width, self.height, self.label, self.color)

    def to_record(self, index: int) -> Dict[str, Any]:
        """
        Convert to the persisted record shape.

        Args:
            index: Position of the annotation, used to resolve a missing color

        Returns:
            Dictionary with x, y, width, height, label and a resolved color
        """
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "label": self.label,
            "color": self.color if self.color is not None else palette_color(index),
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any], index: int) -> Annotation:
        """
        Create an annotation from a persisted record.

        Missing colors map to the palette default of the record's position.
        Geometry is taken as-is so malformed values survive for correction.

        Args:
            data: Record mapping
            index: Position of the record in the list

        Returns:
            New Annotation instance
        """
        color = data.get("color")
        if color is not None:
            try:
                color = int(color)
            except (TypeError, ValueError):
                logger.warning(f"Invalid color {color!r} in record {index}, using palette")
                color = None
        if color is None:
            color = palette_color(index)

        return cls(
            x=_as_float(data.get("x")),
            y=_as_float(data.get("y")),
            width=_as_float(data.get("width")),
            height=_as_float(data.get("height")),
            label=str(data.get("label") or DEFAULT_LABEL),
            color=color,
        )


def _as_float(value: Any) -> float:
    """Coerce a record value to float; unusable values become NaN."""
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric annotation value: {value!r}")
        return math.nan
