"""UI components for Boxmark."""

from .drawing_area import DrawingArea
from .annotation_list import AnnotationListPanel
from .main_window import MainWindow

__all__ = [
    "DrawingArea",
    "AnnotationListPanel",
    "MainWindow",
]
