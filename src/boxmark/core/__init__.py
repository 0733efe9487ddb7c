"""Core annotation editing engine for Boxmark."""

from .models import Annotation, Rect, PALETTE
from .config import AppConfig, ConfigManager
from .editor import AnnotationEditor
from .interaction import InputEvent, InteractionController, Mode
from .persistence import JsonAnnotationFile

__all__ = [
    "Annotation",
    "Rect",
    "PALETTE",
    "AppConfig",
    "ConfigManager",
    "AnnotationEditor",
    "InputEvent",
    "InteractionController",
    "Mode",
    "JsonAnnotationFile",
]
