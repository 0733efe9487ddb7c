"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Run Qt without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class ManualTimer:
    """Coalescing timer double that only fires when told to."""

    def __init__(self):
        self.callback = None
        self.delay_ms = None
        self.schedule_count = 0

    @property
    def is_pending(self):
        return self.callback is not None

    def schedule(self, delay_ms, callback):
        self.delay_ms = delay_ms
        self.callback = callback
        self.schedule_count += 1

    def cancel_pending(self):
        self.callback = None

    def fire(self):
        callback, self.callback = self.callback, None
        if callback is not None:
            callback()


@pytest.fixture(scope="session")
def qapp():
    """Create a QApplication for tests that need it."""
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])

    yield app


@pytest.fixture
def manual_timer():
    """A timer that fires only on demand."""
    return ManualTimer()


@pytest.fixture
def make_timer():
    """Factory for extra manual timers."""
    return ManualTimer


@pytest.fixture
def editor(qapp):
    """
    Editor showing a 1600x1200 image in an 800x600 container.

    The fit is scale 0.5 with no offset. Both debounce timers are manual.
    """
    from boxmark.core.editor import AnnotationEditor

    editor = AnnotationEditor(resize_timer=ManualTimer(), render_timer=ManualTimer())
    editor.resize(800, 600)
    editor.load_image("street.jpg", 1600, 1200)
    return editor


@pytest.fixture
def unit_editor(qapp):
    """
    Editor where canvas and image space coincide.

    A 800x600 image in an 800x600 container gives scale 1 and no offset.
    """
    from boxmark.core.editor import AnnotationEditor

    editor = AnnotationEditor(resize_timer=ManualTimer(), render_timer=ManualTimer())
    editor.resize(800, 600)
    editor.load_image("unit.png", 800, 600)
    return editor


@pytest.fixture
def sample_records():
    """Annotation records as stored on disk."""
    return [
        {"x": 10, "y": 10, "width": 100, "height": 80, "label": "car", "color": 0x123456},
        {"x": 200, "y": 150, "width": 50, "height": 60, "label": "person"},
        {"x": 400, "y": 300, "width": 30, "height": 30},
    ]
