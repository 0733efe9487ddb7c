"""Tests for draw command derivation and redraw scheduling."""

import math

import pytest

from boxmark.core.models import Annotation, Rect, palette_color
from boxmark.core.render_sync import (
    DEFAULT_STROKE,
    HANDLE_FILL,
    HANDLE_OUTLINE,
    PREVIEW_COLOR,
    SELECTED_STROKE,
    DrawingSurface,
    RectCommand,
    RenderSync,
    TextCommand,
    build_draw_commands,
)
from boxmark.core.viewport import Viewport


class RecordingSurface(DrawingSurface):
    """Surface that logs every call."""

    def __init__(self):
        self.calls = []

    def clear(self):
        self.calls.append(("clear",))

    def draw_rect(self, rect, color, width, fill=None):
        self.calls.append(("rect", rect, color, width, fill))

    def draw_text(self, text, x, y, color):
        self.calls.append(("text", text, x, y, color))

    def present(self):
        self.calls.append(("present",))


@pytest.fixture
def annotations():
    return [
        Annotation(100, 100, 200, 100, "car", 0x123456),
        Annotation(400, 10, 50, 50, "sign"),
    ]


UNIT = Viewport(scale=1.0)
HALF = Viewport(scale=0.5, offset_x=10, offset_y=20)


class TestBuildDrawCommands:
    """Tests for build_draw_commands."""

    def test_box_and_label_per_annotation(self, annotations):
        commands = build_draw_commands(annotations, UNIT)

        assert commands == [
            RectCommand(Rect(100, 100, 200, 100), 0x123456, DEFAULT_STROKE),
            TextCommand("car", 100, 82, 0x123456),
            RectCommand(Rect(400, 10, 50, 50), palette_color(1), DEFAULT_STROKE),
            TextCommand("sign", 400, 0, palette_color(1)),
        ]

    def test_maps_to_canvas(self, annotations):
        commands = build_draw_commands(annotations[:1], HALF)

        assert commands[0].rect == Rect(60, 70, 100, 50)

    def test_selected_gets_thick_stroke_and_handles(self, annotations):
        commands = build_draw_commands(annotations, UNIT, selected_index=0)

        assert commands[0].width == SELECTED_STROKE
        handles = commands[2:10]
        assert len(handles) == 8
        assert all(c.color == HANDLE_OUTLINE and c.fill == HANDLE_FILL for c in handles)
        assert handles[0].rect == Rect(96, 96, 8, 8)
        assert commands[10].width == DEFAULT_STROKE

    def test_preview_drawn_last(self, annotations):
        preview = Rect(5, 5, 40, 40)

        commands = build_draw_commands(annotations, UNIT, preview=preview)

        assert commands[-1] == RectCommand(preview, PREVIEW_COLOR, DEFAULT_STROKE)

    def test_skips_malformed(self):
        annotations = [
            Annotation(math.nan, 0, 10, 10),
            Annotation(0, 0, math.inf, 10),
            Annotation(0, 0, 0, 10),
            Annotation(1, 1, 10, 10, "ok"),
        ]

        commands = build_draw_commands(annotations, UNIT)

        assert [c.text for c in commands if isinstance(c, TextCommand)] == ["ok"]

    def test_invalid_viewport_draws_nothing(self, annotations):
        assert build_draw_commands(annotations, Viewport(), preview=Rect(0, 0, 5, 5)) == []

    def test_custom_handle_size(self, annotations):
        commands = build_draw_commands(annotations, UNIT, selected_index=1, handle_size=12)

        assert commands[4].rect == Rect(394, 4, 12, 12)


class TestRenderSync:
    """Tests for RenderSync."""

    @pytest.fixture
    def surface(self):
        return RecordingSurface()

    @pytest.fixture
    def sync(self, qapp, surface, manual_timer):
        return RenderSync(surface, timer=manual_timer)

    def test_update_is_debounced(self, sync, surface, manual_timer, annotations):
        sync.update_state(annotations, UNIT, None)

        assert surface.calls == []
        assert manual_timer.delay_ms == 100

        manual_timer.fire()

        assert surface.calls[0] == ("clear",)
        assert surface.calls[-1] == ("present",)
        assert len(surface.calls) == 6

    def test_burst_renders_once(self, sync, surface, manual_timer, annotations):
        for selected in (None, 0, 1):
            sync.update_state(annotations, UNIT, selected)
        manual_timer.fire()

        assert [c[0] for c in surface.calls].count("present") == 1
        assert manual_timer.schedule_count == 3

    def test_preview_renders_immediately(self, sync, surface, manual_timer, annotations):
        sync.update_state(annotations, UNIT, None)

        sync.set_preview(Rect(1, 1, 20, 20))

        assert surface.calls[-2] == ("rect", Rect(1, 1, 20, 20), PREVIEW_COLOR, DEFAULT_STROKE, None)
        assert surface.calls[-1] == ("present",)

    def test_no_render_without_viewport(self, sync, surface, manual_timer, annotations):
        sync.update_state(annotations, Viewport(), None)
        manual_timer.fire()

        assert surface.calls == []
        assert sync.last_commands == []

    def test_render_without_surface(self, qapp, manual_timer, annotations):
        sync = RenderSync(timer=manual_timer)
        sync.update_state(annotations, UNIT, 0)

        commands = sync.render_now()

        assert len(commands) == 12
        assert sync.last_commands is commands

    def test_cancel(self, sync, surface, manual_timer, annotations):
        sync.update_state(annotations, UNIT, None)

        sync.cancel()
        manual_timer.fire()

        assert surface.calls == []

    def test_stored_data_untouched(self, sync, manual_timer, annotations):
        sync.update_state(annotations, HALF, 0)
        manual_timer.fire()

        assert annotations[0].rect == Rect(100, 100, 200, 100)
