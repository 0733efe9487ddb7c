"""Tests for viewport fitting, coordinate mapping and resize debouncing."""

import pytest

from boxmark.core.models import Rect
from boxmark.core.viewport import CoordinateMapper, Viewport, ViewportManager, fit


class TestFit:
    """Tests for the fit function."""

    def test_fit_landscape_container(self):
        viewport = fit(800, 600, 1600, 1200)

        assert viewport.scale == pytest.approx(0.5)
        assert viewport.offset_x == pytest.approx(0)
        assert viewport.offset_y == pytest.approx(0)

    def test_fit_centers_letterbox(self):
        viewport = fit(1000, 600, 1600, 1200)

        assert viewport.scale == pytest.approx(0.5)
        assert viewport.offset_x == pytest.approx(100)
        assert viewport.offset_y == pytest.approx(0)

    def test_fit_upscales_small_image(self):
        viewport = fit(800, 600, 200, 100)

        assert viewport.scale == pytest.approx(4)
        assert viewport.offset_y == pytest.approx(100)

    def test_container_is_floored(self):
        viewport = fit(100, 50, 400, 300)

        assert viewport.width == 400
        assert viewport.height == 300
        assert viewport.scale == pytest.approx(1)

    @pytest.mark.parametrize("size", [(0, 100), (100, 0), (-5, 10)])
    def test_degenerate_image(self, size):
        viewport = fit(800, 600, *size)

        assert viewport.scale == 0
        assert not viewport.is_valid


class TestCoordinateMapper:
    """Tests for CoordinateMapper."""

    @pytest.fixture
    def mapper(self):
        viewport = Viewport(scale=0.5, offset_x=100, offset_y=20)
        return CoordinateMapper(lambda: viewport)

    def test_canvas_to_image(self, mapper):
        assert mapper.canvas_to_image(200, 70) == pytest.approx((200, 100))

    def test_image_to_canvas(self, mapper):
        assert mapper.image_to_canvas(200, 100) == pytest.approx((200, 70))

    def test_round_trip(self, mapper):
        x, y = mapper.image_to_canvas(*mapper.canvas_to_image(333.3, 222.2))

        assert (x, y) == pytest.approx((333.3, 222.2))

    def test_delta_ignores_offset(self, mapper):
        assert mapper.canvas_delta_to_image(10, -5) == pytest.approx((20, -10))

    def test_rects(self, mapper):
        canvas = mapper.rect_to_canvas(Rect(200, 200, 400, 400))

        assert canvas == Rect(200, 120, 200, 200)
        assert mapper.rect_to_image(canvas) == Rect(200, 200, 400, 400)

    def test_reads_latest_viewport(self):
        current = {"vp": Viewport(scale=1.0)}
        mapper = CoordinateMapper(lambda: current["vp"])

        current["vp"] = Viewport(scale=2.0)

        assert mapper.image_to_canvas(10, 10) == (20, 20)


class TestViewportManager:
    """Tests for ViewportManager."""

    @pytest.fixture
    def manager(self, qapp, manual_timer):
        manager = ViewportManager(timer=manual_timer)
        manager.set_image(1600, 1200, 800, 600)
        return manager

    def test_set_image_applies_immediately(self, qapp, manual_timer):
        manager = ViewportManager(timer=manual_timer)
        emitted = []
        manager.layout_changed.connect(lambda: emitted.append(True))

        manager.set_image(1600, 1200, 800, 600)

        assert manager.viewport.scale == pytest.approx(0.5)
        assert manager.image_size == (1600, 1200)
        assert emitted == [True]

    def test_image_bounds(self, qapp, manual_timer):
        manager = ViewportManager(timer=manual_timer)
        manager.set_image(1600, 1200, 1000, 600)

        assert manager.image_bounds() == Rect(100, 0, 800, 600)

    def test_resize_is_debounced(self, manager, manual_timer):
        manager.notify_resize(1600, 1200)

        assert manual_timer.is_pending
        assert manager.viewport.scale == pytest.approx(0.5)

        manual_timer.fire()

        assert manager.viewport.scale == pytest.approx(1.0)

    def test_burst_coalesces_to_last_size(self, manager, manual_timer):
        recomputes = []
        manager.layout_changed.connect(lambda: recomputes.append(manager.viewport.scale))

        for width, height in [(900, 700), (1000, 800), (1200, 900), (1400, 1100), (1600, 1200)]:
            manager.notify_resize(width, height)
        manual_timer.fire()

        assert recomputes == [pytest.approx(1.0)]

    def test_small_change_is_ignored(self, manager, manual_timer):
        recomputes = []
        manager.layout_changed.connect(lambda: recomputes.append(True))

        manager.notify_resize(804, 603)
        manual_timer.fire()

        assert recomputes == []
        assert manager.viewport.scale == pytest.approx(0.5)

    def test_change_above_threshold_applies(self, manager, manual_timer):
        manager.notify_resize(806, 600)
        manual_timer.fire()

        assert manager.viewport.width == 806

    def test_below_minimum_compares_floored_size(self, qapp, manual_timer):
        manager = ViewportManager(timer=manual_timer)
        manager.set_image(400, 300, 100, 100)
        recomputes = []
        manager.layout_changed.connect(lambda: recomputes.append(True))

        manager.notify_resize(50, 50)
        manual_timer.fire()

        assert recomputes == []

    def test_reset(self, manager, manual_timer):
        manager.notify_resize(1600, 1200)

        manager.reset()

        assert not manual_timer.is_pending
        assert not manager.viewport.is_valid
        assert manager.image_size == (0, 0)

    def test_scale_invariance_of_image_coordinates(self, manager, manual_timer):
        """The same image point maps to the same canvas proportion at any size."""
        before = manager.mapper.image_to_canvas(400, 300)

        manager.notify_resize(1600, 1200)
        manual_timer.fire()
        after = manager.mapper.image_to_canvas(400, 300)

        assert after == pytest.approx((before[0] * 2, before[1] * 2))
        assert manager.mapper.canvas_to_image(*after) == pytest.approx((400, 300))
