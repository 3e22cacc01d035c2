"""
Unit tests for the coordinate pipeline.
"""

import pytest

from cua_agent.infrastructure.screen import (
    CoordinateSpace,
    CoordinateState,
    denormalize,
    logical_to_physical,
    normalize,
    physical_to_logical,
)


def retina_state() -> CoordinateState:
    """1512x982 logical display at 2x, screenshot resized to 1280x831."""
    state = CoordinateState()
    state.update(logical_size=(1512, 982), image_size=(1280, 831), physical_width=3024, scale_factor=2.0)
    return state


class TestConversions:
    """Tests for the scalar conversions."""

    def test_denormalize(self):
        assert denormalize(500, 1512) == 756
        assert denormalize(0, 1512) == 0
        assert denormalize(1000, 1512) == 1511

    def test_denormalize_empty_axis(self):
        assert denormalize(500, 0) == 0

    def test_normalize(self):
        assert normalize(756, 1512) == 500
        assert normalize(5000, 1512) == 1000

    def test_scale_factor(self):
        assert physical_to_logical(200, 2.0) == 100
        assert logical_to_physical(100, 2.0) == 200
        assert physical_to_logical(200, 0) == 200


class TestCoordinateState:
    """Tests for CoordinateState."""

    def test_effective_scale(self):
        state = retina_state()
        assert state.effective_scale == pytest.approx(1.18125)

    def test_normalized_on_large_image(self):
        """Small coordinates on a large screenshot are the 0-1000 grid."""
        state = retina_state()
        assert state.to_logical(500, 500) == (756, 491, CoordinateSpace.NORMALIZED)

    def test_beyond_grid_is_pixels_and_clamped(self):
        """x over 1000 is image pixels; the result stays on screen."""
        state = retina_state()
        assert state.to_logical(1500, 500) == (1511, 591, CoordinateSpace.IMAGE_PIXELS)

    def test_outside_image_is_normalized(self):
        state = CoordinateState()
        state.update(logical_size=(800, 600), image_size=(800, 600))
        assert state.classify(700, 700) == CoordinateSpace.NORMALIZED

    def test_small_image_is_pixels(self):
        state = CoordinateState()
        state.update(logical_size=(800, 600), image_size=(800, 600))
        assert state.to_logical(400, 300) == (400, 300, CoordinateSpace.IMAGE_PIXELS)

    def test_fallback_before_screenshot(self):
        """Before any screenshot the default screen size is used."""
        state = CoordinateState()
        snap = state.snapshot()

        assert snap.logical_size == (1920, 1080)
        assert snap.from_screenshot is False
        assert state.to_logical(500, 500)[:2] == (960, 540)

    def test_custom_fallback(self):
        state = CoordinateState()
        state.set_fallback_size((1000, 800))
        assert state.snapshot().logical_size == (1000, 800)

    def test_to_screen_adds_origin(self):
        state = CoordinateState()
        state.update(logical_size=(800, 600), image_size=(800, 600), origin=(1920, 100))
        assert state.to_screen(10, 20) == (1930, 120, CoordinateSpace.IMAGE_PIXELS)

    def test_reset(self):
        state = retina_state()
        state.reset()

        assert state.effective_scale == 1.0
        assert state.snapshot().from_screenshot is False
