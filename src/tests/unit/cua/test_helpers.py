"""
Unit tests for the direct-control helpers.
"""

import pytest

from cua_agent import __version__, helpers
from cua_agent.domain.errors import InvalidDisplayError
from cua_agent.infrastructure.screen import Region


class TestMouseHelpers:
    def test_click(self, helper_backends):
        helpers.click(200, 300)
        assert helper_backends.events == [("move", 200, 300), ("click", "left", 1)]

    def test_double_and_right_click(self, helper_backends):
        helpers.double_click(1, 2)
        helpers.right_click(3, 4)
        assert helper_backends.of_kind("click") == [("click", "left", 2), ("click", "right", 1)]

    def test_invalid_button(self, helper_backends):
        with pytest.raises(ValueError):
            helpers.click(1, 1, button="side")

    def test_move_drag_scroll(self, helper_backends):
        helpers.move_mouse(5, 5)
        helpers.drag_mouse(0, 0, 10, 10)
        helpers.scroll(50, 50, delta_y=-2)

        assert helper_backends.events[0] == ("move", 5, 5)
        assert ("mouse_up", "left") in helper_backends.events
        assert helper_backends.events[-1] == ("scroll", 0, -2)


class TestKeyboardHelpers:
    def test_type_text(self, helper_backends):
        assert helpers.type_text("hello") == 5
        assert helper_backends.typed == "hello"

    def test_key_press(self, helper_backends):
        assert helpers.key_press("s", ["command"]) == ["cmd"]
        assert ("key_tap", "s") in helper_backends.events


class TestScreenHelpers:
    def test_capture_screen(self, helper_backends):
        image = helpers.capture_screen()
        assert image.size == (3024, 1964)

    def test_capture_region(self, helper_backends, capture):
        image = helpers.capture_screen(region=Region(0, 0, 100, 50))
        assert image.size == (200, 100)
        assert capture.captures[-1][1] == Region(0, 0, 100, 50)

    def test_screen_size(self, helper_backends):
        assert helpers.screen_size() == (1512, 982)
        with pytest.raises(InvalidDisplayError):
            helpers.screen_size(3)

    def test_displays(self, helper_backends):
        assert [d.index for d in helpers.displays()] == [0]


class TestElementHelpers:
    def test_find_elements(self, helper_backends):
        found = helpers.find_elements(role="button", max_results=5)
        assert [e.name for e in found] == ["OK", "Cancel"]

    def test_find_elements_requires_criteria(self, helper_backends):
        with pytest.raises(ValueError, match="at least one search criteria"):
            helpers.find_elements()


def test_version():
    assert helpers.version() == __version__
