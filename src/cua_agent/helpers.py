"""
Direct desktop control without the model.

Coordinates are logical screen points. The functions block until the input
sequence has finished.

Usage:
    from cua_agent import helpers

    helpers.click(200, 300)
    helpers.type_text("hello")
    helpers.key_press("s", ["cmd"])
"""

import asyncio
import logging
import threading
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from cua_agent.infrastructure.element import Element, ElementFinder, Role, Selector, create_element_finder
from cua_agent.infrastructure.input import InputAdapter, InputBackend, InputTiming, PyAutoGUIBackend
from cua_agent.infrastructure.screen import CaptureBackend, Display, MSSCapture, Region, display_at

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_input: Optional[InputAdapter] = None
_capture: Optional[CaptureBackend] = None
_finder: Optional[ElementFinder] = None


def set_backends(
    input_backend: Optional[InputBackend] = None,
    capture: Optional[CaptureBackend] = None,
    element_finder: Optional[ElementFinder] = None,
    timing: Optional[InputTiming] = None,
) -> None:
    """Replace the backends used by the helpers; None restores the default on next use."""
    global _input, _capture, _finder
    with _lock:
        if input_backend is not None:
            _input = InputAdapter(input_backend, timing=timing, use_applescript=False)
        else:
            _input = None
        _capture = capture
        _finder = element_finder


def _get_input() -> InputAdapter:
    global _input
    with _lock:
        if _input is None:
            _input = InputAdapter(PyAutoGUIBackend())
        return _input


def _get_capture() -> CaptureBackend:
    global _capture
    with _lock:
        if _capture is None:
            _capture = MSSCapture()
        return _capture


def _get_finder() -> ElementFinder:
    global _finder
    with _lock:
        if _finder is None:
            _finder = create_element_finder()
        return _finder


# ============================================================================
# Mouse
# ============================================================================


def click(x: int, y: int, button: str = "left") -> None:
    asyncio.run(_get_input().click(x, y, button=button))


def double_click(x: int, y: int) -> None:
    asyncio.run(_get_input().click(x, y, double=True))


def right_click(x: int, y: int) -> None:
    asyncio.run(_get_input().click(x, y, button="right"))


def move_mouse(x: int, y: int) -> None:
    asyncio.run(_get_input().move(x, y))


def drag_mouse(start_x: int, start_y: int, end_x: int, end_y: int, button: str = "left") -> None:
    asyncio.run(_get_input().drag(start_x, start_y, end_x, end_y, button=button))


def scroll(x: int, y: int, delta_x: int = 0, delta_y: int = 0) -> None:
    """Scroll at a point; positive ``delta_y`` scrolls down."""
    asyncio.run(_get_input().scroll(x, y, delta_x, delta_y))


# ============================================================================
# Keyboard
# ============================================================================


def type_text(text: str) -> int:
    """Type text; returns the number of characters typed."""
    return asyncio.run(_get_input().type_text(text))


def key_press(key: str, modifiers: Sequence[str] = ()) -> List[str]:
    """Press a key with optional modifiers; returns the canonical modifiers."""
    return asyncio.run(_get_input().key_press(key, modifiers))


# ============================================================================
# Screen and elements
# ============================================================================


def capture_screen(display_index: int = 0, region: Optional[Region] = None) -> Image.Image:
    """Capture a display (or a region of it) at full resolution."""
    return _get_capture().capture(display_index=display_index, region=region)


def displays() -> List[Display]:
    return _get_capture().displays()


def screen_size(display_index: int = 0) -> Tuple[int, int]:
    """Logical size of a display."""
    display = display_at(_get_capture(), display_index)
    return display.width, display.height


def find_elements(
    role: Optional[str] = None,
    name: Optional[str] = None,
    name_contains: Optional[str] = None,
    title: Optional[str] = None,
    max_results: Optional[int] = None,
) -> List[Element]:
    """
    Query the focused application's accessibility tree.

    Raises:
        ValueError: If no criteria are given
        NotSupportedError: On platforms without an accessibility backend
    """
    selector = Selector(
        role=Role.parse(role) if role else None,
        name=name,
        name_contains=name_contains,
        title=title,
    )
    if selector.is_empty():
        raise ValueError("at least one search criteria is required (role, name, name_contains, or title)")
    return _get_finder().find_all(selector, None, max_results)


def version() -> str:
    from cua_agent import __version__

    return __version__
