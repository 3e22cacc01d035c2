"""Shared fakes and fixtures for the agent tests."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from PIL import Image

from cua_agent import helpers
from cua_agent.configuration.config import AgentConfig
from cua_agent.domain.types import SafetyLevel
from cua_agent.infrastructure.element import Element, ElementFinder, Rect, Role
from cua_agent.infrastructure.input import InputAdapter, InputTiming
from cua_agent.infrastructure.llm import ContentEvent, ToolCallEvent
from cua_agent.infrastructure.safety import Guardrails, GuardrailsConfig
from cua_agent.infrastructure.screen import Display, Region
from cua_agent.infrastructure.tools import ToolContext

# ============================================================================
# Fakes
# ============================================================================


class FakeInputBackend:
    """Records every input primitive instead of touching the OS."""

    def __init__(self, click_error: Optional[BaseException] = None) -> None:
        self.events: List[Tuple[Any, ...]] = []
        self.click_error = click_error
        self._position = (0, 0)

    def move(self, x: int, y: int) -> None:
        self._position = (x, y)
        self.events.append(("move", x, y))

    def mouse_down(self, button: str = "left") -> None:
        self.events.append(("mouse_down", button))

    def mouse_up(self, button: str = "left") -> None:
        self.events.append(("mouse_up", button))

    def click(self, button: str = "left", clicks: int = 1) -> None:
        if self.click_error is not None:
            raise self.click_error
        self.events.append(("click", button, clicks))

    def scroll(self, delta_x: int, delta_y: int) -> None:
        self.events.append(("scroll", delta_x, delta_y))

    def key_down(self, key: str) -> None:
        self.events.append(("key_down", key))

    def key_up(self, key: str) -> None:
        self.events.append(("key_up", key))

    def key_tap(self, key: str) -> None:
        self.events.append(("key_tap", key))

    def type_char(self, char: str) -> None:
        self.events.append(("type_char", char))

    def position(self) -> Tuple[int, int]:
        return self._position

    def of_kind(self, kind: str) -> List[Tuple[Any, ...]]:
        return [e for e in self.events if e[0] == kind]

    @property
    def typed(self) -> str:
        return "".join(e[1] for e in self.of_kind("type_char"))


class FakeCapture:
    """Capture backend returning blank images at the display's physical size."""

    def __init__(self, displays: Optional[Sequence[Display]] = None) -> None:
        if displays is None:
            displays = [Display(0, 0, 0, 1512, 982, scale_factor=2.0, is_primary=True)]
        self._displays = list(displays)
        self.captures: List[Tuple[int, Optional[Region]]] = []

    def displays(self) -> List[Display]:
        return list(self._displays)

    def capture(self, display_index: int = 0, region: Optional[Region] = None) -> Image.Image:
        self.captures.append((display_index, region))
        display = self._displays[display_index]
        if region is not None:
            region.validate()
            width, height = region.width, region.height
        else:
            width, height = display.width, display.height
        size = (int(width * display.scale_factor), int(height * display.scale_factor))
        return Image.new("RGB", size, color=(240, 240, 240))


class FakeElementFinder(ElementFinder):
    """In-memory accessibility tree."""

    def __init__(self, root: Optional[Element] = None) -> None:
        self.root = root or sample_tree()

    def focused_application(self) -> Element:
        return self.root

    def children(self, element: Element) -> List[Element]:
        return element.children or []


def sample_tree() -> Element:
    ok = Element(id="e2", role=Role.BUTTON, name="OK", bounds=Rect(100, 200, 80, 30))
    cancel = Element(id="e3", role=Role.BUTTON, name="Cancel", bounds=Rect(200, 200, 80, 30))
    field = Element(id="e4", role=Role.TEXTFIELD, name="Search", bounds=Rect(10, 10, 300, 24))
    window = Element(
        id="e1", role=Role.WINDOW, title="Calculator", bounds=Rect(0, 0, 800, 600),
        children=[ok, cancel, field],
    )
    return Element(id="e0", role=Role.APPLICATION, name="Calculator", children=[window])


class ScriptedModel:
    """
    Model client that replays scripted turns.

    Each turn is a list of events, or an exception to raise. When the script
    runs out the model answers with text only, which ends the loop.
    """

    def __init__(self, turns: Sequence[Any]) -> None:
        self._turns = list(turns)
        self.requests: List[List[Dict[str, Any]]] = []
        self.tools: List[List[Dict[str, Any]]] = []

    async def invoke(self, messages, tools):
        self.requests.append([dict(m) for m in messages])
        self.tools.append(tools)
        turn = self._turns.pop(0) if self._turns else [ContentEvent(text="Done")]
        if isinstance(turn, BaseException):
            raise turn
        for event in turn:
            yield event


def call(name: str, **arguments: Any) -> List[ToolCallEvent]:
    """One turn containing a single tool call."""
    return [ToolCallEvent(name=name, arguments=arguments)]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def input_backend():
    return FakeInputBackend()


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def element_finder():
    return FakeElementFinder()


@pytest.fixture
def tool_context(input_backend, capture, element_finder):
    """Tool context wired to fakes, with no input delays."""
    return ToolContext(
        input=InputAdapter(input_backend, timing=InputTiming.instant(), use_applescript=False),
        capture=capture,
        element_finder=element_finder,
    )


@pytest.fixture
def guardrails():
    return Guardrails(GuardrailsConfig(level=SafetyLevel.NORMAL))


@pytest.fixture
def agent_config():
    return AgentConfig(api_key="test-key", timeout=10, max_actions=50)


@pytest.fixture
def helper_backends(input_backend, capture, element_finder):
    """Point cua_agent.helpers at the fakes for the duration of a test."""
    helpers.set_backends(
        input_backend=input_backend,
        capture=capture,
        element_finder=element_finder,
        timing=InputTiming.instant(),
    )
    yield input_backend
    helpers.set_backends()
