"""
Tool execution context.

One ``ToolContext`` exists per agent. It carries the backends the tools
drive, the agent's coordinate state, and the escalation flag that
``complete_task`` / ``need_help`` raise to end the loop.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from cua_agent.configuration.config import ScreenshotConfig
from cua_agent.infrastructure.element import ElementFinder, create_element_finder
from cua_agent.infrastructure.input import InputAdapter
from cua_agent.infrastructure.screen import CaptureBackend, CoordinateState


class EscalationKind(str, Enum):
    COMPLETE = "complete"
    NEED_HELP = "need_help"


@dataclass
class Escalation:
    """Request from a tool to end the loop."""

    kind: EscalationKind
    message: str = ""
    details: str = ""


@dataclass
class ToolContext:
    input: InputAdapter
    capture: CaptureBackend
    coordinates: CoordinateState = field(default_factory=CoordinateState)
    screenshot: ScreenshotConfig = field(default_factory=ScreenshotConfig)
    screen_index: int = 0
    element_finder: Optional[ElementFinder] = None
    element_finder_factory: Callable[[], ElementFinder] = create_element_finder
    escalation: Optional[Escalation] = None

    @property
    def escalate(self) -> bool:
        return self.escalation is not None

    def elements(self) -> ElementFinder:
        """The accessibility backend, created on first use."""
        if self.element_finder is None:
            self.element_finder = self.element_finder_factory()
        return self.element_finder

    def request_escalation(self, kind: EscalationKind, message: str = "", details: str = "") -> None:
        self.escalation = Escalation(kind=kind, message=message, details=details)

    def reset(self) -> None:
        """Clear per-task state before a new run."""
        self.escalation = None
