"""
Core value types shared by the agent façade, the loop and the CLI.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional


class Model(str, Enum):
    """Supported model identities.

    Flash is fast and cheap and handles most desktop tasks; Pro reasons
    better over multi-step workflows.
    """

    FLASH = "gemini-2.5-flash"
    PRO = "gemini-2.5-pro"


class SafetyLevel(str, Enum):
    """How aggressively the guardrails block sensitive actions."""

    MINIMAL = "minimal"
    NORMAL = "normal"
    STRICT = "strict"


class Phase(str, Enum):
    """Coarse workflow phases used for memory summarization."""

    NONE = ""
    NAVIGATION = "navigation"
    FORM_FILLING = "form_filling"
    AUTHENTICATION = "authentication"
    SEARCH = "search"
    BROWSING = "browsing"
    CONFIRMATION = "confirmation"
    CHECKOUT = "checkout"


@dataclass
class Step:
    """A single action the agent took."""

    number: int
    action: str
    description: str = ""
    target: str = ""
    success: bool = False
    duration: float = 0.0
    error: Optional[BaseException] = None


@dataclass
class Result:
    """Outcome of a task run."""

    success: bool = False
    summary: str = ""
    steps: List[Step] = field(default_factory=list)
    duration: float = 0.0
    error: Optional[BaseException] = None
    needs_help: bool = False

    @property
    def steps_failed(self) -> int:
        return sum(1 for s in self.steps if not s.success)


ProgressCallback = Callable[[Step], None]
