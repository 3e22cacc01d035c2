"""Domain types and error taxonomy."""

from .errors import (
    AccessPermissionError,
    ActionError,
    AgentBusyError,
    AgentStuckError,
    CanceledError,
    CUAError,
    ElementError,
    ElementNotFoundError,
    HumanTakeoverError,
    MaxActionsError,
    NoAPIKeyError,
    NotSupportedError,
    PermissionDeniedError,
    RateLimitedError,
    SafetyBlockError,
    SafetyError,
    TaskError,
    TaskTimeoutError,
    is_fatal,
    is_retryable,
    matches,
)
from .types import Model, Phase, ProgressCallback, Result, SafetyLevel, Step

__all__ = [
    "AccessPermissionError",
    "ActionError",
    "AgentBusyError",
    "AgentStuckError",
    "CanceledError",
    "CUAError",
    "ElementError",
    "ElementNotFoundError",
    "HumanTakeoverError",
    "MaxActionsError",
    "NoAPIKeyError",
    "NotSupportedError",
    "PermissionDeniedError",
    "RateLimitedError",
    "SafetyBlockError",
    "SafetyError",
    "TaskError",
    "TaskTimeoutError",
    "is_fatal",
    "is_retryable",
    "matches",
    "Model",
    "Phase",
    "ProgressCallback",
    "Result",
    "SafetyLevel",
    "Step",
]
