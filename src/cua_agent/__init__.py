"""
cua_agent - a desktop Computer Use Agent.

Usage:
    import cua_agent

    agent = cua_agent.new()
    result = agent.do("open calculator")
    if not result.success:
        print(result.error)
"""

__version__ = "0.1.0-dev"

from .agent import Agent, configure_logging, new  # noqa: E402
from .configuration import AgentConfig, ScreenshotConfig  # noqa: E402
from .domain import (  # noqa: E402
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
    Model,
    NoAPIKeyError,
    NotSupportedError,
    PermissionDeniedError,
    ProgressCallback,
    RateLimitedError,
    Result,
    SafetyBlockError,
    SafetyError,
    SafetyLevel,
    Step,
    TaskError,
    TaskTimeoutError,
    is_fatal,
    is_retryable,
    matches,
)

__all__ = [
    "__version__",
    "Agent",
    "configure_logging",
    "new",
    "AgentConfig",
    "ScreenshotConfig",
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
    "Model",
    "NoAPIKeyError",
    "NotSupportedError",
    "PermissionDeniedError",
    "ProgressCallback",
    "RateLimitedError",
    "Result",
    "SafetyBlockError",
    "SafetyError",
    "SafetyLevel",
    "Step",
    "TaskError",
    "TaskTimeoutError",
    "is_fatal",
    "is_retryable",
    "matches",
]
