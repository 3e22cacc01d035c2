"""
Error taxonomy for the Computer Use Agent.

Every failure the agent can surface is an exception class below. Callers
compare by class (``matches(err, RateLimitedError)``) rather than by message,
and the wrapper exceptions (ActionError, TaskError, ...) keep the underlying
error reachable through ``.error`` and ``__cause__``.

Tools never raise these for recoverable problems; they report them to the
model as ``{"success": false, "error": ...}`` observations instead.
"""

from typing import Optional


class CUAError(Exception):
    """Base class for all agent errors."""

    default_message = "cua: error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


# ============================================================================
# Sentinel errors
# ============================================================================


class NoAPIKeyError(CUAError):
    default_message = "cua: no API key provided (set GOOGLE_API_KEY or use api_key option)"


class TaskTimeoutError(CUAError):
    default_message = "cua: task timed out"


class CanceledError(CUAError):
    default_message = "cua: task was canceled"


class MaxActionsError(CUAError):
    default_message = "cua: maximum actions exceeded"


class AgentBusyError(CUAError):
    default_message = "cua: agent is already running a task"


class HumanTakeoverError(CUAError):
    default_message = "cua: human takeover requested"


class AgentStuckError(CUAError):
    default_message = "cua: agent appears stuck"


class PermissionDeniedError(CUAError):
    default_message = "cua: permission denied (check accessibility/screen recording settings)"


class ElementNotFoundError(CUAError):
    default_message = "cua: element not found"


class NotSupportedError(CUAError):
    default_message = "cua: operation not supported on this platform"


class RateLimitedError(CUAError):
    default_message = "cua: rate limited - too many actions"


class SafetyBlockError(CUAError):
    default_message = "cua: action blocked by safety guardrails"


# Guardrail-local conditions. Both terminate the run when raised by validation.


class TakeoverRequestedError(HumanTakeoverError):
    default_message = "safety: human takeover requested"


class ConsecutiveFailuresError(CUAError):
    default_message = "safety: too many consecutive failures"


# Screen capture errors


class NoDisplaysError(CUAError):
    default_message = "screen: no displays found"


class InvalidDisplayError(CUAError):
    default_message = "screen: invalid display index"


class CaptureFailedError(CUAError):
    default_message = "screen: capture failed"


class InvalidRectError(CUAError):
    default_message = "screen: invalid rectangle (width and height must be positive)"


class UnknownToolError(CUAError):
    default_message = "cua: unknown tool"


# ============================================================================
# Wrapper errors
# ============================================================================


class ActionError(CUAError):
    """An error that occurred while executing one agent step."""

    def __init__(self, action: str, description: str, step: int, error: BaseException):
        self.action = action
        self.description = description
        self.step = step
        self.error = error
        if description:
            message = f"cua: step {step} failed: {action} ({description}): {error}"
        else:
            message = f"cua: step {step} failed: {action}: {error}"
        super().__init__(message)
        self.__cause__ = error


class TaskError(CUAError):
    """An error that caused a whole task to fail."""

    def __init__(
        self,
        task: str,
        error: BaseException,
        steps_total: int = 0,
        steps_failed: int = 0,
        last_action: str = "",
    ):
        self.task = task
        self.error = error
        self.steps_total = steps_total
        self.steps_failed = steps_failed
        self.last_action = last_action
        if steps_total > 0:
            message = (
                f"cua: task failed after {steps_total} steps "
                f"({steps_failed} failed): {error}"
            )
        else:
            message = f"cua: task failed: {error}"
        super().__init__(message)
        self.__cause__ = error


class ElementError(ElementNotFoundError):
    """An element lookup failed for the given selector."""

    def __init__(self, selector: str, error: Optional[BaseException] = None):
        self.selector = selector
        self.error = error or ElementNotFoundError()
        super().__init__(f"cua: element {selector!r}: {self.error}")
        self.__cause__ = self.error


class AccessPermissionError(PermissionDeniedError):
    """A required OS permission (accessibility, screen recording) is missing."""

    def __init__(self, permission: str, error: Optional[BaseException] = None):
        self.permission = permission
        self.error = error or PermissionDeniedError()
        super().__init__(f"cua: {permission} permission denied: {self.error}")
        self.__cause__ = self.error


class SafetyError(SafetyBlockError):
    """An action was blocked by the safety guardrails."""

    def __init__(self, action: str, reason: str, error: Optional[BaseException] = None):
        self.action = action
        self.reason = reason
        self.error = error or SafetyBlockError()
        super().__init__(f"cua: action {action!r} blocked: {reason}")
        self.__cause__ = self.error


# ============================================================================
# Classification
# ============================================================================


def matches(err: Optional[BaseException], cls: type) -> bool:
    """Report whether ``err`` or any error it wraps is an instance of ``cls``."""
    seen = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, cls):
            return True
        seen.add(id(err))
        err = getattr(err, "error", None) or err.__cause__
    return False


def is_retryable(err: Optional[BaseException]) -> bool:
    """Rate limits and element lookups inside an action may succeed on retry."""
    if err is None:
        return False
    if matches(err, RateLimitedError):
        return True
    if isinstance(err, ActionError) and matches(err.error, ElementNotFoundError):
        return True
    return False


def is_fatal(err: Optional[BaseException]) -> bool:
    """Errors after which retrying the task cannot help."""
    if err is None:
        return False
    return any(
        matches(err, cls)
        for cls in (
            NoAPIKeyError,
            PermissionDeniedError,
            NotSupportedError,
            HumanTakeoverError,
            CanceledError,
        )
    )
