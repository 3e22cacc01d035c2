"""
Safety guardrails.

Every action the model requests passes through ``Guardrails.validate_action``
before it reaches a tool. Validation raises one of the guardrail errors when
the action must not run; the checks happen in a fixed order:

1. a pending takeover request (the guardrails become paused)
2. already paused
3. too many consecutive failures
4. the per-minute rate limit
5. sensitive patterns, unless the level is minimal

One lock covers the counters, the paused flag and the audit append.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from cua_agent.domain.errors import (
    ConsecutiveFailuresError,
    RateLimitedError,
    SafetyError,
    TakeoverRequestedError,
)
from cua_agent.domain.types import SafetyLevel

from .audit_log import AuditEntry, AuditLog
from .rate_limiter import DEFAULT_MAX_PER_MINUTE, RateLimiter
from .sensitive import SensitiveDetector, SensitiveLevel
from .takeover import TakeoverController, TakeoverHandler, TakeoverReason

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONSECUTIVE_FAILURES = 5


@dataclass
class GuardrailsConfig:
    level: SafetyLevel = SafetyLevel.NORMAL
    max_actions_per_minute: int = DEFAULT_MAX_PER_MINUTE
    max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES
    audit_log_path: Optional[Union[str, Path]] = None


class Guardrails:
    """
    Precondition checks and failure accounting for agent actions.

    Example:
        guardrails = Guardrails(GuardrailsConfig(level=SafetyLevel.STRICT))
        try:
            guardrails.validate_action("type_text", "hunter2", "Executed type_text")
        except SafetyBlockError:
            ...
    """

    def __init__(
        self,
        config: Optional[GuardrailsConfig] = None,
        detector: Optional[SensitiveDetector] = None,
        takeover_handler: Optional[TakeoverHandler] = None,
    ) -> None:
        self.config = config or GuardrailsConfig()
        if self.config.max_consecutive_failures <= 0:
            self.config.max_consecutive_failures = DEFAULT_MAX_CONSECUTIVE_FAILURES

        self.rate_limiter = RateLimiter(self.config.max_actions_per_minute)
        self.sensitive_detector = detector or SensitiveDetector()
        self.audit = AuditLog(log_file=self.config.audit_log_path)
        self.takeover = TakeoverController(takeover_handler)

        self._lock = threading.Lock()
        self._consecutive_failures = 0
        self._paused = False

    def validate_action(self, action: str, target: str = "", description: str = "") -> None:
        """
        Check whether an action may run.

        Raises:
            TakeoverRequestedError: A takeover is pending or the agent is paused
            ConsecutiveFailuresError: Too many failures in a row
            RateLimitedError: The per-minute budget is used up
            SafetyError: The action matched a blocking sensitive pattern
        """
        with self._lock:
            event = self.takeover.pending()
            if event is not None:
                self._paused = True
                self.audit.log_warning(
                    "Takeover requested",
                    {"action": action, "target": target, "reason": event.reason.value},
                )
                raise TakeoverRequestedError()

            if self._paused:
                self.audit.log_warning("Action while paused", {"action": action, "target": target})
                raise TakeoverRequestedError()

            if self._consecutive_failures >= self.config.max_consecutive_failures:
                self.audit.log_warning(
                    "Too many consecutive failures",
                    {"action": action, "failures": self._consecutive_failures},
                )
                raise ConsecutiveFailuresError()

            if not self.rate_limiter.allow():
                self.audit.log_warning("Rate limited", {"action": action, "target": target})
                raise RateLimitedError()

            if self.config.level != SafetyLevel.MINIMAL:
                self._check_sensitive(action, target, description)

            self.audit.log_action(action, description, target)

    def _check_sensitive(self, action: str, target: str, description: str) -> None:
        found = self.sensitive_detector.check(action, target, description)
        if not found:
            return

        level = self.sensitive_detector.highest_level(found)
        names = [m.pattern.name for m in found]
        logger.warning(f"Sensitive action detected: {action} matched {names} ({level.name})")
        self.audit.log_warning(
            "Sensitive action detected",
            {"action": action, "target": target, "matches": names, "level": level.name},
        )

        worst = max(found, key=lambda m: m.pattern.level)
        if self.config.level == SafetyLevel.STRICT and level >= SensitiveLevel.CONFIRM:
            raise SafetyError(action, f"{worst.pattern.description} (strict mode)")
        if level >= SensitiveLevel.BLOCK:
            raise SafetyError(action, worst.pattern.description)

    def record_success(self, action: str, target: str = "", result: str = "") -> None:
        with self._lock:
            self._consecutive_failures = 0
            self.audit.log_action_result(action, "Action succeeded", target, result)

    def record_failure(self, action: str, target: str = "", error: Optional[BaseException] = None) -> None:
        with self._lock:
            self._consecutive_failures += 1
            self.audit.log_action_result(
                action, "Action failed", target, error=error or RuntimeError("unknown error")
            )

    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def reset_failures(self) -> None:
        with self._lock:
            self._consecutive_failures = 0

    def request_takeover(
        self, reason: TakeoverReason = TakeoverReason.PROGRAMMATIC, message: str = ""
    ) -> None:
        """Ask the agent to stop at its next action. Safe to call from any thread."""
        self.takeover.request_async(reason, message)

    def takeover_requested(self) -> bool:
        with self._lock:
            return self._paused

    def resume(self) -> None:
        """Clear the paused flag and drop any request still waiting in the slot."""
        with self._lock:
            self._paused = False
            self.takeover.pending()

    def begin_run(self) -> None:
        """
        Reset per-run state before a task starts.

        Failures and the paused flag belong to the previous run; a takeover
        requested in between stays queued for the new one.
        """
        with self._lock:
            self._consecutive_failures = 0
            self._paused = False

    def pause(self) -> None:
        with self._lock:
            self._paused = True

    def is_paused(self) -> bool:
        with self._lock:
            return self._paused

    def audit_entries(self) -> List[AuditEntry]:
        return self.audit.entries()

    def set_level(self, level: Union[SafetyLevel, str]) -> None:
        with self._lock:
            self.config.level = SafetyLevel(level)
