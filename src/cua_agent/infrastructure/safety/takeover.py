"""
Human takeover: handing control from the agent to a person.

Triggers from outside the loop (a hotkey, ``Agent.request_takeover``) go
through ``request_async``, which parks the event in a single-slot channel;
the guardrails pick it up with ``pending`` before the next action.

The loop then consults the handler with ``request``. A handler answers
directly, or returns None when the answer comes later from another thread
through ``respond``; the loop collects it with ``wait_for_response``.
"""

import asyncio
import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from cua_agent.domain.errors import TaskTimeoutError

logger = logging.getLogger(__name__)

MAX_HISTORY = 100
RESPONSE_POLL_INTERVAL = 0.05


class TakeoverReason(str, Enum):
    HOTKEY = "hotkey"
    CONSECUTIVE_FAILURES = "consecutive_failures"
    SENSITIVE_ACTION = "sensitive_action"
    PROGRAMMATIC = "programmatic"
    TIMEOUT = "timeout"


class TakeoverResponse(str, Enum):
    """What the agent should do once the human is done."""

    ABORT = "abort"
    RESUME = "resume"
    RETRY = "retry"


@dataclass
class TakeoverEvent:
    reason: TakeoverReason
    message: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


TakeoverHandler = Callable[[TakeoverEvent], Optional[TakeoverResponse]]


def abort_handler(event: TakeoverEvent) -> TakeoverResponse:
    """Default handler: nobody is watching, so stop."""
    return TakeoverResponse.ABORT


class TakeoverController:
    """Manages takeover requests, responses and a bounded event history."""

    def __init__(self, handler: Optional[TakeoverHandler] = None) -> None:
        self._handler: TakeoverHandler = handler or abort_handler
        self._requests: "queue.Queue[TakeoverEvent]" = queue.Queue(maxsize=1)
        self._responses: "queue.Queue[TakeoverResponse]" = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._active = False
        self._last_event: Optional[TakeoverEvent] = None
        self._history: List[TakeoverEvent] = []

    def _record(self, event: TakeoverEvent) -> None:
        with self._lock:
            self._active = True
            self._last_event = event
            self._history.append(event)
            if len(self._history) > MAX_HISTORY:
                del self._history[: len(self._history) - MAX_HISTORY]

    def request(self, reason: TakeoverReason, message: str = "") -> Optional[TakeoverResponse]:
        """
        Trigger a takeover and block on the handler's answer.

        Returns:
            The handler's response, or None when it will answer through ``respond``
        """
        event = TakeoverEvent(reason=reason, message=message)
        self._record(event)
        with self._lock:
            handler = self._handler

        # A response left over from an earlier takeover must not answer this one.
        try:
            self._responses.get_nowait()
        except queue.Empty:
            pass

        logger.info(f"Takeover requested ({reason.value}): {message}")
        try:
            response = handler(event)
        except Exception:
            with self._lock:
                self._active = False
            raise

        if response is not None:
            with self._lock:
                self._active = False
        return response

    def request_async(self, reason: TakeoverReason, message: str = "") -> None:
        """Queue a takeover; a second request while one is pending is dropped."""
        event = TakeoverEvent(reason=reason, message=message)
        self._record(event)
        try:
            self._requests.put_nowait(event)
        except queue.Full:
            logger.debug("Takeover already pending, request dropped")

    def pending(self) -> Optional[TakeoverEvent]:
        """Take the pending request out of the slot, if any."""
        try:
            return self._requests.get_nowait()
        except queue.Empty:
            return None

    async def wait_for_response(self, timeout: Optional[float] = None) -> TakeoverResponse:
        """
        Wait for ``respond`` to be called.

        Raises:
            TaskTimeoutError: If no response arrives within ``timeout`` seconds
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            try:
                response = self._responses.get_nowait()
            except queue.Empty:
                if deadline is not None and time.monotonic() >= deadline:
                    raise TaskTimeoutError("safety: no takeover response received")
                await asyncio.sleep(RESPONSE_POLL_INTERVAL)
                continue

            with self._lock:
                self._active = False
            return response

    def respond(self, response: TakeoverResponse) -> bool:
        """Answer a pending async request. Returns False if an answer is already queued."""
        try:
            self._responses.put_nowait(response)
            return True
        except queue.Full:
            return False

    def is_active(self) -> bool:
        with self._lock:
            return self._active

    def last_event(self) -> Optional[TakeoverEvent]:
        with self._lock:
            return self._last_event

    def history(self) -> List[TakeoverEvent]:
        with self._lock:
            return list(self._history)

    def clear_history(self) -> None:
        with self._lock:
            self._history = []
            self._last_event = None

    def set_handler(self, handler: TakeoverHandler) -> None:
        with self._lock:
            self._handler = handler
