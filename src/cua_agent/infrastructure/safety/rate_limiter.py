"""
Sliding-window action rate limiter.

Tracks the timestamps of admitted actions over the last minute. ``allow``
is the non-blocking check used by the guardrails; ``wait`` suspends until
a slot frees up.

Example:
    limiter = RateLimiter(max_per_minute=30)

    if limiter.allow():
        await do_action()

    waited = await limiter.wait()
"""

import asyncio
import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_PER_MINUTE = 60
WINDOW_SECONDS = 60.0


class RateLimiter:
    """Admits at most ``max_per_minute`` actions in any 60 second window."""

    def __init__(
        self,
        max_per_minute: int = DEFAULT_MAX_PER_MINUTE,
        window_seconds: float = WINDOW_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if max_per_minute <= 0:
            max_per_minute = DEFAULT_MAX_PER_MINUTE
        self.max_per_minute = max_per_minute
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._actions: Deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._actions and self._actions[0] < cutoff:
            self._actions.popleft()

    def allow(self) -> bool:
        """Admit and record one action if the window has room."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._actions) >= self.max_per_minute:
                return False
            self._actions.append(now)
            return True

    async def wait(self, admit: bool = True) -> float:
        """
        Suspend until the window has room.

        Args:
            admit: Record the admitted action; False only waits for a free slot

        Returns:
            Seconds spent waiting
        """
        start = self._clock()
        while True:
            with self._lock:
                now = self._clock()
                self._prune(now)
                if len(self._actions) < self.max_per_minute:
                    if admit:
                        self._actions.append(now)
                    return now - start
                delay = self._actions[0] + self.window_seconds - now

            logger.debug(f"Rate limit reached, waiting {delay:.2f}s")
            await asyncio.sleep(max(delay, 0.01))

    def available(self) -> int:
        """Slots left in the current window."""
        with self._lock:
            self._prune(self._clock())
            return self.max_per_minute - len(self._actions)

    def reset(self) -> None:
        with self._lock:
            self._actions.clear()
