"""
Input injection.

``InputBackend`` is the narrow synchronous surface over the OS (move, press,
release, tap). ``InputAdapter`` builds the timed sequences the tools need on
top of it: clicks with a settle delay, interpolated drags, key combos and
human-paced typing. All waits are ``asyncio.sleep`` so cancelling the task
stops a sequence between primitives.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

from cua_agent.infrastructure.platform import OSType, detect_os

from .keys import normalize_key, normalize_modifiers

logger = logging.getLogger(__name__)

VALID_BUTTONS = ("left", "right", "middle")


class InputBackend(Protocol):
    """Protocol for OS-level mouse and keyboard primitives (logical coordinates)."""

    def move(self, x: int, y: int) -> None: ...

    def mouse_down(self, button: str = "left") -> None: ...

    def mouse_up(self, button: str = "left") -> None: ...

    def click(self, button: str = "left", clicks: int = 1) -> None: ...

    def scroll(self, delta_x: int, delta_y: int) -> None: ...

    def key_down(self, key: str) -> None: ...

    def key_up(self, key: str) -> None: ...

    def key_tap(self, key: str) -> None: ...

    def type_char(self, char: str) -> None: ...

    def position(self) -> Tuple[int, int]: ...


class PyAutoGUIBackend:
    """
    Input backend on pyautogui.

    pyautogui's own inter-call pause is disabled; pacing is done by
    ``InputAdapter``. The corner fail-safe stays on.
    """

    def __init__(self, os_type: Optional[OSType] = None) -> None:
        # pyautogui connects to the display server on import.
        import pyautogui

        self._gui = pyautogui
        self._gui.PAUSE = 0
        self._gui.FAILSAFE = True
        self._os_type = os_type or detect_os()

    def _key_name(self, key: str) -> str:
        key = normalize_key(key)
        if key == "cmd":
            return "command" if self._os_type == OSType.DARWIN else "win"
        if key == "escape":
            return "esc"
        return key

    def move(self, x: int, y: int) -> None:
        self._gui.moveTo(x, y)

    def mouse_down(self, button: str = "left") -> None:
        self._gui.mouseDown(button=button)

    def mouse_up(self, button: str = "left") -> None:
        self._gui.mouseUp(button=button)

    def click(self, button: str = "left", clicks: int = 1) -> None:
        # pyautogui issues the clicks back to back, inside the OS double-click window.
        self._gui.click(button=button, clicks=clicks, interval=0.05 if clicks > 1 else 0.0)

    def scroll(self, delta_x: int, delta_y: int) -> None:
        # pyautogui scrolls up for positive values; positive delta_y means down.
        if delta_y:
            self._gui.scroll(-delta_y)
        if delta_x:
            self._gui.hscroll(delta_x)

    def key_down(self, key: str) -> None:
        self._gui.keyDown(self._key_name(key))

    def key_up(self, key: str) -> None:
        self._gui.keyUp(self._key_name(key))

    def key_tap(self, key: str) -> None:
        self._gui.press(self._key_name(key))

    def type_char(self, char: str) -> None:
        self._gui.write(char)

    def position(self) -> Tuple[int, int]:
        point = self._gui.position()
        return int(point[0]), int(point[1])


@dataclass
class InputTiming:
    """Delays (seconds) used by input sequences."""

    settle: float = 0.05
    drag_step: float = 0.01
    drag_steps: int = 10
    key_before: float = 0.1
    combo_after: float = 0.3
    type_before: float = 0.2
    type_after: float = 0.1
    type_interval: float = 0.03
    type_jitter: float = 0.3
    type_min_interval: float = 0.02

    @classmethod
    def instant(cls) -> "InputTiming":
        """No delays; for tests and scripted use."""
        return cls(
            settle=0,
            drag_step=0,
            key_before=0,
            combo_after=0,
            type_before=0,
            type_after=0,
            type_interval=0,
            type_jitter=0,
            type_min_interval=0,
        )


def escape_applescript(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class InputAdapter:
    """
    Timed input sequences on top of an ``InputBackend``.

    Usage:
        adapter = InputAdapter(PyAutoGUIBackend())
        await adapter.click(756, 491)
        await adapter.key_press("t", ["cmd"])
        await adapter.type_text("hello")
    """

    def __init__(
        self,
        backend: InputBackend,
        timing: Optional[InputTiming] = None,
        os_type: Optional[OSType] = None,
        use_applescript: Optional[bool] = None,
    ) -> None:
        self._backend = backend
        self._timing = timing or InputTiming()
        self._os_type = os_type or detect_os()
        if use_applescript is None:
            use_applescript = self._os_type == OSType.DARWIN
        self._use_applescript = use_applescript

    @property
    def backend(self) -> InputBackend:
        return self._backend

    @property
    def typing_method(self) -> str:
        return "applescript" if self._use_applescript else "keystrokes"

    async def move(self, x: int, y: int) -> None:
        self._backend.move(x, y)

    async def click(self, x: int, y: int, button: str = "left", double: bool = False) -> None:
        if button not in VALID_BUTTONS:
            raise ValueError(f"invalid button: {button} (use left, right or middle)")
        self._backend.move(x, y)
        await asyncio.sleep(self._timing.settle)
        self._backend.click(button=button, clicks=2 if double else 1)

    async def drag(self, start_x: int, start_y: int, end_x: int, end_y: int, button: str = "left") -> None:
        """Press at the start, move in equal steps, release at the end."""
        steps = max(1, self._timing.drag_steps)
        self._backend.move(start_x, start_y)
        await asyncio.sleep(self._timing.settle)
        self._backend.mouse_down(button)
        try:
            await asyncio.sleep(self._timing.settle)
            for i in range(1, steps + 1):
                x = start_x + (end_x - start_x) * i // steps
                y = start_y + (end_y - start_y) * i // steps
                self._backend.move(x, y)
                await asyncio.sleep(self._timing.drag_step)
            await asyncio.sleep(self._timing.settle)
        finally:
            # Never leave the button held, even when cancelled mid-drag.
            self._backend.mouse_up(button)

    async def scroll(self, x: int, y: int, delta_x: int = 0, delta_y: int = 0) -> None:
        self._backend.move(x, y)
        await asyncio.sleep(self._timing.settle)
        self._backend.scroll(delta_x, delta_y)

    async def key_press(self, key: str, modifiers: Sequence[str] = (), hold_ms: int = 0) -> List[str]:
        """
        Press a key or combination.

        Modifiers go down in order, the key is tapped (or held for
        ``hold_ms``), then modifiers are released in reverse.

        Returns:
            Canonical modifiers that were used
        """
        key = normalize_key(key)
        mods = normalize_modifiers(modifiers)
        await asyncio.sleep(self._timing.key_before)

        pressed: List[str] = []
        try:
            for mod in mods:
                self._backend.key_down(mod)
                pressed.append(mod)
            if hold_ms > 0:
                self._backend.key_down(key)
                try:
                    await asyncio.sleep(hold_ms / 1000)
                finally:
                    self._backend.key_up(key)
            else:
                self._backend.key_tap(key)
        finally:
            for mod in reversed(pressed):
                self._backend.key_up(mod)

        if mods:
            await asyncio.sleep(self._timing.combo_after)
        return mods

    async def type_text(self, text: str) -> int:
        """
        Type text one character at a time with human-like pacing.

        On macOS characters go through System Events keystrokes, which also
        works in secure input fields where injected key events are dropped.

        Returns:
            Number of characters typed
        """
        if not text:
            raise ValueError("text cannot be empty")

        await asyncio.sleep(self._timing.type_before)
        for index, char in enumerate(text):
            if self._use_applescript:
                await self._keystroke_applescript(char)
            else:
                self._backend.type_char(char)
            if index < len(text) - 1:
                await asyncio.sleep(self._next_interval())
        await asyncio.sleep(self._timing.type_after)
        return len(text)

    def _next_interval(self) -> float:
        timing = self._timing
        jitter = timing.type_interval * timing.type_jitter
        interval = timing.type_interval + random.uniform(-jitter, jitter)
        return max(timing.type_min_interval, interval)

    async def _keystroke_applescript(self, char: str) -> None:
        script = f'tell application "System Events" to keystroke "{escape_applescript(char)}"'
        process = await asyncio.create_subprocess_exec(
            "osascript",
            "-e",
            script,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            process.kill()
            raise
        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise RuntimeError(f"osascript keystroke failed: {message}")
