"""
Platform detection and keyboard conventions.

The system prompt tells the model which modifier key and app launcher the
current OS uses; everything it needs comes from here.
"""

import platform
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class OSType(str, Enum):
    """Operating system identifiers."""

    DARWIN = "darwin"
    WINDOWS = "windows"
    LINUX = "linux"
    UNKNOWN = "unknown"


_DISPLAY_NAMES = {
    OSType.DARWIN: "macOS",
    OSType.WINDOWS: "Windows",
    OSType.LINUX: "Linux",
}


@dataclass
class PlatformInfo:
    """Current platform."""

    os: OSType
    arch: str
    display_name: str


@dataclass
class Shortcut:
    """A keyboard shortcut."""

    description: str
    key: str
    modifiers: List[str] = field(default_factory=list)

    def format(self) -> str:
        return format_shortcut(self.key, self.modifiers)


@dataclass
class AppLauncherInfo:
    """How to open applications on this platform."""

    name: str
    open_method: str
    key: str
    modifiers: List[str] = field(default_factory=list)


@dataclass
class KeyboardInfo:
    """Platform keyboard conventions."""

    primary_modifier: str
    secondary_modifier: str
    app_launcher: AppLauncherInfo
    common_shortcuts: Dict[str, Shortcut]


def detect_os(name: Optional[str] = None) -> OSType:
    name = (name or sys.platform).lower()
    if name.startswith("darwin"):
        return OSType.DARWIN
    if name.startswith(("win", "cygwin")):
        return OSType.WINDOWS
    if name.startswith("linux"):
        return OSType.LINUX
    return OSType.UNKNOWN


def current(os_name: Optional[str] = None) -> PlatformInfo:
    """Get information about the current platform."""
    os_type = detect_os(os_name)
    return PlatformInfo(
        os=os_type,
        arch=platform.machine().lower() or "unknown",
        display_name=_DISPLAY_NAMES.get(os_type, os_type.value),
    )


def is_macos() -> bool:
    return detect_os() == OSType.DARWIN


def is_windows() -> bool:
    return detect_os() == OSType.WINDOWS


def is_linux() -> bool:
    return detect_os() == OSType.LINUX


def _shortcuts(primary: str, quit_shortcut: Shortcut, redo: Shortcut, switch_mod: str) -> Dict[str, Shortcut]:
    return {
        "copy": Shortcut("Copy", "c", [primary]),
        "paste": Shortcut("Paste", "v", [primary]),
        "cut": Shortcut("Cut", "x", [primary]),
        "undo": Shortcut("Undo", "z", [primary]),
        "redo": redo,
        "save": Shortcut("Save", "s", [primary]),
        "select_all": Shortcut("Select All", "a", [primary]),
        "find": Shortcut("Find", "f", [primary]),
        "quit": quit_shortcut,
        "close": Shortcut("Close Window", "w", [primary]),
        "new_tab": Shortcut("New Tab", "t", [primary]),
        "switch_app": Shortcut("Switch Application", "tab", [switch_mod]),
    }


def get_keyboard_info(os_name: Optional[str] = None) -> KeyboardInfo:
    """Keyboard conventions for the given (default: current) platform."""
    os_type = detect_os(os_name)

    if os_type == OSType.DARWIN:
        return KeyboardInfo(
            primary_modifier="cmd",
            secondary_modifier="ctrl",
            app_launcher=AppLauncherInfo(
                name="Spotlight",
                open_method="Press Cmd+Space to open Spotlight search",
                key="space",
                modifiers=["cmd"],
            ),
            common_shortcuts=_shortcuts(
                "cmd",
                quit_shortcut=Shortcut("Quit Application", "q", ["cmd"]),
                redo=Shortcut("Redo", "z", ["cmd", "shift"]),
                switch_mod="cmd",
            ),
        )

    if os_type == OSType.WINDOWS:
        return KeyboardInfo(
            primary_modifier="ctrl",
            secondary_modifier="alt",
            # the Windows key is injected as "cmd"
            app_launcher=AppLauncherInfo(
                name="Start Menu",
                open_method="Press Windows key to open Start Menu",
                key="cmd",
            ),
            common_shortcuts=_shortcuts(
                "ctrl",
                quit_shortcut=Shortcut("Quit Application", "f4", ["alt"]),
                redo=Shortcut("Redo", "y", ["ctrl"]),
                switch_mod="alt",
            ),
        )

    return KeyboardInfo(
        primary_modifier="ctrl",
        secondary_modifier="alt",
        app_launcher=AppLauncherInfo(
            name="Application Menu",
            open_method="Press Super/Meta key to open application menu",
            key="cmd",
        ),
        common_shortcuts=_shortcuts(
            "ctrl",
            quit_shortcut=Shortcut("Quit Application", "q", ["ctrl"]),
            redo=Shortcut("Redo", "z", ["ctrl", "shift"]),
            switch_mod="alt",
        ),
    )


def format_shortcut(key: str, modifiers: List[str]) -> str:
    """Render a shortcut as ``mod+mod+key``."""
    if not modifiers:
        return key
    return "+".join(modifiers) + "+" + key


def to_prompt_context(os_name: Optional[str] = None) -> str:
    """Render platform information as a block for the system prompt."""
    info = current(os_name)
    kb = get_keyboard_info(os_name)

    lines = [
        "<platform>",
        f"  <os>{info.display_name}</os>",
        f"  <os_id>{info.os.value}</os_id>",
        f"  <arch>{info.arch}</arch>",
        f"  <primary_modifier>{kb.primary_modifier}</primary_modifier>",
        "  <app_launcher>",
        f"    <name>{kb.app_launcher.name}</name>",
        f"    <how_to_open>{kb.app_launcher.open_method}</how_to_open>",
        f"    <key>{kb.app_launcher.key}</key>",
    ]
    if kb.app_launcher.modifiers:
        lines.append(f"    <modifiers>{', '.join(kb.app_launcher.modifiers)}</modifiers>")
    lines.append("  </app_launcher>")
    lines.append("  <common_shortcuts>")
    for name, shortcut in kb.common_shortcuts.items():
        lines.append(f"    <{name}>{shortcut.format()}</{name}>")
    lines.append("  </common_shortcuts>")
    lines.append("</platform>")
    return "\n".join(lines)


def app_open_instructions(app_name: str, os_name: Optional[str] = None) -> str:
    """Human-readable steps for opening an application."""
    kb = get_keyboard_info(os_name)
    launcher = kb.app_launcher
    if launcher.modifiers:
        how = f"Press {format_shortcut(launcher.key, launcher.modifiers)} to open {launcher.name}"
    else:
        how = launcher.open_method
    return f'To open {app_name}: {how}, type "{app_name}", then press Enter.'
