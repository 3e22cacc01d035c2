"""Platform detection and keyboard conventions."""

from .platform_info import (
    AppLauncherInfo,
    KeyboardInfo,
    OSType,
    PlatformInfo,
    Shortcut,
    app_open_instructions,
    current,
    detect_os,
    format_shortcut,
    get_keyboard_info,
    is_linux,
    is_macos,
    is_windows,
    to_prompt_context,
)

__all__ = [
    "AppLauncherInfo",
    "KeyboardInfo",
    "OSType",
    "PlatformInfo",
    "Shortcut",
    "app_open_instructions",
    "current",
    "detect_os",
    "format_shortcut",
    "get_keyboard_info",
    "is_linux",
    "is_macos",
    "is_windows",
    "to_prompt_context",
]
