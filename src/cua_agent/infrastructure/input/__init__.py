"""Mouse and keyboard input."""

from .backend import (
    VALID_BUTTONS,
    InputAdapter,
    InputBackend,
    InputTiming,
    PyAutoGUIBackend,
    escape_applescript,
)
from .keys import normalize_key, normalize_modifier, normalize_modifiers, parse_combo

__all__ = [
    "VALID_BUTTONS",
    "InputAdapter",
    "InputBackend",
    "InputTiming",
    "PyAutoGUIBackend",
    "escape_applescript",
    "normalize_key",
    "normalize_modifier",
    "normalize_modifiers",
    "parse_combo",
]
