"""
Key name canonicalization.

Models name keys in many ways ("return", "Esc", "option", "win"). Everything
is folded to one canonical vocabulary before it reaches the input backend.
"""

from typing import Iterable, List, Tuple

KEY_ALIASES = {
    "return": "enter",
    "esc": "escape",
    "del": "delete",
    "bs": "backspace",
    "pgup": "pageup",
    "pgdn": "pagedown",
    "pgdown": "pagedown",
    "arrowup": "up",
    "arrowdown": "down",
    "arrowleft": "left",
    "arrowright": "right",
    "spacebar": "space",
}

MODIFIER_ALIASES = {
    "cmd": "cmd",
    "command": "cmd",
    "meta": "cmd",
    "win": "cmd",
    "windows": "cmd",
    "super": "cmd",
    "ctrl": "ctrl",
    "control": "ctrl",
    "alt": "alt",
    "option": "alt",
    "shift": "shift",
    "fn": "fn",
}


def normalize_key(key: str) -> str:
    """Canonical name for a key; modifiers pressed alone keep their canonical modifier name."""
    name = key.strip().lower()
    if name in MODIFIER_ALIASES:
        return MODIFIER_ALIASES[name]
    return KEY_ALIASES.get(name, name)


def normalize_modifier(modifier: str) -> str:
    """
    Canonical name for a modifier.

    Raises:
        ValueError: If the name is not a known modifier
    """
    name = modifier.strip().lower()
    try:
        return MODIFIER_ALIASES[name]
    except KeyError:
        raise ValueError(f"unknown modifier: {modifier}") from None


def normalize_modifiers(modifiers: Iterable[str]) -> List[str]:
    """Canonical, de-duplicated modifiers in the order they were given."""
    result: List[str] = []
    for modifier in modifiers:
        canonical = normalize_modifier(modifier)
        if canonical not in result:
            result.append(canonical)
    return result


def parse_combo(combo: str) -> Tuple[str, List[str]]:
    """
    Split a ``cmd+shift+t`` style combo into (key, modifiers).

    A trailing ``+`` means the plus key itself: ``ctrl++`` is ctrl and "+".
    """
    text = combo.strip()
    if text.endswith("++"):
        parts = text[:-2].split("+") + ["+"]
    else:
        parts = text.split("+")
    parts = [p for p in parts if p]
    if not parts:
        raise ValueError("empty key combination")
    return normalize_key(parts[-1]), normalize_modifiers(parts[:-1])
