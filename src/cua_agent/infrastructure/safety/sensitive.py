"""
Sensitive action detection.

Patterns are plain data: a name, a regular expression, a severity and a
human description. The guardrails decide what to do with a match based on
the configured safety level.
"""

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple


class SensitiveLevel(IntEnum):
    """Severity of a sensitive match, ordered."""

    WARNING = 0
    CONFIRM = 1
    BLOCK = 2


@dataclass
class SensitivePattern:
    name: str
    pattern: Pattern[str]
    level: SensitiveLevel
    description: str = ""

    @classmethod
    def compile(
        cls, name: str, regex: str, level: SensitiveLevel, description: str = ""
    ) -> "SensitivePattern":
        return cls(name, re.compile(regex, re.IGNORECASE), level, description)


@dataclass
class SensitiveMatch:
    pattern: SensitivePattern
    matched_text: str


# (name, regex, level, description)
DEFAULT_PATTERNS: Tuple[Tuple[str, str, SensitiveLevel, str], ...] = (
    # Credentials
    (
        "password_field",
        r"(password|passwd|pwd|credential|secret|token)",
        SensitiveLevel.CONFIRM,
        "Interacting with password or credential fields",
    ),
    (
        "api_key",
        r"(api[_-]?key|access[_-]?token|auth[_-]?token|bearer)",
        SensitiveLevel.BLOCK,
        "Interacting with API keys or tokens",
    ),
    # System settings
    (
        "system_preferences",
        r"(system preferences|system settings|control panel|admin|administrator)",
        SensitiveLevel.CONFIRM,
        "Accessing system settings",
    ),
    (
        "security_privacy",
        r"(security|privacy|firewall|permissions|accessibility)",
        SensitiveLevel.CONFIRM,
        "Accessing security or privacy settings",
    ),
    # Money
    (
        "payment",
        r"(credit card|debit card|payment|checkout|purchase|buy now|billing)",
        SensitiveLevel.CONFIRM,
        "Interacting with payment or financial information",
    ),
    (
        "banking",
        r"(bank|account number|routing number|wire transfer|cryptocurrency|wallet)",
        SensitiveLevel.BLOCK,
        "Interacting with banking information",
    ),
    # Personal information
    (
        "ssn",
        r"(ssn|social security|national id|passport|driver.?s? license)",
        SensitiveLevel.BLOCK,
        "Interacting with government ID or SSN fields",
    ),
    # Destructive
    (
        "delete",
        r"(delete|remove|erase|clear all|reset|format|wipe)",
        SensitiveLevel.CONFIRM,
        "Performing destructive action",
    ),
    (
        "shutdown",
        r"(shutdown|restart|reboot|power off|force quit|kill)",
        SensitiveLevel.CONFIRM,
        "Shutting down or restarting system/application",
    ),
    # Communication
    (
        "send_email",
        r"(send|submit|post|publish|broadcast).*?(email|message|mail)",
        SensitiveLevel.CONFIRM,
        "Sending email or message",
    ),
    # Code execution
    (
        "terminal",
        r"(terminal|command prompt|powershell|bash|shell|sudo|su\s)",
        SensitiveLevel.CONFIRM,
        "Interacting with terminal or command line",
    ),
)


def default_patterns() -> List[SensitivePattern]:
    return [SensitivePattern.compile(*row) for row in DEFAULT_PATTERNS]


class SensitiveDetector:
    """
    Matches action text against a pattern table.

    The checked text is ``action + " " + target + " " + description``,
    lowercased.
    """

    def __init__(self, patterns: Optional[Iterable[SensitivePattern]] = None):
        self._patterns: List[SensitivePattern] = (
            list(patterns) if patterns is not None else default_patterns()
        )

    @property
    def patterns(self) -> List[SensitivePattern]:
        return list(self._patterns)

    def check(self, action: str, target: str = "", description: str = "") -> List[SensitiveMatch]:
        """Return every pattern that matches (empty when the action is harmless)."""
        text = f"{action} {target} {description}".lower()
        found = []
        for pattern in self._patterns:
            m = pattern.pattern.search(text)
            if m:
                found.append(SensitiveMatch(pattern=pattern, matched_text=m.group(0)))
        return found

    def is_sensitive(self, action: str, target: str = "", description: str = "") -> bool:
        return bool(self.check(action, target, description))

    @staticmethod
    def highest_level(found: Sequence[SensitiveMatch]) -> SensitiveLevel:
        highest = SensitiveLevel.WARNING
        for match in found:
            if match.pattern.level > highest:
                highest = match.pattern.level
        return highest

    def add_pattern(self, pattern: SensitivePattern) -> None:
        self._patterns.append(pattern)

    def remove_pattern(self, name: str) -> bool:
        for i, pattern in enumerate(self._patterns):
            if pattern.name == name:
                del self._patterns[i]
                return True
        return False
