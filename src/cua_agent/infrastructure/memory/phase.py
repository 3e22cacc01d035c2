"""
Workflow phase inference from what is on screen.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple

from cua_agent.domain.types import Phase

TEXT_INPUT_ROLES = frozenset({"textfield", "textarea", "combobox"})

# Ordered: the first phase whose keywords appear wins.
KEYWORD_RULES: Tuple[Tuple[Phase, Tuple[str, ...]], ...] = (
    (Phase.CHECKOUT, ("checkout", "place order", "credit card", "card number", "billing", "payment")),
    (
        Phase.AUTHENTICATION,
        ("sign in", "log in", "login", "password", "two-factor", "verification code", "username"),
    ),
    (
        Phase.CONFIRMATION,
        ("are you sure", "confirm", "order placed", "successfully", "thank you for"),
    ),
    (Phase.SEARCH, ("search results", "results for", "search")),
    (Phase.FORM_FILLING, ("first name", "last name", "email address", "required field", "submit")),
    (Phase.NAVIGATION, ("address bar", "go to", "menu", "navigate")),
)

FLAG_PHASES = {
    "checkout": Phase.CHECKOUT,
    "payment_form": Phase.CHECKOUT,
    "login_form": Phase.AUTHENTICATION,
    "password_field": Phase.AUTHENTICATION,
    "confirm_dialog": Phase.CONFIRMATION,
    "search_box": Phase.SEARCH,
    "form": Phase.FORM_FILLING,
}


@dataclass
class Observation:
    """What the agent last saw: visible text, the focused element's role and detector flags."""

    visible_text: str = ""
    focused_role: str = ""
    flags: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, visible_text: str = "", focused_role: str = "", flags: Optional[Iterable[str]] = None) -> "Observation":
        return cls(visible_text, focused_role, frozenset(flags or ()))


class PhaseDetector:
    """
    Maps an observation to a phase.

    Flags are the strongest signal, then keywords in the visible text, then
    the focused role. Returns ``None`` when nothing points anywhere, so the
    current phase is kept.
    """

    def detect(self, observation: Observation) -> Optional[Phase]:
        for flag in sorted(observation.flags):
            phase = FLAG_PHASES.get(flag.lower())
            if phase is not None:
                return phase

        text = observation.visible_text.lower()
        role = observation.focused_role.lower()

        if text:
            for phase, keywords in KEYWORD_RULES:
                if any(k in text for k in keywords):
                    # Typing into a field is form filling even on a navigation page.
                    if phase == Phase.NAVIGATION and role in TEXT_INPUT_ROLES:
                        return Phase.FORM_FILLING
                    return phase

        if role in TEXT_INPUT_ROLES:
            return Phase.FORM_FILLING
        if role in ("link", "webarea", "scrollarea"):
            return Phase.BROWSING
        return None
