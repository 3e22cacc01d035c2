"""
Progressive summarization of old actions into milestones.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

MAX_RECENT_ACTIONS = 5
MAX_RESULT_CHARS = 120


@dataclass
class ActionResult:
    """One recorded action."""

    step_number: int
    action: str
    args: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    result: str = ""
    duration: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _short(text: str, limit: int = MAX_RESULT_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class Summarizer:
    """
    Folds actions that fall out of the recent window into milestone strings.

    Consecutive successes of the same action collapse into one milestone;
    every failure becomes its own "Attempted X (failed)" entry.
    """

    def __init__(self, action_window_size: int = MAX_RECENT_ACTIONS):
        self.action_window_size = action_window_size

    def should_summarize(self, actions: List[ActionResult]) -> bool:
        return len(actions) > self.action_window_size

    def summarize(self, actions: List[ActionResult]) -> Tuple[List[str], List[ActionResult]]:
        """
        Split actions into milestones for the overflow and the retained window.

        Returns:
            Tuple of (new milestones, remaining recent actions)
        """
        if len(actions) <= self.action_window_size:
            return [], list(actions)

        cut = len(actions) - self.action_window_size
        return self.group_into_milestones(actions[:cut]), list(actions[cut:])

    def group_into_milestones(self, actions: List[ActionResult]) -> List[str]:
        milestones: List[str] = []
        group: List[ActionResult] = []

        for action in actions:
            if not action.success:
                if group:
                    milestones.append(self.summarize_group(group))
                    group = []
                milestones.append(f"Attempted {action.action} (failed)")
            elif group and group[-1].action != action.action:
                milestones.append(self.summarize_group(group))
                group = [action]
            else:
                group.append(action)

        if group:
            milestones.append(self.summarize_group(group))
        return milestones

    def summarize_group(self, actions: List[ActionResult]) -> str:
        """One milestone for a run of successes of the same action."""
        if len(actions) == 1:
            return self._describe(actions[0])

        last = actions[-1]
        text = f"Completed {len(actions)} {last.action} actions"
        if last.result:
            return f"{text} ({_short(last.result)})"
        return text

    @staticmethod
    def _describe(action: ActionResult) -> str:
        if action.result:
            return f"{action.action}: {_short(action.result)}"
        return action.action

    def summarize_for_phase_change(self, old_phase: str, actions: List[ActionResult]) -> str:
        """Milestone text for a phase that just ended ("" when there was no phase)."""
        if not old_phase:
            return ""
        successes = sum(1 for a in actions if a.success)
        if successes == 0:
            return f"Attempted {old_phase} phase"
        return f"Completed {old_phase} phase ({successes} actions)"
