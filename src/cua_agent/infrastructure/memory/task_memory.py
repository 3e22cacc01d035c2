"""
Task Memory - bounded, structured record of task progress.

Keeps the model's working context small over long runs:

- the original task, never truncated
- the last few actions in detail
- older actions folded into milestone sentences
- the current phase and key facts
- failure patterns to avoid

``to_prompt()`` renders all of it as the prompt fragment injected every turn.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from cua_agent.domain.types import Phase

from .phase import Observation, PhaseDetector
from .summarizer import ActionResult, Summarizer

MAX_MILESTONES = 20
MAX_FAILED_PATTERNS = 10
STUCK_THRESHOLD = 3
NEEDS_HELP_THRESHOLD = 5


@dataclass
class ErrorRecord:
    """The most recent failure."""

    message: str
    action: str
    step_number: int
    recoverable: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class TaskSummary:
    """Immutable snapshot of a TaskMemory."""

    original_task: str
    milestones: Tuple[str, ...]
    phase: str
    key_facts: Tuple[Tuple[str, str], ...]
    recent_actions: Tuple[ActionResult, ...]
    failed_patterns: Tuple[str, ...]
    last_error: Optional[ErrorRecord]
    consecutive_fails: int
    total_steps: int
    duration: float
    is_stuck: bool
    needs_help: bool

    def to_prompt(self) -> str:
        """Render the snapshot as a prompt fragment; empty sections are omitted."""
        sections: List[str] = [f"## TASK\n{self.original_task}"]

        if self.milestones:
            lines = [f"{i}. {m}" for i, m in enumerate(self.milestones, 1)]
            sections.append("## ACCOMPLISHED\n" + "\n".join(lines))

        if self.phase:
            sections.append(f"## CURRENT PHASE: {self.phase}")

        if self.key_facts:
            lines = [f"- {k}: {v}" for k, v in self.key_facts]
            sections.append("## KEY FACTS\n" + "\n".join(lines))

        if self.recent_actions:
            lines = []
            for a in self.recent_actions:
                mark = "✓" if a.success else "✗"
                line = f"{mark} Step {a.step_number}: {a.action}"
                if a.result:
                    line += f" - {a.result}"
                lines.append(line)
            sections.append("## RECENT ACTIONS\n" + "\n".join(lines))

        if self.failed_patterns:
            lines = [f"- {p}" for p in self.failed_patterns]
            sections.append("## KNOWN ISSUES (avoid these)\n" + "\n".join(lines))

        if self.last_error is not None:
            sections.append(f"## LAST ERROR\n{self.last_error.message}")

        if self.needs_help:
            sections.append(
                "## STATUS: NEEDS HELP\n"
                f"{self.consecutive_fails} consecutive failures. "
                "Call need_help to ask the user for guidance."
            )
        elif self.is_stuck:
            sections.append(
                "## STATUS: POSSIBLY STUCK\n"
                f"{self.consecutive_fails} consecutive failures. Try a different approach."
            )

        sections.append(
            f"## STATS\n- Total steps: {self.total_steps}\n- Duration: {int(self.duration)}s"
        )
        return "\n\n".join(sections) + "\n"


class TaskMemory:
    """
    Structured memory for one task run.

    Written by the agent loop, readable from other threads (progress
    callbacks, snapshots); all access goes through one lock.

    Example:
        memory = TaskMemory("open calculator")
        memory.record_action("screenshot", {}, True, "captured 1280x800", 0.2)
        memory.set_phase(Phase.NAVIGATION)
        prompt = memory.to_prompt()
    """

    def __init__(
        self,
        task: str,
        summarizer: Optional[Summarizer] = None,
        phase_detector: Optional[PhaseDetector] = None,
    ) -> None:
        self._task = task
        self._summarizer = summarizer or Summarizer()
        self._phase_detector = phase_detector or PhaseDetector()
        self._lock = threading.RLock()
        self._started = time.monotonic()

        self._recent: List[ActionResult] = []
        self._milestones: List[str] = []
        # Successes behind the last milestone, while it can still grow.
        self._open_group: List[ActionResult] = []
        self._phase = ""
        self._phase_start_step = 0
        self._key_facts: Dict[str, str] = {}
        self._failed_patterns: List[str] = []
        self._last_error: Optional[ErrorRecord] = None
        self._consecutive_fails = 0
        self._total_steps = 0

    @property
    def original_task(self) -> str:
        return self._task

    @property
    def total_steps(self) -> int:
        with self._lock:
            return self._total_steps

    @property
    def consecutive_fails(self) -> int:
        with self._lock:
            return self._consecutive_fails

    @property
    def phase(self) -> str:
        with self._lock:
            return self._phase

    @property
    def phase_start_step(self) -> int:
        with self._lock:
            return self._phase_start_step

    @property
    def recent_actions(self) -> List[ActionResult]:
        with self._lock:
            return list(self._recent)

    @property
    def milestones(self) -> List[str]:
        with self._lock:
            return list(self._milestones)

    @property
    def failed_patterns(self) -> List[str]:
        with self._lock:
            return list(self._failed_patterns)

    @property
    def last_error(self) -> Optional[ErrorRecord]:
        with self._lock:
            return self._last_error

    def record_action(
        self,
        action: str,
        args: Optional[Dict[str, Any]],
        success: bool,
        result: str = "",
        duration: float = 0.0,
    ) -> ActionResult:
        """Record one action; older actions beyond the window become milestones."""
        with self._lock:
            self._total_steps += 1
            entry = ActionResult(
                step_number=self._total_steps,
                action=action,
                args=dict(args or {}),
                success=success,
                result=result,
                duration=duration,
            )
            self._recent.append(entry)

            if self._summarizer.should_summarize(self._recent):
                cut = len(self._recent) - self._summarizer.action_window_size
                overflow, self._recent = self._recent[:cut], self._recent[cut:]
                self._fold(overflow)

            if success:
                self._consecutive_fails = 0
                self._last_error = None
            else:
                self._consecutive_fails += 1
                self._last_error = ErrorRecord(
                    message=result,
                    action=action,
                    step_number=self._total_steps,
                    recoverable=self._consecutive_fails < STUCK_THRESHOLD,
                )
            return entry

    def _fold(self, overflow: List[ActionResult]) -> None:
        """Turn actions leaving the window into milestones, extending the open success run."""
        for action in overflow:
            group = self._open_group
            if action.success and group and group[-1].action == action.action:
                group.append(action)
                self._milestones[-1] = self._summarizer.summarize_group(group)
                continue
            self._append_milestone(self._summarizer.group_into_milestones([action])[0])
            if action.success:
                self._open_group = [action]

    def _append_milestone(self, milestone: str) -> None:
        self._open_group = []
        self._milestones.append(milestone)
        if len(self._milestones) > MAX_MILESTONES:
            del self._milestones[: len(self._milestones) - MAX_MILESTONES]

    def add_milestone(self, milestone: str) -> None:
        with self._lock:
            self._append_milestone(milestone)

    def set_phase(self, phase: Union[Phase, str]) -> None:
        """
        Change the current phase.

        The outgoing phase's recent actions are folded into one milestone and
        the recent window is cleared. Setting the current phase again does
        nothing.

        Raises:
            ValueError: If ``phase`` is not a known phase
        """
        new_phase = Phase(phase).value
        with self._lock:
            if new_phase == self._phase:
                return
            milestone = self._summarizer.summarize_for_phase_change(self._phase, self._recent)
            if milestone:
                self._append_milestone(milestone)
            self._recent = []
            self._phase = new_phase
            self._phase_start_step = self._total_steps

    def maybe_update_phase(self, observation: Observation) -> str:
        """
        Infer the phase from an observation and switch to it.

        Returns:
            The new phase, or "" when the phase did not change
        """
        detected = self._phase_detector.detect(observation)
        if detected is None:
            return ""
        with self._lock:
            if detected.value == self._phase:
                return ""
            self.set_phase(detected)
            return detected.value

    def set_key_fact(self, key: str, value: str) -> None:
        with self._lock:
            self._key_facts[key] = value

    def get_key_fact(self, key: str) -> Optional[str]:
        with self._lock:
            return self._key_facts.get(key)

    def add_failed_pattern(self, pattern: str) -> None:
        """Remember an approach that did not work (deduplicated, oldest dropped first)."""
        with self._lock:
            if pattern in self._failed_patterns:
                return
            self._failed_patterns.append(pattern)
            if len(self._failed_patterns) > MAX_FAILED_PATTERNS:
                del self._failed_patterns[0]

    def has_failed_pattern(self, pattern: str) -> bool:
        with self._lock:
            return pattern in self._failed_patterns

    def is_stuck(self) -> bool:
        with self._lock:
            return self._consecutive_fails >= STUCK_THRESHOLD

    def needs_help(self) -> bool:
        with self._lock:
            return self._consecutive_fails >= NEEDS_HELP_THRESHOLD

    def duration(self) -> float:
        return time.monotonic() - self._started

    def summary(self) -> TaskSummary:
        with self._lock:
            return TaskSummary(
                original_task=self._task,
                milestones=tuple(self._milestones),
                phase=self._phase,
                key_facts=tuple(self._key_facts.items()),
                recent_actions=tuple(self._recent),
                failed_patterns=tuple(self._failed_patterns),
                last_error=self._last_error,
                consecutive_fails=self._consecutive_fails,
                total_steps=self._total_steps,
                duration=self.duration(),
                is_stuck=self._consecutive_fails >= STUCK_THRESHOLD,
                needs_help=self._consecutive_fails >= NEEDS_HELP_THRESHOLD,
            )

    def to_prompt(self) -> str:
        return self.summary().to_prompt()
