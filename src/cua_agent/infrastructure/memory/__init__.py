"""Task memory and context engineering."""

from .phase import Observation, PhaseDetector
from .summarizer import MAX_RECENT_ACTIONS, ActionResult, Summarizer
from .task_memory import (
    MAX_FAILED_PATTERNS,
    MAX_MILESTONES,
    ErrorRecord,
    TaskMemory,
    TaskSummary,
)

__all__ = [
    "MAX_FAILED_PATTERNS",
    "MAX_MILESTONES",
    "MAX_RECENT_ACTIONS",
    "ActionResult",
    "ErrorRecord",
    "Observation",
    "PhaseDetector",
    "Summarizer",
    "TaskMemory",
    "TaskSummary",
]
