"""Agent loop and prompt construction."""

from .instruction import TASK_CONTEXT_PLACEHOLDER, build_instruction, render_instruction
from .react_loop import LoopConfig, ReActLoop

__all__ = [
    "TASK_CONTEXT_PLACEHOLDER",
    "build_instruction",
    "render_instruction",
    "LoopConfig",
    "ReActLoop",
]
