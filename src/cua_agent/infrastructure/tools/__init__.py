"""Desktop tools exposed to the model."""

from .base import CUATool, clean_schema, error_response, success_response
from .context import Escalation, EscalationKind, ToolContext
from .control import CompleteTaskTool, NeedHelpTool
from .find_element import FindElementTool
from .keyboard import KeyPressTool, TypeTextTool
from .mouse import ClickTool, DragTool, MoveTool, ScrollTool
from .registry import ToolRegistry, default_tools
from .screen_info import ScreenInfoTool
from .screenshot import ScreenshotTool
from .wait import WaitTool

__all__ = [
    "CUATool",
    "clean_schema",
    "error_response",
    "success_response",
    "Escalation",
    "EscalationKind",
    "ToolContext",
    "CompleteTaskTool",
    "NeedHelpTool",
    "FindElementTool",
    "KeyPressTool",
    "TypeTextTool",
    "ClickTool",
    "DragTool",
    "MoveTool",
    "ScrollTool",
    "ToolRegistry",
    "default_tools",
    "ScreenInfoTool",
    "ScreenshotTool",
    "WaitTool",
]
