"""
Tool registry and dispatcher.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from cua_agent.domain.errors import UnknownToolError

from .base import CUATool, error_response
from .context import ToolContext
from .control import CompleteTaskTool, NeedHelpTool
from .find_element import FindElementTool
from .keyboard import KeyPressTool, TypeTextTool
from .mouse import ClickTool, DragTool, MoveTool, ScrollTool
from .screen_info import ScreenInfoTool
from .screenshot import ScreenshotTool
from .wait import WaitTool

logger = logging.getLogger(__name__)


def default_tools() -> List[CUATool]:
    """The full desktop tool set, in the order it is presented to the model."""
    return [
        ScreenshotTool(),
        ClickTool(),
        MoveTool(),
        DragTool(),
        ScrollTool(),
        TypeTextTool(),
        KeyPressTool(),
        WaitTool(),
        FindElementTool(),
        ScreenInfoTool(),
        CompleteTaskTool(),
        NeedHelpTool(),
    ]


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "arguments"
        parts.append(f"{location}: {item.get('msg', 'invalid')}")
    return "invalid arguments: " + "; ".join(parts)


class ToolRegistry:
    """
    Maps tool names to tools and dispatches model tool calls.

    Example:
        registry = ToolRegistry()
        result_json = await registry.dispatch(ctx, "click", '{"x": 500, "y": 500}')
    """

    def __init__(self, tools: Optional[Iterable[CUATool]] = None):
        self._tools: Dict[str, CUATool] = {}
        for tool in tools if tools is not None else default_tools():
            self.register(tool)

    def register(self, tool: CUATool) -> None:
        if tool.name in self._tools:
            logger.warning(f"Tool {tool.name} registered twice; replacing")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[CUATool]:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def tools(self) -> List[CUATool]:
        return list(self._tools.values())

    def schemas(self) -> List[Dict[str, Any]]:
        """Function-calling definitions for every tool."""
        return [tool.to_function_schema() for tool in self._tools.values()]

    async def dispatch(self, ctx: ToolContext, name: str, raw_args: Any) -> str:
        """
        Parse arguments and run a tool.

        Argument problems come back as error JSON so the model can correct
        them.

        Raises:
            UnknownToolError: If no tool has this name
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(f"cua: unknown tool: {name}")

        try:
            args = tool.parse_args(raw_args)
        except ValidationError as e:
            return error_response(_validation_message(e), f"Check the {name} parameter schema")
        except ValueError as e:
            return error_response(f"invalid arguments: {e}", "Arguments must be a JSON object")

        return await tool.execute(ctx, args)
