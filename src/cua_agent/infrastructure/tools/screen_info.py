"""
Screen Info Tool.
"""

import logging

from pydantic import BaseModel, Field

from cua_agent.domain.errors import CUAError

from .base import CUATool, error_response, success_response
from .context import ToolContext

logger = logging.getLogger(__name__)


class ScreenInfoArgs(BaseModel):
    screen_index: int = Field(
        default=-1, description="Specific screen index to describe (-1 for all screens)"
    )


class ScreenInfoTool(CUATool):
    """Describe connected displays: logical bounds, position and scale factor."""

    args_schema = ScreenInfoArgs

    def __init__(self):
        super().__init__(
            name="screen_info",
            description=(
                "Get information about connected displays: dimensions, positions and "
                "scale factors. Use this to understand a multi-monitor layout."
            ),
        )

    async def execute(self, ctx: ToolContext, args: ScreenInfoArgs) -> str:
        try:
            displays = ctx.capture.displays()
        except CUAError as e:
            logger.error(f"Display query failed: {e}")
            return error_response(f"failed to list displays: {e}")

        if args.screen_index >= 0:
            if args.screen_index >= len(displays):
                return error_response(
                    f"invalid screen index {args.screen_index} (have {len(displays)})",
                    "Use screen_index=-1 to list all screens",
                )
            return success_response(**displays[args.screen_index].to_dict())

        return success_response(
            screen_count=len(displays),
            screens=[d.to_dict() for d in displays],
        )
