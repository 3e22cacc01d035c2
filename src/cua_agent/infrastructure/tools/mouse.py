"""
Mouse Tools.

click, move, drag and scroll. Coordinates come from the model either as a
0-1000 normalized grid or as pixels of the last screenshot; the agent's
``CoordinateState`` decides which and maps them onto the screen.
"""

import logging
from typing import Literal

from pydantic import BaseModel, Field

from .base import CUATool, error_response, success_response
from .context import ToolContext

logger = logging.getLogger(__name__)

COORDINATE_HINT = (
    "Use pixel coordinates from the latest screenshot, or 0-1000 normalized coordinates."
)


def _point(x: int, y: int) -> dict:
    return {"x": x, "y": y}


class ClickArgs(BaseModel):
    x: float = Field(description="X coordinate (screenshot pixel or 0-1000 normalized)")
    y: float = Field(description="Y coordinate (screenshot pixel or 0-1000 normalized)")
    button: Literal["left", "right", "middle"] = Field(default="left", description="Mouse button")
    double: bool = Field(default=False, description="Whether to perform a double-click")


class ClickTool(CUATool):
    args_schema = ClickArgs

    def __init__(self):
        super().__init__(
            name="click",
            description=(
                "Click at a position on the screen. Use coordinates from the most recent "
                "screenshot. Supports left, right and middle buttons and double-click."
            ),
        )

    async def execute(self, ctx: ToolContext, args: ClickArgs) -> str:
        sx, sy, space = ctx.coordinates.to_screen(args.x, args.y)
        try:
            await ctx.input.click(sx, sy, button=args.button, double=args.double)
        except Exception as e:
            logger.error(f"Click error at ({sx}, {sy}): {e}")
            return error_response(f"click failed: {e}", COORDINATE_HINT)

        return success_response(
            clicked_at_pixel=_point(sx, sy),
            requested=_point(args.x, args.y),
            interpreted_as=space.value,
            button=args.button,
            double_click=args.double,
        )


class MoveArgs(BaseModel):
    x: float = Field(description="X coordinate (screenshot pixel or 0-1000 normalized)")
    y: float = Field(description="Y coordinate (screenshot pixel or 0-1000 normalized)")


class MoveTool(CUATool):
    args_schema = MoveArgs

    def __init__(self):
        super().__init__(
            name="move",
            description="Move the mouse cursor to a position without clicking (e.g. to reveal hover menus).",
        )

    async def execute(self, ctx: ToolContext, args: MoveArgs) -> str:
        sx, sy, space = ctx.coordinates.to_screen(args.x, args.y)
        try:
            await ctx.input.move(sx, sy)
        except Exception as e:
            logger.error(f"Move error: {e}")
            return error_response(f"move failed: {e}")

        return success_response(moved_to_pixel=_point(sx, sy), interpreted_as=space.value)


class DragArgs(BaseModel):
    x: float = Field(description="Start X coordinate")
    y: float = Field(description="Start Y coordinate")
    end_x: float = Field(description="End X coordinate")
    end_y: float = Field(description="End Y coordinate")
    button: Literal["left", "right", "middle"] = Field(default="left", description="Mouse button to hold")


class DragTool(CUATool):
    args_schema = DragArgs

    def __init__(self):
        super().__init__(
            name="drag",
            description=(
                "Drag from one position to another: press at the start, move in small "
                "steps, release at the end. Use for sliders, selections and moving items."
            ),
        )

    async def execute(self, ctx: ToolContext, args: DragArgs) -> str:
        start_x, start_y, space = ctx.coordinates.to_screen(args.x, args.y)
        end_x, end_y, _ = ctx.coordinates.to_screen(args.end_x, args.end_y)
        try:
            await ctx.input.drag(start_x, start_y, end_x, end_y, button=args.button)
        except Exception as e:
            logger.error(f"Drag error: {e}")
            return error_response(f"drag failed: {e}", COORDINATE_HINT)

        return success_response(
            dragged_from_pixel=_point(start_x, start_y),
            dragged_to_pixel=_point(end_x, end_y),
            interpreted_as=space.value,
            button=args.button,
        )


class ScrollArgs(BaseModel):
    x: float = Field(description="X coordinate to scroll at")
    y: float = Field(description="Y coordinate to scroll at")
    delta_x: int = Field(default=0, description="Horizontal scroll amount (positive = right)")
    delta_y: int = Field(default=0, description="Vertical scroll amount (positive = down)")


class ScrollTool(CUATool):
    args_schema = ScrollArgs

    def __init__(self):
        super().__init__(
            name="scroll",
            description=(
                "Scroll at a position. Moves the cursor there first. Positive delta_y "
                "scrolls down, negative scrolls up; delta_x scrolls horizontally."
            ),
        )

    async def execute(self, ctx: ToolContext, args: ScrollArgs) -> str:
        if args.delta_x == 0 and args.delta_y == 0:
            return error_response("delta_x or delta_y must be non-zero", "Use delta_y=3 to scroll down")

        sx, sy, space = ctx.coordinates.to_screen(args.x, args.y)
        try:
            await ctx.input.scroll(sx, sy, delta_x=args.delta_x, delta_y=args.delta_y)
        except Exception as e:
            logger.error(f"Scroll error: {e}")
            return error_response(f"scroll failed: {e}")

        return success_response(
            scrolled_at_pixel=_point(sx, sy),
            interpreted_as=space.value,
            delta_x=args.delta_x,
            delta_y=args.delta_y,
        )
