"""
Wait Tool.
"""

import asyncio
import logging
import time

from pydantic import AliasChoices, BaseModel, Field

from .base import CUATool, error_response, success_response
from .context import ToolContext

logger = logging.getLogger(__name__)

MIN_WAIT_MS = 1
MAX_WAIT_MS = 30000


class WaitArgs(BaseModel):
    duration: int = Field(
        description="Time to wait in milliseconds (1-30000)",
        validation_alias=AliasChoices("duration", "duration_ms"),
    )


class WaitTool(CUATool):
    """Pause so UI transitions, page loads and animations can finish."""

    args_schema = WaitArgs

    def __init__(self):
        super().__init__(
            name="wait",
            description=(
                "Pause for a number of milliseconds (1-30000). Use this to wait for UI "
                "transitions, loading or animations to complete."
            ),
        )

    async def execute(self, ctx: ToolContext, args: WaitArgs) -> str:
        if args.duration < MIN_WAIT_MS:
            return error_response("duration must be at least 1 millisecond")
        if args.duration > MAX_WAIT_MS:
            return error_response("duration cannot exceed 30000 milliseconds (30 seconds)")

        logger.info(f"Waiting {args.duration}ms")
        start = time.monotonic()
        await asyncio.sleep(args.duration / 1000)
        waited_ms = int((time.monotonic() - start) * 1000)
        return success_response(waited_ms=waited_ms)
