"""
Loop control tools: complete_task and need_help.

Both raise the context's escalation flag; the agent loop ends the run after
the call returns.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from .base import CUATool, success_response
from .context import EscalationKind, ToolContext

logger = logging.getLogger(__name__)


class CompleteTaskArgs(BaseModel):
    summary: str = Field(description="A brief summary of what was accomplished")


class CompleteTaskTool(CUATool):
    args_schema = CompleteTaskArgs

    def __init__(self):
        super().__init__(
            name="complete_task",
            description=(
                "Call this ONLY when the user's task has been FULLY completed and verified. "
                "Provide a summary of what was accomplished. This ends the session."
            ),
        )

    async def execute(self, ctx: ToolContext, args: CompleteTaskArgs) -> str:
        logger.info(f"Task complete: {args.summary}")
        ctx.request_escalation(EscalationKind.COMPLETE, args.summary)
        return success_response(summary=args.summary)


class NeedHelpArgs(BaseModel):
    reason: str = Field(description="Why help is needed and what the agent is stuck on")
    attempts_made: Optional[str] = Field(
        default=None, description="What was tried before asking for help"
    )


class NeedHelpTool(CUATool):
    args_schema = NeedHelpArgs

    def __init__(self):
        super().__init__(
            name="need_help",
            description=(
                "Call this when you are stuck and need human assistance. Explain what you "
                "tried and why you need help. This pauses automation for a human."
            ),
        )

    async def execute(self, ctx: ToolContext, args: NeedHelpArgs) -> str:
        logger.warning(f"Human assistance requested: {args.reason}")
        ctx.request_escalation(EscalationKind.NEED_HELP, args.reason, args.attempts_made or "")
        return success_response(
            help_requested=True,
            reason=args.reason,
            attempts_made=args.attempts_made or "",
        )
