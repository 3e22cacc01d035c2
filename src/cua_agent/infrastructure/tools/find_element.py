"""
Find Element Tool.

Searches the accessibility tree of the frontmost application. Element ids
are only valid for the response they appear in.
"""

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel, Field

from cua_agent.domain.errors import CUAError, NotSupportedError, PermissionDeniedError
from cua_agent.infrastructure.element import Role, Selector

from .base import CUATool, error_response, success_response
from .context import ToolContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 10


class FindElementArgs(BaseModel):
    role: Optional[str] = Field(
        default=None,
        description="UI element role (e.g. 'button', 'textfield', 'window', 'checkbox', 'link')",
    )
    name: Optional[str] = Field(default=None, description="Exact name/label of the element")
    name_contains: Optional[str] = Field(
        default=None, description="Substring to find in element names (case-insensitive)"
    )
    title: Optional[str] = Field(default=None, description="Exact title (typically for windows)")
    max_results: Optional[int] = Field(
        default=None, description="Maximum number of results to return (default: 10)"
    )


class FindElementTool(CUATool):
    args_schema = FindElementArgs

    def __init__(self):
        super().__init__(
            name="find_element",
            description=(
                "Find UI elements using the accessibility tree. Search by role, name or "
                "title. Returns element bounds and center points for clicking."
            ),
        )

    async def execute(self, ctx: ToolContext, args: FindElementArgs) -> str:
        selector = Selector(
            role=Role.parse(args.role) if args.role else None,
            name=args.name or None,
            name_contains=args.name_contains or None,
            title=args.title or None,
        )
        if selector.is_empty():
            return error_response(
                "at least one search criteria is required (role, name, name_contains, or title)"
            )

        max_results = args.max_results if args.max_results and args.max_results > 0 else DEFAULT_MAX_RESULTS

        try:
            finder = ctx.elements()
            # Tree walks make blocking OS calls.
            elements = await asyncio.to_thread(finder.find_all, selector, None, max_results)
        except NotSupportedError as e:
            return error_response(str(e), "Use screenshot and coordinates instead")
        except PermissionDeniedError as e:
            return error_response(
                str(e), "Grant accessibility permission in System Settings > Privacy & Security"
            )
        except CUAError as e:
            logger.error(f"Element search failed: {e}")
            return error_response(f"search failed: {e}")

        if not elements:
            return success_response(
                count=0,
                elements=[],
                suggestion="No match. Try name_contains or a different role, or take a screenshot",
            )

        return success_response(count=len(elements), elements=[e.to_dict() for e in elements])
