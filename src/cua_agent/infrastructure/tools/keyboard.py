"""
Keyboard Tools.

type_text types a string with human pacing; key_press sends a single key
or a modifier combination.
"""

import logging
from typing import List

from pydantic import BaseModel, Field

from .base import CUATool, error_response, success_response
from .context import ToolContext

logger = logging.getLogger(__name__)

MAX_HOLD_MS = 5000


class TypeTextArgs(BaseModel):
    text: str = Field(description="The text to type using keyboard input")


class TypeTextTool(CUATool):
    args_schema = TypeTextArgs

    def __init__(self):
        super().__init__(
            name="type_text",
            description=(
                "Type text into the focused field. Click the field first. Works with "
                "password and other secure fields."
            ),
        )

    async def execute(self, ctx: ToolContext, args: TypeTextArgs) -> str:
        if not args.text:
            return error_response("text cannot be empty", "Provide the text to type")

        preview = args.text if len(args.text) <= 100 else args.text[:97] + "..."
        logger.info(f"Typing {preview!r} ({len(args.text)} chars)")
        try:
            count = await ctx.input.type_text(args.text)
        except Exception as e:
            logger.error(f"Type error: {e}")
            return error_response(f"failed to type text: {e}")

        return success_response(text=args.text, characters=count, method=ctx.input.typing_method)


class KeyPressArgs(BaseModel):
    key: str = Field(
        description=(
            "The key to press (e.g. 'enter', 'tab', 'escape', 'backspace', 'up', "
            "'down', 'left', 'right', 'space', 'f1'-'f12', or a letter)"
        )
    )
    modifiers: List[str] = Field(
        default_factory=list,
        description="Optional modifier keys: 'cmd', 'ctrl', 'alt', 'shift', 'fn'",
    )
    hold_ms: int = Field(default=0, description="Hold the key down for this many milliseconds")


class KeyPressTool(CUATool):
    args_schema = KeyPressArgs

    def __init__(self):
        super().__init__(
            name="key_press",
            description=(
                "Press a key with optional modifiers, e.g. key='t' modifiers=['cmd'] for "
                "a new tab. Supports enter, tab, escape, arrows and function keys."
            ),
        )

    async def execute(self, ctx: ToolContext, args: KeyPressArgs) -> str:
        if not args.key.strip():
            return error_response("key cannot be empty")
        if not 0 <= args.hold_ms <= MAX_HOLD_MS:
            return error_response(f"hold_ms must be between 0 and {MAX_HOLD_MS}")

        combo = "+".join([*args.modifiers, args.key])
        logger.info(f"Pressing {combo}")
        try:
            modifiers = await ctx.input.key_press(args.key, args.modifiers, hold_ms=args.hold_ms)
        except ValueError as e:
            return error_response(str(e), "Valid modifiers are cmd, ctrl, alt, shift and fn")
        except Exception as e:
            logger.error(f"Key press error ({combo}): {e}")
            return error_response(f"failed to press key: {e}")

        return success_response(key=args.key, modifiers=modifiers)
