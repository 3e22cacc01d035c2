"""
System prompt for the ReAct agent.

The prompt is built once per run with a ``{task_context}`` placeholder;
``render_instruction`` substitutes the task memory's current prompt
fragment before every model turn.
"""

from typing import Iterable, List, Optional

from cua_agent.infrastructure.platform import (
    format_shortcut,
    get_keyboard_info,
    to_prompt_context,
)
from cua_agent.infrastructure.tools import CUATool

TASK_CONTEXT_PLACEHOLDER = "{task_context}"

_LOOP_PROTOCOL = """\
## HOW YOU WORK

You run in a loop:
1. OBSERVE - take a screenshot when you are unsure what is on screen
2. THINK - decide which single action moves the task forward
3. ACT - call exactly ONE tool
4. REPEAT until the task is done or you need help

## RULES

1. ONE TOOL CALL PER TURN. Wait for its result before deciding the next step.
2. SCREENSHOT FIRST when the screen state is unknown, and again to verify
   the effect of clicks and typing.
3. COORDINATES: use pixel positions from the latest screenshot (its width and
   height are in the result), or 0-1000 normalized coordinates.
4. FAILURES: after 3 failed attempts at the same thing, change approach. If
   you are still stuck, call need_help and explain what you tried.
5. Use the platform's own modifier keys and shortcuts listed above.
6. Call complete_task only when the task is fully done and verified.

Act, do not narrate: call the tools."""


def _tool_lines(tools: Iterable[CUATool]) -> List[str]:
    lines = []
    for tool in tools:
        schema = tool.get_parameters_schema()
        params = list(schema.get("properties", {}))
        required = set(schema.get("required", []))
        rendered = ", ".join(p if p in required else f"{p}?" for p in params)
        lines.append(f"- **{tool.name}**({rendered}): {tool.description}")
    return lines


def build_instruction(tools: Iterable[CUATool], os_name: Optional[str] = None) -> str:
    """
    Build the system prompt template.

    Args:
        tools: Tools the model may call, in presentation order
        os_name: Override the detected platform (``sys.platform`` style)

    Returns:
        Prompt text containing a ``{task_context}`` placeholder
    """
    kb = get_keyboard_info(os_name)
    launcher = kb.app_launcher
    shortcuts = "\n".join(
        f"- {name}: {format_shortcut(s.key, s.modifiers)}" for name, s in kb.common_shortcuts.items()
    )

    sections = [
        "You are a desktop automation agent. You can see the screen and control "
        "the mouse and keyboard to accomplish the user's task.",
        "## PLATFORM\n"
        + to_prompt_context(os_name)
        + f"\nPrimary modifier: {kb.primary_modifier}"
        + f"\nApp launcher: {launcher.name} ({format_shortcut(launcher.key, launcher.modifiers)})"
        + "\n\nCommon shortcuts:\n"
        + shortcuts,
        "## TASK CONTEXT\n" + TASK_CONTEXT_PLACEHOLDER,
        _LOOP_PROTOCOL,
        "## TOOLS\n" + "\n".join(_tool_lines(tools)),
    ]
    return "\n\n".join(sections) + "\n"


def render_instruction(template: str, task_context: str) -> str:
    """Substitute the task memory prompt into the template."""
    return template.replace(TASK_CONTEXT_PLACEHOLDER, task_context.strip())
