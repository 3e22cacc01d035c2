#!/usr/bin/env python3
"""
Command-line interface for the Computer Use Agent.

Usage:
    cua do "open calculator and compute 12 * 7"
    cua do -v --model pro --timeout 3m "rename the files on the desktop"
    cua click 500 300
    cua type "hello world"
    cua screenshot shot.png
    cua elements --role button
    cua screen

Exit codes: 0 on success, 1 on task failure or invalid input.
"""

import argparse
import re
import sys
from typing import List, Optional

from cua_agent import __version__, helpers
from cua_agent.agent import configure_logging, new
from cua_agent.configuration.config import MODEL_ALIASES
from cua_agent.domain.errors import CUAError
from cua_agent.domain.types import SafetyLevel, Step

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}



def parse_duration(value: str) -> float:
    """
    Parse a duration such as ``90s``, ``2m``, ``1m30s`` or ``45`` into seconds.

    Raises:
        argparse.ArgumentTypeError: If the value is not a positive duration
    """
    text = value.strip().lower()
    try:
        seconds = float(text)
    except ValueError:
        position = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != position:
                break
            seconds += float(match.group(1)) * _UNITS[match.group(2)]
            position = match.end()
        if position == 0 or position != len(text):
            raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")

    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"duration must be positive: {value!r}")
    return seconds


def print_step(step: Step) -> None:
    mark = "✓" if step.success else "✗"
    print(f"[{mark}] Step {step.number}: {step.action} - {step.description}")
    if step.error is not None:
        print(f"    Error: {step.error}")


# ============================================================================
# Commands
# ============================================================================


def cmd_do(args: argparse.Namespace) -> int:
    task = " ".join(args.task).strip()
    if not task:
        print("Error: task cannot be empty", file=sys.stderr)
        return 1

    agent = new(
        model=MODEL_ALIASES[args.model],
        timeout=args.timeout,
        max_actions=args.max_actions,
        safety_level=SafetyLevel(args.safety),
        headless=args.headless,
        verbose=args.verbose,
    )
    progress = print_step if args.verbose else None

    try:
        result = agent.do_with_progress(task, progress)
    except CUAError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 1

    print(result.summary)
    if args.verbose:
        print(f"\nSteps: {len(result.steps)} ({result.steps_failed} failed), {result.duration:.1f}s")
    if not result.success:
        if result.error is not None:
            print(f"Error: {result.error}", file=sys.stderr)
        if result.needs_help:
            print("The agent needs help to finish this task.", file=sys.stderr)
        return 1
    return 0


def cmd_click(args: argparse.Namespace) -> int:
    helpers.click(args.x, args.y, button=args.button)
    print(f"Clicked {args.button} at ({args.x}, {args.y})")
    return 0


def cmd_type(args: argparse.Namespace) -> int:
    count = helpers.type_text(args.text)
    print(f"Typed {count} characters")
    return 0


def cmd_screenshot(args: argparse.Namespace) -> int:
    image = helpers.capture_screen(display_index=args.display)
    image.save(args.file)
    print(f"Saved {image.width}x{image.height} screenshot to {args.file}")
    return 0


def cmd_elements(args: argparse.Namespace) -> int:
    elements = helpers.find_elements(
        role=args.role,
        name=args.name,
        name_contains=args.name_contains,
        title=args.title,
        max_results=args.max,
    )
    if not elements:
        print("No matching elements")
        return 0
    for element in elements:
        x, y = element.center()
        print(f"{element.role.value:<14} {element.label()!r} at ({x}, {y})")
    print(f"\n{len(elements)} element(s)")
    return 0


def cmd_screen(args: argparse.Namespace) -> int:
    from cua_agent.infrastructure.platform import current

    info = current()
    print(f"Platform: {info.display_name} ({info.arch})")
    for display in helpers.displays():
        primary = " (primary)" if display.is_primary else ""
        pw, ph = display.physical_size
        print(
            f"Display {display.index}{primary}: {display.width}x{display.height} "
            f"at ({display.x}, {display.y}), scale {display.scale_factor:g} ({pw}x{ph} physical)"
        )
    return 0


# ============================================================================
# Parser
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cua",
        description="Computer Use Agent - control the desktop with natural language",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s do "open calculator"
  %(prog)s do -v --safety strict --timeout 2m "fill in the signup form"
  %(prog)s click 500 300
  %(prog)s screenshot desktop.png
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", metavar="command")

    do = subparsers.add_parser("do", help="Run a task with the agent")
    do.add_argument("task", nargs="+", help="Task description")
    do.add_argument("-v", "--verbose", action="store_true", help="Print every step and debug logs")
    do.add_argument("--model", choices=sorted(MODEL_ALIASES), default="flash", help="Model to use")
    do.add_argument(
        "--timeout", type=parse_duration, default=120.0, help="Task timeout (e.g. 90s, 2m, 1m30s)"
    )
    do.add_argument("--max-actions", type=int, default=50, help="Maximum actions per task")
    do.add_argument(
        "--safety",
        choices=[level.value for level in SafetyLevel],
        default=SafetyLevel.NORMAL.value,
        help="Safety level",
    )
    do.add_argument("--headless", action="store_true", help="Never wait for a human")
    do.set_defaults(handler=cmd_do)

    click = subparsers.add_parser("click", help="Click at logical screen coordinates")
    click.add_argument("x", type=int)
    click.add_argument("y", type=int)
    click.add_argument("--button", choices=["left", "right", "middle"], default="left")
    click.set_defaults(handler=cmd_click)

    type_ = subparsers.add_parser("type", help="Type text")
    type_.add_argument("text")
    type_.set_defaults(handler=cmd_type)

    screenshot = subparsers.add_parser("screenshot", help="Save a screenshot")
    screenshot.add_argument("file", nargs="?", default="screenshot.png")
    screenshot.add_argument("--display", type=int, default=0, help="Display index")
    screenshot.set_defaults(handler=cmd_screenshot)

    elements = subparsers.add_parser("elements", help="List accessibility elements")
    elements.add_argument("--role")
    elements.add_argument("--name")
    elements.add_argument("--name-contains")
    elements.add_argument("--title")
    elements.add_argument("--max", type=int, default=50)
    elements.set_defaults(handler=cmd_elements)

    screen = subparsers.add_parser("screen", help="Show platform and display information")
    screen.set_defaults(handler=cmd_screen)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "handler", None):
        parser.print_help()
        return 1

    configure_logging(getattr(args, "verbose", False))

    try:
        return args.handler(args)
    except (CUAError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
