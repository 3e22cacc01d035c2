"""
ReAct Loop - the agent's think-act-observe cycle.

One ``ReActLoop`` runs one task:

1. Think: ask the model for the next turn (reasoning, text, one tool call)
2. Validate: pass the requested action through the safety guardrails
3. Act: dispatch the tool call through the registry
4. Observe: feed the tool result (and screenshots) back to the model
5. Repeat until the task completes, fails, or runs out of actions

Task memory is rendered into the system prompt before every turn so the
model always sees a compact view of the task's progress.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from cua_agent.domain.errors import (
    ActionError,
    AgentStuckError,
    ConsecutiveFailuresError,
    CUAError,
    HumanTakeoverError,
    MaxActionsError,
    RateLimitedError,
    SafetyBlockError,
    TakeoverRequestedError,
    TaskError,
    UnknownToolError,
)
from cua_agent.domain.types import ProgressCallback, Result, Step
from cua_agent.infrastructure.llm import (
    ContentEvent,
    LoopEvent,
    ModelClientProtocol,
    ThinkingEvent,
    ToolCallEvent,
)
from cua_agent.infrastructure.memory import Observation, TaskMemory
from cua_agent.infrastructure.safety import Guardrails, TakeoverReason, TakeoverResponse
from cua_agent.infrastructure.tools import EscalationKind, ToolContext, ToolRegistry

from .instruction import build_instruction, render_instruction

logger = logging.getLogger(__name__)

MAX_RESULT_CHARS = 300
SCREENSHOT_PLACEHOLDER = "[earlier screenshot removed]"
PROVIDER_RATE_LIMIT_MESSAGE = "API rate limit exceeded - please wait 1 minute and retry"

EventCallback = Callable[[LoopEvent], None]


# ============================================================================
# Data Classes
# ============================================================================


@dataclass
class LoopConfig:
    """Configuration for the ReAct loop."""

    max_actions: int = 50
    headless: bool = False
    takeover_enabled: bool = False
    os_name: Optional[str] = None


@dataclass
class TurnOutcome:
    """What one model turn produced."""

    text: str = ""
    tool_call: Optional[ToolCallEvent] = None
    error: Optional[BaseException] = None


@dataclass
class _LoopState:
    steps: List[Step] = field(default_factory=list)
    turns: int = 0
    last_text: str = ""
    summary: str = ""
    error: Optional[BaseException] = None
    needs_help: bool = False


def _is_provider_rate_limit(error: BaseException) -> bool:
    text = str(error)
    return "429" in text or "RESOURCE_EXHAUSTED" in text


def _action_target(args: Dict[str, Any]) -> str:
    if "x" in args and "y" in args:
        return f"({args['x']}, {args['y']})"
    if "text" in args:
        return str(args["text"])
    return ""


def _strip_image(result_json: str) -> Dict[str, Any]:
    try:
        data = json.loads(result_json)
    except (TypeError, ValueError):
        return {"success": False, "error": f"tool returned invalid JSON: {result_json!r}"}
    if not isinstance(data, dict):
        return {"success": False, "error": "tool returned a non-object result"}
    return data


def _truncate(text: str, limit: int = MAX_RESULT_CHARS) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


# ============================================================================
# ReAct Loop
# ============================================================================


class ReActLoop:
    """
    Core ReAct loop for a single task.

    Responsibilities:
    - Keep the conversation and render task memory into the system prompt
    - Enforce the action budget
    - Run every tool call past the guardrails before dispatching it
    - Record steps, memory and guardrail outcomes
    - Decide when the task is over and build the ``Result``

    ``run`` lets ``asyncio.CancelledError`` propagate; the caller turns
    cancellation or a timeout into a result with ``finish``.
    """

    def __init__(
        self,
        model: ModelClientProtocol,
        registry: ToolRegistry,
        context: ToolContext,
        guardrails: Guardrails,
        config: Optional[LoopConfig] = None,
        progress: Optional[ProgressCallback] = None,
        on_event: Optional[EventCallback] = None,
    ) -> None:
        self._model = model
        self._registry = registry
        self._ctx = context
        self._guardrails = guardrails
        self._config = config or LoopConfig()
        self._progress = progress
        self._on_event = on_event

        self._task = ""
        self._started = 0.0
        self._state = _LoopState()
        self._memory: Optional[TaskMemory] = None
        self._messages: List[Dict[str, Any]] = []
        self._template = ""
        self._image_message: Optional[Dict[str, Any]] = None

    @property
    def memory(self) -> Optional[TaskMemory]:
        return self._memory

    @property
    def steps(self) -> List[Step]:
        return list(self._state.steps)

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return self._messages

    async def run(self, task: str) -> Result:
        """
        Run the loop until the task ends.

        Returns:
            The task result; loop failures are carried in ``Result.error``
        """
        self._start(task)

        try:
            while True:
                self._state.turns += 1
                if self._state.turns > self._config.max_actions:
                    raise MaxActionsError()

                self._messages[0]["content"] = render_instruction(
                    self._template, self._memory.to_prompt()
                )

                outcome = await self._think()
                if outcome.error is not None:
                    raise outcome.error
                if outcome.text:
                    self._state.last_text = outcome.text
                    self._memory.maybe_update_phase(Observation.of(visible_text=outcome.text))

                if outcome.tool_call is None:
                    # Text-only turn: the model has nothing left to do.
                    self._messages.append({"role": "assistant", "content": outcome.text})
                    logger.info("Model returned text without a tool call; ending loop")
                    break

                if await self._act(outcome.text, outcome.tool_call):
                    break

        except CUAError as e:
            self._state.error = e
            logger.info(f"Task ended: {e}")
        except Exception as e:
            logger.error(f"ReAct loop error: {e}", exc_info=True)
            self._state.error = e

        return self.finish()

    def _start(self, task: str) -> None:
        self._task = task
        self._started = time.monotonic()
        self._state = _LoopState()
        self._memory = TaskMemory(task)
        self._guardrails.begin_run()
        self._ctx.reset()
        self._image_message = None

        self._template = build_instruction(self._registry.tools(), self._config.os_name)
        self._messages = [
            {"role": "system", "content": render_instruction(self._template, self._memory.to_prompt())},
            {"role": "user", "content": task},
        ]
        logger.info(f"Starting task: {task}")

    # ------------------------------------------------------------------
    # Think
    # ------------------------------------------------------------------

    async def _think(self) -> TurnOutcome:
        outcome = TurnOutcome()
        texts: List[str] = []
        try:
            async for event in self._model.invoke(self._messages, self._registry.schemas()):
                self._emit(event)
                if isinstance(event, ThinkingEvent):
                    logger.debug(f"Model thinking: {event.text}")
                elif isinstance(event, ContentEvent):
                    texts.append(event.text)
                elif isinstance(event, ToolCallEvent):
                    if outcome.tool_call is None:
                        outcome.tool_call = event
                    else:
                        logger.warning(f"Ignoring extra tool call in one turn: {event.name}")
        except CUAError:
            raise
        except Exception as e:
            if _is_provider_rate_limit(e):
                logger.error(f"Model rate limited: {e}")
                outcome.error = RateLimitedError(PROVIDER_RATE_LIMIT_MESSAGE)
            else:
                logger.error(f"Model invocation failed: {e}", exc_info=True)
                outcome.error = CUAError(f"cua: model error: {e}")
                outcome.error.__cause__ = e

        outcome.text = "\n".join(t for t in texts if t).strip()
        return outcome

    def _emit(self, event: LoopEvent) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception as e:
            logger.warning(f"Event callback failed: {e}")

    # ------------------------------------------------------------------
    # Act / Observe
    # ------------------------------------------------------------------

    async def _act(self, text: str, call: ToolCallEvent) -> bool:
        """Execute one tool call. Returns True when the loop should stop."""
        raw_args: Any = call.arguments
        if isinstance(raw_args, dict) and "_raw" in raw_args:
            raw_args = raw_args["_raw"]
        self._messages.append(
            {
                "role": "assistant",
                "content": text or None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                    }
                ],
            }
        )

        if call.name not in self._registry:
            logger.warning(f"Model called unknown tool: {call.name}")
            self._observe(call, json.dumps({"success": False, "error": f"unknown tool: {call.name}"}))
            return False

        args = call.arguments if isinstance(call.arguments, dict) else {}
        target = _action_target(args)
        description = f"Executed {call.name}"
        step_number = len(self._state.steps) + 1
        started = time.monotonic()

        try:
            await self._validate(call.name, target, description)
        except (TakeoverRequestedError, ConsecutiveFailuresError) as e:
            return await self._handle_takeover(call, e)
        except SafetyBlockError as e:
            logger.warning(f"Action {call.name} blocked: {e}")
            self._guardrails.record_failure(call.name, target, e)
            self._memory.record_action(call.name, args, False, str(e))
            self._record_step(step_number, call.name, description, target, False, time.monotonic() - started, e)
            self._observe(call, json.dumps({"success": False, "error": str(e)}))
            return self._check_stuck()

        try:
            result_json = await self._registry.dispatch(self._ctx, call.name, raw_args)
        except UnknownToolError as e:
            logger.warning(str(e))
            self._observe(call, json.dumps({"success": False, "error": str(e)}))
            return False

        duration = time.monotonic() - started
        data = _strip_image(result_json)
        image = data.pop("image_base64", None)
        success = bool(data.get("success"))
        summary = _truncate(json.dumps(data))

        error: Optional[BaseException] = None
        if success:
            self._guardrails.record_success(call.name, target, summary)
        else:
            error = CUAError(str(data.get("error") or "tool failed"))
            self._guardrails.record_failure(call.name, target, error)

        self._memory.record_action(call.name, args, success, summary, duration)
        self._record_step(step_number, call.name, description, target, success, duration, error)
        self._observe(call, json.dumps(data), image)

        if self._ctx.escalation is not None:
            return await self._handle_escalation()
        return self._check_stuck()

    async def _validate(self, action: str, target: str, description: str) -> None:
        """Run the guardrail checks, suspending while the action rate limit is reached."""
        while True:
            try:
                self._guardrails.validate_action(action, target, description)
                return
            except RateLimitedError:
                waited = await self._guardrails.rate_limiter.wait(admit=False)
                logger.info(f"Action rate limit reached; waited {waited:.2f}s before {action}")

    def _record_step(
        self,
        number: int,
        action: str,
        description: str,
        target: str,
        success: bool,
        duration: float,
        error: Optional[BaseException],
    ) -> None:
        step = Step(
            number=number,
            action=action,
            description=description,
            target=target,
            success=success,
            duration=duration,
            error=ActionError(action, description, number, error) if error is not None else None,
        )
        self._state.steps.append(step)
        mark = "✓" if success else "✗"
        logger.info(f"[{mark}] Step {number}: {action} - {description}")

        if self._progress is not None:
            try:
                self._progress(step)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def _observe(self, call: ToolCallEvent, content: str, image: Optional[str] = None) -> None:
        self._messages.append({"role": "tool", "tool_call_id": call.id, "content": content})
        if not image:
            return

        if self._image_message is not None:
            self._image_message["content"] = SCREENSHOT_PLACEHOLDER
        message = {
            "role": "user",
            "content": [
                {"type": "text", "text": "Current screenshot:"},
                {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image}"}},
            ],
        }
        self._messages.append(message)
        self._image_message = message

    def _check_stuck(self) -> bool:
        if not self._memory.needs_help():
            return False
        logger.warning(f"Agent stuck after {self._memory.consecutive_fails} consecutive failures")
        self._state.needs_help = True
        raise AgentStuckError()

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    async def _handle_escalation(self) -> bool:
        escalation = self._ctx.escalation
        if escalation.kind == EscalationKind.COMPLETE:
            self._state.summary = escalation.message
            self._memory.add_milestone(f"Completed: {escalation.message}")
            return True

        logger.warning(f"Model asked for help: {escalation.message}")
        if await self._ask_human(TakeoverReason.PROGRAMMATIC, escalation.message):
            self._ctx.reset()
            return False

        self._state.needs_help = True
        self._state.summary = f"Agent needs help: {escalation.message}"
        raise HumanTakeoverError(f"cua: human takeover requested: {escalation.message}")

    async def _handle_takeover(self, call: ToolCallEvent, error: CUAError) -> bool:
        """Ask the human whether to go on after the guardrails stopped an action."""
        if isinstance(error, ConsecutiveFailuresError):
            self._state.needs_help = True
            reason, message = TakeoverReason.CONSECUTIVE_FAILURES, str(error)
        else:
            event = self._guardrails.takeover.last_event()
            reason = event.reason if event is not None else TakeoverReason.PROGRAMMATIC
            message = (event.message if event is not None else "") or str(error)

        if not await self._ask_human(reason, message):
            raise error

        self._guardrails.reset_failures()
        self._state.needs_help = False
        self._observe(
            call,
            json.dumps(
                {
                    "success": False,
                    "error": f"{call.name} was not executed: {error}",
                    "suggestion": "A human has returned control. Take a screenshot before continuing.",
                }
            ),
        )
        return False

    async def _ask_human(self, reason: TakeoverReason, message: str) -> bool:
        """Consult the takeover handler. Returns True when the run should continue."""
        if self._config.headless or not self._config.takeover_enabled:
            return False
        controller = self._guardrails.takeover
        response = await asyncio.to_thread(controller.request, reason, message)
        if response is None:
            logger.info("Waiting for the takeover response")
            response = await controller.wait_for_response()
        logger.info(f"Takeover response: {response.value}")
        if response in (TakeoverResponse.RESUME, TakeoverResponse.RETRY):
            self._guardrails.resume()
            return True
        return False

    def finish(self, error: Optional[BaseException] = None) -> Result:
        """
        Build the result from the state so far.

        Args:
            error: Overrides the loop's own error (timeout, cancellation)
        """
        state = self._state
        if error is not None:
            state.error = error

        steps = list(state.steps)
        stuck = state.needs_help or (self._memory is not None and self._memory.needs_help())
        success = state.error is None and len(steps) > 0 and not stuck

        summary = state.summary or state.last_text
        if not summary:
            if state.error is not None:
                summary = f"Task failed: {state.error}"
            elif steps:
                milestones = self._memory.milestones if self._memory is not None else []
                summary = f"Task completed in {len(steps)} steps"
                if milestones:
                    summary += ". Milestones: " + "; ".join(milestones)
            else:
                summary = "Task completed with no response"

        wrapped: Optional[BaseException] = None
        if state.error is not None:
            wrapped = TaskError(
                self._task,
                state.error,
                steps_total=len(steps),
                steps_failed=sum(1 for s in steps if not s.success),
                last_action=steps[-1].action if steps else "",
            )

        return Result(
            success=success,
            summary=summary,
            steps=steps,
            duration=time.monotonic() - self._started if self._started else 0.0,
            error=wrapped,
            needs_help=state.needs_help,
        )
