"""
Unit tests for the ReAct loop, run end to end against scripted models.
"""

import json
import time

import pytest

from cua_agent.core import LoopConfig, ReActLoop
from cua_agent.core.react_loop import PROVIDER_RATE_LIMIT_MESSAGE, SCREENSHOT_PLACEHOLDER
from cua_agent.domain.errors import (
    AgentStuckError,
    ElementNotFoundError,
    HumanTakeoverError,
    MaxActionsError,
    RateLimitedError,
    SafetyBlockError,
    matches,
)
from cua_agent.domain.types import SafetyLevel
from cua_agent.infrastructure.input import InputAdapter, InputTiming
from cua_agent.infrastructure.llm import ContentEvent, ThinkingEvent, ToolCallEvent
from cua_agent.infrastructure.safety import (
    Guardrails,
    GuardrailsConfig,
    RateLimiter,
    TakeoverReason,
    TakeoverResponse,
)
from cua_agent.infrastructure.tools import ToolRegistry

from .conftest import FakeInputBackend, ScriptedModel, call


def make_loop(model, tool_context, guardrails, **config):
    config.setdefault("os_name", "darwin")
    return ReActLoop(
        model=model,
        registry=ToolRegistry(),
        context=tool_context,
        guardrails=guardrails,
        config=LoopConfig(**config),
    )


def tool_messages(loop):
    return [json.loads(m["content"]) for m in loop.messages if m["role"] == "tool"]


class TestScenarios:
    """End-to-end runs of the loop."""

    @pytest.mark.asyncio
    async def test_happy_path(self, tool_context, guardrails, input_backend):
        model = ScriptedModel(
            [
                call("screenshot"),
                call("key_press", key="space", modifiers=["cmd"]),
                call("type_text", text="Calculator"),
                call("key_press", key="enter"),
                call("complete_task", summary="Opened calculator"),
            ]
        )
        loop = make_loop(model, tool_context, guardrails)

        result = await loop.run("open calculator")

        assert result.success is True
        assert result.error is None
        assert result.summary == "Opened calculator"
        assert [s.action for s in result.steps] == [
            "screenshot",
            "key_press",
            "type_text",
            "key_press",
            "complete_task",
        ]
        assert [s.number for s in result.steps] == [1, 2, 3, 4, 5]
        assert loop.memory.consecutive_fails == 0
        assert "Completed: Opened calculator" in loop.memory.milestones
        assert input_backend.typed == "Calculator"
        assert len(model.requests) == 5

    @pytest.mark.asyncio
    async def test_max_actions(self, tool_context, guardrails):
        model = ScriptedModel([call("wait", duration=1) for _ in range(51)])
        loop = make_loop(model, tool_context, guardrails, max_actions=50)

        result = await loop.run("wait forever")

        assert result.success is False
        assert len(result.steps) == 50
        assert matches(result.error, MaxActionsError)
        assert result.error.steps_total == 50
        assert result.error.last_action == "wait"

    @pytest.mark.asyncio
    async def test_safety_block_strict(self, tool_context, input_backend):
        guardrails = Guardrails(GuardrailsConfig(level=SafetyLevel.STRICT))
        model = ScriptedModel(
            [
                [ContentEvent(text="I see a Password field."), ToolCallEvent(name="screenshot")],
                call("type_text", text="password123"),
            ]
        )
        loop = make_loop(model, tool_context, guardrails)

        result = await loop.run("log in")

        blocked = result.steps[1]
        assert blocked.action == "type_text"
        assert blocked.success is False
        assert matches(blocked.error, SafetyBlockError)
        assert loop.memory.consecutive_fails == 1
        assert input_backend.typed == ""
        assert "blocked" in tool_messages(loop)[-1]["error"]

    @pytest.mark.asyncio
    async def test_stuck_after_five_failures(self, tool_context, guardrails):
        tool_context.input = InputAdapter(
            FakeInputBackend(click_error=ElementNotFoundError()),
            timing=InputTiming.instant(),
            use_applescript=False,
        )
        model = ScriptedModel([call("click", x=10, y=10) for _ in range(6)])
        loop = make_loop(model, tool_context, guardrails)

        result = await loop.run("click the thing")

        assert result.success is False
        assert result.needs_help is True
        assert matches(result.error, AgentStuckError)
        assert len(result.steps) == 5
        assert all(not s.success for s in result.steps)
        assert "## STATUS: NEEDS HELP" in loop.memory.to_prompt()

    @pytest.mark.asyncio
    async def test_coordinate_interpretation(self, tool_context, guardrails, input_backend):
        model = ScriptedModel(
            [
                call("screenshot"),
                call("click", x=500, y=500),
                call("click", x=1500, y=500),
                call("complete_task", summary="clicked"),
            ]
        )
        loop = make_loop(model, tool_context, guardrails)

        result = await loop.run("click around")

        assert result.success is True
        assert input_backend.of_kind("move") == [("move", 756, 491), ("move", 1511, 591)]
        clicks = tool_messages(loop)[1:3]
        assert clicks[0]["interpreted_as"] == "normalized"
        assert clicks[1]["interpreted_as"] == "image_pixels"


class TestConversation:
    """Tests for the messages the loop sends to the model."""

    @pytest.mark.asyncio
    async def test_initial_messages(self, tool_context, guardrails):
        model = ScriptedModel([])
        loop = make_loop(model, tool_context, guardrails)

        await loop.run("open calculator")

        system, user = model.requests[0][:2]
        assert system["role"] == "system"
        assert "## TASK\nopen calculator" in system["content"]
        assert "<os>macOS</os>" in system["content"]
        assert user == {"role": "user", "content": "open calculator"}
        assert [t["function"]["name"] for t in model.tools[0]][0] == "screenshot"

    @pytest.mark.asyncio
    async def test_memory_rendered_each_turn(self, tool_context, guardrails):
        model = ScriptedModel([call("wait", duration=1)])
        loop = make_loop(model, tool_context, guardrails)

        await loop.run("wait a bit")

        assert "## RECENT ACTIONS" not in model.requests[0][0]["content"]
        assert "✓ Step 1: wait" in model.requests[1][0]["content"]

    @pytest.mark.asyncio
    async def test_tool_call_and_result_messages(self, tool_context, guardrails):
        model = ScriptedModel([[ToolCallEvent(name="wait", arguments={"duration": 1}, id="call_7")]])
        loop = make_loop(model, tool_context, guardrails)

        await loop.run("wait")

        assistant = next(m for m in loop.messages if m.get("tool_calls"))
        assert assistant["tool_calls"][0]["id"] == "call_7"
        assert json.loads(assistant["tool_calls"][0]["function"]["arguments"]) == {"duration": 1}
        tool = next(m for m in loop.messages if m["role"] == "tool")
        assert tool["tool_call_id"] == "call_7"
        assert json.loads(tool["content"])["success"] is True

    @pytest.mark.asyncio
    async def test_only_latest_screenshot_is_kept(self, tool_context, guardrails):
        model = ScriptedModel([call("screenshot"), call("screenshot")])
        loop = make_loop(model, tool_context, guardrails)

        await loop.run("look twice")

        images = [m for m in loop.messages if m["role"] == "user" and m is not loop.messages[1]]
        assert images[0]["content"] == SCREENSHOT_PLACEHOLDER
        latest = images[1]["content"]
        assert latest[0] == {"type": "text", "text": "Current screenshot:"}
        assert latest[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")
        for result in tool_messages(loop):
            assert "image_base64" not in result

    @pytest.mark.asyncio
    async def test_step_summary_is_truncated(self, tool_context, guardrails):
        model = ScriptedModel([call("type_text", text="x" * 1000)])
        loop = make_loop(model, tool_context, guardrails)

        await loop.run("type a lot")

        recorded = loop.memory.recent_actions[0].result
        assert len(recorded) == 300
        assert recorded.endswith("...")


class TestTermination:
    """Tests for how runs end."""

    @pytest.mark.asyncio
    async def test_text_only_turn_ends_loop(self, tool_context, guardrails):
        loop = make_loop(ScriptedModel([[ContentEvent(text="Nothing to do.")]]), tool_context, guardrails)

        result = await loop.run("hello")

        assert result.success is False
        assert result.error is None
        assert result.steps == []
        assert result.summary == "Nothing to do."

    @pytest.mark.asyncio
    async def test_summary_from_steps_without_complete(self, tool_context, guardrails):
        model = ScriptedModel([call("wait", duration=1), [ContentEvent(text="")]])
        loop = make_loop(model, tool_context, guardrails)

        result = await loop.run("wait")

        assert result.success is True
        assert result.summary == "Task completed in 1 steps"

    @pytest.mark.asyncio
    async def test_unknown_tool_is_observed(self, tool_context, guardrails):
        loop = make_loop(ScriptedModel([call("teleport", x=1)]), tool_context, guardrails)

        result = await loop.run("go somewhere")

        assert result.steps == []
        assert tool_messages(loop)[0] == {"success": False, "error": "unknown tool: teleport"}
        assert result.summary == "Done"

    @pytest.mark.asyncio
    async def test_tool_failure_is_observation(self, tool_context, guardrails):
        model = ScriptedModel([call("wait", duration=0), call("complete_task", summary="ok")])
        loop = make_loop(model, tool_context, guardrails)

        result = await loop.run("wait")

        assert result.success is True
        assert result.steps[0].success is False
        assert "at least 1 millisecond" in str(result.steps[0].error)
        assert result.steps_failed == 1

    @pytest.mark.asyncio
    async def test_provider_rate_limit(self, tool_context, guardrails):
        loop = make_loop(ScriptedModel([RuntimeError("429 RESOURCE_EXHAUSTED")]), tool_context, guardrails)

        result = await loop.run("anything")

        assert result.success is False
        assert matches(result.error, RateLimitedError)
        assert PROVIDER_RATE_LIMIT_MESSAGE in str(result.error)

    @pytest.mark.asyncio
    async def test_model_error(self, tool_context, guardrails):
        loop = make_loop(ScriptedModel([RuntimeError("connection reset")]), tool_context, guardrails)

        result = await loop.run("anything")

        assert "model error: connection reset" in str(result.error)
        assert result.summary.startswith("Task failed:")

    @pytest.mark.asyncio
    async def test_action_rate_limit_waits_for_slot(self, tool_context):
        guardrails = Guardrails(GuardrailsConfig(max_actions_per_minute=1))
        guardrails.rate_limiter = RateLimiter(max_per_minute=1, window_seconds=0.05)
        model = ScriptedModel([call("wait", duration=1), call("wait", duration=1)])
        loop = make_loop(model, tool_context, guardrails)

        started = time.monotonic()
        result = await loop.run("wait twice")

        assert time.monotonic() - started >= 0.04
        assert [s.success for s in result.steps] == [True, True]
        assert result.success is True
        assert guardrails.consecutive_failures() == 0

    @pytest.mark.asyncio
    async def test_need_help_without_handler(self, tool_context, guardrails):
        loop = make_loop(ScriptedModel([call("need_help", reason="captcha")]), tool_context, guardrails)

        result = await loop.run("sign up")

        assert result.success is False
        assert result.needs_help is True
        assert matches(result.error, HumanTakeoverError)
        assert result.summary == "Agent needs help: captcha"

    @pytest.mark.asyncio
    async def test_need_help_resumed_by_human(self, tool_context):
        events = []

        def handler(event):
            events.append(event)
            return TakeoverResponse.RESUME

        guardrails = Guardrails(takeover_handler=handler)
        model = ScriptedModel(
            [call("need_help", reason="captcha"), call("complete_task", summary="signed up")]
        )
        loop = make_loop(model, tool_context, guardrails, takeover_enabled=True)

        result = await loop.run("sign up")

        assert result.success is True
        assert result.summary == "signed up"
        assert events[0].message == "captcha"

    @pytest.mark.asyncio
    async def test_headless_never_asks(self, tool_context):
        asked = []
        guardrails = Guardrails(takeover_handler=lambda e: asked.append(e) or TakeoverResponse.RESUME)
        loop = make_loop(
            ScriptedModel([call("need_help", reason="captcha")]),
            tool_context,
            guardrails,
            takeover_enabled=True,
            headless=True,
        )

        result = await loop.run("sign up")

        assert asked == []
        assert result.needs_help is True

    @pytest.mark.asyncio
    async def test_pending_takeover_stops_run(self, tool_context, guardrails):
        guardrails.request_takeover()
        loop = make_loop(ScriptedModel([call("wait", duration=1)]), tool_context, guardrails)

        result = await loop.run("wait")

        assert result.steps == []
        assert matches(result.error, HumanTakeoverError)

    @pytest.mark.asyncio
    async def test_pending_takeover_resumed_by_handler(self, tool_context):
        events = []

        def handler(event):
            events.append(event)
            return TakeoverResponse.RESUME

        guardrails = Guardrails(takeover_handler=handler)
        guardrails.request_takeover(TakeoverReason.HOTKEY, "hands off")
        model = ScriptedModel([call("wait", duration=1), call("complete_task", summary="done")])
        loop = make_loop(model, tool_context, guardrails, takeover_enabled=True)

        result = await loop.run("wait")

        assert result.success is True
        assert [s.action for s in result.steps] == ["complete_task"]
        assert events[0].reason == TakeoverReason.HOTKEY
        assert events[0].message == "hands off"
        assert "wait was not executed" in tool_messages(loop)[0]["error"]
        assert not guardrails.is_paused()

    @pytest.mark.asyncio
    async def test_pending_takeover_aborted_by_handler(self, tool_context):
        guardrails = Guardrails(takeover_handler=lambda e: TakeoverResponse.ABORT)
        guardrails.request_takeover()
        loop = make_loop(ScriptedModel([call("wait", duration=1)]), tool_context, guardrails, takeover_enabled=True)

        result = await loop.run("wait")

        assert result.steps == []
        assert matches(result.error, HumanTakeoverError)
        assert guardrails.is_paused()

    @pytest.mark.asyncio
    async def test_takeover_answered_later(self, tool_context):
        guardrails = Guardrails()

        def handler(event):
            # Answer out of band, as a UI thread would.
            guardrails.takeover.respond(TakeoverResponse.RETRY)
            return None

        guardrails.takeover.set_handler(handler)
        guardrails.request_takeover()
        model = ScriptedModel([call("wait", duration=1), call("complete_task", summary="done")])
        loop = make_loop(model, tool_context, guardrails, takeover_enabled=True)

        result = await loop.run("wait")

        assert result.success is True
        assert result.summary == "done"
        assert not guardrails.takeover.is_active()

    @pytest.mark.asyncio
    async def test_consecutive_failures_resumed_by_handler(self, tool_context):
        events = []

        def handler(event):
            events.append(event)
            return TakeoverResponse.RESUME

        guardrails = Guardrails(GuardrailsConfig(max_consecutive_failures=2), takeover_handler=handler)
        model = ScriptedModel(
            [
                call("wait", duration=0),
                call("wait", duration=0),
                call("wait", duration=1),
                call("complete_task", summary="recovered"),
            ]
        )
        loop = make_loop(model, tool_context, guardrails, takeover_enabled=True)

        result = await loop.run("wait")

        assert result.success is True
        assert [s.success for s in result.steps] == [False, False, True]
        assert events[0].reason == TakeoverReason.CONSECUTIVE_FAILURES
        assert "was not executed" in tool_messages(loop)[2]["error"]
        assert guardrails.consecutive_failures() == 0


class TestCallbacks:
    """Tests for progress and event callbacks."""

    @pytest.mark.asyncio
    async def test_progress_in_order(self, tool_context, guardrails):
        seen = []
        model = ScriptedModel(
            [call("wait", duration=1), call("wait", duration=1), call("complete_task", summary="ok")]
        )
        loop = ReActLoop(
            model, ToolRegistry(), tool_context, guardrails, LoopConfig(os_name="darwin"),
            progress=lambda step: seen.append((step.number, step.action, step.success)),
        )

        await loop.run("wait")

        assert seen == [(1, "wait", True), (2, "wait", True), (3, "complete_task", True)]

    @pytest.mark.asyncio
    async def test_failing_progress_callback_is_ignored(self, tool_context, guardrails):
        def boom(step):
            raise RuntimeError("callback bug")

        model = ScriptedModel([call("complete_task", summary="ok")])
        loop = ReActLoop(model, ToolRegistry(), tool_context, guardrails, progress=boom)

        result = await loop.run("finish")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_events_forwarded(self, tool_context, guardrails):
        events = []
        model = ScriptedModel(
            [
                [
                    ThinkingEvent(text="hmm"),
                    ContentEvent(text="ok"),
                    ToolCallEvent(name="wait", arguments={"duration": 1}),
                ]
            ]
        )
        loop = ReActLoop(model, ToolRegistry(), tool_context, guardrails, on_event=events.append)

        await loop.run("wait")

        assert [type(e).__name__ for e in events[:3]] == ["ThinkingEvent", "ContentEvent", "ToolCallEvent"]

    @pytest.mark.asyncio
    async def test_extra_tool_calls_ignored(self, tool_context, guardrails, input_backend):
        model = ScriptedModel(
            [
                [
                    ToolCallEvent(name="wait", arguments={"duration": 1}),
                    ToolCallEvent(name="click", arguments={"x": 1, "y": 1}),
                ]
            ]
        )
        loop = make_loop(model, tool_context, guardrails)

        result = await loop.run("wait")

        assert [s.action for s in result.steps] == ["wait"]
        assert input_backend.of_kind("click") == []
