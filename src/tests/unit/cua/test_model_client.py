"""
Unit tests for the litellm model client.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cua_agent.infrastructure.llm import (
    ContentEvent,
    LiteLLMModelClient,
    ThinkingEvent,
    ToolCallEvent,
    litellm_model_name,
)


def make_response(message):
    response = MagicMock()
    response.choices = [{"message": message}]
    return response


async def collect(client, messages=None, tools=None):
    return [event async for event in client.invoke(messages or [], tools or [])]


@pytest.mark.parametrize(
    "model,expected",
    [
        ("gemini-2.5-flash", "gemini/gemini-2.5-flash"),
        ("gemini/gemini-2.5-pro", "gemini/gemini-2.5-pro"),
        ("gpt-4o", "gpt-4o"),
    ],
)
def test_litellm_model_name(model, expected):
    assert litellm_model_name(model) == expected


class TestLiteLLMModelClient:
    """Test suite for LiteLLMModelClient."""

    @pytest.mark.asyncio
    async def test_tool_call(self):
        message = {
            "content": "Taking a screenshot first.",
            "tool_calls": [
                {"id": "call_1", "function": {"name": "click", "arguments": '{"x": 500, "y": 500}'}}
            ],
        }
        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_acompletion:
            mock_acompletion.return_value = make_response(message)
            client = LiteLLMModelClient("gemini-2.5-flash", api_key="k")
            events = await collect(client, [{"role": "user", "content": "hi"}], [{"type": "function"}])

        assert events == [
            ContentEvent(text="Taking a screenshot first."),
            ToolCallEvent(name="click", arguments={"x": 500, "y": 500}, id="call_1"),
        ]
        kwargs = mock_acompletion.call_args.kwargs
        assert kwargs["model"] == "gemini/gemini-2.5-flash"
        assert kwargs["api_key"] == "k"
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_reasoning_and_text_only(self):
        message = {"reasoning_content": "thinking...", "content": "All done."}
        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=make_response(message)):
            events = await collect(LiteLLMModelClient("gemini-2.5-flash"))

        assert events == [ThinkingEvent(text="thinking..."), ContentEvent(text="All done.")]

    @pytest.mark.asyncio
    async def test_only_first_tool_call(self):
        message = {
            "content": None,
            "tool_calls": [
                {"id": "a", "function": {"name": "screenshot", "arguments": "{}"}},
                {"id": "b", "function": {"name": "click", "arguments": "{}"}},
            ],
        }
        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=make_response(message)):
            events = await collect(LiteLLMModelClient("gemini-2.5-flash"))

        assert [e.name for e in events] == ["screenshot"]

    @pytest.mark.asyncio
    async def test_malformed_arguments_kept_raw(self):
        message = {"tool_calls": [{"id": "a", "function": {"name": "click", "arguments": "{x: 1"}}]}
        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=make_response(message)):
            events = await collect(LiteLLMModelClient("gemini-2.5-flash"))

        assert events[0].arguments == {"_raw": "{x: 1"}

    @pytest.mark.asyncio
    async def test_no_tools_omits_tool_choice(self):
        with patch(
            "litellm.acompletion", new_callable=AsyncMock, return_value=make_response({"content": "x"})
        ) as mock_acompletion:
            await collect(LiteLLMModelClient("gemini-2.5-flash"))

        kwargs = mock_acompletion.call_args.kwargs
        assert "tools" not in kwargs
        assert "tool_choice" not in kwargs
        assert "api_key" not in kwargs

    @pytest.mark.asyncio
    async def test_no_choices(self):
        response = MagicMock()
        response.choices = []
        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=response):
            with pytest.raises(ValueError, match="No choices"):
                await collect(LiteLLMModelClient("gemini-2.5-flash"))

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        with patch("litellm.acompletion", new_callable=AsyncMock, side_effect=RuntimeError("429 quota")):
            with pytest.raises(RuntimeError, match="429"):
                await collect(LiteLLMModelClient("gemini-2.5-flash"))
