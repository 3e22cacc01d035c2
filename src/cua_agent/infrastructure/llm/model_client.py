"""
Model client for the agent loop.

The loop talks to the model through ``ModelClientProtocol``: one call per
turn, returning a short stream of events (reasoning text, response text,
tool calls). ``LiteLLMModelClient`` is the production implementation on
litellm; tests substitute a scripted client.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.0


# ============================================================================
# Events
# ============================================================================


@dataclass
class ThinkingEvent:
    """Model reasoning, forwarded to streaming subscribers only."""

    text: str


@dataclass
class ContentEvent:
    """Response text shown to the user."""

    text: str


@dataclass
class ToolCallEvent:
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: f"call_{uuid.uuid4().hex[:12]}")


LoopEvent = Union[ThinkingEvent, ContentEvent, ToolCallEvent]


class ModelClientProtocol(Protocol):
    """One model turn: messages and tool definitions in, events out."""

    def invoke(
        self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]
    ) -> AsyncIterator[LoopEvent]: ...


# ============================================================================
# LiteLLM implementation
# ============================================================================


def litellm_model_name(model: str) -> str:
    """Route bare Gemini model names through litellm's gemini provider."""
    if "/" in model:
        return model
    if model.startswith("gemini"):
        return f"gemini/{model}"
    return model


def _get_attr(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Tool call arguments are not valid JSON: {raw!r}")
        return {"_raw": raw}
    return parsed if isinstance(parsed, dict) else {"_raw": parsed}


class LiteLLMModelClient:
    """
    Model client on ``litellm.acompletion``.

    Example:
        client = LiteLLMModelClient(model="gemini-2.5-flash", api_key=key)
        async for event in client.invoke(messages, registry.schemas()):
            ...
    """

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        num_retries: int = 2,
        **extra: Any,
    ):
        self.model = litellm_model_name(model)
        self._api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.num_retries = num_retries
        self._extra = extra

    def _build_completion_kwargs(
        self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "num_retries": self.num_retries,
            **self._extra,
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        return kwargs

    async def invoke(
        self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]
    ) -> AsyncIterator[LoopEvent]:
        import litellm

        response = await litellm.acompletion(**self._build_completion_kwargs(messages, tools))
        if not response.choices:
            raise ValueError("No choices in response")

        message = _get_attr(response.choices[0], "message", {})

        reasoning = _get_attr(message, "reasoning_content", None)
        if reasoning:
            yield ThinkingEvent(text=reasoning)

        content = _get_attr(message, "content", "") or ""
        if content:
            yield ContentEvent(text=content)

        tool_calls = _get_attr(message, "tool_calls", None) or []
        if len(tool_calls) > 1:
            logger.warning(f"Model returned {len(tool_calls)} tool calls; only the first is executed")
        for call in tool_calls[:1]:
            function = _get_attr(call, "function", {})
            yield ToolCallEvent(
                id=_get_attr(call, "id", None) or f"call_{uuid.uuid4().hex[:12]}",
                name=_get_attr(function, "name", "") or "",
                arguments=_parse_arguments(_get_attr(function, "arguments", None)),
            )
