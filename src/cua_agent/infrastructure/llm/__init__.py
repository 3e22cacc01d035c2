"""Model client abstraction."""

from .model_client import (
    ContentEvent,
    LiteLLMModelClient,
    LoopEvent,
    ModelClientProtocol,
    ThinkingEvent,
    ToolCallEvent,
    litellm_model_name,
)

__all__ = [
    "ContentEvent",
    "LiteLLMModelClient",
    "LoopEvent",
    "ModelClientProtocol",
    "ThinkingEvent",
    "ToolCallEvent",
    "litellm_model_name",
]
