"""Configuration for the agent."""

from .config import (
    MODEL_ALIASES,
    AgentConfig,
    ScreenshotConfig,
    Settings,
    find_env_files,
    get_settings,
    resolve_model,
    resolve_api_key,
)

__all__ = [
    "MODEL_ALIASES",
    "AgentConfig",
    "ScreenshotConfig",
    "Settings",
    "find_env_files",
    "get_settings",
    "resolve_model",
    "resolve_api_key",
]
