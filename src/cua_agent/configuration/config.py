"""
Configuration management for the Computer Use Agent.

Two layers:

- ``Settings`` reads the process environment (and ``.env`` files) through
  pydantic-settings. It is cached by ``get_settings()``.
- ``AgentConfig`` is the per-agent option bag. It starts from the settings
  and can be overridden per instance.
"""

import os
from dataclasses import asdict, dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cua_agent.domain.errors import NoAPIKeyError
from cua_agent.domain.types import Model, SafetyLevel

DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_ACTIONS = 50
DEFAULT_RATE_LIMIT_PER_MINUTE = 60
DEFAULT_SCREENSHOT_MAX_DIMENSION = 1280
DEFAULT_SCREENSHOT_QUALITY = 60

ENV_SEARCH_PARENTS = 3


def find_env_files(start: Optional[Path] = None, parents: int = ENV_SEARCH_PARENTS) -> Tuple[Path, ...]:
    """
    Collect ``.env`` files from ``start`` and up to ``parents`` parent directories.

    Returned farthest first, so that nearer files override farther ones when
    pydantic-settings loads them in order.
    """
    directory = (start or Path.cwd()).resolve()
    found = []
    for _ in range(parents + 1):
        candidate = directory / ".env"
        if candidate.is_file():
            found.append(candidate)
        if directory.parent == directory:
            break
        directory = directory.parent
    return tuple(reversed(found))


class Settings(BaseSettings):
    """Environment-backed settings."""

    # Model credentials
    google_api_key: Optional[str] = Field(default=None, alias="GOOGLE_API_KEY")
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")

    # Agent defaults
    model: str = Field(default=Model.FLASH.value, alias="CUA_MODEL")
    safety_level: SafetyLevel = Field(default=SafetyLevel.NORMAL, alias="CUA_SAFETY_LEVEL")
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, alias="CUA_TIMEOUT_SECONDS")
    max_actions: int = Field(default=DEFAULT_MAX_ACTIONS, alias="CUA_MAX_ACTIONS")
    rate_limit_per_minute: int = Field(
        default=DEFAULT_RATE_LIMIT_PER_MINUTE, alias="CUA_RATE_LIMIT_PER_MINUTE"
    )
    screen_index: int = Field(default=0, alias="CUA_SCREEN_INDEX")
    verbose: bool = Field(default=False, alias="CUA_VERBOSE")
    headless: bool = Field(default=False, alias="CUA_HEADLESS")

    # Screenshot pipeline
    screenshot_max_dimension: int = Field(
        default=DEFAULT_SCREENSHOT_MAX_DIMENSION, alias="CUA_SCREENSHOT_MAX_DIMENSION"
    )
    screenshot_quality: int = Field(
        default=DEFAULT_SCREENSHOT_QUALITY, alias="CUA_SCREENSHOT_QUALITY"
    )

    # Audit / logging
    audit_log_file: Optional[str] = Field(default=None, alias="CUA_AUDIT_LOG_FILE")
    log_level: str = Field(default="WARNING", alias="CUA_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance, loading ``.env`` files found from the current directory."""
    return Settings(_env_file=find_env_files() or None)


MODEL_ALIASES = {"flash": Model.FLASH, "pro": Model.PRO}


def resolve_model(model: Any) -> str:
    """Map ``Model`` members and the short names flash/pro to model ids; other names pass through."""
    if isinstance(model, Model):
        return model.value
    alias = MODEL_ALIASES.get(str(model).strip().lower())
    return alias.value if alias is not None else str(model)


def resolve_api_key(explicit: Optional[str] = None, settings: Optional[Settings] = None) -> str:
    """
    Resolve the model credential.

    Order: explicit option, GOOGLE_API_KEY, GEMINI_API_KEY.

    Raises:
        NoAPIKeyError: If no credential is available
    """
    if explicit:
        return explicit
    settings = settings or get_settings()
    key = (
        settings.google_api_key
        or os.getenv("GOOGLE_API_KEY")
        or settings.gemini_api_key
        or os.getenv("GEMINI_API_KEY")
    )
    if not key:
        raise NoAPIKeyError()
    return key


@dataclass
class ScreenshotConfig:
    """Screenshot pipeline settings."""

    max_dimension: int = DEFAULT_SCREENSHOT_MAX_DIMENSION
    quality: int = DEFAULT_SCREENSHOT_QUALITY


@dataclass
class AgentConfig:
    """
    Per-agent configuration.

    Invalid numeric values fall back to their defaults in ``__post_init__``
    so that a zero rate limit means "use the default" rather than "deny all".
    """

    api_key: Optional[str] = None
    model: str = Model.FLASH.value
    safety_level: SafetyLevel = SafetyLevel.NORMAL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_actions: int = DEFAULT_MAX_ACTIONS
    verbose: bool = False
    headless: bool = False
    rate_limit_per_minute: int = DEFAULT_RATE_LIMIT_PER_MINUTE
    screen_index: int = 0
    screenshot: ScreenshotConfig = field(default_factory=ScreenshotConfig)
    audit_log_file: Optional[str] = None

    def __post_init__(self) -> None:
        self.model = resolve_model(self.model)
        self.safety_level = SafetyLevel(self.safety_level)
        if self.timeout is None or self.timeout <= 0:
            self.timeout = DEFAULT_TIMEOUT_SECONDS
        if self.max_actions <= 0:
            self.max_actions = DEFAULT_MAX_ACTIONS
        if self.rate_limit_per_minute <= 0:
            self.rate_limit_per_minute = DEFAULT_RATE_LIMIT_PER_MINUTE
        if self.screen_index < 0:
            self.screen_index = 0
        if self.screenshot.max_dimension <= 0:
            self.screenshot.max_dimension = DEFAULT_SCREENSHOT_MAX_DIMENSION
        if not 1 <= self.screenshot.quality <= 95:
            self.screenshot.quality = DEFAULT_SCREENSHOT_QUALITY

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides: Any) -> "AgentConfig":
        """Create configuration from environment settings, then apply overrides."""
        settings = settings or get_settings()
        values: Dict[str, Any] = {
            "model": settings.model,
            "safety_level": settings.safety_level,
            "timeout": settings.timeout_seconds,
            "max_actions": settings.max_actions,
            "verbose": settings.verbose,
            "headless": settings.headless,
            "rate_limit_per_minute": settings.rate_limit_per_minute,
            "screen_index": settings.screen_index,
            "screenshot": ScreenshotConfig(
                max_dimension=settings.screenshot_max_dimension,
                quality=settings.screenshot_quality,
            ),
            "audit_log_file": settings.audit_log_file,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def copy(self) -> "AgentConfig":
        """Return a defensive copy."""
        return replace(self, screenshot=replace(self.screenshot))

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary, without the credential."""
        data = asdict(self)
        data["safety_level"] = self.safety_level.value
        data["api_key"] = "***" if self.api_key else None
        return data
