"""Safety guardrails: rate limiting, sensitive actions, takeover and audit."""

from .audit_log import AuditEntry, AuditLevel, AuditLog
from .guardrails import Guardrails, GuardrailsConfig
from .rate_limiter import RateLimiter
from .sensitive import (
    SensitiveDetector,
    SensitiveLevel,
    SensitiveMatch,
    SensitivePattern,
    default_patterns,
)
from .takeover import (
    TakeoverController,
    TakeoverEvent,
    TakeoverHandler,
    TakeoverReason,
    TakeoverResponse,
)

__all__ = [
    "AuditEntry",
    "AuditLevel",
    "AuditLog",
    "Guardrails",
    "GuardrailsConfig",
    "RateLimiter",
    "SensitiveDetector",
    "SensitiveLevel",
    "SensitiveMatch",
    "SensitivePattern",
    "default_patterns",
    "TakeoverController",
    "TakeoverEvent",
    "TakeoverHandler",
    "TakeoverReason",
    "TakeoverResponse",
]
