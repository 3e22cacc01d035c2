"""
Audit Log

Records every action the guardrails see: what was attempted, against
which target, and how it turned out. Entries live in a bounded in-memory
buffer and, when a path is configured, are appended to a JSON-lines file.
"""

import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000


class AuditLevel(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    ACTION = "ACTION"


class AuditEntry(BaseModel):
    """Audit log entry model."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: AuditLevel
    action: str = ""
    description: str = ""
    target: Optional[str] = None
    result: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_json_line(self) -> str:
        return self.model_dump_json(exclude_none=True)


class AuditLog:
    """
    Bounded audit trail with an optional file sink.

    When the buffer is full the oldest quarter is dropped in one go, so
    appends stay cheap.

    Example:
        audit = AuditLog(log_file="/tmp/cua-audit.jsonl")
        audit.log_action("click", "Executed click", "(100, 200)")
        audit.log_action_result("click", "Action succeeded", "(100, 200)", "ok")
    """

    def __init__(
        self,
        log_file: Optional[Union[str, Path]] = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        """
        Initialize the audit log.

        Args:
            log_file: JSON-lines file to append to; None keeps entries in memory only
            max_entries: In-memory buffer capacity
        """
        self.log_file = Path(log_file) if log_file else None
        self.max_entries = max_entries if max_entries > 0 else DEFAULT_MAX_ENTRIES
        self._entries: List[AuditEntry] = []
        self._lock = threading.Lock()

        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            self.log_file.touch(exist_ok=True)

    def log(self, entry: AuditEntry) -> AuditEntry:
        with self._lock:
            if len(self._entries) >= self.max_entries:
                del self._entries[: self.max_entries // 4]
            self._entries.append(entry)

            if self.log_file is not None:
                self._write(entry)
        return entry

    def _write(self, entry: AuditEntry) -> None:
        try:
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(entry.to_json_line() + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit log entry: {e}")

    def log_action(self, action: str, description: str, target: str = "") -> AuditEntry:
        return self.log(
            AuditEntry(
                level=AuditLevel.ACTION,
                action=action,
                description=description,
                target=target or None,
            )
        )

    def log_action_result(
        self,
        action: str,
        description: str,
        target: str = "",
        result: str = "",
        error: Optional[BaseException] = None,
    ) -> AuditEntry:
        return self.log(
            AuditEntry(
                level=AuditLevel.ERROR if error is not None else AuditLevel.ACTION,
                action=action,
                description=description,
                target=target or None,
                result=result or None,
                error=str(error) if error is not None else None,
            )
        )

    def log_warning(self, description: str, metadata: Optional[Dict[str, Any]] = None) -> AuditEntry:
        return self.log(
            AuditEntry(level=AuditLevel.WARNING, description=description, metadata=metadata or {})
        )

    def log_error(self, description: str, error: BaseException) -> AuditEntry:
        return self.log(AuditEntry(level=AuditLevel.ERROR, description=description, error=str(error)))

    def entries(self) -> List[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def entries_since(self, since: datetime) -> List[AuditEntry]:
        with self._lock:
            return [e for e in self._entries if e.timestamp >= since]

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    def count(self) -> int:
        with self._lock:
            return len(self._entries)
