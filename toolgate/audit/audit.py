"""Audit trail of completed tool calls."""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from toolgate.storage.jsonl import read_safely

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_PATH = Path.home() / ".local" / "share" / "toolgate" / "audit.jsonl"

SENSITIVE_KEYS = ("password", "api_key", "apikey", "token", "secret", "credential")
MAX_ARG_CHARS = 100
TRUNCATION_MARKER = "...[truncated]"


@dataclass
class AuditEntry:
    """A single audit log entry."""
    timestamp: str
    tool: str
    args: dict = field(default_factory=dict)
    ok: bool = True
    error: Optional[str] = None
    error_code: Optional[str] = None
    duration_ms: Optional[int] = None
    agent: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def sanitize_args(args: Any) -> Any:
    """Redact sensitive keys and truncate long strings before logging."""
    if isinstance(args, dict):
        sanitized = {}
        for key, value in args.items():
            if any(s in str(key).lower() for s in SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = sanitize_args(value)
        return sanitized
    if isinstance(args, list):
        return [sanitize_args(v) for v in args]
    if isinstance(args, str) and len(args) > MAX_ARG_CHARS:
        return args[:MAX_ARG_CHARS] + TRUNCATION_MARKER
    return args


def _is_entry(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("tool"), str) and "ok" in value


class AuditLog:
    """Append-only JSONL audit log. Write failures never propagate."""

    def __init__(self, log_path: Optional[Path] = None, enabled: bool = True):
        self.enabled = enabled
        self.log_path = Path(log_path) if log_path else DEFAULT_AUDIT_PATH
        self._entries: list[AuditEntry] = []
        self._max_memory_entries = 1000

    def log_call(
        self,
        tool: str,
        args: Any,
        ok: bool,
        error: Optional[str] = None,
        error_code: Optional[str] = None,
        duration_ms: Optional[int] = None,
        agent: Optional[str] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            tool=tool,
            args=sanitize_args(args) if isinstance(args, dict) else {"_raw": sanitize_args(str(args))},
            ok=ok,
            error=error,
            error_code=error_code,
            duration_ms=duration_ms,
            agent=agent,
        )
        if not self.enabled:
            return entry

        self._entries.append(entry)
        if len(self._entries) > self._max_memory_entries:
            self._entries = self._entries[-self._max_memory_entries:]

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(entry.to_json() + "\n")
        except (OSError, TypeError, ValueError) as e:
            logger.debug(f"Failed to write audit log {self.log_path}: {e}")

        return entry

    def get_recent(self, count: int = 50, tool: Optional[str] = None) -> list[AuditEntry]:
        """Recent entries from this process, newest last."""
        entries = self._entries
        if tool:
            entries = [e for e in entries if e.tool == tool]
        return entries[-count:]

    def read_recent(self, count: int = 50) -> list[dict]:
        """Recent entries from the log file, including earlier runs."""
        return read_safely(self.log_path, _is_entry)[-count:]

    def get_stats(self) -> dict:
        stats = {
            "total_entries": len(self._entries),
            "successful": sum(1 for e in self._entries if e.ok),
            "failed": sum(1 for e in self._entries if not e.ok),
            "by_tool": {},
        }
        for entry in self._entries:
            stats["by_tool"][entry.tool] = stats["by_tool"].get(entry.tool, 0) + 1
        return stats
