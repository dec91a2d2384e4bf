"""Base tool class and the tool result envelope"""

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from toolgate.errors import ErrorCode, ToolError, make_error

if TYPE_CHECKING:
    from toolgate.capability import ToolContext


def now_ms() -> float:
    return time.perf_counter() * 1000


@dataclass
class DebugInfo:
    """Timing and provenance attached to a result as `_debug`."""
    path: str = "tool_json"
    duration_ms: Optional[int] = None
    model: Optional[str] = None
    memory_read: bool = False
    memory_write: bool = False

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "duration_ms": self.duration_ms,
            "model": self.model,
            "memory_read": self.memory_read,
            "memory_write": self.memory_write,
        }


def make_debug(start: Optional[float] = None, path: str = "tool_json", **kwargs) -> DebugInfo:
    duration = None if start is None else max(0, round(now_ms() - start))
    return DebugInfo(path=path, duration_ms=duration, **kwargs)


@dataclass
class ToolResult:
    """Outcome of one tool call. `ok` decides whether `result` or `error` is meaningful."""
    ok: bool
    result: Any = None
    error: Optional[ToolError] = None
    debug: Optional[DebugInfo] = None

    @classmethod
    def success(cls, result: Any = None, debug: Optional[DebugInfo] = None) -> "ToolResult":
        return cls(ok=True, result=result, debug=debug)

    @classmethod
    def failure(
        cls,
        code: ErrorCode | str,
        message: str,
        details: Any = None,
        debug: Optional[DebugInfo] = None,
    ) -> "ToolResult":
        return cls(ok=False, error=make_error(code, message, details), debug=debug)

    @classmethod
    def from_error(cls, error: ToolError, debug: Optional[DebugInfo] = None) -> "ToolResult":
        return cls(ok=False, error=error, debug=debug)

    @classmethod
    def coerce(cls, value: Any) -> Optional["ToolResult"]:
        """Accept a ToolResult or a result-shaped dict; None if neither."""
        if isinstance(value, ToolResult):
            return value if isinstance(value.ok, bool) else None
        if isinstance(value, dict) and isinstance(value.get("ok"), bool):
            error = value.get("error")
            if isinstance(error, dict):
                error = ToolError(
                    code=str(error.get("code", ErrorCode.EXEC_ERROR.value)),
                    message=str(error.get("message", "")),
                    details=error.get("details"),
                )
            elif error is not None and not isinstance(error, ToolError):
                error = make_error(ErrorCode.EXEC_ERROR, str(error))
            if not value["ok"] and error is None:
                error = make_error(ErrorCode.EXEC_ERROR, "Tool failed without an error message")
            return cls(ok=value["ok"], result=value.get("result"), error=error)
        return None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"ok": self.ok}
        if self.ok:
            data["result"] = self.result
        else:
            data["error"] = self.error.to_dict() if self.error else None
        if self.debug is not None:
            data["_debug"] = self.debug.to_dict()
        return data


class Tool:
    """Base class for tools dispatched through the execution gate.

    Subclasses set `name` and `description`, describe their arguments with
    `get_parameters_schema`, and implement `execute`. Handlers reach the
    filesystem and process table only through the capabilities on `context`.
    """
    name: str = ""
    description: str = ""

    def get_parameters_schema(self) -> dict:
        return {"type": "object", "properties": {}, "required": []}

    async def execute(self, args: dict, context: "ToolContext") -> ToolResult:
        raise NotImplementedError
