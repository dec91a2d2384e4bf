"""Explicit ok/err return type used by the sandbox capabilities."""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from toolgate.errors import ErrorCode, ToolError, make_error

T = TypeVar("T")


@dataclass(frozen=True)
class CapabilityResult(Generic[T]):
    """Either a value (`ok=True`) or a ToolError (`ok=False`), never both."""
    ok: bool
    value: Optional[T] = None
    error: Optional[ToolError] = None

    @classmethod
    def success(cls, value: T) -> "CapabilityResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, code: ErrorCode | str, message: str, details: Any = None) -> "CapabilityResult[T]":
        return cls(ok=False, error=make_error(code, message, details))

    @classmethod
    def from_error(cls, error: ToolError) -> "CapabilityResult[T]":
        return cls(ok=False, error=error)

    @property
    def code(self) -> Optional[str]:
        return self.error.code if self.error else None
