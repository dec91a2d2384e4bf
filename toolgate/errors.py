"""Stable error codes and exception types shared across toolgate."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Error codes callers branch on. Values are part of the wire contract."""
    # Permission errors
    DENIED_COMMAND_ALLOWLIST = "DENIED_COMMAND_ALLOWLIST"
    DENIED_PATH_ALLOWLIST = "DENIED_PATH_ALLOWLIST"
    DENIED_TOOL_BLOCKLIST = "DENIED_TOOL_BLOCKLIST"
    DENIED_AGENT_TOOLSET = "DENIED_AGENT_TOOLSET"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    MISSING_ARGUMENT = "MISSING_ARGUMENT"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"

    # Execution errors
    EXEC_ERROR = "EXEC_ERROR"
    TIMEOUT = "TIMEOUT"
    PARSE_ERROR = "PARSE_ERROR"


@dataclass(frozen=True)
class ToolError:
    """The `error` member of a tool result envelope."""
    code: str
    message: str
    details: Any = None

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


def make_error(code: ErrorCode | str, message: str, details: Any = None) -> ToolError:
    """Create a ToolError from a code and message."""
    return ToolError(code=ErrorCode(code).value, message=message, details=details)


def make_permission_error(
    tool_name: str,
    path: Optional[str],
    permissions_path: Optional[str],
    code: ErrorCode = ErrorCode.DENIED_PATH_ALLOWLIST,
) -> ToolError:
    """Create a denial that tells the operator which file to edit."""
    message = f"Tool '{tool_name}' was blocked."
    if path:
        message += f" Path '{path}' is not allowed."
        if permissions_path:
            message += (
                f" To unblock, add this path to 'allow_paths' in the permissions file: "
                f"{permissions_path}"
            )
    else:
        message += " Command is not allowed."
    return make_error(code, message)


def make_confirmation_error(tool_name: str, permissions_path: Optional[str]) -> ToolError:
    message = f"Tool '{tool_name}' requires confirmation. Please retry with 'confirm: true'"
    if permissions_path:
        message += f" or remove '{tool_name}' from 'require_confirmation_for' in: {permissions_path}"
    return make_error(ErrorCode.CONFIRMATION_REQUIRED, message)


class ToolgateError(Exception):
    """Base exception carrying a stable error code."""
    code: ErrorCode = ErrorCode.EXEC_ERROR

    def __init__(self, message: str, code: Optional[ErrorCode] = None, details: Any = None):
        self.message = message
        self.details = details
        if code is not None:
            self.code = code
        super().__init__(message)

    def to_error(self) -> ToolError:
        return make_error(self.code, self.message, self.details)


class PathBlockedError(ToolgateError):
    """Raised when a path is blocked by security rules."""
    code = ErrorCode.DENIED_PATH_ALLOWLIST

    def __init__(self, path: str, reason: str = "", details: Any = None):
        self.path = path
        self.reason = reason or f"Path blocked by security policy: {path}"
        super().__init__(self.reason, details=details)


class CommandBlockedError(ToolgateError):
    """Raised when a command is blocked by security rules."""
    code = ErrorCode.DENIED_COMMAND_ALLOWLIST

    def __init__(self, command: str, reason: str = "", details: Any = None):
        self.command = command
        self.reason = reason or f"Command blocked by security policy: {command}"
        super().__init__(self.reason, details=details)


class StorageError(ToolgateError):
    """Raised when a record file cannot be written."""
    code = ErrorCode.EXEC_ERROR


class ConfigError(ToolgateError):
    """Raised for configuration that cannot be used even with defaults."""
    code = ErrorCode.VALIDATION_ERROR
