"""Request-scoped capabilities handed to tool handlers.

A handler receives a `ToolContext` and reaches the filesystem, the
process table and the record files only through the objects on it. Every
method returns a `CapabilityResult` except `PathCapabilities.require_allowed`,
which raises PathBlockedError and leaves the conversion to the gate.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from toolgate.config.schema import LimitsConfig
from toolgate.errors import ErrorCode, PathBlockedError, StorageError, make_permission_error
from toolgate.permission.paths import AllowlistMatcher, PathOp, PathResolver
from toolgate.result import CapabilityResult
from toolgate.sandbox.commands import CommandSandbox
from toolgate.storage import jsonl

logger = logging.getLogger(__name__)


class PathCapabilities:
    """Path checks bound to one tool call."""

    def __init__(
        self,
        resolver: PathResolver,
        matcher: AllowlistMatcher,
        tool_name: str,
        permissions_path: Optional[str] = None,
    ):
        self._resolver = resolver
        self._matcher = matcher
        self._tool_name = tool_name
        self._permissions_path = permissions_path

    def resolve(self, requested_path: Any) -> CapabilityResult[str]:
        return self._resolver.resolve(requested_path)

    def assert_allowed(self, canonical_path: str, op: PathOp = "read") -> CapabilityResult[str]:
        if self._matcher.is_allowed(canonical_path, op):
            return CapabilityResult.success(canonical_path)
        return CapabilityResult.from_error(
            make_permission_error(self._tool_name, canonical_path, self._permissions_path)
        )

    def require_allowed(self, requested_path: Any, op: PathOp = "read") -> str:
        """Resolve and check in one step, raising PathBlockedError on denial.

        The denial names the path as requested, not its canonical form.
        """
        resolved = self._resolver.resolve(requested_path)
        if not resolved.ok:
            raise PathBlockedError(str(requested_path), resolved.error.message, resolved.error.details)
        if not self._matcher.is_allowed(resolved.value, op):
            denial = make_permission_error(self._tool_name, str(requested_path), self._permissions_path)
            raise PathBlockedError(str(requested_path), denial.message)
        return resolved.value

    def resolve_allowed(self, requested_path: Any, op: PathOp = "read") -> CapabilityResult[str]:
        try:
            return CapabilityResult.success(self.require_allowed(requested_path, op))
        except PathBlockedError as e:
            return CapabilityResult.from_error(e.to_error())

    def is_allowed(self, canonical_path: str, op: PathOp = "read") -> bool:
        return self._matcher.is_allowed(canonical_path, op)


class CommandCapabilities:
    def __init__(self, sandbox: CommandSandbox):
        self._sandbox = sandbox

    def run_allowed(self, cmd: str, args: Optional[Iterable[str]] = None) -> CapabilityResult[str]:
        return self._sandbox.run_allowed(cmd, list(args or []))


class RecordCapabilities:
    """JSONL record files under the data directory, addressed by file name."""

    def __init__(self, data_dir: str | Path):
        self._data_dir = Path(data_dir)

    def _path(self, name: str) -> CapabilityResult[Path]:
        if not isinstance(name, str) or not name or name in (".", ".."):
            return CapabilityResult.failure(ErrorCode.INVALID_ARGUMENT, f"Invalid record file name: {name!r}")
        if os.sep in name or "/" in name or "\\" in name:
            return CapabilityResult.failure(
                ErrorCode.INVALID_ARGUMENT, f"Record file name must not contain a path separator: {name}"
            )
        return CapabilityResult.success(self._data_dir / name)

    def read(self, name: str, is_valid: Optional[Callable[[Any], bool]] = None) -> CapabilityResult[list]:
        path = self._path(name)
        if not path.ok:
            return path
        return CapabilityResult.success(jsonl.read_safely(path.value, is_valid))

    def write(self, name: str, entries: Iterable[Any]) -> CapabilityResult[int]:
        path = self._path(name)
        if not path.ok:
            return path
        entries = list(entries)
        try:
            jsonl.write_atomic(path.value, entries)
        except StorageError as e:
            logger.error(e.message)
            return CapabilityResult.from_error(e.to_error())
        return CapabilityResult.success(len(entries))

    def append(self, name: str, entry: Any) -> CapabilityResult[int]:
        path = self._path(name)
        if not path.ok:
            return path
        try:
            jsonl.append_one(path.value, entry)
        except StorageError as e:
            logger.error(e.message)
            return CapabilityResult.from_error(e.to_error())
        return CapabilityResult.success(1)


@dataclass(frozen=True)
class ToolContext:
    """Everything a handler may touch during one call."""
    tool_name: str
    paths: PathCapabilities
    commands: CommandCapabilities
    records: RecordCapabilities
    limits: LimitsConfig
    base_dir: str
    tasks_file: str = "tasks.jsonl"
    start: Optional[float] = None
