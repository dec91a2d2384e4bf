"""Path canonicalization and allowlist matching.

`PathResolver` turns an untrusted relative path into a canonical absolute
path inside the base directory. `AllowlistMatcher` decides whether such a
path is covered by the policy's `allow_paths`.
"""

import logging
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Literal

from toolgate.errors import ErrorCode
from toolgate.result import CapabilityResult

logger = logging.getLogger(__name__)

PathOp = Literal["read", "write", "list"]

# Never reachable through any tool, whatever allow_paths says
BLOCKED_SEGMENTS = frozenset({".git", ".env", "node_modules"})


def default_case_insensitive() -> bool:
    """Host default for path comparison (macOS and Windows fold case)."""
    return sys.platform in ("darwin", "win32")


def _is_within(base: str, target: str) -> bool:
    return target == base or target.startswith(base + os.sep)


class PathResolver:
    """Resolve relative paths against a fixed base directory."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = os.path.abspath(str(base_dir))
        self.canonical_base = os.path.realpath(self.base_dir)

    def _within_base(self, target: str) -> bool:
        return _is_within(self.base_dir, target) or _is_within(self.canonical_base, target)

    def _deny(self, requested: object, reason: str) -> CapabilityResult[str]:
        return CapabilityResult.failure(
            ErrorCode.DENIED_PATH_ALLOWLIST,
            f"Path '{requested}' is invalid or outside baseDir: {reason}",
            {"path": requested if isinstance(requested, str) else repr(requested)},
        )

    def resolve(self, requested_path: object) -> CapabilityResult[str]:
        """Canonicalize `requested_path` or deny it.

        String checks run before any filesystem access. Existing targets are
        resolved through symlinks and re-checked; new targets are
        canonicalized through their nearest existing ancestor.
        """
        if not isinstance(requested_path, str) or not requested_path:
            return self._deny(requested_path, "empty or not a string")
        if os.path.isabs(requested_path) or requested_path.startswith(("/", "\\")):
            return self._deny(requested_path, "absolute paths are not allowed")
        if ".." in re.split(r"[\\/]", requested_path):
            return self._deny(requested_path, "parent directory references are not allowed")

        candidate = os.path.normpath(os.path.join(self.base_dir, requested_path))
        if not _is_within(self.base_dir, candidate):
            return self._deny(requested_path, "outside base directory")

        if os.path.lexists(candidate):
            canonical = os.path.realpath(candidate)
            if not _is_within(self.canonical_base, canonical):
                return self._deny(requested_path, "resolves outside base directory")
            return CapabilityResult.success(canonical)

        # Canonicalize through the nearest existing ancestor so a symlink
        # above a not-yet-created path cannot carry it out of the base
        ancestor = os.path.dirname(candidate)
        while not os.path.lexists(ancestor):
            parent = os.path.dirname(ancestor)
            if parent == ancestor:
                break
            ancestor = parent
        canonical_ancestor = os.path.realpath(ancestor)
        if not _is_within(self.canonical_base, canonical_ancestor):
            return self._deny(requested_path, "parent resolves outside base directory")
        rel = os.path.relpath(candidate, ancestor)
        return CapabilityResult.success(os.path.normpath(os.path.join(canonical_ancestor, rel)))


@dataclass(frozen=True)
class AllowedPathEntry:
    canonical_path: str
    is_directory: bool


def build_allowed_entries(resolver: PathResolver, allow_paths: Iterable[str]) -> tuple[AllowedPathEntry, ...]:
    """Derive the immutable allowlist snapshot from policy strings."""
    entries: list[AllowedPathEntry] = []
    for raw in allow_paths:
        resolved = resolver.resolve(raw)
        if not resolved.ok:
            logger.warning(f"Ignoring allow_paths entry {raw!r}: {resolved.error.message}")
            continue
        path = resolved.value
        is_dir = raw.endswith(("/", os.sep)) or os.path.isdir(path)
        if is_dir and len(path) > 1:
            path = path.rstrip(os.sep) or path
        entries.append(AllowedPathEntry(canonical_path=path, is_directory=is_dir))
    return tuple(entries)


class AllowlistMatcher:
    """Decide whether a canonical path is permitted.

    `op` is accepted for every check but read, write and list currently
    share a single allowlist.
    """

    def __init__(
        self,
        resolver: PathResolver,
        entries: Iterable[AllowedPathEntry],
        case_insensitive: bool = False,
    ):
        self.resolver = resolver
        self.entries = tuple(entries)
        self.case_insensitive = case_insensitive

    @classmethod
    def from_policy(
        cls,
        resolver: PathResolver,
        allow_paths: Iterable[str],
        case_insensitive: bool = False,
    ) -> "AllowlistMatcher":
        return cls(resolver, build_allowed_entries(resolver, allow_paths), case_insensitive)

    def _relative_parts(self, target: str) -> list[str] | None:
        for base in (self.resolver.canonical_base, self.resolver.base_dir):
            if _is_within(base, target):
                rel = os.path.relpath(target, base)
                return [] if rel == "." else rel.split(os.sep)
        return None

    def is_blocked_segment(self, target: str) -> bool:
        parts = self._relative_parts(target)
        if parts is None:
            return True
        return any(part.lower() in BLOCKED_SEGMENTS for part in parts)

    def is_allowed(self, canonical_path: str, op: PathOp = "read") -> bool:
        if not isinstance(canonical_path, str) or not canonical_path:
            return False
        if self.is_blocked_segment(canonical_path):
            return False
        if not self.entries:
            return False

        target = canonical_path.lower() if self.case_insensitive else canonical_path
        for entry in self.entries:
            allowed = entry.canonical_path.lower() if self.case_insensitive else entry.canonical_path
            if entry.is_directory:
                if target == allowed or target.startswith(allowed.rstrip(os.sep) + os.sep):
                    return True
            elif target == allowed:
                return True
        return False
