"""Permission policy and path checks for tool execution.

The policy file decides which paths and commands tools may touch, which
tools need an explicit confirm flag and which tools never run.
"""

from .paths import (
    BLOCKED_SEGMENTS,
    AllowedPathEntry,
    AllowlistMatcher,
    PathOp,
    PathResolver,
    build_allowed_entries,
    default_case_insensitive,
)
from .store import (
    GLOBAL_PERMISSIONS_FILE,
    PERMISSIONS_ENV_VAR,
    PERMISSIONS_FILENAME,
    PermissionStore,
    Permissions,
    find_permissions_file,
    load_permissions,
)

__all__ = [
    "BLOCKED_SEGMENTS",
    "AllowedPathEntry",
    "AllowlistMatcher",
    "PathOp",
    "PathResolver",
    "build_allowed_entries",
    "default_case_insensitive",
    "GLOBAL_PERMISSIONS_FILE",
    "PERMISSIONS_ENV_VAR",
    "PERMISSIONS_FILENAME",
    "PermissionStore",
    "Permissions",
    "find_permissions_file",
    "load_permissions",
]
