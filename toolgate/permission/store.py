"""Loading of the permissions policy.

The policy is read once and never mutated. Any problem finding or parsing
the file yields the deny-all policy rather than an exception.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "toolgate"
GLOBAL_PERMISSIONS_FILE = CONFIG_DIR / "permissions.json"
PERMISSIONS_FILENAME = "permissions.json"
PERMISSIONS_ENV_VAR = "TOOLGATE_PERMISSIONS_PATH"


class Permissions(BaseModel):
    """Allow/deny policy. The zero value denies everything."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    version: int = 1
    allow_paths: tuple[str, ...] = Field(default_factory=tuple)
    allow_commands: tuple[str, ...] = Field(default_factory=tuple)
    require_confirmation_for: tuple[str, ...] = Field(default_factory=tuple)
    deny_tools: tuple[str, ...] = Field(default_factory=tuple)

    @classmethod
    def deny_all(cls) -> "Permissions":
        return cls()

    def requires_confirmation(self, tool_name: str) -> bool:
        return tool_name in self.require_confirmation_for

    def is_tool_denied(self, tool_name: str) -> bool:
        return tool_name in self.deny_tools


def _within(base_dir: Path, candidate: Path) -> bool:
    base = str(base_dir)
    target = str(candidate)
    return target == base or target.startswith(base + os.sep)


def find_permissions_file(base_dir: str | Path, custom_path: Optional[str | Path] = None) -> Optional[Path]:
    """Return the first existing permissions file in priority order, or None.

    Order: environment override, explicit path, `{base_dir}/permissions.json`,
    the global fallback under ~/.config/toolgate.
    """
    base = Path(os.path.abspath(base_dir))

    env_path = os.environ.get(PERMISSIONS_ENV_VAR)
    if env_path:
        resolved = Path(env_path).expanduser()
        if not resolved.is_absolute():
            resolved = base / resolved
        if resolved.is_file():
            return resolved

    if custom_path:
        custom = Path(custom_path).expanduser()
        if custom.is_absolute():
            if custom.is_file():
                return custom
        else:
            resolved = Path(os.path.normpath(base / custom))
            if not _within(base, resolved):
                logger.warning(f"Ignoring permissions path outside base directory: {custom_path}")
            elif resolved.is_file():
                return resolved

    local = base / PERMISSIONS_FILENAME
    if local.is_file():
        return local

    if GLOBAL_PERMISSIONS_FILE.is_file():
        return GLOBAL_PERMISSIONS_FILE

    return None


def load_permissions(base_dir: str | Path, custom_path: Optional[str | Path] = None) -> Permissions:
    """Load the permissions policy, falling back to deny-all on any problem."""
    return PermissionStore(base_dir, custom_path).permissions


class PermissionStore:
    """Read-only holder of the policy and the file it came from."""

    def __init__(self, base_dir: str | Path, custom_path: Optional[str | Path] = None):
        self.base_dir = Path(base_dir)
        self.source: Optional[Path] = find_permissions_file(base_dir, custom_path)
        self._permissions = self._load()

    @property
    def permissions(self) -> Permissions:
        return self._permissions

    @property
    def display_path(self) -> str:
        """Path shown in denial messages so operators know what to edit."""
        if self.source is not None:
            return str(self.source)
        return str(self.base_dir / PERMISSIONS_FILENAME)

    def _load(self) -> Permissions:
        if self.source is None:
            logger.warning("No permissions.json found (checked env, custom, local and global). Defaulting to DENY ALL.")
            return Permissions.deny_all()

        try:
            data = json.loads(self.source.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load permissions from {self.source}: {e}. Defaulting to DENY ALL.")
            return Permissions.deny_all()

        if not isinstance(data, dict):
            logger.warning(f"Permissions file {self.source} is not a JSON object. Defaulting to DENY ALL.")
            return Permissions.deny_all()

        try:
            perms = Permissions.model_validate(data)
        except ValidationError as e:
            issues = "; ".join(
                f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            logger.warning(f"Schema validation failed for {self.source}: {issues}. Defaulting to DENY ALL.")
            return Permissions.deny_all()

        logger.info(
            f"Loaded permissions from {self.source}: allow_paths={len(perms.allow_paths)}, "
            f"allow_commands={len(perms.allow_commands)}, deny_tools={len(perms.deny_tools)}, "
            f"require_confirmation_for={len(perms.require_confirmation_for)}"
        )
        return perms
