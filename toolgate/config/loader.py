"""Load the application configuration.

Sources, later wins: built-in defaults, `config.json` in the config
directory, then environment variables. A malformed file is treated as
absent.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .schema import SandboxConfig

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "TOOLGATE_CONFIG_DIR"
BASE_DIR_ENV = "TOOLGATE_BASE_DIR"
DATA_DIR_ENV = "TOOLGATE_DATA_DIR"
AUDIT_PATH_ENV = "TOOLGATE_AUDIT_PATH"
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "toolgate"


def get_config_dir() -> Path:
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        path = Path(override).expanduser()
        return path if path.is_absolute() else Path.home() / path
    return DEFAULT_CONFIG_DIR


def get_config_file() -> Path:
    return get_config_dir() / "config.json"


def _read_file(config_file: Path) -> dict[str, Any]:
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read config {config_file}: {e}. Using defaults.")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Config {config_file} is not a JSON object. Using defaults.")
        return {}
    return data


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if os.environ.get(BASE_DIR_ENV):
        overrides["base_dir"] = Path(os.environ[BASE_DIR_ENV]).expanduser()
    if os.environ.get(DATA_DIR_ENV):
        overrides["data_dir"] = Path(os.environ[DATA_DIR_ENV]).expanduser()
    if os.environ.get(AUDIT_PATH_ENV):
        overrides["audit_path"] = Path(os.environ[AUDIT_PATH_ENV]).expanduser()
    return overrides


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> SandboxConfig:
    """Build the effective configuration; never raises on bad input files."""
    file_data = _read_file(config_file or get_config_file())
    try:
        base = SandboxConfig(**file_data)
    except ValidationError as e:
        issues = ", ".join(f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors())
        logger.warning(f"Config validation failed, using defaults: {issues}")
        base = SandboxConfig()

    updates = _env_overrides()
    updates.update({k: v for k, v in overrides.items() if v is not None})
    if not updates:
        return base
    return SandboxConfig(**{**base.model_dump(), **updates})
