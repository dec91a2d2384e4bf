"""Configuration schemas using Pydantic"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from toolgate.audit import DEFAULT_AUDIT_PATH
from toolgate.permission.paths import default_case_insensitive
from toolgate.sandbox.commands import DEFAULT_MAX_OUTPUT_CHARS, DEFAULT_TIMEOUT


class LimitsConfig(BaseModel):
    """File operation size limits"""
    max_read_size: int = Field(default=1 * 1024 * 1024, gt=0)
    max_write_size: int = Field(default=10 * 1024 * 1024, gt=0)


class StorageConfig(BaseModel):
    """Record file names, relative to the data directory"""
    tasks: str = "tasks.jsonl"


class SandboxConfig(BaseModel):
    """Main configuration"""
    model_config = ConfigDict(extra="ignore")

    version: int = 1

    # Root every tool is confined to
    base_dir: Path = Field(default_factory=Path.cwd)

    # Where record files live; defaults to base_dir
    data_dir: Path | None = None

    # Explicit permissions file (absolute, or relative to base_dir)
    permissions_path: str | None = None

    # Audit logging
    audit_enabled: bool = True
    audit_path: Path = DEFAULT_AUDIT_PATH

    # Fold case when matching allow_paths
    case_insensitive_paths: bool = Field(default_factory=default_case_insensitive)

    # Spawned commands
    command_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, le=600)
    max_output_chars: int = Field(default=DEFAULT_MAX_OUTPUT_CHARS, gt=0)

    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @property
    def resolved_data_dir(self) -> Path:
        return self.data_dir if self.data_dir is not None else self.base_dir

    @property
    def tasks_path(self) -> Path:
        return self.resolved_data_dir / self.storage.tasks
