"""Shared fixtures: keep tests away from the user's real config and audit log."""

import json
from pathlib import Path

import pytest

from toolgate.audit import AuditLog
from toolgate.config.schema import SandboxConfig
from toolgate.gate import ExecutionGate
from toolgate.permission.store import Permissions
from toolgate.tool.registry import create_default_registry


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory, monkeypatch):
    home = tmp_path_factory.mktemp("toolgate_home")
    for var in ("TOOLGATE_PERMISSIONS_PATH", "TOOLGATE_BASE_DIR", "TOOLGATE_DATA_DIR"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("TOOLGATE_CONFIG_DIR", str(home / "config"))
    monkeypatch.setenv("TOOLGATE_AUDIT_PATH", str(home / "audit.jsonl"))
    monkeypatch.setattr("toolgate.permission.store.GLOBAL_PERMISSIONS_FILE", home / "global" / "permissions.json")
    return home


@pytest.fixture
def write_permissions():
    """Write a permissions.json into a directory and return its path."""

    def _write(base: Path, **policy) -> Path:
        path = base / "permissions.json"
        path.write_text(json.dumps(policy))
        return path

    return _write


@pytest.fixture
def make_gate(tmp_path):
    """Build a gate over tmp_path with an in-memory policy and a private audit log."""

    def _make(audit_log=None, agent=None, **policy):
        config = SandboxConfig(base_dir=tmp_path, audit_path=tmp_path.parent / f"{tmp_path.name}-audit.jsonl")
        return ExecutionGate(
            registry=create_default_registry(),
            permissions=Permissions(**policy),
            config=config,
            permissions_path=str(tmp_path / "permissions.json"),
            audit_log=audit_log if audit_log is not None else AuditLog(config.audit_path),
            agent=agent,
        )

    return _make
