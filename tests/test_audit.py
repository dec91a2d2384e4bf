"""Tests for the audit log"""

import json

from toolgate.audit import AuditLog, sanitize_args


class TestSanitizeArgs:
    """Test sanitize_args"""

    def test_redacts_sensitive_keys(self):
        args = {"path": "a.txt", "password": "hunter2", "API_KEY": "k", "auth_token": "t", "client_secret": "s"}
        sanitized = sanitize_args(args)
        assert sanitized["path"] == "a.txt"
        assert sanitized["password"] == "[REDACTED]"
        assert sanitized["API_KEY"] == "[REDACTED]"
        assert sanitized["auth_token"] == "[REDACTED]"
        assert sanitized["client_secret"] == "[REDACTED]"

    def test_truncates_long_strings(self):
        sanitized = sanitize_args({"content": "x" * 150, "short": "y" * 100})
        assert sanitized["content"] == "x" * 100 + "...[truncated]"
        assert sanitized["short"] == "y" * 100

    def test_recurses_into_nested_values(self):
        sanitized = sanitize_args({"outer": {"credential": "c", "items": ["z" * 101]}})
        assert sanitized["outer"]["credential"] == "[REDACTED]"
        assert sanitized["outer"]["items"][0].endswith("...[truncated]")

    def test_does_not_mutate_input(self):
        args = {"password": "p"}
        sanitize_args(args)
        assert args == {"password": "p"}


class TestAuditLog:
    """Test AuditLog"""

    def test_log_call_appends_json_line(self, tmp_path):
        log = AuditLog(tmp_path / "logs" / "audit.jsonl")
        log.log_call("read_file", {"path": "a.txt"}, ok=True, duration_ms=3, agent="coder")
        log.log_call("run_cmd", {"command": "rm"}, ok=False, error="nope", error_code="DENIED_COMMAND_ALLOWLIST")

        lines = (tmp_path / "logs" / "audit.jsonl").read_text().splitlines()
        assert len(lines) == 2
        first, second = (json.loads(line) for line in lines)
        assert first["tool"] == "read_file"
        assert first["ok"] is True
        assert first["duration_ms"] == 3
        assert first["agent"] == "coder"
        assert "timestamp" in first
        assert second["error"] == "nope"
        assert second["error_code"] == "DENIED_COMMAND_ALLOWLIST"

    def test_written_args_are_sanitized(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        AuditLog(path).log_call("login", {"password": "p", "content": "c" * 200}, ok=True)
        entry = json.loads(path.read_text())
        assert entry["args"]["password"] == "[REDACTED]"
        assert entry["args"]["content"].endswith("...[truncated]")

    def test_non_dict_args_are_recorded(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        AuditLog(path).log_call("read_file", "oops", ok=False)
        assert json.loads(path.read_text())["args"] == {"_raw": "oops"}

    def test_disabled_log_writes_nothing(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        log = AuditLog(path, enabled=False)
        log.log_call("read_file", {}, ok=True)
        assert not path.exists()
        assert log.get_recent() == []

    def test_write_failure_is_swallowed(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        log = AuditLog(blocker / "audit.jsonl")

        entry = log.log_call("read_file", {}, ok=True)
        assert entry.tool == "read_file"
        assert log.get_stats()["total_entries"] == 1

    def test_read_recent_skips_corrupt_lines(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        log = AuditLog(path)
        log.log_call("a", {}, ok=True)
        with open(path, "a") as f:
            f.write("garbage\n")
        log.log_call("b", {}, ok=False)

        recent = log.read_recent(10)
        assert [e["tool"] for e in recent] == ["a", "b"]
        assert (tmp_path / "audit.jsonl.corrupt").read_text() == "garbage\n"

    def test_stats_and_recent(self, tmp_path):
        log = AuditLog(tmp_path / "audit.jsonl")
        log.log_call("read_file", {}, ok=True)
        log.log_call("read_file", {}, ok=False)
        log.log_call("run_cmd", {}, ok=True)

        stats = log.get_stats()
        assert stats["total_entries"] == 3
        assert stats["successful"] == 2
        assert stats["failed"] == 1
        assert stats["by_tool"] == {"read_file": 2, "run_cmd": 1}
        assert [e.tool for e in log.get_recent(tool="run_cmd")] == ["run_cmd"]
