"""Tests for the command line"""

import json

import pytest
import typer
from typer.testing import CliRunner

from toolgate import __version__
from toolgate.cli import _emit, app
from toolgate.tool.base import ToolResult

runner = CliRunner()


def envelope(result) -> dict:
    lines = [line for line in result.stdout.splitlines() if line.strip()]
    return json.loads(lines[-1])


def call(base, payload, *options):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return runner.invoke(app, ["run", "--base-dir", str(base), *options], input=text)


class TestRun:
    """Test `toolgate run`"""

    def test_safe_tool_succeeds(self, tmp_path):
        result = call(tmp_path, {"tool_name": "calculate", "args": {"expression": "6 * 7"}})
        assert result.exit_code == 0
        data = envelope(result)
        assert data["ok"] is True
        assert data["tool_name"] == "calculate"
        assert data["result"]["value"] == 42
        assert isinstance(data["_debug"]["duration_ms"], int)

    def test_reads_allowed_file(self, tmp_path, write_permissions):
        write_permissions(tmp_path, allow_paths=["./notes.txt"])
        (tmp_path / "notes.txt").write_text("remember")
        result = call(tmp_path, {"tool_name": "read_file", "args": {"path": "notes.txt"}}, "--agent", "coder")
        assert result.exit_code == 0
        assert envelope(result)["result"]["content"] == "remember"

    def test_missing_permissions_denies_everything(self, tmp_path):
        (tmp_path / "notes.txt").write_text("remember")
        result = call(tmp_path, {"tool_name": "read_file", "args": {"path": "notes.txt"}})
        assert result.exit_code == 1
        data = envelope(result)
        assert data["ok"] is False
        assert data["error"]["code"] == "DENIED_PATH_ALLOWLIST"

    def test_tool_error_exits_one(self, tmp_path):
        result = call(tmp_path, {"tool_name": "calculate", "args": {"expression": "1 / 0"}})
        assert result.exit_code == 1
        assert envelope(result)["error"]["code"] == "EXEC_ERROR"

    def test_oversized_calculation_still_emits_an_envelope(self, tmp_path):
        result = call(tmp_path, {"tool_name": "calculate", "args": {"expression": "(10 ** 1000) ** 5"}})
        assert result.exit_code == 1
        data = envelope(result)
        assert data["ok"] is False
        assert data["error"]["code"] == "EXEC_ERROR"

    def test_unserializable_result_becomes_exec_error(self, capsys):
        looped: dict = {}
        looped["self"] = looped
        with pytest.raises(typer.Exit) as exc_info:
            _emit(ToolResult.success(looped), "calculate", 0)

        assert exc_info.value.exit_code == 2
        data = json.loads(capsys.readouterr().out)
        assert data["ok"] is False
        assert data["tool_name"] == "calculate"
        assert data["error"]["code"] == "EXEC_ERROR"

    @pytest.mark.parametrize(
        "text,message",
        [
            ("", "Missing JSON input."),
            ("   \n", "Missing JSON input."),
            ("{not json", "Invalid JSON input."),
        ],
    )
    def test_unparseable_input(self, tmp_path, text, message):
        result = call(tmp_path, text)
        assert result.exit_code == 2
        data = envelope(result)
        assert data["error"]["code"] == "PARSE_ERROR"
        assert data["error"]["message"] == message
        assert data["tool_name"] is None

    @pytest.mark.parametrize("payload", [[1, 2], {"args": {}}, {"tool_name": ""}, {"tool_name": 7}])
    def test_malformed_envelope(self, tmp_path, payload):
        result = call(tmp_path, payload)
        assert result.exit_code == 2
        assert envelope(result)["error"]["code"] == "PARSE_ERROR"

    def test_unknown_agent(self, tmp_path):
        result = call(tmp_path, {"tool_name": "calculate", "args": {"expression": "1"}}, "--agent", "wizard")
        assert result.exit_code == 2
        data = envelope(result)
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert data["tool_name"] == "calculate"

    def test_no_agent_limits_tools(self, tmp_path, write_permissions):
        write_permissions(tmp_path, allow_paths=["."])
        result = call(tmp_path, {"tool_name": "list_files"}, "--agent", "none")
        assert result.exit_code == 1
        assert envelope(result)["error"]["code"] == "DENIED_AGENT_TOOLSET"

    def test_agent_scope(self, tmp_path):
        result = call(tmp_path, {"tool_name": "get_time", "args": {}}, "--agent", "coder")
        assert envelope(result)["error"]["code"] == "DENIED_AGENT_TOOLSET"

    def test_unknown_tool(self, tmp_path):
        result = call(tmp_path, {"tool_name": "teleport", "args": {}})
        assert result.exit_code == 1
        assert envelope(result)["error"]["code"] == "UNKNOWN_TOOL"

    def test_confirm_flag(self, tmp_path, write_permissions):
        write_permissions(tmp_path, allow_paths=["./out.txt"], require_confirmation_for=["write_file"])
        payload = {"tool_name": "write_file", "args": {"path": "out.txt", "content": "data"}}

        blocked = call(tmp_path, payload)
        assert blocked.exit_code == 1
        assert envelope(blocked)["error"]["code"] == "CONFIRMATION_REQUIRED"
        assert not (tmp_path / "out.txt").exists()

        confirmed = call(tmp_path, payload, "--confirm")
        assert confirmed.exit_code == 0
        assert (tmp_path / "out.txt").read_text() == "data"

    def test_explicit_permissions_file(self, tmp_path, write_permissions):
        policies = tmp_path / "policies"
        policies.mkdir()
        write_permissions(policies, allow_commands=["pwd"])
        payload = {"tool_name": "run_cmd", "args": {"command": "pwd"}}

        result = call(tmp_path, payload, "--permissions", "policies/permissions.json")
        assert result.exit_code == 0
        assert envelope(result)["result"] == str(tmp_path.resolve())

    def test_missing_base_dir(self, tmp_path):
        result = call(tmp_path / "nowhere", {"tool_name": "calculate", "args": {"expression": "1"}})
        assert result.exit_code == 2
        data = envelope(result)
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert "does not exist" in data["error"]["message"]

    def test_calls_are_audited(self, tmp_path, isolated_env):
        call(tmp_path, {"tool_name": "calculate", "args": {"expression": "2"}})
        lines = (isolated_env / "audit.jsonl").read_text().splitlines()
        assert json.loads(lines[-1])["tool"] == "calculate"


class TestPermissionsCommands:
    """Test `toolgate permissions ...`"""

    def test_test_path_allowed(self, tmp_path, write_permissions):
        write_permissions(tmp_path, allow_paths=["./docs"])
        (tmp_path / "docs").mkdir()
        result = runner.invoke(app, ["permissions", "test-path", "docs/readme.md", "-b", str(tmp_path)])
        assert result.exit_code == 0
        assert "ALLOWED" in result.stdout

    @pytest.mark.parametrize("path", ["secret.txt", "../outside.txt", ".git/config"])
    def test_test_path_blocked(self, tmp_path, write_permissions, path):
        write_permissions(tmp_path, allow_paths=["."])
        if path == "secret.txt":
            write_permissions(tmp_path, allow_paths=["./docs"])
        result = runner.invoke(app, ["permissions", "test-path", path, "-b", str(tmp_path)])
        assert result.exit_code == 1
        assert "BLOCKED" in result.stdout

    def test_test_path_bad_op(self, tmp_path):
        result = runner.invoke(app, ["permissions", "test-path", "a.txt", "--op", "exec", "-b", str(tmp_path)])
        assert result.exit_code == 2

    def test_test_command(self, tmp_path, write_permissions):
        write_permissions(tmp_path, allow_commands=["ls", "cat"])
        allowed = runner.invoke(app, ["permissions", "test-command", "ls -la", "-b", str(tmp_path)])
        blocked = runner.invoke(app, ["permissions", "test-command", "rm -rf /", "-b", str(tmp_path)])
        invalid = runner.invoke(app, ["permissions", "test-command", 'cat "open', "-b", str(tmp_path)])

        assert allowed.exit_code == 0
        assert "ALLOWED" in allowed.stdout
        assert blocked.exit_code == 1
        assert "BLOCKED" in blocked.stdout
        assert invalid.exit_code == 2

    def test_show_without_file(self, tmp_path):
        result = runner.invoke(app, ["permissions", "show", "-b", str(tmp_path)])
        assert result.exit_code == 0
        assert "Everything is denied" in result.stdout

    def test_show_with_file(self, tmp_path, write_permissions):
        write_permissions(tmp_path, allow_paths=["./docs"], allow_commands=["ls"], deny_tools=["run_cmd"])
        result = runner.invoke(app, ["permissions", "show", "-b", str(tmp_path)])
        assert result.exit_code == 0
        assert "Allowed Paths" in result.stdout
        assert "Allowed Commands" in result.stdout
        assert "Denied Tools" in result.stdout

    def test_check_valid(self, tmp_path, write_permissions):
        write_permissions(tmp_path, allow_paths=["./docs"], allow_commands=["ls"])
        result = runner.invoke(app, ["permissions", "check", "-b", str(tmp_path)])
        assert result.exit_code == 0
        assert "FAIL" not in result.stdout

    def test_check_invalid_permissions(self, tmp_path, write_permissions):
        write_permissions(tmp_path, allow_paths=5)
        result = runner.invoke(app, ["permissions", "check", "-b", str(tmp_path)])
        assert result.exit_code == 1

    def test_check_invalid_config(self, tmp_path, isolated_env):
        config_dir = isolated_env / "config"
        config_dir.mkdir(exist_ok=True)
        (config_dir / "config.json").write_text(json.dumps({"command_timeout": -1}))
        result = runner.invoke(app, ["permissions", "check", "-b", str(tmp_path)])
        assert result.exit_code == 1


class TestMisc:
    """Test `toolgate tools` and `toolgate version`"""

    def test_tools_lists_everything(self):
        result = runner.invoke(app, ["tools"])
        assert result.exit_code == 0
        for name in ("read_file", "run_cmd", "task_add", "calculate"):
            assert name in result.stdout

    def test_tools_for_agent(self):
        result = runner.invoke(app, ["tools", "--agent", "organizer"])
        assert result.exit_code == 0
        assert "task_add" in result.stdout
        assert "run_cmd" not in result.stdout

    def test_tools_unknown_agent(self):
        assert runner.invoke(app, ["tools", "--agent", "wizard"]).exit_code == 2

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.stdout.strip() == __version__
