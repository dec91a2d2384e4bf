"""Tests for command tokenizing"""

import pytest

from toolgate.errors import ErrorCode
from toolgate.sandbox.shell import build_shell_command, parse_shell_args, quote_shell_arg


class TestParseShellArgs:
    """Test parse_shell_args"""

    def test_plain_words(self):
        assert parse_shell_args("ls -la docs").value == ["ls", "-la", "docs"]

    def test_extra_whitespace(self):
        assert parse_shell_args("  cat    a.txt  ").value == ["cat", "a.txt"]

    def test_double_quotes_group_words(self):
        assert parse_shell_args('cat "my file.txt"').value == ["cat", "my file.txt"]

    def test_single_quotes_keep_double_quotes(self):
        assert parse_shell_args("echo 'say \"hi\"'").value == ["echo", 'say "hi"']

    def test_quotes_join_adjacent_text(self):
        assert parse_shell_args('echo pre"fix suf"fix').value == ["echo", "prefix suffix"]

    def test_empty_quotes_are_an_empty_argument(self):
        assert parse_shell_args('echo ""').value == ["echo", ""]

    def test_no_expansion(self):
        assert parse_shell_args("echo $HOME *.txt \\n").value == ["echo", "$HOME", "*.txt", "\\n"]

    def test_empty_input(self):
        result = parse_shell_args("   ")
        assert result.ok
        assert result.value == []

    @pytest.mark.parametrize("text", ['echo "open', "echo 'open"])
    def test_unterminated_quote_is_validation_error(self, text):
        result = parse_shell_args(text)
        assert not result.ok
        assert result.code == ErrorCode.VALIDATION_ERROR.value
        assert "Unterminated" in result.error.message


class TestQuoting:
    """Test quote_shell_arg and build_shell_command"""

    def test_simple_args_are_left_alone(self):
        assert quote_shell_arg("file.txt") == "file.txt"

    def test_empty_arg(self):
        assert quote_shell_arg("") == '""'

    @pytest.mark.parametrize("arg", ["two words", 'has "double"', "has 'single'", "both \" and ' here"])
    def test_quoted_arg_parses_back_to_itself(self, arg):
        assert parse_shell_args(quote_shell_arg(arg)).value == [arg]

    def test_build_shell_command(self):
        command = build_shell_command("cat", ["my file.txt"])
        assert command == 'cat "my file.txt"'
        assert build_shell_command("pwd", []) == "pwd"
