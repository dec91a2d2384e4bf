"""Command execution sandbox."""

from . import builtins
from .commands import CommandSandbox, DEFAULT_MAX_OUTPUT_CHARS, DEFAULT_TIMEOUT
from .shell import build_shell_command, parse_shell_args, quote_shell_arg

__all__ = [
    "builtins",
    "CommandSandbox",
    "DEFAULT_MAX_OUTPUT_CHARS",
    "DEFAULT_TIMEOUT",
    "build_shell_command",
    "parse_shell_args",
    "quote_shell_arg",
]
