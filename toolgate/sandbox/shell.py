"""Quote-aware command tokenizing.

Only quoting is understood: no escapes, globbing or variable expansion.
"""

import re

from toolgate.errors import ErrorCode
from toolgate.result import CapabilityResult

_NEEDS_QUOTES = re.compile(r"[\s\"']")


def parse_shell_args(text: str) -> CapabilityResult[list[str]]:
    """Split `text` on unquoted whitespace.

    A `"` or `'` opens a region, closed by the same character, in which
    whitespace and the other quote are literal.
    """
    args: list[str] = []
    current: list[str] = []
    has_token = False
    quote: str | None = None

    for char in text:
        if quote is not None:
            if char == quote:
                quote = None
            else:
                current.append(char)
        elif char in ("'", '"'):
            quote = char
            has_token = True
        elif char.isspace():
            if current or has_token:
                args.append("".join(current))
                current = []
                has_token = False
        else:
            current.append(char)
            has_token = True

    if quote == '"':
        return CapabilityResult.failure(ErrorCode.VALIDATION_ERROR, "Unterminated double quote in command.")
    if quote == "'":
        return CapabilityResult.failure(ErrorCode.VALIDATION_ERROR, "Unterminated single quote in command.")

    if current or has_token:
        args.append("".join(current))
    return CapabilityResult.success(args)


def quote_shell_arg(arg: str) -> str:
    """Quote `arg` so `parse_shell_args` gives it back as one token."""
    if not arg:
        return '""'
    if not _NEEDS_QUOTES.search(arg):
        return arg
    if '"' not in arg:
        return f'"{arg}"'
    if "'" not in arg:
        return f"'{arg}'"
    # Both quote kinds present: alternate regions per quote character
    parts = []
    for chunk in re.split(r"(\")", arg):
        if chunk == '"':
            parts.append("'\"'")
        elif chunk:
            parts.append(f'"{chunk}"')
    return "".join(parts)


def build_shell_command(cmd: str, args: list[str]) -> str:
    """Inverse of `parse_shell_args` for a command and its arguments."""
    if not args:
        return cmd
    return " ".join([cmd, *(quote_shell_arg(a) for a in args)])
