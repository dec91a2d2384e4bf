"""Allowlisted command execution.

Commands are tokenized, checked against `allow_commands`, and then either
run by an in-process built-in (ls, cat, pwd, du) or spawned directly
without a shell under a hard timeout. Nothing touches the filesystem or
the process table before the allowlist check passes.
"""

import logging
import os
import signal
import subprocess
from typing import Callable, Iterable, Optional

from toolgate.errors import CommandBlockedError, ErrorCode, make_permission_error
from toolgate.permission.paths import AllowlistMatcher, PathOp, PathResolver
from toolgate.result import CapabilityResult
from toolgate.sandbox import builtins
from toolgate.sandbox.shell import build_shell_command, parse_shell_args

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10
DEFAULT_MAX_OUTPUT_CHARS = 100_000

Outcome = CapabilityResult


class CommandSandbox:
    """Run allowlisted commands inside the base directory."""

    def __init__(
        self,
        resolver: PathResolver,
        matcher: AllowlistMatcher,
        allow_commands: Iterable[str],
        timeout: float = DEFAULT_TIMEOUT,
        max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
        permissions_path: Optional[str] = None,
    ):
        self.resolver = resolver
        self.matcher = matcher
        self.allow_commands = tuple(allow_commands)
        self.timeout = timeout
        self.max_output_chars = max_output_chars
        self.permissions_path = permissions_path
        self._builtins: dict[str, Callable[[list[str]], Outcome]] = {
            "ls": self._ls,
            "cat": self._cat,
            "pwd": self._pwd,
            "du": self._du,
        }

    def run_allowed(self, cmd: str, args: Optional[list[str]] = None) -> Outcome:
        """Run `cmd` with already-split `args` through the same checks as `run`."""
        return self.run(build_shell_command(cmd, list(args or [])))

    def run(self, command_text: str) -> Outcome:
        if not isinstance(command_text, str):
            return Outcome.failure(ErrorCode.VALIDATION_ERROR, "Command must be a string.")

        parsed = parse_shell_args(command_text.strip())
        if not parsed.ok:
            return Outcome.from_error(parsed.error)
        parts = parsed.value
        if not parts:
            return Outcome.failure(ErrorCode.VALIDATION_ERROR, "Empty command.")

        cmd, args = parts[0], parts[1:]
        try:
            self.require_allowed(cmd)
        except CommandBlockedError as e:
            logger.info(f"Denied command {cmd!r}: not in allow_commands")
            return Outcome.from_error(e.to_error())

        handler = self._builtins.get(cmd)
        outcome = handler(args) if handler else self._spawn(cmd, args)
        if outcome.ok and outcome.value and len(outcome.value) > self.max_output_chars:
            truncated = outcome.value[: self.max_output_chars]
            return Outcome.success(f"{truncated}\n... [output truncated at {self.max_output_chars} chars]")
        return outcome

    def require_allowed(self, cmd: str) -> None:
        """Raise CommandBlockedError unless `cmd` is in allow_commands."""
        if cmd in self.allow_commands:
            return
        configured = ", ".join(self.allow_commands) or "(none)"
        where = f" Listed in {self.permissions_path}" if self.permissions_path else " Allowed commands"
        raise CommandBlockedError(
            cmd,
            f"Command '{cmd}' is not allowed.{where}: {configured}",
            {"command": cmd, "allow_commands": list(self.allow_commands)},
        )

    # Path arguments

    def _check_path(self, cmd: str, arg: str, op: PathOp = "read") -> Outcome:
        resolved = self.resolver.resolve(arg)
        if not resolved.ok:
            return Outcome.failure(ErrorCode.INVALID_ARGUMENT, f"Invalid path for {cmd}: {arg}", {"path": arg})
        if not self.matcher.is_allowed(resolved.value, op):
            return Outcome.from_error(
                make_permission_error("run_cmd", resolved.value, self.permissions_path)
            )
        return resolved

    # Built-ins

    def _ls(self, args: list[str]) -> Outcome:
        flags: set[str] = set()
        paths: list[str] = []
        for arg in args:
            if arg.startswith("-"):
                for char in arg[1:]:
                    if char not in builtins.LS_FLAGS:
                        return Outcome.failure(
                            ErrorCode.INVALID_ARGUMENT,
                            f"ls flag '{arg}' contains unsafe character '{char}'. Allowed: a, A, l, R, 1, F, h",
                        )
                    flags.add(char)
                continue
            checked = self._check_path("ls", arg, "list")
            if not checked.ok:
                return checked
            paths.append(checked.value)

        if not paths:
            base = self.resolver.canonical_base
            if not self.matcher.is_allowed(base, "list"):
                return Outcome.from_error(make_permission_error("run_cmd", base, self.permissions_path))
            paths = [base]

        try:
            listing = builtins.list_directory(
                paths, flags, can_descend=lambda p: self.matcher.is_allowed(p, "list")
            )
        except OSError as e:
            return Outcome.failure(ErrorCode.EXEC_ERROR, str(e))
        return Outcome.success(listing)

    def _cat(self, args: list[str]) -> Outcome:
        if not args:
            return Outcome.failure(ErrorCode.MISSING_ARGUMENT, "cat requires exactly one path.")
        if len(args) > 1:
            return Outcome.failure(ErrorCode.INVALID_ARGUMENT, "cat accepts a single path.")
        if args[0].startswith("-"):
            return Outcome.failure(ErrorCode.INVALID_ARGUMENT, "cat flags are not allowed.")
        checked = self._check_path("cat", args[0], "read")
        if not checked.ok:
            return checked
        try:
            return Outcome.success(builtins.read_text(checked.value))
        except OSError as e:
            return Outcome.failure(ErrorCode.EXEC_ERROR, f"cat failed: {e.strerror or e}")

    def _pwd(self, args: list[str]) -> Outcome:
        if args:
            return Outcome.failure(ErrorCode.INVALID_ARGUMENT, "pwd takes no arguments.")
        return Outcome.success(builtins.working_directory(self.resolver.canonical_base))

    def _du(self, args: list[str]) -> Outcome:
        opts = builtins.DuOptions()
        target: Optional[str] = None
        i = 0
        while i < len(args):
            arg = args[i]
            if arg == "-h":
                opts.human = True
            elif arg == "-s":
                opts.summary = True
            elif arg in ("-d", "--max-depth"):
                value = args[i + 1] if i + 1 < len(args) else ""
                if value not in {"0", "1", "2", "3", "4", "5"}:
                    return Outcome.failure(ErrorCode.INVALID_ARGUMENT, "du -d requires depth 0-5.")
                opts.max_depth = int(value)
                i += 1
            elif arg in ("-t", "--threshold"):
                value = args[i + 1] if i + 1 < len(args) else ""
                threshold = builtins.parse_threshold(value)
                if threshold is None:
                    return Outcome.failure(ErrorCode.INVALID_ARGUMENT, "du -t requires valid threshold.")
                opts.threshold = threshold
                i += 1
            elif arg.startswith("-"):
                return Outcome.failure(
                    ErrorCode.INVALID_ARGUMENT,
                    f"du flag '{arg}' is not allowed. Allowed: -h, -s, -d N (N=0-5), -t SIZE",
                )
            elif target is not None:
                return Outcome.failure(ErrorCode.INVALID_ARGUMENT, "du accepts a single path.")
            else:
                checked = self._check_path("du", arg, "read")
                if not checked.ok:
                    return checked
                target = checked.value
            i += 1

        if target is None:
            return Outcome.failure(ErrorCode.MISSING_ARGUMENT, "du requires a path argument.")
        try:
            return Outcome.success(builtins.directory_size(target, opts))
        except OSError as e:
            return Outcome.failure(ErrorCode.EXEC_ERROR, str(e))

    # Guarded spawn

    def _spawn(self, cmd: str, args: list[str]) -> Outcome:
        try:
            proc = subprocess.run(
                [cmd, *args],
                cwd=self.resolver.canonical_base,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                env=os.environ.copy(),
            )
        except FileNotFoundError as e:
            return Outcome.failure(
                ErrorCode.EXEC_ERROR,
                f"Command '{cmd}' not found (spawn failed: {e.strerror or e})",
                {"kind": "spawn_failed"},
            )
        except subprocess.TimeoutExpired:
            return Outcome.failure(
                ErrorCode.TIMEOUT,
                f"Command '{cmd}' timed out after {self.timeout}s",
                {"kind": "timeout"},
            )
        except OSError as e:
            return Outcome.failure(
                ErrorCode.EXEC_ERROR,
                f"Command '{cmd}' could not be started (spawn failed: {e.strerror or e})",
                {"kind": "spawn_failed"},
            )

        if proc.returncode < 0:
            try:
                name = signal.Signals(-proc.returncode).name
            except ValueError:
                name = str(-proc.returncode)
            return Outcome.failure(
                ErrorCode.EXEC_ERROR,
                f"Command terminated by signal: {name}",
                {"kind": "signal", "signal": name},
            )
        if proc.returncode != 0:
            message = proc.stderr or proc.stdout or f"Command exited with code {proc.returncode}"
            return Outcome.failure(
                ErrorCode.EXEC_ERROR,
                message,
                {"kind": "exit", "exit_code": proc.returncode},
            )
        return Outcome.success(proc.stdout or "")
