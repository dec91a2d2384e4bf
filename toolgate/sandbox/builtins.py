"""In-process replacements for ls, cat, pwd and du.

Callers validate flags and route every path through the resolver and
allowlist before calling in here; these functions only render output.
Symlinks are reported but never followed when recursing.
"""

import os
import stat
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

LS_FLAGS = frozenset("aAlR1Fh")
SIZE_UNITS = ["B", "K", "M", "G", "T"]
THRESHOLD_MULTIPLIERS = {"": 1, "k": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}


def format_size(size: int, human: bool) -> str:
    """Render a byte count, optionally in base-1024 units."""
    if not human:
        return str(size)
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f}{SIZE_UNITS[unit]}"


def parse_threshold(text: str) -> Optional[int]:
    """Parse `-t` values like `10`, `-4k`, `2M` into bytes; None if malformed."""
    if not text:
        return None
    sign = -1 if text.startswith("-") else 1
    body = text[1:] if sign < 0 else text
    suffix = body[-1] if body and body[-1] in "kMGT" else ""
    digits = body[:-1] if suffix else body
    if not digits.isdigit():
        return None
    return sign * int(digits) * THRESHOLD_MULTIPLIERS[suffix]


def _format_mtime(mtime: float) -> str:
    when = datetime.fromtimestamp(mtime)
    if datetime.now() - when < timedelta(days=180):
        return when.strftime("%b %d %H:%M")
    return when.strftime("%b %d  %Y")


@dataclass
class LsOptions:
    show_all: bool = False
    almost_all: bool = False
    long_format: bool = False
    one_per_line: bool = False
    indicator: bool = False
    recursive: bool = False
    human: bool = False

    @classmethod
    def from_flags(cls, flags: set[str]) -> "LsOptions":
        return cls(
            show_all="a" in flags,
            almost_all="A" in flags,
            long_format="l" in flags,
            one_per_line="1" in flags,
            indicator="F" in flags,
            recursive="R" in flags,
            human="h" in flags,
        )


def _indicator(st: os.stat_result, opts: LsOptions) -> str:
    if not opts.indicator:
        return ""
    if stat.S_ISLNK(st.st_mode):
        return "@"
    if stat.S_ISDIR(st.st_mode):
        return "/"
    if st.st_mode & 0o111:
        return "*"
    return ""


def _render(name: str, st: os.stat_result, opts: LsOptions) -> str:
    if opts.long_format:
        mode = oct(stat.S_IMODE(st.st_mode))[-3:]
        size = format_size(st.st_size, opts.human)
        return f"{mode} {size:>8} {_format_mtime(st.st_mtime)} {name}{_indicator(st, opts)}"
    return f"{name}{_indicator(st, opts)}"


def _list_dir(
    dir_path: str,
    opts: LsOptions,
    can_descend: Callable[[str], bool],
    prefix: str = "",
) -> list[str]:
    try:
        with os.scandir(dir_path) as it:
            entries = list(it)
    except OSError as e:
        raise OSError(f"Cannot read directory {dir_path}: {e.strerror or e}") from e

    names = [e for e in entries if opts.show_all or opts.almost_all or not e.name.startswith(".")]
    names.sort(key=lambda e: (not e.is_dir(follow_symlinks=False), e.name))

    lines: list[str] = []
    if opts.show_all:
        for special in (".", ".."):
            try:
                lines.append(prefix + _render(special, os.stat(os.path.join(dir_path, special)), opts))
            except OSError:
                continue

    for entry in names:
        try:
            st = entry.stat(follow_symlinks=False)
        except OSError:
            continue
        lines.append(prefix + _render(entry.name, st, opts))
        if opts.recursive and stat.S_ISDIR(st.st_mode) and can_descend(entry.path):
            lines.extend(_list_dir(entry.path, opts, can_descend, prefix + "  "))
    return lines


def list_directory(
    paths: list[str],
    flags: set[str],
    can_descend: Callable[[str], bool] = lambda _p: True,
) -> str:
    """Render an `ls` listing of already-validated paths.

    Directories sort before files. With several paths each directory gets a
    `path:` header. Recursion skips directories `can_descend` rejects.
    """
    opts = LsOptions.from_flags(flags)
    out: list[str] = []
    for index, target in enumerate(paths):
        try:
            st = os.stat(target)
        except OSError as e:
            raise OSError(f"Cannot access {target}: {e.strerror or e}") from e
        if not stat.S_ISDIR(st.st_mode):
            out.append(_render(os.path.basename(target), st, opts))
            continue
        if len(paths) > 1:
            out.append(f"{target}:")
        out.extend(_list_dir(target, opts, can_descend))
        if len(paths) > 1 and index < len(paths) - 1:
            out.append("")

    multiline = opts.one_per_line or opts.long_format or opts.recursive or len(paths) > 1
    return ("\n" if multiline else "  ").join(out)


def read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")


def working_directory(base_dir: str) -> str:
    return base_dir


@dataclass
class DuOptions:
    human: bool = False
    summary: bool = False
    max_depth: Optional[int] = None
    threshold: Optional[int] = None


def _tree_size(path: str, depth: int, opts: DuOptions, rows: list[tuple[str, int]]) -> int:
    """Total bytes under `path`; appends rows for directories to display."""
    st = os.lstat(path)
    if not stat.S_ISDIR(st.st_mode):
        if depth == 0:
            rows.append((path, st.st_size))
        return st.st_size

    total = st.st_size
    try:
        with os.scandir(path) as it:
            children = list(it)
    except OSError:
        children = []
    for child in children:
        try:
            if child.is_dir(follow_symlinks=False):
                total += _tree_size(child.path, depth + 1, opts, rows)
            else:
                total += child.stat(follow_symlinks=False).st_size
        except OSError:
            continue

    show = depth == 0 or (not opts.summary and (opts.max_depth is None or depth <= opts.max_depth))
    if show:
        rows.append((path, total))
    return total


def directory_size(target: str, opts: DuOptions) -> str:
    """Render `du` output: `size<TAB>path`, children before parents."""
    if not os.path.lexists(target):
        raise OSError(f"Cannot access {target}: No such file or directory")
    rows: list[tuple[str, int]] = []
    _tree_size(target, 0, opts, rows)

    if opts.threshold is not None:
        # Negative thresholds select entries no larger than the magnitude, like GNU du
        if opts.threshold >= 0:
            rows = [r for r in rows if r[1] >= opts.threshold]
        else:
            rows = [r for r in rows if r[1] <= -opts.threshold]
    return "\n".join(f"{format_size(size, opts.human)}\t{path}" for path, size in rows)
