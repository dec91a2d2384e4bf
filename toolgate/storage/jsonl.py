"""JSON-lines record storage with corruption quarantine.

Readers skip bad lines instead of failing, and copy them verbatim to a
sibling `<path>.corrupt` file. Full rewrites go through a temporary file
and `os.replace`, so readers never see a half-written file. Two concurrent
`write_atomic` calls on the same file race at the rename: the last one
wins and nothing is merged.
"""

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from toolgate.errors import StorageError

logger = logging.getLogger(__name__)

CORRUPT_SUFFIX = ".corrupt"

Validator = Callable[[Any], bool]


def quarantine_path(file_path: str | Path) -> Path:
    return Path(f"{file_path}{CORRUPT_SUFFIX}")


def read_safely(file_path: str | Path, is_valid: Optional[Validator] = None) -> list:
    """Read every valid record from a JSONL file.

    A missing file is an empty list. Lines that fail to decode, fail to
    parse or that `is_valid` rejects are quarantined byte for byte and left
    out; their siblings are still returned. Only `\\n` (optionally preceded
    by `\\r`) ends a line, so separators such as U+2028 inside a JSON string
    stay part of the record.
    """
    path = Path(file_path)
    if not path.exists():
        return []

    try:
        raw = path.read_bytes()
    except OSError as e:
        logger.warning(f"Failed to read {path}: {e}")
        return []

    entries: list = []
    corrupt: list[bytes] = []
    for lineno, line in enumerate(raw.split(b"\n"), start=1):
        if line.endswith(b"\r"):
            line = line[:-1]
        if not line.strip():
            continue
        try:
            parsed = json.loads(line.decode("utf-8"))
        except UnicodeDecodeError as e:
            logger.warning(f"Skipped undecodable line {lineno} in {path}: {e}")
            corrupt.append(line)
            continue
        except json.JSONDecodeError as e:
            logger.warning(f"Skipped corrupt line {lineno} in {path}: {e}")
            corrupt.append(line)
            continue
        if is_valid is not None:
            try:
                valid = bool(is_valid(parsed))
            except Exception as e:
                logger.warning(f"Validator raised on line {lineno} in {path}: {e}")
                valid = False
            if not valid:
                logger.warning(f"Skipped invalid record on line {lineno} in {path}")
                corrupt.append(line)
                continue
        entries.append(parsed)

    if corrupt:
        target = quarantine_path(path)
        try:
            with open(target, "ab") as f:
                f.write(b"\n".join(corrupt) + b"\n")
            logger.warning(f"Quarantined {len(corrupt)} corrupt line(s) to {target}")
        except OSError as e:
            logger.error(f"Failed to write quarantine file {target}: {e}")

    return entries


def write_atomic(file_path: str | Path, entries: Iterable[Any]) -> None:
    """Replace the file's contents with `entries`, one JSON object per line."""
    path = Path(file_path)
    try:
        lines = [json.dumps(entry, ensure_ascii=False) for entry in entries]
    except (TypeError, ValueError) as e:
        raise StorageError(f"Records for {path} are not JSON serializable: {e}") from e
    content = "\n".join(lines) + ("\n" if lines else "")

    tmp = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as e:
        raise StorageError(f"Failed to write JSONL atomically to {path}: {e}") from e
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError as e:
                logger.debug(f"Could not remove temp file {tmp}: {e}")


def append_one(file_path: str | Path, entry: Any) -> None:
    """Append a single record as one line."""
    path = Path(file_path)
    try:
        line = json.dumps(entry, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise StorageError(f"Record for {path} is not JSON serializable: {e}") from e
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        raise StorageError(f"Failed to append to JSONL {path}: {e}") from e
