from .jsonl import CORRUPT_SUFFIX, append_one, quarantine_path, read_safely, write_atomic

__all__ = ["CORRUPT_SUFFIX", "append_one", "quarantine_path", "read_safely", "write_atomic"]
