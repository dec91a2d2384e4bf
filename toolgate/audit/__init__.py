"""Audit logging system."""

from .audit import (
    AuditLog,
    AuditEntry,
    DEFAULT_AUDIT_PATH,
    sanitize_args,
)

__all__ = [
    "AuditLog",
    "AuditEntry",
    "DEFAULT_AUDIT_PATH",
    "sanitize_args",
]
