"""Configuration validator utilities for toolgate.

Checks configuration and permissions files before they are used, and
reports settings that are valid but risky.
"""

from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from toolgate.permission.store import Permissions

from .schema import SandboxConfig

# Commands that hand the caller a general-purpose interpreter
INTERPRETER_COMMANDS = {"sh", "bash", "zsh", "fish", "python", "python3", "node", "perl", "ruby", "env", "xargs"}

# Commands that change or destroy files outside any path check
DESTRUCTIVE_COMMANDS = {"rm", "mv", "cp", "chmod", "chown", "dd", "mkfs", "sudo", "tee"}


def _format_errors(e: ValidationError) -> List[str]:
    errors: List[str] = []
    for error in e.errors():
        field = ".".join(str(x) for x in error["loc"])
        errors.append(f"{field}: {error['msg']}")
    return errors


class ConfigValidator:
    """Utility class for validating toolgate configurations."""

    @staticmethod
    def validate_config(config_dict: Dict) -> Tuple[bool, List[str]]:
        """Validate a configuration dictionary.

        Args:
            config_dict: Configuration dictionary to validate

        Returns:
            Tuple of (is_valid, error_messages)
        """
        try:
            SandboxConfig(**config_dict)
            return True, []
        except ValidationError as e:
            return False, _format_errors(e)

    @staticmethod
    def validate_permissions(permissions_dict: Any) -> Tuple[bool, List[str]]:
        """Validate a permissions dictionary and flag risky entries.

        Returns:
            Tuple of (is_valid, warnings/errors). An invalid file is loaded
            as deny-all at runtime.
        """
        if not isinstance(permissions_dict, dict):
            return False, ["Error: permissions must be a JSON object."]
        try:
            perms = Permissions.model_validate(permissions_dict)
        except ValidationError as e:
            return False, [f"Error: {msg}" for msg in _format_errors(e)]

        issues: List[str] = []
        for raw in perms.allow_paths:
            if raw.startswith("/") or ".." in raw.replace("\\", "/").split("/"):
                issues.append(f"Warning: allow_paths entry '{raw}' is absolute or escapes the base directory and will be ignored.")
            elif raw.strip() in (".", "./", ""):
                issues.append("Warning: allow_paths grants the entire base directory.")

        for cmd in perms.allow_commands:
            if cmd in INTERPRETER_COMMANDS:
                issues.append(f"Warning: allow_commands includes interpreter '{cmd}', which can run arbitrary code.")
            elif cmd in DESTRUCTIVE_COMMANDS:
                issues.append(f"Warning: allow_commands includes '{cmd}', whose arguments are not path-checked.")

        both = set(perms.deny_tools) & set(perms.require_confirmation_for)
        for tool in sorted(both):
            issues.append(f"Warning: '{tool}' is both denied and confirmation-gated; deny wins.")

        if not (perms.allow_paths or perms.allow_commands):
            issues.append("Warning: no paths or commands are allowed; file and command tools will be denied.")

        return True, issues

    @staticmethod
    def validate_safety_config(config_dict: Dict) -> Tuple[bool, List[str]]:
        """Validate sandbox limits and timeouts."""
        issues: List[str] = []

        timeout = config_dict.get("command_timeout", 10)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            issues.append("Error: command_timeout must be a positive number of seconds.")
            return False, issues
        if timeout > 60:
            issues.append("Warning: command_timeout is above 60s. Spawned commands block the caller until they finish.")

        if config_dict.get("audit_enabled") is False:
            issues.append("Warning: audit logging is disabled.")

        return True, issues

    @staticmethod
    def test_configuration(config_dict: Dict, permissions_dict: Any = None) -> Dict[str, Any]:
        """Run all configuration checks.

        Returns:
            Dictionary with test results
        """
        results: Dict[str, Any] = {"overall_valid": True, "tests": {}}

        is_valid, errors = ConfigValidator.validate_config(config_dict)
        results["tests"]["schema_validation"] = {"valid": is_valid, "errors": errors}
        if not is_valid:
            results["overall_valid"] = False

        is_valid, issues = ConfigValidator.validate_safety_config(config_dict)
        results["tests"]["safety_validation"] = {"valid": is_valid, "warnings_errors": issues}
        if not is_valid:
            results["overall_valid"] = False

        if permissions_dict is not None:
            is_valid, issues = ConfigValidator.validate_permissions(permissions_dict)
            results["tests"]["permissions_validation"] = {"valid": is_valid, "warnings_errors": issues}
            if not is_valid:
                results["overall_valid"] = False

        return results
