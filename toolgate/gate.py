"""Execution gate in front of every tool call.

`ExecutionGate.execute` runs a fixed sequence of checks, each of which can
end the call with a structured error:

    1. agent scope         DENIED_AGENT_TOOLSET (system agents skip this)
    2. global deny-list    DENIED_TOOL_BLOCKLIST (applies to everyone)
    3. no agent            only SAFE_TOOLS may run
    4. unknown tool        UNKNOWN_TOOL
    5. argument shape      VALIDATION_ERROR / MISSING_ARGUMENT / INVALID_ARGUMENT
    6. capabilities        request-scoped ToolContext
    7. confirmation        CONFIRMATION_REQUIRED, before any side effect
    8. dispatch            non-results and exceptions become EXEC_ERROR
    9. audit               best effort, never changes the result

The policy, the resolved allowlist and the command sandbox are built once
in the constructor. Changing the policy means building a new gate.
"""

import inspect
import os
import logging
from pathlib import Path
from typing import Any, Optional

from toolgate.agent import SAFE_TOOLS, Agent
from toolgate.audit import AuditLog
from toolgate.capability import CommandCapabilities, PathCapabilities, RecordCapabilities, ToolContext
from toolgate.config.schema import SandboxConfig
from toolgate.errors import ConfigError, ErrorCode, ToolError, ToolgateError, make_confirmation_error, make_error
from toolgate.permission.paths import AllowlistMatcher, PathResolver
from toolgate.permission.store import PermissionStore, Permissions
from toolgate.sandbox.commands import CommandSandbox
from toolgate.tool.base import ToolResult, make_debug, now_ms
from toolgate.tool.registry import ToolRegistry, create_default_registry

logger = logging.getLogger(__name__)

# How many tool names an UNKNOWN_TOOL message suggests
SUGGESTED_TOOLS = 6

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
}


def _matches_type(value: Any, expected: Any) -> bool:
    if isinstance(expected, list):
        return any(_matches_type(value, t) for t in expected)
    if expected == "null":
        return value is None
    types = _JSON_TYPES.get(expected)
    if types is None:
        return True
    # bool is an int subclass; JSON keeps them apart
    if isinstance(value, bool) and expected != "boolean":
        return False
    return isinstance(value, types)


def validate_args(tool_name: str, schema: dict, args: Any) -> tuple[Optional[dict], Optional[ToolError]]:
    """Check `args` against a tool's JSON parameter schema.

    Returns the arguments restricted to declared properties, or the first
    error found. Optional properties given as null count as absent.
    """
    if not isinstance(args, dict):
        return None, make_error(
            ErrorCode.VALIDATION_ERROR,
            f"Arguments for {tool_name} must be a JSON object.",
        )

    properties: dict = schema.get("properties") or {}
    required = schema.get("required") or []

    for field in required:
        if args.get(field) is None:
            return None, make_error(
                ErrorCode.MISSING_ARGUMENT,
                f"Missing required argument '{field}' for {tool_name}.",
                {"field": field},
            )

    cleaned: dict = {}
    for field, value in args.items():
        prop = properties.get(field)
        if prop is None:
            if properties:
                logger.debug(f"Dropping undeclared argument {field!r} for {tool_name}")
                continue
            cleaned[field] = value
            continue
        if value is None and field not in required:
            continue
        expected = prop.get("type")
        if expected is not None and not _matches_type(value, expected):
            return None, make_error(
                ErrorCode.INVALID_ARGUMENT,
                f"Argument '{field}' for {tool_name} must be of type {expected}.",
                {"field": field, "expected": expected},
            )
        if "enum" in prop and value not in prop["enum"]:
            allowed = ", ".join(str(v) for v in prop["enum"])
            return None, make_error(
                ErrorCode.INVALID_ARGUMENT,
                f"Argument '{field}' for {tool_name} must be one of: {allowed}.",
                {"field": field, "allowed": list(prop["enum"])},
            )
        cleaned[field] = value
    return cleaned, None


class ExecutionGate:
    """Validate, authorize and dispatch tool calls."""

    def __init__(
        self,
        registry: ToolRegistry,
        permissions: Permissions,
        config: Optional[SandboxConfig] = None,
        permissions_path: Optional[str] = None,
        audit_log: Optional[AuditLog] = None,
        agent: Optional[Agent] = None,
    ):
        self.config = config or SandboxConfig()
        self.registry = registry
        self.permissions = permissions
        self.permissions_path = permissions_path
        self.audit_log = audit_log
        self.agent = agent

        self.resolver = PathResolver(self.config.base_dir)
        if not os.path.isdir(self.resolver.canonical_base):
            raise ConfigError(f"Base directory does not exist: {self.config.base_dir}")
        self.matcher = AllowlistMatcher.from_policy(
            self.resolver,
            permissions.allow_paths,
            case_insensitive=self.config.case_insensitive_paths,
        )
        self.sandbox = CommandSandbox(
            self.resolver,
            self.matcher,
            permissions.allow_commands,
            timeout=self.config.command_timeout,
            max_output_chars=self.config.max_output_chars,
            permissions_path=permissions_path,
        )
        self.records = RecordCapabilities(self.config.resolved_data_dir)

    @classmethod
    def from_config(
        cls,
        config: SandboxConfig,
        registry: Optional[ToolRegistry] = None,
        permissions_path: Optional[str | Path] = None,
        agent: Optional[Agent] = None,
    ) -> "ExecutionGate":
        """Build a gate with the policy file and audit log the config points at."""
        store = PermissionStore(config.base_dir, permissions_path or config.permissions_path)
        return cls(
            registry=registry or create_default_registry(),
            permissions=store.permissions,
            config=config,
            permissions_path=store.display_path,
            audit_log=AuditLog(config.audit_path, enabled=config.audit_enabled),
            agent=agent,
        )

    @property
    def base_dir(self) -> str:
        return self.resolver.canonical_base

    def build_context(self, tool_name: str, start: Optional[float] = None) -> ToolContext:
        return ToolContext(
            tool_name=tool_name,
            paths=PathCapabilities(self.resolver, self.matcher, tool_name, self.permissions_path),
            commands=CommandCapabilities(self.sandbox),
            records=self.records,
            limits=self.config.limits,
            base_dir=self.resolver.canonical_base,
            tasks_file=self.config.storage.tasks,
            start=start,
        )

    async def execute(
        self,
        tool_name: str,
        raw_args: Any = None,
        agent: Optional[Agent] = None,
        confirm: bool = False,
    ) -> ToolResult:
        """Run one tool call. Never raises."""
        start = now_ms()
        agent = agent if agent is not None else self.agent
        args = {} if raw_args is None else raw_args

        try:
            result = await self._execute(tool_name, args, agent, confirm, start)
        except Exception as e:
            logger.exception(f"Unexpected failure executing {tool_name!r}")
            result = ToolResult.failure(ErrorCode.EXEC_ERROR, f"Internal error executing '{tool_name}': {e}")

        if result.debug is None:
            result.debug = make_debug(start)
        elif result.debug.duration_ms is None:
            result.debug.duration_ms = make_debug(start).duration_ms

        self._audit(tool_name, args, result, agent)
        return result

    async def _execute(
        self,
        tool_name: str,
        args: Any,
        agent: Optional[Agent],
        confirm: bool,
        start: float,
    ) -> ToolResult:
        if not isinstance(tool_name, str) or not tool_name:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "tool_name must be a non-empty string.")

        if agent is not None and not agent.can_use(tool_name):
            return ToolResult.failure(
                ErrorCode.DENIED_AGENT_TOOLSET,
                f"Permission denied: agent '{agent.name}' cannot use tool '{tool_name}'",
            )

        if self.permissions.is_tool_denied(tool_name):
            return ToolResult.failure(
                ErrorCode.DENIED_TOOL_BLOCKLIST,
                f"Tool '{tool_name}' is explicitly denied in permissions configuration.",
            )

        if agent is None and tool_name not in SAFE_TOOLS:
            return ToolResult.failure(
                ErrorCode.DENIED_AGENT_TOOLSET,
                f"Permission denied: tool '{tool_name}' requires agent context",
            )

        tool = self.registry.get(tool_name)
        if tool is None:
            available = ", ".join(self.registry.list_tools()[:SUGGESTED_TOOLS])
            return ToolResult.failure(
                ErrorCode.UNKNOWN_TOOL,
                f"Unknown tool '{tool_name}'. Try: {available}.",
            )

        schema = tool.get_parameters_schema()
        confirmed = bool(confirm)
        if isinstance(args, dict):
            confirmed = confirmed or args.get("confirm") is True
            if "confirm" not in (schema.get("properties") or {}):
                args = {k: v for k, v in args.items() if k != "confirm"}

        validated, error = validate_args(tool_name, schema, args)
        if error is not None:
            return ToolResult.from_error(error)

        context = self.build_context(tool_name, start)

        if self.permissions.requires_confirmation(tool_name) and not confirmed:
            return ToolResult.from_error(make_confirmation_error(tool_name, self.permissions_path))

        return await self._dispatch(tool, validated, context)

    async def _dispatch(self, tool, args: dict, context: ToolContext) -> ToolResult:
        try:
            returned = tool.execute(args, context)
            if inspect.isawaitable(returned):
                returned = await returned
        except ToolgateError as e:
            logger.warning(f"Tool {tool.name} raised {type(e).__name__}: {e.message}")
            return ToolResult.from_error(e.to_error())
        except Exception as e:
            logger.exception(f"Tool {tool.name} raised an exception")
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Tool '{tool.name}' failed: {e}")

        result = ToolResult.coerce(returned)
        if result is None:
            logger.error(f"Tool {tool.name} returned {type(returned).__name__}, not a ToolResult")
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR,
                f"Internal error: tool '{tool.name}' returned no result",
            )
        return result

    def _audit(self, tool_name: Any, args: Any, result: ToolResult, agent: Optional[Agent]) -> None:
        if self.audit_log is None:
            return
        try:
            self.audit_log.log_call(
                tool=str(tool_name),
                args=args,
                ok=result.ok,
                error=result.error.message if result.error else None,
                error_code=result.error.code if result.error else None,
                duration_ms=result.debug.duration_ms if result.debug else None,
                agent=agent.name if agent else None,
            )
        except Exception as e:
            logger.debug(f"Audit logging failed for {tool_name}: {e}")
