"""Allowlisted command tool"""

from toolgate.errors import ErrorCode
from toolgate.sandbox.shell import parse_shell_args

from .base import Tool, ToolResult, make_debug


class RunCmdTool(Tool):
    name = "run_cmd"
    description = (
        "Run an allowlisted command in the base directory. "
        "ls, cat, pwd and du run in-process; other allowed commands are spawned without a shell."
    )

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "Command line; quotes group words, nothing is expanded",
                },
                "confirm": {
                    "type": "boolean",
                    "description": "Set to true when the policy requires confirmation",
                },
            },
            "required": ["command"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        command = args["command"].strip()
        if not command:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "Command cannot be empty.", debug=make_debug(context.start))

        parsed = parse_shell_args(command)
        if not parsed.ok:
            return ToolResult.from_error(parsed.error, make_debug(context.start))
        if not parsed.value:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "Command cannot be empty.", debug=make_debug(context.start))

        cmd, cmd_args = parsed.value[0], parsed.value[1:]
        outcome = context.commands.run_allowed(cmd, cmd_args)
        if not outcome.ok:
            return ToolResult.from_error(outcome.error, make_debug(context.start))
        return ToolResult.success(outcome.value, make_debug(context.start))
