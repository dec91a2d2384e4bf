"""Pure utility tools that need no capabilities"""

import ast
import math
import operator
import time
from datetime import datetime, timezone

from toolgate.errors import ErrorCode

from .base import Tool, ToolResult, make_debug

MAX_EXPRESSION_CHARS = 200
MAX_EXPONENT = 1000
MAX_RESULT_BITS = 4096

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def _bounded(value):
    if isinstance(value, int) and value.bit_length() > MAX_RESULT_BITS:
        raise ValueError("result too large")
    return value


def safe_eval(expression: str) -> float:
    """Evaluate arithmetic on numeric literals. Names, calls and attributes are rejected.

    Integer results, including intermediate ones, are capped at MAX_RESULT_BITS.
    """
    tree = ast.parse(expression, mode="eval")

    def _eval(node):
        if isinstance(node, ast.Expression):
            return _eval(node.body)
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return node.value
        if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
            left, right = _eval(node.left), _eval(node.right)
            if isinstance(node.op, ast.Pow):
                if abs(right) > MAX_EXPONENT:
                    raise ValueError("exponent too large")
                if isinstance(left, int) and isinstance(right, int) and right > 0:
                    if (abs(left).bit_length() - 1) * right > MAX_RESULT_BITS:
                        raise ValueError("result too large")
            return _bounded(_BINARY_OPS[type(node.op)](left, right))
        if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
            return _bounded(_UNARY_OPS[type(node.op)](_eval(node.operand)))
        raise ValueError(f"unsupported expression element: {type(node).__name__}")

    return _eval(tree)


class CalculateTool(Tool):
    name = "calculate"
    description = "Evaluate an arithmetic expression (+ - * / // % ** and parentheses)."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "expression": {"type": "string", "description": "Expression such as '(2 + 3) * 4'"},
            },
            "required": ["expression"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        expression = args["expression"].strip()
        if not expression or len(expression) > MAX_EXPRESSION_CHARS:
            return ToolResult.failure(
                ErrorCode.INVALID_ARGUMENT,
                f"Expression must be 1-{MAX_EXPRESSION_CHARS} characters.",
                {"field": "expression"},
                make_debug(context.start),
            )
        try:
            value = safe_eval(expression)
        except (SyntaxError, ValueError, ZeroDivisionError, OverflowError, TypeError) as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Calculation error: {e}", debug=make_debug(context.start))

        if isinstance(value, float) and not math.isfinite(value):
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, "Expression did not result in a valid number.", debug=make_debug(context.start)
            )
        return ToolResult.success({"expression": expression, "value": value}, make_debug(context.start))


class GetTimeTool(Tool):
    name = "get_time"
    description = "Get the current date and time."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "format": {
                    "type": "string",
                    "enum": ["iso", "local", "readable"],
                    "description": "Output format (default: readable)",
                },
            },
            "required": [],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        fmt = args.get("format", "readable")
        now = datetime.now(timezone.utc)
        if fmt == "iso":
            formatted = now.isoformat()
        elif fmt == "local":
            formatted = now.astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")
        else:
            formatted = now.astimezone().strftime("%a %b %d %Y %H:%M:%S")
        return ToolResult.success(
            {"time": formatted, "timestamp": int(time.time() * 1000)},
            make_debug(context.start),
        )
