"""Task list tools backed by a JSONL record file"""

import re
from datetime import datetime, timezone

from toolgate.errors import ErrorCode

from .base import Tool, ToolResult, make_debug

DUE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_task(entry) -> bool:
    return (
        isinstance(entry, dict)
        and isinstance(entry.get("id"), int)
        and not isinstance(entry.get("id"), bool)
        and isinstance(entry.get("text"), str)
        and isinstance(entry.get("done"), bool)
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _next_id(tasks: list[dict]) -> int:
    return max((t["id"] for t in tasks), default=0) + 1


class TaskAddTool(Tool):
    name = "task_add"
    description = "Add a task to the task list."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "What needs to be done"},
                "due": {"type": "string", "description": "Due date as YYYY-MM-DD"},
            },
            "required": ["text"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        text = args["text"].strip()
        if not text:
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR, "Task text cannot be empty.", {"field": "text"}, make_debug(context.start)
            )
        due = args.get("due")
        if due is not None and not DUE_DATE.match(due):
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR, "Invalid due date.", {"field": "due"}, make_debug(context.start)
            )

        loaded = context.records.read(context.tasks_file, is_task)
        if not loaded.ok:
            return ToolResult.from_error(loaded.error, make_debug(context.start))
        tasks = loaded.value

        task = {
            "id": _next_id(tasks),
            "text": text,
            "done": False,
            "created_at": _now(),
            "done_at": None,
            "due": due,
        }
        saved = context.records.append(context.tasks_file, task)
        if not saved.ok:
            return ToolResult.from_error(saved.error, make_debug(context.start, memory_read=True))
        return ToolResult.success({"task": task}, make_debug(context.start, memory_read=True, memory_write=True))


class TaskListTool(Tool):
    name = "task_list"
    description = "List tasks, optionally only open or only done ones."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "enum": ["all", "open", "done"],
                    "description": "Which tasks to show (default: all)",
                },
            },
            "required": [],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        status = args.get("status", "all")
        loaded = context.records.read(context.tasks_file, is_task)
        if not loaded.ok:
            return ToolResult.from_error(loaded.error, make_debug(context.start))

        if status == "open":
            entries = [t for t in loaded.value if not t["done"]]
        elif status == "done":
            entries = [t for t in loaded.value if t["done"]]
        else:
            entries = loaded.value
        return ToolResult.success({"entries": entries}, make_debug(context.start, memory_read=True))


class TaskDoneTool(Tool):
    name = "task_done"
    description = "Mark a task as done."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "id": {"type": "integer", "description": "Task id from task_list"},
            },
            "required": ["id"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        loaded = context.records.read(context.tasks_file, is_task)
        if not loaded.ok:
            return ToolResult.from_error(loaded.error, make_debug(context.start))
        tasks = loaded.value

        task = next((t for t in tasks if t["id"] == args["id"]), None)
        if task is None:
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR, "Task not found.", {"id": args["id"]}, make_debug(context.start)
            )
        if not task["done"]:
            task["done"] = True
            task["done_at"] = _now()

        saved = context.records.write(context.tasks_file, tasks)
        if not saved.ok:
            return ToolResult.from_error(saved.error, make_debug(context.start, memory_read=True))
        return ToolResult.success({"task": task}, make_debug(context.start, memory_read=True, memory_write=True))
