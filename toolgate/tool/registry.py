"""Tool registry"""

import logging
from typing import Iterable, Optional

from .base import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Name to tool mapping, built explicitly by whoever owns the gate."""

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if not tool.name:
            raise ValueError(f"{type(tool).__name__} has no name")
        if tool.name in self._tools:
            logger.warning(f"Replacing registered tool: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> list[str]:
        return list(self._tools)

    def get_schemas(self) -> list[dict]:
        """Tool descriptions in function-calling format."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.get_parameters_schema(),
            }
            for tool in self._tools.values()
        ]


def create_default_registry() -> ToolRegistry:
    """Registry with the file, command, task and utility tools."""
    from .command import RunCmdTool
    from .files import (
        CreateDirectoryTool,
        DeleteFileTool,
        FileInfoTool,
        ListFilesTool,
        ReadFileTool,
        WriteFileTool,
    )
    from .tasks import TaskAddTool, TaskDoneTool, TaskListTool
    from .utility import CalculateTool, GetTimeTool

    return ToolRegistry([
        ReadFileTool(),
        WriteFileTool(),
        ListFilesTool(),
        DeleteFileTool(),
        CreateDirectoryTool(),
        FileInfoTool(),
        RunCmdTool(),
        TaskAddTool(),
        TaskListTool(),
        TaskDoneTool(),
        CalculateTool(),
        GetTimeTool(),
    ])
