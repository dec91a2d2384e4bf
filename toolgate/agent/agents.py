"""Caller identities and the tool names each may invoke"""

from dataclasses import dataclass, field
from typing import Literal, Optional

AgentKind = Literal["system", "user", "worker"]

# Pure, non-I/O tools that may run without any agent context
SAFE_TOOLS: tuple[str, ...] = ("calculate", "get_time")

FILE_TOOLS = ["read_file", "write_file", "list_files", "delete_file", "create_directory", "file_info"]
TASK_TOOLS = ["task_add", "task_list", "task_done"]
UTILITY_TOOLS = list(SAFE_TOOLS)


@dataclass(frozen=True)
class Agent:
    """A caller identity scoped to a set of tool names.

    `kind="system"` skips the per-agent tool list. The global deny-list
    still applies to it.
    """
    name: str
    tools: tuple[str, ...] = field(default_factory=tuple)
    kind: AgentKind = "user"
    description: str = ""

    @property
    def is_system(self) -> bool:
        return self.kind == "system"

    def can_use(self, tool_name: str) -> bool:
        return self.is_system or tool_name in self.tools


SYSTEM = Agent(
    name="system",
    kind="system",
    description="Direct CLI access with all tools.",
)

CODER = Agent(
    name="coder",
    tools=tuple(FILE_TOOLS + ["run_cmd"]),
    description="Handles file system operations and command execution.",
)

ORGANIZER = Agent(
    name="organizer",
    tools=tuple(TASK_TOOLS + UTILITY_TOOLS),
    description="Manages the task list.",
)

BUILTIN_AGENTS: dict[str, Agent] = {a.name: a for a in (SYSTEM, CODER, ORGANIZER)}


def get_agent(name: str) -> Optional[Agent]:
    """Look up a built-in agent by name, ignoring case."""
    return BUILTIN_AGENTS.get(name.strip().lower())


def list_agents() -> list[Agent]:
    return list(BUILTIN_AGENTS.values())
