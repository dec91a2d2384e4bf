"""Tools dispatched through the execution gate"""

from .base import DebugInfo, Tool, ToolResult, make_debug, now_ms
from .registry import ToolRegistry, create_default_registry

__all__ = [
    "DebugInfo",
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "create_default_registry",
    "make_debug",
    "now_ms",
]
