"""
Agent tools.
"""
from .specs import ToolSpec
from .sandbox_tools import (
    create_sandbox_tools,
    terminal_tool,
    create_or_update_file_tool,
    read_file_tool,
)

__all__ = [
    "ToolSpec",
    "create_sandbox_tools",
    "terminal_tool",
    "create_or_update_file_tool",
    "read_file_tool",
]
