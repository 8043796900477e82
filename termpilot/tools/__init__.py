"""Tools the assistant can invoke."""

from termpilot.tools.base import ConfirmableTool, Confirmator, Tool
from termpilot.tools.current_time import CurrentTimeTool
from termpilot.tools.editing import EditFileTool, InsertContentTool, ReplaceLinesTool, SearchReplaceTool
from termpilot.tools.file_management import DirManageTool, FileManageTool
from termpilot.tools.files import CreateFileTool, ListDirTool, ReadFileTool
from termpilot.tools.http_request import HttpRequestTool
from termpilot.tools.registry import ToolRegistry
from termpilot.tools.shell import ShellTool
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)


def register_builtin_tools(registry: ToolRegistry) -> ToolRegistry:
    """Register the default set of tools."""
    tools: list[Tool] = [
        ShellTool(),
        CurrentTimeTool(),
        # File operations
        ReadFileTool(),
        EditFileTool(),
        CreateFileTool(),
        ReplaceLinesTool(),
        SearchReplaceTool(),
        InsertContentTool(),
        FileManageTool(),
        # Directory operations
        ListDirTool(),
        DirManageTool(),
        HttpRequestTool(),
    ]

    for tool in tools:
        registry.register(tool)

    logger.info(f"Registered tools: {', '.join(registry.get_tool_names())}")
    return registry


__all__ = [
    "ConfirmableTool",
    "Confirmator",
    "Tool",
    "ToolRegistry",
    "register_builtin_tools",
]
