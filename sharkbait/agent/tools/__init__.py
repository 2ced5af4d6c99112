"""Built-in tools, rooted at settings.WORKING_DIR."""

from sharkbait.agent.tool_registry import ToolRegistry
from sharkbait.agent.tools.command_tools import register_command_tools
from sharkbait.agent.tools.file_tools import register_file_tools
from sharkbait.agent.tools.git_tools import register_git_tools
from sharkbait.agent.tools.search_tools import register_search_tools


def build_tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    register_file_tools(registry)
    register_search_tools(registry)
    register_command_tools(registry)
    register_git_tools(registry)
    return registry


__all__ = ["build_tool_registry"]
