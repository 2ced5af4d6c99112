from sharkbait.agents.base import BaseAgent


class ExplorerAgent(BaseAgent):
    """Read-only codebase analysis."""

    role = "explorer"
    description = "Explains how the codebase works"
    color = "cyan"
    tool_names = ["read_file", "search_files", "grep_search", "list_directory"]
    modes = ["map", "dependencies", "patterns"]
