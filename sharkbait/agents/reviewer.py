from sharkbait.agents.base import BaseAgent


class ReviewerAgent(BaseAgent):
    """Read-only: reviews code and history, never edits."""

    role = "reviewer"
    description = "Reviews code for bugs, security, style and performance"
    color = "yellow"
    tool_names = [
        "read_file",
        "search_files",
        "grep_search",
        "list_directory",
        "git_diff",
        "git_status",
        "git_log",
    ]
    modes = ["bugs", "security", "style", "performance"]
