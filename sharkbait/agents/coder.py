from sharkbait.agents.base import BaseAgent


class CoderAgent(BaseAgent):
    role = "coder"
    description = "Writes, refactors, tests and documents code"
    color = "green"
    tool_names = [
        "read_file",
        "write_file",
        "edit_file",
        "list_directory",
        "search_files",
        "grep_search",
        "run_command",
    ]
    modes = ["write", "refactor", "test", "docs"]
