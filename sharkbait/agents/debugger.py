from sharkbait.agents.base import BaseAgent


class DebuggerAgent(BaseAgent):
    role = "debugger"
    description = "Finds root causes and applies minimal fixes"
    color = "red"
    tool_names = [
        "read_file",
        "edit_file",
        "search_files",
        "grep_search",
        "run_command",
        "git_diff",
        "git_log",
    ]
    modes = ["trace", "hypothesis", "fix"]
