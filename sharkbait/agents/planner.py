from sharkbait.agents.base import BaseAgent


class PlannerAgent(BaseAgent):
    role = "planner"
    description = "Designs solutions and breaks work into tasks"
    color = "magenta"
    tool_names = ["read_file", "search_files", "grep_search", "list_directory"]
    modes = ["architecture", "tasks", "estimate"]
