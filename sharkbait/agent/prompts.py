"""System prompts, rendered from the jinja2 templates beside this module."""

import sys
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from sharkbait.config import settings

TEMPLATE_DIR = Path(__file__).parent / "templates"

ROLE_TEMPLATES = {
    "agent": "agent.md.j2",
    "orchestrator": "orchestrator.md.j2",
    "coder": "coder.md.j2",
    "reviewer": "reviewer.md.j2",
    "planner": "planner.md.j2",
    "debugger": "debugger.md.j2",
    "explorer": "explorer.md.j2",
}

MODE_PROMPTS = {
    # coder
    "write": "Focus on writing new code. Create clean, well-structured implementations.",
    "refactor": "Focus on improving existing code. Keep behavior while improving structure.",
    "test": "Focus on writing tests. Cover the edge cases as well as the happy path.",
    "docs": "Focus on documentation. Write clear, helpful comments and documentation.",
    # reviewer
    "bugs": "Focus on finding bugs and logic errors. Look for edge cases and null handling.",
    "security": "Focus on security vulnerabilities. Check for injection, auth issues and data exposure.",
    "style": "Focus on code style and conventions. Check naming, formatting and patterns.",
    "performance": "Focus on performance issues. Look for N+1 queries, memory leaks and wasted work.",
    # planner
    "architecture": "Focus on system architecture. Design the high-level structure and patterns.",
    "tasks": "Focus on task breakdown. Create detailed, actionable task lists.",
    "estimate": "Focus on estimation. Provide time and complexity estimates.",
    # debugger
    "trace": "Focus on tracing execution. Follow the code path step by step.",
    "hypothesis": "Focus on hypothesis testing. Form and test theories about the bug.",
    "fix": "Focus on fixing. Implement the minimal fix needed.",
    # explorer
    "map": "Focus on mapping architecture. Document the overall structure.",
    "dependencies": "Focus on dependencies. Trace imports and relationships.",
    "patterns": "Focus on patterns. Identify the design patterns in use.",
}


class PromptRenderer:
    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            keep_trailing_newline=True,
            trim_blocks=True,
        )

    def render(self, role: str, mode: str | None = None, working_dir: str | None = None) -> str:
        """Render the system prompt for ``role``, with a mode section if one applies."""
        template_name = ROLE_TEMPLATES.get(role)
        if template_name is None:
            raise ValueError(f"No prompt template for role: {role}")
        template = self.env.get_template(template_name)
        return template.render(
            working_dir=working_dir or settings.WORKING_DIR,
            platform=sys.platform,
            mode=mode,
            mode_prompt=MODE_PROMPTS.get(mode, "") if mode else "",
        )


_renderer = PromptRenderer()


def system_prompt(role: str, mode: str | None = None) -> str:
    return _renderer.render(role, mode)
