import asyncio

from sharkbait.agent.tool_registry import ToolError, ToolRegistry
from sharkbait.agent.tools.paths import working_dir


async def _git(*args: str) -> str:
    root = working_dir()
    if not (root / ".git").exists():
        raise ToolError("Not a git repository")

    proc = await asyncio.create_subprocess_exec(
        "git", *args,
        cwd=str(root),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise ToolError(f"git {args[0]} failed: {stderr.decode(errors='replace').strip()}")
    return stdout.decode(errors="replace").strip()


async def git_status() -> str:
    return await _git("status", "--short", "--branch") or "(clean)"


async def git_diff(path: str = "", staged: bool = False) -> str:
    args = ["diff"]
    if staged:
        args.append("--cached")
    if path:
        args.extend(["--", path])
    return await _git(*args) or "(no changes)"


async def git_log(limit: int = 10) -> str:
    return await _git("log", f"-{int(limit)}", "--oneline", "--decorate")


def register_git_tools(registry: ToolRegistry) -> None:
    """Register read-only git tools with the registry."""
    registry.register(
        name="git_status",
        description="Show the working tree status (short format, with branch).",
        parameters={"type": "object", "properties": {}, "required": []},
        handler=git_status,
    )
    registry.register(
        name="git_diff",
        description="Show unstaged changes, or staged changes with staged=true.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Limit the diff to this path"},
                "staged": {"type": "boolean", "description": "Diff the index instead", "default": False},
            },
            "required": [],
        },
        handler=git_diff,
    )
    registry.register(
        name="git_log",
        description="Show recent commits, one line each.",
        parameters={
            "type": "object",
            "properties": {
                "limit": {"type": "integer", "description": "Number of commits (default 10)", "default": 10},
            },
            "required": [],
        },
        handler=git_log,
    )
