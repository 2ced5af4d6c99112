import asyncio

from sharkbait.agent.constants import (
    COMMAND_OUTPUT_MAX_CHARS,
    SHELL_COMMAND_TIMEOUT_SECONDS,
)
from sharkbait.agent.tool_registry import ToolError, ToolRegistry
from sharkbait.agent.tools.paths import resolve_path


async def run_command(command: str, working_dir: str = ".") -> str:
    """Run a shell command inside the working directory."""
    cwd = resolve_path(working_dir)
    if not cwd.is_dir():
        raise ToolError(f"Directory not found: {working_dir}")

    proc = await asyncio.create_subprocess_shell(
        command,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(), timeout=SHELL_COMMAND_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise ToolError(
            f"Command timed out after {SHELL_COMMAND_TIMEOUT_SECONDS} seconds"
        )

    output = ""
    if stdout:
        output += stdout.decode(errors="replace")
    if stderr:
        output += "\n[stderr]\n" + stderr.decode(errors="replace")

    if len(output) > COMMAND_OUTPUT_MAX_CHARS:
        output = output[:COMMAND_OUTPUT_MAX_CHARS] + f"\n... (truncated, {len(output)} chars total)"

    if proc.returncode != 0:
        output = f"[exit code: {proc.returncode}]\n{output}"

    return output.strip() or "(no output)"


def register_command_tools(registry: ToolRegistry) -> None:
    """Register command tools with the registry."""
    registry.register(
        name="run_command",
        description=(
            "Run a shell command in the working directory, e.g. tests, linters "
            f"or build steps. Timeout: {SHELL_COMMAND_TIMEOUT_SECONDS} seconds."
        ),
        parameters={
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The shell command to execute",
                },
                "working_dir": {
                    "type": "string",
                    "description": "Subdirectory to run in (default: '.')",
                    "default": ".",
                },
            },
            "required": ["command"],
        },
        handler=run_command,
    )
