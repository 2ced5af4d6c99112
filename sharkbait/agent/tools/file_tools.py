from sharkbait.agent.constants import (
    MAX_FILE_READ_CHARS,
    MAX_FILE_WRITE_BYTES,
    READ_FILE_TRUNCATION_MSG,
)
from sharkbait.agent.tool_registry import ToolError, ToolRegistry
from sharkbait.agent.tools.paths import resolve_path


async def read_file(path: str) -> str:
    """Read a file from the working directory."""
    file_path = resolve_path(path)
    if not file_path.exists():
        raise ToolError(f"File not found: {path}")
    if not file_path.is_file():
        raise ToolError(f"Not a file: {path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        raise ToolError(f"Binary file cannot be read: {path}")
    if len(content) > MAX_FILE_READ_CHARS:
        return content[:MAX_FILE_READ_CHARS] + READ_FILE_TRUNCATION_MSG.format(len(content))
    return content


async def write_file(path: str, content: str) -> str:
    """Write or create a file."""
    file_path = resolve_path(path)
    if len(content.encode("utf-8")) > MAX_FILE_WRITE_BYTES:
        raise ToolError("File content exceeds 1MB limit")

    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content, encoding="utf-8")
    return f"Successfully wrote {len(content)} chars to {path}"


async def edit_file(path: str, old_text: str, new_text: str) -> str:
    """Replace the first occurrence of old_text with new_text."""
    file_path = resolve_path(path)
    if not file_path.exists():
        raise ToolError(f"File not found: {path}")

    content = file_path.read_text(encoding="utf-8")
    if old_text not in content:
        raise ToolError(f"old_text not found in {path}. The file may have changed.")

    count = content.count(old_text)
    file_path.write_text(content.replace(old_text, new_text, 1), encoding="utf-8")
    return f"Successfully replaced text in {path} ({count} occurrence(s) found, replaced first)"


def register_file_tools(registry: ToolRegistry) -> None:
    """Register all file tools with the registry."""
    registry.register(
        name="read_file",
        description="Read the contents of a file. Always read a file before editing it.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path relative to the working directory"},
            },
            "required": ["path"],
        },
        handler=read_file,
    )
    registry.register(
        name="write_file",
        description="Create a file or overwrite it completely with new content.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path relative to the working directory"},
                "content": {"type": "string", "description": "The full file content"},
            },
            "required": ["path", "content"],
        },
        handler=write_file,
    )
    registry.register(
        name="edit_file",
        description=(
            "Replace an exact snippet of text in a file. old_text must match the "
            "file exactly, including whitespace. Only the first occurrence is replaced."
        ),
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path relative to the working directory"},
                "old_text": {"type": "string", "description": "Exact text to find"},
                "new_text": {"type": "string", "description": "Replacement text"},
            },
            "required": ["path", "old_text", "new_text"],
        },
        handler=edit_file,
    )
