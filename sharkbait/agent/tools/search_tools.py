import fnmatch
import os
import re
from pathlib import Path

from sharkbait.agent.tool_registry import ToolError, ToolRegistry
from sharkbait.agent.tools.paths import NOISE_DIRS, resolve_path, working_dir

MAX_SEARCH_RESULTS = 50


async def list_directory(path: str = ".") -> str:
    """List the contents of a directory as a tree."""
    target = resolve_path(path)
    if not target.exists():
        raise ToolError(f"Directory not found: {path}")
    if not target.is_dir():
        raise ToolError(f"Not a directory: {path}")

    lines: list[str] = []
    _build_tree(target, lines, prefix="", max_depth=4, current_depth=0)
    if not lines:
        return "(empty directory)"
    return "\n".join(lines)


def _build_tree(
    current: Path,
    lines: list[str],
    prefix: str,
    max_depth: int,
    current_depth: int,
) -> None:
    if current_depth > max_depth:
        lines.append(f"{prefix}... (depth limit)")
        return

    try:
        entries = sorted(current.iterdir(), key=lambda e: (not e.is_dir(), e.name))
    except PermissionError:
        return

    entries = [e for e in entries if e.name not in NOISE_DIRS]

    for i, entry in enumerate(entries):
        is_last = i == len(entries) - 1
        connector = "└── " if is_last else "├── "
        if entry.is_dir():
            lines.append(f"{prefix}{connector}{entry.name}/")
            extension = "    " if is_last else "│   "
            _build_tree(entry, lines, prefix + extension, max_depth, current_depth + 1)
        else:
            lines.append(f"{prefix}{connector}{entry.name} ({entry.stat().st_size}B)")


def _walk_files(file_glob: str):
    root = working_dir()
    for dirpath, dirs, files in os.walk(root):
        dirs[:] = [d for d in dirs if d not in NOISE_DIRS]
        for filename in files:
            rel_path = (Path(dirpath) / filename).relative_to(root)
            if fnmatch.fnmatch(filename, file_glob) or fnmatch.fnmatch(str(rel_path), file_glob):
                yield rel_path


async def search_files(pattern: str) -> str:
    """Find files whose name or relative path matches a glob pattern."""
    matches = []
    for rel_path in _walk_files(pattern):
        matches.append(str(rel_path))
        if len(matches) >= MAX_SEARCH_RESULTS:
            matches.append(f"... (stopped at {MAX_SEARCH_RESULTS} results)")
            break
    if not matches:
        return f"No files match '{pattern}'"
    return "\n".join(matches)


async def grep_search(pattern: str, file_glob: str = "*") -> str:
    """Search file contents with a regular expression."""
    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ToolError(f"Invalid regular expression: {e}")

    root = working_dir()
    results = []
    for rel_path in _walk_files(file_glob):
        try:
            content = (root / rel_path).read_text(encoding="utf-8")
        except (UnicodeDecodeError, PermissionError):
            continue

        for line_num, line in enumerate(content.splitlines(), 1):
            if regex.search(line):
                results.append(f"{rel_path}:{line_num}: {line.strip()}")
                if len(results) >= MAX_SEARCH_RESULTS:
                    results.append(f"... (stopped at {MAX_SEARCH_RESULTS} results)")
                    return "\n".join(results)

    if not results:
        return f"No matches found for '{pattern}' in {file_glob} files"
    return "\n".join(results)


def register_search_tools(registry: ToolRegistry) -> None:
    """Register search tools with the registry."""
    registry.register(
        name="list_directory",
        description="List a directory as a tree structure. Shows files with sizes.",
        parameters={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Relative path to the directory (default: '.')",
                    "default": ".",
                },
            },
            "required": [],
        },
        handler=list_directory,
    )
    registry.register(
        name="search_files",
        description="Find files by glob pattern, e.g. '*.py' or 'src/**/test_*.py'.",
        parameters={
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Glob pattern"},
            },
            "required": ["pattern"],
        },
        handler=search_files,
    )
    registry.register(
        name="grep_search",
        description=(
            "Search file contents with a case-insensitive regular expression. "
            "Returns matching lines with file paths and line numbers."
        ),
        parameters={
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Regular expression"},
                "file_glob": {
                    "type": "string",
                    "description": "Glob pattern to filter files (default: '*')",
                    "default": "*",
                },
            },
            "required": ["pattern"],
        },
        handler=grep_search,
    )
