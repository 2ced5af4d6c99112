from pathlib import Path

from sharkbait.agent.tool_registry import ToolError
from sharkbait.config import settings

NOISE_DIRS = ("__pycache__", ".git", "node_modules", ".ruff_cache", ".venv", "venv")


def working_dir() -> Path:
    return Path(settings.WORKING_DIR).resolve()


def resolve_path(relative_path: str) -> Path:
    """Resolve and validate that a path stays within the working directory."""
    root = working_dir()
    full_path = (root / relative_path).resolve()
    if full_path != root and root not in full_path.parents:
        raise ToolError(f"Access denied: {relative_path} escapes the working directory")
    return full_path
