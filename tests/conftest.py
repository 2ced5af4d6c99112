import pytest

from sharkbait.agent.tool_registry import ToolRegistry
from tests.helpers import make_registry


@pytest.fixture
def registry() -> ToolRegistry:
    return make_registry()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Point the built-in tools at a temporary directory."""
    from sharkbait.config import settings

    monkeypatch.setattr(settings, "WORKING_DIR", tmp_path)
    return tmp_path
