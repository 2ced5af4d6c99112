from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Iterable

logger = logging.getLogger(__name__)


class ToolError(Exception):
    """Raised by tool handlers for expected, model-visible failures."""

    def __init__(self, message: str, tool_name: str | None = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name


@dataclass
class Tool:
    name: str
    description: str
    parameters: dict
    handler: Callable[..., Coroutine[Any, Any, Any]]


@dataclass
class ToolOutcome:
    """Result of ToolRegistry.execute. Never raised, always returned."""

    name: str
    kind: str  # ok, not_found, invalid_arguments, failed
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind == "ok"


@dataclass
class ToolRegistry:
    """Registry for agent tools. Each tool is a function the LLM can call."""

    _tools: dict[str, Tool] = field(default_factory=dict)

    def register(
        self,
        name: str,
        description: str,
        parameters: dict,
        handler: Callable[..., Coroutine[Any, Any, Any]],
    ) -> None:
        if name in self._tools:
            raise ValueError(f"Tool {name} already registered")
        self._tools[name] = Tool(
            name=name,
            description=description,
            parameters=parameters,
            handler=handler,
        )

    def register_all(self, tools: Iterable[Tool]) -> None:
        for tool in tools:
            if tool.name in self._tools:
                logger.warning("Tool %s already registered, skipping duplicate", tool.name)
                continue
            self._tools[tool.name] = tool

    def subset(self, names: Iterable[str]) -> ToolRegistry:
        """A registry sharing this one's Tool objects, limited to ``names``.

        ``"*"`` selects every tool. Unknown names are ignored.
        """
        names = list(names)
        if "*" in names:
            return ToolRegistry(dict(self._tools))
        return ToolRegistry({n: self._tools[n] for n in names if n in self._tools})

    def get_definitions(self) -> list[dict]:
        return [
            {"name": t.name, "description": t.description, "parameters": t.parameters}
            for t in self._tools.values()
        ]

    def get_openai_schema(self) -> list[dict]:
        """Return tools in OpenAI function-calling format."""
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in self._tools.values()
        ]

    async def execute(self, name: str, arguments: dict) -> ToolOutcome:
        """Execute a tool by name with the given arguments."""
        tool = self._tools.get(name)
        if not tool:
            return ToolOutcome(name=name, kind="not_found", error=f"Unknown tool: {name}")

        try:
            inspect.signature(tool.handler).bind(**arguments)
        except TypeError as e:
            return ToolOutcome(
                name=name,
                kind="invalid_arguments",
                error=f"Invalid arguments for {name}: {e}",
            )

        logger.debug("Executing tool %s with args %s", name, arguments)
        try:
            result = await tool.handler(**arguments)
        except ToolError as e:
            return ToolOutcome(name=name, kind="failed", error=str(e))
        except Exception as e:
            logger.exception("Tool %s raised", name)
            return ToolOutcome(
                name=name,
                kind="failed",
                error=f"Error executing {name}: {type(e).__name__}: {e}",
            )
        return ToolOutcome(name=name, kind="ok", result=result)

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)
