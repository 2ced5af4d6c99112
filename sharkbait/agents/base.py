"""BaseAgent: shared behavior for the role-specialized agents.

A role agent is an AgentLoop with a role prompt, a subset of the tool
registry and an optional prompting mode. Subclasses only declare class
attributes:
    role: str               agent identifier
    description: str        one-line summary for listings
    color: str              rich style used by the CLI
    tool_names: list[str]   allowed tools, "*" for all
    modes: list[str]        supported prompting modes
"""

from __future__ import annotations

import logging
import time
from typing import AsyncIterator

from sharkbait.agent.constants import DEFAULT_MAX_ITERATIONS
from sharkbait.agent.context import ContextManager
from sharkbait.agent.events import AgentEvent, error_event
from sharkbait.agent.hooks import HookChain
from sharkbait.agent.llm import ChatModel
from sharkbait.agent.loop import AgentLoop
from sharkbait.agent.prompts import system_prompt
from sharkbait.agent.state import AgentResult
from sharkbait.agent.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class BaseAgent:
    role: str = ""
    description: str = ""
    color: str = "white"
    tool_names: list[str] = []
    modes: list[str] = []

    def __init__(
        self,
        llm: ChatModel,
        tools: ToolRegistry,
        hooks: HookChain | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        context_manager: ContextManager | None = None,
    ) -> None:
        self.llm = llm
        self.tools = tools.subset(self.tool_names)
        self.current_mode: str | None = None
        self.loop = AgentLoop(
            llm,
            self.tools,
            system_prompt=self.build_system_prompt(),
            hooks=hooks,
            max_iterations=max_iterations,
            context_manager=context_manager,
            name=self.role,
        )

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    @property
    def supported_modes(self) -> list[str]:
        return list(self.modes)

    def supports_mode(self, mode: str) -> bool:
        return mode in self.modes

    def set_mode(self, mode: str | None) -> None:
        if mode is not None and not self.supports_mode(mode):
            raise ValueError(f"Agent {self.role} does not support mode: {mode}")
        self.current_mode = mode

    def build_system_prompt(self, mode: str | None = None) -> str:
        return system_prompt(self.role, mode)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def run(self, input: str, mode: str | None = None) -> AsyncIterator[AgentEvent]:
        """Run one request, optionally in ``mode`` (default: the current mode)."""
        if mode is not None and not self.supports_mode(mode):
            yield error_event(f"Agent {self.role} does not support mode: {mode}")
            return

        active_mode = mode or self.current_mode
        yield AgentEvent(type="agent_start", data={"agent": self.role, "mode": active_mode})
        async for event in self.loop.run(input, system_prompt=self.build_system_prompt(active_mode)):
            yield event

    async def execute(self, input: str, mode: str | None = None) -> AgentResult:
        """Run to completion and summarize the stream as an AgentResult."""
        started = time.monotonic()
        text: list[str] = []
        tools_called: list[str] = []
        result = None

        async for event in self.run(input, mode):
            if event.type == "text":
                text.append(event.data["content"])
            elif event.type == "tool_start":
                tools_called.append(event.data["name"])
            elif event.type == "done":
                result = AgentResult(
                    role=self.role,
                    mode=mode or self.current_mode,
                    success=True,
                    output=event.data.get("output") or "".join(text),
                    tools_called=tools_called,
                )
            elif event.type == "error":
                result = AgentResult(
                    role=self.role,
                    mode=mode or self.current_mode,
                    success=False,
                    output="".join(text),
                    tools_called=tools_called,
                    error=event.data["message"],
                )

        if result is None:
            result = AgentResult(
                role=self.role,
                mode=mode or self.current_mode,
                success=False,
                tools_called=tools_called,
                error="Agent produced no result",
            )
        result.duration_ms = int((time.monotonic() - started) * 1000)
        return result

    def reset(self) -> None:
        self.loop.reset()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} role={self.role!r} mode={self.current_mode!r}>"
