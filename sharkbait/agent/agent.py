from __future__ import annotations

import logging
from typing import AsyncIterator

from sharkbait.agent.context import ContextManager
from sharkbait.agent.events import AgentEvent
from sharkbait.agent.hooks import HookChain
from sharkbait.agent.llm import ChatModel, LLMClient
from sharkbait.agent.loop import AgentLoop
from sharkbait.agent.prompts import system_prompt
from sharkbait.agent.tool_registry import ToolRegistry
from sharkbait.agent.tools import build_tool_registry
from sharkbait.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def default_hooks(config: Settings) -> HookChain:
    return HookChain.with_builtins() if config.ENABLE_SAFETY_HOOKS else HookChain()


def context_manager_from(config: Settings) -> ContextManager:
    return ContextManager(
        max_tokens=config.MAX_CONTEXT_TOKENS,
        reserved_for_response=config.RESERVED_FOR_RESPONSE,
        compaction_threshold=config.COMPACTION_THRESHOLD,
    )


class Agent:
    """Main entry point: one general-purpose agent with every built-in tool."""

    def __init__(
        self,
        llm: ChatModel | None = None,
        tools: ToolRegistry | None = None,
        hooks: HookChain | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or default_settings
        self.llm = llm or LLMClient(self.config)
        self.tools = tools if tools is not None else build_tool_registry()
        self.hooks = hooks if hooks is not None else default_hooks(self.config)
        self.loop = self._new_loop()

    def _new_loop(self) -> AgentLoop:
        return AgentLoop(
            self.llm,
            self.tools,
            system_prompt=system_prompt("agent"),
            hooks=self.hooks,
            max_iterations=self.config.MAX_ITERATIONS,
            context_manager=context_manager_from(self.config),
        )

    async def ask(self, question: str) -> str:
        """Run a single query and return the streamed text."""
        parts: list[str] = []
        async for event in self.run(question):
            if event.type == "text":
                parts.append(event.data["content"])
            elif event.type == "error":
                logger.warning("ask() ended with an error: %s", event.data["message"])
        return "".join(parts)

    async def run(self, message: str) -> AsyncIterator[AgentEvent]:
        async for event in self.loop.run(message):
            yield event

    def reset(self) -> None:
        """Start a new conversation."""
        self.loop = self._new_loop()
