from __future__ import annotations

import logging

from sharkbait.agent.constants import DEFAULT_MAX_ITERATIONS
from sharkbait.agent.context import ContextManager
from sharkbait.agent.hooks import HookChain
from sharkbait.agent.llm import ChatModel
from sharkbait.agent.tool_registry import ToolRegistry
from sharkbait.agents.base import BaseAgent
from sharkbait.agents.coder import CoderAgent
from sharkbait.agents.debugger import DebuggerAgent
from sharkbait.agents.explorer import ExplorerAgent
from sharkbait.agents.orchestrator import OrchestratorAgent
from sharkbait.agents.planner import PlannerAgent
from sharkbait.agents.reviewer import ReviewerAgent

logger = logging.getLogger(__name__)

AGENT_CLASSES: dict[str, type[BaseAgent]] = {
    "orchestrator": OrchestratorAgent,
    "coder": CoderAgent,
    "reviewer": ReviewerAgent,
    "planner": PlannerAgent,
    "debugger": DebuggerAgent,
    "explorer": ExplorerAgent,
}

SPECIALIST_ROLES = ["coder", "reviewer", "planner", "debugger", "explorer"]


class AgentFactory:
    """Creates agents that share one LLM client, tool registry and hook chain.

    Each call builds a new agent with its own conversation.
    """

    def __init__(
        self,
        llm: ChatModel,
        tools: ToolRegistry,
        hooks: HookChain | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        context_manager_factory=ContextManager,
    ) -> None:
        self.llm = llm
        self.tools = tools
        self.hooks = hooks
        self.max_iterations = max_iterations
        self.context_manager_factory = context_manager_factory

    def create(self, role: str) -> BaseAgent:
        agent_class = AGENT_CLASSES.get(role)
        if agent_class is None:
            raise ValueError(f"Unknown agent role: {role}")
        logger.debug("Creating agent: %s", role)
        return agent_class(
            self.llm,
            self.tools,
            hooks=self.hooks,
            max_iterations=self.max_iterations,
            context_manager=self.context_manager_factory(),
        )

    def create_orchestrator(self) -> OrchestratorAgent:
        """An orchestrator with every specialist registered."""
        orchestrator = self.create("orchestrator")
        for role in SPECIALIST_ROLES:
            orchestrator.register_agent(self.create(role))
        logger.info("Orchestrator created with all agents registered")
        return orchestrator

    def create_all(self) -> dict[str, BaseAgent]:
        return {role: self.create(role) for role in AGENT_CLASSES}
