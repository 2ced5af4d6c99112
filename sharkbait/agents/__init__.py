from sharkbait.agents.base import BaseAgent
from sharkbait.agents.coder import CoderAgent
from sharkbait.agents.debugger import DebuggerAgent
from sharkbait.agents.explorer import ExplorerAgent
from sharkbait.agents.factory import AgentFactory
from sharkbait.agents.orchestrator import OrchestratorAgent, classify_intent
from sharkbait.agents.parallel import ParallelExecutionResult, ParallelExecutor, parallel_review
from sharkbait.agents.planner import PlannerAgent
from sharkbait.agents.reviewer import ReviewerAgent

__all__ = [
    "AgentFactory",
    "BaseAgent",
    "CoderAgent",
    "DebuggerAgent",
    "ExplorerAgent",
    "OrchestratorAgent",
    "ParallelExecutionResult",
    "ParallelExecutor",
    "PlannerAgent",
    "ReviewerAgent",
    "classify_intent",
    "parallel_review",
]
