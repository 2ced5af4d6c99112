from sharkbait.agent.agent import Agent
from sharkbait.agent.events import AgentEvent, EventChannel
from sharkbait.agent.loop import AgentLoop

__all__ = ["Agent", "AgentEvent", "AgentLoop", "EventChannel"]
