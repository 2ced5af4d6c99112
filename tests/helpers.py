"""Shared fakes and helpers: scripted LLMs and a small tool registry. Nothing here touches the network."""

import asyncio
import json

from sharkbait.agent.llm import ChatChunk, ToolCallDelta
from sharkbait.agent.tool_registry import ToolError, ToolRegistry


# ---------------------------------------------------------------------------
# Chunk builders
# ---------------------------------------------------------------------------

def text_turn(*parts: str) -> list[ChatChunk]:
    return [ChatChunk(content=p) for p in parts] + [ChatChunk(finish_reason="stop")]


def tool_turn(*calls, fragments: int = 1) -> list[ChatChunk]:
    """One model turn requesting ``calls``: (name, args) or (name, args, call_id).

    Arguments are split into ``fragments`` pieces to mimic streaming.
    """
    chunks = []
    for index, call in enumerate(calls):
        name, args = call[0], call[1]
        call_id = call[2] if len(call) > 2 else f"call_{index}"
        raw = args if isinstance(args, str) else json.dumps(args)
        chunks.append(ChatChunk(tool_call_deltas=[ToolCallDelta(index=index, id=call_id, name=name)]))
        size = max(1, -(-len(raw) // fragments))
        for start in range(0, len(raw), size):
            chunks.append(
                ChatChunk(tool_call_deltas=[ToolCallDelta(index=index, arguments=raw[start:start + size])])
            )
    chunks.append(ChatChunk(finish_reason="tool_calls"))
    return chunks


# ---------------------------------------------------------------------------
# Fake LLMs
# ---------------------------------------------------------------------------

class FakeLLM:
    """Replays scripted turns in order. A turn may be an Exception to raise."""

    def __init__(self, turns=()):
        self.turns = list(turns)
        self.calls: list[dict] = []

    async def chat(self, messages, tools=None):
        self.calls.append({"messages": [dict(m) for m in messages], "tools": tools})
        if not self.turns:
            raise AssertionError("FakeLLM ran out of scripted turns")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        for chunk in turn:
            yield chunk


class ModeLLM:
    """Answers by prompting mode: {mode: (delay_seconds, text or Exception)}."""

    def __init__(self, behaviours: dict, default=(0.0, "ok")):
        self.behaviours = behaviours
        self.default = default

    async def chat(self, messages, tools=None):
        system = messages[0]["content"]
        delay, outcome = next(
            (b for mode, b in self.behaviours.items() if f"## Current Mode: {mode}" in system),
            self.default,
        )
        await asyncio.sleep(delay)
        if isinstance(outcome, Exception):
            raise outcome
        yield ChatChunk(content=outcome)


# ---------------------------------------------------------------------------
# Fake tools
# ---------------------------------------------------------------------------

async def echo(text: str) -> str:
    return text


async def add(a: int, b: int) -> dict:
    return {"sum": a + b}


async def fail(reason: str = "boom") -> str:
    raise ToolError(reason)


def make_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        name="echo",
        description="Echo text back",
        parameters={"type": "object", "properties": {"text": {"type": "string"}}, "required": ["text"]},
        handler=echo,
    )
    registry.register(
        name="add",
        description="Add two integers",
        parameters={
            "type": "object",
            "properties": {"a": {"type": "integer"}, "b": {"type": "integer"}},
            "required": ["a", "b"],
        },
        handler=add,
    )
    registry.register(
        name="fail",
        description="Always fails",
        parameters={"type": "object", "properties": {"reason": {"type": "string"}}},
        handler=fail,
    )
    return registry


async def collect(events) -> list:
    return [event async for event in events]


def types(events) -> list[str]:
    return [e.type for e in events]
