"""AgentEvent and the bounded channel agent loops publish them through.

Known event types:
    text          streamed model text:        data={"content": str}
    tool_start    about to execute a tool:    data={"name": str, "arguments": dict}
    tool_result   tool succeeded:             data={"name": str, "result": Any, "duration_ms": int}
    tool_error    tool failed or was vetoed:  data={"name": str, "error": str, "duration_ms": int}
    replan        stall detected:             data={"reason": str}
    agent_start   specialized agent started:  data={"agent": str, "mode": str | None}
    handoff       router delegated:           data={"from": str, "to": str, "reason": str}
    error         terminal failure:           data={"message": str}
    done          terminal success:           data={"output": str, "tools_used": list, ...}

A stream ends in exactly one ``done`` or ``error``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

TERMINAL_EVENT_TYPES = frozenset({"done", "error"})


@dataclass
class AgentEvent:
    type: str
    data: dict = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES


def error_event(message: str) -> AgentEvent:
    return AgentEvent(type="error", data={"message": message})


class EventChannel:
    """Bounded single-producer/single-consumer channel of AgentEvents.

    Either side may call close(). After that the producer's send() returns
    False, and the consumer's receive() drains whatever is buffered and then
    returns None.
    """

    def __init__(self, maxsize: int = 64) -> None:
        self._queue: asyncio.Queue[AgentEvent] = asyncio.Queue(maxsize=maxsize)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    async def send(self, event: AgentEvent) -> bool:
        if self.closed:
            return False
        if not self._queue.full():
            self._queue.put_nowait(event)
            return True

        # Full: wait for room, or give up if the consumer closes first
        putter = asyncio.ensure_future(self._queue.put(event))
        closer = asyncio.ensure_future(self._closed.wait())
        await asyncio.wait({putter, closer}, return_when=asyncio.FIRST_COMPLETED)
        closer.cancel()
        if putter.done():
            return not self.closed
        putter.cancel()
        return False

    async def receive(self) -> AgentEvent | None:
        if not self._queue.empty():
            return self._queue.get_nowait()
        if self.closed:
            return None

        getter = asyncio.ensure_future(self._queue.get())
        closer = asyncio.ensure_future(self._closed.wait())
        await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
        closer.cancel()
        if getter.done():
            return getter.result()
        getter.cancel()
        # Closed while waiting; anything sent just before close is still buffered
        if not self._queue.empty():
            return self._queue.get_nowait()
        return None
