"""AgentLoop: the single-agent turn loop.

One run drives request -> model -> tools -> model until the model answers
without tool calls, the progress tracker stops the run, or the iteration
bound is hit. Events flow through an EventChannel: the loop body runs in a
producer task and run() drains the channel for the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import AsyncGenerator, AsyncIterator

from sharkbait.agent.constants import (
    DEFAULT_MAX_ITERATIONS,
    ERROR_CONTEXT_KEPT,
    EVENT_CHANNEL_SIZE,
    RECENT_MESSAGES_KEPT,
    TOOL_RESULT_EVENT_MAX_CHARS,
    TOOL_SUMMARY_PREVIEW_CHARS,
)
from sharkbait.agent.context import (
    CompactableContext,
    ContextManager,
    ErrorContext,
    PreservedContext,
    split_history,
)
from sharkbait.agent.events import AgentEvent, EventChannel, error_event
from sharkbait.agent.hooks import HookChain, PostToolUseContext, PreToolUseContext
from sharkbait.agent.llm import ChatModel, ToolCallDelta
from sharkbait.agent.progress import ProgressTracker
from sharkbait.agent.state import ProgressLedger, TaskLedger, ToolCall, utcnow
from sharkbait.agent.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

# Successful results from these tools are kept as exploration findings
EXPLORATION_TOOLS = frozenset(
    {"read_file", "list_directory", "search_files", "grep_search", "git_log", "git_status"}
)

REPLAN_NOTE = (
    "[Re-planning triggered: {reason}]\n"
    "Revise your approach based on what we've learned."
)


def accumulate_tool_call(acc: dict[int, ToolCall], delta: ToolCallDelta) -> ToolCall:
    """Fold one streamed fragment into the call at its stream index.

    ``id`` and ``name`` are taken when present; ``arguments`` fragments are
    always appended, since the model may split them anywhere.
    """
    call = acc.get(delta.index)
    if call is None:
        call = acc[delta.index] = ToolCall(stream_index=delta.index)
    if delta.id:
        call.id = delta.id
    if delta.name:
        call.name = delta.name
    if delta.arguments:
        call.arguments += delta.arguments
    return call


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _tool_message_content(result) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


def _system_message(system_prompt: str, facts: list[str], findings: list[str]) -> dict:
    """The system prompt plus the run's working memory."""
    sections = [system_prompt]
    if facts:
        sections.append("## Known Facts\n" + "\n".join(f"- {f}" for f in facts))
    if findings:
        sections.append("## Exploration Notes\n" + "\n".join(f"- {f}" for f in findings))
    return {"role": "system", "content": "\n\n".join(sections)}


def _event_result(result):
    if isinstance(result, str) and len(result) > TOOL_RESULT_EVENT_MAX_CHARS:
        return result[:TOOL_RESULT_EVENT_MAX_CHARS] + "..."
    return result


class AgentLoop:
    """Turn loop for one agent. Keeps its conversation across runs.

    The task and progress ledgers are created fresh for every run and are
    exposed as ``task_ledger`` / ``progress_ledger`` once a run starts.
    """

    def __init__(
        self,
        llm: ChatModel,
        tools: ToolRegistry,
        system_prompt: str = "",
        hooks: HookChain | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        context_manager: ContextManager | None = None,
        progress_tracker: ProgressTracker | None = None,
        name: str = "agent",
    ) -> None:
        self.llm = llm
        self.tools = tools
        self.system_prompt = system_prompt
        self.hooks = hooks or HookChain()
        self.max_iterations = max_iterations
        self.context_manager = context_manager or ContextManager()
        self.progress_tracker = progress_tracker or ProgressTracker()
        self.name = name

        self.messages: list[dict] = []
        self.task_ledger: TaskLedger | None = None
        self.progress_ledger: ProgressLedger | None = None
        self._producers: set[asyncio.Task] = set()

    def reset(self) -> None:
        self.messages = []
        self.task_ledger = None
        self.progress_ledger = None

    # ------------------------------------------------------------------
    # Channel plumbing
    # ------------------------------------------------------------------

    async def run(
        self, message: str, system_prompt: str | None = None
    ) -> AsyncIterator[AgentEvent]:
        """Run one request. Yields events ending in exactly one done or error.

        Leaving the iteration early closes the channel, and the producer
        stops at its next send.
        """
        channel = EventChannel(EVENT_CHANNEL_SIZE)
        producer = asyncio.create_task(self._produce(channel, message, system_prompt))
        self._producers.add(producer)
        producer.add_done_callback(self._producers.discard)
        try:
            while True:
                event = await channel.receive()
                if event is None:
                    break
                yield event
        finally:
            channel.close()

    async def _produce(
        self, channel: EventChannel, message: str, system_prompt: str | None
    ) -> None:
        terminal_sent = False
        turns = self._turns(message, system_prompt or self.system_prompt)
        try:
            async for event in turns:
                if not await channel.send(event):
                    logger.debug("%s: event channel closed, stopping run", self.name)
                    break
                if event.is_terminal:
                    terminal_sent = True
                    break
        except Exception as e:
            logger.exception("%s: turn loop failed", self.name)
            terminal_sent = await channel.send(error_event(f"{type(e).__name__}: {e}"))
        finally:
            await turns.aclose()
            if not terminal_sent and not channel.closed:
                await channel.send(error_event("Agent loop ended without a result"))
            channel.close()

    # ------------------------------------------------------------------
    # Turn loop
    # ------------------------------------------------------------------

    async def _turns(
        self, message: str, system_prompt: str
    ) -> AsyncGenerator[AgentEvent, None]:
        started = time.monotonic()
        self.messages.append({"role": "user", "content": message})

        task = TaskLedger(objective=message)
        progress = ProgressLedger()
        self.task_ledger, self.progress_ledger = task, progress

        errors: list[ErrorContext] = []
        findings: list[str] = []
        tools_used: list[str] = []
        output = ""
        model_calls = 0

        for iteration in range(1, self.max_iterations + 1):
            logger.debug("%s: iteration %d", self.name, iteration)

            # ── Progress check ──
            check = self.progress_tracker.check_progress(progress, task)
            if check.type == "complete":
                yield self._done(output, tools_used, model_calls, started)
                return
            if check.type == "escalate":
                yield error_event(check.reason or "Task escalated")
                return
            if check.type == "replan":
                logger.info("%s: re-planning (%s)", self.name, check.reason)
                yield AgentEvent(type="replan", data={"reason": check.reason})
                task.replan_count += 1
                task.last_replan_at = utcnow()
                self.messages.append(
                    {"role": "system", "content": REPLAN_NOTE.format(reason=check.reason)}
                )

            # ── Context ──
            older, recent = split_history(self.messages, RECENT_MESSAGES_KEPT)
            # Tool output lives in the message history, so active_files and
            # tool_results stay empty here
            preserved = PreservedContext(
                system_prompt=system_prompt,
                task_ledger=task,
                recent_messages=recent,
                error_context=errors,
            )
            compactable = CompactableContext(
                older_messages=older,
                exploration_findings=findings,
            )
            context_messages = self.context_manager.check_and_compact(preserved, compactable)
            if self.context_manager.last_compaction is not None:
                findings = list(self.context_manager.last_compaction.exploration_findings)

            # ── Model call ──
            content_parts: list[str] = []
            calls: dict[int, ToolCall] = {}
            definitions = self.tools.get_definitions() or None
            model_calls += 1
            try:
                async for chunk in self.llm.chat(
                    [_system_message(system_prompt, task.facts, findings), *context_messages],
                    definitions,
                ):
                    if chunk.content:
                        content_parts.append(chunk.content)
                        yield AgentEvent(type="text", data={"content": chunk.content})
                    for delta in chunk.tool_call_deltas or ():
                        accumulate_tool_call(calls, delta)
            except Exception as e:
                logger.warning("%s: LLM call failed: %s", self.name, e)
                yield error_event(str(e) or type(e).__name__)
                return

            full_content = "".join(content_parts)
            if full_content:
                output = full_content

            if not calls:
                self.messages.append({"role": "assistant", "content": full_content})
                yield self._done(output, tools_used, model_calls, started)
                return

            # ── Tools, sequentially in stream order ──
            tool_calls = [calls[i] for i in sorted(calls)]
            self.messages.append(
                {
                    "role": "assistant",
                    "content": full_content or None,
                    "tool_calls": [tc.to_openai() for tc in tool_calls],
                }
            )
            for call in tool_calls:
                tools_used.append(call.name)
                async for event in self._execute_tool(call, progress, errors, findings):
                    yield event
            del errors[:-ERROR_CONTEXT_KEPT]

        yield error_event(f"Maximum iterations ({self.max_iterations}) reached")

    async def _execute_tool(
        self,
        call: ToolCall,
        progress: ProgressLedger,
        errors: list[ErrorContext],
        findings: list[str],
    ) -> AsyncGenerator[AgentEvent, None]:
        started = time.monotonic()
        try:
            args = json.loads(call.arguments) if call.arguments else {}
        except json.JSONDecodeError as e:
            args, error = {}, f"Invalid JSON in tool arguments: {e}"
        else:
            error = None if isinstance(args, dict) else "Tool arguments must be a JSON object"

        yield AgentEvent(type="tool_start", data={"name": call.name, "arguments": args})

        if error is None and not self.hooks.empty:
            verdict = await self.hooks.run_pre_tool_use(
                PreToolUseContext(call.name, args, self.name)
            )
            if not verdict.proceed:
                error = f"Blocked by hook: {verdict.reason}"
            elif verdict.args is not None:
                args = verdict.args

        result = None
        if error is None:
            outcome = await self.tools.execute(call.name, args)
            if outcome.ok:
                result = outcome.result
            else:
                error = outcome.error or outcome.kind
            if not self.hooks.empty:
                rewritten = await self.hooks.run_post_tool_use(
                    PostToolUseContext(
                        call.name, args, result, _elapsed_ms(started), error is None, error
                    )
                )
                if error is None:
                    result = rewritten

        duration_ms = _elapsed_ms(started)
        if error is None:
            yield AgentEvent(
                type="tool_result",
                data={"name": call.name, "result": _event_result(result), "duration_ms": duration_ms},
            )
            content = _tool_message_content(result)
            self.messages.append({"role": "tool", "tool_call_id": call.id, "content": content})
            self.progress_tracker.record_step(progress, call.name, success=True)
            if call.name in EXPLORATION_TOOLS:
                findings.append(f"{call.name}: {content[:TOOL_SUMMARY_PREVIEW_CHARS]}")
        else:
            yield AgentEvent(
                type="tool_error",
                data={"name": call.name, "error": error, "duration_ms": duration_ms},
            )
            self.messages.append(
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps({"error": error}),
                }
            )
            self.progress_tracker.record_step(progress, call.name, success=False, error=error)
            errors.append(ErrorContext(error=error, tool_name=call.name))

    def _done(
        self, output: str, tools_used: list[str], iterations: int, started: float
    ) -> AgentEvent:
        return AgentEvent(
            type="done",
            data={
                "output": output,
                "tools_used": list(tools_used),
                "iterations": iterations,
                "duration_ms": _elapsed_ms(started),
            },
        )
