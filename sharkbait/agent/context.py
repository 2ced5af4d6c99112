"""Context window management.

The conversation is split into a preserved bundle that is always sent as-is
(system prompt, task ledger, recent messages, active files, error context)
and a compactable bundle (older messages, tool results, exploration notes)
that is summarized when the estimated token count crosses the compaction
threshold.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable

from sharkbait.agent.constants import (
    COMPACTION_THRESHOLD,
    ESTIMATED_CHARS_PER_TOKEN,
    EXPLORATION_SAVINGS,
    KEY_FACT_MARKERS,
    KEY_FACTS_KEPT,
    MAX_CONTEXT_TOKENS,
    MESSAGE_SUMMARY_MAX_CHARS,
    MESSAGE_SUMMARY_PREVIEW_CHARS,
    MESSAGE_SUMMARY_SAVINGS,
    RESERVED_FOR_RESPONSE,
    TOOL_RESULTS_KEPT,
    TOOL_SUMMARY_PREVIEW_CHARS,
    TOOL_SUMMARY_SAVINGS,
)
from sharkbait.agent.progress import ProgressTracker
from sharkbait.agent.state import TaskLedger, utcnow

logger = logging.getLogger(__name__)


@dataclass
class FileContext:
    path: str
    content: str
    last_modified: datetime = field(default_factory=utcnow)


@dataclass
class ErrorContext:
    error: str
    timestamp: datetime = field(default_factory=utcnow)
    tool_name: str | None = None


@dataclass
class ToolResult:
    name: str
    content: str
    timestamp: datetime | None = None


@dataclass
class PreservedContext:
    """Never compacted."""

    system_prompt: str
    task_ledger: TaskLedger
    recent_messages: list[dict] = field(default_factory=list)
    active_files: list[FileContext] = field(default_factory=list)
    error_context: list[ErrorContext] = field(default_factory=list)


@dataclass
class CompactableContext:
    """May be summarized or dropped under token pressure."""

    older_messages: list[dict] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    exploration_findings: list[str] = field(default_factory=list)


@dataclass
class CompactionStrategy:
    name: str
    apply: Callable[[CompactableContext], CompactableContext]
    tokens_saved: Callable[[CompactableContext], float]


def _chars_to_tokens(chars: int) -> int:
    return math.ceil(chars / ESTIMATED_CHARS_PER_TOKEN)


def _content_chars(message: dict) -> int:
    content = message.get("content")
    return len(content) if isinstance(content, str) else 0


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def split_history(messages: list[dict], keep_last: int) -> tuple[list[dict], list[dict]]:
    """Split history into (older, recent) with at most ``keep_last`` recent.

    The boundary moves back past leading tool messages so a tool result is
    never separated from the assistant message that requested it.
    """
    if keep_last <= 0:
        return list(messages), []
    boundary = max(len(messages) - keep_last, 0)
    while boundary > 0 and messages[boundary].get("role") == "tool":
        boundary -= 1
    return messages[:boundary], messages[boundary:]


class ContextManager:
    def __init__(
        self,
        max_tokens: int = MAX_CONTEXT_TOKENS,
        reserved_for_response: int = RESERVED_FOR_RESPONSE,
        compaction_threshold: float = COMPACTION_THRESHOLD,
    ) -> None:
        self.max_tokens = max_tokens
        self.reserved_for_response = reserved_for_response
        self.compaction_threshold = compaction_threshold
        self.last_compaction: CompactableContext | None = None
        self.last_strategies: list[str] = []

    @property
    def threshold(self) -> float:
        return self.max_tokens * self.compaction_threshold

    def check_and_compact(
        self,
        preserved: PreservedContext,
        compactable: CompactableContext,
    ) -> list[dict]:
        """Return the messages to send, compacting older context if needed."""
        current_tokens = self.count_total_tokens(preserved, compactable)
        self.last_strategies = []

        if current_tokens < self.threshold:
            self.last_compaction = None
            return self.build_message_array(preserved, compactable)

        logger.info(
            "Context compaction triggered: %d/%d tokens",
            current_tokens,
            self.max_tokens,
        )
        return self._compact(preserved, compactable, current_tokens - self.threshold)

    def _compact(
        self,
        preserved: PreservedContext,
        compactable: CompactableContext,
        tokens_to_free: float,
    ) -> list[dict]:
        strategies = [
            CompactionStrategy(
                name="summarize-tool-results",
                apply=self._summarize_tool_results,
                tokens_saved=lambda c: self.estimate_tool_result_tokens(c.tool_results)
                * TOOL_SUMMARY_SAVINGS,
            ),
            CompactionStrategy(
                name="summarize-old-messages",
                apply=self._summarize_old_messages,
                tokens_saved=lambda c: self.estimate_message_tokens(c.older_messages)
                * MESSAGE_SUMMARY_SAVINGS,
            ),
            CompactionStrategy(
                name="compact-exploration",
                apply=lambda c: self._compact_exploration(c, preserved.task_ledger),
                tokens_saved=lambda c: self.estimate_exploration_tokens(
                    c.exploration_findings
                )
                * EXPLORATION_SAVINGS,
            ),
        ]

        freed = 0.0
        compacted = compactable
        for strategy in strategies:
            if freed >= tokens_to_free:
                break
            logger.debug("Applying compaction strategy: %s", strategy.name)
            freed += strategy.tokens_saved(compacted)
            compacted = strategy.apply(compacted)
            self.last_strategies.append(strategy.name)

        self.last_compaction = compacted
        return self.build_message_array(preserved, compacted)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    @staticmethod
    def _summarize_tool_results(context: CompactableContext) -> CompactableContext:
        results = context.tool_results
        if len(results) <= TOOL_RESULTS_KEPT:
            return context

        keep_full = results[-TOOL_RESULTS_KEPT:]
        to_summarize = results[:-TOOL_RESULTS_KEPT]
        lines = [f"Summary of {len(to_summarize)} previous tool calls:"]
        lines.extend(
            f"- {r.name}: {_truncate(r.content, TOOL_SUMMARY_PREVIEW_CHARS)}"
            for r in to_summarize
        )
        summary = ToolResult(name="previous_tool_summary", content="\n".join(lines))
        return replace(context, tool_results=[summary, *keep_full])

    @staticmethod
    def _summarize_old_messages(context: CompactableContext) -> CompactableContext:
        if not context.older_messages:
            return context

        digest = "\n".join(
            f"{m.get('role', '')}: "
            f"{_truncate(m['content'] if isinstance(m.get('content'), str) else '', MESSAGE_SUMMARY_PREVIEW_CHARS)}"
            for m in context.older_messages
        )
        summary = {
            "role": "system",
            "content": "[Conversation Summary]\n"
            + _truncate(digest, MESSAGE_SUMMARY_MAX_CHARS),
        }
        return replace(context, older_messages=[summary])

    @staticmethod
    def _compact_exploration(
        context: CompactableContext, task_ledger: TaskLedger
    ) -> CompactableContext:
        key_facts = [
            finding
            for finding in context.exploration_findings
            if any(marker in finding for marker in KEY_FACT_MARKERS)
        ][:KEY_FACTS_KEPT]
        for fact in key_facts:
            ProgressTracker.add_fact(task_ledger, fact)
        return replace(context, exploration_findings=[])

    # ------------------------------------------------------------------
    # Assembly and estimation
    # ------------------------------------------------------------------

    @staticmethod
    def build_message_array(
        preserved: PreservedContext, compactable: CompactableContext
    ) -> list[dict]:
        return [*compactable.older_messages, *preserved.recent_messages]

    def count_total_tokens(
        self, preserved: PreservedContext, compactable: CompactableContext
    ) -> int:
        chars = len(preserved.system_prompt)
        chars += len(preserved.task_ledger.to_json())
        chars += sum(_content_chars(m) for m in preserved.recent_messages)
        chars += sum(len(f.content) for f in preserved.active_files)
        chars += sum(len(e.error) for e in preserved.error_context)

        chars += sum(_content_chars(m) for m in compactable.older_messages)
        chars += sum(len(r.content) for r in compactable.tool_results)
        chars += sum(len(f) for f in compactable.exploration_findings)
        return _chars_to_tokens(chars)

    @staticmethod
    def estimate_tool_result_tokens(results: list[ToolResult]) -> int:
        return _chars_to_tokens(sum(len(r.content) for r in results))

    @staticmethod
    def estimate_message_tokens(messages: list[dict]) -> int:
        return _chars_to_tokens(sum(_content_chars(m) for m in messages))

    @staticmethod
    def estimate_exploration_tokens(findings: list[str]) -> int:
        return _chars_to_tokens(sum(len(f) for f in findings))
