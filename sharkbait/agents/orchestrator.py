from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator

from sharkbait.agent.constants import (
    BASE_CONFIDENCE,
    EARLY_MATCH_BONUS,
    EARLY_MATCH_CHARS,
    FALLBACK_CONFIDENCE,
    HANDOFF_CONFIDENCE,
    LEADING_MATCH_BONUS,
    MAX_CONFIDENCE,
    SHORT_INPUT_BONUS,
    SHORT_INPUT_CHARS,
)
from sharkbait.agent.events import AgentEvent, error_event
from sharkbait.agents.base import BaseAgent

logger = logging.getLogger(__name__)


def _words(*words: str) -> list[re.Pattern]:
    return [re.compile(rf"\b{w}\b", re.IGNORECASE) for w in words]


# ── Routing tables (checked in order) ───────────────────────────

INTENT_PATTERNS: list[tuple[str, list[re.Pattern]]] = [
    ("debugger", _words("fix", "debug", "error", "broken", "failing", "not working", "crash", "bug")),
    ("coder", _words("add", "implement", "create", "build", "write", "generate", "make")),
    ("reviewer", _words("review", "check", "audit", "look for bugs", "security", "code review")),
    ("planner", _words("plan", "design", "architect", "break down", "how should", "strategy")),
    ("explorer", _words("explain", "how does", "understand", "trace", "find", "what is", "show me")),
]

MODE_PATTERNS: list[tuple[str, list[re.Pattern]]] = [
    ("refactor", _words("refactor", "clean up", "improve")),
    ("test", _words("test", "unit test", "write tests")),
    ("docs", _words("document", "docs", "comments")),
    ("security", _words("security", r"vulnerab\w*")),
    ("performance", _words("performance", "slow", "optimize")),
    ("style", _words("style", "lint", "format")),
    ("architecture", _words("architect", "system design")),
    ("estimate", _words("estimate", "how long", "time")),
    ("trace", _words("trace", "stack")),
    ("dependencies", _words(r"dependenc\w*", "imports")),
    ("patterns", _words("pattern")),
]


@dataclass
class IntentClassification:
    primary_intent: str
    suggested_agent: str
    confidence: int
    reasoning: str
    suggested_mode: str | None = None


def _confidence(input: str, match: re.Match) -> int:
    confidence = BASE_CONFIDENCE
    if match.start() < EARLY_MATCH_CHARS:
        confidence += EARLY_MATCH_BONUS
    if len(input) < SHORT_INPUT_CHARS:
        confidence += SHORT_INPUT_BONUS
    if match.start() == 0:
        confidence += LEADING_MATCH_BONUS
    return min(confidence, MAX_CONFIDENCE)


def detect_mode(input: str) -> str | None:
    for mode, patterns in MODE_PATTERNS:
        if any(p.search(input) for p in patterns):
            return mode
    return None


def classify_intent(input: str) -> IntentClassification:
    """Pick the role whose keyword matches best. Ties keep the earlier match."""
    best = IntentClassification(
        primary_intent="general",
        suggested_agent="orchestrator",
        confidence=FALLBACK_CONFIDENCE,
        reasoning="No specific intent detected, handling directly",
    )
    for role, patterns in INTENT_PATTERNS:
        for pattern in patterns:
            match = pattern.search(input)
            if not match:
                continue
            confidence = _confidence(input, match)
            if confidence > best.confidence:
                best = IntentClassification(
                    primary_intent=match.group(0).lower(),
                    suggested_agent=role,
                    confidence=confidence,
                    reasoning=f"Matched pattern: {pattern.pattern}",
                    suggested_mode=detect_mode(input),
                )

    logger.debug("Intent classified: %s (%d%%)", best.suggested_agent, best.confidence)
    return best


class OrchestratorAgent(BaseAgent):
    """Routes requests to registered specialists, or handles them itself.

    Holds non-owning references to the specialists; they never refer back.
    """

    role = "orchestrator"
    description = "Central coordinator that routes requests to specialized agents"
    color = "blue"
    tool_names = ["*"]
    modes = []

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.agents: dict[str, BaseAgent] = {}

    def register_agent(self, agent: BaseAgent) -> None:
        self.agents[agent.role] = agent
        logger.debug("Registered agent: %s", agent.role)

    def get_agent(self, role: str) -> BaseAgent | None:
        return self.agents.get(role)

    def classify_intent(self, input: str) -> IntentClassification:
        return classify_intent(input)

    async def run(self, input: str, mode: str | None = None) -> AsyncIterator[AgentEvent]:
        intent = classify_intent(input)
        target = self.agents.get(intent.suggested_agent)

        if (
            intent.confidence >= HANDOFF_CONFIDENCE
            and intent.suggested_agent != self.role
            and target is not None
        ):
            logger.info("Delegating to %s agent", target.role)
            target_mode = mode or intent.suggested_mode
            if target_mode is not None and not target.supports_mode(target_mode):
                target_mode = None
            yield AgentEvent(
                type="handoff",
                data={"from": self.role, "to": target.role, "reason": intent.reasoning},
            )
            async for event in target.run(input, target_mode):
                yield event
            return

        async for event in super().run(input):
            yield event

    async def dispatch(
        self, role: str, input: str, mode: str | None = None
    ) -> AsyncIterator[AgentEvent]:
        """Route explicitly to ``role``, skipping classification."""
        agent = self.agents.get(role)
        if agent is None:
            yield error_event(f"Agent not found: {role}")
            return

        if mode is not None and not agent.supports_mode(mode):
            logger.warning("Agent %s does not support mode %s, ignoring it", role, mode)
            mode = None
        yield AgentEvent(
            type="handoff",
            data={"from": self.role, "to": role, "reason": "explicit dispatch"},
        )
        async for event in agent.run(input, mode):
            yield event
