"""Fan-out/fan-in execution of several agent invocations.

Every invocation gets a fresh agent from the factory, so no conversation,
mode or ledger is shared between them. Invocations that are still running
when a strategy resolves (timeouts, race losers, stragglers after a quorum)
are not cancelled: they finish in the background and their results are
discarded. The executor keeps references to them and logs late failures.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from collections import defaultdict
from dataclasses import dataclass

from sharkbait.agent.constants import (
    DEFAULT_PARALLEL_TIMEOUT_SECONDS,
    DEFAULT_QUORUM_THRESHOLD,
    REVIEW_TIMEOUT_SECONDS,
)
from sharkbait.agent.state import AgentInvocation, AgentResult
from sharkbait.agents.factory import AgentFactory

logger = logging.getLogger(__name__)

STRATEGIES = ("all", "race", "quorum")
CONSOLIDATIONS = ("merge", "vote", "best")

TIMEOUT_ERROR = "Timeout"
NO_SUCCESS_MESSAGE = "No successful results from parallel execution."
SECTION_SEPARATOR = "\n\n---\n\n"


@dataclass
class ParallelExecutionResult:
    results: list[AgentResult]
    consolidated: str
    strategy: str
    timed_out: bool = False
    duration_ms: int = 0
    quorum_reached: bool | None = None  # set by the quorum strategy only


# ── Consolidation ───────────────────────────────────────────────


def _normalize(output: str) -> str:
    return re.sub(r"\s+", " ", output.strip()).lower()


def _select_best(
    successful: list[tuple[int, AgentResult]], invocations: list[AgentInvocation]
) -> str:
    """Score is output length times the invocation's weight; first top score wins."""
    best: AgentResult | None = None
    best_score = -1.0
    for index, result in successful:
        score = len(result.output) * invocations[index].weight
        if score > best_score:
            best, best_score = result, score
    return best.output if best else ""


def _vote(
    successful: list[tuple[int, AgentResult]], invocations: list[AgentInvocation]
) -> str:
    """Weighted vote over normalized outputs.

    Falls back to best when no two outputs agree or the top totals tie.
    """
    totals: dict[str, float] = defaultdict(float)
    members: dict[str, list[AgentResult]] = defaultdict(list)
    for index, result in successful:
        key = _normalize(result.output)
        totals[key] += invocations[index].weight
        members[key].append(result)

    if all(len(group) == 1 for group in members.values()):
        return _select_best(successful, invocations)

    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
        return _select_best(successful, invocations)
    return members[ranked[0][0]][0].output


def _merge(successful: list[tuple[int, AgentResult]]) -> str:
    sections = []
    for _, result in successful:
        header = f"## {result.role} ({result.mode})" if result.mode else f"## {result.role}"
        sections.append(f"{header}\n\n{result.output}")
    return SECTION_SEPARATOR.join(sections)


def consolidate(
    results: list[tuple[int, AgentResult]],
    method: str,
    invocations: list[AgentInvocation],
) -> str:
    """Reduce the successful results to one answer.

    ``results`` pairs each result with its invocation index so merge can keep
    invocation order whatever order the results arrived in.
    """
    successful = sorted(
        ((i, r) for i, r in results if r.success), key=lambda pair: pair[0]
    )
    if not successful:
        return NO_SUCCESS_MESSAGE
    if method == "merge":
        return _merge(successful)
    if method == "best":
        return _select_best(successful, invocations)
    if method == "vote":
        return _vote(successful, invocations)
    raise ValueError(f"Unknown consolidation: {method}")


# ── Executor ────────────────────────────────────────────────────


class ParallelExecutor:
    def __init__(self, factory: AgentFactory) -> None:
        self.factory = factory
        self._background: set[asyncio.Task] = set()

    @property
    def background_tasks(self) -> int:
        return len(self._background)

    def _track(self, task: asyncio.Task) -> None:
        self._background.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background agent invocation failed: %s", exc)

    async def execute(
        self,
        agents: list[AgentInvocation],
        strategy: str = "all",
        consolidation: str = "merge",
        timeout: float = DEFAULT_PARALLEL_TIMEOUT_SECONDS,
        quorum_threshold: float = DEFAULT_QUORUM_THRESHOLD,
    ) -> ParallelExecutionResult:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown parallel strategy: {strategy}")
        if consolidation not in CONSOLIDATIONS:
            raise ValueError(f"Unknown consolidation: {consolidation}")

        started = time.monotonic()
        logger.info(
            "Starting parallel execution: %d agents, strategy=%s",
            len(agents),
            strategy,
        )

        tasks = [asyncio.create_task(self._execute_one(inv, timeout)) for inv in agents]
        for task in tasks:
            self._track(task)

        quorum_reached = None
        if strategy == "all":
            collected = list(enumerate(await asyncio.gather(*tasks)))
            timed_out = any(r.error == TIMEOUT_ERROR for _, r in collected)
        elif strategy == "race":
            winner, timed_out = await self._race(tasks, timeout)
            collected = [winner] if winner else []
        else:
            collected, timed_out, quorum_reached = await self._quorum(
                tasks, quorum_threshold, timeout
            )

        return ParallelExecutionResult(
            results=[r for _, r in collected],
            consolidated=consolidate(collected, consolidation, agents),
            strategy=strategy,
            timed_out=timed_out,
            duration_ms=int((time.monotonic() - started) * 1000),
            quorum_reached=quorum_reached,
        )

    async def _execute_one(self, invocation: AgentInvocation, timeout: float) -> AgentResult:
        """Run one invocation; never raises. Timeouts leave the agent running."""
        started = time.monotonic()
        try:
            agent = self.factory.create(invocation.role)
        except ValueError:
            return AgentResult(
                role=invocation.role,
                mode=invocation.mode,
                success=False,
                error=f"Agent not found: {invocation.role}",
            )

        mode = invocation.mode
        if mode is not None and not agent.supports_mode(mode):
            logger.warning("Agent %s does not support mode %s, ignoring it", invocation.role, mode)
            mode = None

        inner = asyncio.create_task(agent.execute(invocation.input, mode))
        self._track(inner)
        done, _ = await asyncio.wait({inner}, timeout=timeout)
        if not done:
            logger.warning(
                "%s (%s) timed out after %.1fs and keeps running in the background",
                invocation.role,
                invocation.mode,
                timeout,
            )
            return AgentResult(
                role=invocation.role,
                mode=invocation.mode,
                success=False,
                duration_ms=int(timeout * 1000),
                error=TIMEOUT_ERROR,
            )

        try:
            result = inner.result()
        except Exception as e:
            logger.warning("%s invocation failed: %s", invocation.role, e)
            return AgentResult(
                role=invocation.role,
                mode=invocation.mode,
                success=False,
                duration_ms=int((time.monotonic() - started) * 1000),
                error=str(e) or type(e).__name__,
            )
        result.mode = invocation.mode
        return result

    @staticmethod
    async def _race(
        tasks: list[asyncio.Task], timeout: float
    ) -> tuple[tuple[int, AgentResult] | None, bool]:
        """First success wins. Resolves empty when all fail or time runs out."""
        index_of = {task: i for i, task in enumerate(tasks)}
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        pending = set(tasks)
        saw_timeout = False

        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None, True
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            if not done:
                return None, True
            for task in sorted(done, key=index_of.get):
                result = task.result()
                if result.success:
                    return (index_of[task], result), False
                saw_timeout = saw_timeout or result.error == TIMEOUT_ERROR

        return None, saw_timeout

    @staticmethod
    async def _quorum(
        tasks: list[asyncio.Task], threshold: float, timeout: float
    ) -> tuple[list[tuple[int, AgentResult]], bool, bool]:
        """Collect successes until ceil(n * threshold) arrive, time runs out,
        or nothing is left to wait for."""
        index_of = {task: i for i, task in enumerate(tasks)}
        required = math.ceil(len(tasks) * threshold)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        pending = set(tasks)
        successes: list[tuple[int, AgentResult]] = []
        timed_out = False

        while pending and len(successes) < required:
            remaining = deadline - loop.time()
            if remaining <= 0:
                timed_out = True
                break
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            if not done:
                timed_out = True
                break
            for task in sorted(done, key=index_of.get):
                result = task.result()
                if result.success:
                    successes.append((index_of[task], result))
                elif result.error == TIMEOUT_ERROR:
                    timed_out = True

        quorum_reached = len(successes) >= required
        if not quorum_reached:
            logger.warning(
                "Quorum not reached: %d/%d successful invocations",
                len(successes),
                required,
            )
        return successes, timed_out, quorum_reached


async def parallel_review(executor: ParallelExecutor, input: str) -> ParallelExecutionResult:
    """Review from four angles at once and merge the reports."""
    return await executor.execute(
        agents=[
            AgentInvocation(role="reviewer", mode="bugs", input=input, weight=1.0),
            AgentInvocation(role="reviewer", mode="security", input=input, weight=1.5),
            AgentInvocation(role="reviewer", mode="style", input=input, weight=0.5),
            AgentInvocation(role="reviewer", mode="performance", input=input, weight=0.8),
        ],
        strategy="all",
        consolidation="merge",
        timeout=REVIEW_TIMEOUT_SECONDS,
    )
