"""Tests for ParallelExecutor strategies and consolidation."""

import asyncio

import pytest

from sharkbait.agent.llm import LLMError
from sharkbait.agent.state import AgentInvocation, AgentResult
from sharkbait.agents.factory import AgentFactory
from sharkbait.agents.parallel import (
    NO_SUCCESS_MESSAGE,
    ParallelExecutor,
    consolidate,
    parallel_review,
)
from tests.helpers import ModeLLM


def _executor(behaviours, registry) -> ParallelExecutor:
    return ParallelExecutor(AgentFactory(ModeLLM(behaviours), registry))


def _review(*modes, weights=None):
    weights = weights or [1.0] * len(modes)
    return [
        AgentInvocation(role="reviewer", mode=m, input="review auth.py", weight=w)
        for m, w in zip(modes, weights)
    ]


# ── 1. all ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_all_returns_one_result_per_invocation(registry):
    executor = _executor(
        {
            "bugs": (0.05, "bug report"),
            "security": (0.0, LLMError("boom")),
            "style": (0.0, "style report"),
        },
        registry,
    )
    result = await executor.execute(_review("bugs", "security", "style"), strategy="all")

    assert len(result.results) == 3
    assert [r.success for r in result.results] == [True, False, True]
    assert result.results[1].error == "boom"
    assert result.timed_out is False
    # merge keeps invocation order even though style finished first
    assert result.consolidated == (
        "## reviewer (bugs)\n\nbug report\n\n---\n\n## reviewer (style)\n\nstyle report"
    )


@pytest.mark.asyncio
async def test_unknown_role_becomes_failed_result(registry):
    executor = _executor({}, registry)
    result = await executor.execute(
        [AgentInvocation(role="poet", input="x"), AgentInvocation(role="explorer", input="x")]
    )
    assert len(result.results) == 2
    assert result.results[0].error == "Agent not found: poet"
    assert result.results[1].success


@pytest.mark.asyncio
async def test_invocation_timeout_is_failed_result_and_keeps_running(registry):
    executor = _executor({"bugs": (0.3, "late"), "style": (0.0, "fast")}, registry)
    result = await executor.execute(_review("bugs", "style"), strategy="all", timeout=0.05)

    assert len(result.results) == 2
    assert result.results[0].error == "Timeout"
    assert result.results[1].success
    assert result.timed_out is True
    assert executor.background_tasks > 0

    await asyncio.sleep(0.4)
    assert executor.background_tasks == 0


# ── 2. race ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_race_returns_first_success_only(registry):
    executor = _executor(
        {
            "bugs": (0.0, LLMError("fast failure")),
            "security": (0.02, "security wins"),
            "style": (0.2, "too slow"),
        },
        registry,
    )
    result = await executor.execute(_review("bugs", "security", "style"), strategy="race")

    assert len(result.results) == 1
    assert result.results[0].success
    assert result.results[0].mode == "security"
    assert result.consolidated == "## reviewer (security)\n\nsecurity wins"
    assert result.timed_out is False
    await asyncio.sleep(0.25)


@pytest.mark.asyncio
async def test_race_all_failed_resolves_empty(registry):
    executor = _executor(
        {"bugs": (0.0, LLMError("a")), "style": (0.0, LLMError("b"))}, registry
    )
    result = await executor.execute(_review("bugs", "style"), strategy="race", timeout=5)

    assert result.results == []
    assert result.timed_out is False
    assert result.consolidated == NO_SUCCESS_MESSAGE
    assert result.duration_ms < 5000


@pytest.mark.asyncio
async def test_race_timeout_resolves_empty(registry):
    executor = _executor({"bugs": (0.3, "late")}, registry)
    result = await executor.execute(_review("bugs"), strategy="race", timeout=0.05)

    assert result.results == []
    assert result.timed_out is True
    await asyncio.sleep(0.35)


# ── 3. quorum ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_quorum_resolves_once_threshold_met(registry):
    executor = _executor(
        {
            "bugs": (0.0, "one"),
            "security": (0.01, "two"),
            "style": (0.5, "three"),
            "performance": (0.5, "four"),
        },
        registry,
    )
    result = await executor.execute(
        _review("bugs", "security", "style", "performance"),
        strategy="quorum",
        quorum_threshold=0.5,
        timeout=5,
    )

    assert result.quorum_reached is True
    assert [r.output for r in result.results] == ["one", "two"]
    assert result.duration_ms < 500
    await asyncio.sleep(0.55)


@pytest.mark.asyncio
async def test_quorum_not_reached_is_flagged(registry):
    executor = _executor(
        {
            "bugs": (0.0, "one"),
            "security": (0.0, LLMError("x")),
            "style": (0.0, LLMError("y")),
        },
        registry,
    )
    result = await executor.execute(
        _review("bugs", "security", "style"), strategy="quorum", quorum_threshold=1.0
    )
    assert result.quorum_reached is False
    assert len(result.results) == 1
    assert result.timed_out is False


# ── 4. Consolidation ────────────────────────────────────────────

def _ok(output, mode=None):
    return AgentResult(role="reviewer", mode=mode, success=True, output=output)


def test_best_scores_length_times_weight():
    invocations = _review("bugs", "security", weights=[1.0, 3.0])
    results = [(0, _ok("a long detailed answer")), (1, _ok("short"))]
    assert consolidate(results, "best", invocations) == "a long detailed answer"

    invocations[1].weight = 10.0
    assert consolidate(results, "best", invocations) == "short"


def test_vote_prefers_agreeing_outputs():
    invocations = _review("bugs", "security", "style")
    results = [
        (0, _ok("No issues found.")),
        (1, _ok("a much longer and entirely different answer")),
        (2, _ok("  no issues   FOUND. ")),
    ]
    assert consolidate(results, "vote", invocations) == "No issues found."


def test_vote_falls_back_to_best_without_agreement():
    invocations = _review("bugs", "security")
    results = [(0, _ok("short")), (1, _ok("the longer answer"))]
    assert consolidate(results, "vote", invocations) == "the longer answer"


def test_vote_weight_can_outvote_a_pair():
    invocations = _review("bugs", "security", "style", weights=[0.5, 0.5, 2.0])
    results = [(0, _ok("yes")), (1, _ok("yes")), (2, _ok("no"))]
    assert consolidate(results, "vote", invocations) == "no"


def test_merge_header_without_mode():
    results = [(0, _ok("x"))]
    assert consolidate(results, "merge", [AgentInvocation(role="reviewer", input="")]) == "## reviewer\n\nx"


def test_consolidate_ignores_failures():
    failed = AgentResult(role="reviewer", success=False, output="partial", error="boom")
    assert consolidate([(0, failed)], "merge", _review("bugs")) == NO_SUCCESS_MESSAGE


# ── 5. Validation and review helper ─────────────────────────────

@pytest.mark.asyncio
async def test_unknown_strategy_raises(registry):
    executor = _executor({}, registry)
    with pytest.raises(ValueError):
        await executor.execute(_review("bugs"), strategy="fastest")
    with pytest.raises(ValueError):
        await executor.execute(_review("bugs"), consolidation="average")


@pytest.mark.asyncio
async def test_parallel_review_merges_four_passes(registry):
    executor = _executor(
        {
            "bugs": (0.0, "B"),
            "security": (0.0, "S"),
            "style": (0.0, "T"),
            "performance": (0.0, "P"),
        },
        registry,
    )
    result = await parallel_review(executor, "review auth.py")

    assert [r.mode for r in result.results] == ["bugs", "security", "style", "performance"]
    assert result.strategy == "all"
    headers = [line for line in result.consolidated.splitlines() if line.startswith("## ")]
    assert headers == [
        "## reviewer (bugs)",
        "## reviewer (security)",
        "## reviewer (style)",
        "## reviewer (performance)",
    ]
