"""Tests for multi-phase workflows and their review/improve loop."""

import pytest

from sharkbait.agent.llm import LLMError
from sharkbait.agent.tool_registry import ToolRegistry
from sharkbait.agents.factory import AgentFactory
from sharkbait.agents.parallel import NO_SUCCESS_MESSAGE
from sharkbait.agents.workflows import (
    WORKFLOWS,
    BaseWorkflow,
    BugFixWorkflow,
    FeatureDevWorkflow,
    RefactorWorkflow,
    WorkflowOptions,
    WorkflowPhase,
    parse_evaluation,
)
from tests.helpers import FakeLLM, ModeLLM, text_turn


class ReviewedWorkflow(BaseWorkflow):
    name = "reviewed"
    phases = [
        WorkflowPhase("discover", "Discovery", "Map the code", agent="explorer", mode="map"),
        WorkflowPhase("implement", "Implementation", "Write it", agent="coder", mode="write",
                      max_iterations=3),
        WorkflowPhase("notes", "Notes", "Write notes", agent="planner", required=False),
    ]


class ReviewOnlyWorkflow(BaseWorkflow):
    name = "review-only"
    phases = [WorkflowPhase("review", "Review", "Review it", agent="reviewer", parallel=True)]


def _reviewed(*turns) -> tuple[ReviewedWorkflow, FakeLLM]:
    llm = FakeLLM([text_turn(t) if isinstance(t, str) else t for t in turns])
    return ReviewedWorkflow(AgentFactory(llm, ToolRegistry())), llm


def _last_user(call) -> str:
    return call["messages"][-1]["content"]


# ── 1. Phase sequencing ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_phases_run_in_order_and_chain_outputs():
    workflow, llm = _reviewed("repo map", "the code", "Looks good, approved.", "release notes")
    started = []

    result = await workflow.execute(
        "add a cache", WorkflowOptions(on_phase_start=lambda p: started.append(p.id))
    )

    assert result.success
    assert result.error is None
    assert started == ["discover", "implement", "notes"]
    assert [p.phase for p in result.phases] == ["discover", "implement", "notes"]
    assert [p.output for p in result.phases] == ["repo map", "the code", "release notes"]
    assert result.output == "release notes"

    assert _last_user(llm.calls[0]) == "add a cache"
    assert "## Current Mode: map" in llm.calls[0]["messages"][0]["content"]
    assert _last_user(llm.calls[1]) == "repo map"
    assert _last_user(llm.calls[2]) == "Review this code for issues:\n\nthe code"
    assert _last_user(llm.calls[3]) == "the code"


@pytest.mark.asyncio
async def test_failed_required_phase_stops_workflow():
    workflow, llm = _reviewed(LLMError("model down"))

    result = await workflow.execute("add a cache")

    assert not result.success
    assert len(result.phases) == 1
    assert result.phases[0].status == "failed"
    assert result.error == "Required phase 'Discovery' failed: model down"
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_failed_optional_phase_is_skipped():
    workflow, _ = _reviewed("repo map", "the code", "LGTM", LLMError("no notes today"))

    result = await workflow.execute("add a cache")

    assert result.success
    assert [p.status for p in result.phases] == ["completed", "completed", "failed"]
    assert result.output == "the code"


# ── 2. Refinement ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_refinement_stops_once_review_approves():
    workflow, llm = _reviewed(
        "repo map", "v1", "There is a bug: wrong index", "v2", "Looks good now", "notes"
    )
    rounds = []

    result = await workflow.execute(
        "add a cache",
        WorkflowOptions(on_refinement=lambda n, e: rounds.append((n, e.approved, e.severity))),
    )

    implement = result.phases[1]
    assert implement.output == "v2"
    assert implement.iterations == 4
    assert rounds == [(1, False, "major"), (2, True, "none")]
    improve_prompt = _last_user(llm.calls[3])
    assert "- [major] Issue detected: bug" in improve_prompt
    assert "**Code to Fix:**\nv1" in improve_prompt
    assert _last_user(llm.calls[5]) == "v2"


@pytest.mark.asyncio
async def test_refinement_is_bounded_by_phase_iterations():
    workflow, _ = _reviewed("map", "v1", "bug", "v2", "bug again", "v3", "notes")

    result = await workflow.execute("add a cache")

    assert result.phases[1].output == "v3"
    assert result.phases[1].iterations == 5
    assert result.phases[2].output == "notes"


@pytest.mark.asyncio
async def test_minor_issues_are_accepted():
    workflow, llm = _reviewed("map", "v1", "Minor naming nit", "notes")

    result = await workflow.execute("add a cache")

    assert result.phases[1].output == "v1"
    assert result.phases[1].iterations == 2
    assert len(llm.calls) == 4


@pytest.mark.asyncio
async def test_dry_run_skips_refinement():
    workflow, llm = _reviewed("map", "v1", "notes")

    result = await workflow.execute("add a cache", WorkflowOptions(dry_run=True))

    assert result.phases[1].iterations == 1
    assert result.output == "notes"
    assert len(llm.calls) == 3


# ── 3. Parallel review ──────────────────────────────────────────

@pytest.mark.asyncio
async def test_parallel_review_phase_merges_modes(registry):
    llm = ModeLLM({"bugs": (0.02, "B"), "security": (0.0, "S")})
    workflow = ReviewOnlyWorkflow(AgentFactory(llm, registry))

    result = await workflow.execute("diff", WorkflowOptions(review_modes=["bugs", "security"]))

    assert result.success
    assert result.output == "## reviewer (bugs)\n\nB\n\n---\n\n## reviewer (security)\n\nS"


@pytest.mark.asyncio
async def test_parallel_review_phase_fails_without_successes(registry):
    llm = ModeLLM({"bugs": (0.0, LLMError("a")), "security": (0.0, LLMError("b"))})
    workflow = ReviewOnlyWorkflow(AgentFactory(llm, registry))

    result = await workflow.execute("diff", WorkflowOptions(review_modes=["bugs", "security"]))

    assert not result.success
    assert result.phases[0].error == NO_SUCCESS_MESSAGE


@pytest.mark.asyncio
async def test_feature_dev_end_to_end(registry):
    approve = (0.0, "No issues found.")
    llm = ModeLLM(
        {
            "map": (0.0, "repo map"),
            "architecture": (0.0, "the plan"),
            "write": (0.0, "the code"),
            "test": (0.0, "the tests"),
            "docs": (0.0, "the docs"),
            "bugs": approve,
            "security": approve,
            "style": approve,
        }
    )
    workflow = FeatureDevWorkflow(AgentFactory(llm, registry))

    result = await workflow.execute("add OAuth login")

    assert result.success
    assert [p.phase for p in result.phases] == [
        "discover", "plan", "implement", "review", "test", "document",
    ]
    assert all(p.status == "completed" for p in result.phases)
    assert result.phases[2].iterations == 2
    assert result.phases[3].output.count("## reviewer (") == 3
    assert result.output == "the docs"


# ── 4. Review parsing and inputs ────────────────────────────────

def test_parse_evaluation_grades_by_worst_tier():
    critical = parse_evaluation("SQL injection in the login query, also a naming bug")
    assert critical.severity == "critical"
    assert not critical.approved
    assert [i.severity for i in critical.issues] == ["critical"]

    assert parse_evaluation("Off-by-one bug").severity == "major"
    assert parse_evaluation("Some naming cleanup").severity == "minor"

    clean = parse_evaluation("Nothing to report.")
    assert clean.approved
    assert clean.issues == []


def test_approval_phrase_overrides_severity():
    evaluation = parse_evaluation("LGTM, just one style nit")
    assert evaluation.approved
    assert evaluation.severity == "minor"


def test_bug_fix_input_includes_context(registry):
    workflow = BugFixWorkflow(
        AgentFactory(FakeLLM(), registry),
        error_message="KeyError: 'id'",
        repro_steps=["open the page", "click save"],
        related_files=["app/models.py"],
    )
    assert workflow.build_input("saving fails") == (
        "## Bug Report\n\nsaving fails"
        "\n\n### Error Message\n```\nKeyError: 'id'\n```"
        "\n\n### Steps to Reproduce\n1. open the page\n2. click save\n"
        "\n\n### Possibly Related Files\n- app/models.py"
    )
    assert [p.id for p in workflow.phases if p.required] == [
        "diagnose", "hypothesize", "fix", "verify",
    ]


def test_refactor_input_states_constraints(registry):
    workflow = RefactorWorkflow(AgentFactory(FakeLLM(), registry), run_tests=True)
    text = workflow.build_input("split utils.py")
    assert text.endswith(
        "### Constraints\n- Must preserve existing behavior (no breaking changes)"
        "\n- Run existing tests after refactoring to verify behavior"
    )


def test_registered_workflows():
    assert set(WORKFLOWS) == {"feature-dev", "bug-fix", "refactor", "pr"}
    for name, cls in WORKFLOWS.items():
        assert cls.name == name
        assert cls.phases
