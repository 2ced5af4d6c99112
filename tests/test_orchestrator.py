"""Tests for intent routing, handoff and the role agents."""

import pytest

from sharkbait.agent.tools import build_tool_registry
from sharkbait.agents.debugger import DebuggerAgent
from sharkbait.agents.factory import AgentFactory
from sharkbait.agents.orchestrator import classify_intent, detect_mode
from sharkbait.agents.reviewer import ReviewerAgent
from tests.helpers import FakeLLM, collect, text_turn, tool_turn, types


# ── 1. classify_intent ──────────────────────────────────────────

def test_fix_request_goes_to_debugger():
    intent = classify_intent("fix the bug in auth.ts")
    assert intent.suggested_agent == "debugger"
    assert 70 <= intent.confidence <= 95
    assert intent.confidence == 95
    assert intent.primary_intent == "fix"


def test_no_keyword_falls_back_to_orchestrator():
    intent = classify_intent("hello there")
    assert intent.suggested_agent == "orchestrator"
    assert intent.confidence == 50
    assert intent.suggested_mode is None


def test_late_match_in_long_input_scores_base_confidence():
    text = "I have been looking at this repository for a while and, honestly, " * 2 + "explain it"
    intent = classify_intent(text)
    assert intent.suggested_agent == "explorer"
    assert intent.confidence == 70


def test_earliest_strongest_match_wins_across_roles():
    intent = classify_intent("explain why the login fails and fix it")
    assert intent.suggested_agent == "explorer"


def test_keywords_match_whole_words_only():
    assert classify_intent("prefix handling").suggested_agent == "orchestrator"


@pytest.mark.parametrize(
    "text, mode",
    [
        ("add unit test coverage for the parser", "test"),
        ("review the login for vulnerabilities", "security"),
        ("refactor the cache layer", "refactor"),
        ("trace the request path", "trace"),
        ("map out the dependencies of core", "dependencies"),
        ("say hi", None),
    ],
)
def test_detect_mode(text, mode):
    assert detect_mode(text) == mode


# ── 2. Routing ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_confident_intent_hands_off(registry):
    llm = FakeLLM([text_turn("Found it: off-by-one in auth.ts")])
    orchestrator = AgentFactory(llm, registry).create_orchestrator()

    events = await collect(orchestrator.run("fix the bug in auth.ts"))

    assert types(events) == ["handoff", "agent_start", "text", "done"]
    assert events[0].data["from"] == "orchestrator"
    assert events[0].data["to"] == "debugger"
    assert events[1].data == {"agent": "debugger", "mode": None}
    assert orchestrator.agents["debugger"].loop.messages[0]["content"] == "fix the bug in auth.ts"
    assert orchestrator.loop.messages == []


@pytest.mark.asyncio
async def test_detected_mode_is_applied_on_handoff(registry):
    llm = FakeLLM([text_turn("No critical issues.")])
    orchestrator = AgentFactory(llm, registry).create_orchestrator()

    events = await collect(orchestrator.run("review the login for security holes"))

    assert events[1].data == {"agent": "reviewer", "mode": "security"}
    assert "## Current Mode: security" in llm.calls[0]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_low_confidence_is_handled_directly(registry):
    llm = FakeLLM([text_turn("Hi!")])
    orchestrator = AgentFactory(llm, registry).create_orchestrator()

    events = await collect(orchestrator.run("hello there"))

    assert types(events) == ["agent_start", "text", "done"]
    assert events[0].data["agent"] == "orchestrator"


@pytest.mark.asyncio
async def test_unregistered_target_is_handled_directly(registry):
    llm = FakeLLM([text_turn("done")])
    orchestrator = AgentFactory(llm, registry).create("orchestrator")

    events = await collect(orchestrator.run("fix the bug"))
    assert events[0].type == "agent_start"
    assert events[0].data["agent"] == "orchestrator"


@pytest.mark.asyncio
async def test_dispatch_unknown_role_is_error(registry):
    orchestrator = AgentFactory(FakeLLM(), registry).create_orchestrator()
    events = await collect(orchestrator.dispatch("poet", "write a sonnet"))
    assert types(events) == ["error"]
    assert events[0].data["message"] == "Agent not found: poet"


@pytest.mark.asyncio
async def test_dispatch_with_mode(registry):
    llm = FakeLLM([text_turn("Plan ready.")])
    orchestrator = AgentFactory(llm, registry).create_orchestrator()

    events = await collect(orchestrator.dispatch("planner", "add OAuth", mode="tasks"))

    assert types(events) == ["handoff", "agent_start", "text", "done"]
    assert events[1].data == {"agent": "planner", "mode": "tasks"}


# ── 3. Role agents ──────────────────────────────────────────────

def test_role_agents_see_only_their_tools():
    tools = build_tool_registry()
    reviewer = ReviewerAgent(FakeLLM(), tools)
    assert set(reviewer.tools.names()) == set(ReviewerAgent.tool_names)
    assert "write_file" not in reviewer.tools.names()

    orchestrator = AgentFactory(FakeLLM(), tools).create("orchestrator")
    assert set(orchestrator.tools.names()) == set(tools.names())


def test_set_mode_rejects_unsupported_modes(registry):
    agent = DebuggerAgent(FakeLLM(), registry)
    agent.set_mode("trace")
    assert agent.current_mode == "trace"
    with pytest.raises(ValueError):
        agent.set_mode("security")


def test_factory_rejects_unknown_role(registry):
    with pytest.raises(ValueError):
        AgentFactory(FakeLLM(), registry).create("poet")


def test_create_all_builds_every_role(registry):
    agents = AgentFactory(FakeLLM(), registry).create_all()
    assert set(agents) == {"orchestrator", "coder", "reviewer", "planner", "debugger", "explorer"}
    assert all(agents[role].role == role for role in agents)


@pytest.mark.asyncio
async def test_unsupported_mode_in_run_is_error(registry):
    agent = DebuggerAgent(FakeLLM(), registry)
    events = await collect(agent.run("x", mode="security"))
    assert types(events) == ["error"]


@pytest.mark.asyncio
async def test_execute_summarizes_run(registry):
    llm = FakeLLM([tool_turn(("echo", {"text": "hi"})), text_turn("All good.")])
    agent = AgentFactory(llm, registry).create("coder")
    result = await agent.execute("say hi", mode="write")

    assert result.success
    assert result.role == "coder"
    assert result.mode == "write"
    assert result.output == "All good."
    # echo is outside the coder's tool set, so the call fails but the run still ends in done
    assert result.tools_called == ["echo"]
    assert result.error is None
