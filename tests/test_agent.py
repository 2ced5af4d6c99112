import pytest

from sharkbait.agent.agent import Agent
from sharkbait.agent.hooks import HookChain
from sharkbait.config import Settings
from tests.helpers import FakeLLM, text_turn, tool_turn


@pytest.fixture
def config() -> Settings:
    return Settings(OPENAI_API_KEY="test", MAX_ITERATIONS=5, _env_file=None)


@pytest.mark.asyncio
async def test_ask_returns_streamed_text(registry, config):
    llm = FakeLLM([text_turn("2 + 2 ", "= 4")])
    agent = Agent(llm=llm, tools=registry, config=config)

    assert await agent.ask("What is 2+2?") == "2 + 2 = 4"
    assert llm.calls[0]["messages"][0]["role"] == "system"
    assert llm.calls[0]["messages"][-1] == {"role": "user", "content": "What is 2+2?"}


@pytest.mark.asyncio
async def test_ask_uses_tools(registry, config):
    llm = FakeLLM([tool_turn(("add", {"a": 2, "b": 2})), text_turn("4")])
    agent = Agent(llm=llm, tools=registry, hooks=HookChain(), config=config)

    assert await agent.ask("add 2 and 2") == "4"
    tool_message = llm.calls[1]["messages"][-1]
    assert tool_message["role"] == "tool"
    assert tool_message["content"] == '{"sum": 4}'


@pytest.mark.asyncio
async def test_ask_returns_partial_text_on_error(registry, config):
    llm = FakeLLM([RuntimeError("connection reset")])
    agent = Agent(llm=llm, tools=registry, config=config)
    assert await agent.ask("hi") == ""


@pytest.mark.asyncio
async def test_reset_starts_new_conversation(registry, config):
    llm = FakeLLM([text_turn("first"), text_turn("second")])
    agent = Agent(llm=llm, tools=registry, config=config)

    await agent.ask("one")
    assert len(agent.loop.messages) == 2
    agent.reset()
    assert agent.loop.messages == []
    await agent.ask("two")
    assert [m["content"] for m in llm.calls[1]["messages"][1:]] == ["two"]


def test_safety_hooks_follow_config(registry):
    on = Agent(llm=FakeLLM(), tools=registry, config=Settings(_env_file=None))
    off = Agent(
        llm=FakeLLM(), tools=registry, config=Settings(ENABLE_SAFETY_HOOKS=False, _env_file=None)
    )
    assert "shell-safety" in on.hooks.names()
    assert off.hooks.empty
