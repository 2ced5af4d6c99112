"""LLM client with retry logic for the agent loop.

Wraps the OpenAI SDK (plain or Azure). Retries transient failures (429 rate
limit, 5xx server errors, timeouts, connection errors) with exponential
backoff. Does NOT retry mid-stream: only the initial stream creation is
retried, and anything raised after that is terminal for the caller's run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Protocol

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncAzureOpenAI,
    AsyncOpenAI,
)

from sharkbait.agent.constants import (
    LLM_MAX_RETRIES,
    LLM_RETRY_BASE_DELAY_SECONDS,
    LLM_RETRY_MAX_DELAY_SECONDS,
    LLM_RETRYABLE_STATUS_CODES,
)
from sharkbait.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when required configuration is missing."""


class LLMError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_retryable(self) -> bool:
        return self.status_code in LLM_RETRYABLE_STATUS_CODES


@dataclass
class ToolCallDelta:
    """A fragment of a streamed tool call, keyed by its stream index."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass
class ChatChunk:
    content: str = ""
    tool_call_deltas: list[ToolCallDelta] | None = None
    finish_reason: str | None = None


class ChatModel(Protocol):
    """What the agent loop needs from a model: a lazy stream of chunks."""

    def chat(
        self, messages: list[dict], tools: list[dict] | None = None
    ) -> AsyncIterator[ChatChunk]: ...


def _is_retryable(exc: Exception) -> bool:
    """Determine if an exception is transient and worth retrying."""
    if isinstance(exc, (APITimeoutError, APIConnectionError)):
        return True
    if isinstance(exc, APIStatusError) and exc.status_code in LLM_RETRYABLE_STATUS_CODES:
        return True
    return False


def to_openai_tools(definitions: list[dict]) -> list[dict]:
    """Convert {name, description, parameters} definitions to function-calling format."""
    return [
        {
            "type": "function",
            "function": {
                "name": d["name"],
                "description": d.get("description", ""),
                "parameters": d.get("parameters", {"type": "object", "properties": {}}),
            },
        }
        for d in definitions
    ]


def chunk_from_openai(chunk) -> ChatChunk | None:
    """Normalize a ChatCompletionChunk. Returns None for choice-less chunks."""
    if not chunk.choices:
        return None
    choice = chunk.choices[0]
    delta = choice.delta

    deltas = None
    if delta is not None and delta.tool_calls:
        deltas = [
            ToolCallDelta(
                index=tc.index,
                id=tc.id,
                name=tc.function.name if tc.function else None,
                arguments=tc.function.arguments if tc.function else None,
            )
            for tc in delta.tool_calls
        ]
    return ChatChunk(
        content=(delta.content or "") if delta is not None else "",
        tool_call_deltas=deltas,
        finish_reason=choice.finish_reason,
    )


class LLMClient:
    """Streaming chat client for an OpenAI-compatible or Azure endpoint."""

    def __init__(
        self,
        config: Settings | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.config = config or default_settings
        self.model = self.config.SHARKBAIT_MODEL
        self.temperature = self.config.SHARKBAIT_TEMPERATURE
        self.client = client or self._build_client()

    def _build_client(self) -> AsyncOpenAI:
        timeout = httpx.Timeout(120.0, connect=10.0)
        if self.config.AZURE_OPENAI_ENDPOINT:
            if not self.config.AZURE_OPENAI_API_KEY:
                raise ConfigError(
                    "Azure OpenAI API key is required. "
                    "Set AZURE_OPENAI_API_KEY environment variable."
                )
            return AsyncAzureOpenAI(
                azure_endpoint=self.config.AZURE_OPENAI_ENDPOINT,
                api_key=self.config.AZURE_OPENAI_API_KEY,
                api_version=self.config.AZURE_OPENAI_API_VERSION,
                timeout=timeout,
                max_retries=0,
            )
        if not self.config.OPENAI_API_KEY:
            raise ConfigError(
                "An API key is required. Set OPENAI_API_KEY "
                "(or AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY)."
            )
        return AsyncOpenAI(
            api_key=self.config.OPENAI_API_KEY,
            base_url=self.config.OPENAI_BASE_URL,
            timeout=timeout,
            max_retries=0,
        )

    async def chat(
        self, messages: list[dict], tools: list[dict] | None = None
    ) -> AsyncIterator[ChatChunk]:
        """Yield normalized chunks, retrying only the stream creation."""
        kwargs: dict = {
            "model": self.model,
            "messages": messages,
            "stream": True,
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = to_openai_tools(tools)
            kwargs["tool_choice"] = "auto"

        stream = None
        for attempt in range(1, LLM_MAX_RETRIES + 1):
            try:
                stream = await self.client.chat.completions.create(**kwargs)
                break
            except Exception as exc:
                if attempt < LLM_MAX_RETRIES and _is_retryable(exc):
                    delay = min(
                        LLM_RETRY_BASE_DELAY_SECONDS * (2 ** (attempt - 1)),
                        LLM_RETRY_MAX_DELAY_SECONDS,
                    )
                    logger.warning(
                        "LLM stream creation attempt %d/%d failed (%s), retrying in %.1fs",
                        attempt,
                        LLM_MAX_RETRIES,
                        exc,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                status = exc.status_code if isinstance(exc, APIStatusError) else None
                raise LLMError(str(exc), status_code=status) from exc

        async for raw in stream:
            chunk = chunk_from_openai(raw)
            if chunk is not None:
                yield chunk

    async def close(self) -> None:
        await self.client.close()
