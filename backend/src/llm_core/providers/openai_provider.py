"""OpenAI Chat Completions provider (also serves OpenAI-compatible endpoints)."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from typing import Any

import openai
from openai import AsyncOpenAI

from src.errors import ConfigurationError

from ..chunks import ContentBlockStopChunk, MessageStopChunk, ReasoningChunk, StreamChunk, TextChunk, UsageChunk
from ..models import Conversation, to_chat_dicts
from .base import LLMProvider


class OpenAIProvider(LLMProvider):
    """OpenAI-backed provider using streamed Chat Completions."""

    name = "openai"
    default_model = "gpt-4.1-nano"
    retryable_error_types = frozenset({"rate_limit_exceeded", "server_error"})
    transient_errors = LLMProvider.transient_errors + (openai.APIConnectionError,)

    _client: AsyncOpenAI | None = None

    async def _initialize_client(self) -> None:
        api_key = self.config.api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationError("OpenAI API key is required (set OPENAI_API_KEY)")
        kwargs: dict[str, Any] = {"api_key": api_key, "max_retries": 0}
        base_url = self.config.base_url or os.getenv("OPENAI_BASE_URL")
        if base_url:
            kwargs["base_url"] = base_url
        self._client = AsyncOpenAI(**kwargs)

    async def _close_client(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    @staticmethod
    def _to_openai_messages(conversation: Conversation) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if conversation.system_prompt:
            messages.append({"role": "system", "content": conversation.system_prompt})
        messages.extend(to_chat_dicts(conversation))
        return messages

    async def _stream_once(self, conversation: Conversation) -> AsyncIterator[StreamChunk]:
        params: dict[str, Any] = {
            "model": self.model,
            "messages": self._to_openai_messages(conversation),
            "max_completion_tokens": self.config.max_tokens,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if self.config.temperature is not None:
            params["temperature"] = self.config.temperature

        stream = await self._client.chat.completions.create(**params)
        async for chunk in stream:
            usage = getattr(chunk, "usage", None)
            if usage is not None:
                details = getattr(usage, "prompt_tokens_details", None)
                yield UsageChunk(
                    input_tokens=usage.prompt_tokens or 0,
                    output_tokens=usage.completion_tokens or 0,
                    cache_read_tokens=getattr(details, "cached_tokens", None),
                )
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = getattr(choice, "delta", None)
            if delta is not None:
                # some compatible servers stream reasoning separately
                reasoning = getattr(delta, "reasoning_content", None)
                if reasoning:
                    yield ReasoningChunk(reasoning)
                if delta.content:
                    yield TextChunk(delta.content)
            if getattr(choice, "finish_reason", None):
                yield ContentBlockStopChunk()
        yield MessageStopChunk()
