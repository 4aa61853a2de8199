"""Ollama LLM provider implementation."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from ollama import AsyncClient

from ..chunks import MessageStopChunk, ReasoningChunk, StreamChunk, TextChunk, UsageChunk
from ..models import Conversation, to_chat_dicts
from .base import LLMProvider


class OllamaProvider(LLMProvider):
    """Ollama-backed LLM provider."""

    name = "ollama"
    default_model = "llama3.2"

    _client: AsyncClient | None = None

    async def _initialize_client(self) -> None:
        self._client = AsyncClient(host=self.config.base_url or "http://localhost:11434")

    async def _close_client(self) -> None:
        aclose = getattr(self._client, "aclose", None)
        if callable(aclose):
            await aclose()
        self._client = None

    async def _stream_once(self, conversation: Conversation) -> AsyncIterator[StreamChunk]:
        messages: list[dict[str, Any]] = []
        if conversation.system_prompt:
            messages.append({"role": "system", "content": conversation.system_prompt})
        messages.extend(to_chat_dicts(conversation))
        options: dict[str, Any] = {"num_predict": self.config.max_tokens}
        if self.config.temperature is not None:
            options["temperature"] = self.config.temperature

        stream = await self._client.chat(model=self.model, messages=messages, stream=True, options=options)
        async for chunk in stream:
            msg = getattr(chunk, "message", None)
            if msg is not None:
                thinking = getattr(msg, "thinking", None)
                if thinking:
                    yield ReasoningChunk(thinking)
                if msg.content:
                    yield TextChunk(msg.content)
            if getattr(chunk, "done", False):
                yield UsageChunk(
                    input_tokens=getattr(chunk, "prompt_eval_count", None) or 0,
                    output_tokens=getattr(chunk, "eval_count", None) or 0,
                )
                yield MessageStopChunk()
                return
