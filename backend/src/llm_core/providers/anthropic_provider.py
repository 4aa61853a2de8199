"""Anthropic Messages API provider."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from typing import Any

import anthropic

from src.errors import ConfigurationError

from ..chunks import (
    ContentBlockStopChunk,
    MessageStopChunk,
    ReasoningChunk,
    StreamChunk,
    TextChunk,
    UsageChunk,
)
from ..models import Conversation, role_name
from .base import LLMProvider

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    name = "anthropic"
    default_model = "claude-sonnet-4-5"
    retryable_error_types = frozenset(
        {"rate_limit_error", "overloaded_error", "api_error", "server_error", "timeout_error", "connection_error"}
    )
    transient_errors = LLMProvider.transient_errors + (anthropic.APIConnectionError,)

    _client: anthropic.AsyncAnthropic | None = None

    async def _initialize_client(self) -> None:
        api_key = self.config.api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ConfigurationError("Anthropic API key is required (set ANTHROPIC_API_KEY)")
        kwargs: dict[str, Any] = {"api_key": api_key, "max_retries": 0}
        if self.config.base_url:
            kwargs["base_url"] = self.config.base_url
        self._client = anthropic.AsyncAnthropic(**kwargs)

    async def _close_client(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    def build_request(self, conversation: Conversation) -> dict[str, Any]:
        messages: list[dict[str, Any]] = [
            {"role": role_name(m), "content": [{"type": "text", "text": m.content or ""}]}
            for m in conversation.messages
        ]
        # cache the stable prefix: system prompt plus history up to the newest message
        if messages:
            messages[-1]["content"][-1]["cache_control"] = {"type": "ephemeral"}
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.config.max_tokens,
            "messages": messages,
        }
        if conversation.system_prompt:
            request["system"] = [
                {"type": "text", "text": conversation.system_prompt, "cache_control": {"type": "ephemeral"}}
            ]
        if self.config.thinking_budget:
            request["thinking"] = {"type": "enabled", "budget_tokens": self.config.thinking_budget}
            request["max_tokens"] = max(self.config.max_tokens, self.config.thinking_budget + 1)
            request["temperature"] = 1.0
        elif self.config.temperature is not None:
            request["temperature"] = self.config.temperature
        return request

    async def _stream_once(self, conversation: Conversation) -> AsyncIterator[StreamChunk]:
        stream = await self._client.messages.create(**self.build_request(conversation), stream=True)
        async for event in stream:
            chunk = self.to_chunk(event)
            if chunk is None:
                continue
            yield chunk
            if isinstance(chunk, MessageStopChunk):
                return

    @staticmethod
    def to_chunk(event: Any) -> StreamChunk | None:
        """Map one raw stream event onto the shared chunk types."""
        kind = getattr(event, "type", None)
        if kind == "message_start":
            usage = event.message.usage
            return UsageChunk(
                input_tokens=usage.input_tokens or 0,
                output_tokens=usage.output_tokens or 0,
                cache_write_tokens=getattr(usage, "cache_creation_input_tokens", None),
                cache_read_tokens=getattr(usage, "cache_read_input_tokens", None),
            )
        if kind == "message_delta":
            return UsageChunk(input_tokens=0, output_tokens=event.usage.output_tokens or 0)
        if kind == "content_block_start":
            block = event.content_block
            thinking = block.type == "thinking"
            if event.index > 0:
                # separate consecutive blocks in the folded body
                return ReasoningChunk("\n") if thinking else TextChunk("\n")
            if thinking:
                return ReasoningChunk(getattr(block, "thinking", "") or "")
            if block.type == "text":
                return TextChunk(block.text or "")
            return None
        if kind == "content_block_delta":
            delta = event.delta
            if delta.type == "text_delta":
                return TextChunk(delta.text)
            if delta.type == "thinking_delta":
                return ReasoningChunk(delta.thinking)
            logger.debug("Ignoring %s delta", delta.type)
            return None
        if kind == "content_block_stop":
            return ContentBlockStopChunk()
        if kind == "message_stop":
            return MessageStopChunk()
        return None
