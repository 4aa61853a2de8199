"""Google Gemini LLM provider implementation."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from src.errors import ConfigurationError

from ..chunks import MessageStopChunk, StreamChunk, TextChunk, UsageChunk
from ..models import Conversation, role_name
from .base import LLMProvider


class GeminiProvider(LLMProvider):
    """Gemini provider using the google-genai SDK."""

    name = "gemini"
    default_model = "gemini-2.5-flash"
    retryable_error_types = frozenset({"RESOURCE_EXHAUSTED", "UNAVAILABLE", "INTERNAL"})

    _client: genai.Client | None = None

    async def _initialize_client(self) -> None:
        api_key = self.config.api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise ConfigurationError("Gemini API key is required (set GOOGLE_API_KEY or GEMINI_API_KEY)")
        self._client = genai.Client(api_key=api_key, http_options={"api_version": "v1beta"})

    @staticmethod
    def status_code(exc: BaseException) -> int | None:
        if isinstance(exc, genai_errors.APIError) and isinstance(exc.code, int):
            return exc.code
        return LLMProvider.status_code(exc)

    @staticmethod
    def error_type(exc: BaseException) -> str | None:
        if isinstance(exc, genai_errors.APIError):
            return exc.status
        return None

    @staticmethod
    def _to_gemini_contents(conversation: Conversation) -> list[genai_types.Content]:
        contents: list[genai_types.Content] = []
        for m in conversation.messages:
            if not m.content:
                continue
            role = "model" if role_name(m) == "assistant" else "user"
            # Construct Part directly to avoid signature issues with from_text()
            contents.append(genai_types.Content(role=role, parts=[genai_types.Part(text=m.content)]))
        return contents

    async def _stream_once(self, conversation: Conversation) -> AsyncIterator[StreamChunk]:
        config_args: dict[str, Any] = {"max_output_tokens": self.config.max_tokens}
        if conversation.system_prompt:
            config_args["system_instruction"] = conversation.system_prompt
        if self.config.temperature is not None:
            config_args["temperature"] = self.config.temperature

        stream = await self._client.aio.models.generate_content_stream(
            model=self.model,
            contents=self._to_gemini_contents(conversation),
            config=genai_types.GenerateContentConfig(**config_args),
        )
        usage = None
        async for chunk in stream:
            if chunk.usage_metadata is not None:
                usage = chunk.usage_metadata
            text = chunk.text
            if text:
                yield TextChunk(text)
        if usage is not None:
            yield UsageChunk(
                input_tokens=usage.prompt_token_count or 0,
                output_tokens=usage.candidates_token_count or 0,
                cache_read_tokens=usage.cached_content_token_count,
            )
        yield MessageStopChunk()
