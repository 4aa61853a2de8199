"""Stream chunk types shared by every provider, and folding them into a response."""

from __future__ import annotations

from collections.abc import AsyncIterable
from dataclasses import dataclass
from typing import Literal, Union


@dataclass(frozen=True)
class TextChunk:
    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ReasoningChunk:
    text: str
    type: Literal["reasoning"] = "reasoning"


@dataclass(frozen=True)
class UsageChunk:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_write_tokens: int | None = None
    cache_read_tokens: int | None = None
    type: Literal["usage"] = "usage"


@dataclass(frozen=True)
class ContentBlockStopChunk:
    type: Literal["content_block_stop"] = "content_block_stop"


@dataclass(frozen=True)
class MessageStopChunk:
    type: Literal["message_stop"] = "message_stop"


StreamChunk = Union[TextChunk, ReasoningChunk, UsageChunk, ContentBlockStopChunk, MessageStopChunk]


@dataclass
class ProviderResponse:
    """A completed assistant turn: the concatenated body plus summed usage."""

    text: str = ""
    reasoning: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_write_tokens: int = 0
    cache_read_tokens: int = 0
    provider: str = ""
    model: str = ""

    def add(self, chunk: StreamChunk) -> None:
        if isinstance(chunk, TextChunk):
            self.text += chunk.text
        elif isinstance(chunk, ReasoningChunk):
            # reasoning is part of the body, and also kept apart
            self.text += chunk.text
            self.reasoning += chunk.text
        elif isinstance(chunk, UsageChunk):
            self.input_tokens += chunk.input_tokens
            self.output_tokens += chunk.output_tokens
            self.cache_write_tokens += chunk.cache_write_tokens or 0
            self.cache_read_tokens += chunk.cache_read_tokens or 0


async def fold_chunks(chunks: AsyncIterable[StreamChunk], **fields: str) -> ProviderResponse:
    response = ProviderResponse(**fields)
    async for chunk in chunks:
        response.add(chunk)
    return response
