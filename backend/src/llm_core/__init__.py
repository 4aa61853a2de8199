"""Provider clients that stream assistant turns as typed chunks."""

from .chunks import (
    ContentBlockStopChunk,
    MessageStopChunk,
    ProviderResponse,
    ReasoningChunk,
    StreamChunk,
    TextChunk,
    UsageChunk,
    fold_chunks,
)
from .config import DEFAULT_PROVIDER_CONFIG, ProviderConfig
from .core import PROVIDERS, create_provider, resolve_provider_class, split_model
from .models import ChatMessage, Conversation
from .providers import LLMProvider
from .retry import RetryPolicy, RetryRecord

__all__ = [
    "ChatMessage",
    "ContentBlockStopChunk",
    "Conversation",
    "DEFAULT_PROVIDER_CONFIG",
    "LLMProvider",
    "MessageStopChunk",
    "PROVIDERS",
    "ProviderConfig",
    "ProviderResponse",
    "ReasoningChunk",
    "RetryPolicy",
    "RetryRecord",
    "StreamChunk",
    "TextChunk",
    "UsageChunk",
    "create_provider",
    "fold_chunks",
    "resolve_provider_class",
    "split_model",
]
