from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol


class ChatMessage(Protocol):
    """Anything with a role and text content; session messages qualify."""

    role: Any
    content: str


class Conversation(Protocol):
    system_prompt: str
    messages: Sequence[ChatMessage]


def role_name(message: ChatMessage) -> str:
    role = message.role
    return getattr(role, "value", role)


def to_chat_dicts(conversation: Conversation) -> list[dict[str, str]]:
    """Plain ``{"role", "content"}`` dicts, oldest first, without the system prompt."""
    return [{"role": role_name(m), "content": m.content or ""} for m in conversation.messages]


__all__ = ["ChatMessage", "Conversation", "role_name", "to_chat_dicts"]
