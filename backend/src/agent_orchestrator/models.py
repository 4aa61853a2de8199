"""Data models for messages, sessions and responses."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex}"


def new_session_id() -> str:
    return str(uuid.uuid4())


class _Model(BaseModel):
    """camelCase on disk and over HTTP, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(_Model):
    """A single message in a conversation."""

    id: str = Field(default_factory=new_message_id)
    role: MessageRole
    content: str = ""
    timestamp: str = Field(default_factory=_iso_now)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def user(cls, content: str, **metadata: Any) -> Message:
        return cls(role=MessageRole.USER, content=content, metadata=metadata)

    @classmethod
    def assistant(cls, content: str, **metadata: Any) -> Message:
        return cls(role=MessageRole.ASSISTANT, content=content, metadata=metadata)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class Session(_Model):
    """Session payload stored in <state dir>/sessions/{id}."""

    id: str = Field(default_factory=new_session_id)
    system_prompt: str = ""
    messages: list[Message] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    parent_id: str | None = None
    child_session_ids: list[str] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.ACTIVE

    @property
    def role_name(self) -> str | None:
        role = self.metadata.get("role")
        return role.get("name") if isinstance(role, dict) else None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ResponseType(str, Enum):
    TEXT = "text"
    TOOL_RESULT = "tool_result"
    ERROR = "error"


class ErrorInfo(_Model):
    code: str
    message: str
    details: Any = None


class ResponseContent(_Model):
    text: str | None = None
    error: ErrorInfo | None = None


class TokenUsage(_Model):
    prompt: int = 0
    completion: int = 0
    total: int = 0


class ResponseMetadata(_Model):
    provider: str = ""
    model: str = ""
    tokens: TokenUsage | None = None


class Response(_Model):
    """What one ``execute_message`` call hands back to its caller."""

    id: str = Field(default_factory=lambda: f"resp_{uuid.uuid4().hex}")
    type: ResponseType
    content: ResponseContent = Field(default_factory=ResponseContent)
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)
    timestamp: str = Field(default_factory=_iso_now)

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        provider: str = "",
        model: str = "",
        prompt_tokens: int = 0,
        completion_tokens: int = 0,
    ) -> Response:
        return cls(
            type=ResponseType.TEXT,
            content=ResponseContent(text=text),
            metadata=ResponseMetadata(
                provider=provider,
                model=model,
                tokens=TokenUsage(
                    prompt=prompt_tokens,
                    completion=completion_tokens,
                    total=prompt_tokens + completion_tokens,
                ),
            ),
        )

    @classmethod
    def from_error(cls, error: Any, *, provider: str = "", model: str = "") -> Response:
        """``error`` is a ``PilotError`` (anything with ``to_dict``) or a plain exception."""
        info = error.to_dict() if hasattr(error, "to_dict") else {"code": "ERROR", "message": str(error)}
        return cls(
            type=ResponseType.ERROR,
            content=ResponseContent(error=ErrorInfo(**info)),
            metadata=ResponseMetadata(provider=provider, model=model),
        )

    @property
    def is_error(self) -> bool:
        return self.type is ResponseType.ERROR
