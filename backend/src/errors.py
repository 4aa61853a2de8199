"""Error taxonomy shared by the hub, parser, providers and orchestrator."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PilotError(Exception):
    """Base error: a message plus a machine-readable code and optional details."""

    default_code = "ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.severity = severity
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Shape used for error-typed responses."""
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            out["details"] = self.details
        return out


class ConfigurationError(PilotError):
    default_code = "CONFIG_ERROR"


class ServerConnectionError(PilotError):
    """Spawn / handshake failure for one tool server. Recorded, not raised, by the hub."""

    default_code = "CONNECTION_FAILED"

    def __init__(self, message: str, server_name: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.server_name = server_name


class ToolError(PilotError):
    default_code = "TOOL_ERROR"

    def __init__(
        self,
        message: str,
        tool_name: str = "",
        server_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.tool_name = tool_name
        self.server_name = server_name


class ToolNotFoundError(ToolError):
    default_code = "NOT_FOUND"


class ToolValidationError(ToolError):
    default_code = "VALIDATION_ERROR"


class ToolExecutionError(ToolError):
    default_code = "EXECUTION_FAILED"


class ToolDeclinedError(ToolError):
    default_code = "DECLINED"


class ProviderError(PilotError):
    """Provider failure; the original exception is chained as ``__cause__``."""

    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        provider: str,
        retryable: bool = False,
        attempts: int = 1,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.provider = provider
        self.retryable = retryable
        self.attempts = attempts


class SessionError(PilotError):
    default_code = "SESSION_ERROR"

    def __init__(self, message: str, session_id: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.session_id = session_id


class InvalidResponseError(SessionError):
    default_code = "INVALID_RESPONSE"


class TagParseError(PilotError):
    """Malformed tool markup. Never escapes the parser."""

    default_code = "PARSE_ERROR"
