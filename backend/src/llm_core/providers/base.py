"""Abstract provider: one streaming call per subclass, retries handled here."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx

from src.errors import ConfigurationError, ProviderError

from ..chunks import ProviderResponse, StreamChunk, fold_chunks
from ..config import ProviderConfig
from ..models import Conversation
from ..retry import RetryPolicy, RetryRecord

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """
    Streams one assistant turn for a conversation.

    Subclasses implement ``_stream_once``, a single attempt mapped onto the
    shared chunk types. ``stream`` and ``complete`` add retry with backoff for
    transient failures: 429, 5xx, connection problems, and the provider's
    own retryable error types. A streaming attempt is only retried before its
    first chunk has been yielded.
    """

    name: str = "provider"
    default_model: str = ""
    retryable_error_types: frozenset[str] = frozenset()
    transient_errors: tuple[type[BaseException], ...] = (ConnectionError, TimeoutError, httpx.TransportError)

    def __init__(
        self,
        config: ProviderConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or ProviderConfig(name=self.name)
        self.retry_policy = RetryPolicy(
            max_retries=self.config.max_retries, initial_backoff_ms=self.config.initial_backoff_ms
        )
        self.retries: list[RetryRecord] = []
        self._sleep = sleep
        self._initialized = False

    @property
    def model(self) -> str:
        return self.config.model or self.default_model

    async def initialize(self, config: ProviderConfig | None = None) -> None:
        if config is not None:
            self.config = config
            self.retry_policy = RetryPolicy(
                max_retries=config.max_retries, initial_backoff_ms=config.initial_backoff_ms
            )
        await self._initialize_client()
        self._initialized = True
        logger.info("Initialized %s provider (model %s)", self.name, self.model)

    async def shutdown(self) -> None:
        if self._initialized:
            await self._close_client()
            self._initialized = False

    async def _initialize_client(self) -> None:
        """Create the SDK client. Raise ``ConfigurationError`` for missing credentials."""

    async def _close_client(self) -> None:
        pass

    @abstractmethod
    def _stream_once(self, conversation: Conversation) -> AsyncIterator[StreamChunk]:
        """One attempt at streaming the next assistant turn."""
        ...

    # ------------------------------------------------------------------
    # Public calls
    # ------------------------------------------------------------------

    async def stream(self, conversation: Conversation) -> AsyncIterator[StreamChunk]:
        self._require_initialized()
        self.retries = []
        attempt = 0
        while True:
            started = False
            try:
                async for chunk in self._stream_once(conversation):
                    started = True
                    yield chunk
                return
            except (ProviderError, ConfigurationError):
                raise
            except Exception as exc:
                if started or not self._should_retry(exc, attempt):
                    raise self._as_provider_error(exc, attempt) from exc
                await self._backoff(attempt, exc)
                attempt += 1

    async def complete(self, conversation: Conversation) -> ProviderResponse:
        """Fold a whole turn; each retry starts the turn from scratch."""
        self._require_initialized()
        self.retries = []
        attempt = 0
        while True:
            try:
                return await fold_chunks(self._stream_once(conversation), provider=self.name, model=self.model)
            except (ProviderError, ConfigurationError):
                raise
            except Exception as exc:
                if not self._should_retry(exc, attempt):
                    raise self._as_provider_error(exc, attempt) from exc
                await self._backoff(attempt, exc)
                attempt += 1

    # ------------------------------------------------------------------
    # Retry classification
    # ------------------------------------------------------------------

    @staticmethod
    def status_code(exc: BaseException) -> int | None:
        response = getattr(exc, "response", None)
        for candidate in (getattr(exc, "status_code", None), getattr(response, "status_code", None)):
            if isinstance(candidate, int):
                return candidate
        return None

    @staticmethod
    def error_type(exc: BaseException) -> str | None:
        body = getattr(exc, "body", None)
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and isinstance(error.get("type"), str):
                return error["type"]
            if isinstance(body.get("type"), str):
                return body["type"]
        return None

    def is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, (ProviderError, ConfigurationError)):
            return False
        if self.error_type(exc) in self.retryable_error_types:
            return True
        status = self.status_code(exc)
        if status is not None:
            return status == 429 or 500 <= status < 600
        return isinstance(exc, self.transient_errors)

    def _should_retry(self, exc: BaseException, attempt: int) -> bool:
        return self.is_retryable(exc) and attempt < self.retry_policy.max_retries

    async def _backoff(self, attempt: int, exc: BaseException) -> None:
        record = RetryRecord(
            attempt=attempt + 1,
            base_delay_ms=self.retry_policy.base_delay_ms(attempt),
            delay_ms=self.retry_policy.delay_ms(attempt),
            error=repr(exc),
        )
        self.retries.append(record)
        logger.warning(
            "%s request failed (%s); retry %d/%d in %.0fms",
            self.name,
            exc,
            record.attempt,
            self.retry_policy.max_retries,
            record.delay_ms,
        )
        await self._sleep(record.delay_ms / 1000)

    def _as_provider_error(self, exc: BaseException, attempt: int) -> ProviderError:
        retryable = self.is_retryable(exc)
        status = self.status_code(exc)
        kind = self.error_type(exc)
        return ProviderError(
            f"{self.name} request failed after {attempt + 1} attempt(s): {exc}",
            self.name,
            retryable=retryable,
            attempts=attempt + 1,
            details={"status": status, "type": kind} if status or kind else None,
        )

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ProviderError(f"{self.name} provider is not initialized", self.name)
