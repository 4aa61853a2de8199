"""Exponential backoff with jitter for provider calls."""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """``initial_backoff_ms * 2**attempt``, scattered by up to ``jitter`` either way."""

    max_retries: int = 3
    initial_backoff_ms: float = 1000.0
    jitter: float = 0.2

    def base_delay_ms(self, attempt: int) -> float:
        return self.initial_backoff_ms * (2**attempt)

    def delay_ms(self, attempt: int) -> float:
        base = self.base_delay_ms(attempt)
        return max(0.0, base * (1 + random.uniform(-self.jitter, self.jitter)))


@dataclass(frozen=True)
class RetryRecord:
    attempt: int
    base_delay_ms: float
    delay_ms: float
    error: str
