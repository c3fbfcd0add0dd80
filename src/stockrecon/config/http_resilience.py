"""Retry, rate-limit and cache settings for outbound HTTP."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

import httpx

if TYPE_CHECKING:
    from collections.abc import Mapping

RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retries applied by ``httpx-retries`` below the client."""

    total: int = 2
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    status_forcelist: frozenset[int] = RETRYABLE_STATUSES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )


NO_TRANSPORT_RETRIES = RetryPolicy(total=0)


@dataclass(slots=True, frozen=True)
class FixedDelayRetry:
    """Retry an operation a bounded number of times with a constant pause in between.

    ``max_attempts`` counts the first call, so ``max_attempts=3`` means one call plus
    at most two retries.
    """

    max_attempts: int = 3
    delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    backend: Literal["sqlite", "memory"] = "memory"
    ttl_seconds: float | None = None
    sqlite_path: str | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """Everything needed to build one ``ResilientClient``."""

    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = None
    default_headers: Mapping[str, str] | None = None
