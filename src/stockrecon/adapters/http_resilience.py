"""Rate-limited, retrying and optionally caching HTTP client plus call-level retries."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from logging import getLogger
from typing import TYPE_CHECKING, TypeVar

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from stockrecon.config.storage import get_http_cache_path
from stockrecon.domain.errors import RetryExhaustedError

if TYPE_CHECKING:
    from types import TracebackType

    from stockrecon.config.http_resilience import (
        CacheConfig,
        FixedDelayRetry,
        ResilienceConfig,
        RetryPolicy,
    )

log = getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
QueryParams = Mapping[str, str | int]


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


class ResilientClient:
    """Async HTTP client shared by one adapter for the duration of a job.

    Requests pass through the rate limiter first, then through the transport
    retries; lookups may additionally be served from the hishel cache.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        transport = RetryTransport(retry=build_retry(config.retry))
        headers = dict(config.default_headers or {})
        base_url = config.base_url or ""

        storage = _build_cache_storage(config.cache)
        if storage is None:
            self._client: httpx.AsyncClient = httpx.AsyncClient(
                base_url=base_url,
                headers=headers,
                timeout=config.timeout_seconds,
                transport=transport,
            )
        else:
            self._client = AsyncCacheClient(
                base_url=base_url,
                headers=headers,
                timeout=config.timeout_seconds,
                transport=transport,
                storage=storage,
            )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(
        self,
        path: str,
        *,
        params: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        request_timeout = self.config.timeout_seconds if timeout is None else timeout
        if self._limiter is None:
            return await self._client.get(
                path, params=params, headers=headers, timeout=request_timeout
            )
        async with self._limiter:
            return await self._client.get(
                path, params=params, headers=headers, timeout=request_timeout
            )


def _build_cache_storage(config: CacheConfig | None) -> AsyncSqliteStorage | None:
    if config is None:
        return None
    if config.backend == "memory":
        database_path = ":memory:"
    elif config.backend == "sqlite":
        database_path = config.sqlite_path or str(get_http_cache_path())
    else:
        raise ValueError(f"Unsupported cache backend: {config.backend}")
    return AsyncSqliteStorage(database_path=database_path, default_ttl=config.ttl_seconds)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: FixedDelayRetry,
    retry_on: tuple[type[BaseException], ...],
    sleep: Sleep = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Await ``operation`` until it succeeds or ``policy.max_attempts`` calls have failed.

    Only exceptions listed in ``retry_on`` are retried; anything else propagates
    immediately. Exhausting the budget raises ``RetryExhaustedError`` chained to
    the last failure.
    """

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except retry_on as exc:
            log.warning(
                "%s failed (attempt %s/%s): %s",
                description,
                attempt,
                policy.max_attempts,
                exc,
            )
            if attempt >= policy.max_attempts:
                raise RetryExhaustedError(attempt, exc) from exc
            await sleep(policy.delay_seconds)
