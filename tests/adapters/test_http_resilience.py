from __future__ import annotations

import asyncio

import pytest

from stockrecon.adapters.http_resilience import build_retry, retry_async
from stockrecon.config.http_resilience import NO_TRANSPORT_RETRIES, FixedDelayRetry, RetryPolicy
from stockrecon.domain.errors import RetryExhaustedError
from tests.helpers.fakes import RecordingSleep


class _Flaky:
    def __init__(self, failures: int, error: Exception) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


def test_retry_async_returns_first_success() -> None:
    operation = _Flaky(failures=2, error=TimeoutError("slow"))
    sleep = RecordingSleep()

    result = asyncio.run(
        retry_async(
            operation,
            policy=FixedDelayRetry(max_attempts=3, delay_seconds=1.0),
            retry_on=(TimeoutError,),
            sleep=sleep,
        )
    )

    assert result == "ok"
    assert operation.calls == 3
    assert sleep.delays == [1.0, 1.0]


def test_retry_async_raises_after_budget_is_spent() -> None:
    error = TimeoutError("slow")
    operation = _Flaky(failures=5, error=error)
    sleep = RecordingSleep()

    with pytest.raises(RetryExhaustedError) as excinfo:
        asyncio.run(
            retry_async(
                operation,
                policy=FixedDelayRetry(max_attempts=3, delay_seconds=0.5),
                retry_on=(TimeoutError,),
                sleep=sleep,
            )
        )

    assert operation.calls == 3
    assert sleep.delays == [0.5, 0.5]
    assert excinfo.value.last_error is error
    assert excinfo.value.__cause__ is error


def test_retry_async_propagates_errors_outside_retry_on() -> None:
    operation = _Flaky(failures=1, error=KeyError("boom"))
    sleep = RecordingSleep()

    with pytest.raises(KeyError):
        asyncio.run(
            retry_async(
                operation,
                policy=FixedDelayRetry(),
                retry_on=(TimeoutError,),
                sleep=sleep,
            )
        )

    assert operation.calls == 1
    assert sleep.delays == []


@pytest.mark.parametrize(
    ("max_attempts", "delay_seconds"),
    [(0, 1.0), (3, -1.0)],
)
def test_fixed_delay_retry_validates_values(max_attempts: int, delay_seconds: float) -> None:
    with pytest.raises(ValueError):  # noqa: PT011
        FixedDelayRetry(max_attempts=max_attempts, delay_seconds=delay_seconds)


def test_build_retry_maps_policy() -> None:
    retry = build_retry(RetryPolicy(total=4, status_forcelist=frozenset({503})))

    assert retry.total == 4
    assert build_retry(NO_TRANSPORT_RETRIES).total == 0
