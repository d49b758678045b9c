"""Caller-side retry primitives for device acquisition."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, TypeVar

from infra.errors import DeviceAcquisitionError

T = TypeVar("T")


class Sleeper(Protocol):
    def __call__(self, seconds: float) -> None: ...


class AsyncSleeper(Protocol):
    def __call__(self, seconds: float) -> Awaitable[None]: ...


@dataclass(frozen=True)
class BackoffPolicy:
    base_seconds: float = 0.5
    factor: float = 2.0
    max_seconds: float = 5.0

    def delay_for_attempt(self, attempt: int) -> float:
        delay = self.base_seconds * (self.factor ** max(0, attempt - 1))
        return min(delay, self.max_seconds)


def retry_operation(
    operation: Callable[[], T],
    *,
    should_retry: Callable[[Exception], bool],
    max_attempts: int,
    backoff: BackoffPolicy,
    sleeper: Sleeper,
) -> T:
    """Retry an operation with bounded exponential backoff for recoverable failures."""
    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as exc:  # noqa: BLE001
            if not should_retry(exc):
                raise
            last_error = exc
            if attempt == max_attempts:
                break
            sleeper(backoff.delay_for_attempt(attempt))
    assert last_error is not None
    raise last_error


async def retry_operation_async(
    operation: Callable[[], T],
    *,
    should_retry: Callable[[Exception], bool],
    max_attempts: int,
    backoff: BackoffPolicy,
    sleeper: AsyncSleeper = asyncio.sleep,
) -> T:
    """Same policy as :func:`retry_operation`, but backs off without blocking the event loop."""
    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as exc:  # noqa: BLE001
            if not should_retry(exc):
                raise
            last_error = exc
            if attempt == max_attempts:
                break
            await sleeper(backoff.delay_for_attempt(attempt))
    assert last_error is not None
    raise last_error


# Only the microphone is worth a second try; the core itself never retries.
RECOVERABLE_ERRORS = (DeviceAcquisitionError,)


def is_recoverable_error(exc: Exception) -> bool:
    return isinstance(exc, RECOVERABLE_ERRORS)
