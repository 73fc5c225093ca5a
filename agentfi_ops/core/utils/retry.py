from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

T = TypeVar("T")

RETRYABLE_HTTP_STATUS_CODES = frozenset({429, 502, 503, 504})


def exponential_backoff_s(
    attempt: int, *, base_delay_s: float = 0.25, max_delay_s: float | None = None
) -> float:
    delay_s = base_delay_s * (2**attempt)
    if max_delay_s is not None:
        delay_s = min(delay_s, max_delay_s)
    return delay_s


def http_status_of(exc: Exception) -> int | None:
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    code = getattr(response, "status_code", None) if response is not None else None
    return code if isinstance(code, int) else None


def is_retryable_http_error(exc: Exception) -> bool:
    return http_status_of(exc) in RETRYABLE_HTTP_STATUS_CODES


def _log_retry(attempt: int, exc: Exception, delay_s: float) -> None:
    logger.debug(f"Retry {attempt + 1} in {delay_s:.2f}s after error: {exc}")


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay_s: float = 0.25,
    max_delay_s: float | None = None,
    should_retry: Callable[[Exception], bool] | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = _log_retry,
) -> T:
    """Await ``fn()`` up to ``max_retries`` times with exponential backoff.

    ``should_retry`` filters which exceptions are worth another attempt; any
    other exception (and the last failure) propagates unchanged.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")

    for attempt in range(max_retries):
        try:
            return await fn()
        except Exception as exc:  # noqa: BLE001
            if attempt >= max_retries - 1:
                raise
            if should_retry is not None and not should_retry(exc):
                raise
            delay_s = exponential_backoff_s(
                attempt, base_delay_s=base_delay_s, max_delay_s=max_delay_s
            )
            if on_retry is not None:
                on_retry(attempt, exc, delay_s)
            await asyncio.sleep(delay_s)

    raise RuntimeError("retry_async exhausted retries")
