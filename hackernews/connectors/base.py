"""Engine errors and the bounded retry helper."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class HackerNewsError(Exception):
    """Base engine error."""


class TransportError(HackerNewsError):
    """A single upstream unit failed (network, status or decoding)."""


class ItemNotFoundError(HackerNewsError):
    """Retries were exhausted or the upstream has no such record."""


class MalformedUpstreamError(HackerNewsError):
    """Scraped input violates its structural contract."""


async def fetch_with_retries(
    call: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    on_failure: Optional[Callable[[int, Exception], Any]] = None,
) -> T:
    """Run ``call`` until it succeeds or ``max_attempts`` is used up.

    Only ``TransportError`` is retried; the last one is re-raised.
    """
    attempts = 0
    last_error: Optional[Exception] = None
    while attempts < max_attempts:
        attempts += 1
        try:
            return await call()
        except TransportError as exc:  # retry
            last_error = exc
            if on_failure is not None:
                on_failure(attempts, exc)
    if last_error is None:
        raise ValueError("max_attempts must be at least 1")
    raise last_error
