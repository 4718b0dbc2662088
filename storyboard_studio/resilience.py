"""
Retry with exponential backoff for single upstream calls.

Every network call in the package goes through invoke(). Retry counters are
local to one invoke() call.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import aiohttp

T = TypeVar("T")

TRANSIENT_STATUSES = {500, 502, 503, 504}

TRANSIENT_MESSAGES = (
    "Rpc failed",
    "xhr error",
    "fetch failed",
    "NetworkError",
    "Load failed",
    "network timeout",
    "Cannot connect to host",
    "Server disconnected",
    "Connection reset",
    "Connection refused",
    "timed out",
)


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _error_status(exc: BaseException) -> Optional[Any]:
    """Read a status code from the top level, a nested response or a nested error object."""
    status = getattr(exc, "status", None)
    if status is None:
        response = getattr(exc, "response", None)
        if response is not None:
            status = _field(response, "status")
            if status is None:
                status = _field(response, "status_code")
    if status is None:
        error = getattr(exc, "error", None)
        if error is not None:
            status = _field(error, "code")
    return status


def _error_message(exc: BaseException) -> str:
    message = str(exc)
    error = getattr(exc, "error", None)
    if error is not None:
        nested = _field(error, "message")
        if nested:
            message += " " + str(nested)
    return message


def is_transient_error(exc: BaseException) -> bool:
    """True when a failure looks like a server hiccup or a dropped connection."""
    if isinstance(exc, (aiohttp.ClientConnectionError, asyncio.TimeoutError)):
        return True

    status = _error_status(exc)
    try:
        if status is not None and int(status) in TRANSIENT_STATUSES:
            return True
    except (TypeError, ValueError):
        pass

    message = _error_message(exc)
    return any(pattern in message for pattern in TRANSIENT_MESSAGES)


async def invoke(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 2.0,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Await operation(), retrying transient failures with exponential backoff.

    The wait before retry k+1 is base_delay * 2**k seconds, so at most
    max_retries + 1 attempts are made. Non-transient failures, and the last
    transient one, are re-raised unchanged.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        max_retries: Retries allowed after the first attempt
        base_delay: Seconds to wait before the first retry
        sleep: Awaitable sleep used for backoff waits

    Returns:
        Whatever operation() resolves to
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= max_retries or not is_transient_error(exc):
                raise
            delay = base_delay * (2 ** attempt)
            print(f"⚠️ API error ({_error_message(exc)[:120]}). Retrying in {delay:.1f}s... ({max_retries - attempt} left)")
            await sleep(delay)
            attempt += 1
