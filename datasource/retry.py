"""Retry policy with exponential backoff for upstream fetches."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

import httpx

T = TypeVar("T")

_AUTH_STATUS_CODES = {401, 403}


class RetryPolicy:
    """Simple exponential backoff retry helper."""

    max_retries: int
    sleep_fn: Callable[[float], None]

    def __init__(
        self,
        max_retries: int = 3,
        sleep_fn: Callable[[float], None] | None = None,
    ) -> None:
        self.max_retries = max_retries
        self.sleep_fn = sleep_fn or time.sleep

    def backoff_seconds(self, attempt_index: int) -> int:
        value = 1 << attempt_index
        return value if value <= 8 else 8

    def execute(self, operation: Callable[[], T]) -> T:
        retries = 0
        while True:
            try:
                return operation()
            except Exception as exc:  # noqa: BLE001
                if self._should_fail_fast(exc):
                    raise
                if not self._is_retryable(exc) or retries >= self.max_retries:
                    raise
                delay = self.backoff_seconds(retries)
                retries += 1
                self.sleep_fn(delay)

    def _should_fail_fast(self, exc: Exception) -> bool:
        if isinstance(exc, ValueError):
            return True
        status_code = _status_code(exc)
        return status_code in _AUTH_STATUS_CODES

    def _is_retryable(self, exc: Exception) -> bool:
        if isinstance(exc, (TimeoutError, ConnectionError)):
            return True
        if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
            return True
        status_code = _status_code(exc)
        if status_code is None:
            return False
        return status_code >= 500 or status_code == 429


def _status_code(exc: Exception) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None
