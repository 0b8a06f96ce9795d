# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import time
from typing import Callable, TypeVar

T = TypeVar("T")


class RetryError(RuntimeError):
    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


def call_with_retry(
    fn: Callable[[], T],
    *,
    retries: int,
    delay: float,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_retry: Callable[[int, Exception], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call *fn* until it succeeds, at most *retries* times.

    retries: number of attempts
    delay: seconds between attempts (no pause after the last one)
    retry_on: exception types to retry
    on_retry: callback(attempt, exception), called after every failed attempt
    sleep: pause function, e.g. CancelToken.sleep so waits can be interrupted
    """
    last_exc = None
    for attempt in range(1, retries + 1):
        try:
            return fn()
        except retry_on as exc:
            last_exc = exc
            if on_retry:
                on_retry(attempt, exc)
            if attempt == retries:
                break
            sleep(delay)
    name = getattr(fn, "__name__", repr(fn))
    raise RetryError(f"{name} failed after {retries} retries", retries) from last_exc
