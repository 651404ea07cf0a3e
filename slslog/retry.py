"""Retrying operations with exponential back-off and deadlines."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, TypeVar

T = TypeVar("T")

ConditionResult = Tuple[bool, Optional[BaseException]]


class RetryTimeoutError(TimeoutError):
    """Raised when retrying stops because the deadline passed."""

    def __init__(self, last_error: BaseException | None = None):
        super().__init__(f"stopped retrying err: {last_error}: deadline exceeded")
        self.last_error = last_error


@dataclass
class ExponentialBackOff:
    """Randomised, growing intervals in seconds; ``None`` once the time budget is spent.

    A ``max_elapsed_time`` of zero never stops.
    """

    initial_interval: float = 0.5
    randomization_factor: float = 0.5
    multiplier: float = 1.5
    max_interval: float = 60.0
    max_elapsed_time: float = 900.0
    _current: float = field(init=False, repr=False, default=0.0)
    _start: float = field(init=False, repr=False, default=0.0)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._current = self.initial_interval
        self._start = time.monotonic()

    def next_backoff(self) -> float | None:
        elapsed = time.monotonic() - self._start
        if self.max_elapsed_time and elapsed > self.max_elapsed_time:
            return None
        delta = self.randomization_factor * self._current
        low = self._current - delta
        high = self._current + delta
        interval = low + random.random() * (high - low)
        if self._current >= self.max_interval / self.multiplier:
            self._current = self.max_interval
        else:
            self._current *= self.multiplier
        return interval


def _deadline(timeout: float | None) -> float | None:
    return None if timeout is None else time.monotonic() + timeout


def _expired(deadline: float | None) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def _pause(delay: float, deadline: float | None) -> bool:
    """Sleep for ``delay``; return False if the deadline came first."""
    if deadline is None:
        time.sleep(delay)
        return True
    remaining = deadline - time.monotonic()
    if remaining <= delay:
        time.sleep(max(remaining, 0.0))
        return False
    time.sleep(delay)
    return True


def retry(operation: Callable[[], T], timeout: float | None = None) -> T:
    """Run ``operation`` until it stops raising, with the default back-off."""
    return retry_with_backoff(operation, ExponentialBackOff(), timeout)


def retry_with_backoff(
    operation: Callable[[], T],
    backoff: ExponentialBackOff,
    timeout: float | None = None,
) -> T:
    """Run ``operation`` until it returns; re-raise its last error when the back-off gives up."""
    deadline = _deadline(timeout)
    backoff.reset()
    last: BaseException | None = None
    while True:
        if _expired(deadline):
            raise RetryTimeoutError(last) from last
        try:
            return operation()
        except Exception as exc:
            last = exc
        delay = backoff.next_backoff()
        if delay is None:
            raise last
        if not _pause(delay, deadline):
            raise RetryTimeoutError(last) from last


def retry_with_condition(
    operation: Callable[[], ConditionResult],
    backoff: ExponentialBackOff,
    timeout: float | None = None,
) -> None:
    """Run ``operation`` while it asks for a retry.

    ``operation`` returns ``(need_retry, error)``. When it stops asking for a
    retry, or the back-off gives up, the last error, if any, is raised.
    """
    deadline = _deadline(timeout)
    backoff.reset()
    last: BaseException | None = None
    while True:
        if _expired(deadline):
            raise RetryTimeoutError(last) from last
        need_retry, last = operation()
        if not need_retry:
            break
        delay = backoff.next_backoff()
        if delay is None:
            break
        if not _pause(delay, deadline):
            raise RetryTimeoutError(last) from last
    if last is not None:
        raise last


def retry_with_attempt(
    operation: Callable[[], ConditionResult],
    max_attempt: int,
    timeout: float | None = None,
) -> None:
    """Like :func:`retry_with_condition`, but with at most ``max_attempt`` calls."""
    deadline = _deadline(timeout)
    backoff = ExponentialBackOff()
    last: BaseException | None = None
    for attempt in range(max_attempt):
        if _expired(deadline):
            raise RetryTimeoutError(last) from last
        if attempt:
            delay = backoff.next_backoff()
            if delay is None:
                break
            time.sleep(delay)
        need_retry, last = operation()
        if not need_retry:
            break
    if last is not None:
        raise last