# pagesync/core/synchronizer.py
from __future__ import annotations

"""Synchronizer
---------------
Polls a "locate + operate" closure until it succeeds or a deadline passes.

Each attempt is classified into one outcome (success, retryable failure,
fatal failure) and `next_state()` is the single place that decides between
polling again, succeeding and failing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from pagesync.core.errors import SyncTimeoutError, retry_kind_of
from pagesync.utils.config import Settings, get_settings
from pagesync.utils.logger import get_logger
from pagesync.utils.timing import now_ms, sleep_ms

T = TypeVar("T")

log = get_logger(__name__)


class SyncState(str, Enum):
    polling = "polling"
    succeeded = "succeeded"
    failed = "failed"


# ---------- Attempt outcomes ----------

@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class RetryableFailure:
    error: Exception


@dataclass(frozen=True)
class FatalFailure:
    error: Exception


AttemptOutcome = Union[Success[Any], RetryableFailure, FatalFailure]


def attempt(fn: Callable[[], T]) -> AttemptOutcome:
    """Run `fn` once and classify what happened."""
    try:
        return Success(fn())
    except Exception as exc:
        if retry_kind_of(exc) is not None:
            return RetryableFailure(exc)
        return FatalFailure(exc)


def next_state(outcome: AttemptOutcome, now: int, deadline: int) -> SyncState:
    if isinstance(outcome, Success):
        return SyncState.succeeded
    if isinstance(outcome, FatalFailure):
        return SyncState.failed
    return SyncState.polling if now < deadline else SyncState.failed


def _fields(attempts: int, wait: int, error: Exception, **more: Any) -> dict:
    return {"attempt": attempts, "wait_ms": wait, "error": type(error).__name__, **more}


# ---------- Synchronizer ----------

class Synchronizer:
    """
    Blocking retry loop with a deadline.

    `default_wait_ms` is an int or a zero-argument callable returning one; a
    callable is read on every `synchronize()` call, which is how
    `from_settings()` follows `get_settings.cache_clear()` reloads.
    `clock` returns monotonic milliseconds and `sleep` blocks for a number of
    milliseconds; both are injectable so the loop can be driven by a fake
    clock in tests.
    """

    def __init__(
        self,
        default_wait_ms: Union[int, Callable[[], int]] = 2000,
        poll_interval_ms: int = 50,
        *,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[int], None] = sleep_ms,
    ) -> None:
        if not callable(default_wait_ms) and default_wait_ms < 0:
            raise ValueError("default_wait_ms must be >= 0")
        if poll_interval_ms < 1:
            raise ValueError("poll_interval_ms must be >= 1")
        self._default_wait = default_wait_ms
        self.poll_interval_ms = poll_interval_ms
        self._clock = clock
        self._sleep = sleep

    @property
    def default_wait_ms(self) -> int:
        wait = self._default_wait() if callable(self._default_wait) else self._default_wait
        if wait < 0:
            raise ValueError("default_wait_ms must be >= 0")
        return wait

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "Synchronizer":
        """
        Build from explicit settings, or follow the process-wide settings
        when none are given (the default wait is then looked up per call).
        """
        if settings is not None:
            return cls(settings.DEFAULT_WAIT_MS, settings.POLL_INTERVAL_MS, **kwargs)
        return cls(lambda: get_settings().DEFAULT_WAIT_MS, get_settings().POLL_INTERVAL_MS, **kwargs)

    def synchronize(self, fn: Callable[[], T], wait_ms: Optional[int] = None) -> T:
        """
        Call `fn` until it returns, raises a fatal error, or `wait_ms` elapses.

        `wait_ms=None` uses the default wait; `wait_ms=0` means exactly one
        attempt. On timeout a SyncTimeoutError chained from the last retryable
        error is raised. Fatal errors propagate unchanged.
        """
        wait = self.default_wait_ms if wait_ms is None else max(0, int(wait_ms))
        deadline = self._clock() + wait
        attempts = 0

        while True:
            attempts += 1
            outcome = attempt(fn)
            now = self._clock()
            state = next_state(outcome, now, deadline)

            if state is SyncState.succeeded:
                if attempts > 1:
                    log.debug(f"Succeeded after {attempts} attempts", extra={"attempt": attempts, "wait_ms": wait})
                return outcome.value

            if state is SyncState.polling:
                log.debug(
                    f"Attempt {attempts} failed with {type(outcome.error).__name__}: {outcome.error} "
                    f"({deadline - now} ms left)",
                    extra=_fields(attempts, wait, outcome.error, remaining_ms=deadline - now),
                )
                self._sleep(min(self.poll_interval_ms, deadline - now))
                continue

            if isinstance(outcome, FatalFailure):
                log.warning(
                    f"Fatal error on attempt {attempts}: {type(outcome.error).__name__}: {outcome.error}",
                    extra=_fields(attempts, wait, outcome.error),
                )
                raise outcome.error

            log.warning(
                f"Timed out after {wait} ms and {attempts} attempt(s): {outcome.error}",
                extra=_fields(attempts, wait, outcome.error, remaining_ms=0),
            )
            raise SyncTimeoutError(outcome.error, wait_ms=wait, attempts=attempts) from outcome.error


__all__ = [
    "SyncState",
    "Success",
    "RetryableFailure",
    "FatalFailure",
    "AttemptOutcome",
    "attempt",
    "next_state",
    "Synchronizer",
]
