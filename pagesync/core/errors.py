# pagesync/core/errors.py
from __future__ import annotations

"""Error taxonomy
-----------------
Everything the facade or the synchronizer raises derives from PageSyncError.

Retryable failures are recognised by their `retry_kind` tag rather than by
their concrete class, so a driver adapter can tag its own exception types
with `mark_retryable()` and the synchronizer stays driver-agnostic.
"""

from enum import Enum
from typing import Optional


class RetryKind(str, Enum):
    not_found = "not_found"
    stale = "stale"
    ambiguous = "ambiguous"


class PageSyncError(Exception):
    """Base class for pagesync errors."""


# ---------- Fatal ----------

class ValidationError(PageSyncError):
    """Malformed caller input, e.g. fill_in without a `with` value."""


class PreconditionError(PageSyncError):
    """A precondition checked before any attempt failed."""


class FileNotFound(PreconditionError):
    pass


class InvalidLocator(PageSyncError):
    """The locator itself is malformed; waiting will not fix it."""


class UnselectNotAllowed(PageSyncError):
    """Options of a single select box cannot be unselected."""


# ---------- Retryable ----------

class RetryableError(PageSyncError):
    retry_kind: RetryKind


class ElementNotFound(RetryableError):
    retry_kind = RetryKind.not_found


class StaleElementError(RetryableError):
    retry_kind = RetryKind.stale


class AmbiguousMatch(RetryableError):
    retry_kind = RetryKind.ambiguous


# ---------- Terminal ----------

class SyncTimeoutError(PageSyncError, TimeoutError):
    """The deadline passed while only retryable errors were observed."""

    def __init__(self, last_error: BaseException, *, wait_ms: int, attempts: int) -> None:
        self.last_error = last_error
        self.wait_ms = wait_ms
        self.attempts = attempts
        super().__init__(
            f"gave up after {wait_ms} ms ({attempts} attempt(s)); last error: "
            f"{type(last_error).__name__}: {last_error}"
        )


# ---------- Classification ----------

def retry_kind_of(exc: BaseException) -> Optional[RetryKind]:
    """Return the retry tag carried by `exc`, or None when the error is fatal."""
    kind = getattr(exc, "retry_kind", None)
    return kind if isinstance(kind, RetryKind) else None


def mark_retryable(exc: BaseException, kind: RetryKind) -> BaseException:
    """Tag a foreign exception as retryable and return it for raising."""
    exc.retry_kind = kind  # type: ignore[attr-defined]
    return exc


__all__ = [
    "RetryKind",
    "PageSyncError",
    "ValidationError",
    "PreconditionError",
    "FileNotFound",
    "InvalidLocator",
    "UnselectNotAllowed",
    "RetryableError",
    "ElementNotFound",
    "StaleElementError",
    "AmbiguousMatch",
    "SyncTimeoutError",
    "retry_kind_of",
    "mark_retryable",
]
