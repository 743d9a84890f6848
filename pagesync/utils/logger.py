# pagesync/utils/logger.py
from __future__ import annotations

"""Logging
----------
Everything logs under the `pagesync` logger; the host application's root
logger is never touched. The console gets rich output, and JSON lines go to a
file when LOG_TO_FILE is set or while `file_logging()` is active.

Records carry structured fields from two places:

* `log_context(...)` scopes fields to a block (run id, script, the action
  being synchronized) through a ContextVar, so nested calls see them too;
* `extra=` on a single call (the Synchronizer's attempt counters).

In the JSON output, retry-loop fields are grouped under "sync" and the rest
under "context":

    {"ts": "...", "level": "DEBUG", "logger": "pagesync.core.synchronizer",
     "msg": "Attempt 2 failed ...",
     "sync": {"action": "click", "locator": "button 'Save'", "attempt": 2,
              "wait_ms": 2000, "remaining_ms": 1950, "error": "ElementNotFound"},
     "context": {"run_id": "20261016T120000Z", "script": "checkout"}}
"""

import contextlib
import contextvars
import json
import logging
import os
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Optional, Tuple, Union

from rich.console import Console
from rich.logging import RichHandler

from pagesync.utils.config import LogLevel, get_settings


__all__ = [
    "SyncLogger",
    "configure_logging",
    "get_logger",
    "log_context",
    "file_logging",
]

PACKAGE_LOGGER = "pagesync"

# keys produced by the retry loop; everything else is ambient context
SYNC_FIELDS = ("action", "locator", "attempt", "wait_ms", "remaining_ms", "error")

_MAX_LOG_BYTES = 5 * 1024 * 1024

_fields: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar("pagesync_log_fields", default={})
_lock = threading.Lock()
_configured = False


class SyncRecordFormatter(logging.Formatter):
    """JSON lines with retry-loop fields split from ambient context."""

    def format(self, record: logging.LogRecord) -> str:
        fields: Mapping[str, Any] = getattr(record, "fields", None) or {}
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        sync = {k: fields[k] for k in SYNC_FIELDS if k in fields}
        if sync:
            payload["sync"] = sync
        context = {k: v for k, v in fields.items() if k not in SYNC_FIELDS}
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class SyncLogger(logging.LoggerAdapter):
    """
    Adapter that attaches the active `log_context` fields, its own bound
    fields and any per-call `extra` to the record as `record.fields`.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = {**_fields.get(), **(self.extra or {}), **(kwargs.pop("extra", None) or {})}
        kwargs["extra"] = {"fields": fields}
        return msg, kwargs

    def bind(self, **fields: Any) -> "SyncLogger":
        return SyncLogger(self.logger, {**(self.extra or {}), **fields})


def _to_level(level: Union[LogLevel, str, int]) -> int:
    if isinstance(level, int):
        return level
    name = level.value if isinstance(level, LogLevel) else str(level).upper()
    return logging.getLevelName(name) if name in LogLevel.__members__ else logging.INFO


def _rich_handler(colorized: bool) -> RichHandler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=colorized,
        omit_repeated_times=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _json_file_handler(path: Union[str, os.PathLike], backups: int) -> RotatingFileHandler:
    p = os.fspath(path)
    parent = os.path.dirname(p)
    if parent:
        os.makedirs(parent, exist_ok=True)
    handler = RotatingFileHandler(p, maxBytes=_MAX_LOG_BYTES, backupCount=backups, encoding="utf-8", delay=True)
    handler.setFormatter(SyncRecordFormatter())
    return handler


def configure_logging(level: Union[LogLevel, str, int, None] = None, *, force: bool = False) -> None:
    """
    Set up the package logger from settings. Runs once unless `force` is
    given; `level` overrides LOG_LEVEL (the CLI's --log-level).
    """
    global _configured
    with _lock:
        if _configured and not force:
            return

        settings = get_settings()
        lvl = _to_level(level if level is not None else settings.LOG_LEVEL)

        pkg = logging.getLogger(PACKAGE_LOGGER)
        for h in list(pkg.handlers):
            pkg.removeHandler(h)
            h.close()
        pkg.setLevel(lvl)
        pkg.addHandler(_rich_handler(settings.COLORIZED_OUTPUT))
        if settings.LOG_TO_FILE:
            pkg.addHandler(_json_file_handler(settings.LOG_FILE, backups=5))

        # Playwright chatter stays quiet unless debugging
        logging.getLogger("playwright").setLevel(max(lvl, logging.WARNING))
        _configured = True


def get_logger(name: Optional[str] = None, **fields: Any) -> SyncLogger:
    configure_logging()
    return SyncLogger(logging.getLogger(name or PACKAGE_LOGGER), fields)


@contextlib.contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach `fields` to every pagesync record logged inside the block."""
    token = _fields.set({**_fields.get(), **fields})
    try:
        yield
    finally:
        _fields.reset(token)


@contextlib.contextmanager
def file_logging(path: Union[str, os.PathLike]) -> Iterator[logging.Handler]:
    """Also write JSON lines to `path` for the duration of the block (one file per `pagesync run`)."""
    configure_logging()
    pkg = logging.getLogger(PACKAGE_LOGGER)
    handler = _json_file_handler(path, backups=3)
    pkg.addHandler(handler)
    try:
        yield handler
    finally:
        pkg.removeHandler(handler)
        handler.close()
