# pagesync/core/actions.py
from __future__ import annotations

"""Action facade
----------------
One method per user intent (click, fill in, choose, check, select, attach).
Each method shapes its arguments into an ActionRequest and hands
`request.perform` to the Synchronizer; none of them waits on its own.

Options may be given as a mapping, as keyword arguments, or both:

    actions.fill_in("Name", {"with": "Bob"})
    actions.fill_in("Name", with_="Bob")
    actions.select("March", from_="Month", wait=5000)

`wait` (milliseconds) overrides the default wait for that call; 0 or absent
means the default. It is never forwarded to the element lookup.
"""

import math
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import pydantic

from pagesync.core.errors import FileNotFound, ValidationError
from pagesync.core.locator import ActionRequest, Locator, LocatorKind, Mutation, SearchContext
from pagesync.core.synchronizer import Synchronizer
from pagesync.utils.config import Settings
from pagesync.utils.logger import get_logger, log_context
from pagesync.utils.timing import measure

__all__ = ["Actions"]

log = get_logger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

# Python keywords cannot be keyword arguments, so accept a trailing underscore
_KEYWORD_ALIASES = {"with_": "with", "from_": "from"}


# ------------- Option helpers -------------

def _normalize_options(options: Any, kwargs: Mapping[str, Any]) -> Dict[str, Any]:
    if options is not None and not isinstance(options, Mapping):
        raise ValidationError(f"options must be a mapping, got {type(options).__name__}")
    merged: Dict[str, Any] = dict(options or {})
    for key, val in kwargs.items():
        merged[_KEYWORD_ALIASES.get(key, key)] = val
    return merged


def _split_wait(opts: Dict[str, Any]) -> Tuple[Optional[int], Dict[str, Any]]:
    """Pop `wait` from the options; 0/None fall back to the default wait."""
    filters = dict(opts)
    wait = filters.pop("wait", None)
    if wait is None or wait is False:
        return None, filters
    if isinstance(wait, bool) or not isinstance(wait, (int, float)) or wait < 0:
        raise ValidationError(f"wait must be a non-negative number of milliseconds, got {wait!r}")
    return (math.ceil(wait) or None), filters


def _locator(kind: LocatorKind, value: Any, filters: Optional[Dict[str, Any]] = None) -> Locator:
    try:
        return Locator(kind=kind, value=value, filters=filters or {})
    except pydantic.ValidationError as exc:
        msg = "; ".join(err["msg"] for err in exc.errors())
        raise ValidationError(f"invalid {kind.value} locator {value!r}: {msg}") from exc


def _as_paths(path: Union[PathLike, Iterable[PathLike]]) -> list[str]:
    if isinstance(path, (str, os.PathLike)):
        return [os.fspath(path)]
    return [os.fspath(p) for p in path]


# ------------- Facade -------------

class Actions:
    """High-level page actions that wait for the page to catch up."""

    def __init__(
        self,
        context: SearchContext,
        synchronizer: Optional[Synchronizer] = None,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        self.context = context
        self.synchronizer = synchronizer or Synchronizer.from_settings(settings)

    def _run(self, request: ActionRequest) -> None:
        log.debug(f"{request.describe()} (wait={request.wait_ms if request.wait_ms is not None else 'default'})")
        with log_context(action=request.mutation.value, locator=request.locator.describe()):
            self.synchronizer.synchronize(lambda: request.perform(self.context), request.wait_ms)

    def _click(self, kind: LocatorKind, locator: str, options: Any, kwargs: Mapping[str, Any]) -> None:
        wait, filters = _split_wait(_normalize_options(options, kwargs))
        self._run(ActionRequest(_locator(kind, locator, filters), Mutation.click, wait_ms=wait))

    def _set(self, kind: LocatorKind, locator: str, value: Any, options: Any, kwargs: Mapping[str, Any]) -> None:
        wait, filters = _split_wait(_normalize_options(options, kwargs))
        self._run(ActionRequest(_locator(kind, locator, filters), Mutation.set, value, wait))

    def _option(self, mutation: Mutation, value: str, options: Any, kwargs: Mapping[str, Any]) -> None:
        wait, filters = _split_wait(_normalize_options(options, kwargs))
        within = None
        if "from" in filters:
            select_box = filters.pop("from")
            within = _locator(LocatorKind.select, select_box)
        option = _locator(LocatorKind.option, value, filters)
        self._run(ActionRequest(option, mutation, wait_ms=wait, within=within))

    # ---- clicking ----

    @measure("click_link_or_button")
    def click_link_or_button(self, locator: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """Find a link or button by id, text, value or image alt text and click it."""
        self._click(LocatorKind.link_or_button, locator, options, kwargs)

    click_on = click_link_or_button

    @measure("click_link")
    def click_link(self, locator: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """
        Find a link by id, text or image alt text and click it.
        `href` restricts the match to links with that href.
        """
        self._click(LocatorKind.link, locator, options, kwargs)

    @measure("click_button")
    def click_button(self, locator: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """Find a button by id, text or value and click it."""
        self._click(LocatorKind.button, locator, options, kwargs)

    # ---- fields ----

    @measure("fill_in")
    def fill_in(self, locator: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """
        Locate a text field or text area by name, id or label and fill it in.

            page.fill_in("Name", with_="Bob")
        """
        opts = _normalize_options(options, kwargs)
        if "with" not in opts:
            raise ValidationError("fill_in requires a mapping containing 'with'")
        value = opts.pop("with")
        self._set(LocatorKind.fillable_field, locator, value, opts, {})

    @measure("choose")
    def choose(self, locator: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """Find a radio button by name, id or label and mark it as checked."""
        self._set(LocatorKind.radio_button, locator, True, options, kwargs)

    @measure("check")
    def check(self, locator: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """Find a check box by name, id or label and mark it as checked."""
        self._set(LocatorKind.checkbox, locator, True, options, kwargs)

    @measure("uncheck")
    def uncheck(self, locator: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """Find a check box by name, id or label and mark it as unchecked."""
        self._set(LocatorKind.checkbox, locator, False, options, kwargs)

    # ---- select boxes ----

    @measure("select")
    def select(self, value: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """
        Select an option. With `from`, the select box (id, name or label) is
        found first and the option is looked up inside it.

            page.select("March", from_="Month")
        """
        self._option(Mutation.select_option, value, options, kwargs)

    @measure("unselect")
    def unselect(self, value: str, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """Unselect an option of a multiple select; see `select` for `from`."""
        self._option(Mutation.unselect_option, value, options, kwargs)

    # ---- files ----

    @measure("attach_file")
    def attach_file(
        self,
        locator: str,
        path: Union[PathLike, Iterable[PathLike]],
        options: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        """
        Find a file field by name, id or label and attach one or more files.
        Every path must exist before the field is even looked up.
        """
        paths = _as_paths(path)
        for p in paths:
            if not Path(p).exists():
                raise FileNotFound(f"cannot attach file, {p} does not exist")
        self._set(LocatorKind.file_field, locator, paths, options, kwargs)
