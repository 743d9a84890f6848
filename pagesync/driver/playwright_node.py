# pagesync/driver/playwright_node.py
from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Union

from playwright.sync_api import Error as PWError, Locator, Page, TimeoutError as PWTimeoutError

from pagesync.core.errors import (
    AmbiguousMatch,
    ElementNotFound,
    InvalidLocator,
    StaleElementError,
    UnselectNotAllowed,
)
from pagesync.core.locator import LocatorKind
from pagesync.utils.config import get_settings
from pagesync.utils.logger import get_logger

log = get_logger(__name__)

Root = Union[Page, Locator]

# Playwright messages that mean "the element went away under us"
_STALE_MARKERS = (
    "not attached",
    "detached",
    "execution context was destroyed",
)

_FIELD_CSS = (
    'input:not([type="submit"]):not([type="image"]):not([type="radio"])'
    ':not([type="checkbox"]):not([type="hidden"]):not([type="file"]):not([type="button"])'
    ':not([type="reset"]), textarea'
)
_BUTTON_CSS = 'button, input[type="submit"], input[type="reset"], input[type="image"], input[type="button"]'

_FIELD_KINDS = {
    LocatorKind.fillable_field: _FIELD_CSS,
    LocatorKind.radio_button: 'input[type="radio"]',
    LocatorKind.checkbox: 'input[type="checkbox"]',
    LocatorKind.select: "select",
    LocatorKind.file_field: 'input[type="file"]',
}

_ALLOWED_FILTERS = {LocatorKind.link: {"href", "exact"}}
_DEFAULT_FILTERS = {"exact"}


# ------------- Locator building -------------

def _attr(name: str, value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'[{name}="{escaped}"]'


def _link(root: Root, value: str, exact: bool, href: Optional[str]) -> Locator:
    loc = root.get_by_role("link", name=value, exact=exact).or_(root.locator(f"a{_attr('id', value)}"))
    if href is not None:
        loc = loc.and_(root.locator(f"a{_attr('href', href)}"))
    return loc


def _button(root: Root, value: str, exact: bool) -> Locator:
    by_attr = root.locator(_BUTTON_CSS).and_(root.locator(f"{_attr('id', value)}, {_attr('value', value)}"))
    return root.get_by_role("button", name=value, exact=exact).or_(by_attr)


def _field(root: Root, base_css: str, value: str, exact: bool) -> Locator:
    by_attr = root.locator(f"{_attr('id', value)}, {_attr('name', value)}, {_attr('placeholder', value)}")
    return root.locator(base_css).and_(root.get_by_label(value, exact=exact).or_(by_attr))


def _option(root: Root, value: str, exact: bool) -> Locator:
    text = re.compile(rf"^\s*{re.escape(value)}\s*$") if exact else value
    return root.locator("option").filter(has_text=text)


def build_locator(root: Root, kind: LocatorKind, value: str, filters: Mapping[str, Any]) -> Locator:
    """
    Translate (kind, value, filters) into a Playwright Locator using its
    built-in role, label and CSS engines. Unknown filters are rejected.
    """
    allowed = _ALLOWED_FILTERS.get(kind, _DEFAULT_FILTERS)
    unknown = set(filters) - allowed
    if unknown:
        raise InvalidLocator(f"invalid filter(s) for {kind.value}: {', '.join(sorted(unknown))}")
    exact = bool(filters.get("exact", False))

    if kind == LocatorKind.link:
        return _link(root, value, exact, filters.get("href"))
    if kind == LocatorKind.button:
        return _button(root, value, exact)
    if kind == LocatorKind.link_or_button:
        return _link(root, value, exact, None).or_(_button(root, value, exact))
    if kind == LocatorKind.option:
        return _option(root, value, exact)
    return _field(root, _FIELD_KINDS[kind], value, exact)


# ------------- Error translation -------------

def _is_stale(exc: PWError) -> bool:
    msg = str(exc).lower()
    return isinstance(exc, PWTimeoutError) or any(m in msg for m in _STALE_MARKERS)


@contextmanager
def _driver_errors() -> Iterator[None]:
    """Re-raise Playwright errors that a later attempt may not hit as StaleElementError."""
    try:
        yield
    except PWError as exc:
        if _is_stale(exc):
            log.debug(f"Driver error treated as stale: {type(exc).__name__}")
            raise StaleElementError(str(exc).splitlines()[0] if str(exc) else type(exc).__name__) from exc
        raise


# ------------- Node -------------

class PlaywrightNode:
    """
    The page root or one located element.

    A node returned by `find` matched exactly one element when it was
    created; it is meant for a single attempt and is not cached.
    """

    def __init__(self, root: Root, *, action_timeout_ms: Optional[int] = None) -> None:
        self._root = root
        self._timeout = get_settings().DRIVER_ACTION_TIMEOUT_MS if action_timeout_ms is None else action_timeout_ms

    @property
    def locator(self) -> Root:
        return self._root

    def find(self, kind: LocatorKind, value: str, filters: Mapping[str, Any]) -> "PlaywrightNode":
        try:
            kind = LocatorKind(kind)
        except ValueError as exc:
            raise InvalidLocator(f"unknown locator kind: {kind!r}") from exc
        if not str(value).strip():
            raise InvalidLocator(f"empty locator for {kind.value}")

        loc = build_locator(self._root, kind, str(value), filters)
        with _driver_errors():
            count = loc.count()
        if count == 0:
            raise ElementNotFound(f"Unable to find {kind.value} {value!r}")
        if count > 1:
            raise AmbiguousMatch(f"Ambiguous match, found {count} elements matching {kind.value} {value!r}")
        return PlaywrightNode(loc, action_timeout_ms=self._timeout)

    def click(self) -> None:
        with _driver_errors():
            self._root.click(timeout=self._timeout)

    def set(self, value: Any) -> None:
        with _driver_errors():
            _tag, typ = self._root.evaluate(
                "e => [e.tagName.toLowerCase(), (e.getAttribute('type') || '').toLowerCase()]"
            )
            if typ == "file":
                files = value if isinstance(value, (list, tuple)) else [value]
                self._root.set_input_files(list(files), timeout=self._timeout)
            elif isinstance(value, bool) or typ in ("checkbox", "radio"):
                self._root.set_checked(bool(value), timeout=self._timeout)
            else:
                self._root.fill("" if value is None else str(value), timeout=self._timeout)

    def _select_state(self) -> tuple[Locator, str, bool, list[str]]:
        select = self._root.locator("xpath=ancestor::select[1]")
        value = self._root.evaluate("o => o.value")
        multiple = bool(select.evaluate("s => s.multiple"))
        current = select.evaluate("s => Array.from(s.selectedOptions).map(o => o.value)")
        return select, value, multiple, list(current)

    def select_option(self) -> None:
        with _driver_errors():
            select, value, multiple, current = self._select_state()
            if not multiple:
                select.select_option(value=value, timeout=self._timeout)
                return
            if value not in current:
                current.append(value)
            select.select_option(value=current, timeout=self._timeout)

    def unselect_option(self) -> None:
        with _driver_errors():
            select, value, multiple, current = self._select_state()
            if not multiple:
                raise UnselectNotAllowed("Cannot unselect option from single select box.")
            select.select_option(value=[v for v in current if v != value], timeout=self._timeout)
