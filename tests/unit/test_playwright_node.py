from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PWError, TimeoutError as PWTimeoutError

from pagesync.core.errors import (
    AmbiguousMatch,
    ElementNotFound,
    InvalidLocator,
    RetryKind,
    StaleElementError,
    UnselectNotAllowed,
    retry_kind_of,
)
from pagesync.core.locator import LocatorKind
from pagesync.driver import playwright_node
from pagesync.driver.playwright_node import PlaywrightNode, build_locator


@pytest.fixture
def matched(monkeypatch):
    """Replace locator building with a mock whose count() we control."""
    loc = MagicMock(name="locator")
    monkeypatch.setattr(playwright_node, "build_locator", lambda root, kind, value, filters: loc)
    return loc


# ---------- find ----------


def test_find_returns_node_for_single_match(matched):
    matched.count.return_value = 1
    node = PlaywrightNode(MagicMock(), action_timeout_ms=100).find(LocatorKind.button, "Save", {})
    assert isinstance(node, PlaywrightNode)
    assert node.locator is matched


def test_find_without_match_is_not_found(matched):
    matched.count.return_value = 0
    with pytest.raises(ElementNotFound, match="button 'Save'"):
        PlaywrightNode(MagicMock(), action_timeout_ms=100).find(LocatorKind.button, "Save", {})


def test_find_with_several_matches_is_ambiguous(matched):
    matched.count.return_value = 3
    with pytest.raises(AmbiguousMatch, match="found 3"):
        PlaywrightNode(MagicMock(), action_timeout_ms=100).find("link", "Home", {})


def test_find_during_navigation_is_stale(matched):
    matched.count.side_effect = PWError("Execution context was destroyed, most likely because of a navigation")
    with pytest.raises(StaleElementError):
        PlaywrightNode(MagicMock(), action_timeout_ms=100).find(LocatorKind.link, "Home", {})


@pytest.mark.parametrize("kind, value", [("widget", "x"), (LocatorKind.button, "   ")])
def test_find_rejects_malformed_locators(kind, value):
    with pytest.raises(InvalidLocator):
        PlaywrightNode(MagicMock(), action_timeout_ms=100).find(kind, value, {})


def test_build_locator_rejects_unknown_filters():
    with pytest.raises(InvalidLocator, match="href"):
        build_locator(MagicMock(), LocatorKind.button, "Save", {"href": "/x"})


def test_build_locator_applies_href_to_links():
    root = MagicMock()
    build_locator(root, LocatorKind.link, "Home", {"href": "/home", "exact": True})
    root.get_by_role.assert_called_once_with("link", name="Home", exact=True)
    root.get_by_role.return_value.or_.return_value.and_.assert_called_once()
    root.locator.assert_any_call('a[href="/home"]')


def test_build_locator_scopes_fields_by_type():
    root = MagicMock()
    build_locator(root, LocatorKind.checkbox, "Terms", {})
    root.locator.assert_any_call('input[type="checkbox"]')
    root.get_by_label.assert_called_once_with("Terms", exact=False)


# ---------- mutations ----------


def _node():
    loc = MagicMock(name="element")
    return PlaywrightNode(loc, action_timeout_ms=250), loc


def test_click_timeout_is_stale():
    node, loc = _node()
    loc.click.side_effect = PWTimeoutError("Timeout 250ms exceeded.")
    with pytest.raises(StaleElementError) as ei:
        node.click()
    assert retry_kind_of(ei.value) is RetryKind.stale
    assert isinstance(ei.value.__cause__, PWTimeoutError)


def test_detached_element_is_stale():
    node, loc = _node()
    loc.click.side_effect = PWError("Element is not attached to the DOM")
    with pytest.raises(StaleElementError):
        node.click()


def test_other_driver_errors_propagate():
    node, loc = _node()
    loc.click.side_effect = PWError("Target page, context or browser has been closed")
    with pytest.raises(PWError):
        node.click()


def test_set_fills_text_fields():
    node, loc = _node()
    loc.evaluate.return_value = ["input", "text"]
    node.set("Bob")
    loc.fill.assert_called_once_with("Bob", timeout=250)


def test_set_checks_checkboxes():
    node, loc = _node()
    loc.evaluate.return_value = ["input", "checkbox"]
    node.set(False)
    loc.set_checked.assert_called_once_with(False, timeout=250)


def test_set_attaches_files():
    node, loc = _node()
    loc.evaluate.return_value = ["input", "file"]
    node.set(["/tmp/a.png", "/tmp/b.png"])
    loc.set_input_files.assert_called_once_with(["/tmp/a.png", "/tmp/b.png"], timeout=250)


def _option_node(multiple, current, value):
    node, loc = _node()
    select = MagicMock(name="select")
    loc.locator.return_value = select
    loc.evaluate.return_value = value
    select.evaluate.side_effect = [multiple, current]
    return node, select


def test_select_option_on_single_select():
    node, select = _option_node(False, ["jan"], "mar")
    node.select_option()
    select.select_option.assert_called_once_with(value="mar", timeout=250)


def test_select_option_keeps_existing_multi_selection():
    node, select = _option_node(True, ["red"], "blue")
    node.select_option()
    select.select_option.assert_called_once_with(value=["red", "blue"], timeout=250)


def test_unselect_option_removes_from_multi_selection():
    node, select = _option_node(True, ["red", "blue"], "red")
    node.unselect_option()
    select.select_option.assert_called_once_with(value=["blue"], timeout=250)


def test_unselect_option_on_single_select_is_not_allowed():
    node, select = _option_node(False, ["jan"], "jan")
    with pytest.raises(UnselectNotAllowed):
        node.unselect_option()
    select.select_option.assert_not_called()
