# pagesync/session.py
from __future__ import annotations

"""Browser session
------------------
Binds the action facade to a Playwright page and owns the browser lifetime.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from playwright.sync_api import Page, sync_playwright

from pagesync.core.actions import Actions
from pagesync.core.synchronizer import Synchronizer
from pagesync.driver.playwright_node import PlaywrightNode
from pagesync.utils.config import Settings, get_settings
from pagesync.utils.logger import get_logger

log = get_logger(__name__)


class Session(Actions):
    """Actions against one page, plus navigation."""

    def __init__(
        self,
        page: Page,
        *,
        settings: Optional[Settings] = None,
        synchronizer: Optional[Synchronizer] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.page = page
        root = PlaywrightNode(page, action_timeout_ms=self.settings.DRIVER_ACTION_TIMEOUT_MS)
        super().__init__(root, synchronizer, settings=self.settings)

    def visit(self, url: str) -> None:
        log.info(f"Visiting {url}")
        self.page.goto(url, wait_until="domcontentloaded", timeout=self.settings.PAGE_LOAD_TIMEOUT)

    @property
    def current_url(self) -> str:
        return self.page.url


@contextmanager
def open_session(settings: Optional[Settings] = None) -> Iterator[Session]:
    """Launch the configured browser, yield a Session on a fresh page, close on exit."""
    s = settings or get_settings()
    with sync_playwright() as pw:
        browser = getattr(pw, s.BROWSER_TYPE.value).launch(**s.playwright_launch_kwargs())
        log.debug(f"Launched {s.BROWSER_TYPE.value} (headless={s.HEADLESS})")
        try:
            context = browser.new_context(**s.playwright_context_kwargs())
            yield Session(context.new_page(), settings=s)
        finally:
            browser.close()
