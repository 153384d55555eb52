from __future__ import annotations

import re
import time
from typing import List, Optional, Union

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page
from playwright.sync_api import sync_playwright


class NavigationError(Exception):
    """The target could not be reached (DNS, network, refused, load timeout)."""


class PageSession:
    """
    Thin wrapper around one Playwright `Page` and the browser behind it.

    Why this exists:
    - The runner only needs a handful of primitives (navigate, locate, read,
      fill, select, check, click), so it talks to this class, not to Playwright.
    - Tests swap it for a scripted fake with the same methods.
    - It owns the whole browser lifecycle of ONE run; `close()` releases it.
    """

    def __init__(self, page: Page, browser=None, playwright=None, close_delay_s: float = 0.0):
        self._page = page
        self._browser = browser
        self._playwright = playwright
        self._close_delay_s = close_delay_s
        self._closed = False

    @classmethod
    def launch(cls, headless: bool = True, close_delay_s: float = 0.0) -> "PageSession":
        # Started (not `with`) because the session outlives this call; close() stops it.
        p = sync_playwright().start()
        try:
            browser = p.chromium.launch(headless=headless)
            context = browser.new_context()
            page = context.new_page()
        except Exception:
            p.stop()
            raise
        return cls(page, browser=browser, playwright=p, close_delay_s=close_delay_s)

    # ---- navigation ----

    def navigate(self, url: str) -> str:
        """Go to `url` and block until the network is idle. Returns the landed URL."""
        try:
            self._page.goto(url, wait_until="networkidle")
        except PlaywrightError as e:
            raise NavigationError(f"Could not load {url}: {e.message}") from e
        return self._page.url

    def current_url(self) -> str:
        return self._page.url

    def click_expecting_navigation(self, handle: Locator, timeout_ms: int) -> bool:
        """
        Click `handle` while already waiting for the navigation it may cause.

        Returns False when the navigation never came or broke off (timeout,
        aborted request, detached frame). A failing click still raises.
        """
        # The waiter is armed BEFORE the click so a fast redirect is not missed.
        # `clicked` tells apart "the click failed" (an adapter error, re-raised)
        # from "the click worked but the page did not navigate cleanly" (normal).
        clicked = False
        try:
            with self._page.expect_navigation(wait_until="networkidle", timeout=timeout_ms):
                handle.click()
                clicked = True
        except PlaywrightError:
            if not clicked:
                raise
            return False
        return True

    # ---- element access ----

    def locate(
        self,
        selector: str,
        has_text: Optional[Union[str, re.Pattern]] = None,
        within: Optional[Locator] = None,
    ) -> List[Locator]:
        """All elements matching `selector` (optionally filtered by visible text). May be empty."""
        root = within if within is not None else self._page
        loc = root.locator(selector)
        if has_text is not None:
            loc = loc.filter(has_text=has_text)
        return loc.all()

    def read_text(self, handle: Locator) -> str:
        return handle.text_content() or ""

    def read_attribute(self, handle: Locator, name: str) -> Optional[str]:
        return handle.get_attribute(name)

    def fill(self, handle: Locator, text: str) -> None:
        handle.fill(text)

    def select_option(self, handle: Locator, label: Optional[str] = None, index: Optional[int] = None) -> None:
        if label is not None:
            handle.select_option(label=label)
        else:
            handle.select_option(index=index)

    def check(self, handle: Locator) -> None:
        handle.check()

    def click(self, handle: Locator) -> None:
        handle.click()

    def press_enter(self) -> None:
        self._page.keyboard.press("Enter")

    def pause(self, seconds: float) -> None:
        # Fixed delay; the page gives no signal worth waiting on here.
        time.sleep(seconds)

    # ---- lifecycle ----

    def close(self) -> None:
        # Idempotent: the controller may call this from its `finally` after a failure.
        if self._closed:
            return
        self._closed = True
        # Stopping playwright must happen even if closing the browser raises.
        try:
            if self._close_delay_s > 0:
                time.sleep(self._close_delay_s)
            if self._browser is not None:
                self._browser.close()
        finally:
            if self._playwright is not None:
                self._playwright.stop()
