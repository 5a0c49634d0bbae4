"""Shared Playwright browser session.

One engine, one headless browser and one browsing context per run, so
cookies and the user-agent persist across every page opened through it.
"""

import threading
from typing import Optional

from loguru import logger
from playwright.sync_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    sync_playwright,
)

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)


class BrowserSession:
    """Lazily started browser session handing out pages.

    Lifecycle is Unstarted -> Started -> Closed. start() is idempotent,
    new_page() starts the session on demand, and close() is best-effort
    and terminal. All three are serialized by an internal lock.
    """

    def __init__(self, headless: bool = True, user_agent: str = DESKTOP_USER_AGENT):
        self.headless = headless
        self.user_agent = user_agent
        self._lock = threading.RLock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._closed = False

    @property
    def is_started(self) -> bool:
        return self._context is not None

    @property
    def is_closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Launch the browser and open the shared context (no-op if running).

        Raises:
            RuntimeError: If the session was already closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Browser session is closed")
            if self._context is not None:
                return

            try:
                self._playwright = sync_playwright().start()
                self._browser = self._playwright.chromium.launch(
                    headless=self.headless
                )
                self._context = self._browser.new_context(
                    user_agent=self.user_agent,
                    ignore_https_errors=True,
                )
            except Exception:
                self._release_resources()
                raise

            logger.info("Browser session started")

    def new_page(self) -> Page:
        """Open a new page in the shared context.

        The caller owns the page and must close it.
        """
        with self._lock:
            if self._context is None:
                self.start()
            return self._context.new_page()

    def close(self) -> None:
        """Release context, browser and engine, ignoring individual failures."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

            was_started = self._context is not None
            self._release_resources()

            if was_started:
                logger.info("Browser session closed")

    def _release_resources(self) -> None:
        """Close context, browser and engine in that order."""
        for name, resource, method in (
            ("context", self._context, "close"),
            ("browser", self._browser, "close"),
            ("playwright", self._playwright, "stop"),
        ):
            if resource is None:
                continue
            try:
                getattr(resource, method)()
            except Exception as e:
                logger.debug(f"Ignoring failure closing {name}: {e}")

        self._context = None
        self._browser = None
        self._playwright = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
