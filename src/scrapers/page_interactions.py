"""Best-effort interactions with rendered pages.

Cookie banners, infinite scroll and "load more" buttons differ on every
site, so each helper tries a few common shapes and treats any Playwright
failure as "nothing to do".
"""

import re

from loguru import logger
from playwright.sync_api import Page

COOKIE_BUTTON_NAMES = ["accept", "agree", "ok", "got it"]
COOKIE_CLICK_TIMEOUT_MS = 1500

LOAD_MORE_SELECTORS = [
    'button:has-text("Load more")',
    'button:has-text("Show more")',
    'button:has-text("View more")',
    'a:has-text("Load more")',
    'a:has-text("Show more")',
    "button[aria-label*='load' i]",
    "[role=button][aria-label*='load more' i]",
]
LOAD_MORE_CLICK_TIMEOUT_MS = 3000


def dismiss_cookie_banners(page: Page) -> None:
    """Click common consent buttons ("Accept", "Agree", ...) if present."""
    for name in COOKIE_BUTTON_NAMES:
        try:
            button = page.get_by_role("button", name=re.compile(name, re.IGNORECASE))
            if button.count() == 0:
                continue
            button.first.click(timeout=COOKIE_CLICK_TIMEOUT_MS)
            logger.debug(f"Clicked cookie button matching '{name}'")
        except Exception as e:
            logger.debug(f"Cookie button '{name}' not clickable: {e}")


def scroll_to_bottom(page: Page) -> None:
    try:
        page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
    except Exception as e:
        logger.debug(f"Scroll failed: {e}")


def click_load_more_once(page: Page) -> bool:
    """Click the first visible "load more"/"show more" control.

    Returns:
        True if a control was clicked
    """
    for selector in LOAD_MORE_SELECTORS:
        try:
            control = page.locator(selector)
            if control.count() > 0 and control.first.is_visible():
                control.first.click(timeout=LOAD_MORE_CLICK_TIMEOUT_MS)
                logger.debug(f"Clicked load-more control: {selector}")
                return True
        except Exception as e:
            logger.debug(f"Load-more control {selector} failed: {e}")
    return False


def wait(page: Page, seconds: float) -> None:
    """Let client-side rendering catch up."""
    if seconds > 0:
        page.wait_for_timeout(seconds * 1000)
