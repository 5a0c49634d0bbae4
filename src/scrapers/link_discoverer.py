"""Product link discovery from listing/category pages.

Listing pages lazy-load products through infinite scroll or "load more"
buttons with no completion signal, so the page is scrolled and clicked
until the product anchor count stops growing or a round cap is hit.
"""

import re
from typing import Iterable, Optional

from loguru import logger
from playwright.sync_api import Page

from src.scrapers.browser_session import BrowserSession
from src.scrapers.page_interactions import (
    click_load_more_once,
    dismiss_cookie_banners,
    scroll_to_bottom,
    wait,
)
from src.scrapers.url_classifier import (
    is_product_path,
    is_same_site,
    normalize_url,
    url_path,
)

MAX_LOAD_ROUNDS = 24
SCROLL_DELAY = 0.9  # seconds
MAX_ANCHOR_SCAN = 7000

RAW_URL_RE = re.compile(r"https?://[^\s\"'<>\\]+")
IGNORED_HREF_PREFIXES = ("#", "javascript:", "mailto:", "tel:")


def should_stop_loading(
    clicked: bool, previous_count: Optional[int], current_count: int
) -> bool:
    """Stop once a round neither clicked anything nor revealed new products.

    Args:
        clicked: Whether a load-more control was clicked this round
        previous_count: Product anchor count after the previous round
            (None before the first round)
        current_count: Product anchor count after this round
    """
    if clicked:
        return False
    if previous_count is None:
        return False
    return current_count <= previous_count


def filter_product_links(
    hrefs: Iterable[Optional[str]],
    base_url: str,
    start_url: str,
    max_links: int,
    seen: Optional[set[str]] = None,
) -> list[str]:
    """Normalize hrefs and keep unseen same-site product URLs.

    Args:
        hrefs: Raw href values (relative or absolute)
        base_url: URL the hrefs are resolved against
        start_url: Listing URL; results must share its host
        max_links: Maximum number of links to return
        seen: Already collected URLs, updated in place

    Returns:
        Product URLs in discovery order, at most max_links
    """
    seen = seen if seen is not None else set()
    links: list[str] = []

    for href in hrefs:
        if len(links) >= max_links:
            break
        if not href:
            continue
        href = href.strip()
        if not href or href.lower().startswith(IGNORED_HREF_PREFIXES):
            continue

        absolute = normalize_url(base_url, href)
        if not is_same_site(absolute, start_url):
            continue
        if not is_product_path(url_path(absolute)):
            continue
        if absolute in seen:
            continue

        seen.add(absolute)
        links.append(absolute)

    return links


def scan_html_for_product_links(
    html: str, start_url: str, max_links: int, seen: Optional[set[str]] = None
) -> list[str]:
    """Fallback: pull absolute product URLs straight out of raw HTML."""
    candidates = (match.group(0) for match in RAW_URL_RE.finditer(html or ""))
    return filter_product_links(candidates, start_url, start_url, max_links, seen)


class LinkDiscoverer:
    """Finds product URLs on listing pages using a shared browser session."""

    def __init__(
        self,
        session: BrowserSession,
        navigation_timeout: float = 45.0,
        settle_delay: float = 2.0,
        scroll_delay: float = SCROLL_DELAY,
        max_rounds: int = MAX_LOAD_ROUNDS,
    ):
        self.session = session
        self.navigation_timeout = navigation_timeout
        self.settle_delay = settle_delay
        self.scroll_delay = scroll_delay
        self.max_rounds = max_rounds

    def discover(self, start_url: str, max_links: int) -> list[str]:
        """Discover product links on a listing page.

        Args:
            start_url: Listing/category URL
            max_links: Maximum number of product links to return

        Returns:
            Deduplicated absolute product URLs in discovery order

        Raises:
            playwright.sync_api.Error: If the page fails to load
        """
        page = self.session.new_page()
        try:
            page.goto(start_url, timeout=self.navigation_timeout * 1000)
            wait(page, self.settle_delay)
            dismiss_cookie_banners(page)

            self._load_all_products(page, start_url)

            base_url = page.url or start_url
            seen: set[str] = set()
            hrefs = self._anchor_hrefs(page)[:MAX_ANCHOR_SCAN]
            links = filter_product_links(hrefs, base_url, start_url, max_links, seen)

            if not links:
                logger.debug(f"No product anchors on {start_url}, scanning raw HTML")
                links = scan_html_for_product_links(
                    self._page_html(page), start_url, max_links, seen
                )

            logger.info(f"Discovered {len(links)} product link(s) on {start_url}")
            return links
        finally:
            try:
                page.close()
            except Exception as e:
                logger.debug(f"Failed to close page for {start_url}: {e}")

    def _load_all_products(self, page: Page, start_url: str) -> None:
        """Scroll and click "load more" until the product count settles."""
        previous_count: Optional[int] = None

        for round_number in range(1, self.max_rounds + 1):
            scroll_to_bottom(page)
            wait(page, self.scroll_delay)
            clicked = click_load_more_once(page)

            current_count = self._count_product_anchors(page, start_url)
            if should_stop_loading(clicked, previous_count, current_count):
                logger.debug(
                    f"Listing stable after {round_number} round(s) "
                    f"({current_count} product anchors)"
                )
                return
            previous_count = current_count

        logger.debug(f"Reached {self.max_rounds} load rounds on {start_url}")

    def _count_product_anchors(self, page: Page, start_url: str) -> int:
        hrefs = self._anchor_hrefs(page)[:MAX_ANCHOR_SCAN]
        base_url = page.url or start_url
        return len(filter_product_links(hrefs, base_url, start_url, MAX_ANCHOR_SCAN))

    @staticmethod
    def _anchor_hrefs(page: Page) -> list[str]:
        try:
            hrefs = page.eval_on_selector_all(
                "a[href]", "els => els.map(e => e.getAttribute('href'))"
            )
        except Exception as e:
            logger.debug(f"Could not read anchors: {e}")
            return []
        return [href for href in hrefs or [] if isinstance(href, str)]

    @staticmethod
    def _page_html(page: Page) -> str:
        try:
            return page.content()
        except Exception as e:
            logger.debug(f"Could not read page HTML: {e}")
            return ""
