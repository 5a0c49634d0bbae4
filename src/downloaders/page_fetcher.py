"""Plain HTTP page fetching, used when the rendered session gets redirected.

Some sites bounce bot-like browser sessions to another host; a simple GET
of the original URL often still returns the product page.
"""

import requests
from loguru import logger

from src.scrapers.browser_session import DESKTOP_USER_AGENT
from src.utils.retry_handler import retry_with_backoff

DEFAULT_HEADERS = {
    "User-Agent": DESKTOP_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-GB,en;q=0.9",
}


def fetch_html(url: str, timeout: float = 30.0, max_retries: int = 2) -> str:
    """Fetch a page's HTML without a browser.

    Args:
        url: Page URL
        timeout: Per-request timeout in seconds
        max_retries: Retries after the first failed attempt

    Returns:
        Response body as text

    Raises:
        requests.RequestException: If every attempt fails
    """

    def _fetch() -> str:
        response = requests.get(
            url, headers=DEFAULT_HEADERS, timeout=timeout, allow_redirects=True
        )
        response.raise_for_status()
        return response.text

    html = retry_with_backoff(
        _fetch,
        max_retries=max_retries,
        retry_on=(requests.RequestException,),
        label=f"GET {url}",
    )
    logger.debug(f"Fetched {len(html)} characters from {url}")
    return html
