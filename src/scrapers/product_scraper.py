"""Single product page scraping and feed record assembly."""

from typing import Callable, Optional

import requests
from loguru import logger

from src.classification.product_type_classifier import ProductTypeClassifier
from src.downloaders.page_fetcher import fetch_html
from src.models import (
    SKU,
    ExtractedFields,
    FeedConfig,
    ImageUrl,
    ProductRecord,
    ProductUrl,
)
from src.scrapers.browser_session import BrowserSession
from src.scrapers.dom_extractor import extract_from_html, extract_from_page, extract_sku
from src.scrapers.page_interactions import dismiss_cookie_banners, wait
from src.scrapers.url_classifier import is_same_site, normalize_url


def company_initials(company_name: str) -> str:
    """Uppercased first letter of each word, used as the MPN prefix.

    Examples:
        >>> company_initials("Grandpas Goody Getter")
        'GGG'
    """
    return "".join(word[0].upper() for word in company_name.split() if word)


def build_product_record(
    fields: ExtractedFields,
    link: str,
    row_index: int,
    sku: Optional[SKU],
    mpn_prefix: str,
    brand: str,
    product_type: str,
) -> ProductRecord:
    """Assemble the feed record for one product.

    The id is the detected SKU when there is one, otherwise the row index;
    the MPN is always prefix + row index.
    """
    sku = (sku or "").strip()
    return ProductRecord(
        id=sku if sku else str(row_index),
        title=fields.title,
        description=fields.description,
        link=ProductUrl(link),
        price=fields.price,
        image_link=ImageUrl(fields.image_url),
        mpn=f"{mpn_prefix}{row_index}",
        brand=brand,
        product_types=product_type,
    )


def unique_record_id(candidate: str, row_index: int, issued: set[str]) -> str:
    """Pick an id not yet issued in this run.

    A taken id (the same SKU on several pages, or a SKU equal to another
    row's index) falls back to the row index. If a SKU already holds that
    too, "-2", "-3", ... is appended to the row index.

    Examples:
        >>> unique_record_id("RV-100", 2, {"RV-100"})
        '2'
    """
    if candidate not in issued:
        return candidate

    fallback = str(row_index)
    suffix = 2
    unique = fallback
    while unique in issued:
        unique = f"{fallback}-{suffix}"
        suffix += 1
    return unique


class ProductScraper:
    """Renders product pages and turns them into ProductRecords."""

    def __init__(
        self,
        session: BrowserSession,
        classifier: ProductTypeClassifier,
        config: FeedConfig,
        fetcher: Callable[..., str] = fetch_html,
    ):
        self.session = session
        self.classifier = classifier
        self.config = config
        self.fetcher = fetcher
        self.mpn_prefix = company_initials(config.company_name)

    def scrape_product(self, url: str, row_index: int) -> ProductRecord:
        """Scrape one product page.

        Args:
            url: Product page URL
            row_index: 1-based position of the URL in this run

        Returns:
            Assembled product record

        Raises:
            playwright.sync_api.Error: If the page fails to load
        """
        fields, sku = self._extract(url)
        product_type = self.classifier.classify(
            fields.title, fields.description, fields.breadcrumbs
        )
        return build_product_record(
            fields,
            link=normalize_url(url, url),
            row_index=row_index,
            sku=sku,
            mpn_prefix=self.mpn_prefix,
            brand=self.config.company_name,
            product_type=product_type,
        )

    def _extract(self, url: str) -> tuple[ExtractedFields, SKU]:
        page = self.session.new_page()
        try:
            page.goto(url, timeout=self.config.product_timeout * 1000)
            wait(page, self.config.product_settle_delay)
            dismiss_cookie_banners(page)

            landed_url = page.url
            if self.config.fallback_fetch_on_redirect and not is_same_site(
                landed_url, url
            ):
                logger.warning(f"{url} redirected to {landed_url}, trying plain fetch")
                fetched = self._fetch_static(url)
                if fetched is not None:
                    return fetched

            html = self._page_html(page)
            fields = extract_from_page(page, url, self.config.currency_code, html=html)
            return fields, SKU(extract_sku(html))
        finally:
            try:
                page.close()
            except Exception as e:
                logger.debug(f"Failed to close page for {url}: {e}")

    def _fetch_static(self, url: str) -> Optional[tuple[ExtractedFields, SKU]]:
        try:
            html = self.fetcher(
                url,
                timeout=self.config.fetch_timeout,
                max_retries=self.config.fetch_retries,
            )
        except requests.RequestException as e:
            logger.warning(f"Plain fetch of {url} failed, using rendered page: {e}")
            return None

        fields = extract_from_html(html, url, self.config.currency_code)
        return fields, SKU(extract_sku(html))

    @staticmethod
    def _page_html(page) -> str:
        try:
            return page.content()
        except Exception as e:
            logger.debug(f"Could not read page HTML: {e}")
            return ""
