"""Orchestrator for the feed pipeline: discover, scrape, classify, export."""

import time
from dataclasses import replace
from pathlib import Path
from typing import Optional

from loguru import logger

from src.classification.product_type_classifier import ProductTypeClassifier
from src.exporters.excel_exporter import export_feed_to_excel
from src.models import FeedConfig, ProductRecord
from src.scrapers.browser_session import BrowserSession
from src.scrapers.link_discoverer import LinkDiscoverer
from src.scrapers.product_scraper import ProductScraper, unique_record_id
from src.scrapers.url_classifier import is_listing_path, is_product_path, url_path


def unique_urls(urls: list[str]) -> list[str]:
    """Stable de-duplication (first occurrence wins)."""
    return list(dict.fromkeys(url.strip() for url in urls if url and url.strip()))


def is_expandable_listing(url: str) -> bool:
    """A URL worth running link discovery on: listing-shaped, not a product."""
    path = url_path(url)
    return is_listing_path(path) and not is_product_path(path)


class FeedOrchestrator:
    """Coordinates discovery, scraping and export for one feed run."""

    def __init__(self, config: FeedConfig, classifier: ProductTypeClassifier):
        self.config = config
        self.classifier = classifier

    def collect_product_urls(
        self, input_urls: list[str], discoverer: Optional[LinkDiscoverer]
    ) -> list[str]:
        """Build the list of URLs to scrape from the operator's input.

        Inputs are scraped directly (unless scrape_input_urls is off, in
        which case listing inputs are only expanded). Listing-shaped inputs
        are expanded through link discovery; a failed discovery only skips
        that listing.

        Returns:
            Deduplicated URLs in input/discovery order
        """
        collected: list[str] = []

        for url in unique_urls(input_urls):
            listing = is_expandable_listing(url)

            if self.config.scrape_input_urls or not listing:
                collected.append(url)

            if not (listing and self.config.discover_listings and discoverer):
                continue

            logger.info(f"Discovering product links from listing: {url}")
            try:
                found = discoverer.discover(url, self.config.max_links_per_listing)
            except Exception as e:
                logger.warning(f"Link discovery failed for {url}: {e}")
                continue

            logger.info(f"  Found {len(found)} product link(s)")
            collected.extend(found)

        product_urls = unique_urls(collected)
        logger.info(f"Total product URLs to scrape: {len(product_urls)}")
        return product_urls

    def scrape_products(
        self, urls: list[str], scraper: ProductScraper
    ) -> list[ProductRecord]:
        """Scrape every URL, skipping (and logging) the ones that fail.

        Record ids are unique within the run: an id already issued is
        replaced via unique_record_id.
        """
        records: list[ProductRecord] = []
        issued_ids: set[str] = set()
        started = time.monotonic()
        total = len(urls)

        for row_index, url in enumerate(urls, start=1):
            logger.info(f"({row_index}/{total}) Scraping {url}")
            try:
                record = scraper.scrape_product(url, row_index)
            except Exception as e:
                logger.error(f"✗ Failed to scrape {url}: {e}")
                continue

            record_id = unique_record_id(record.id, row_index, issued_ids)
            if record_id != record.id:
                logger.warning(
                    f"Id {record.id!r} already used in this feed, "
                    f"using {record_id!r} for {url}"
                )
                record = replace(record, id=record_id)
            issued_ids.add(record_id)

            records.append(record)
            logger.info(f"  ✓ {record.title or '(no title)'} | {record.price or '-'}")

        elapsed = time.monotonic() - started
        logger.info(
            f"Scraped {len(records)}/{total} product(s) in {elapsed:.0f} seconds"
        )
        return records

    def run(self, input_urls: list[str]) -> tuple[list[ProductRecord], Path]:
        """Run the full pipeline and write the feed.

        Args:
            input_urls: Product and/or listing URLs

        Returns:
            Tuple of (records, output_path)

        Raises:
            ValueError: If no input URLs were given
        """
        if not unique_urls(input_urls):
            raise ValueError("No input URLs provided")

        logger.info("=" * 60)
        logger.info(f"Building feed for {self.config.company_name}")
        logger.info(f"Currency: {self.config.currency_code}")
        logger.info(f"Input URLs: {len(input_urls)}")
        logger.info(f"Output: {self.config.output_path}")
        logger.info("=" * 60)

        with BrowserSession(headless=self.config.headless) as session:
            discoverer = LinkDiscoverer(
                session,
                navigation_timeout=self.config.listing_timeout,
                settle_delay=self.config.listing_settle_delay,
            )
            urls = self.collect_product_urls(input_urls, discoverer)

            scraper = ProductScraper(session, self.classifier, self.config)
            records = self.scrape_products(urls, scraper)

        output_path = export_feed_to_excel(records, self.config.output_path)
        return records, output_path


def build_feed(
    config: FeedConfig, input_urls: list[str]
) -> tuple[list[ProductRecord], Path]:
    """Convenience function for running the full feed pipeline.

    Loads the product type dictionary named in the config, then scrapes
    and exports.
    """
    classifier = ProductTypeClassifier.from_file(config.product_types_path)
    orchestrator = FeedOrchestrator(config, classifier)
    return orchestrator.run(input_urls)
