"""Unit tests for FeedOrchestrator policies with scrapers mocked out."""

from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from src.classification.product_type_classifier import (
    CategoryDictionary,
    ProductTypeClassifier,
)
from src.models import FeedConfig, ProductRecord
from src.scrapers.product_scraper import ProductScraper
from src.orchestrator import (
    FeedOrchestrator,
    build_feed,
    is_expandable_listing,
    unique_urls,
)

LISTING = "https://shop.example.com/collections/scissors"
PRODUCT_A = "https://shop.example.com/products/shears-a"
PRODUCT_B = "https://shop.example.com/products/shears-b"


def _record(url, row_index):
    return ProductRecord(
        id=str(row_index),
        title=f"Item {row_index}",
        description="",
        link=url,
        price="",
        image_link="",
        mpn=f"A{row_index}",
        brand="Acme",
    )


@pytest.fixture
def classifier():
    return ProductTypeClassifier(CategoryDictionary())


def _orchestrator(classifier, **overrides):
    return FeedOrchestrator(FeedConfig("Acme", "GBP", **overrides), classifier)


@pytest.mark.unit
class TestHelpers:
    def test_unique_urls_keeps_first_occurrence(self):
        urls = [" https://a.com/x ", "https://a.com/x", "", "https://a.com/y", None]

        assert unique_urls(urls) == ["https://a.com/x", "https://a.com/y"]

    @pytest.mark.parametrize(
        "url,expected",
        [
            (LISTING, True),
            ("https://shop.example.com/products", True),
            (PRODUCT_A, False),
            ("https://shop.example.com/shop/hair/scissors", False),  # product segment
            ("https://shop.example.com/about", False),
        ],
    )
    def test_is_expandable_listing(self, url, expected):
        assert is_expandable_listing(url) is expected


@pytest.mark.unit
class TestCollectProductUrls:
    def test_inputs_scraped_and_listings_expanded(self, classifier):
        discoverer = MagicMock()
        discoverer.discover.return_value = [PRODUCT_B, PRODUCT_A]
        orchestrator = _orchestrator(classifier)

        urls = orchestrator.collect_product_urls([PRODUCT_A, LISTING], discoverer)

        assert urls == [PRODUCT_A, LISTING, PRODUCT_B]
        discoverer.discover.assert_called_once_with(LISTING, 2500)

    def test_product_inputs_are_not_discovered(self, classifier):
        discoverer = MagicMock()
        orchestrator = _orchestrator(classifier)

        urls = orchestrator.collect_product_urls([PRODUCT_A, PRODUCT_A], discoverer)

        assert urls == [PRODUCT_A]
        discoverer.discover.assert_not_called()

    def test_listings_expand_only(self, classifier):
        discoverer = MagicMock()
        discoverer.discover.return_value = [PRODUCT_B]
        orchestrator = _orchestrator(classifier, scrape_input_urls=False)

        urls = orchestrator.collect_product_urls([LISTING, PRODUCT_A], discoverer)

        assert urls == [PRODUCT_B, PRODUCT_A]

    def test_discovery_disabled(self, classifier):
        discoverer = MagicMock()
        orchestrator = _orchestrator(classifier, discover_listings=False)

        urls = orchestrator.collect_product_urls([LISTING], discoverer)

        assert urls == [LISTING]
        discoverer.discover.assert_not_called()

    def test_failed_discovery_skips_only_that_listing(self, classifier):
        other_listing = "https://shop.example.com/category/combs"
        discoverer = MagicMock()
        discoverer.discover.side_effect = [TimeoutError("listing timed out"), [PRODUCT_B]]
        orchestrator = _orchestrator(classifier, max_links_per_listing=10)

        urls = orchestrator.collect_product_urls([LISTING, other_listing], discoverer)

        assert urls == [LISTING, other_listing, PRODUCT_B]
        assert discoverer.discover.call_count == 2


@pytest.mark.unit
class TestScrapeProducts:
    def test_row_index_counts_every_url(self, classifier):
        scraper = MagicMock()
        scraper.scrape_product.side_effect = [
            _record(PRODUCT_A, 1),
            RuntimeError("page crashed"),
            _record(LISTING, 3),
        ]
        orchestrator = _orchestrator(classifier)

        records = orchestrator.scrape_products([PRODUCT_A, PRODUCT_B, LISTING], scraper)

        assert [record.id for record in records] == ["1", "3"]
        assert [c.args for c in scraper.scrape_product.call_args_list] == [
            (PRODUCT_A, 1),
            (PRODUCT_B, 2),
            (LISTING, 3),
        ]

    @patch("src.scrapers.product_scraper.dismiss_cookie_banners")
    def test_shared_widget_sku_does_not_duplicate_ids(self, mock_cookies, classifier):
        """A site-wide data-sku block on every page must not repeat the id."""
        html = (
            "<html><body><h1>Shears</h1>"
            '<div class="recently-viewed" data-sku="RV-100"></div>'
            "</body></html>"
        )
        pages = []
        for url in (PRODUCT_A, PRODUCT_B):
            page = MagicMock()
            page.url = url
            page.content.return_value = html
            page.locator.side_effect = RuntimeError("no live DOM")
            page.evaluate.side_effect = RuntimeError("no live DOM")
            pages.append(page)
        session = MagicMock()
        session.new_page.side_effect = pages
        orchestrator = _orchestrator(classifier, product_settle_delay=0)
        scraper = ProductScraper(session, classifier, orchestrator.config)

        records = orchestrator.scrape_products([PRODUCT_A, PRODUCT_B], scraper)

        ids = [record.id for record in records]
        assert ids == ["RV-100", "2"]
        assert [record.mpn for record in records] == ["A1", "A2"]

    @pytest.mark.parametrize(
        "scraped_ids,expected",
        [
            (["SKU-1", "SKU-1", "SKU-1"], ["SKU-1", "2", "3"]),
            (["2", "2", "3"], ["2", "2-2", "3"]),  # SKU "2" holds row 2's index
            (["1", "7", "7"], ["1", "7", "3"]),  # SKU equal to a later row index
            (["3", "2", "3"], ["3", "2", "3-2"]),
        ],
    )
    def test_ids_are_unique_within_run(self, classifier, scraped_ids, expected):
        urls = [f"https://shop.example.com/products/item-{n}" for n in (1, 2, 3)]
        scraper = MagicMock()
        scraper.scrape_product.side_effect = [
            replace(_record(url, row), id=scraped_id)
            for row, (url, scraped_id) in enumerate(zip(urls, scraped_ids), start=1)
        ]
        orchestrator = _orchestrator(classifier)

        records = orchestrator.scrape_products(urls, scraper)

        assert [record.id for record in records] == expected
        assert len({record.id for record in records}) == len(records)
        assert [record.mpn for record in records] == ["A1", "A2", "A3"]

    def test_all_failures_yield_no_records(self, classifier):
        scraper = MagicMock()
        scraper.scrape_product.side_effect = RuntimeError("offline")
        orchestrator = _orchestrator(classifier)

        assert orchestrator.scrape_products([PRODUCT_A, PRODUCT_B], scraper) == []


@pytest.mark.unit
class TestRun:
    @pytest.mark.parametrize("urls", [[], ["", "  "]])
    def test_rejects_empty_input(self, classifier, urls):
        with pytest.raises(ValueError, match="No input URLs"):
            _orchestrator(classifier).run(urls)

    @patch("src.orchestrator.export_feed_to_excel")
    @patch("src.orchestrator.ProductScraper")
    @patch("src.orchestrator.LinkDiscoverer")
    @patch("src.orchestrator.BrowserSession")
    def test_run_wires_session_and_exports(
        self, mock_session_cls, mock_discoverer_cls, mock_scraper_cls, mock_export, classifier
    ):
        session = mock_session_cls.return_value.__enter__.return_value
        mock_scraper_cls.return_value.scrape_product.side_effect = (
            lambda url, row_index: _record(url, row_index)
        )
        mock_export.return_value = "output/feed.xlsx"
        orchestrator = _orchestrator(classifier, headless=False, listing_timeout=10.0)

        records, path = orchestrator.run([PRODUCT_A, PRODUCT_B])

        mock_session_cls.assert_called_once_with(headless=False)
        mock_discoverer_cls.assert_called_once_with(
            session, navigation_timeout=10.0, settle_delay=2.0
        )
        mock_scraper_cls.assert_called_once_with(session, classifier, orchestrator.config)
        mock_export.assert_called_once_with(records, "output/feed.xlsx")
        mock_session_cls.return_value.__exit__.assert_called_once()
        assert [r.link for r in records] == [PRODUCT_A, PRODUCT_B]
        assert path == "output/feed.xlsx"


@pytest.mark.unit
@patch("src.orchestrator.FeedOrchestrator")
def test_build_feed_loads_dictionary_from_config(mock_orchestrator_cls, tmp_path):
    types_file = tmp_path / "types.txt"
    types_file.write_text("Hair Shears\nCombs\n", encoding="utf-8")
    config = FeedConfig("Acme", "GBP", product_types_path=str(types_file))
    mock_orchestrator_cls.return_value.run.return_value = ([], "out.xlsx")

    result = build_feed(config, [PRODUCT_A])

    classifier = mock_orchestrator_cls.call_args.args[1]
    assert [entry.raw for entry in classifier.dictionary] == ["Hair Shears", "Combs"]
    mock_orchestrator_cls.return_value.run.assert_called_once_with([PRODUCT_A])
    assert result == ([], "out.xlsx")
