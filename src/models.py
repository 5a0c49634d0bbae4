"""Data model for the product feed scraper.

Branded types (NewType) keep URLs, SKUs and currency codes from being
mixed up with arbitrary strings.
"""

from dataclasses import dataclass, field
from typing import NewType

ProductUrl = NewType("ProductUrl", str)
ImageUrl = NewType("ImageUrl", str)
SKU = NewType("SKU", str)
CurrencyCode = NewType("CurrencyCode", str)

UNKNOWN_PRODUCT_TYPE = "unknown"


@dataclass
class ExtractedFields:
    """Fields pulled out of a single page visit.

    Every field may be empty: a heuristic that finds nothing leaves its
    field blank rather than failing the whole extraction.
    """

    title: str = ""
    price: str = ""  # "<amount, 2 decimals> <ISO code>" or ""
    image_url: str = ""
    description: str = ""
    breadcrumbs: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProductRecord:
    """One row of the output feed."""

    id: str
    title: str
    description: str
    link: ProductUrl
    price: str
    image_link: ImageUrl
    mpn: str
    brand: str
    product_types: str = UNKNOWN_PRODUCT_TYPE
    condition: str = "new"
    availability: str = "in stock"
    adult: str = "No"


@dataclass
class FeedConfig:
    """Configuration for a single feed run."""

    company_name: str
    currency_code: CurrencyCode
    output_path: str = "output/feed.xlsx"
    product_types_path: str = "product_types.txt"
    max_links_per_listing: int = 2500
    product_timeout: float = 35.0  # seconds
    listing_timeout: float = 45.0  # seconds
    product_settle_delay: float = 1.5  # seconds after navigation
    listing_settle_delay: float = 2.0
    fetch_timeout: float = 30.0  # plain HTTP fallback fetch
    fetch_retries: int = 2
    scrape_input_urls: bool = True  # scrape listing inputs directly as well
    discover_listings: bool = True
    fallback_fetch_on_redirect: bool = True
    headless: bool = True

    def __post_init__(self):
        self.company_name = self.company_name.strip()
        self.currency_code = CurrencyCode(self.currency_code.strip().upper())
