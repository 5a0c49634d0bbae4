"""Heuristic product field extraction from rendered or static HTML.

No site-specific configuration: every field is found by trying an ordered
list of generic heuristics and falling through to the next on a miss.

Strategy:
    1. Title from <h1>, else <title>.
    2. Price from text containing the currency symbol, the whole page text,
       or common price containers; the largest figure wins.
    3. Description from product/description containers, then generic
       main/article/section paragraphs.
    4. Breadcrumbs from breadcrumb <nav>s or breadcrumb-classed containers.
    5. Image from main/product/gallery images, avoiding logos and icons.
    6. SKU from microdata, data attributes, sku classes or "SKU: ..." text.

Extraction never raises; the worst case is an ExtractedFields with every
field empty.
"""

import re
from typing import Callable, Optional, Protocol, TypeVar
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, Tag
from loguru import logger
from playwright.sync_api import Page

from src.models import ExtractedFields
from src.scrapers.field_parsers import (
    build_price_pattern,
    clean_text,
    currency_symbol,
    finalize_description,
    find_price_candidates,
    format_price,
    is_cookie_text,
    title_keywords,
    unique_in_order,
)

T = TypeVar("T")

MAX_SYMBOL_ELEMENTS = 250
LOCATOR_TIMEOUT_MS = 2000

PRICE_SELECTORS = [
    "[itemprop='price']",
    "[data-price]",
    "[data-price-amount]",
    "[data-price-value]",
    ".productPrice",
    ".product__price",
    ".product-price",
    ".summary .price",
    ".product .price",
    ".price",
]

DESCRIPTION_SELECTORS = [
    "[itemprop='description'] p",
    "[class*=description] p",
    "[class*=product] p",
    "main p",
    "article p",
    "section p",
    ".prose p",
]
MIN_DESCRIPTION_PARAGRAPH = 40
MAX_DESCRIPTION_PARAGRAPH = 600

BREADCRUMB_NAV_SELECTOR = "nav[aria-label*=crumb i], nav[class*=breadcrumb i]"
BREADCRUMB_CONTAINER_SELECTOR = ".breadcrumb, .breadcrumbs, [class*=breadcrumb]"
BREADCRUMB_ITEM_SELECTOR = "a, span, li"
MIN_BREADCRUMB_LENGTH = 3

IMAGE_SELECTORS = [
    "main img",
    "article img",
    "[class*=product] img",
    "[class*=gallery] img",
    "[class*=image] img",
]
BAD_IMAGE_TERMS = re.compile(
    r"(logo|placeholder|sprite|icon|avatar|brand)", re.IGNORECASE
)

SKU_LABEL_RE = re.compile(r"^\s*sku\s*[:#]?\s*", re.IGNORECASE)
SKU_TEXT_RE = re.compile(r"\bSKU[:#\s]+([A-Za-z0-9][\w\-./]*)", re.IGNORECASE)
MIN_SKU_LENGTH = 2
MAX_SKU_LENGTH = 64

NON_VISIBLE_TAGS = {"script", "style", "noscript", "template", "head", "title"}


class PriceTextSource(Protocol):
    """Where the price heuristic reads text from (live page or parsed DOM)."""

    def symbol_texts(self, symbol: str, limit: int) -> list[str]: ...

    def body_text(self) -> str: ...

    def selector_text(self, selector: str) -> str: ...


def parse_html(html: Optional[str]) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _select(root: BeautifulSoup | Tag, selector: str) -> list[Tag]:
    try:
        return root.select(selector)
    except Exception as e:
        logger.debug(f"Selector {selector!r} failed: {e}")
        return []


def _safely(func: Callable[[], T], default: T, label: str) -> T:
    try:
        return func()
    except Exception as e:
        logger.debug(f"{label} extraction failed: {e}")
        return default


def _is_visible_string(node) -> bool:
    if isinstance(node, Comment):
        return False
    parent = node.parent
    while parent is not None:
        if parent.name in NON_VISIBLE_TAGS:
            return False
        parent = parent.parent
    return True


def visible_text(root: BeautifulSoup | Tag) -> str:
    """Text a browser would render, ignoring scripts, styles and comments."""
    return clean_text(
        " ".join(s for s in root.find_all(string=True) if _is_visible_string(s))
    )


class StaticPriceTexts:
    """Price text read from a parsed DOM only."""

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup

    def symbol_texts(self, symbol: str, limit: int) -> list[str]:
        texts = []
        seen_parents = set()
        for node in self.soup.find_all(string=lambda s: s and symbol in s):
            if len(texts) >= limit:
                break
            parent = node.parent
            if parent is None or id(parent) in seen_parents:
                continue
            if not _is_visible_string(node):
                continue
            seen_parents.add(id(parent))
            texts.append(visible_text(parent))
        return texts

    def body_text(self) -> str:
        return visible_text(self.soup.body or self.soup)

    def selector_text(self, selector: str) -> str:
        elements = _select(self.soup, selector)
        if not elements:
            return ""
        element = elements[0]
        return visible_text(element) or clean_text(element.get("content", ""))


class LivePriceTexts:
    """Price text read through Playwright locators on a rendered page."""

    def __init__(self, page: Page, soup: BeautifulSoup):
        self.page = page
        self.static = StaticPriceTexts(soup)

    def symbol_texts(self, symbol: str, limit: int) -> list[str]:
        locator = self.page.locator(
            "xpath=//*[not(self::script) and not(self::style)"
            f" and contains(text(), '{symbol}')]"
        )
        texts = []
        for index in range(min(locator.count(), limit)):
            try:
                texts.append(locator.nth(index).inner_text(timeout=LOCATOR_TIMEOUT_MS))
            except Exception:
                continue
        return texts

    def body_text(self) -> str:
        try:
            return self.page.evaluate(
                "() => document.body ? document.body.innerText : ''"
            ) or ""
        except Exception as e:
            logger.debug(f"Falling back to parsed body text: {e}")
            return self.static.body_text()

    def selector_text(self, selector: str) -> str:
        locator = self.page.locator(selector)
        if locator.count() == 0:
            return ""
        return locator.first.text_content(timeout=LOCATOR_TIMEOUT_MS) or ""


def extract_title(soup: BeautifulSoup) -> str:
    for h1 in _select(soup, "h1"):
        title = clean_text(h1.get_text(" "))
        if title:
            return title

    if soup.title and soup.title.string:
        return clean_text(soup.title.string)
    return ""


def extract_price(texts: PriceTextSource, currency_code: str) -> str:
    """Find the product price as "<amount> <CODE>".

    The largest positive figure wins so a struck-through regular price
    beats the sale price and small unit/instalment prices.
    """
    pattern = build_price_pattern(currency_code)
    symbol = currency_symbol(currency_code)
    candidates: list[float] = []

    if symbol:
        symbol_texts = _safely(
            lambda: texts.symbol_texts(symbol, MAX_SYMBOL_ELEMENTS), [], "Price"
        )
        for text in symbol_texts:
            candidates.extend(find_price_candidates(text, pattern))

    if not candidates:
        body = _safely(texts.body_text, "", "Price")
        candidates = find_price_candidates(body, pattern)

    if not candidates:
        for selector in PRICE_SELECTORS:
            text = _safely(lambda: texts.selector_text(selector), "", "Price")
            candidates = find_price_candidates(text, pattern)
            if candidates:
                break

    if not candidates:
        return ""
    return format_price(max(candidates), currency_code)


def _paragraph_texts(elements: list[Tag]) -> list[str]:
    return [clean_text(element.get_text(" ")) for element in elements]


def _is_description_candidate(text: str) -> bool:
    return (
        MIN_DESCRIPTION_PARAGRAPH <= len(text) <= MAX_DESCRIPTION_PARAGRAPH
        and not is_cookie_text(text)
    )


def extract_description(soup: BeautifulSoup, title: str = "") -> str:
    chosen = ""

    for selector in DESCRIPTION_SELECTORS:
        candidates = [
            text
            for text in _paragraph_texts(_select(soup, selector))
            if _is_description_candidate(text)
        ]
        if candidates:
            chosen = max(candidates, key=len)
            break

    if not chosen:
        paragraphs = _paragraph_texts(_select(soup, "p"))
        in_band = [text for text in paragraphs if _is_description_candidate(text)]
        if in_band:
            chosen = in_band[0]
        elif paragraphs:
            chosen = paragraphs[0]

    return finalize_description(chosen or title)


def _crumb_texts(containers: list[Tag]) -> list[str]:
    texts = []
    for container in containers:
        for item in _select(container, BREADCRUMB_ITEM_SELECTOR):
            text = clean_text(item.get_text(" "))
            if len(text) >= MIN_BREADCRUMB_LENGTH:
                texts.append(text)
    return unique_in_order(texts)


def extract_breadcrumbs(soup: BeautifulSoup) -> list[str]:
    crumbs = _crumb_texts(_select(soup, BREADCRUMB_NAV_SELECTOR))
    if not crumbs:
        crumbs = _crumb_texts(_select(soup, BREADCRUMB_CONTAINER_SELECTOR))
    return crumbs


def _image_source(img: Tag) -> str:
    srcset = (img.get("srcset") or "").strip()
    if srcset:
        return srcset.split()[0].rstrip(",")
    return (img.get("src") or img.get("data-src") or "").strip()


def _collect_images(images: list[Tag], page_url: str, found: list[str]) -> None:
    for img in images:
        src = _image_source(img)
        if not src or src.lower().startswith("data:"):
            continue
        absolute = urljoin(page_url, src)
        if BAD_IMAGE_TERMS.search(absolute):
            continue
        if absolute not in found:
            found.append(absolute)


def extract_image(soup: BeautifulSoup, page_url: str, title: str = "") -> str:
    """Pick the most likely product image URL.

    Prefers the candidate whose URL contains the most title words; with no
    title overlap the first candidate wins.
    """
    candidates: list[str] = []
    for selector in IMAGE_SELECTORS:
        _collect_images(_select(soup, selector), page_url, candidates)

    if not candidates:
        _collect_images(_select(soup, "img"), page_url, candidates)

    if not candidates:
        return ""

    keywords = title_keywords(title)
    best, best_score = candidates[0], 0
    for url in candidates:
        lowered = url.lower()
        score = sum(1 for word in keywords if word in lowered)
        if score > best_score:
            best, best_score = url, score
    return best


def _valid_sku(value: Optional[str]) -> str:
    value = clean_text(value)
    if MIN_SKU_LENGTH <= len(value) <= MAX_SKU_LENGTH:
        return value
    return ""


def _sku_from_soup(soup: BeautifulSoup) -> str:
    for element in _select(soup, "[itemprop=sku]"):
        sku = _valid_sku(element.get("content") or element.get_text(" "))
        if sku:
            return sku

    for attribute in ("data-sku", "data-product-sku"):
        for element in _select(soup, f"[{attribute}]"):
            sku = _valid_sku(element.get(attribute))
            if sku:
                return sku

    for element in _select(soup, ".sku, .product-sku"):
        sku = _valid_sku(SKU_LABEL_RE.sub("", clean_text(element.get_text(" "))))
        if sku:
            return sku

    for match in SKU_TEXT_RE.finditer(visible_text(soup)):
        sku = _valid_sku(match.group(1))
        if sku:
            return sku

    return ""


def extract_sku(html: Optional[str]) -> str:
    """Find a product SKU in static HTML, or "" if there is none."""
    return _safely(lambda: _sku_from_soup(parse_html(html)), "", "SKU")


def _extract(
    soup: BeautifulSoup, source_url: str, currency_code: str, texts: PriceTextSource
) -> ExtractedFields:
    title = _safely(lambda: extract_title(soup), "", "Title")
    description = _safely(
        lambda: extract_description(soup, title),
        finalize_description(title),
        "Description",
    )
    return ExtractedFields(
        title=title,
        price=_safely(lambda: extract_price(texts, currency_code), "", "Price"),
        image_url=_safely(lambda: extract_image(soup, source_url, title), "", "Image"),
        description=description,
        breadcrumbs=_safely(lambda: extract_breadcrumbs(soup), [], "Breadcrumb"),
    )


def extract_from_html(
    html: Optional[str], source_url: str, currency_code: str
) -> ExtractedFields:
    """Extract product fields from static HTML (e.g. a plain HTTP fetch)."""
    soup = _safely(lambda: parse_html(html), parse_html(""), "HTML parse")
    return _extract(soup, source_url, currency_code, StaticPriceTexts(soup))


def extract_from_page(
    page: Page, source_url: str, currency_code: str, html: Optional[str] = None
) -> ExtractedFields:
    """Extract product fields from a live rendered page.

    Args:
        page: Rendered Playwright page
        source_url: URL used to absolutize relative image links
        currency_code: ISO currency code used for price matching
        html: Page HTML if the caller already read it
    """
    if html is None:
        html = _safely(page.content, "", "Page content")
    soup = _safely(lambda: parse_html(html), parse_html(""), "HTML parse")
    return _extract(soup, source_url, currency_code, LivePriceTexts(page, soup))
