"""Pure functions for classifying and normalizing e-commerce URLs.

None of these functions raise: malformed input yields False (or the
input itself, for normalize_url).
"""

import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

# Pages that are never products or listings
EXCLUDE_PATTERNS = [
    r"/cart",
    r"/basket",
    r"/checkout",
    r"/account",
    r"/login",
    r"/register",
    r"/wishlist",
    r"/search",
    r"/filter",
    r"/tag/",
    r"/tags/",
    r"/privacy",
    r"/terms",
    r"/contact",
    r"/about",
    r"/faq",
    r"/faqs",
    r"/help",
    r"\.(pdf|jpg|jpeg|png|gif|webp|svg|ico|css|js|mp4|webm)$",
]
EXCLUDE_RE = re.compile("|".join(EXCLUDE_PATTERNS), re.IGNORECASE)

PRODUCT_SEGMENTS = (
    "/product/",
    "/products/",
    "/item/",
    "/sku/",
    "/shop/",
    "/store/",
    "/p/",
    "/pd/",
    "/prod/",
)

LISTING_SEGMENTS = (
    "/category",
    "/categories",
    "/collection",
    "/collections",
    "/catalog",
    "/shop",
    "/store",
)

PAGE_EXTENSION_RE = re.compile(r"\.(html|htm|php|asp|aspx)$")

MIN_SLUG_LENGTH = 4
MIN_PRODUCT_SLUG_LENGTH = 5


def _is_excluded(path: str) -> bool:
    return bool(EXCLUDE_RE.search(path))


def is_product_path(path: Optional[str]) -> bool:
    """Guess whether a URL path points at a single product page.

    Args:
        path: URL path (e.g., "/products/blue-widget-42")

    Returns:
        True for classic e-commerce segments (/product/, /item/, /p/ ...)
        or a product-like slug in the last segment, e.g. "3-shears-sale".
    """
    if not isinstance(path, str) or _is_excluded(path):
        return False

    lowered = path.lower()
    if any(segment in lowered for segment in PRODUCT_SEGMENTS):
        return True

    last = lowered.rsplit("/", 1)[-1]
    last = PAGE_EXTENSION_RE.sub("", last)
    if len(last) < MIN_SLUG_LENGTH:
        return False

    has_dash = "-" in last
    has_digit = any(ch.isdigit() for ch in last)
    return (has_dash or has_digit) and len(last) >= MIN_PRODUCT_SLUG_LENGTH


def is_listing_path(path: Optional[str]) -> bool:
    """Guess whether a URL path points at a category/collection listing."""
    if not isinstance(path, str) or _is_excluded(path):
        return False

    lowered = path.lower()
    if any(segment in lowered for segment in LISTING_SEGMENTS):
        return True

    # A bare "/products" is usually the catalogue root
    return lowered in ("/products", "/products/")


def _hostname(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except (ValueError, TypeError, AttributeError):
        return ""


def is_same_site(url_a: str, url_b: str) -> bool:
    """True if both URLs parse and share the same non-empty hostname."""
    host_a = _hostname(url_a)
    return bool(host_a) and host_a == _hostname(url_b)


def url_path(url: str) -> str:
    """Return the path component of a URL, or "" if it cannot be parsed."""
    try:
        return urlsplit(url).path
    except (ValueError, TypeError, AttributeError):
        return ""


def normalize_url(base_url: str, href: str) -> str:
    """Resolve href against base_url into a canonical absolute URL.

    Repeated slashes in the path are collapsed, the host is lowercased and
    the fragment dropped; the query string is kept. If anything fails to
    parse, href is returned unchanged.

    Examples:
        >>> normalize_url("https://Shop.example.com/a/", "../b//c#top")
        'https://shop.example.com/b/c'
    """
    try:
        resolved = urlsplit(urljoin(base_url, href.strip()))
        path = re.sub(r"/{2,}", "/", resolved.path)

        netloc = resolved.netloc
        if resolved.hostname:
            host = resolved.hostname
            if ":" in host:
                host = f"[{host}]"  # IPv6 literal
            netloc = host
            if resolved.port is not None:
                netloc = f"{netloc}:{resolved.port}"
            if "@" in resolved.netloc:
                netloc = f"{resolved.netloc.rsplit('@', 1)[0]}@{netloc}"

        return urlunsplit((resolved.scheme, netloc, path, resolved.query, ""))
    except (ValueError, TypeError, AttributeError):
        return href
