"""Pure functions for cleaning and parsing scraped text.

Testable, composable functions with no side effects.
"""

import re
from typing import Iterable, Optional

CURRENCY_SYMBOLS = {
    "GBP": "£",
    "USD": "$",
    "AUD": "$",
    "CAD": "$",
    "NZD": "$",
    "EUR": "€",
}

# 1,234.56 / 1.234,56 / 1234.56 / 99,99 / 45
NUMBER_TOKEN_PATTERN = (
    r"(\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{1,2})?(?!\d)|\d+(?:[.,]\d{1,2})?(?!\d))"
)

BARE_URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")
COOKIE_TEXT_RE = re.compile(r"(cookies?|(accept|close).{0,15}cookies?)", re.IGNORECASE)

MAX_DESCRIPTION_LENGTH = 500


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return WHITESPACE_RE.sub(" ", text).strip()


def currency_symbol(currency_code: Optional[str]) -> str:
    """Map an ISO currency code to its symbol, or "" if unknown.

    Examples:
        >>> currency_symbol("gbp")
        '£'
        >>> currency_symbol("JPY")
        ''
    """
    if not currency_code:
        return ""
    return CURRENCY_SYMBOLS.get(currency_code.strip().upper(), "")


def build_price_pattern(currency_code: Optional[str]) -> re.Pattern:
    """Build a regex matching a price token, anchored to the currency symbol.

    The number is always capture group 1. Currencies without a known
    symbol match bare numbers.
    """
    symbol = currency_symbol(currency_code)
    if symbol:
        return re.compile(re.escape(symbol) + r"\s*" + NUMBER_TOKEN_PATTERN)
    return re.compile(NUMBER_TOKEN_PATTERN)


def normalize_number_token(token: Optional[str]) -> str:
    """Normalize a locale-formatted number to a dot-decimal string.

    When both "." and "," appear, the last one is the decimal separator.
    Only commas means comma decimal ("99,99"); otherwise commas are
    thousands separators.

    Examples:
        >>> normalize_number_token("1.234,56")
        '1234.56'
        >>> normalize_number_token("1,234.56")
        '1234.56'
    """
    if not token:
        return ""
    token = token.strip()

    last_dot = token.rfind(".")
    last_comma = token.rfind(",")
    if last_dot >= 0 and last_comma >= 0:
        last = max(last_dot, last_comma)
        int_part = re.sub(r"\D", "", token[:last])
        frac_part = re.sub(r"\D", "", token[last + 1 :])
        return f"{int_part}.{frac_part}" if frac_part else int_part

    token = re.sub(r"[^0-9.,]", "", token)
    if "," in token:
        return token.replace(",", ".")
    return token


def parse_price_value(token: Optional[str]) -> Optional[float]:
    """Parse a price token into a positive float, or None."""
    normalized = normalize_number_token(token)
    if not normalized:
        return None
    try:
        value = float(normalized)
    except ValueError:
        return None
    return value if value > 0 else None


def find_price_candidates(text: Optional[str], pattern: re.Pattern) -> list[float]:
    """Return every positive price value matched in text."""
    if not text:
        return []
    candidates = []
    for match in pattern.finditer(text):
        value = parse_price_value(match.group(1))
        if value is not None:
            candidates.append(value)
    return candidates


def format_price(value: Optional[float], currency_code: str) -> str:
    """Format as "<amount> <CODE>", or "" for missing/non-positive values."""
    if value is None or value <= 0:
        return ""
    return f"{value:.2f} {currency_code.strip().upper()}"


def is_cookie_text(text: str) -> bool:
    return bool(COOKIE_TEXT_RE.search(text or ""))


def finalize_description(text: Optional[str]) -> str:
    """Strip bare URLs, collapse whitespace and clamp to 500 characters."""
    text = BARE_URL_RE.sub(" ", text or "")
    text = clean_text(text)
    return text[:MAX_DESCRIPTION_LENGTH]


def title_keywords(title: Optional[str], min_length: int = 4) -> set[str]:
    """Lowercased title words long enough to be meaningful in a URL."""
    if not title:
        return set()
    return {
        word
        for word in re.split(r"\W+", title.lower())
        if len(word) >= min_length
    }


def unique_in_order(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))
