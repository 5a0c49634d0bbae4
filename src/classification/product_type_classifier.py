"""Product type classification against a flat category dictionary.

The dictionary is a plain text file with one category phrase per line,
loaded once per run and passed into the classifier. Classification tries
three tiers in order and returns the first hit:

1. Phrase match: the longest dictionary phrase found in the product text,
   so "hair shears" beats "shears".
2. Breadcrumb containment: a breadcrumb containing (or contained in) a
   phrase, starting from the crumb closest to the product.
3. Token overlap: the phrase sharing the most words with the text, with a
   small bonus for longer phrases.

Anything else is "unknown".
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from src.models import UNKNOWN_PRODUCT_TYPE

STOPWORDS = frozenset(
    {"a", "an", "the", "and", "or", "with", "to", "of", "in", "on", "for"}
)
MIN_TOKEN_LENGTH = 3
LENGTH_BONUS = 0.25
MAX_PHRASE_GAP = 2


def normalize_phrase(text: Optional[str]) -> str:
    """Lowercase and reduce text to [a-z0-9+-/ ] with single spaces.

    "+", "-" and "/" survive so "t-shirt" and "usb-c" stay intact.

    Examples:
        >>> normalize_phrase("  Combs & Brushes ")
        'combs brushes'
    """
    if not text:
        return ""
    lowered = re.sub(r"[^a-z0-9\s+\-/]", " ", text.lower())
    return re.sub(r"\s+", " ", lowered).strip()


def tokenize(normalized: str) -> set[str]:
    return {
        token
        for token in normalized.split()
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOPWORDS
    }


@dataclass(frozen=True)
class CategoryEntry:
    """A dictionary phrase in its output (raw) and matching (normalized) form."""

    raw: str
    normalized: str
    pattern: re.Pattern = field(compare=False, repr=False)
    tokens: frozenset[str] = field(compare=False, repr=False)

    @classmethod
    def from_phrase(cls, phrase: str) -> "CategoryEntry":
        raw = phrase.strip()
        normalized = normalize_phrase(raw)
        return cls(
            raw=raw,
            normalized=normalized,
            pattern=phrase_pattern(normalized),
            tokens=frozenset(tokenize(normalized)),
        )


def phrase_pattern(normalized: str) -> re.Pattern:
    """Whole-word pattern for a normalized phrase.

    Up to MAX_PHRASE_GAP extra words may sit between the phrase's words,
    so "hair shears" matches "hair cutting shears".
    """
    gap = r"(?: \S+){0,%d} " % MAX_PHRASE_GAP
    body = gap.join(re.escape(word) for word in normalized.split())
    return re.compile(r"(?:^|\W)" + body + r"(?:\W|$)")


@dataclass(frozen=True)
class CategoryDictionary:
    """Immutable, ordered category dictionary."""

    entries: tuple[CategoryEntry, ...] = ()

    @classmethod
    def from_phrases(cls, phrases: Iterable[str]) -> "CategoryDictionary":
        entries = []
        for phrase in phrases:
            if not phrase or not phrase.strip():
                continue
            entry = CategoryEntry.from_phrase(phrase)
            if entry.normalized:
                entries.append(entry)
        return cls(tuple(entries))

    @classmethod
    def load(cls, path: str | Path) -> "CategoryDictionary":
        """Load one phrase per line; a missing file yields an empty dictionary.

        Args:
            path: Path to the product types text file

        Returns:
            Loaded dictionary (possibly empty)
        """
        dictionary_path = Path(path)
        if not dictionary_path.is_file():
            logger.warning(
                f"Product types file not found: {dictionary_path}. "
                "Every product type will be 'unknown'."
            )
            return cls()

        with open(dictionary_path, "r", encoding="utf-8") as f:
            dictionary = cls.from_phrases(f)

        logger.info(
            f"Loaded {len(dictionary)} product type entries from {dictionary_path}"
        )
        return dictionary

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries


def match_longest_phrase(haystack: str, dictionary: CategoryDictionary) -> Optional[str]:
    """Tier 1: longest dictionary phrase appearing as whole words."""
    best: Optional[CategoryEntry] = None
    for entry in dictionary:
        if entry.pattern.search(haystack):
            if best is None or len(entry.normalized) > len(best.normalized):
                best = entry
    return best.raw if best else None


def match_breadcrumbs(
    breadcrumbs: Iterable[str], dictionary: CategoryDictionary
) -> Optional[str]:
    """Tier 2: first phrase containing, or contained in, a breadcrumb.

    Breadcrumbs are tried from the one closest to the product (the last)
    back towards the site root.
    """
    for crumb in reversed(list(breadcrumbs)):
        normalized_crumb = normalize_phrase(crumb)
        if not normalized_crumb:
            continue
        for entry in dictionary:
            if normalized_crumb in entry.normalized or entry.normalized in normalized_crumb:
                return entry.raw
    return None


def match_token_overlap(haystack: str, dictionary: CategoryDictionary) -> Optional[str]:
    """Tier 3: best shared-word score, ties going to the earlier entry."""
    haystack_tokens = tokenize(haystack)
    best: Optional[str] = None
    best_score = 0.0

    for entry in dictionary:
        if not entry.tokens:
            continue
        overlap = len(entry.tokens & haystack_tokens)
        if not overlap:
            continue
        score = overlap + LENGTH_BONUS * len(entry.normalized)
        if score > best_score:
            best, best_score = entry.raw, score

    return best


class ProductTypeClassifier:
    """Maps product text to a single dictionary category."""

    def __init__(self, dictionary: CategoryDictionary):
        self.dictionary = dictionary

    @classmethod
    def from_file(cls, path: str | Path) -> "ProductTypeClassifier":
        return cls(CategoryDictionary.load(path))

    def classify(
        self,
        title: Optional[str],
        description: Optional[str],
        breadcrumbs: Optional[Iterable[str]] = None,
    ) -> str:
        """Classify a product from its title, description and breadcrumbs.

        Returns:
            A raw dictionary phrase, or "unknown"
        """
        crumbs = [crumb for crumb in (breadcrumbs or []) if crumb]
        haystack = normalize_phrase(" ".join([title or "", description or "", *crumbs]))
        if not haystack or self.dictionary.is_empty:
            return UNKNOWN_PRODUCT_TYPE

        return (
            match_longest_phrase(haystack, self.dictionary)
            or match_breadcrumbs(crumbs, self.dictionary)
            or match_token_overlap(haystack, self.dictionary)
            or UNKNOWN_PRODUCT_TYPE
        )
