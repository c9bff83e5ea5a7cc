"""Topical categorization of candidate words."""

from __future__ import annotations

from .config import EngineConfig
from .lexicon import GENERAL, ScoringTables


def character_overlap(first: str, second: str) -> float:
    """Order-insensitive approximate match between two strings.

    Counts how many characters of the shorter string occur anywhere in the
    longer one and divides by the longer string's length. Repeated
    characters are counted each time, so this is not an edit distance.
    """

    longer, shorter = (first, second) if len(first) > len(second) else (second, first)
    if not longer:
        return 0.0
    matches = sum(1 for char in shorter if char in longer)
    return matches / len(longer)


def keyword_domain(word: str, tables: ScoringTables) -> str | None:
    """Return the first domain with a keyword overlapping ``word`` by substring."""

    lowered = word.lower()
    for domain, keywords in tables.domain_keywords:
        if any(keyword in lowered or lowered in keyword for keyword in keywords):
            return domain
    return None


def categorize(word: str, tables: ScoringTables, config: EngineConfig) -> str:
    """Return the topical category for ``word`` or ``general``."""

    lowered = word.lower()
    threshold = float(config.get("similarity_threshold", 0.7))
    for domain, keywords in tables.domain_keywords:
        for keyword in keywords:
            if keyword in lowered or lowered in keyword:
                return domain
            if character_overlap(lowered, keyword) > threshold:
                return domain
    return GENERAL
