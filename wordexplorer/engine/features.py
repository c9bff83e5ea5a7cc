"""Importance scoring for candidate words."""

from __future__ import annotations

from typing import Sequence

from .categories import keyword_domain
from .config import EngineConfig
from .lexicon import ScoringTables
from .types import Token


def _clamp(value: float, minimum: float = 0.0, maximum: float = 1.0) -> float:
    return max(min(value, maximum), minimum)


def matches_pattern(word: str, tables: ScoringTables) -> bool:
    """Return True if the lowercase word matches any morphological pattern."""

    return any(pattern.match(word) for pattern in tables.patterns)


def is_important_word(word: str, tables: ScoringTables) -> bool:
    return word in tables.important_words or matches_pattern(word, tables)


def context_score(position: int, tokens: Sequence[Token], tables: ScoringTables, config: EngineConfig) -> float:
    """Score the neighbourhood of ``position`` by nearby important words."""

    if not tokens:
        return 0.0
    window = int(config.get("context_window", 3))
    step = float(config.get("context_step", 0.2))
    start = max(0, position - window)
    end = min(len(tokens) - 1, position + window)

    score = 0.0
    for index in range(start, end + 1):
        if index == position:
            continue
        if is_important_word(tokens[index].text.lower(), tables):
            score += step
    return min(score, 1.0)


def importance(
    word: str,
    position: int,
    tokens: Sequence[Token],
    tables: ScoringTables,
    config: EngineConfig,
) -> float:
    """Return a bounded importance score in [0, 1] for the word at ``position``.

    ``word`` is the token as it appears in the text; the capitalization
    bonus reads its original casing while every other signal uses the
    lowercase form.
    """

    lowered = word.lower()
    score = config.feature_weight("base")

    if len(lowered) > int(config.get("long_word_length", 6)):
        score += config.feature_weight("long_word")
    if len(lowered) > int(config.get("very_long_word_length", 9)):
        score += config.feature_weight("very_long_word")

    if matches_pattern(lowered, tables):
        score += config.feature_weight("pattern")

    if word[:1].isupper():
        score += config.feature_weight("capitalized")

    if keyword_domain(lowered, tables) is not None:
        score += config.feature_weight("domain")

    score += context_score(position, tokens, tables, config) * config.feature_weight("context")

    return _clamp(score)
