"""Fast rejection of tokens that can never become links."""

from __future__ import annotations

import re

from .config import EngineConfig
from .lexicon import ScoringTables

_ALPHA_RE = re.compile(r"[A-Za-z]{2,}")


def is_candidate(token: str, tables: ScoringTables, config: EngineConfig) -> bool:
    """Return True when the token may be scored for linking."""

    if not _ALPHA_RE.fullmatch(token.strip()):
        return False
    word = token.strip().lower()
    if word in tables.stop_words:
        return False
    if len(word) < int(config.get("min_word_length", 3)):
        return False
    if word in tables.pronouns:
        return False
    return True


def is_alphabetic_word(token: str) -> bool:
    """Return True for purely alphabetic tokens of at least two letters."""

    return bool(_ALPHA_RE.fullmatch(token))
