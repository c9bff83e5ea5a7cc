"""Confidence scoring and selection logic."""

from __future__ import annotations

import math
from typing import List, Sequence

from .config import EngineConfig
from .features import _clamp
from .lexicon import GENERAL, ScoringTables
from .types import Candidate


def confidence(
    word: str,
    importance: float,
    category: str,
    tables: ScoringTables,
    config: EngineConfig,
) -> float:
    """Merge importance and category into a bounded confidence score."""

    score = importance
    if category != GENERAL:
        score += config.feature_weight("category")
    if word.lower() in tables.common_words:
        score -= config.penalty_weight("common_word")
    return _clamp(score)


def select_candidates(candidates: Sequence[Candidate], config: EngineConfig) -> List[Candidate]:
    """Rank by confidence, cap the linked fraction, then apply the floor.

    The cap is taken first so a sub-threshold candidate can never survive
    on rank alone, and the floor is applied to the capped prefix only.
    """

    if not candidates:
        return []

    ranked = sorted(candidates, key=lambda candidate: candidate.confidence, reverse=True)
    limit = math.ceil(len(ranked) * float(config.get("max_link_ratio", 0.7)))
    capped = ranked[:limit]

    floor = float(config.get("confidence_floor", 0.4))
    return [candidate for candidate in capped if candidate.confidence > floor]
