"""Materialization of link decisions over the original token stream."""

from __future__ import annotations

from typing import Dict, List, Sequence

from .config import EngineConfig
from .types import Candidate, LinkDecision, Token


def word_styling(importance: float, config: EngineConfig) -> str:
    """Return the styling class for a link of the given importance."""

    thresholds = config.get("styling", {})
    if importance > thresholds.get("high", 0.8):
        return "link-high-importance"
    if importance > thresholds.get("medium", 0.6):
        return "link-medium-importance"
    return "link-standard"


def materialize(
    tokens: Sequence[Token],
    selected: Sequence[Candidate],
    active_word: str,
    config: EngineConfig,
) -> List[LinkDecision]:
    """Emit exactly one decision per token, in token order."""

    lookup: Dict[str, Candidate] = {}
    for candidate in selected:
        lookup[candidate.word] = candidate

    active = (active_word or "").strip().lower()
    decisions: List[LinkDecision] = []
    for token in tokens:
        lowered = token.text.lower()
        candidate = lookup.get(lowered) if token.is_word else None
        if candidate is None:
            decisions.append(LinkDecision.pass_through(token.text))
            continue
        decisions.append(
            LinkDecision(
                text=token.text,
                linkable=True,
                word=candidate.word,
                category=candidate.category,
                confidence=candidate.confidence,
                importance=candidate.importance,
                styling=word_styling(candidate.importance, config),
                active=bool(active) and lowered == active,
            )
        )
    return decisions
