"""Coordinator for the word linking pipeline."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, List, Sequence

from . import categories as categories_module
from . import features as features_module
from . import filters as filters_module
from . import placement as placement_module
from . import rank as rank_module
from .config import EngineConfig, load_config
from .lexicon import GENERAL, ScoringTables, build_tables
from .text import tokenize, word_tokens
from .types import Candidate, LinkDecision, Token


@dataclass(frozen=True)
class LinkingEngine:
    """Stateless linking engine closed over immutable tables and configuration."""

    config: EngineConfig
    tables: ScoringTables

    @classmethod
    def from_config(cls, config: EngineConfig | None = None) -> "LinkingEngine":
        engine_config = config or load_config(None)
        return cls(config=engine_config, tables=build_tables(engine_config.get("tables")))

    def score_candidates(self, tokens: Sequence[Token], exclusions: Iterable[str] = ()) -> List[Candidate]:
        """Score every filtered, non-excluded word token in token order."""

        excluded = normalize_exclusions(exclusions)
        scored: List[Candidate] = []
        for position, token in word_tokens(tokens):
            if not filters_module.is_candidate(token.text, self.tables, self.config):
                continue
            word = token.text.lower()
            if word in excluded:
                continue
            importance = features_module.importance(token.text, position, tokens, self.tables, self.config)
            category = categories_module.categorize(word, self.tables, self.config)
            scored.append(
                Candidate(
                    word=word,
                    text=token.text,
                    position=position,
                    importance=importance,
                    category=category,
                    confidence=rank_module.confidence(word, importance, category, self.tables, self.config),
                )
            )
        return scored

    def process_text(self, text: str, exclusions: Iterable[str] = ()) -> List[Candidate]:
        """Return the selected candidates for ``text``, highest confidence first."""

        tokens = tokenize(text or "")
        return rank_module.select_candidates(self.score_candidates(tokens, exclusions), self.config)

    def generate_links(
        self,
        text: str,
        active_word: str = "",
        exclusions: Iterable[str] = (),
    ) -> List[LinkDecision]:
        """Return one link decision per token of ``text``."""

        tokens = tokenize(text or "")
        if not tokens:
            return []
        selected = rank_module.select_candidates(self.score_candidates(tokens, exclusions), self.config)
        return placement_module.materialize(tokens, selected, active_word or "", self.config)

    def plain_links(self, text: str, active_word: str = "") -> List[LinkDecision]:
        """Link every alphabetic word without scoring, using default styling."""

        active = (active_word or "").strip().lower()
        decisions: List[LinkDecision] = []
        for token in tokenize(text or ""):
            if token.is_word and filters_module.is_alphabetic_word(token.text):
                lowered = token.text.lower()
                decisions.append(
                    LinkDecision(
                        text=token.text,
                        linkable=True,
                        word=lowered,
                        category=GENERAL,
                        styling="link-standard",
                        active=bool(active) and lowered == active,
                    )
                )
            else:
                decisions.append(LinkDecision.pass_through(token.text))
        return decisions


def normalize_exclusions(exclusions: Iterable[str] | str | None) -> FrozenSet[str]:
    """Return the exclusion set as lowercase words."""

    if not exclusions:
        return frozenset()
    if isinstance(exclusions, str):
        exclusions = [exclusions]
    return frozenset(
        item.strip().lower()
        for item in exclusions
        if isinstance(item, str) and item.strip()
    )


@lru_cache(maxsize=1)
def default_engine() -> LinkingEngine:
    """Return the engine built from the default configuration."""

    return LinkingEngine.from_config(None)


def generate_links(
    text: str,
    active_word: str = "",
    exclusions: Iterable[str] = (),
    engine: LinkingEngine | None = None,
) -> List[LinkDecision]:
    """Return link decisions for ``text`` using ``engine`` or the default one."""

    return (engine or default_engine()).generate_links(text, active_word, exclusions)


def dry_run(texts: Sequence[str], engine: LinkingEngine | None = None) -> Dict[str, float | Dict[str, int]]:
    """Return diagnostic metrics for a batch of texts."""

    linking_engine = engine or default_engine()
    total_documents = len(texts)
    documents_with_links = 0
    total_words = 0
    total_links = 0
    category_counts: Counter = Counter()
    selected_scores: List[float] = []
    rejected_scores: List[float] = []

    for text in texts:
        tokens = tokenize(text or "")
        candidates = linking_engine.score_candidates(tokens)
        selected = rank_module.select_candidates(candidates, linking_engine.config)
        selected_positions = {candidate.position for candidate in selected}
        decisions = placement_module.materialize(tokens, selected, "", linking_engine.config)

        links = [decision for decision in decisions if decision.linkable]
        if links:
            documents_with_links += 1
        total_links += len(links)
        total_words += len(word_tokens(tokens))

        for candidate in candidates:
            if candidate.position in selected_positions:
                selected_scores.append(candidate.confidence)
                category_counts[candidate.category] += 1
            else:
                rejected_scores.append(candidate.confidence)

    return {
        "documents": total_documents,
        "coverage": documents_with_links / total_documents if total_documents else 0.0,
        "link_density": total_links / total_words if total_words else 0.0,
        "mean_confidence_selected": sum(selected_scores) / len(selected_scores) if selected_scores else 0.0,
        "mean_confidence_rejected": sum(rejected_scores) / len(rejected_scores) if rejected_scores else 0.0,
        "category_counts": dict(category_counts),
        "category_diversity_index": _shannon_entropy(category_counts),
    }


def _shannon_entropy(counter: Counter) -> float:
    total = sum(counter.values())
    if total == 0:
        return 0.0
    entropy = 0.0
    for count in counter.values():
        probability = count / total
        entropy -= probability * math.log(probability)
    if len(counter) <= 1:
        return 0.0
    return entropy / math.log(len(counter))
