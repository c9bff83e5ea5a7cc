"""Reference tables for word scoring.

Every list the scorer consults lives here as a named constant so the tables
can be tuned, tested or swapped (for instance from the YAML engine
configuration) without touching the scoring logic. ``build_tables`` compiles
them once into an immutable :class:`ScoringTables` value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Mapping, Pattern, Tuple

from .config import EngineConfigurationError

GENERAL = "general"

STOP_WORDS: FrozenSet[str] = frozenset({
    # articles, conjunctions and prepositions
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "up", "about", "into", "through", "during", "before",
    "after", "above", "below", "between", "among", "as", "if", "because",
    "while", "since", "until", "although", "unless", "whether", "than", "nor",
    # determiners
    "this", "that", "these", "those", "all", "any", "both", "each", "few",
    "more", "most", "other", "some", "such", "own", "same", "no",
    # pronouns
    "i", "me", "my", "myself", "we", "our", "ours", "ourselves", "you", "your",
    "yours", "yourself", "yourselves", "he", "him", "his", "himself", "she",
    "her", "hers", "herself", "it", "its", "itself", "they", "them", "their",
    "theirs", "themselves", "what", "which", "who", "whom", "whose",
    # auxiliary and modal verbs
    "am", "is", "are", "was", "were", "be", "been", "being", "have", "has",
    "had", "having", "do", "does", "did", "doing", "will", "would", "could",
    "should", "may", "might", "must", "can", "shall",
    # common adverbs
    "not", "so", "too", "very", "just", "now", "here", "there", "where",
    "when", "why", "how", "only", "also",
})

PRONOUN_BLACKLIST: FrozenSet[str] = frozenset({
    "he", "she", "it", "we", "they", "his", "her", "its", "our",
})

# Order matters: the first matching pattern wins.
MORPHOLOGICAL_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ("ism", r"^[a-z]+ism$"),
    ("ology", r"^[a-z]+ology$"),
    ("graphy", r"^[a-z]+graphy$"),
    ("tion", r"^[a-z]+tion$"),
    ("ness", r"^[a-z]+ness$"),
    ("ment", r"^[a-z]+ment$"),
    ("ical", r"^[a-z]+ical$"),
    ("eous", r"^[a-z]+eous$"),
    ("ous", r"^[a-z]+ous$"),
    ("ing", r"^[a-z]+ing$"),
    ("un", r"^un[a-z]+"),
    ("re", r"^re[a-z]+"),
    ("pre", r"^pre[a-z]+"),
    ("meta", r"^meta[a-z]+"),
    ("phon", r"^[a-z]*phon[a-z]*"),
    ("graph", r"^[a-z]*graph[a-z]*"),
    ("psych", r"^[a-z]*psych[a-z]*"),
    ("philosoph", r"^[a-z]*philosoph[a-z]*"),
)

DOMAIN_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("science", ("quantum", "molecular", "atomic", "neural", "genetic", "chemical", "physical", "biological")),
    ("philosophy", ("existential", "metaphysical", "ethical", "consciousness", "reality", "truth", "meaning")),
    ("psychology", ("cognitive", "behavioral", "emotional", "mental", "psychological", "subconscious")),
    ("art", ("aesthetic", "creative", "artistic", "visual", "musical", "literary", "cultural")),
    ("history", ("ancient", "medieval", "renaissance", "historical", "traditional", "classical")),
    ("technology", ("digital", "computational", "algorithmic", "technological", "innovative", "systematic")),
)

CATEGORIES: Tuple[str, ...] = tuple(domain for domain, _ in DOMAIN_KEYWORDS) + (GENERAL,)

IMPORTANT_WORDS: FrozenSet[str] = frozenset({
    "concept", "theory", "principle", "phenomenon", "paradigm", "methodology",
    "process", "system", "structure", "function", "element", "factor",
})

COMMON_WORDS: FrozenSet[str] = frozenset({
    "time", "make", "take", "come", "know", "get", "give", "think", "look",
    "use", "find", "want", "tell", "ask", "seem", "feel", "try", "leave",
})


@dataclass(frozen=True)
class ScoringTables:
    """Immutable, compiled view of the scoring reference tables."""

    stop_words: FrozenSet[str]
    pronouns: FrozenSet[str]
    patterns: Tuple[Pattern[str], ...]
    domain_keywords: Tuple[Tuple[str, Tuple[str, ...]], ...]
    important_words: FrozenSet[str]
    common_words: FrozenSet[str]

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(domain for domain, _ in self.domain_keywords) + (GENERAL,)


def build_tables(overrides: Mapping[str, Any] | None = None) -> ScoringTables:
    """Compile the reference tables, replacing any named in ``overrides``.

    Recognised override keys are ``stop_words``, ``pronouns``, ``patterns``
    (a list of regular expressions), ``domain_keywords`` (an ordered mapping
    of domain to keywords), ``important_words`` and ``common_words``.
    """

    overrides = overrides or {}
    if not isinstance(overrides, Mapping):
        raise EngineConfigurationError("Table overrides must be a mapping.")

    raw_patterns = overrides.get("patterns")
    if raw_patterns is None:
        raw_patterns = [pattern for _, pattern in MORPHOLOGICAL_PATTERNS]

    return ScoringTables(
        stop_words=_word_set(overrides.get("stop_words", STOP_WORDS), "stop_words"),
        pronouns=_word_set(overrides.get("pronouns", PRONOUN_BLACKLIST), "pronouns"),
        patterns=_compile_patterns(raw_patterns),
        domain_keywords=_domain_table(overrides.get("domain_keywords", DOMAIN_KEYWORDS)),
        important_words=_word_set(overrides.get("important_words", IMPORTANT_WORDS), "important_words"),
        common_words=_word_set(overrides.get("common_words", COMMON_WORDS), "common_words"),
    )


def _word_set(values: Iterable[Any], name: str) -> FrozenSet[str]:
    if isinstance(values, str) or not isinstance(values, Iterable):
        raise EngineConfigurationError(f"Table {name!r} must be a list of words.")
    words = set()
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise EngineConfigurationError(f"Table {name!r} contains an invalid entry: {value!r}")
        words.add(value.strip().lower())
    return frozenset(words)


def _compile_patterns(patterns: Iterable[Any]) -> Tuple[Pattern[str], ...]:
    if isinstance(patterns, str) or not isinstance(patterns, Iterable):
        raise EngineConfigurationError("Table 'patterns' must be a list of regular expressions.")
    compiled = []
    for pattern in patterns:
        if not isinstance(pattern, str):
            raise EngineConfigurationError(f"Pattern {pattern!r} is not a string.")
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise EngineConfigurationError(f"Pattern {pattern!r} does not compile: {exc}") from exc
    return tuple(compiled)


def _domain_table(table: Any) -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    items = table.items() if isinstance(table, Mapping) else table
    domains = []
    try:
        for domain, keywords in items:
            if not isinstance(domain, str) or not domain or domain == GENERAL:
                raise EngineConfigurationError(f"Invalid domain name: {domain!r}")
            _word_set(keywords, domain)
            ordered: list[str] = []
            for keyword in keywords:
                cleaned = keyword.strip().lower()
                if cleaned not in ordered:
                    ordered.append(cleaned)
            domains.append((domain, tuple(ordered)))
    except EngineConfigurationError:
        raise
    except (TypeError, ValueError) as exc:
        raise EngineConfigurationError("Table 'domain_keywords' must map domains to keyword lists.") from exc
    return tuple(domains)
