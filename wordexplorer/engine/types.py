"""Typed data structures used by the linking engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

WORD = "word"
WHITESPACE = "whitespace"
PUNCTUATION = "punctuation"


@dataclass(frozen=True)
class Token:
    """A slice of the source text with its original casing."""

    text: str
    kind: str

    @property
    def is_word(self) -> bool:
        return self.kind == WORD


@dataclass(frozen=True)
class Candidate:
    """Word token scored for potential interactivity."""

    word: str
    text: str
    position: int
    importance: float
    category: str
    confidence: float


@dataclass(frozen=True)
class LinkDecision:
    """Rendering decision for a single token."""

    text: str
    linkable: bool = False
    word: Optional[str] = None
    category: Optional[str] = None
    confidence: Optional[float] = None
    importance: Optional[float] = None
    styling: Optional[str] = None
    active: bool = False

    @classmethod
    def pass_through(cls, text: str) -> "LinkDecision":
        return cls(text=text)
