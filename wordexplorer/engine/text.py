"""Lossless tokenization of explanation text."""

from __future__ import annotations

import re
from typing import Iterable, List, Tuple

from .types import PUNCTUATION, WHITESPACE, WORD, Token

_SPLIT_RE = re.compile(r"(\s+|[.,;:!?()\[\]{}\"\-–—])")
_WHITESPACE_RE = re.compile(r"\s+")


def tokenize(text: str) -> List[Token]:
    """Split text into word, whitespace and punctuation tokens.

    Separators are kept as their own tokens, so joining the token texts in
    order gives back the input unchanged.
    """

    if not text:
        return []

    tokens: List[Token] = []
    for piece in _SPLIT_RE.split(text):
        if not piece:
            continue
        if _WHITESPACE_RE.fullmatch(piece):
            tokens.append(Token(text=piece, kind=WHITESPACE))
        elif _SPLIT_RE.fullmatch(piece):
            tokens.append(Token(text=piece, kind=PUNCTUATION))
        else:
            tokens.append(Token(text=piece, kind=WORD))
    return tokens


def join_tokens(tokens: Iterable[Token]) -> str:
    """Concatenate token texts back into the source string."""

    return "".join(token.text for token in tokens)


def word_tokens(tokens: Iterable[Token]) -> List[Tuple[int, Token]]:
    """Return ``(position, token)`` pairs for word tokens only."""

    return [(position, token) for position, token in enumerate(tokens) if token.is_word]
