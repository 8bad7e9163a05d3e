from __future__ import annotations

from typing import List

from .models import Language
from .stopwords import stopwords_for
from .textutils import normalize_text

MIN_TOKEN_LENGTH = 3


def tokenize(text: str | None, language: Language | str | None = None) -> List[str]:
    """
    Convert raw text into the ordered sequence of significant lexical tokens.

    Lower-cases, strips diacritics and punctuation, splits on whitespace, then
    drops stopwords for ``language`` and tokens shorter than three characters.
    Duplicates are kept in source order. Never raises; empty input yields [].
    """
    if not text:
        return []
    stopwords = stopwords_for(language)
    return [
        token
        for token in normalize_text(text).split()
        if token not in stopwords and len(token) >= MIN_TOKEN_LENGTH
    ]


def tokenize_keypoint(text: str, language: Language | str | None = None) -> List[str]:
    """Tokenize a keypoint sentence once so the tokens can be stored with it."""
    return tokenize(text, language)


def count_words(text: str | None) -> int:
    """Raw whitespace-delimited word count with no normalization applied."""
    if not text:
        return 0
    return len(text.split())
