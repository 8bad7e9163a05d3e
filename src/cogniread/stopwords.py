"""
Closed stopword sets used by the tokenizer.

Entries are matched against already-normalized tokens, so accented entries
such as "até" never match. The sets are kept exactly as declared.
"""

from __future__ import annotations

from typing import FrozenSet

from .models import Language

STOPWORDS_PT_BR: FrozenSet[str] = frozenset(
    {
        "a", "o", "as", "os", "um", "uma", "uns", "umas", "de", "do", "da", "dos", "das",
        "em", "no", "na", "nos", "nas", "por", "pelo", "pela", "pelos", "pelas",
        "para", "com", "sem", "sob", "sobre", "ante", "até",
        "e", "ou", "mas", "nem", "que", "se", "como",
        "eu", "tu", "ele", "ela", "nós", "vós", "eles", "elas",
        "me", "te", "vos", "lhe", "lhes",
        "meu", "teu", "seu", "nosso", "vosso",
        "ser", "estar", "ter", "haver", "fazer", "ir",
        "foi", "era", "é", "são", "está", "estão",
        "isso", "aquilo", "isto", "esse", "essa", "este", "esta",
        "muito", "pouco", "mais", "menos", "tão",
    }
)

STOPWORDS_EN_US: FrozenSet[str] = frozenset(
    {
        "a", "an", "the", "in", "on", "at", "to", "for", "of", "with", "by",
        "and", "or", "but", "is", "are", "was", "were", "be", "been",
        "i", "you", "he", "she", "it", "we", "they",
        "this", "that", "these", "those",
    }
)

DEFAULT_STOPWORDS = STOPWORDS_PT_BR


def stopwords_for(language: Language | str | None) -> FrozenSet[str]:
    """Return the stopword set for a language; unknown languages use the pt-BR set."""
    if language is None:
        return DEFAULT_STOPWORDS
    code = language.value if isinstance(language, Language) else str(language)
    if code == Language.EN_US.value:
        return STOPWORDS_EN_US
    return DEFAULT_STOPWORDS
