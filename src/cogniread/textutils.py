from __future__ import annotations

import unicodedata

# Combining Diacritical Marks block.
_COMBINING_MARKS = range(0x0300, 0x0370)


def strip_diacritics(value: str) -> str:
    """Decompose text (NFD) and drop Latin combining marks so 'é' folds to 'e'."""
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if ord(ch) not in _COMBINING_MARKS)


def strip_punctuation(value: str) -> str:
    """Remove every character that is neither alphanumeric nor whitespace."""
    return "".join(ch for ch in value if ch.isalnum() or ch.isspace())


def normalize_text(value: object) -> str:
    """Normalize arbitrary text so recall and keypoints share identical tokens."""
    if not isinstance(value, str):
        value = str(value)
    normalized = value.lower()
    normalized = strip_diacritics(normalized)
    return strip_punctuation(normalized)
