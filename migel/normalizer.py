"""Helpers to normalize text before comparison.

Catalog and product side run through the same functions, so keyword equality
and suffix tests compare like with like.
"""

from __future__ import annotations

import re
import unicodedata
from typing import List

# Everything that is not a letter separates words, digits included
# ("16Ch" -> "ch").
_SEPARATOR_RE = re.compile(r"[^a-z]+")

# Ligatures without a canonical decomposition.
_LIGATURES = str.maketrans({"ß": "ss", "œ": "oe", "æ": "ae"})


def _strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: str) -> List[str]:
    """Return the normalized word tokens of ``text`` in source order."""

    if not isinstance(text, str) or not text:
        return []

    lowered = text.lower().translate(_LIGATURES)
    folded = _strip_accents(lowered)
    return [token for token in _SEPARATOR_RE.split(folded) if token]


def normalize_term(term: str) -> str:
    """Return a standardized single-string representation of ``term``."""

    return " ".join(normalize_text(term))
