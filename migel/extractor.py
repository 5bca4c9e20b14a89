"""Keyword extraction from MiGeL positions."""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from .models import CatalogEntry, Keyword, KeywordKind, Language
from .normalizer import normalize_text
from .stopwords import StopWordFilter

# Secondary text is long and generic; short words from it produced false
# positives, so only long tokens survive.
SECONDARY_MIN_LENGTH = 8


def _split_lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _tokens(texts: Iterable[str], language: Language, stopwords: StopWordFilter) -> List[str]:
    tokens: List[str] = []
    for text in texts:
        tokens.extend(stopwords.filter(normalize_text(text), language))
    return tokens


def extract_keywords(
    entry: CatalogEntry,
    language: Language,
    stopwords: StopWordFilter,
) -> Tuple[Keyword, ...]:
    """Return the classified keywords of ``entry`` for ``language``.

    The first label line yields primary keywords. Further label lines, the
    limitation and the category path yield secondary keywords of at least
    :data:`SECONDARY_MIN_LENGTH` characters. A word found in both groups stays
    primary.
    """

    lines = _split_lines(entry.label.get(language))
    primary_source = lines[:1]
    secondary_source = lines[1:] + [entry.limitation.get(language), entry.category.get(language)]

    kinds: Dict[str, KeywordKind] = {}
    for token in _tokens(primary_source, language, stopwords):
        kinds.setdefault(token, KeywordKind.PRIMARY)
    for token in _tokens(secondary_source, language, stopwords):
        if len(token) >= SECONDARY_MIN_LENGTH:
            kinds.setdefault(token, KeywordKind.SECONDARY)

    return tuple(Keyword(text, language, kind) for text, kind in kinds.items())
