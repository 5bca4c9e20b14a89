"""Scoring of catalog candidates for a single product and language."""

from __future__ import annotations

from typing import Dict, List

from .index import KeywordIndex, WordHit
from .models import Candidate, KeywordKind, Language, MatchedKeyword, ProductRecord
from .normalizer import normalize_text


def product_words(product: ProductRecord, language: Language, index: KeywordIndex) -> List[str]:
    """Return the distinct, filtered words of ``product`` in ``language``.

    The brand name only joins a language the product actually describes;
    otherwise a brand alone could reach another language's catalog text.
    """

    description = product.description.get(language)
    if not description.strip():
        return []
    tokens = normalize_text(description) + normalize_text(product.brand)
    words: Dict[str, None] = {}
    for token in index.stopwords.filter(tokens, language):
        words.setdefault(token, None)
    return list(words)


def _better(hit: WordHit, current: WordHit) -> bool:
    if hit.kind is not current.kind:
        return hit.kind is KeywordKind.PRIMARY
    return hit.length > current.length


def score_product(product: ProductRecord, language: Language, index: KeywordIndex) -> List[Candidate]:
    """Return scored candidates for ``product`` against ``language``'s index.

    ``score`` is the share of the product's distinct words explained by the
    entry's keywords. Secondary keywords only count for entries that also
    matched a primary keyword.
    """

    words = product_words(product, language, index)
    if not words:
        return []

    # code -> word -> best hit for that word
    per_entry: Dict[str, Dict[str, WordHit]] = {}
    for word in words:
        for hit in index.resolve(word, language):
            bucket = per_entry.setdefault(hit.code, {})
            current = bucket.get(word)
            if current is None or _better(hit, current):
                bucket[word] = hit

    candidates: List[Candidate] = []
    for code in sorted(per_entry):
        hits = per_entry[code].values()
        if not any(h.kind is KeywordKind.PRIMARY for h in hits):
            continue
        matched: Dict[str, MatchedKeyword] = {}
        for hit in hits:
            existing = matched.get(hit.keyword)
            if existing is None or hit.length > existing.length:
                matched[hit.keyword] = MatchedKeyword(hit.keyword, hit.kind, hit.length)
        keywords = tuple(sorted(matched.values(), key=lambda kw: kw.keyword))
        candidates.append(Candidate(code, language, len(keywords) / len(words), keywords))
    return candidates
