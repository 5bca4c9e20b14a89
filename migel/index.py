"""Inverted keyword index over the MiGeL catalog.

One :class:`LanguageIndex` per language maps normalized keywords to the
positions that contain them. German lookups additionally consult a suffix
index so that compounds ("blasensonde") and inflected forms ("kathetern")
reach the catalog keyword ("sonde", "katheter") without comparing a product
against every position. French and Italian stay on exact equality.

The index is built once per run and is read-only afterwards; matcher workers
share it without locking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Set, Tuple

from .extractor import extract_keywords
from .models import LANGUAGES, CatalogEntry, KeywordKind, Language
from .stopwords import StopWordFilter

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX_LENGTH = 4

# Tried longest first; a stem has to keep at least MIN_STEM_LENGTH characters.
INFLECTION_SUFFIXES: Tuple[str, ...] = ("en", "er", "es", "e", "n", "s")
MIN_STEM_LENGTH = 4


class Posting(NamedTuple):
    code: str
    kind: KeywordKind


class WordHit(NamedTuple):
    """A catalog keyword reached from one product word."""

    keyword: str
    code: str
    kind: KeywordKind
    length: int


@dataclass
class LanguageIndex:
    """Keyword postings and the auxiliary suffix index for one language."""

    language: Language
    postings: Dict[str, Tuple[Posting, ...]] = field(default_factory=dict)
    suffixes: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    suffix_length: int = DEFAULT_SUFFIX_LENGTH
    stopwords: Optional[StopWordFilter] = None

    def lookup(self, word: str) -> Tuple[Posting, ...]:
        return self.postings.get(word, ())

    def _exact_hits(self, word: str) -> List[WordHit]:
        return [WordHit(word, p.code, p.kind, len(word)) for p in self.lookup(word)]

    def _containment_hits(self, word: str) -> List[WordHit]:
        hits: List[WordHit] = []
        for keyword in self.suffixes.get(word[-self.suffix_length:], ()):
            if keyword == word:
                continue
            if word.endswith(keyword) or keyword.endswith(word):
                shared = min(len(word), len(keyword))
                hits.extend(WordHit(keyword, p.code, p.kind, shared) for p in self.postings[keyword])
        return hits

    def resolve(self, word: str) -> List[WordHit]:
        """Return every catalog keyword that ``word`` matches in this language."""

        exact = self._exact_hits(word)
        if exact or self.language is not Language.DE:
            return exact

        hits = self._containment_hits(word)
        for suffix in INFLECTION_SUFFIXES:
            if not word.endswith(suffix):
                continue
            stem = word[: -len(suffix)]
            if len(stem) < MIN_STEM_LENGTH:
                continue
            # "geraten" must not reach "inhalationsgerat" through the stop word "gerat"
            if self.stopwords is not None and self.stopwords.is_stopword(stem, self.language):
                continue
            hits.extend(self._exact_hits(stem))
            hits.extend(self._containment_hits(stem))
        return _dedupe_hits(hits)

    def __len__(self) -> int:
        return len(self.postings)


def _dedupe_hits(hits: Iterable[WordHit]) -> List[WordHit]:
    best: Dict[Tuple[str, str], WordHit] = {}
    for hit in hits:
        key = (hit.keyword, hit.code)
        current = best.get(key)
        if current is None or hit.length > current.length:
            best[key] = hit
    return list(best.values())


@dataclass
class KeywordIndex:
    """Per-language inverted indexes plus the catalog they were built from."""

    languages: Dict[Language, LanguageIndex]
    entries: Dict[str, CatalogEntry]
    stopwords: StopWordFilter

    @classmethod
    def build(
        cls,
        entries: Iterable[CatalogEntry],
        stopwords: Optional[StopWordFilter] = None,
        *,
        suffix_length: int = DEFAULT_SUFFIX_LENGTH,
    ) -> "KeywordIndex":
        """Extract keywords from every entry and index them per language."""

        stopwords = stopwords or StopWordFilter()
        # Keywords shorter than the suffix key could not be found via the
        # suffix index.
        suffix_length = max(1, min(int(suffix_length), stopwords.min_length))

        by_code: Dict[str, CatalogEntry] = {}
        raw: Dict[Language, Dict[str, List[Posting]]] = {lang: {} for lang in LANGUAGES}
        for entry in entries:
            if not entry.code:
                continue
            if entry.code in by_code:
                logger.warning("Doppelte MiGeL-Position %s ignoriert", entry.code)
                continue
            by_code[entry.code] = entry
            for lang in LANGUAGES:
                for keyword in extract_keywords(entry, lang, stopwords):
                    raw[lang].setdefault(keyword.text, []).append(Posting(entry.code, keyword.kind))

        languages: Dict[Language, LanguageIndex] = {}
        for lang in LANGUAGES:
            postings = {kw: tuple(items) for kw, items in raw[lang].items()}
            suffixes: Dict[str, Set[str]] = {}
            for kw in postings:
                suffixes.setdefault(kw[-suffix_length:], set()).add(kw)
            languages[lang] = LanguageIndex(
                language=lang,
                postings=postings,
                suffixes={key: tuple(sorted(words)) for key, words in suffixes.items()},
                suffix_length=suffix_length,
                stopwords=stopwords,
            )
            logger.debug("Index %s: %d Keywords", lang.value, len(postings))

        return cls(languages=languages, entries=by_code, stopwords=stopwords)

    def lookup(self, word: str, language: Language) -> Tuple[Posting, ...]:
        """Return the exact-match postings of ``word`` in ``language``."""

        index = self.languages.get(language)
        return index.lookup(word) if index is not None else ()

    def resolve(self, word: str, language: Language) -> List[WordHit]:
        index = self.languages.get(language)
        return index.resolve(word) if index is not None else []

    def entry(self, code: str) -> Optional[CatalogEntry]:
        return self.entries.get(code)

    def keyword_count(self) -> Mapping[Language, int]:
        return {lang: len(index) for lang, index in self.languages.items()}
