"""Confidence-gated selection of the MiGeL position for a product.

Per language the scorer yields candidates; each is checked against the
thresholds below and the best surviving candidate across all languages wins.
Products without a surviving candidate stay unmatched and are later dropped
from the enriched export.

Thresholds
----------
* one matched keyword: score >= 0.5 and keyword length >= 10
* two or more keywords: score >= 0.3 and longest keyword >= 6

Ties are broken by the number of matched keywords, then by the lower position
number, then by language order (DE, FR, IT).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .index import KeywordIndex
from .models import LANGUAGES, Candidate, MatchResult, ProductRecord
from .scorer import score_product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Thresholds:
    single_min_score: float = 0.5
    single_min_length: int = 10
    multi_min_score: float = 0.3
    multi_min_length: int = 6


DEFAULT_THRESHOLDS = Thresholds()


def accept(candidate: Candidate, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    """Return ``True`` if ``candidate`` is confident enough to be used."""

    if candidate.keyword_count == 0:
        return False
    if candidate.keyword_count == 1:
        return (
            candidate.score >= thresholds.single_min_score
            and candidate.max_length >= thresholds.single_min_length
        )
    return (
        candidate.score >= thresholds.multi_min_score
        and candidate.max_length >= thresholds.multi_min_length
    )


def _sort_key(candidate: Candidate):
    return (
        -candidate.score,
        -candidate.keyword_count,
        candidate.code,
        LANGUAGES.index(candidate.language),
    )


def select_best(candidates: Iterable[Candidate]) -> Optional[Candidate]:
    """Return the preferred candidate or ``None`` for an empty input."""

    ordered = sorted(candidates, key=_sort_key)
    return ordered[0] if ordered else None


class MigelMatcher:
    """Matches products against a prebuilt :class:`KeywordIndex`."""

    def __init__(self, index: KeywordIndex, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> None:
        self.index = index
        self.thresholds = thresholds

    def candidates(self, product: ProductRecord) -> List[Candidate]:
        """Return all accepted candidates over every language of ``product``."""

        accepted: List[Candidate] = []
        for lang in LANGUAGES:
            if not product.description.has(lang):
                continue
            for candidate in score_product(product, lang, self.index):
                if accept(candidate, self.thresholds):
                    accepted.append(candidate)
        return accepted

    def match(self, product: ProductRecord) -> MatchResult:
        best = select_best(self.candidates(product))
        if best is None:
            return MatchResult(product.product_id)
        entry = self.index.entry(best.code)
        if entry is None:
            logger.warning("Position %s fehlt im Index", best.code)
            return MatchResult(product.product_id)
        return MatchResult(product.product_id, entry, best.language, best.score)
