"""Parallel matching of the whole product list.

Each worker process receives the matcher once through the pool initializer and
keeps it as read-only process state; products are then mapped in chunks.
Workers never talk to each other and results come back in input order, each
carrying its product id.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor
from typing import Iterable, Iterator, List, Optional, Sequence

from tqdm import tqdm

from .matcher import MigelMatcher
from .models import MatchResult, ProductRecord

logger = logging.getLogger(__name__)

DEFAULT_CHUNKSIZE = 256

_worker_matcher: Optional[MigelMatcher] = None


def _init_worker(matcher: MigelMatcher) -> None:
    global _worker_matcher
    _worker_matcher = matcher


def safe_match(matcher: MigelMatcher, product: ProductRecord) -> MatchResult:
    """Match ``product``; any failure yields an unmatched result."""

    try:
        return matcher.match(product)
    except Exception:
        logger.exception("Matching fehlgeschlagen für Produkt %s", product.product_id)
        return MatchResult(product.product_id)


def _match_in_worker(product: ProductRecord) -> MatchResult:
    if _worker_matcher is None:
        raise RuntimeError("worker not initialised")
    return safe_match(_worker_matcher, product)


def default_workers() -> int:
    return os.cpu_count() or 1


def _iter_results(
    products: Sequence[ProductRecord],
    matcher: MigelMatcher,
    workers: int,
    chunksize: int,
) -> Iterator[MatchResult]:
    if workers <= 1 or len(products) <= 1:
        for product in products:
            yield safe_match(matcher, product)
        return

    with ProcessPoolExecutor(
        max_workers=workers,
        initializer=_init_worker,
        initargs=(matcher,),
    ) as executor:
        yield from executor.map(_match_in_worker, products, chunksize=max(1, chunksize))


def match_products(
    products: Iterable[ProductRecord],
    matcher: MigelMatcher,
    workers: Optional[int] = None,
    *,
    chunksize: int = DEFAULT_CHUNKSIZE,
    progress: bool = False,
) -> List[MatchResult]:
    """Run :meth:`MigelMatcher.match` for every product, in parallel if possible."""

    items = list(products)
    workers = default_workers() if workers is None else int(workers)
    logger.info("Matche %d Produkte mit %d Worker(n)", len(items), max(1, workers))

    results = _iter_results(items, matcher, workers, chunksize)
    if progress:
        results = tqdm(results, total=len(items), desc="MiGeL-Matching", unit="Produkt")
    collected = list(results)

    logger.info("%d von %d Produkten zugeordnet", sum(r.matched for r in collected), len(collected))
    return collected
