"""Matching of firstbase products against the MiGeL catalogue."""

# Package exports should be side-effect free.

from . import (
    models,
    normalizer,
    stopwords,
    extractor,
    index,
    scorer,
    matcher,
    dispatcher,
)

__all__ = [
    "models",
    "normalizer",
    "stopwords",
    "extractor",
    "index",
    "scorer",
    "matcher",
    "dispatcher",
]
