"""Dataclasses representing catalog entries, products and match outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Language(str, Enum):
    """Languages in which MiGeL and firstbase provide descriptive text."""

    DE = "de"
    FR = "fr"
    IT = "it"


# Order used whenever languages are iterated or compared.
LANGUAGES: Tuple[Language, ...] = (Language.DE, Language.FR, Language.IT)


class KeywordKind(Enum):
    """Classification of a catalog keyword."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class LocalizedText:
    """Optional text in each supported language."""

    de: str = ""
    fr: str = ""
    it: str = ""

    def get(self, language: Language) -> str:
        value = {Language.DE: self.de, Language.FR: self.fr, Language.IT: self.it}.get(language, "")
        return value if isinstance(value, str) else ""

    def has(self, language: Language) -> bool:
        return bool(self.get(language).strip())


@dataclass(frozen=True)
class CatalogEntry:
    """Single MiGeL position.

    Attributes:
        code: Position number (``Positions-Nr.``), unique within the catalog.
        label: Description per language. The first line is the main
            description, further lines refine it.
        limitation: Restriction text (``Limitation``) per language.
        category: Chapter/group headings above the position, joined per language.
    """

    code: str
    label: LocalizedText = field(default_factory=LocalizedText)
    limitation: LocalizedText = field(default_factory=LocalizedText)
    category: LocalizedText = field(default_factory=LocalizedText)


@dataclass(frozen=True)
class Keyword:
    """Normalized catalog term with its language and classification."""

    text: str
    language: Language
    kind: KeywordKind


@dataclass(frozen=True)
class ProductRecord:
    """Product row from the firstbase export.

    ``fields`` carries the untouched source row so the writer can emit it
    together with the MiGeL columns.
    """

    product_id: str
    description: LocalizedText = field(default_factory=LocalizedText)
    brand: str = ""
    fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MatchedKeyword:
    """Catalog keyword hit by a product word.

    ``length`` counts the characters product word and keyword have in common:
    the full keyword for exact hits, the shorter side for compound hits.
    """

    keyword: str
    kind: KeywordKind
    length: int


@dataclass(frozen=True)
class Candidate:
    """Scored catalog entry for one product in one language."""

    code: str
    language: Language
    score: float
    keywords: Tuple[MatchedKeyword, ...] = ()

    @property
    def keyword_count(self) -> int:
        return len(self.keywords)

    @property
    def max_length(self) -> int:
        return max((kw.length for kw in self.keywords), default=0)


@dataclass(frozen=True)
class MatchResult:
    """Outcome for one product. ``entry`` is ``None`` when nothing matched."""

    product_id: str
    entry: Optional[CatalogEntry] = None
    language: Optional[Language] = None
    score: float = 0.0

    @property
    def matched(self) -> bool:
        return self.entry is not None

    @property
    def code(self) -> str:
        return self.entry.code if self.entry is not None else ""

    @property
    def label(self) -> str:
        return _localized_or_german(self.entry.label, self.language) if self.entry else ""

    @property
    def limitation(self) -> str:
        return _localized_or_german(self.entry.limitation, self.language) if self.entry else ""


def _localized_or_german(text: LocalizedText, language: Optional[Language]) -> str:
    if language is not None and text.has(language):
        return text.get(language).strip()
    return text.de.strip()
