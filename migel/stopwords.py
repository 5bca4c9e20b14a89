"""Stoppwörter für die Keyword-Extraktion und das Produkt-Matching.

Die Listen enthalten neben Funktionswörtern vor allem generische Produkt- und
Medizinalbegriffe, die in vielen unabhängigen MiGeL-Kapiteln vorkommen und ohne
Filter massenhaft Fehlzuordnungen erzeugen. Der Filter wird pro Lauf einmal
aufgebaut und danach nur noch gelesen; Katalog- und Produktseite verwenden
dieselbe Instanz.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from .models import LANGUAGES, Language
from .normalizer import normalize_text

# Kürzere Tokens tragen kaum Information ("ch", "ml", "set").
MIN_WORD_LENGTH = 4

GERMAN_STOPWORDS: FrozenSet[str] = frozenset(
    {
        "und",
        "oder",
        "die",
        "der",
        "das",
        "des",
        "dem",
        "den",
        "durch",
        "mit",
        "ohne",
        "von",
        "vom",
        "im",
        "in",
        "für",
        "fuer",
        "per",
        "pro",
        "zur",
        "zum",
        "bei",
        "nur",
        "aus",
        "auf",
        "inkl",
        "inklusive",
        "eine",
        "einer",
        "eines",
        "einem",
        "einen",
        "sowie",
        "alle",
        "andere",
        "anderen",
        "weitere",
        # Generische Produktbegriffe
        "steril",
        "sterile",
        "steriler",
        "sterilen",
        "einweg",
        "packung",
        "stück",
        "stueck",
        "system",
        "systeme",
        "gerät",
        "geräte",
        "zubehör",
        "artikel",
        "produkt",
        "produkte",
        "material",
        "grösse",
        "größe",
        "farbe",
        "typ",
        "modell",
        "diverse",
        "verschiedene",
        "standard",
    }
)

FRENCH_STOPWORDS: FrozenSet[str] = frozenset(
    {
        "le",
        "la",
        "les",
        "de",
        "des",
        "du",
        "pour",
        "avec",
        "sans",
        "et",
        "ou",
        "un",
        "une",
        "en",
        "au",
        "aux",
        "par",
        "sur",
        "dans",
        "chez",
        "seulement",
        "autres",
        # Termes génériques
        "sterile",
        "steriles",
        "usage",
        "unique",
        "appareil",
        "appareils",
        "accessoire",
        "accessoires",
        "pièce",
        "pièces",
        "emballage",
        "produit",
        "produits",
        "système",
        "systèmes",
        "matériel",
        "taille",
        "couleur",
        "modèle",
        "divers",
        "standard",
    }
)

ITALIAN_STOPWORDS: FrozenSet[str] = frozenset(
    {
        "il",
        "lo",
        "la",
        "gli",
        "le",
        "di",
        "da",
        "per",
        "con",
        "senza",
        "un",
        "una",
        "in",
        "al",
        "del",
        "della",
        "dei",
        "delle",
        "nel",
        "nella",
        "solo",
        "altri",
        # Termini generici
        "sterile",
        "sterili",
        "monouso",
        "apparecchio",
        "apparecchi",
        "accessorio",
        "accessori",
        "pezzo",
        "pezzi",
        "confezione",
        "prodotto",
        "prodotti",
        "sistema",
        "sistemi",
        "materiale",
        "misura",
        "colore",
        "modello",
        "diversi",
        "standard",
    }
)

DEFAULT_STOPWORDS: Mapping[Language, FrozenSet[str]] = {
    Language.DE: GERMAN_STOPWORDS,
    Language.FR: FRENCH_STOPWORDS,
    Language.IT: ITALIAN_STOPWORDS,
}


def _normalized_set(words: Iterable[str]) -> FrozenSet[str]:
    result: set[str] = set()
    for word in words:
        result.update(normalize_text(word))
    return frozenset(result)


class StopWordFilter:
    """Decides which normalized tokens are excluded from keyword sets."""

    def __init__(
        self,
        words: Optional[Mapping[Language, Iterable[str]]] = None,
        *,
        extra: Optional[Mapping[Language, Iterable[str]]] = None,
        min_length: int = MIN_WORD_LENGTH,
    ) -> None:
        base = DEFAULT_STOPWORDS if words is None else words
        merged: Dict[Language, FrozenSet[str]] = {}
        for lang in LANGUAGES:
            items = list(base.get(lang, ()))
            if extra:
                items.extend(extra.get(lang, ()))
            merged[lang] = _normalized_set(items)
        self._words = merged
        self.min_length = max(1, int(min_length))

    def words(self, language: Language) -> FrozenSet[str]:
        return self._words.get(language, frozenset())

    def is_stopword(self, token: str, language: Language) -> bool:
        """Return ``True`` if ``token`` must not act as a keyword."""

        if len(token) < self.min_length:
            return True
        return token in self._words.get(language, frozenset())

    def filter(self, tokens: Iterable[str], language: Language) -> List[str]:
        return [t for t in tokens if not self.is_stopword(t, language)]

