"""
Pytest configuration: ensure project root is on sys.path for imports.

Several tests import the local ``migel`` package and ``server`` directly. When
running tests from certain IDEs or subdirectories, the repository root might
not be on the Python module search path. This hook prepends the repo root so
imports work consistently. The fixtures provide a small MiGeL excerpt.
"""

from __future__ import annotations

import sys
from pathlib import Path


def _add_repo_root_to_sys_path() -> None:
    # tests/ -> repo root
    root = Path(__file__).resolve().parents[1]
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_add_repo_root_to_sys_path()

import pytest

from migel.index import KeywordIndex
from migel.matcher import MigelMatcher
from migel.models import CatalogEntry, LocalizedText, ProductRecord
from migel.stopwords import StopWordFilter


def make_entry(code, de="", fr="", it="", lim_de="", lim_fr="", lim_it="", cat_de=""):
    return CatalogEntry(
        code=code,
        label=LocalizedText(de=de, fr=fr, it=it),
        limitation=LocalizedText(de=lim_de, fr=lim_fr, it=lim_it),
        category=LocalizedText(de=cat_de),
    )


def make_product(product_id="1", de="", fr="", it="", brand=""):
    return ProductRecord(
        product_id=product_id,
        description=LocalizedText(de=de, fr=fr, it=it),
        brand=brand,
    )


@pytest.fixture
def catalog():
    return [
        make_entry(
            "01.01.01",
            de="Verweilkatheter",
            fr="Sonde à demeure",
            it="Catetere a permanenza",
            lim_de="nur bei Dauerkatheterisierung",
        ),
        make_entry("02.01.01", de="Blasenspülung", fr="Sonde", it="Sonda"),
        make_entry("03.02.01", de="Sonde"),
        make_entry(
            "15.10.01",
            de="Kompressionsstrumpf\nSchenkelstrumpf mit Haftband",
            fr="Bas de compression",
            it="Calza compressiva",
            lim_de="Lymphödem, Phlebologie",
        ),
        make_entry("21.01.01", de="Inhalationsgerät", fr="Appareil d'inhalation", it="Apparecchio per inalazione"),
    ]


@pytest.fixture
def index(catalog):
    return KeywordIndex.build(catalog, StopWordFilter())


@pytest.fixture
def matcher(index):
    return MigelMatcher(index)
