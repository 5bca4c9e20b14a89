"""Storage helpers for the firstbase export, the MiGeL workbook and the result DB.

Loading tolerates the encodings and sheet layouts that show up in the wild
(BOM, UTF-16, Latin-1; sheet names per language or only sheet order) and
turns everything into the immutable records the matcher consumes. Saving
writes a single SQLite table ``data`` with one TEXT column per CSV column.
"""

from __future__ import annotations

import csv
import io
import logging
import re
import sqlite3
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from openpyxl import load_workbook

from .config import ProductColumns
from .errors import SourceError
from .models import LANGUAGES, CatalogEntry, Language, LocalizedText, MatchResult, ProductRecord
from .normalizer import normalize_term

logger = logging.getLogger(__name__)

MIGEL_COLUMNS: Tuple[str, ...] = ("migel_code", "migel_bezeichnung", "migel_limitation")

# Unicode letters and digits survive ("Grösse" stays "Grösse").
_COLUMN_NAME_RE = re.compile(r"[^\w]|_")

# --- firstbase CSV -----------------------------------------------------------


def _decode(raw: bytes) -> str:
    for enc in ("utf-8-sig", "utf-16"):
        try:
            text = raw.decode(enc)
        except UnicodeDecodeError:
            continue
        if enc == "utf-16" and not raw.startswith((b"\xff\xfe", b"\xfe\xff")):
            continue
        return text
    return raw.decode("latin-1")


def parse_product_csv(
    content: str, *, delimiter: str = ",", max_columns: int = 15
) -> Tuple[List[str], List[List[str]]]:
    """Split CSV ``content`` into header and data rows, keeping ``max_columns``."""

    reader = csv.reader(io.StringIO(content), delimiter=delimiter)
    header: Optional[List[str]] = None
    rows: List[List[str]] = []
    for record in reader:
        if not record:
            continue
        row = [cell for cell in record[:max_columns]]
        if header is None:
            header = row
        else:
            rows.append(row)
    if header is None:
        raise SourceError("CSV has no rows")
    return header, rows


def read_product_rows(
    path: str | Path, *, delimiter: str = ",", max_columns: int = 15
) -> Tuple[List[str], List[List[str]]]:
    """Read the firstbase export at ``path``."""

    p = Path(path)
    try:
        raw = p.read_bytes()
    except OSError as exc:
        raise SourceError(f"CSV {p} konnte nicht gelesen werden: {exc}") from exc
    return parse_product_csv(_decode(raw), delimiter=delimiter, max_columns=max_columns)


def _cell(row: Sequence[str], position: int) -> str:
    if 0 <= position < len(row):
        value = row[position]
        return value if isinstance(value, str) else ""
    return ""


def products_from_rows(
    rows: Iterable[Sequence[str]], columns: ProductColumns = ProductColumns()
) -> List[ProductRecord]:
    """Build :class:`ProductRecord` values; ids are 1-based data row numbers."""

    products: List[ProductRecord] = []
    for number, row in enumerate(rows, start=1):
        products.append(
            ProductRecord(
                product_id=str(number),
                description=LocalizedText(
                    de=_cell(row, columns.description_de),
                    fr=_cell(row, columns.description_fr),
                    it=_cell(row, columns.description_it),
                ),
                brand=_cell(row, columns.brand),
                fields=tuple(row),
            )
        )
    return products


def enriched_rows(results: Iterable[MatchResult], products: Sequence[ProductRecord]) -> List[List[str]]:
    """Return the source rows of matched products extended by the MiGeL columns."""

    by_id: Dict[str, ProductRecord] = {p.product_id: p for p in products}
    rows: List[List[str]] = []
    for result in results:
        if not result.matched:
            continue
        product = by_id.get(result.product_id)
        if product is None:
            logger.warning("Ergebnis für unbekanntes Produkt %s verworfen", result.product_id)
            continue
        rows.append(list(product.fields) + [result.code, result.label, result.limitation])
    return rows


# --- MiGeL workbook ----------------------------------------------------------

_POSITION_HEADERS = {
    "pos nr",
    "pos",
    "positions nr",
    "position nr",
    "positionsnummer",
    "position",
    "no de position",
    "n de position",
    "no position",
    "no pos",
    "numero di posizione",
    "n posizione",
    "no posizione",
    "posizione",
}
_LABEL_HEADERS = {"bezeichnung", "denomination", "designation", "denominazione", "descrizione"}
_LIMITATION_HEADERS = {"limitation", "limitationen", "limitazione", "limitazioni"}

_SHEET_HINTS: Mapping[Language, Tuple[str, ...]] = {
    Language.DE: ("deutsch", "german", "de"),
    Language.FR: ("francais", "franzosisch", "french", "fr"),
    Language.IT: ("italiano", "italienisch", "italian", "it"),
}

# Position numbers have at least this many dot-separated groups; shorter codes
# ("01", "01.01") denote chapters and groups.
MIN_POSITION_SEGMENTS = 3
_HEADER_SCAN_ROWS = 30


@dataclass
class _SheetColumns:
    position: int
    label: int
    limitation: Optional[int] = None


@dataclass
class _EntryTexts:
    label: Dict[Language, str] = field(default_factory=dict)
    limitation: Dict[Language, str] = field(default_factory=dict)
    category: Dict[Language, str] = field(default_factory=dict)


def _localized(texts: Mapping[Language, str]) -> LocalizedText:
    return LocalizedText(
        de=texts.get(Language.DE, ""),
        fr=texts.get(Language.FR, ""),
        it=texts.get(Language.IT, ""),
    )


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _match_header(name: str, aliases: Iterable[str]) -> bool:
    norm = normalize_term(name)
    return bool(norm) and norm in aliases


def _find_columns(rows: List[Tuple[object, ...]]) -> Tuple[int, _SheetColumns]:
    for number, row in enumerate(rows[:_HEADER_SCAN_ROWS]):
        names = [_text(cell) for cell in row]
        position = next((i for i, n in enumerate(names) if _match_header(n, _POSITION_HEADERS)), None)
        label = next((i for i, n in enumerate(names) if _match_header(n, _LABEL_HEADERS)), None)
        if position is None or label is None:
            continue
        limitation = next(
            (i for i, n in enumerate(names) if _match_header(n, _LIMITATION_HEADERS)), None
        )
        return number, _SheetColumns(position, label, limitation)
    raise SourceError("MiGeL-Tabelle ohne erkennbare Kopfzeile (Positions-Nr./Bezeichnung)")


def _segments(code: str) -> int:
    return len([part for part in code.split(".") if part.strip()])


def _resolve_sheets(sheetnames: Sequence[str], configured: Mapping[Language, str]) -> Dict[Language, str]:
    resolved: Dict[Language, str] = {}
    for lang in LANGUAGES:
        name = configured.get(lang)
        if name and name in sheetnames:
            resolved[lang] = name
            continue
        if name:
            logger.warning("Blatt %s für %s nicht gefunden", name, lang.value)
        for sheet in sheetnames:
            tokens = normalize_term(sheet).split()
            if any(hint in tokens for hint in _SHEET_HINTS[lang]) and sheet not in resolved.values():
                resolved[lang] = sheet
                break
    if not resolved:
        for lang, sheet in zip(LANGUAGES, sheetnames):
            resolved[lang] = sheet
    return resolved


def _read_sheet(rows: List[Tuple[object, ...]], lang: Language, texts: Dict[str, _EntryTexts]) -> int:
    header_row, cols = _find_columns(rows)
    headings: List[Tuple[int, str]] = []
    count = 0
    for row in rows[header_row + 1 :]:
        code = _text(row[cols.position]) if cols.position < len(row) else ""
        label = _text(row[cols.label]) if cols.label < len(row) else ""
        limitation = ""
        if cols.limitation is not None and cols.limitation < len(row):
            limitation = _text(row[cols.limitation])
        if not code and not label:
            continue

        segments = _segments(code)
        if segments < MIN_POSITION_SEGMENTS:
            if label:
                level = max(1, segments)
                headings = [h for h in headings if h[0] < level]
                headings.append((level, label.splitlines()[0].strip()))
            continue

        item = texts.setdefault(code, _EntryTexts())
        item.label[lang] = label
        item.limitation[lang] = limitation
        item.category[lang] = " / ".join(text for _, text in headings)
        count += 1
    return count


def load_catalog(path: str | Path, sheet_names: Optional[Mapping[Language, str]] = None) -> List[CatalogEntry]:
    """Parse the MiGeL workbook at ``path`` into catalog entries."""

    p = Path(path)
    try:
        workbook = load_workbook(p, read_only=True, data_only=True)
    except (OSError, ValueError, KeyError) as exc:
        raise SourceError(f"MiGeL-Datei {p} konnte nicht geöffnet werden: {exc}") from exc

    texts: Dict[str, _EntryTexts] = {}
    try:
        sheets = _resolve_sheets(workbook.sheetnames, sheet_names or {})
        for lang, sheet in sheets.items():
            rows = list(workbook[sheet].iter_rows(values_only=True))
            count = _read_sheet(rows, lang, texts)
            logger.info("MiGeL-Blatt %s (%s): %d Positionen", sheet, lang.value, count)
    finally:
        workbook.close()

    entries: List[CatalogEntry] = []
    for code, item in texts.items():
        entries.append(
            CatalogEntry(
                code=code,
                label=_localized(item.label),
                limitation=_localized(item.limitation),
                category=_localized(item.category),
            )
        )
    return entries


# --- SQLite ------------------------------------------------------------------


def column_names(header: Sequence[str]) -> List[str]:
    """Return SQLite-safe, unique column names for ``header``."""

    names: List[str] = []
    seen: Dict[str, int] = {}
    for position, raw in enumerate(header):
        name = _COLUMN_NAME_RE.sub("_", str(raw or "")) or f"column_{position + 1}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        seen.setdefault(name, 0)
        names.append(name)
    return names


def write_database(path: str | Path, header: Sequence[str], rows: Iterable[Sequence[str]]) -> int:
    """(Re)create table ``data`` at ``path`` and insert ``rows``; returns the row count."""

    names = column_names(header)
    width = len(names)
    create_cols = ", ".join(f'"{name}" TEXT' for name in names)
    placeholders = ", ".join("?" for _ in names)

    def _fit(row: Sequence[str]) -> List[str]:
        values = [str(v) if v is not None else "" for v in list(row)[:width]]
        return values + [""] * (width - len(values))

    count = 0
    with closing(sqlite3.connect(str(path))) as conn:
        with conn:
            conn.execute("DROP TABLE IF EXISTS data")
            conn.execute(f"CREATE TABLE data ({create_cols})")
            for row in rows:
                conn.execute(f"INSERT INTO data VALUES ({placeholders})", _fit(row))
                count += 1
    logger.info("Datenbank %s mit %d Zeilen geschrieben", path, count)
    return count
