import argparse
import datetime as dt
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from dotenv import load_dotenv

from .config import MatchingSettings, Settings, load_settings
from .dispatcher import match_products
from .errors import MigelError
from .index import KeywordIndex
from .logsetup import configure_logging
from .matcher import MigelMatcher
from .models import CatalogEntry
from .sources import deploy, fetch_catalog_xlsx, fetch_products_csv
from .stopwords import StopWordFilter
from .storage import (
    MIGEL_COLUMNS,
    enriched_rows,
    load_catalog,
    products_from_rows,
    read_product_rows,
    write_database,
)

logger = logging.getLogger(__name__)

PLAIN_DB = "firstbase.db"
DEPLOY_DB = "firstbase_migel.db"


def build_matcher(entries: Iterable[CatalogEntry], matching: MatchingSettings) -> MigelMatcher:
    """Build the stop-word filter and keyword index once and wrap them in a matcher."""

    stopwords = StopWordFilter(extra=matching.extra_stopwords, min_length=matching.min_word_length)
    index = KeywordIndex.build(entries, stopwords, suffix_length=matching.suffix_length)
    logger.info(
        "Keyword-Index mit %d Positionen aufgebaut (%s)",
        len(index.entries),
        ", ".join(f"{lang.value}: {count}" for lang, count in index.keyword_count().items()),
    )
    return MigelMatcher(index, matching.thresholds)


def migel_db_name(deploying: bool, today: Optional[dt.date] = None) -> str:
    if deploying:
        return DEPLOY_DB
    return (today or dt.date.today()).strftime("firstbase_migel_%d.%m.%Y.db")


def _products_csv(args: argparse.Namespace, settings: Settings) -> Path:
    if args.local_csv:
        path = Path(settings.sources.csv_file)
        logger.info("Lese lokale CSV %s …", path)
        return path
    return fetch_products_csv(settings.sources)


def run_plain(args: argparse.Namespace, settings: Settings) -> None:
    """Copy the firstbase export unchanged into ``firstbase.db``."""

    header, rows = read_product_rows(
        _products_csv(args, settings),
        delimiter=settings.sources.csv_delimiter,
        max_columns=settings.columns.max_columns,
    )
    output = Path(args.output or PLAIN_DB)
    write_database(output, header, rows)
    print(f"Database {output} created successfully.")
    print(f"Total CSV lines processed: {len(rows) + 1}")
    if args.deploy:
        deploy(output, settings.deploy_target)


def run_migel(args: argparse.Namespace, settings: Settings) -> None:
    """Match the firstbase products against MiGeL and write the matched subset."""

    csv_path = _products_csv(args, settings)
    catalog_path = Path(args.catalog) if args.catalog else fetch_catalog_xlsx(settings.sources)

    entries = load_catalog(catalog_path, settings.sheet_names)
    logger.info("%d MiGeL-Positionen mit Positionsnummer gefunden", len(entries))
    matcher = build_matcher(entries, settings.matching)

    header, rows = read_product_rows(
        csv_path,
        delimiter=settings.sources.csv_delimiter,
        max_columns=settings.columns.max_columns,
    )
    products = products_from_rows(rows, settings.columns)
    logger.info("%d Datenzeilen gelesen, starte Matching …", len(products))

    workers = args.workers if args.workers is not None else settings.matching.workers
    results = match_products(
        products,
        matcher,
        workers,
        chunksize=settings.matching.chunksize,
        progress=args.progress,
    )

    matched = enriched_rows(results, products)
    output = Path(args.output or migel_db_name(args.deploy))
    write_database(output, list(header) + list(MIGEL_COLUMNS), matched)
    print(f"Database {output} created successfully.")
    print(f"Total data rows: {len(products)}, MiGeL matches: {len(matched)}")

    if args.deploy:
        deploy(output, settings.deploy_target)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="migel",
        description="Convert the firstbase export to SQLite and map MiGeL codes to products",
    )
    parser.add_argument(
        "--migel",
        action="store_true",
        help="download MiGeL XLSX and map migel codes/limitations to products",
    )
    parser.add_argument(
        "--local-csv",
        action="store_true",
        help="use the local firstbase.csv instead of downloading it",
    )
    parser.add_argument(
        "--deploy",
        action="store_true",
        help="copy the database to the configured remote host via scp",
    )
    parser.add_argument(
        "--catalog",
        type=Path,
        default=None,
        help="use this local MiGeL workbook instead of downloading it",
    )
    parser.add_argument("--output", type=Path, default=None, help="database file to write")
    parser.add_argument("--workers", type=int, default=None, help="number of matcher processes")
    parser.add_argument("--config", type=Path, default=None, help="alternative config.ini")
    parser.add_argument("--progress", action="store_true", help="show a progress bar")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_file or None)

    try:
        if args.migel:
            run_migel(args, settings)
        else:
            run_plain(args, settings)
    except MigelError as exc:
        logger.error("%s", exc)
        return 1
    return 0
