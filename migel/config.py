"""Konfiguration für Quellen, Matching, Logging und Deployment.

Die Anwendung liest ``config.ini`` als Basis. Lokale Anpassungen (z.B. ein
anderer Deploy-Host) können in ``config.runtime.ini`` abgelegt werden und
überschreiben die Basiswerte abschnittsweise, sodass die kommentierte
Hauptdatei unverändert bleibt. Einzelne Werte lassen sich zusätzlich über
Umgebungsvariablen bzw. eine ``.env``-Datei setzen.
"""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from .matcher import Thresholds
from .models import LANGUAGES, Language

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
CONFIG_MAIN_PATH = PROJECT_ROOT / "config.ini"
CONFIG_RUNTIME_PATH = PROJECT_ROOT / "config.runtime.ini"

DEFAULT_CSV_URL = "https://id.gs1.ch/01/07612345000961"
DEFAULT_XLSX_URL = (
    "https://www.bag.admin.ch/dam/de/sd-web/77j5rwUTzbkq/"
    "Mittel-%20und%20Gegenst%C3%A4ndeliste%20per%2001.01.2026%20in%20Excel-Format.xlsx"
)


@dataclass(frozen=True)
class SourceSettings:
    csv_url: str = DEFAULT_CSV_URL
    csv_file: str = "firstbase.csv"
    csv_delimiter: str = ","
    csv_timeout: float = 300.0
    xlsx_url: str = DEFAULT_XLSX_URL
    xlsx_file: str = "migel.xlsx"
    xlsx_timeout: float = 120.0
    user_agent: str = "MigelMatcher/dev"


@dataclass(frozen=True)
class ProductColumns:
    """Zero-based column positions in the firstbase export."""

    max_columns: int = 15
    description_de: int = 5
    description_fr: int = 6
    description_it: int = 7
    brand: int = 8


@dataclass(frozen=True)
class MatchingSettings:
    thresholds: Thresholds = field(default_factory=Thresholds)
    suffix_length: int = 4
    min_word_length: int = 4
    workers: Optional[int] = None
    chunksize: int = 256
    extra_stopwords: Dict[Language, Tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class Settings:
    sources: SourceSettings = field(default_factory=SourceSettings)
    columns: ProductColumns = field(default_factory=ProductColumns)
    sheet_names: Dict[Language, str] = field(default_factory=dict)
    matching: MatchingSettings = field(default_factory=MatchingSettings)
    deploy_target: str = ""
    log_level: str = "INFO"
    log_file: str = ""


def load_base_config(path: Optional[Path] = None) -> configparser.ConfigParser:
    """Lädt ausschließlich die statische Grundkonfiguration."""
    cfg = configparser.ConfigParser()
    cfg.read(path or CONFIG_MAIN_PATH, encoding="utf-8-sig")
    return cfg


def load_runtime_config(path: Optional[Path] = None) -> configparser.ConfigParser:
    """Lädt nur die lokalen Überschreibungen."""
    cfg = configparser.ConfigParser()
    runtime = path or CONFIG_RUNTIME_PATH
    if runtime.exists():
        cfg.read(runtime, encoding="utf-8-sig")
    return cfg


def load_merged_config(
    path: Optional[Path] = None, runtime_path: Optional[Path] = None
) -> configparser.ConfigParser:
    """Kombiniert statische und lokale Konfiguration."""
    base = load_base_config(path)
    runtime = load_runtime_config(runtime_path)
    for section in runtime.sections():
        if not base.has_section(section):
            base.add_section(section)
        for key, value in runtime.items(section, raw=True):
            base.set(section, key, value)
    return base


def _get_float(cfg: configparser.ConfigParser, section: str, option: str, default: float) -> float:
    try:
        return cfg.getfloat(section, option, fallback=default)
    except ValueError:
        logger.warning(
            "Ignoriere ungültigen Wert für %s.%s: %s",
            section,
            option,
            cfg.get(section, option, fallback=""),
        )
        return default


def _get_int(cfg: configparser.ConfigParser, section: str, option: str, default: int) -> int:
    try:
        return cfg.getint(section, option, fallback=default)
    except ValueError:
        logger.warning(
            "Ignoriere ungültigen Wert für %s.%s: %s",
            section,
            option,
            cfg.get(section, option, fallback=""),
        )
        return default


def _split_words(raw: str) -> Tuple[str, ...]:
    return tuple(word.strip() for word in raw.replace("\n", ",").split(",") if word.strip())


def _env_workers(default: Optional[int]) -> Optional[int]:
    raw = os.getenv("MIGEL_WORKERS")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoriere ungültiges MIGEL_WORKERS=%s", raw)
        return default


def settings_from_config(cfg: configparser.ConfigParser) -> Settings:
    """Übersetzt ``cfg`` (plus Umgebungsvariablen) in :class:`Settings`."""

    src_defaults = SourceSettings()
    sources = SourceSettings(
        csv_url=os.getenv("MIGEL_CSV_URL") or cfg.get("SOURCES", "csv_url", fallback=src_defaults.csv_url),
        csv_file=cfg.get("SOURCES", "csv_file", fallback=src_defaults.csv_file),
        csv_delimiter=cfg.get("SOURCES", "csv_delimiter", fallback=src_defaults.csv_delimiter) or ",",
        csv_timeout=_get_float(cfg, "SOURCES", "csv_timeout", src_defaults.csv_timeout),
        xlsx_url=os.getenv("MIGEL_XLSX_URL") or cfg.get("SOURCES", "xlsx_url", fallback=src_defaults.xlsx_url),
        xlsx_file=cfg.get("SOURCES", "xlsx_file", fallback=src_defaults.xlsx_file),
        xlsx_timeout=_get_float(cfg, "SOURCES", "xlsx_timeout", src_defaults.xlsx_timeout),
        user_agent=cfg.get("SOURCES", "user_agent", fallback=src_defaults.user_agent),
    )

    col_defaults = ProductColumns()
    columns = ProductColumns(
        max_columns=_get_int(cfg, "PRODUCTS", "max_columns", col_defaults.max_columns),
        description_de=_get_int(cfg, "PRODUCTS", "description_de", col_defaults.description_de),
        description_fr=_get_int(cfg, "PRODUCTS", "description_fr", col_defaults.description_fr),
        description_it=_get_int(cfg, "PRODUCTS", "description_it", col_defaults.description_it),
        brand=_get_int(cfg, "PRODUCTS", "brand", col_defaults.brand),
    )

    sheet_names: Dict[Language, str] = {}
    for lang in LANGUAGES:
        name = cfg.get("CATALOG", f"sheet_{lang.value}", fallback="").strip()
        if name:
            sheet_names[lang] = name

    th = Thresholds()
    thresholds = Thresholds(
        single_min_score=_get_float(cfg, "MATCHING", "single_min_score", th.single_min_score),
        single_min_length=_get_int(cfg, "MATCHING", "single_min_length", th.single_min_length),
        multi_min_score=_get_float(cfg, "MATCHING", "multi_min_score", th.multi_min_score),
        multi_min_length=_get_int(cfg, "MATCHING", "multi_min_length", th.multi_min_length),
    )
    workers_raw = cfg.get("MATCHING", "workers", fallback="").strip()
    workers: Optional[int] = None
    if workers_raw and workers_raw.lower() != "auto":
        workers = _get_int(cfg, "MATCHING", "workers", 0) or None
    extra = {
        lang: _split_words(cfg.get("STOPWORDS", lang.value, fallback=""))
        for lang in LANGUAGES
        if cfg.get("STOPWORDS", lang.value, fallback="").strip()
    }
    m_defaults = MatchingSettings()
    matching = MatchingSettings(
        thresholds=thresholds,
        suffix_length=_get_int(cfg, "MATCHING", "suffix_length", m_defaults.suffix_length),
        min_word_length=_get_int(cfg, "MATCHING", "min_word_length", m_defaults.min_word_length),
        workers=_env_workers(workers),
        chunksize=_get_int(cfg, "MATCHING", "chunksize", m_defaults.chunksize),
        extra_stopwords=extra,
    )

    return Settings(
        sources=sources,
        columns=columns,
        sheet_names=sheet_names,
        matching=matching,
        deploy_target=os.getenv("MIGEL_DEPLOY_TARGET") or cfg.get("DEPLOY", "target", fallback=""),
        log_level=(os.getenv("MIGEL_LOG_LEVEL") or cfg.get("LOGGING", "level", fallback="INFO")).upper(),
        log_file=cfg.get("LOGGING", "file", fallback=""),
    )


def load_settings(path: Optional[Path] = None) -> Settings:
    """Lädt ``config.ini`` (bzw. ``path``) samt Laufzeit-Overrides."""

    main = Path(path) if path else None
    runtime = main.with_name(CONFIG_RUNTIME_PATH.name) if main else None
    try:
        cfg = load_merged_config(main, runtime)
    except configparser.Error:
        logger.exception("Konfiguration konnte nicht gelesen werden, nutze Standardwerte")
        cfg = configparser.ConfigParser()
    return settings_from_config(cfg)
