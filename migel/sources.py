"""Download of the firstbase/MiGeL sources and transfer of the result database."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

import requests

from .config import SourceSettings
from .errors import DeployError, SourceError

logger = logging.getLogger(__name__)


def _download(url: str, target: Path, *, timeout: float, user_agent: str) -> bytes:
    try:
        response = requests.get(url, headers={"User-Agent": user_agent}, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        raise SourceError(f"Download von {url} fehlgeschlagen: {exc}") from exc

    content = response.content
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    logger.info("%s gespeichert (%d Bytes)", target, len(content))
    return content


def fetch_products_csv(settings: SourceSettings, target: Path | None = None) -> Path:
    """Download the firstbase CSV export and return the local path."""

    path = Path(target or settings.csv_file)
    logger.info("Lade firstbase-CSV nach %s …", path)
    _download(settings.csv_url, path, timeout=settings.csv_timeout, user_agent=settings.user_agent)
    return path


def fetch_catalog_xlsx(settings: SourceSettings, target: Path | None = None) -> Path:
    """Download the MiGeL workbook and return the local path."""

    path = Path(target or settings.xlsx_file)
    logger.info("Lade MiGeL-XLSX nach %s …", path)
    _download(settings.xlsx_url, path, timeout=settings.xlsx_timeout, user_agent=settings.user_agent)
    return path


def deploy(path: Path, destination: str) -> None:
    """Copy ``path`` to ``destination`` (``user@host:/dir/``) via scp."""

    if not destination:
        raise DeployError("Kein Deploy-Ziel konfiguriert ([DEPLOY] target)")
    logger.info("Übertrage %s nach %s …", path, destination)
    try:
        completed = subprocess.run(["scp", str(path), destination], check=False)
    except OSError as exc:
        raise DeployError(f"scp konnte nicht gestartet werden: {exc}") from exc
    if completed.returncode != 0:
        raise DeployError(f"SCP failed with exit code: {completed.returncode}")
    logger.info("SCP-Transfer abgeschlossen.")
