"""Flask-Anwendung für Einzelabfragen gegen den MiGeL-Index.

Der Server lädt den MiGeL-Katalog einmal beim Start, baut daraus den
Keyword-Index und beantwortet danach Anfragen für einzelne Produkte mit
derselben Logik wie der Batch-Lauf (``python -m migel --migel``). Der Index
wird nach dem Aufbau nicht mehr verändert und kann von allen Request-Threads
gleichzeitig gelesen werden.

Start z.B. mit ``flask --app "server:create_app()" run``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from migel.cli import build_matcher
from migel.config import load_settings
from migel.logsetup import configure_logging
from migel.matcher import MigelMatcher
from migel.models import LocalizedText, MatchResult, ProductRecord
from migel.sources import fetch_catalog_xlsx
from migel.storage import load_catalog

logger = logging.getLogger(__name__)


def _load_matcher() -> MigelMatcher:
    """Lädt den konfigurierten Katalog (lokal oder per Download)."""
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_file or None)
    catalog_path = Path(settings.sources.xlsx_file)
    if not catalog_path.exists():
        catalog_path = fetch_catalog_xlsx(settings.sources)
    entries = load_catalog(catalog_path, settings.sheet_names)
    return build_matcher(entries, settings.matching)


def result_payload(result: MatchResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"id": result.product_id, "matched": result.matched}
    if result.matched:
        payload.update(
            {
                "migel_code": result.code,
                "migel_bezeichnung": result.label,
                "migel_limitation": result.limitation,
                "language": result.language.value if result.language else None,
                "score": round(result.score, 4),
            }
        )
    return payload


def _text_field(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def create_app(matcher: Optional[MigelMatcher] = None) -> Flask:
    """
    Erstellt die Flask-Instanz. Ohne ``matcher`` wird der Katalog aus der
    Konfiguration geladen.
    """
    load_dotenv()
    if matcher is None:
        logger.info("Initialer Katalog-Load beim App-Start …")
        matcher = _load_matcher()

    app = Flask(__name__)
    # Umlaute in Bezeichnungen unverändert ausliefern
    app.json.ensure_ascii = False

    @app.route("/api/health", methods=["GET"])
    def health() -> Any:
        """Einfacher Bereitschaftsendpunkt."""
        return jsonify({"status": "ok", "entries": len(matcher.index.entries)})

    @app.route("/api/match", methods=["POST"])
    def match() -> Any:
        """Ordnet ein einzelnes Produkt einer MiGeL-Position zu."""
        if not request.is_json:
            return jsonify({"error": "Request must be JSON"}), 400
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "JSON object expected"}), 400

        product = ProductRecord(
            product_id=str(data.get("id") or ""),
            description=LocalizedText(
                de=_text_field(data, "de"),
                fr=_text_field(data, "fr"),
                it=_text_field(data, "it"),
            ),
            brand=_text_field(data, "brand"),
        )
        result = matcher.match(product)
        logger.debug("Match %s -> %s", product.product_id, result.code or "-")
        return jsonify(result_payload(result))

    return app
