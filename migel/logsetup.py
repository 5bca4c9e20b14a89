"""Logging setup shared by the CLI and the HTTP service."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class SafeEncodingStreamHandler(logging.StreamHandler):
    def emit(self, record):
        """Schreibt Logzeilen; nicht darstellbare Zeichen werden ersetzt."""
        try:
            msg = self.format(record) + self.terminator
            encoding = getattr(self.stream, "encoding", None) or "utf-8"
            # Umlaute in Produkttexten dürfen auf cp1252/ASCII-Konsolen nicht crashen
            self.stream.write(msg.encode(encoding, errors="replace").decode(encoding))
            self.flush()
        except Exception:
            self.handleError(record)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Replace the root handlers with an encoding-safe console (and optional file) handler."""

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = SafeEncodingStreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    return root_logger
