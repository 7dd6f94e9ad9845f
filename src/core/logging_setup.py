"""Logging en formato key=value.

Por qué aquí:
- Un único punto de configuración para CLI y scripts.
- Los adaptadores solo usan `logging.getLogger(__name__)`.
"""

from __future__ import annotations

import logging


class KeyValueFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        ts = self.formatTime(record, self.datefmt)
        kv = [f"time={ts}"] + [f"{k}={v}" for k, v in base.items()]
        return " ".join(kv)


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=level.upper(), format="%(message)s")
    root = logging.getLogger()
    root.setLevel(level.upper())
    for h in root.handlers:
        h.setFormatter(KeyValueFormatter())
