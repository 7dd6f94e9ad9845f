"""Persistencia de la sesión en disco.

Por qué JSON en el directorio de config del usuario:
- La CLI es un proceso corto; sin persistencia habría que loguearse en cada comando.
- El formato es el `model_dump_json` de `Session`, estable y legible.
"""

from __future__ import annotations

import logging
from pathlib import Path

from core.config import get_user_config_dir
from core.domain.models import Session

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_user_config_dir() / "session.json"

    def load(self) -> Session | None:
        if not self.path.exists():
            return None
        try:
            return Session.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValueError as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None

    def save(self, session: Session) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(session.model_dump_json(indent=2) + "\n", encoding="utf-8")
        self.path.chmod(0o600)
        return self.path

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
