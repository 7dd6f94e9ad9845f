"""Token Source con un token fijo (o sin token).

Útil para scripts y para llamar a endpoints de lectura anónima.
"""

from __future__ import annotations

import logging

from core.domain.errors import SilentRefreshFailure
from core.domain.models import Session

logger = logging.getLogger(__name__)


class StaticTokenSource:
    """Sesión inmutable: no sabe refrescar ni redirigir."""

    def __init__(self, access_token: str | None = None, *, expires_at: int | None = None) -> None:
        if access_token:
            self._session = Session(
                access_token=access_token,
                expires_at=expires_at,
                is_authenticated=True,
            )
        else:
            self._session = Session.anonymous()

    @property
    def session(self) -> Session:
        return self._session

    async def signin_silent(self) -> Session:
        raise SilentRefreshFailure("a static token cannot be refreshed")

    async def signin_redirect(self) -> None:
        logger.warning("Interactive sign-in is not available with a static token; run `auth login`.")
