"""Token Source OIDC (Keycloak).

Responsabilidad:
- Mantener la `Session` actual y reemplazarla en cada cambio de estado de auth.
- Renovación silenciosa con `grant_type=refresh_token` contra el token endpoint.
- Login interactivo: construye la URL de autorización (authorization code) y la
  abre en el navegador.
- Login directo con usuario/contraseña (direct access grant) para la CLI.

El pipeline nunca cachea la sesión: la relee de aquí en cada request.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
import webbrowser
from typing import Any, Callable
from urllib.parse import urlencode

import httpx

from adapters.http_client import build_async_client
from adapters.token_sources.session_store import SessionStore
from core.config import AppSettings
from core.domain.errors import SilentRefreshFailure
from core.domain.models import Session

logger = logging.getLogger(__name__)

SessionListener = Callable[[Session], None]


class OidcTokenSource:
    """Sesión de un proveedor OIDC expuesta al cliente de API."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        store: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        opener: Callable[[str], Any] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._store = store
        self._transport = transport
        self._opener = opener or webbrowser.open
        self._clock = clock or time.time
        self._listeners: list[SessionListener] = []
        loaded = store.load() if store else None
        self._session = loaded or Session.anonymous()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token_endpoint(self) -> str:
        return f"{self._settings.oidc_realm_url}/protocol/openid-connect/token"

    @property
    def authorization_endpoint(self) -> str:
        return f"{self._settings.oidc_realm_url}/protocol/openid-connect/auth"

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Registra un listener de cambios de sesión; devuelve la función para darse de baja."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def authorization_url(self, *, state: str | None = None) -> str:
        query = urlencode(
            {
                "client_id": self._settings.oidc_client_id,
                "redirect_uri": self._settings.oidc_redirect_uri,
                "response_type": "code",
                "scope": self._settings.oidc_scope,
                "state": state or secrets.token_urlsafe(16),
            }
        )
        return f"{self.authorization_endpoint}?{query}"

    async def signin_silent(self) -> Session:
        refresh_token = self._session.refresh_token
        if not refresh_token:
            raise SilentRefreshFailure("no refresh token available for silent sign-in")

        payload = await self._token_request(
            {
                "grant_type": "refresh_token",
                "client_id": self._settings.oidc_client_id,
                "refresh_token": refresh_token,
            }
        )
        session = self._session_from_token_response(payload, username=self._session.username)
        self._replace(session)
        logger.info("Silent sign-in refreshed the access token")
        return session

    async def signin_password(self, username: str, password: str) -> Session:
        payload = await self._token_request(
            {
                "grant_type": "password",
                "client_id": self._settings.oidc_client_id,
                "scope": self._settings.oidc_scope,
                "username": username,
                "password": password,
            }
        )
        session = self._session_from_token_response(payload, username=username)
        self._replace(session)
        return session

    async def signin_redirect(self) -> None:
        url = self.authorization_url()
        logger.info("Opening interactive sign-in at %s", self.authorization_endpoint)
        # El opener puede bloquear (navegador de terminal): fuera del event loop.
        await asyncio.to_thread(self._opener, url)

    def sign_out(self) -> None:
        self._replace(Session.anonymous())
        if self._store:
            self._store.clear()

    def _replace(self, session: Session) -> None:
        self._session = session
        if self._store and session.is_authenticated:
            self._store.save(session)
        for listener in list(self._listeners):
            listener(session)

    def _session_from_token_response(self, payload: dict[str, Any], *, username: str | None) -> Session:
        expires_in = payload.get("expires_in")
        expires_at = int(self._clock() + float(expires_in)) if expires_in is not None else None
        return Session(
            access_token=payload["access_token"],
            expires_at=expires_at,
            # Algunos proveedores no rotan el refresh token.
            refresh_token=payload.get("refresh_token") or self._session.refresh_token,
            is_authenticated=True,
            username=username,
        )

    async def _token_request(self, form: dict[str, str]) -> dict[str, Any]:
        try:
            async with build_async_client(
                self._settings,
                base_url="",
                transport=self._transport,
            ) as client:
                resp = await client.post(self.token_endpoint, data=form)
        except httpx.HTTPError as exc:
            raise SilentRefreshFailure(f"token endpoint unreachable: {exc}") from exc

        if resp.status_code != 200:
            raise SilentRefreshFailure(f"token endpoint returned HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise SilentRefreshFailure("token endpoint returned invalid JSON") from exc
        if not isinstance(data, dict) or not data.get("access_token"):
            raise SilentRefreshFailure("token endpoint response has no access_token")
        return data
