"""Pipeline de requests autenticados.

Responsabilidad:
- Etapa de salida: adjuntar `Authorization: Bearer <token>` y refrescar de
  forma proactiva si el token expira dentro del margen configurado.
- Etapa de entrada: ante un 401, refrescar *una* vez y reenviar *una* vez el
  descriptor original; si el refresh falla, iniciar el login interactivo y
  devolver el 401 original.

Estados por request lógico:
    SENT -> SUCCEEDED | FAILED
    SENT -> AUTH_FAILED -> RECOVERING -> REPLAYED_SUCCEEDED | REPLAYED_FAILED

No hay segundo ciclo de recuperación: el resultado del replay es final,
aunque sea otro 401.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

import httpx

from core.config import AppSettings
from core.domain.descriptor import RequestDescriptor
from core.domain.errors import TransportFailure, raise_for_api_status
from core.domain.models import Session
from core.interfaces.token_source import TokenSource

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


class RefreshCoordinator:
    """Agrupa refrescos concurrentes en una única llamada al Token Source.

    Si ya hay un refresh en vuelo, los demás llamadores esperan ese mismo
    resultado. Un fallo se propaga a todos los que esperaban; el siguiente
    llamador arranca uno nuevo.
    """

    def __init__(self, token_source: TokenSource) -> None:
        self._token_source = token_source
        self._inflight: asyncio.Future[Session] | None = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def refresh(self) -> Session:
        task = self._inflight
        if task is None or task.done():
            task = asyncio.ensure_future(self._token_source.signin_silent())
            task.add_done_callback(self._clear)
            self._inflight = task
        else:
            logger.debug("Joining in-flight token refresh")
        return await asyncio.shield(task)

    def _clear(self, task: asyncio.Future[Session]) -> None:
        if self._inflight is task:
            self._inflight = None


class RequestPipeline:
    """Envuelve cada llamada saliente con autorización y recuperación ante 401."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token_source: TokenSource,
        *,
        settings: AppSettings | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._client = client
        self._token_source = token_source
        self._settings = settings or AppSettings()
        self._clock = clock or _now_ms
        self._refresher = RefreshCoordinator(token_source)
        self._pending_redirects: set[asyncio.Future[None]] = set()

    @property
    def token_source(self) -> TokenSource:
        return self._token_source

    async def authorize(self, descriptor: RequestDescriptor) -> RequestDescriptor:
        """Devuelve una copia del descriptor con el bearer vigente (si hay sesión)."""

        if not descriptor.requires_auth:
            return descriptor

        session = self._token_source.session
        if not session.is_authenticated:
            return descriptor

        margin = self._settings.token_refresh_margin_seconds
        if session.is_expiring_soon(now_ms=self._clock(), margin_seconds=margin):
            logger.info("Access token expires within %ss, refreshing before %s %s", margin, descriptor.method, descriptor.path)
            try:
                await self._refresher.refresh()
            except Exception as exc:
                # Se envía con el token actual; la etapa de entrada maneja el 401.
                logger.warning("Proactive token refresh failed: %s", exc)

        # Token vigente *después* del intento de refresh.
        token = self._token_source.session.access_token
        if not token:
            return descriptor
        return descriptor.with_authorization(token)

    async def send(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Ejecuta el request completo y devuelve la respuesta final sin clasificar."""

        authorized = await self.authorize(descriptor)
        response = await self._execute(authorized)
        if response.status_code != 401 or not descriptor.requires_auth:
            return response
        return await self._recover(descriptor, response)

    async def request(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Como `send`, pero levanta el error tipado si la respuesta final no es 2xx/3xx."""

        return raise_for_api_status(await self.send(descriptor))

    async def aclose(self) -> None:
        if self._pending_redirects:
            await asyncio.gather(*self._pending_redirects, return_exceptions=True)

    async def _recover(self, descriptor: RequestDescriptor, response: httpx.Response) -> httpx.Response:
        logger.info("Got 401 for %s %s, attempting silent refresh", descriptor.method, descriptor.path)
        try:
            await self._refresher.refresh()
        except Exception as exc:
            logger.warning("Silent refresh failed after 401, starting interactive sign-in: %s", exc)
            self._schedule_redirect()
            return response

        # Se reconstruye desde el descriptor original, nunca desde el ya autorizado.
        token = self._token_source.session.access_token
        replay = descriptor.with_authorization(token) if token else descriptor
        logger.info("Replaying %s %s with refreshed token", descriptor.method, descriptor.path)
        replayed = await self._execute(replay)
        if replayed.status_code == 401:
            logger.warning("Replay of %s %s was rejected again (401)", descriptor.method, descriptor.path)
        return replayed

    def _schedule_redirect(self) -> None:
        # El redirect no se espera: el llamador recibe el 401 original de inmediato.
        task = asyncio.ensure_future(self._token_source.signin_redirect())
        self._pending_redirects.add(task)
        task.add_done_callback(self._redirect_done)

    def _redirect_done(self, task: asyncio.Future[None]) -> None:
        self._pending_redirects.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Interactive sign-in could not be started", exc_info=exc)

    def _prepare(self, descriptor: RequestDescriptor) -> RequestDescriptor:
        if not self._settings.with_credentials:
            self._client.cookies.clear()
        cookie_name = self._settings.xsrf_cookie_name
        if cookie_name:
            value = self._client.cookies.get(cookie_name)
            if value:
                descriptor = descriptor.with_header(self._settings.xsrf_header_name, value)
        return descriptor

    async def _execute(self, descriptor: RequestDescriptor) -> httpx.Response:
        descriptor = self._prepare(descriptor)
        try:
            return await self._client.request(
                descriptor.method,
                descriptor.path,
                **descriptor.to_request_kwargs(),
            )
        except httpx.TransportError as exc:
            raise TransportFailure(
                str(exc) or exc.__class__.__name__,
                method=descriptor.method,
                url=descriptor.path,
            ) from exc
