"""Taxonomía de errores del cliente de API.

Por qué una jerarquía propia:
- La UI decide el mensaje según la *categoría* (transporte, 4xx, 401, 5xx,
  esquema), no según el detalle de httpx.
- La única recuperación local es el ciclo de refresh + replay ante un 401;
  todo lo demás se propaga con estas excepciones.
"""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from core.domain.models import ApiErrorBody


class ApiError(Exception):
    """Raíz de todos los errores que expone el cliente."""


class TransportFailure(ApiError):
    """Red inalcanzable, timeout o conexión cortada."""

    def __init__(self, message: str, *, method: str | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.method = method
        self.url = url


class HttpStatusError(ApiError):
    """Respuesta HTTP no exitosa (se expone tal cual, sin reintentos)."""

    def __init__(
        self,
        status: int,
        message: str,
        *,
        body: ApiErrorBody | None = None,
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message
        self.body = body
        self.response = response


class ClientError(HttpStatusError):
    """4xx. En un 400 `message` lleva los mensajes de validación del servidor."""


class AuthExpired(ClientError):
    """401 que sobrevivió al ciclo de recuperación (o cuyo refresh falló)."""


class NotFound(ClientError):
    """404."""


class ServerError(HttpStatusError):
    """5xx. Nunca se reintenta en esta capa."""


class SilentRefreshFailure(ApiError):
    """El Token Source no pudo renovar el token sin interacción."""


class SchemaMismatch(ApiError):
    """El payload de una respuesta exitosa no cumple el esquema del endpoint."""

    def __init__(self, message: str, *, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint


def _parse_error_body(response: httpx.Response) -> ApiErrorBody | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return ApiErrorBody.model_validate(data)
    except ValidationError:
        return None


def raise_for_api_status(response: httpx.Response) -> httpx.Response:
    """Clasifica la respuesta final de un request.

    Devuelve la respuesta si es 2xx/3xx; si no, levanta el error de la
    categoría correspondiente con el cuerpo estructurado si existe.
    """

    status = response.status_code
    if status < 400:
        return response

    body = _parse_error_body(response)
    message = (body.message if body and body.message else None) or response.reason_phrase or "error"

    if status == 401:
        raise AuthExpired(status, message, body=body, response=response)
    if status == 404:
        raise NotFound(status, message, body=body, response=response)
    if status < 500:
        raise ClientError(status, message, body=body, response=response)
    raise ServerError(status, message, body=body, response=response)
