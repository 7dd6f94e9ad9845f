"""Contrato de endpoints de la API de restaurantes.

Cada operación es un mapeo fino: input tipado -> `RequestDescriptor` ->
pipeline autenticado -> respuesta decodificada con el modelo del endpoint.

Reglas:
- Sin reintentos propios: el único reintento es el ciclo de 401 del pipeline.
- Sin estado compartido: el cliente no cachea entidades entre llamadas.
- Un payload exitoso que no cumple el esquema es `SchemaMismatch`.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Callable, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from adapters.auth_pipeline import RequestPipeline
from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.descriptor import RequestDescriptor
from core.domain.errors import SchemaMismatch
from core.domain.models import (
    CreateRestaurantRequest,
    CreateReviewRequest,
    PaginatedEnvelope,
    Photo,
    PhotoFile,
    Restaurant,
    RestaurantSummary,
    Review,
    ReviewSort,
    SearchParams,
    UpdateRestaurantRequest,
    UpdateReviewRequest,
)
from core.interfaces.token_source import TokenSource

M = TypeVar("M", bound=BaseModel)


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def _decode(response: httpx.Response, model: type[M], *, endpoint: str) -> M:
    try:
        data = response.json()
    except ValueError as exc:
        raise SchemaMismatch(f"{endpoint}: response is not valid JSON", endpoint=endpoint) from exc
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise SchemaMismatch(
            f"{endpoint}: response does not match {model.__name__} ({exc.error_count()} errors)",
            endpoint=endpoint,
        ) from exc


def _read_upload(file: PhotoFile, filename: str | None) -> tuple[str, bytes]:
    # El contenido se lee entero: el descriptor debe poder reenviarse tras un 401.
    if isinstance(file, Path):
        return filename or file.name, file.read_bytes()
    if isinstance(file, (bytes, bytearray)):
        return filename or "upload", bytes(file)
    name = filename or Path(str(getattr(file, "name", "upload"))).name
    return name, file.read()


class RestaurantApiClient:
    """Cliente tipado de la API (restaurantes, reseñas y fotos)."""

    def __init__(
        self,
        token_source: TokenSource,
        settings: AppSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._owns_client = client is None
        self._client = client or build_async_client(self._settings, transport=transport)
        self._pipeline = RequestPipeline(
            self._client,
            token_source,
            settings=self._settings,
            clock=clock,
        )

    @property
    def pipeline(self) -> RequestPipeline:
        return self._pipeline

    async def __aenter__(self) -> "RestaurantApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._pipeline.aclose()
        if self._owns_client:
            await self._client.aclose()

    # Restaurantes

    async def search_restaurants(self, params: SearchParams) -> PaginatedEnvelope[RestaurantSummary]:
        response = await self._pipeline.request(
            RequestDescriptor("GET", "/restaurants", params=params.to_wire())
        )
        envelope = _decode(
            response,
            PaginatedEnvelope[RestaurantSummary],
            endpoint="search_restaurants",
        )
        if len(envelope.content) > params.size:
            raise SchemaMismatch(
                f"search_restaurants: page holds {len(envelope.content)} items, requested size {params.size}",
                endpoint="search_restaurants",
            )
        return envelope

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        response = await self._pipeline.request(
            RequestDescriptor("GET", f"/restaurants/{_segment(restaurant_id)}")
        )
        return _decode(response, Restaurant, endpoint="get_restaurant")

    async def create_restaurant(self, request: CreateRestaurantRequest) -> Restaurant:
        response = await self._pipeline.request(
            RequestDescriptor("POST", "/restaurants", json=request.to_wire())
        )
        return _decode(response, Restaurant, endpoint="create_restaurant")

    async def update_restaurant(self, restaurant_id: str, request: UpdateRestaurantRequest) -> None:
        await self._pipeline.request(
            RequestDescriptor("PUT", f"/restaurants/{_segment(restaurant_id)}", json=request.to_wire())
        )

    async def delete_restaurant(self, restaurant_id: str) -> None:
        await self._pipeline.request(
            RequestDescriptor("DELETE", f"/restaurants/{_segment(restaurant_id)}")
        )

    # Reseñas

    async def list_reviews(
        self,
        restaurant_id: str,
        *,
        sort: ReviewSort | None = None,
        page: int | None = None,
        size: int | None = None,
    ) -> PaginatedEnvelope[Review]:
        response = await self._pipeline.request(
            RequestDescriptor(
                "GET",
                f"/restaurants/{_segment(restaurant_id)}/reviews",
                params={"sort": sort, "page": page, "size": size},
            )
        )
        return _decode(response, PaginatedEnvelope[Review], endpoint="list_reviews")

    async def get_review(self, restaurant_id: str, review_id: str) -> Review:
        response = await self._pipeline.request(
            RequestDescriptor(
                "GET",
                f"/restaurants/{_segment(restaurant_id)}/reviews/{_segment(review_id)}",
            )
        )
        return _decode(response, Review, endpoint="get_review")

    async def create_review(self, restaurant_id: str, request: CreateReviewRequest) -> Review:
        # La barra final forma parte del contrato del servidor.
        response = await self._pipeline.request(
            RequestDescriptor(
                "POST",
                f"/restaurants/{_segment(restaurant_id)}/reviews/",
                json=request.to_wire(),
            )
        )
        return _decode(response, Review, endpoint="create_review")

    async def update_review(self, restaurant_id: str, review_id: str, request: UpdateReviewRequest) -> None:
        await self._pipeline.request(
            RequestDescriptor(
                "PUT",
                f"/restaurants/{_segment(restaurant_id)}/reviews/{_segment(review_id)}",
                json=request.to_wire(),
            )
        )

    async def delete_review(self, restaurant_id: str, review_id: str) -> None:
        await self._pipeline.request(
            RequestDescriptor(
                "DELETE",
                f"/restaurants/{_segment(restaurant_id)}/reviews/{_segment(review_id)}",
            )
        )

    # Fotos

    async def upload_photo(
        self,
        file: PhotoFile,
        caption: str | None = None,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> Photo:
        """Sube una imagen como multipart (`file` + `caption` opcional).

        Siempre multipart, sea cual sea el formato de la imagen.
        """

        name, content = _read_upload(file, filename)
        mime = content_type or mimetypes.guess_type(name)[0] or "application/octet-stream"
        response = await self._pipeline.request(
            RequestDescriptor(
                "POST",
                "/photos",
                files={"file": (name, content, mime)},
                data={"caption": caption} if caption else None,
            )
        )
        return _decode(response, Photo, endpoint="upload_photo")

    async def fetch_photo(self, filename: str) -> bytes:
        response = await self._pipeline.request(
            RequestDescriptor(
                "GET",
                f"/photos/{_segment(filename)}",
                headers={"Accept": "image/*,*/*;q=0.8"},
            )
        )
        return response.content
