"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta en el borde: cada endpoint decodifica su respuesta
  con un modelo concreto en lugar de propagar dicts sin tipo.
- La API habla camelCase; el código Python habla snake_case. El alias
  generator traduce en ambos sentidos.

Nota:
- Estos modelos describen *qué* devuelve la API, no *cómo* se obtiene.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import IO, Any, Generic, Literal, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

T = TypeVar("T")

WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

ReviewSort = Literal["datePosted,desc", "datePosted,asc", "rating,desc", "rating,asc"]

# Lo que acepta una subida de foto: ruta, bytes en memoria o fichero abierto.
PhotoFile = Path | bytes | IO[bytes]


class WireModel(BaseModel):
    """Base para todo lo que cruza la red (camelCase <-> snake_case)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Session(BaseModel):
    """Estado de credenciales entregado por el Token Source.

    El cliente solo lo lee; cada cambio de estado de auth produce una
    instancia nueva.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str | None = Field(
        default=None,
        description="Bearer token actual (ausente si no hay sesión).",
    )
    expires_at: int | None = Field(
        default=None,
        description="Expiración del access token (epoch, segundos).",
    )
    refresh_token: str | None = Field(
        default=None,
        description="Refresh token para la renovación silenciosa (si el proveedor lo emite).",
    )
    is_authenticated: bool = Field(
        default=False,
        description="Indica si el proveedor de identidad considera la sesión activa.",
    )
    username: str | None = Field(
        default=None,
        description="Usuario asociado a la sesión (solo informativo).",
    )

    @classmethod
    def anonymous(cls) -> "Session":
        return cls()

    def is_expiring_soon(self, *, now_ms: float, margin_seconds: int = 60) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at * 1000 - margin_seconds * 1000 < now_ms


class GeoPoint(WireModel):
    latitude: float | None = None
    longitude: float | None = None


class Address(WireModel):
    street_number: str
    street_name: str
    unit: str | None = None
    city: str
    state: str
    postal_code: str
    country: str

    def one_line(self) -> str:
        street = f"{self.street_number} {self.street_name}"
        if self.unit:
            street = f"{street} {self.unit}"
        return f"{street}, {self.city}, {self.state} {self.postal_code}, {self.country}"


class TimeRange(WireModel):
    open_time: str = Field(..., description="Hora de apertura en formato 24h (HH:mm).")
    close_time: str = Field(..., description="Hora de cierre en formato 24h (HH:mm).")


class OperatingHours(WireModel):
    """Horario semanal. Un día ausente significa cerrado.

    Un día con solo una de las dos horas se resuelve como cerrado.
    """

    monday: TimeRange | None = None
    tuesday: TimeRange | None = None
    wednesday: TimeRange | None = None
    thursday: TimeRange | None = None
    friday: TimeRange | None = None
    saturday: TimeRange | None = None
    sunday: TimeRange | None = None

    @model_validator(mode="before")
    @classmethod
    def _half_filled_days_are_closed(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for day in WEEKDAYS:
            value = out.get(day)
            if isinstance(value, dict):
                open_time = value.get("openTime", value.get("open_time"))
                close_time = value.get("closeTime", value.get("close_time"))
                if not open_time or not close_time:
                    out[day] = None
        return out

    def open_days(self) -> dict[str, TimeRange]:
        return {day: getattr(self, day) for day in WEEKDAYS if getattr(self, day) is not None}


class Photo(WireModel):
    """Foto subida al servidor.

    El identificador sirve también como segmento de ruta para `GET /photos/{filename}`.
    """

    url: str = Field(..., min_length=1, description="URL/identificador público de la foto.")
    id: str | None = None
    filename: str | None = None
    caption: str | None = None
    upload_date: datetime | None = None

    @property
    def retrieval_key(self) -> str:
        if self.id:
            return self.id
        if self.filename:
            return self.filename
        path = urlparse(self.url).path or self.url
        return path.rstrip("/").rsplit("/", 1)[-1]


class User(WireModel):
    id: str | None = None
    username: str | None = None
    given_name: str | None = None
    family_name: str | None = None


class Review(WireModel):
    id: str
    content: str = ""
    rating: int | None = None
    date_posted: datetime | None = None
    last_edited: datetime | None = None
    photos: list[Photo] = Field(default_factory=list)
    written_by: User | None = None


class RestaurantSummary(WireModel):
    id: str
    name: str
    cuisine_type: str | None = None
    average_rating: float | None = None
    total_reviews: int | None = None
    address: Address | None = None
    photos: list[Photo] = Field(default_factory=list)


class Restaurant(WireModel):
    id: str
    name: str
    cuisine_type: str | None = None
    contact_information: str | None = None
    average_rating: float | None = None
    geo_location: GeoPoint | None = None
    address: Address | None = None
    operating_hours: OperatingHours = Field(default_factory=OperatingHours)
    photos: list[Photo] = Field(default_factory=list)
    reviews: list[Review] = Field(default_factory=list)
    created_by: User | None = None


class PaginatedEnvelope(WireModel, Generic[T]):
    """Una página de resultados más los metadatos de borde (`first`/`last`).

    Los campos extra (`number`, `size`, ...) vienen del `Page` de Spring y son
    opcionales.
    """

    content: list[T] = Field(default_factory=list)
    total_pages: int = Field(..., ge=0)
    first: bool
    last: bool

    number: int | None = None
    size: int | None = None
    total_elements: int | None = None
    number_of_elements: int | None = None
    empty: bool | None = None


class CreateRestaurantRequest(WireModel):
    name: str
    cuisine_type: str
    contact_information: str
    address: Address
    operating_hours: OperatingHours = Field(default_factory=OperatingHours)
    photo_ids: list[str] = Field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        # Los días cerrados viajan como null explícito.
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        payload["operatingHours"] = self.operating_hours.model_dump(mode="json", by_alias=True)
        return payload


class UpdateRestaurantRequest(CreateRestaurantRequest):
    pass


class CreateReviewRequest(WireModel):
    content: str
    rating: int = Field(..., ge=1, le=5)
    photo_ids: list[str] = Field(default_factory=list)


class UpdateReviewRequest(CreateReviewRequest):
    pass


class SearchParams(WireModel):
    """Parámetros de búsqueda tal y como viajan por la red (página base 0)."""

    q: str | None = None
    min_rating: int | None = Field(default=None, ge=1, le=5)
    page: int = Field(default=0, ge=0)
    size: int = Field(default=8, ge=1)


class ApiErrorBody(WireModel):
    """Forma estructurada de los errores del servidor (`ErrorDto`)."""

    status: int | None = None
    message: str | None = None
