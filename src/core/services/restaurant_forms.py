"""Mapeo de formularios de restaurante a requests de la API.

Por qué un módulo aparte:
- El formulario llega como mapping plano (lo que entrega una UI o un JSON) y
  las claves pueden venir en camelCase (estilo wire) o en snake_case.
- La lista `photos` del formulario es la `photo_ids` del request.
- Un día vacío, o con solo una de las dos horas, se resuelve como cerrado.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.domain.models import (
    WEEKDAYS,
    Address,
    CreateRestaurantRequest,
    OperatingHours,
    Restaurant,
    UpdateRestaurantRequest,
)


def _pick(form: Mapping[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    if snake in form:
        return form[snake]
    return form.get(camel, default)


def build_operating_hours(raw: Mapping[str, Any] | None) -> OperatingHours:
    raw = raw or {}
    return OperatingHours.model_validate({day: raw.get(day) for day in WEEKDAYS})


def build_restaurant_request(form: Mapping[str, Any]) -> CreateRestaurantRequest:
    """Construye un `CreateRestaurantRequest` a partir de un formulario relleno.

    Levanta `KeyError` si falta `name` o `address`, y `ValidationError` si un
    campo no cumple el modelo.
    """

    return CreateRestaurantRequest(
        name=form["name"],
        cuisine_type=_pick(form, "cuisine_type", "cuisineType"),
        contact_information=_pick(form, "contact_information", "contactInformation"),
        address=Address.model_validate(form["address"]),
        operating_hours=build_operating_hours(_pick(form, "operating_hours", "operatingHours")),
        photo_ids=list(form.get("photos") or _pick(form, "photo_ids", "photoIds", [])),
    )


def build_update_request(form: Mapping[str, Any]) -> UpdateRestaurantRequest:
    return UpdateRestaurantRequest.model_validate(build_restaurant_request(form).model_dump())


def form_from_restaurant(restaurant: Restaurant) -> dict[str, Any]:
    """Pre-rellena el formulario de edición con un restaurante ya guardado."""

    return {
        "name": restaurant.name,
        "cuisineType": restaurant.cuisine_type or "",
        "contactInformation": restaurant.contact_information or "",
        "address": restaurant.address.to_wire() if restaurant.address else {},
        "operatingHours": restaurant.operating_hours.model_dump(mode="json", by_alias=True),
        "photos": [photo.url for photo in restaurant.photos],
    }
