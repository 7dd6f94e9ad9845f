"""Helpers de fotos para formularios de restaurante y reseña.

La URL devuelta por el servidor actúa como identificador de la foto: es lo
que viaja en `photo_ids` al crear o actualizar.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from core.domain.models import Photo, PhotoFile


class PhotoUploader(Protocol):
    async def upload_photo(self, file: PhotoFile, caption: str | None = None) -> Photo:
        ...


async def upload_photo_url(api: PhotoUploader | None, file: PhotoFile, caption: str | None = None) -> str:
    """Sube una foto y devuelve su URL (usada como id)."""

    if api is None:
        raise RuntimeError("API service not available")
    photo = await api.upload_photo(file, caption)
    return photo.url


def merge_photo_ids(existing_photos: Sequence[Photo], new_urls: Sequence[str]) -> list[str]:
    """Ids finales: primero las fotos existentes, luego las recién subidas."""

    return [photo.url for photo in existing_photos] + list(new_urls)


@dataclass(frozen=True)
class PhotoSelection:
    """Fotos de un formulario: las ya guardadas más los ficheros pendientes de subir."""

    existing: tuple[Photo, ...] = ()
    pending: tuple[PhotoFile, ...] = ()

    def __len__(self) -> int:
        return len(self.existing) + len(self.pending)


def remove_photo_by_index(index: int, selection: PhotoSelection) -> PhotoSelection:
    """Quita la foto `index` de la lista combinada (existentes primero)."""

    if index < 0 or index >= len(selection):
        raise IndexError(f"photo index out of range: {index}")
    if index < len(selection.existing):
        existing = selection.existing[:index] + selection.existing[index + 1 :]
        return PhotoSelection(existing=existing, pending=selection.pending)
    adjusted = index - len(selection.existing)
    pending = selection.pending[:adjusted] + selection.pending[adjusted + 1 :]
    return PhotoSelection(existing=selection.existing, pending=pending)
