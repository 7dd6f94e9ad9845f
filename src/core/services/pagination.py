"""Coordinación de paginación para la búsqueda de restaurantes.

Este módulo es el único que conoce las dos numeraciones de página:
- La UI cuenta páginas desde 1.
- La API recibe la página desde 0.

También calcula la ventana de números de página a mostrar (con elipsis) a
partir del sobre paginado que devuelve el servidor, y descarta resultados
obsoletos cuando varias búsquedas se solapan.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Literal, TypeVar

from core.domain.models import PaginatedEnvelope, SearchParams

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 8
MAX_VISIBLE_PAGES = 5

ELLIPSIS: Literal["ellipsis"] = "ellipsis"

PageItem = int | Literal["ellipsis"]


@dataclass(frozen=True)
class SearchFilters:
    """Filtros elegidos en la UI (texto libre y rating mínimo)."""

    q: str | None = None
    min_rating: int | None = None


def build_search_params(
    ui_page: int,
    filters: SearchFilters | None = None,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> SearchParams:
    """Traduce la página de la UI (base 1) a `SearchParams` (base 0)."""

    if ui_page < 1:
        raise ValueError(f"ui_page must be >= 1, got {ui_page}")
    filters = filters or SearchFilters()
    q = filters.q.strip() if filters.q else None
    return SearchParams(
        q=q or None,
        min_rating=filters.min_rating,
        page=ui_page - 1,
        size=page_size,
    )


def page_window(total_pages: int, current_page: int) -> list[PageItem]:
    """Números de página a mostrar, con como mucho dos elipsis.

    Con 5 páginas o menos se muestran todas. Si no: siempre la primera,
    los vecinos de la actual y la última.
    """

    if total_pages <= MAX_VISIBLE_PAGES:
        return list(range(1, total_pages + 1))

    items: list[PageItem] = [1]
    if current_page > 3:
        items.append(ELLIPSIS)
    for i in range(max(2, current_page - 1), min(total_pages - 1, current_page + 1) + 1):
        items.append(i)
    if current_page < total_pages - 2:
        items.append(ELLIPSIS)
    if total_pages > 1:
        items.append(total_pages)
    return items


@dataclass(frozen=True)
class PageView(Generic[T]):
    """Estado de paginación listo para pintar."""

    items: list[T]
    current_page: int
    total_pages: int
    has_previous: bool
    has_next: bool
    window: list[PageItem] = field(default_factory=list)

    @classmethod
    def from_envelope(cls, envelope: PaginatedEnvelope[T], ui_page: int) -> "PageView[T]":
        return cls(
            items=list(envelope.content),
            current_page=ui_page,
            total_pages=envelope.total_pages,
            has_previous=not envelope.first,
            has_next=not envelope.last,
            window=page_window(envelope.total_pages, ui_page),
        )


class ResultSequencer:
    """Tickets monótonos para descartar respuestas que llegan fuera de orden."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._last_applied = 0

    @property
    def last_applied(self) -> int:
        return self._last_applied

    def issue(self) -> int:
        return next(self._counter)

    def accept(self, ticket: int) -> bool:
        if ticket < self._last_applied:
            return False
        self._last_applied = ticket
        return True


SearchFn = Callable[[SearchParams], Awaitable[PaginatedEnvelope[T]]]


class SearchCoordinator(Generic[T]):
    """Orquesta búsquedas paginadas desde la UI.

    Cada búsqueda recibe un ticket al despacharse; si al completarse ya se
    aplicó una búsqueda más reciente, el resultado se descarta (`None`).
    """

    def __init__(self, search: SearchFn[T], *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._search = search
        self._page_size = page_size
        self._sequencer = ResultSequencer()
        self.filters = SearchFilters()
        self.current: PageView[T] | None = None

    async def search(self, filters: SearchFilters | None = None, ui_page: int = 1) -> PageView[T] | None:
        if filters is not None:
            self.filters = filters
        params = build_search_params(ui_page, self.filters, page_size=self._page_size)
        ticket = self._sequencer.issue()
        envelope = await self._search(params)
        if not self._sequencer.accept(ticket):
            return None
        self.current = PageView.from_envelope(envelope, ui_page)
        return self.current

    async def go_to_page(self, ui_page: int) -> PageView[T] | None:
        return await self.search(None, ui_page)
