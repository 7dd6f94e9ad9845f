import asyncio

import pytest

from core.domain.models import PaginatedEnvelope, RestaurantSummary, SearchParams
from core.services.pagination import (
    ELLIPSIS,
    PageView,
    ResultSequencer,
    SearchCoordinator,
    SearchFilters,
    build_search_params,
    page_window,
)


@pytest.mark.parametrize(
    "total, current, expected",
    [
        (3, 2, [1, 2, 3]),
        (5, 5, [1, 2, 3, 4, 5]),
        (1, 1, [1]),
        (0, 1, []),
        (10, 5, [1, ELLIPSIS, 4, 5, 6, ELLIPSIS, 10]),
        (10, 1, [1, 2, ELLIPSIS, 10]),
        (10, 9, [1, ELLIPSIS, 8, 9, 10]),
        (10, 10, [1, ELLIPSIS, 9, 10]),
        (10, 3, [1, 2, 3, 4, ELLIPSIS, 10]),
        (10, 8, [1, ELLIPSIS, 7, 8, 9, 10]),
        (6, 4, [1, ELLIPSIS, 3, 4, 5, 6]),
    ],
)
def test_page_window(total: int, current: int, expected: list) -> None:
    assert page_window(total, current) == expected


def test_page_window_never_repeats_pages_or_exceeds_two_ellipses() -> None:
    for total in range(6, 30):
        for current in range(1, total + 1):
            window = page_window(total, current)
            pages = [item for item in window if item != ELLIPSIS]
            assert pages == sorted(set(pages))
            assert window.count(ELLIPSIS) <= 2
            assert pages[0] == 1 and pages[-1] == total
            assert current in pages


def test_build_search_params_translates_ui_page_to_wire_page() -> None:
    params = build_search_params(3, SearchFilters(q="  ramen ", min_rating=4), page_size=8)

    assert params == SearchParams(q="ramen", min_rating=4, page=2, size=8)


def test_build_search_params_drops_blank_query() -> None:
    params = build_search_params(1, SearchFilters(q="   "))

    assert params.q is None
    assert params.page == 0


def test_build_search_params_rejects_page_zero() -> None:
    with pytest.raises(ValueError):
        build_search_params(0)


def test_page_view_from_envelope() -> None:
    envelope = PaginatedEnvelope[RestaurantSummary].model_validate(
        {"content": [{"id": "r1", "name": "A"}], "totalPages": 10, "first": False, "last": False}
    )

    view = PageView.from_envelope(envelope, 5)

    assert view.has_previous and view.has_next
    assert view.window == [1, ELLIPSIS, 4, 5, 6, ELLIPSIS, 10]
    assert [r.id for r in view.items] == ["r1"]


def test_result_sequencer_rejects_older_tickets() -> None:
    sequencer = ResultSequencer()
    older, newer = sequencer.issue(), sequencer.issue()

    assert sequencer.accept(newer) is True
    assert sequencer.accept(older) is False
    assert sequencer.last_applied == newer


def test_search_coordinator_discards_stale_results() -> None:
    gates: dict[str, asyncio.Event] = {}
    seen: list[SearchParams] = []

    async def search(params: SearchParams) -> PaginatedEnvelope[RestaurantSummary]:
        seen.append(params)
        await gates[params.q or ""].wait()
        return PaginatedEnvelope[RestaurantSummary].model_validate(
            {"content": [{"id": params.q, "name": params.q}], "totalPages": 1, "first": True, "last": True}
        )

    async def go():
        gates["slow"] = asyncio.Event()
        gates["fast"] = asyncio.Event()
        coordinator = SearchCoordinator(search)
        slow = asyncio.create_task(coordinator.search(SearchFilters(q="slow")))
        await asyncio.sleep(0)
        fast = asyncio.create_task(coordinator.search(SearchFilters(q="fast")))
        await asyncio.sleep(0)
        gates["fast"].set()
        fast_view = await fast
        gates["slow"].set()
        slow_view = await slow
        return coordinator, fast_view, slow_view

    coordinator, fast_view, slow_view = asyncio.run(go())

    assert [p.q for p in seen] == ["slow", "fast"]
    assert fast_view is not None and fast_view.items[0].id == "fast"
    assert slow_view is None
    assert coordinator.current is fast_view


def test_search_coordinator_keeps_filters_across_page_changes() -> None:
    seen: list[SearchParams] = []

    async def search(params: SearchParams) -> PaginatedEnvelope[RestaurantSummary]:
        seen.append(params)
        return PaginatedEnvelope[RestaurantSummary].model_validate(
            {"content": [], "totalPages": 4, "first": params.page == 0, "last": params.page == 3}
        )

    async def go():
        coordinator = SearchCoordinator(search, page_size=8)
        await coordinator.search(SearchFilters(q="tacos", min_rating=3))
        return await coordinator.go_to_page(4)

    view = asyncio.run(go())

    assert seen[1] == SearchParams(q="tacos", min_rating=3, page=3, size=8)
    assert view is not None and view.has_next is False and view.has_previous is True
