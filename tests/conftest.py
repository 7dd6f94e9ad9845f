import asyncio
from typing import Callable

import httpx
import pytest

from core.config import AppSettings
from core.domain.models import Session

NOW_S = 1_700_000_000
NOW_MS = NOW_S * 1000


class FakeTokenSource:
    """In-memory token source that counts refresh and redirect calls."""

    def __init__(
        self,
        session: Session,
        *,
        refreshed: Session | None = None,
        refresh_error: Exception | None = None,
        refresh_delay: float = 0.0,
    ) -> None:
        self._session = session
        self.refreshed = refreshed
        self.refresh_error = refresh_error
        self.refresh_delay = refresh_delay
        self.refresh_calls = 0
        self.redirect_calls = 0

    @property
    def session(self) -> Session:
        return self._session

    async def signin_silent(self) -> Session:
        self.refresh_calls += 1
        if self.refresh_delay:
            await asyncio.sleep(self.refresh_delay)
        if self.refresh_error is not None:
            raise self.refresh_error
        assert self.refreshed is not None
        self._session = self.refreshed
        return self._session

    async def signin_redirect(self) -> None:
        self.redirect_calls += 1


class Recorder:
    """MockTransport handler that records requests and answers from a script."""

    def __init__(self, responder: Callable[[httpx.Request, int], httpx.Response]) -> None:
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request, len(self.requests))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def session_valid(token: str = "token-1") -> Session:
    return Session(access_token=token, expires_at=NOW_S + 3600, refresh_token="r-1", is_authenticated=True)


def session_expiring(token: str = "token-1") -> Session:
    return Session(access_token=token, expires_at=NOW_S + 30, refresh_token="r-1", is_authenticated=True)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None, api_base_url="http://api.test/api")


@pytest.fixture
def clock() -> Callable[[], float]:
    return lambda: float(NOW_MS)
