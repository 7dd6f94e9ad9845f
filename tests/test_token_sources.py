import asyncio
import time
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from adapters.token_sources import OidcTokenSource, SessionStore, StaticTokenSource
from conftest import NOW_S, Recorder, session_valid
from core.config import AppSettings
from core.domain.errors import SilentRefreshFailure
from core.domain.models import Session
from core.interfaces.token_source import TokenSource

TOKEN_URL = "http://idp.test/realms/reviews/protocol/openid-connect/token"


@pytest.fixture
def oidc_settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        oidc_authority="http://idp.test",
        oidc_realm="reviews",
        oidc_client_id="review-app",
        oidc_redirect_uri="http://localhost:3000",
    )


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def test_sources_satisfy_token_source_protocol(tmp_path, oidc_settings) -> None:
    assert isinstance(StaticTokenSource("abc"), TokenSource)
    assert isinstance(OidcTokenSource(oidc_settings, store=SessionStore(tmp_path / "s.json")), TokenSource)


def test_silent_sign_in_uses_refresh_grant_and_notifies(tmp_path, oidc_settings) -> None:
    recorder = Recorder(
        lambda request, n: httpx.Response(
            200, json={"access_token": "fresh", "expires_in": 300, "refresh_token": "r-2"}
        )
    )
    store = SessionStore(tmp_path / "session.json")
    store.save(session_valid("old"))
    source = OidcTokenSource(oidc_settings, store=store, transport=recorder.transport, clock=lambda: NOW_S)
    seen: list[Session] = []
    source.subscribe(seen.append)

    session = asyncio.run(source.signin_silent())

    request = recorder.requests[0]
    assert str(request.url) == TOKEN_URL
    assert _form(request) == {"grant_type": "refresh_token", "client_id": "review-app", "refresh_token": "r-1"}
    assert session.access_token == "fresh"
    assert session.expires_at == NOW_S + 300
    assert source.session is session
    assert seen == [session]
    assert store.load() == session


def test_silent_sign_in_keeps_refresh_token_when_not_rotated(tmp_path, oidc_settings) -> None:
    recorder = Recorder(lambda request, n: httpx.Response(200, json={"access_token": "fresh", "expires_in": 60}))
    store = SessionStore(tmp_path / "session.json")
    store.save(session_valid("old"))
    source = OidcTokenSource(oidc_settings, store=store, transport=recorder.transport, clock=lambda: NOW_S)

    session = asyncio.run(source.signin_silent())

    assert session.refresh_token == "r-1"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(400, json={"error": "invalid_grant"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"token_type": "Bearer"}),
    ],
)
def test_silent_sign_in_failures_leave_session_untouched(tmp_path, oidc_settings, response) -> None:
    recorder = Recorder(lambda request, n: response)
    store = SessionStore(tmp_path / "session.json")
    store.save(session_valid("old"))
    source = OidcTokenSource(oidc_settings, store=store, transport=recorder.transport)

    with pytest.raises(SilentRefreshFailure):
        asyncio.run(source.signin_silent())

    assert source.session.access_token == "old"


def test_silent_sign_in_without_refresh_token_fails_fast(oidc_settings) -> None:
    recorder = Recorder(lambda request, n: httpx.Response(500))
    source = OidcTokenSource(oidc_settings, transport=recorder.transport)

    with pytest.raises(SilentRefreshFailure):
        asyncio.run(source.signin_silent())

    assert recorder.requests == []


def test_password_sign_in_stores_username(tmp_path, oidc_settings) -> None:
    recorder = Recorder(
        lambda request, n: httpx.Response(200, json={"access_token": "a", "refresh_token": "r", "expires_in": 60})
    )
    store = SessionStore(tmp_path / "session.json")
    source = OidcTokenSource(oidc_settings, store=store, transport=recorder.transport, clock=lambda: NOW_S)

    asyncio.run(source.signin_password("ana", "secret"))

    form = _form(recorder.requests[0])
    assert form["grant_type"] == "password"
    assert form["username"] == "ana"
    assert store.load().username == "ana"


def test_signin_redirect_opens_authorization_url(oidc_settings) -> None:
    opened: list[str] = []
    source = OidcTokenSource(oidc_settings, opener=opened.append)

    asyncio.run(source.signin_redirect())

    url = urlparse(opened[0])
    query = parse_qs(url.query)
    assert url.path == "/realms/reviews/protocol/openid-connect/auth"
    assert query["client_id"] == ["review-app"]
    assert query["redirect_uri"] == ["http://localhost:3000"]
    assert query["response_type"] == ["code"]


def test_signin_redirect_does_not_block_the_event_loop(oidc_settings) -> None:
    def slow_opener(url: str) -> None:
        time.sleep(0.3)

    source = OidcTokenSource(oidc_settings, opener=slow_opener)

    async def go() -> float:
        ticks: list[float] = []

        async def ticker() -> None:
            for _ in range(8):
                ticks.append(time.monotonic())
                await asyncio.sleep(0.05)

        await asyncio.gather(source.signin_redirect(), ticker())
        return max(b - a for a, b in zip(ticks, ticks[1:]))

    assert asyncio.run(go()) < 0.15


def test_sign_out_clears_store_and_notifies(tmp_path, oidc_settings) -> None:
    store = SessionStore(tmp_path / "session.json")
    store.save(session_valid())
    source = OidcTokenSource(oidc_settings, store=store)
    seen: list[Session] = []
    unsubscribe = source.subscribe(seen.append)

    source.sign_out()
    unsubscribe()
    source.sign_out()

    assert source.session.is_authenticated is False
    assert not store.path.exists()
    assert len(seen) == 1


def test_session_store_ignores_corrupt_file(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text("{broken", encoding="utf-8")

    assert SessionStore(path).load() is None


def test_static_token_source() -> None:
    source = StaticTokenSource("fixed")

    assert source.session.access_token == "fixed"
    assert source.session.is_authenticated is True
    assert StaticTokenSource().session.is_authenticated is False
    with pytest.raises(SilentRefreshFailure):
        asyncio.run(source.signin_silent())
    asyncio.run(source.signin_redirect())
