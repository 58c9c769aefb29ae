"""
Tests for the AuthService facade wiring the full authorization lifecycle.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest
from freezegun import freeze_time

from streamauth.auth.models import AuthorizedRequest, Provider, TokenRole
from streamauth.config.model import AppConfig
from streamauth.errors.internal import AuthDenied, AuthorizationInProgress, AuthRequired
from streamauth.resolvers.base import MediaKind, MediaRef
from streamauth.service import AuthService

from .fixtures.fake_http import FakeSession
from .fixtures.provider_fixtures import (
    DEVICE_CODE_PAYLOAD,
    TOKEN_PAYLOAD,
    TRAKT_DEVICE_CODE_PAYLOAD,
    make_config,
    ok,
    pending,
    status,
)

T = Provider.TRAKT
P = Provider.PREMIUMIZE


def _trakt_login_routes() -> dict:
    return {
        "/oauth/device/code": [ok(TRAKT_DEVICE_CODE_PAYLOAD)],
        "/oauth/device/token": [status(400), ok(TOKEN_PAYLOAD)],
        "/users/me": [ok({"username": "alice"})],
        "/users/settings": [ok({"user": {"username": "alice"}})],
        "/oauth/revoke": [ok({})],
    }


def _service(session, store, clock) -> AuthService:  # noqa: ANN001
    return AuthService(make_config(), store, http_session=session, clock=clock)


@pytest.mark.asyncio
async def test_authorize_then_logged_in(store, clock):
    session = FakeSession(routes=_trakt_login_routes(), clock=clock)
    codes = []

    async with _service(session, store, clock) as service:
        assert not await service.is_logged_in(T)
        credential = await service.authorize(T, lambda uri, code: codes.append((uri, code)))

        assert codes == [("https://trakt.tv/activate", "XYZ-123")]
        assert credential.access_token == TOKEN_PAYLOAD["access_token"]
        assert credential.username == "alice"
        assert await service.is_logged_in(T)
        assert not await service.is_logged_in(P)
        assert await store.get(T, TokenRole.REFRESH) == TOKEN_PAYLOAD["refresh_token"]
        assert await store.get(T, TokenRole.USERNAME) == "alice"

    # externally supplied sessions are left open
    assert not session.closed


@pytest.mark.asyncio
async def test_authorize_uses_stored_credential_without_code(store, clock):
    await store.set(T, TokenRole.ACCESS, "stored_access")
    await store.set(T, TokenRole.REFRESH, "stored_refresh")
    session = FakeSession(routes=_trakt_login_routes(), clock=clock)
    codes = []

    service = _service(session, store, clock)
    credential = await service.authorize(T, lambda uri, code: codes.append(code))

    assert codes == []
    assert credential.access_token == "stored_access"
    assert session.calls_to("/oauth/device") == []


@pytest.mark.asyncio
async def test_forced_authorize_runs_device_flow(store, clock):
    await store.set(T, TokenRole.ACCESS, "stored_access")
    session = FakeSession(routes=_trakt_login_routes(), clock=clock)
    codes = []

    service = _service(session, store, clock)
    await service.authorize(T, lambda uri, code: codes.append(code), force=True)

    assert codes == ["XYZ-123"]
    assert await store.get(T, TokenRole.ACCESS) == TOKEN_PAYLOAD["access_token"]


@pytest.mark.asyncio
async def test_authorize_records_obtained_at(store, clock):
    routes = {
        "premiumize.me/token": [ok(DEVICE_CODE_PAYLOAD), ok(TOKEN_PAYLOAD)],
    }
    session = FakeSession(routes=routes, clock=clock)

    with freeze_time("2026-01-02 03:04:05", real_asyncio=True):
        credential = await _service(session, store, clock).authorize(P)

    assert credential.obtained_at == datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
    # No identity endpoint for the debrid service
    assert credential.username is None
    assert len(session.requests) == 2


@pytest.mark.asyncio
async def test_denied_authorization_stores_nothing(store, clock):
    routes = {
        "premiumize.me/token": [ok(DEVICE_CODE_PAYLOAD), status(400, {"error": "access_denied"})],
    }
    session = FakeSession(routes=routes, clock=clock)

    with pytest.raises(AuthDenied):
        await _service(session, store, clock).authorize(P)

    assert not await _service(session, store, clock).is_logged_in(P)


@pytest.mark.asyncio
async def test_concurrent_authorize_is_rejected(store, clock):
    routes = {
        "premiumize.me/token": [ok(DEVICE_CODE_PAYLOAD), pending(), ok(TOKEN_PAYLOAD)],
    }
    session = FakeSession(routes=routes, clock=clock)
    service = _service(session, store, clock)

    first, second = await asyncio.gather(
        service.authorize(P, force=True),
        service.authorize(P, force=True),
        return_exceptions=True,
    )

    assert first.access_token == TOKEN_PAYLOAD["access_token"]
    assert isinstance(second, AuthorizationInProgress)


@pytest.mark.asyncio
async def test_logout_revokes_and_is_idempotent(store, clock):
    await store.set(T, TokenRole.ACCESS, "stored_access")
    await store.set(T, TokenRole.REFRESH, "stored_refresh")
    await store.set(T, TokenRole.USERNAME, "alice")
    session = FakeSession(routes=_trakt_login_routes(), clock=clock)
    service = _service(session, store, clock)

    await service.logout(T)
    await service.logout(T)

    assert not await service.is_logged_in(T)
    for role in TokenRole:
        assert await store.get(T, role) is None
    revokes = session.calls_to("/oauth/revoke")
    assert len(revokes) == 1
    assert revokes[0].json["token"] == "stored_access"


@pytest.mark.asyncio
async def test_logout_clears_even_when_revoke_fails(store, clock):
    await store.set(T, TokenRole.ACCESS, "stored_access")
    session = FakeSession(routes={"/oauth/revoke": [status(500)]}, clock=clock)

    await _service(session, store, clock).logout(T)

    assert await store.get(T, TokenRole.ACCESS) is None


@pytest.mark.asyncio
async def test_call_when_logged_out_requires_auth(store, clock):
    session = FakeSession(clock=clock)

    with pytest.raises(AuthRequired):
        await _service(session, store, clock).call(T, AuthorizedRequest("GET", "/sync/history"))


@pytest.mark.asyncio
async def test_unconfigured_provider_raises_key_error(store, clock):
    service = AuthService(AppConfig(), store, http_session=FakeSession(), clock=clock)

    with pytest.raises(KeyError):
        await service.authorize(T)


@pytest.mark.asyncio
async def test_resolve_stream_url_through_authenticated_call(store, clock):
    await store.set(P, TokenRole.ACCESS, "pm_token")
    folder = {
        "status": "success",
        "content": [{"name": "Show.S02E03.mkv", "link": "https://dl/s02e03.mkv"}],
    }
    session = FakeSession(routes={"/folder/list": [ok(folder)]}, clock=clock)

    url = await _service(session, store, clock).resolve_stream_url(
        MediaRef("Show", MediaKind.SHOW, 2, 3)
    )

    assert url == "https://dl/s02e03.mkv"
    sent = session.requests[0]
    assert sent.params == {"id": "folder123", "access_token": "pm_token"}
