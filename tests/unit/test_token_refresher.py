"""
Unit tests for TokenRefresher.
"""

from __future__ import annotations

import aiohttp
import pytest

from streamauth.auth.client import TokenClient
from streamauth.auth.models import Provider, TokenOutcome, TokenRole
from streamauth.auth.token_refresher import TokenRefresher
from streamauth.errors.internal import AuthRequired, NetworkError, RateLimitError
from streamauth.providers.premiumize import PremiumizeProvider
from streamauth.providers.trakt import TraktProvider

from ..fixtures.fake_http import FakeSession
from ..fixtures.provider_fixtures import (
    PREMIUMIZE_SETTINGS,
    TOKEN_PAYLOAD,
    TRAKT_SETTINGS,
    ok,
    status,
)

T = Provider.TRAKT


def _refresher(session, store, clock) -> TokenRefresher:  # noqa: ANN001
    client = TokenClient(TraktProvider(TRAKT_SETTINGS), session, clock)
    return TokenRefresher(client, store)


async def _seed(store, access="old_access", refresh="old_refresh") -> None:  # noqa: ANN001
    if access:
        await store.set(T, TokenRole.ACCESS, access)
    if refresh:
        await store.set(T, TokenRole.REFRESH, refresh)


class TestTokenRefresher:
    """Test class for TokenRefresher functionality."""

    @pytest.mark.asyncio
    async def test_valid_token_fast_path(self, store, clock):
        """Stored token accepted by the probe is returned unchanged."""
        await _seed(store)
        session = FakeSession(routes={"/users/settings": [ok({"user": {}})]}, clock=clock)

        token = await _refresher(session, store, clock).ensure_valid_access_token()

        assert token == "old_access"
        assert len(session.requests) == 1
        assert session.requests[0].headers["Authorization"] == "Bearer old_access"
        assert session.requests[0].headers["trakt-api-key"] == "trakt_client_id"

    @pytest.mark.asyncio
    async def test_absent_token_requires_auth_without_network(self, store, clock):
        session = FakeSession(clock=clock)

        with pytest.raises(AuthRequired):
            await _refresher(session, store, clock).ensure_valid_access_token()

        assert session.requests == []

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(self, store, clock):
        """Invalid access token + stored refresh token performs the refresh grant."""
        await _seed(store)
        session = FakeSession(
            routes={
                "/users/settings": [status(401)],
                "/oauth/token": [ok(TOKEN_PAYLOAD)],
            },
            clock=clock,
        )

        result = await _refresher(session, store, clock).ensure_fresh()

        assert result.outcome == TokenOutcome.REFRESHED
        assert result.access_token == TOKEN_PAYLOAD["access_token"]
        assert await store.get(T, TokenRole.ACCESS) == TOKEN_PAYLOAD["access_token"]
        assert await store.get(T, TokenRole.REFRESH) == TOKEN_PAYLOAD["refresh_token"]
        refresh_call = session.calls_to("/oauth/token")[0]
        assert refresh_call.json["grant_type"] == "refresh_token"
        assert refresh_call.json["refresh_token"] == "old_refresh"
        # never falls back to a device-code flow by itself
        assert session.calls_to("/oauth/device") == []

    @pytest.mark.asyncio
    async def test_refresh_keeps_old_refresh_token_when_not_rotated(self, store, clock):
        await _seed(store)
        session = FakeSession(
            routes={
                "/users/settings": [status(401)],
                "/oauth/token": [ok({"access_token": "fresh"})],
            },
            clock=clock,
        )

        assert await _refresher(session, store, clock).ensure_valid_access_token() == "fresh"
        assert await store.get(T, TokenRole.REFRESH) == "old_refresh"

    @pytest.mark.asyncio
    async def test_rejected_refresh_clears_tokens(self, store, clock):
        await _seed(store)
        session = FakeSession(
            routes={
                "/users/settings": [status(401)],
                "/oauth/token": [status(400, {"error": "invalid_grant"})],
            },
            clock=clock,
        )

        with pytest.raises(AuthRequired) as exc_info:
            await _refresher(session, store, clock).ensure_valid_access_token()

        assert exc_info.value.provider == "trakt"
        assert await store.get(T, TokenRole.ACCESS) is None
        assert await store.get(T, TokenRole.REFRESH) is None

    @pytest.mark.asyncio
    async def test_no_refresh_token_requires_auth(self, store, clock):
        await _seed(store, refresh=None)
        session = FakeSession(routes={"/users/settings": [status(401)]}, clock=clock)

        with pytest.raises(AuthRequired):
            await _refresher(session, store, clock).ensure_valid_access_token()

        assert await store.get(T, TokenRole.ACCESS) is None
        assert session.calls_to("/oauth/token") == []

    @pytest.mark.asyncio
    async def test_probe_network_failure_keeps_token(self, store, clock):
        await _seed(store)
        session = FakeSession(
            routes={"/users/settings": [aiohttp.ClientConnectionError("offline")]},
            clock=clock,
        )

        with pytest.raises(NetworkError):
            await _refresher(session, store, clock).ensure_valid_access_token()

        assert await store.get(T, TokenRole.ACCESS) == "old_access"
        assert len(session.requests) == 3  # retried with backoff

    @pytest.mark.asyncio
    async def test_rate_limited_validity_check_keeps_tokens(self, store, clock):
        """A 429 on the validity check neither clears tokens nor spends the refresh token."""
        await _seed(store)
        session = FakeSession(
            routes={
                "/users/settings": [status(429)],
                "/oauth/token": [status(429)],
            },
            clock=clock,
        )

        with pytest.raises(RateLimitError) as exc_info:
            await _refresher(session, store, clock).ensure_valid_access_token()

        assert exc_info.value.data["http_status"] == 429
        assert await store.get(T, TokenRole.ACCESS) == "old_access"
        assert await store.get(T, TokenRole.REFRESH) == "old_refresh"
        assert session.calls_to("/oauth/token") == []

    @pytest.mark.asyncio
    async def test_rate_limited_refresh_keeps_tokens(self, store, clock):
        await _seed(store)
        session = FakeSession(
            routes={
                "/users/settings": [status(401)],
                "/oauth/token": [status(429)],
            },
            clock=clock,
        )

        with pytest.raises(RateLimitError):
            await _refresher(session, store, clock).ensure_valid_access_token()

        assert await store.get(T, TokenRole.ACCESS) == "old_access"
        assert await store.get(T, TokenRole.REFRESH) == "old_refresh"

    @pytest.mark.asyncio
    async def test_refresh_network_failure_keeps_tokens(self, store, clock):
        await _seed(store)
        session = FakeSession(
            routes={
                "/users/settings": [status(401)],
                "/oauth/token": [aiohttp.ClientConnectionError("offline")],
            },
            clock=clock,
        )

        with pytest.raises(NetworkError):
            await _refresher(session, store, clock).ensure_valid_access_token()

        assert len(session.calls_to("/oauth/token")) == 3
        assert await store.get(T, TokenRole.ACCESS) == "old_access"
        assert await store.get(T, TokenRole.REFRESH) == "old_refresh"

    @pytest.mark.asyncio
    async def test_validate_does_not_modify_store(self, store, clock):
        await _seed(store)
        session = FakeSession(routes={"/users/settings": [status(401)]}, clock=clock)

        outcome = await _refresher(session, store, clock).validate()

        assert outcome == TokenOutcome.FAILED
        assert await store.get(T, TokenRole.ACCESS) == "old_access"

    @pytest.mark.asyncio
    async def test_premiumize_probe_uses_status_field(self, store, clock):
        await store.set(Provider.PREMIUMIZE, TokenRole.ACCESS, "pm_token")
        session = FakeSession(
            routes={"/account/info": [ok({"status": "error", "message": "Not logged in."})]},
            clock=clock,
        )
        client = TokenClient(PremiumizeProvider(PREMIUMIZE_SETTINGS), session, clock)

        with pytest.raises(AuthRequired):
            await TokenRefresher(client, store).ensure_valid_access_token()

        assert session.requests[0].params == {"access_token": "pm_token"}
        assert await store.get(Provider.PREMIUMIZE, TokenRole.ACCESS) is None
