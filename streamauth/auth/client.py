"""Token probe / refresh / revoke HTTP client."""

from __future__ import annotations

import logging

import aiohttp

from ..errors.internal import (
    AuthRequired,
    NetworkError,
    ProtocolError,
    RateLimitError,
)
from ..providers.base import OAuthProvider
from ..providers.transport import send
from ..utils import mask_token, retry_async
from .clock import Clock
from .models import AuthorizedRequest, ProviderResponse, TokenOutcome, TokenResult


class TokenClient:
    """Client for probing, refreshing and revoking one provider's tokens.

    Network failures are retried with backoff through the injected clock;
    provider rejections are not retried.
    """

    def __init__(
        self, provider: OAuthProvider, http_session: aiohttp.ClientSession, clock: Clock
    ) -> None:
        """Initialize the token client.

        Args:
            provider: Provider integration describing endpoints and signals.
            http_session: HTTP session for making requests.
            clock: Time source used for retry backoff.
        """
        self.provider = provider
        self.session = http_session
        self.clock = clock

    @property
    def name(self) -> str:
        return self.provider.name.value

    async def send_authorized(
        self, request: AuthorizedRequest, access_token: str, *, context: str
    ) -> ProviderResponse:
        """Send one API request with ``access_token`` attached (no retries)."""
        prepared = self.provider.authorize(request, access_token)
        return await send(self.session, prepared, provider=self.name, context=context)

    async def probe(self, access_token: str) -> bool:
        """Check whether the provider still accepts ``access_token``.

        Returns:
            True when the account probe succeeds, False when it is rejected.

        Raises:
            NetworkError: If the probe could not reach the provider.
            RateLimitError: If the provider rate limited the probe; the token
                is neither confirmed valid nor invalid.
        """

        async def operation() -> ProviderResponse:
            resp = await self.send_authorized(
                self.provider.probe_request(), access_token, context=f"{self.name} token probe"
            )
            if resp.status >= 500:
                raise NetworkError(
                    f"HTTP {resp.status} during token probe",
                    data={"http_status": resp.status},
                    provider=self.name,
                    operation="probe",
                )
            return resp

        resp = await retry_async(
            operation, context=f"{self.name} token probe", sleep=self.clock.sleep
        )
        if resp.status == 429:
            logging.warning(f"⏳ Token probe rate limited provider={self.name}")
            raise RateLimitError(
                "Rate limited during token probe",
                data={"http_status": resp.status},
                provider=self.name,
                operation="probe",
            )
        valid = self.provider.probe_succeeded(resp)
        if valid:
            logging.debug(f"✅ Token valid provider={self.name} token={mask_token(access_token)}")
        else:
            logging.info(f"❌ Token probe rejected provider={self.name} status={resp.status}")
        return valid

    async def refresh(self, refresh_token: str) -> TokenResult:
        """Exchange a refresh token for a new token pair.

        A response without a new refresh token keeps the old one.

        Raises:
            AuthRequired: If the provider rejected the refresh token.
            ProtocolError: If the response lacked an access token.
            RateLimitError: If the provider rate limited the exchange.
            NetworkError: If every attempt failed on the network.
        """

        async def operation() -> ProviderResponse:
            resp = await send(
                self.session,
                self.provider.refresh_request(refresh_token),
                provider=self.name,
                context=f"{self.name} token refresh",
            )
            if resp.status >= 500:
                raise NetworkError(
                    f"HTTP {resp.status} during token refresh",
                    data={"http_status": resp.status},
                    provider=self.name,
                    operation="refresh",
                )
            return resp

        resp = await retry_async(
            operation, context=f"{self.name} token refresh", sleep=self.clock.sleep
        )
        payload = resp.json_object()
        if resp.status == 429:
            raise RateLimitError(
                "Rate limited during token refresh", provider=self.name, operation="refresh"
            )
        if not resp.ok:
            raise AuthRequired(
                f"Refresh rejected (status={resp.status}) error={payload.get('error', 'unknown')}",
                data={"http_status": resp.status},
                provider=self.name,
                operation="refresh",
            )
        new_access = payload.get("access_token")
        if not new_access:
            raise ProtocolError(
                "Missing access_token in refresh response", provider=self.name, operation="refresh"
            )
        new_refresh = payload.get("refresh_token") or refresh_token
        logging.info(f"🔄 Token refreshed provider={self.name} expires_in={payload.get('expires_in')}")
        return TokenResult(TokenOutcome.REFRESHED, str(new_access), str(new_refresh))

    async def revoke(self, access_token: str) -> bool:
        """Best-effort server-side revocation; never raises for provider failures.

        Returns:
            True when the provider acknowledged the revocation.
        """
        prepared = self.provider.revoke_request(access_token)
        if prepared is None:
            return False
        try:
            resp = await send(
                self.session, prepared, provider=self.name, context=f"{self.name} token revoke"
            )
        except NetworkError as e:
            logging.warning(f"⚠️ Token revoke failed provider={self.name} error={str(e)}")
            return False
        if not resp.ok:
            logging.warning(f"⚠️ Token revoke rejected provider={self.name} status={resp.status}")
            return False
        logging.info(f"🗑️ Token revoked provider={self.name}")
        return True

    async def fetch_username(self, access_token: str) -> str | None:
        """Look up the authenticated account's username, if the provider has one.

        Raises:
            NetworkError: If the identity lookup failed on the network.
        """
        request = self.provider.identity_request()
        if request is None:
            return None
        resp = await self.send_authorized(
            request, access_token, context=f"{self.name} identity lookup"
        )
        username = self.provider.extract_username(resp)
        if username is None:
            logging.warning(f"⚠️ Identity lookup returned no username provider={self.name} status={resp.status}")
        return username
