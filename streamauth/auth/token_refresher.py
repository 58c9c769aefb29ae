"""Token validation and refresh logic."""

from __future__ import annotations

import logging

from ..errors.internal import (
    AuthRequired,
    NetworkError,
    ProtocolError,
    RateLimitError,
)
from ..store.base import CredentialStore
from .client import TokenClient
from .models import Provider, TokenOutcome, TokenResult, TokenRole


class TokenRefresher:
    """Keeps one provider's stored access token usable.

    Side effects are bounded to reading, refreshing and clearing the store;
    it never starts a device-code flow. Every operation re-reads the store
    while holding the provider lock, so a refresh cannot interleave with a
    logout or a concurrent refresh.
    """

    def __init__(self, client: TokenClient, store: CredentialStore) -> None:
        self.client = client
        self.store = store

    @property
    def provider(self) -> Provider:
        return self.client.provider.name

    async def validate(self) -> TokenOutcome:
        """Probe the stored access token without modifying the store.

        Returns:
            VALID if the provider accepts the token, FAILED otherwise.

        Raises:
            NetworkError: If the probe could not reach the provider.
            RateLimitError: If the provider rate limited the probe.
        """
        access = await self.store.get(self.provider, TokenRole.ACCESS)
        if not access:
            return TokenOutcome.FAILED
        return TokenOutcome.VALID if await self.client.probe(access) else TokenOutcome.FAILED

    async def ensure_valid_access_token(self) -> str:
        """Return a live access token, refreshing it once if necessary.

        Returns:
            The unchanged token on the fast path, or the refreshed one.

        Raises:
            AuthRequired: No token stored, or it expired and the provider
                rejected the refresh token.
            NetworkError: The probe or the refresh could not reach the provider;
                stored tokens are kept.
            RateLimitError: The provider rate limited the probe or the refresh;
                stored tokens are kept.
        """
        result = await self.ensure_fresh()
        # ensure_fresh only returns with a token; failures raise
        return result.access_token or ""

    async def ensure_fresh(self) -> TokenResult:
        """Like ensure_valid_access_token but reports whether a refresh happened."""
        provider = self.provider
        async with self.store.lock(provider):
            access = await self.store.get(provider, TokenRole.ACCESS)
            if not access:
                raise AuthRequired(
                    "No stored access token", provider=provider, operation="validate"
                )
            if await self.client.probe(access):
                return TokenResult(TokenOutcome.VALID, access)

            logging.info(f"🔁 Access token rejected, attempting refresh provider={provider.value}")
            return await self._refresh_locked()

    async def _refresh_locked(self) -> TokenResult:
        """Exchange the stored refresh token; caller holds the provider lock.

        Tokens are cleared only when the provider rejects the refresh token.
        Rate limits and network failures leave the store as it was.
        """
        provider = self.provider
        refresh = await self.store.get(provider, TokenRole.REFRESH)
        if not refresh:
            await self.store.clear(provider, TokenRole.ACCESS)
            raise AuthRequired(
                "Access token expired and no refresh token is stored",
                provider=provider,
                operation="refresh",
            )
        try:
            result = await self.client.refresh(refresh)
        except (RateLimitError, NetworkError) as e:
            logging.warning(
                f"⏳ Token refresh deferred provider={provider.value} type={type(e).__name__} error={str(e)}"
            )
            raise
        except (AuthRequired, ProtocolError) as e:
            await self.store.clear(provider, TokenRole.ACCESS)
            await self.store.clear(provider, TokenRole.REFRESH)
            logging.warning(
                f"❌ Token refresh failed provider={provider.value} type={type(e).__name__} error={str(e)}"
            )
            raise AuthRequired(
                f"Token refresh failed: {str(e)}", provider=provider, operation="refresh"
            ) from e

        await self.store.set(provider, TokenRole.ACCESS, result.access_token or "")
        await self.store.set(provider, TokenRole.REFRESH, result.refresh_token or refresh)
        return result
