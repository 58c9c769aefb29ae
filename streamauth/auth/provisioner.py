"""Credential provisioning: stored credential fast path or interactive device flow."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import aiohttp

from ..errors.internal import AuthorizationInProgress, AuthRequired, NetworkError
from ..store.base import CredentialStore, load_credential, save_credential
from .client import TokenClient
from .clock import Clock
from .device_flow import DeviceCodeFlow
from .models import Credential, Provider
from .notifier import CodeCallback, CodeReadyChannel, as_channel
from .token_refresher import TokenRefresher


class CredentialProvisioner:
    """Implements ``authorize`` for one provider.

    Consults the store and validator first; runs the device-code flow only when
    that yields AuthRequired (or when forced). Only one device-code attempt per
    provider may be in flight.
    """

    def __init__(
        self,
        client: TokenClient,
        refresher: TokenRefresher,
        store: CredentialStore,
        http_session: aiohttp.ClientSession,
        clock: Clock,
    ) -> None:
        self.client = client
        self.refresher = refresher
        self.store = store
        self.session = http_session
        self.clock = clock
        self._in_flight = False

    @property
    def provider(self) -> Provider:
        return self.client.provider.name

    def _flow(self) -> DeviceCodeFlow:
        return DeviceCodeFlow(self.client.provider, self.session, self.clock)

    async def authorize(
        self,
        on_code_ready: CodeCallback | CodeReadyChannel | None = None,
        *,
        force: bool = False,
    ) -> Credential:
        """Return a usable credential, running the device-code flow if needed.

        Args:
            on_code_ready: Receives ``(verification_uri, user_code)`` exactly
                once when a device code is issued.
            force: Skip the stored-credential fast path.

        Raises:
            AuthDenied, AuthTimeout: Terminal device-code outcomes.
            ProtocolError: Malformed provider response.
            NetworkError: Provider unreachable.
            AuthorizationInProgress: A flow for this provider is already running.
        """
        if not force:
            existing = await self._existing_credential()
            if existing is not None:
                return existing

        if self._in_flight:
            raise AuthorizationInProgress(
                "Device authorization already in progress",
                provider=self.provider,
                operation="authorize",
            )
        self._in_flight = True
        try:
            return await self._interactive_authorize(as_channel(on_code_ready))
        finally:
            self._in_flight = False

    async def _existing_credential(self) -> Credential | None:
        try:
            await self.refresher.ensure_valid_access_token()
        except AuthRequired:
            return None
        credential = await load_credential(self.store, self.provider)
        if credential is not None:
            logging.info(f"✅ Using stored credential provider={self.provider.value}")
        return credential

    async def _interactive_authorize(self, channel: CodeReadyChannel) -> Credential:
        provider = self.provider
        logging.info(f"🔐 Starting device authorization provider={provider.value}")
        token_data = await self._flow().run(channel)

        credential = Credential(
            provider=provider,
            access_token=str(token_data["access_token"]),
            refresh_token=token_data.get("refresh_token") or None,
            obtained_at=datetime.now(UTC),
        )
        if self.client.provider.fetches_username:
            try:
                username = await self.client.fetch_username(credential.access_token)
            except NetworkError as e:
                logging.warning(
                    f"⚠️ Username lookup failed provider={provider.value} error={str(e)}"
                )
                username = None
            credential = credential.with_username(username)

        async with self.store.lock(provider):
            await save_credential(self.store, credential)
        logging.info(
            f"💾 Authorized and stored provider={provider.value} user={credential.username or '-'}"
        )
        return credential
