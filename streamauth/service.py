"""Application-facing facade over the authentication core.

UI screens (or the CLI) talk to :class:`AuthService` only; it owns the shared
HTTP session and wires store, clock and provider integrations together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import aiohttp

from .auth.client import TokenClient
from .auth.clock import Clock, SystemClock
from .auth.models import (
    AuthorizedRequest,
    Credential,
    Provider,
    ProviderResponse,
    TokenRole,
)
from .auth.notifier import CodeCallback, CodeReadyChannel
from .auth.provisioner import CredentialProvisioner
from .auth.request_client import AuthenticatedClient
from .auth.token_refresher import TokenRefresher
from .config.model import AppConfig
from .providers.base import OAuthProvider
from .providers.registry import build_provider
from .resolvers.base import MediaRef, StreamResolver
from .resolvers.premiumize import PremiumizeFolderResolver
from .store.base import CredentialStore
from .store.file_store import FileCredentialStore


@dataclass
class ProviderComponents:
    """Per-provider wiring of the core components."""

    integration: OAuthProvider
    token_client: TokenClient
    refresher: TokenRefresher
    requests: AuthenticatedClient
    provisioner: CredentialProvisioner


class AuthService:
    """Entry point: authorize, logout, is_logged_in, call, resolve_stream_url.

    Use as an async context manager, or call :meth:`close` when done. An
    externally supplied HTTP session is not closed by the service.
    """

    def __init__(
        self,
        config: AppConfig,
        store: CredentialStore | None = None,
        *,
        http_session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
        resolver: StreamResolver | None = None,
    ) -> None:
        self.config = config
        self.store = store or FileCredentialStore(config.token_store_path)
        self.clock = clock or SystemClock()
        self._session = http_session
        self._owns_session = http_session is None
        self._components: dict[Provider, ProviderComponents] = {}
        self._resolver = resolver

    async def __aenter__(self) -> AuthService:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            logging.debug("🔌 HTTP session closed")
        self._session = None
        self._components.clear()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
            logging.debug("🔗 HTTP session created")
        return self._session

    def components(self, provider: Provider | str) -> ProviderComponents:
        """Return (building once) the wired components for ``provider``.

        Raises:
            KeyError: If the provider is not configured.
        """
        key = Provider(provider)
        existing = self._components.get(key)
        if existing is not None:
            return existing
        integration = build_provider(self.config, key)
        session = self._get_session()
        token_client = TokenClient(integration, session, self.clock)
        refresher = TokenRefresher(token_client, self.store)
        built = ProviderComponents(
            integration=integration,
            token_client=token_client,
            refresher=refresher,
            requests=AuthenticatedClient(token_client, refresher, self.store),
            provisioner=CredentialProvisioner(
                token_client, refresher, self.store, session, self.clock
            ),
        )
        self._components[key] = built
        return built

    async def authorize(
        self,
        provider: Provider | str,
        on_code_ready: CodeCallback | CodeReadyChannel | None = None,
        *,
        force: bool = False,
    ) -> Credential:
        """Obtain a credential, running the device-code flow when needed."""
        return await self.components(provider).provisioner.authorize(on_code_ready, force=force)

    async def ensure_valid_access_token(self, provider: Provider | str) -> str:
        return await self.components(provider).refresher.ensure_valid_access_token()

    async def call(self, provider: Provider | str, request: AuthorizedRequest) -> ProviderResponse:
        """Send an authenticated provider API request."""
        return await self.components(provider).requests.call(request)

    async def is_logged_in(self, provider: Provider | str) -> bool:
        """Presence check only; does not contact the provider."""
        return bool(await self.store.get(Provider(provider), TokenRole.ACCESS))

    async def logout(self, provider: Provider | str) -> None:
        """Revoke server-side (best effort, where supported) and clear stored credentials.

        Safe to call repeatedly.
        """
        key = Provider(provider)
        async with self.store.lock(key):
            access = await self.store.get(key, TokenRole.ACCESS)
            if access and key in self.config.providers:
                components = self.components(key)
                if components.integration.supports_revoke:
                    await components.token_client.revoke(access)
            await self.store.clear_all(key)
        logging.info(f"👋 Logged out provider={key.value}")

    def resolver(self) -> StreamResolver:
        """Return the configured stream resolver.

        Raises:
            KeyError: If the debrid provider is not configured.
            ValueError: If no folder is configured for the folder resolver.
        """
        if self._resolver is None:
            settings = self.config.settings_for(Provider.PREMIUMIZE)
            if not settings.folder_id:
                raise ValueError("premiumize folder_id is not configured")
            requests = self.components(Provider.PREMIUMIZE).requests
            self._resolver = PremiumizeFolderResolver(requests.call, settings.folder_id)
        return self._resolver

    async def resolve_stream_url(self, media_ref: MediaRef) -> str:
        return await self.resolver().resolve_stream_url(media_ref)
