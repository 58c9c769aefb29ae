"""Authenticated provider calls with a single re-authentication attempt."""

from __future__ import annotations

import logging

from ..errors.internal import AuthRequired
from ..store.base import CredentialStore
from .client import TokenClient
from .models import (
    AuthorizedRequest,
    CallResult,
    CallState,
    Provider,
    ProviderResponse,
    TokenRole,
)
from .token_refresher import TokenRefresher


class AuthenticatedClient:
    """The only path application code uses to reach provider APIs needing auth.

    Each logical call runs this state machine::

        INIT -> SENT -> (OK | UNAUTHORIZED)
        UNAUTHORIZED -> REFRESHING -> (RETRY_SENT -> (OK | FAIL) | AUTH_REQUIRED)

    A request is replayed at most once for authorization reasons; the budget is
    per call, so concurrent calls each get their own.
    """

    def __init__(
        self, client: TokenClient, refresher: TokenRefresher, store: CredentialStore
    ) -> None:
        self.client = client
        self.refresher = refresher
        self.store = store

    @property
    def provider(self) -> Provider:
        return self.client.provider.name

    async def call(self, request: AuthorizedRequest) -> ProviderResponse:
        """Send ``request`` and return the (possibly replayed) response.

        Raises:
            AuthRequired: No credential could be recovered; stored credentials
                for the provider have been cleared.
            NetworkError: The provider could not be reached, either for the
                request itself or while validating or refreshing the token
                after an authorization failure. Stored credentials are kept.
            RateLimitError: The provider rate limited the token validation or
                refresh after an authorization failure. Stored credentials
                are kept.
        """
        result = await self.execute(request)
        return result.response

    async def execute(self, request: AuthorizedRequest) -> CallResult:
        """Run the call state machine and report the terminal state and attempt count."""
        provider = self.provider
        context = f"{provider.value} {request.method.upper()} {request.endpoint}"
        state = CallState.INIT

        token = await self.store.get(provider, TokenRole.ACCESS)
        if not token:
            await self._auth_required(context)
            raise AuthRequired(
                "Not logged in", provider=provider, operation=context
            )

        response = await self.client.send_authorized(request, token, context=context)
        attempts = 1
        state = self._transition(state, CallState.SENT, context)

        if not self.client.provider.is_auth_failure(response):
            state = self._transition(state, CallState.OK, context)
            return CallResult(response, state, attempts)

        state = self._transition(state, CallState.UNAUTHORIZED, context)
        if request.retried:
            # Already replayed once; never loop against a provider that keeps rejecting.
            state = self._transition(state, CallState.FAIL, context)
            return CallResult(response, state, attempts)

        state = self._transition(state, CallState.REFRESHING, context)
        try:
            new_token = await self.refresher.ensure_valid_access_token()
        except AuthRequired:
            state = self._transition(state, CallState.AUTH_REQUIRED, context)
            await self._auth_required(context)
            raise

        replay = request.replay()
        response = await self.client.send_authorized(replay, new_token, context=context)
        attempts += 1
        state = self._transition(state, CallState.RETRY_SENT, context)
        if self.client.provider.is_auth_failure(response):
            logging.warning(
                f"❌ Request still unauthorized after refresh provider={provider.value} status={response.status} call={context}"
            )
            state = self._transition(state, CallState.FAIL, context)
        else:
            state = self._transition(state, CallState.OK, context)
        return CallResult(response, state, attempts)

    async def _auth_required(self, context: str) -> None:
        async with self.store.lock(self.provider):
            await self.store.clear_all(self.provider)
        logging.warning(
            f"🔒 Authorization required provider={self.provider.value} call={context}"
        )

    @staticmethod
    def _transition(current: CallState, new: CallState, context: str) -> CallState:
        if current.terminal:
            raise RuntimeError(f"call already finished in state {current.value}")
        logging.debug(f"🧭 Call state {current.value} -> {new.value} call={context}")
        return new
