"""Credential store interface and credential (de)serialization helpers."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from ..auth.models import Credential, Provider, TokenRole


class CredentialStore(ABC):
    """Async key/value store for provider secrets.

    Keys are ``{provider}_{role}``. ``get`` returns None for a missing key and
    ``clear`` on a missing key is a no-op. Writes to the same key are
    last-writer-wins; callers serialize read-modify-write sequences through
    :meth:`lock`.
    """

    def __init__(self) -> None:
        self._provider_locks: dict[Provider, asyncio.Lock] = {}

    @abstractmethod
    async def get(self, provider: Provider, role: TokenRole) -> str | None:
        """Return the stored value or None when absent."""

    @abstractmethod
    async def set(self, provider: Provider, role: TokenRole, value: str) -> None:
        """Persist ``value``, overwriting any previous one."""

    @abstractmethod
    async def clear(self, provider: Provider, role: TokenRole) -> None:
        """Remove a key; clearing an absent key succeeds."""

    async def clear_all(self, provider: Provider) -> None:
        for role in TokenRole:
            await self.clear(provider, role)

    @asynccontextmanager
    async def lock(self, provider: Provider) -> AsyncIterator[None]:
        """Serialize read-modify-write sequences for one provider."""
        lock = self._provider_locks.get(provider)
        if lock is None:
            lock = self._provider_locks[provider] = asyncio.Lock()
        async with lock:
            yield


async def load_credential(store: CredentialStore, provider: Provider) -> Credential | None:
    """Read the stored credential of a provider, or None without an access token."""
    access = await store.get(provider, TokenRole.ACCESS)
    if not access:
        return None
    return Credential(
        provider=provider,
        access_token=access,
        refresh_token=await store.get(provider, TokenRole.REFRESH),
        username=await store.get(provider, TokenRole.USERNAME),
    )


async def save_credential(store: CredentialStore, credential: Credential) -> None:
    """Persist a credential so it fully supersedes the previous one.

    Absent refresh token / username clear any stale value. Callers that need
    atomicity against concurrent refresh or logout hold ``store.lock``.
    """
    provider = credential.provider
    await store.set(provider, TokenRole.ACCESS, credential.access_token)
    if credential.refresh_token:
        await store.set(provider, TokenRole.REFRESH, credential.refresh_token)
    else:
        await store.clear(provider, TokenRole.REFRESH)
    if credential.username:
        await store.set(provider, TokenRole.USERNAME, credential.username)
    else:
        await store.clear(provider, TokenRole.USERNAME)
    logging.debug(
        f"💾 Credential stored provider={provider.value} refresh={'yes' if credential.refresh_token else 'no'}"
    )
