"""In-process credential store."""

from __future__ import annotations

from ..auth.models import Provider, TokenRole
from .base import CredentialStore


class MemoryCredentialStore(CredentialStore):
    """Dict-backed store; contents live only as long as the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__()
        self._values: dict[str, str] = dict(initial or {})

    async def get(self, provider: Provider, role: TokenRole) -> str | None:
        return self._values.get(role.key(provider))

    async def set(self, provider: Provider, role: TokenRole, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("credential values must be strings")
        self._values[role.key(provider)] = value

    async def clear(self, provider: Provider, role: TokenRole) -> None:
        self._values.pop(role.key(provider), None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._values)
