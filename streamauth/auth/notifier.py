"""Single-shot channel carrying the device code to the UI collaborator."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

CodeCallback = Callable[[str, str], Any]


class CodeReadyChannel:
    """Delivers ``(verification_uri, user_code)`` exactly once.

    ``send`` resolves the underlying future and invokes the optional callback;
    a second ``send`` raises RuntimeError. Consumers may instead ``await wait()``.
    """

    def __init__(self, callback: CodeCallback | None = None) -> None:
        self._callback = callback
        self._future: asyncio.Future[tuple[str, str]] | None = None
        self._value: tuple[str, str] | None = None

    @property
    def sent(self) -> bool:
        return self._value is not None

    def _get_future(self) -> asyncio.Future[tuple[str, str]]:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
            if self._value is not None:
                self._future.set_result(self._value)
        return self._future

    def send(self, verification_uri: str, user_code: str) -> None:
        """Publish the code pair.

        Raises:
            RuntimeError: If the channel has already been used.
        """
        if self._value is not None:
            raise RuntimeError("device code already delivered on this channel")
        self._value = (verification_uri, user_code)
        if self._future is not None and not self._future.done():
            self._future.set_result(self._value)
        if self._callback is not None:
            result = self._callback(verification_uri, user_code)
            if asyncio.iscoroutine(result):
                # Callbacks are expected to be synchronous; close stray coroutines.
                result.close()
                logging.warning("⚠️ Async code callback ignored; pass a sync callable or await wait()")

    async def wait(self) -> tuple[str, str]:
        """Wait for the code pair to be published."""
        return await self._get_future()


def as_channel(on_code_ready: CodeCallback | CodeReadyChannel | None) -> CodeReadyChannel:
    """Wrap a plain callback into a channel; channels pass through unchanged."""
    if isinstance(on_code_ready, CodeReadyChannel):
        return on_code_ready
    return CodeReadyChannel(on_code_ready)
