"""Device Code Flow implementation (OAuth 2.0 Device Authorization Grant)."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ..constants import (
    DEVICE_FLOW_DEFAULT_POLL_INTERVAL,
    DEVICE_FLOW_MAX_POLL_NETWORK_ERRORS,
    DEVICE_FLOW_PENDING_LOG_EVERY,
    DEVICE_FLOW_SLOW_DOWN_INCREMENT,
)
from ..errors.internal import AuthDenied, AuthTimeout, NetworkError, ProtocolError
from ..providers.base import OAuthProvider
from ..providers.transport import send
from ..utils import format_duration, retry_async
from .clock import Clock
from .models import DeviceAuthorizationSession, PollOutcome
from .notifier import CodeReadyChannel


class DeviceCodeFlow:
    """Runs one device authorization attempt against a provider.

    The flow requests a code pair, publishes it once on a CodeReadyChannel and
    polls the token endpoint sequentially, never faster than the provider's
    interval. Every wait goes through the injected clock.
    """

    def __init__(
        self,
        provider: OAuthProvider,
        http_session: aiohttp.ClientSession,
        clock: Clock,
        *,
        slow_down_increment: float = DEVICE_FLOW_SLOW_DOWN_INCREMENT,
        max_network_errors: int = DEVICE_FLOW_MAX_POLL_NETWORK_ERRORS,
    ) -> None:
        self.provider = provider
        self.session = http_session
        self.clock = clock
        self.slow_down_increment = slow_down_increment
        self.max_network_errors = max_network_errors
        self.poll_count = 0

    @property
    def name(self) -> str:
        return self.provider.name.value

    async def request_device_code(self) -> DeviceAuthorizationSession:
        """Request a device code from the provider.

        Returns:
            A fresh DeviceAuthorizationSession.

        Raises:
            ProtocolError: If the response is rejected or incomplete.
            NetworkError: If the provider could not be reached.
        """

        async def operation():  # noqa: ANN202
            return await send(
                self.session,
                self.provider.device_code_request(),
                provider=self.name,
                context=f"{self.name} device code request",
            )

        response = await retry_async(
            operation, context=f"{self.name} device code request", sleep=self.clock.sleep
        )
        payload = self.provider.parse_device_code(response)
        expires_in = self._positive_number(payload.get("expires_in"), "expires_in")
        interval = payload.get("interval")
        poll_interval = (
            self._positive_number(interval, "interval")
            if interval is not None
            else DEVICE_FLOW_DEFAULT_POLL_INTERVAL
        )
        session = DeviceAuthorizationSession(
            device_code=str(payload["device_code"]),
            user_code=str(payload["user_code"]),
            verification_uri=str(payload["verification_uri"]),
            expires_in=int(expires_in),
            expires_at=self.clock.monotonic() + expires_in,
            poll_interval_seconds=poll_interval,
        )
        logging.info(
            f"🔑 Device code retrieved provider={self.name} interval={poll_interval}s expires_in={format_duration(expires_in)}"
        )
        return session

    def _positive_number(self, value: Any, field: str) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = 0.0
        if number <= 0:
            raise ProtocolError(
                f"Device code response has invalid {field}={value!r}",
                provider=self.name,
                operation="device_code",
            )
        return number

    async def poll_for_tokens(self, auth_session: DeviceAuthorizationSession) -> dict[str, Any]:
        """Poll until the user authorizes, denies, or the code expires.

        Args:
            auth_session: Session returned by request_device_code.

        Returns:
            The token response payload (contains ``access_token``).

        Raises:
            AuthDenied: The user rejected the request.
            AuthTimeout: ``expires_in`` elapsed before completion.
            ProtocolError: Any other provider error.
            NetworkError: Too many consecutive transport failures.
        """
        started = self.clock.monotonic()
        network_errors = 0
        self.poll_count = 0

        while True:
            now = self.clock.monotonic()
            if auth_session.remaining(now) <= 0:
                logging.error(
                    f"⌛ Device code expired after {format_duration(now - started)} provider={self.name} polls={self.poll_count}"
                )
                raise AuthTimeout(
                    f"Authorization timed out after {format_duration(auth_session.expires_in)}",
                    data={"polls": self.poll_count},
                    provider=self.name,
                    operation="device_token_poll",
                )

            self.poll_count += 1
            try:
                response = await send(
                    self.session,
                    self.provider.token_poll_request(auth_session.device_code),
                    provider=self.name,
                    context=f"{self.name} device token poll",
                )
            except NetworkError as e:
                network_errors += 1
                if network_errors > self.max_network_errors:
                    logging.error(
                        f"💥 Polling aborted after {network_errors} network errors provider={self.name}"
                    )
                    raise
                logging.warning(
                    f"⚠️ Network error while polling provider={self.name} consecutive={network_errors} error={str(e)}"
                )
                await self._wait(auth_session)
                continue
            network_errors = 0

            result = self.provider.classify_poll(response)
            elapsed = self.clock.monotonic() - started

            if result.outcome is PollOutcome.SUCCESS:
                logging.info(
                    f"✅ Authorized after {format_duration(elapsed)} provider={self.name} polls={self.poll_count}"
                )
                return result.payload

            if result.outcome is PollOutcome.PENDING:
                if self.poll_count % DEVICE_FLOW_PENDING_LOG_EVERY == 0:
                    logging.info(
                        f"⏳ Waiting for authorization {format_duration(elapsed)} elapsed provider={self.name} polls={self.poll_count}"
                    )
            elif result.outcome is PollOutcome.SLOW_DOWN:
                auth_session.poll_interval_seconds += self.slow_down_increment
                logging.warning(
                    f"🐢 Provider requested slower polling interval={auth_session.poll_interval_seconds}s provider={self.name}"
                )
            elif result.outcome is PollOutcome.DENIED:
                logging.warning(f"🚫 User denied access provider={self.name} polls={self.poll_count}")
                raise AuthDenied(
                    "Authorization was denied by the user",
                    provider=self.name,
                    operation="device_token_poll",
                )
            elif result.outcome is PollOutcome.EXPIRED:
                logging.error(f"⌛ Provider reports expired device code provider={self.name}")
                raise AuthTimeout(
                    "Device code expired",
                    data={"polls": self.poll_count},
                    provider=self.name,
                    operation="device_token_poll",
                )
            else:
                logging.error(
                    f"💥 Device flow error provider={self.name} status={response.status} error={result.error}"
                )
                raise ProtocolError(
                    f"Unexpected device token response: {result.error}",
                    data={"http_status": response.status, "error": result.error},
                    provider=self.name,
                    operation="device_token_poll",
                )

            await self._wait(auth_session)

    async def _wait(self, auth_session: DeviceAuthorizationSession) -> None:
        remaining = auth_session.remaining(self.clock.monotonic())
        if remaining <= 0:
            return
        await self.clock.sleep(min(auth_session.poll_interval_seconds, remaining))

    async def run(self, channel: CodeReadyChannel) -> dict[str, Any]:
        """Complete one device code flow and return the token payload.

        Orchestrates the three steps: request a device code, publish it on the
        channel exactly once, and poll for authorization completion.
        """
        auth_session = await self.request_device_code()
        logging.info(
            f"👉 Open {auth_session.verification_uri} and enter code {auth_session.user_code} provider={self.name}"
        )
        channel.send(auth_session.verification_uri, auth_session.user_code)
        return await self.poll_for_tokens(auth_session)
