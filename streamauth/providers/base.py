"""Provider contract for the device authorization grant (RFC 8628).

A provider only describes requests and classifies responses; it never performs
I/O. The authorization flow, validator and request client drive the HTTP
round-trips through :mod:`streamauth.providers.transport`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

from ..auth.models import (
    AuthorizedRequest,
    PollOutcome,
    PollResult,
    Provider,
    ProviderResponse,
)
from ..config.model import ProviderSettings
from ..errors.internal import ProtocolError

_POLL_ERRORS = {
    "authorization_pending": PollOutcome.PENDING,
    "slow_down": PollOutcome.SLOW_DOWN,
    "access_denied": PollOutcome.DENIED,
    "expired_token": PollOutcome.EXPIRED,
}

# Query parameters never written to logs
_SECRET_PARAMS = {"access_token", "client_secret", "refresh_token", "code", "token"}


@dataclass
class PreparedRequest:
    """Fully resolved HTTP request (absolute URL, headers, body)."""

    method: str
    url: str
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    json_body: Any = None
    form: dict[str, Any] | None = None

    def log_url(self) -> str:
        if not self.params:
            return self.url
        shown = ", ".join(
            f"{k}={'***' if k in _SECRET_PARAMS else v}" for k, v in self.params.items()
        )
        return f"{self.url} [{shown}]"


class OAuthProvider(ABC):
    """Describes one provider's OAuth endpoints, field sets and signals.

    Subclasses set ``name``, ``api_base_url`` and ``token_url`` and implement
    the request builders whose field sets are mandated by the provider.
    """

    name: Provider
    api_base_url: str
    token_url: str
    supports_revoke: bool = False
    fetches_username: bool = False

    def __init__(self, settings: ProviderSettings) -> None:
        self.settings = settings

    @property
    def client_id(self) -> str:
        return self.settings.client_id

    @property
    def client_secret(self) -> str:
        return self.settings.client_secret

    # ---- device authorization grant ----
    @abstractmethod
    def device_code_request(self) -> PreparedRequest:
        """Request issuing a device/user code pair."""

    @abstractmethod
    def token_poll_request(self, device_code: str) -> PreparedRequest:
        """Request polled until the user completes authorization."""

    @abstractmethod
    def refresh_request(self, refresh_token: str) -> PreparedRequest:
        """Request exchanging a refresh token for a new token pair."""

    def revoke_request(self, access_token: str) -> PreparedRequest | None:
        """Server-side revocation request; None when unsupported."""
        return None

    def parse_device_code(self, response: ProviderResponse) -> dict[str, Any]:
        """Validate a device-code response and normalize its field names.

        Raises:
            ProtocolError: On non-2xx status or missing mandatory fields.
        """
        payload = response.json_object()
        if not response.ok:
            raise ProtocolError(
                f"Device code request rejected (status={response.status}) error={payload.get('error') or payload.get('message')}",
                data={"http_status": response.status},
                provider=self.name,
                operation="device_code",
            )
        missing = [
            key
            for key in ("device_code", "user_code", "verification_uri")
            if not payload.get(key)
        ]
        if missing:
            raise ProtocolError(
                f"Device code response missing fields: {', '.join(missing)}",
                provider=self.name,
                operation="device_code",
            )
        return payload

    def classify_poll(self, response: ProviderResponse) -> PollResult:
        """Map one poll response onto a PollOutcome using the RFC 8628 ``error`` field."""
        payload = response.json_object()
        if response.ok and not payload.get("error"):
            if payload.get("access_token"):
                return PollResult(PollOutcome.SUCCESS, payload)
            return PollResult(PollOutcome.ERROR, payload, "missing_access_token")
        error = str(payload.get("error") or payload.get("message") or "unknown")
        outcome = _POLL_ERRORS.get(error, PollOutcome.ERROR)
        if outcome is PollOutcome.ERROR and response.status == 429:
            return PollResult(PollOutcome.SLOW_DOWN, payload, "slow_down")
        return PollResult(outcome, payload, error)

    # ---- authenticated API access ----
    def api_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return urljoin(self.api_base_url.rstrip("/") + "/", endpoint.lstrip("/"))

    @abstractmethod
    def authorize(self, request: AuthorizedRequest, access_token: str) -> PreparedRequest:
        """Resolve an API request with the access token attached."""

    @abstractmethod
    def probe_request(self) -> AuthorizedRequest:
        """Lightweight call that succeeds only for a live access token."""

    def probe_succeeded(self, response: ProviderResponse) -> bool:
        return response.ok

    def is_auth_failure(self, response: ProviderResponse) -> bool:
        """Whether a response means the access token was not accepted."""
        return response.status == 401

    def identity_request(self) -> AuthorizedRequest | None:
        """Identity lookup returning the account username; None when unsupported."""
        return None

    def extract_username(self, response: ProviderResponse) -> str | None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(client_id={self.client_id!r})"
