"""Domain types shared by the authorization flow, validator and request client."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class Provider(str, Enum):
    """External services that authenticate through the device-code grant.

    Attributes:
        TRAKT: Tracking service (watch lists, scrobbling).
        PREMIUMIZE: Debrid / stream-resolution service.
    """

    TRAKT = "trakt"
    PREMIUMIZE = "premiumize"

    def __str__(self) -> str:
        return self.value


class TokenRole(str, Enum):
    """Roles under which a provider's secrets are persisted."""

    ACCESS = "access_token"
    REFRESH = "refresh_token"
    USERNAME = "username"

    def key(self, provider: Provider | str) -> str:
        """Return the stable store key, e.g. ``trakt_access_token``."""
        return f"{Provider(provider).value}_{self.value}"


@dataclass(frozen=True)
class Credential:
    """The live credential of one provider.

    Attributes:
        provider: Provider the credential belongs to.
        access_token: Bearer token attached to API calls.
        refresh_token: Token for the refresh grant, if the provider issued one.
        obtained_at: When the token pair was issued; None when loaded from the store.
        username: Account name (tracking service only).
    """

    provider: Provider
    access_token: str
    refresh_token: str | None = None
    obtained_at: datetime | None = None
    username: str | None = None

    def with_username(self, username: str | None) -> Credential:
        return replace(self, username=username)

    def __repr__(self) -> str:  # never leak secrets through logs / tracebacks
        return (
            f"Credential(provider={self.provider.value!r}, "
            f"refresh={'yes' if self.refresh_token else 'no'}, "
            f"obtained_at={self.obtained_at!r}, username={self.username!r})"
        )


@dataclass
class DeviceAuthorizationSession:
    """Ephemeral state of one device-code attempt. Never persisted.

    ``expires_at`` is an absolute deadline on the flow's monotonic clock.
    """

    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    expires_at: float
    poll_interval_seconds: float

    def remaining(self, now: float) -> float:
        return self.expires_at - now


class PollOutcome(Enum):
    """Classification of a single token-poll response."""

    SUCCESS = "success"
    PENDING = "authorization_pending"
    SLOW_DOWN = "slow_down"
    DENIED = "access_denied"
    EXPIRED = "expired_token"
    ERROR = "error"


@dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


@dataclass
class AuthorizedRequest:
    """A single outbound provider API call.

    ``endpoint`` is relative to the provider's API base URL unless it is an
    absolute URL. ``retried`` marks a replay after a credential refresh and
    bounds authorization retries to exactly one.
    """

    method: str
    endpoint: str
    params: dict[str, Any] | None = None
    json_body: Any = None
    form: dict[str, Any] | None = None
    headers: dict[str, str] | None = None
    retried: bool = False

    def replay(self) -> AuthorizedRequest:
        return replace(self, retried=True)


@dataclass(frozen=True)
class ProviderResponse:
    """Decoded result of one HTTP round-trip.

    Attributes:
        status: HTTP status code.
        data: Parsed JSON body, or None when the body is empty or not JSON.
        headers: Response headers.
        text: Raw body text.
    """

    status: int
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json_object(self) -> dict[str, Any]:
        """Return the body as a dict, or an empty dict for any other shape."""
        return self.data if isinstance(self.data, dict) else {}


class CallState(Enum):
    """States of one logical authenticated call.

    INIT -> SENT -> (OK | UNAUTHORIZED); UNAUTHORIZED -> REFRESHING ->
    (RETRY_SENT -> (OK | FAIL) | AUTH_REQUIRED). OK, FAIL and AUTH_REQUIRED
    are terminal.
    """

    INIT = "init"
    SENT = "sent"
    OK = "ok"
    UNAUTHORIZED = "unauthorized"
    REFRESHING = "refreshing"
    RETRY_SENT = "retry_sent"
    FAIL = "fail"
    AUTH_REQUIRED = "auth_required"

    @property
    def terminal(self) -> bool:
        return self in (CallState.OK, CallState.FAIL, CallState.AUTH_REQUIRED)


@dataclass(frozen=True)
class CallResult:
    """Response of an authenticated call together with its final state."""

    response: ProviderResponse
    state: CallState
    attempts: int


class TokenOutcome(str, Enum):
    """Outcome of ensuring a valid access token.

    Attributes:
        VALID: Stored token accepted by the provider unchanged.
        REFRESHED: Token was exchanged through the refresh grant.
        FAILED: No usable token; authorization is required.
    """

    VALID = "valid"
    REFRESHED = "refreshed"
    FAILED = "failed"


@dataclass(frozen=True)
class TokenResult:
    """Result of a token validation or refresh operation."""

    outcome: TokenOutcome
    access_token: str | None
    refresh_token: str | None = None
