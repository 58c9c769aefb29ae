"""Tracking service (Trakt) OAuth integration.

Trakt signals device-token poll state through the HTTP status code rather than
an ``error`` field, and names the verification URL ``verification_url``.
"""

from __future__ import annotations

from typing import Any

from ..auth.models import (
    AuthorizedRequest,
    PollOutcome,
    PollResult,
    Provider,
    ProviderResponse,
)
from .base import OAuthProvider, PreparedRequest

# Device token poll status codes documented by the provider
_POLL_STATUS = {
    400: (PollOutcome.PENDING, "authorization_pending"),
    404: (PollOutcome.ERROR, "invalid_device_code"),
    409: (PollOutcome.ERROR, "code_already_used"),
    410: (PollOutcome.EXPIRED, "expired_token"),
    418: (PollOutcome.DENIED, "access_denied"),
    429: (PollOutcome.SLOW_DOWN, "slow_down"),
}


class TraktProvider(OAuthProvider):
    name = Provider.TRAKT
    api_base_url = "https://api.trakt.tv"
    # Public OAuth endpoint, not a credential.
    token_url = "https://api.trakt.tv/oauth/token"  # nosec B105  # noqa: S105
    device_code_url = "https://api.trakt.tv/oauth/device/code"
    device_token_url = "https://api.trakt.tv/oauth/device/token"
    revoke_url = "https://api.trakt.tv/oauth/revoke"
    redirect_uri = "urn:ietf:wg:oauth:2.0:oob"
    api_version = "2"
    supports_revoke = True
    fetches_username = True

    def _json_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def device_code_request(self) -> PreparedRequest:
        return PreparedRequest(
            "POST",
            self.device_code_url,
            headers=self._json_headers(),
            json_body={"client_id": self.client_id},
        )

    def token_poll_request(self, device_code: str) -> PreparedRequest:
        return PreparedRequest(
            "POST",
            self.device_token_url,
            headers=self._json_headers(),
            json_body={
                "code": device_code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

    def refresh_request(self, refresh_token: str) -> PreparedRequest:
        return PreparedRequest(
            "POST",
            self.token_url,
            headers=self._json_headers(),
            json_body={
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "refresh_token",
            },
        )

    def revoke_request(self, access_token: str) -> PreparedRequest:
        return PreparedRequest(
            "POST",
            self.revoke_url,
            headers=self._json_headers(),
            json_body={
                "token": access_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

    def parse_device_code(self, response: ProviderResponse) -> dict[str, Any]:
        payload = response.json_object()
        if "verification_uri" not in payload and payload.get("verification_url"):
            payload = {**payload, "verification_uri": payload["verification_url"]}
            response = ProviderResponse(
                response.status, payload, response.headers, response.text
            )
        return super().parse_device_code(response)

    def classify_poll(self, response: ProviderResponse) -> PollResult:
        mapped = _POLL_STATUS.get(response.status)
        if mapped is None:
            return super().classify_poll(response)
        outcome, error = mapped
        return PollResult(outcome, response.json_object(), error)

    def authorize(self, request: AuthorizedRequest, access_token: str) -> PreparedRequest:
        headers = {
            "Content-Type": "application/json",
            "trakt-api-version": self.api_version,
            "trakt-api-key": self.client_id,
        }
        headers.update(request.headers or {})
        headers["Authorization"] = f"Bearer {access_token}"
        return PreparedRequest(
            request.method.upper(),
            self.api_url(request.endpoint),
            params=dict(request.params or {}),
            headers=headers,
            json_body=request.json_body,
            form=request.form,
        )

    def probe_request(self) -> AuthorizedRequest:
        return AuthorizedRequest("GET", "/users/settings")

    def identity_request(self) -> AuthorizedRequest:
        return AuthorizedRequest("GET", "/users/me")

    def extract_username(self, response: ProviderResponse) -> str | None:
        if not response.ok:
            return None
        payload = response.json_object()
        username = payload.get("username")
        if not username and isinstance(payload.get("user"), dict):
            username = payload["user"].get("username")
        return str(username) if username else None
