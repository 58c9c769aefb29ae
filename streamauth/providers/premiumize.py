"""Debrid service (Premiumize) OAuth integration.

Form-encoded token endpoint; the access token travels as the ``access_token``
query parameter and API failures are reported as ``{"status": "error"}``.
"""

from __future__ import annotations

from ..auth.models import AuthorizedRequest, Provider, ProviderResponse
from .base import OAuthProvider, PreparedRequest

_AUTH_FAILURE_HINTS = ("login", "logged in", "token", "auth", "unauthorized")


class PremiumizeProvider(OAuthProvider):
    name = Provider.PREMIUMIZE
    api_base_url = "https://www.premiumize.me/api"
    # Public OAuth endpoint, not a credential.
    token_url = "https://www.premiumize.me/token"  # nosec B105  # noqa: S105

    def device_code_request(self) -> PreparedRequest:
        return PreparedRequest(
            "POST",
            self.token_url,
            form={"client_id": self.client_id, "response_type": "device_code"},
        )

    def token_poll_request(self, device_code: str) -> PreparedRequest:
        return PreparedRequest(
            "POST",
            self.token_url,
            form={
                "code": device_code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "device_code",
            },
        )

    def refresh_request(self, refresh_token: str) -> PreparedRequest:
        return PreparedRequest(
            "POST",
            self.token_url,
            form={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )

    def authorize(self, request: AuthorizedRequest, access_token: str) -> PreparedRequest:
        params = dict(request.params or {})
        params["access_token"] = access_token
        return PreparedRequest(
            request.method.upper(),
            self.api_url(request.endpoint),
            params=params,
            headers=dict(request.headers or {}),
            json_body=request.json_body,
            form=request.form,
        )

    def probe_request(self) -> AuthorizedRequest:
        return AuthorizedRequest("GET", "/account/info")

    def probe_succeeded(self, response: ProviderResponse) -> bool:
        return response.ok and response.json_object().get("status") == "success"

    def is_auth_failure(self, response: ProviderResponse) -> bool:
        if response.status == 401:
            return True
        payload = response.json_object()
        if response.ok and payload.get("status") == "error":
            message = str(payload.get("message", "")).lower()
            return any(hint in message for hint in _AUTH_FAILURE_HINTS)
        return False
