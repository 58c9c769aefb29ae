"""Centralized internal error hierarchy.

These exceptions provide semantic categories for the authorization flow, the
validator and the request client. Raw aiohttp / JSON errors never leave the
core; they are wrapped into one of these kinds at the network boundary.

Classes:
  InternalError            – Base for all internal errors.
  NetworkError             – Transient network/IO issues (safe to retry).
  ParsingError             – Response body could not be decoded.
  RateLimitError           – Explicit rate limiting signalled by a provider.
  ProtocolError            – Malformed or unexpected provider response.
  AuthError                – Base for terminal authorization outcomes.
  AuthDenied               – The user rejected the grant.
  AuthTimeout              – The device code expired before completion.
  AuthRequired             – No valid credential and no recoverable refresh.
  AuthorizationInProgress  – A device-code flow is already running.
  StreamNotFound           – Stream resolution found no playable file.

Every error may carry ``provider`` and ``operation`` context in ``data`` so
the UI layer can show an actionable message.
"""

from __future__ import annotations

from collections.abc import Mapping


class InternalError(Exception):
    """Base class for all internal application errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
        provider: Provider the failure relates to, stored in ``data``.
        operation: Operation that was attempted, stored in ``data``.
    """

    data: dict[str, object]

    def __init__(
        self,
        message: str,
        *,
        data: Mapping[str, object] | None = None,
        provider: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}
        if provider is not None:
            self.data["provider"] = str(provider)
        if operation is not None:
            self.data["operation"] = operation

    @property
    def provider(self) -> str | None:
        value = self.data.get("provider")
        return str(value) if value is not None else None

    @property
    def operation(self) -> str | None:
        value = self.data.get("operation")
        return str(value) if value is not None else None


class NetworkError(InternalError):
    """Exception raised for network or transport layer errors.

    This includes connection timeouts, resets, DNS failures or unexpected
    server errors that may succeed on another attempt.
    """


class ParsingError(InternalError):
    """Exception raised when a response body cannot be decoded."""


class RateLimitError(InternalError):
    """Exception raised when a provider signals rate limiting (HTTP 429)."""


class ProtocolError(InternalError):
    """Exception raised for malformed or unexpected provider responses.

    Not retried automatically; the caller may offer a generic retry.
    """


class AuthError(InternalError):
    """Base class for terminal authorization outcomes.

    The remedy for every subclass is to run the device-code flow again.
    """


class AuthDenied(AuthError):
    """The user rejected the authorization request."""


class AuthTimeout(AuthError):
    """The device code expired before the user completed authorization."""


class AuthRequired(AuthError):
    """No valid credential is stored and it could not be refreshed."""


class AuthorizationInProgress(AuthError):
    """Raised when a device-code flow for the same provider is already running."""


class StreamNotFound(InternalError):
    """Raised when a stream resolver finds no playable file for a media reference."""


__all__ = [
    "InternalError",
    "NetworkError",
    "ParsingError",
    "RateLimitError",
    "ProtocolError",
    "AuthError",
    "AuthDenied",
    "AuthTimeout",
    "AuthRequired",
    "AuthorizationInProgress",
    "StreamNotFound",
]
