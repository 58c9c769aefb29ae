"""Error taxonomy and structured error handling helpers."""

from .internal import (
    AuthDenied,
    AuthError,
    AuthorizationInProgress,
    AuthRequired,
    AuthTimeout,
    InternalError,
    NetworkError,
    ParsingError,
    ProtocolError,
    RateLimitError,
    StreamNotFound,
)

__all__ = [
    "AuthDenied",
    "AuthError",
    "AuthorizationInProgress",
    "AuthRequired",
    "AuthTimeout",
    "InternalError",
    "NetworkError",
    "ParsingError",
    "ProtocolError",
    "RateLimitError",
    "StreamNotFound",
]
