"""Provider integrations (tracking service and debrid service)."""

from .base import OAuthProvider, PreparedRequest
from .premiumize import PremiumizeProvider
from .registry import build_provider
from .trakt import TraktProvider

__all__ = [
    "OAuthProvider",
    "PreparedRequest",
    "PremiumizeProvider",
    "TraktProvider",
    "build_provider",
]
