"""Provider construction from configuration."""

from __future__ import annotations

from ..auth.models import Provider
from ..config.model import AppConfig
from .base import OAuthProvider
from .premiumize import PremiumizeProvider
from .trakt import TraktProvider

PROVIDER_CLASSES: dict[Provider, type[OAuthProvider]] = {
    Provider.TRAKT: TraktProvider,
    Provider.PREMIUMIZE: PremiumizeProvider,
}


def build_provider(config: AppConfig, provider: Provider | str) -> OAuthProvider:
    """Instantiate the integration for ``provider`` with its configured settings.

    Raises:
        KeyError: If the provider is not configured.
    """
    key = Provider(provider)
    return PROVIDER_CLASSES[key](config.settings_for(key))
