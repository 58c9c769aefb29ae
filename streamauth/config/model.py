from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..auth.models import Provider
from ..constants import DEFAULT_TOKEN_STORE_FILE


class ProviderSettings(BaseModel):
    """Registered application credentials for one provider.

    Attributes:
        client_id: OAuth client identifier issued by the provider.
        client_secret: OAuth client secret issued by the provider.
        folder_id: Cloud folder searched by the folder resolver (debrid only).
    """

    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1, repr=False)
    folder_id: str | None = None

    @field_validator("client_id", "client_secret", mode="before")
    @classmethod
    def strip_secret(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("folder_id", mode="before")
    @classmethod
    def empty_folder_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class AppConfig(BaseModel):
    """Top-level configuration.

    Attributes:
        providers: Registered application credentials keyed by provider.
        token_store_path: JSON file holding persisted credentials.
    """

    providers: dict[Provider, ProviderSettings] = Field(default_factory=dict)
    token_store_path: str = DEFAULT_TOKEN_STORE_FILE

    def settings_for(self, provider: Provider | str) -> ProviderSettings:
        """Return settings for a provider.

        Raises:
            KeyError: If the provider is not configured.
        """
        key = Provider(provider)
        try:
            return self.providers[key]
        except KeyError:
            raise KeyError(f"provider not configured: {key.value}") from None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AppConfig:
        return cls.model_validate(dict(data))
