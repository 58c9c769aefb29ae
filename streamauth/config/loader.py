"""Configuration loading: JSON file plus environment overrides."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..auth.models import Provider
from ..constants import DEFAULT_CONFIG_FILE
from .model import AppConfig, ProviderSettings

# Environment variable names per provider field
_ENV_OVERRIDES: dict[Provider, dict[str, str]] = {
    Provider.TRAKT: {
        "client_id": "TRAKT_CLIENT_ID",
        "client_secret": "TRAKT_CLIENT_SECRET",
    },
    Provider.PREMIUMIZE: {
        "client_id": "PREMIUMIZE_CLIENT_ID",
        "client_secret": "PREMIUMIZE_CLIENT_SECRET",
        "folder_id": "PREMIUMIZE_FOLDER_ID",
    },
}


class ConfigLoader:
    """Loads the application configuration from a file and the environment."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self.environ = os.environ if environ is None else environ

    def load_raw(self, config_file: str) -> dict[str, Any]:
        """Load the raw JSON document; a missing or unreadable file yields ``{}``."""
        try:
            with open(os.path.expanduser(config_file), encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logging.debug(f"📁 No configuration file found path={config_file}")
            return {}
        except (OSError, ValueError) as e:
            logging.error(f"Configuration load error path={config_file} error={e}")
            return {}
        if not isinstance(data, dict):
            logging.error(f"Configuration root must be an object path={config_file}")
            return {}
        return data

    def load(self, config_file: str | None = None) -> AppConfig:
        """Build an AppConfig, skipping provider entries that fail validation.

        Args:
            config_file: Path to the JSON config; defaults to STREAMAUTH_CONF_FILE.

        Returns:
            The validated configuration (possibly with no providers).
        """
        path = config_file or self.environ.get("STREAMAUTH_CONF_FILE", DEFAULT_CONFIG_FILE)
        raw = self.load_raw(path)
        raw_providers = raw.get("providers", {})
        if not isinstance(raw_providers, dict):
            raw_providers = {}

        providers: dict[Provider, ProviderSettings] = {}
        for provider in Provider:
            entry = raw_providers.get(provider.value)
            merged = dict(entry) if isinstance(entry, dict) else {}
            merged.update(self._env_values(provider))
            if not merged:
                continue
            try:
                providers[provider] = ProviderSettings.model_validate(merged)
            except ValidationError as e:
                logging.warning(
                    f"⚠️ Invalid provider configuration skipped provider={provider.value} errors={e.error_count()}"
                )

        store_path = self.environ.get("STREAMAUTH_TOKEN_STORE") or raw.get("token_store_path")
        config_kwargs: dict[str, Any] = {"providers": providers}
        if isinstance(store_path, str) and store_path:
            config_kwargs["token_store_path"] = store_path
        config = AppConfig(**config_kwargs)
        logging.debug(
            f"⚙️ Configuration loaded providers={[p.value for p in config.providers]} path={path}"
        )
        return config

    def _env_values(self, provider: Provider) -> dict[str, str]:
        values: dict[str, str] = {}
        for field_name, env_name in _ENV_OVERRIDES[provider].items():
            value = self.environ.get(env_name)
            if value:
                values[field_name] = value
        return values


def load_config(config_file: str | None = None) -> AppConfig:
    """Load configuration using the process environment."""
    return ConfigLoader().load(config_file)
