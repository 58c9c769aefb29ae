"""Configuration package exports."""

from .loader import ConfigLoader, load_config
from .model import AppConfig, ProviderSettings

__all__ = ["AppConfig", "ConfigLoader", "ProviderSettings", "load_config"]
