"""Device-code OAuth authentication and token lifecycle for media providers."""

__version__ = "0.1.0"
