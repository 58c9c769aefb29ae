"""
Configuration constants for the streamauth token lifecycle.

This module contains all tunables used by the authorization flow, validator
and request client. Each constant can be overridden by setting an environment
variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# HTTP
HTTP_REQUEST_TIMEOUT_SECONDS = _get_env_float(
    "HTTP_REQUEST_TIMEOUT_SECONDS", 15.0
)  # Total timeout for a single provider round-trip

# Device code polling
DEVICE_FLOW_DEFAULT_POLL_INTERVAL = _get_env_int(
    "DEVICE_FLOW_DEFAULT_POLL_INTERVAL", 5
)  # Used when the provider omits `interval`
DEVICE_FLOW_SLOW_DOWN_INCREMENT = _get_env_int(
    "DEVICE_FLOW_SLOW_DOWN_INCREMENT", 2
)  # Seconds added to the poll interval on each slow_down signal
DEVICE_FLOW_MAX_POLL_NETWORK_ERRORS = _get_env_int(
    "DEVICE_FLOW_MAX_POLL_NETWORK_ERRORS", 3
)  # Consecutive transport failures tolerated while polling
DEVICE_FLOW_PENDING_LOG_EVERY = _get_env_int(
    "DEVICE_FLOW_PENDING_LOG_EVERY", 6
)  # Log a waiting message every N pending polls

# Network retries (device code request, probe, refresh exchange)
NETWORK_RETRY_ATTEMPTS = _get_env_int("NETWORK_RETRY_ATTEMPTS", 3)
NETWORK_RETRY_MAX_WAIT_SECONDS = _get_env_float(
    "NETWORK_RETRY_MAX_WAIT_SECONDS", 8.0
)  # Ceiling for exponential backoff between attempts

# Files
DEFAULT_CONFIG_FILE = os.getenv("STREAMAUTH_CONF_FILE", "streamauth.conf")
DEFAULT_TOKEN_STORE_FILE = os.getenv(
    "STREAMAUTH_TOKEN_STORE", "~/.config/streamauth/tokens.json"
)
