"""Utility functions package for streamauth.

Exposed functions:
    format_duration: Formats time durations into human-readable strings.
    mask_token: Shortens a secret for safe logging.
    retry_async: Retries a coroutine on transient network errors.
"""

from .helpers import format_duration, mask_token
from .retry import RetryExhaustedError, retry_async

__all__ = ["format_duration", "mask_token", "retry_async", "RetryExhaustedError"]
