"""Structured error logging and transport error wrapping."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp

from ..logging_config import log_structured_error
from .internal import (
    AuthError,
    InternalError,
    NetworkError,
    ParsingError,
    ProtocolError,
    RateLimitError,
)

T = TypeVar("T")


def classify_error(error: BaseException) -> str:
    """Return the aggregation kind for an exception."""
    if isinstance(error, NetworkError | OSError | ConnectionError | aiohttp.ClientError):
        return "network"
    if isinstance(error, AuthError):
        return "auth"
    if isinstance(error, RateLimitError):
        return "ratelimit"
    if isinstance(error, ParsingError):
        return "parsing"
    if isinstance(error, ProtocolError):
        return "protocol"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"


def log_error(
    message: str,
    error: Exception,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error message with the associated exception details.

    Context carried in ``InternalError.data`` (provider, operation) is merged
    into the structured context.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
        level: Logging level.
    """
    merged: dict[str, Any] = {}
    if isinstance(error, InternalError):
        merged.update(error.data)
    if context:
        merged.update(context)
    log_structured_error(
        error_type=classify_error(error),
        message=f"{message}: {str(error)}",
        exception=error,
        context=merged or None,
        level=level,
    )


async def handle_api_error(
    operation: Callable[[], Awaitable[T]],
    context: str,
    *,
    provider: str | None = None,
) -> T:
    """Run a provider round-trip, translating transport failures into the taxonomy.

    Errors already in the taxonomy propagate untouched.

    Args:
        operation: The async operation to execute.
        context: Descriptive context for the operation (e.g., "trakt token poll").
        provider: Provider name recorded on the raised error.

    Returns:
        The result of the operation if successful.

    Raises:
        NetworkError: On connection problems and timeouts.
        ParsingError: When the response body cannot be decoded.
    """
    try:
        return await operation()
    except InternalError:
        raise
    except (aiohttp.ContentTypeError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParsingError(
            f"Unreadable response in {context}: {str(e)}",
            provider=provider,
            operation=context,
        ) from e
    except TimeoutError as e:
        raise NetworkError(
            f"Timeout in {context}", provider=provider, operation=context
        ) from e
    except (aiohttp.ClientError, OSError) as e:
        data: dict[str, object] = {"timestamp": time.time()}
        status = getattr(e, "status", None)
        if status is not None:
            data["http_status"] = status
        raise NetworkError(
            f"Network connectivity issue in {context}. Error: {str(e)}",
            data=data,
            provider=provider,
            operation=context,
        ) from e
