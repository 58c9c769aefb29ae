"""Retry utilities for asynchronous provider calls using Tenacity."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import NETWORK_RETRY_ATTEMPTS, NETWORK_RETRY_MAX_WAIT_SECONDS
from ..errors.internal import NetworkError

T = TypeVar("T")


class RetryExhaustedError(NetworkError):
    """Raised when every attempt of a retried operation failed on the network."""

    def __init__(
        self, message: str, attempts: int, final_exception: Exception | None = None
    ) -> None:
        data = dict(final_exception.data) if isinstance(final_exception, NetworkError) else {}
        data["attempts"] = attempts
        super().__init__(message, data=data)
        self.attempts = attempts
        self.final_exception = final_exception


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    context: str,
    sleep: Callable[[float], Awaitable[None]],
    max_attempts: int = NETWORK_RETRY_ATTEMPTS,
) -> T:
    """Retry an asynchronous operation on NetworkError with exponential backoff.

    Any other exception propagates immediately without further attempts.

    Args:
        operation: Zero-argument coroutine factory.
        context: Short description used in log messages.
        sleep: Coroutine used to wait between attempts (the injected clock).
        max_attempts: Maximum number of attempts.

    Returns:
        The result from operation if successful.

    Raises:
        RetryExhaustedError: If all attempts failed with NetworkError.
    """

    def before_sleep(retry_state) -> None:  # noqa: ANN001
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logging.info(
            f"🔄 Retrying {context} (attempt {retry_state.attempt_number + 1}/{max_attempts}) error={str(exc)}"
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, max=NETWORK_RETRY_MAX_WAIT_SECONDS),
        retry=retry_if_exception_type(NetworkError),
        before_sleep=before_sleep,
        sleep=sleep,
    )

    try:
        return await retrying(operation)
    except RetryError as e:
        final = e.last_attempt.exception()
        raise RetryExhaustedError(
            f"{context} failed after {max_attempts} attempts",
            attempts=max_attempts,
            final_exception=final if isinstance(final, Exception) else None,
        ) from final
