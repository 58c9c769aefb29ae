"""
Logging setup for streamauth.

colorlog console output, a filter that masks credentials before anything is
emitted, and an aggregator that counts failures per error kind and provider
so a CLI run can end with a short report.
"""

from __future__ import annotations

import atexit
import logging
import os
import re
import sys
import threading
import time
from collections import Counter, defaultdict
from typing import Any

import colorlog

# access_token=..., refresh_token: "...", "Bearer ..." and similar
_SECRET_PATTERNS = (
    re.compile(
        r"(?P<key>(?:access_token|refresh_token|device_code|client_secret|code)"
        r"[\"']?\s*[=:]\s*[\"']?)(?P<value>[A-Za-z0-9._~+/-]{8,})"
    ),
    re.compile(r"(?P<key>Bearer\s+)(?P<value>[A-Za-z0-9._~+/-]{8,})"),
)


def redact_secrets(text: str) -> str:
    """Replace credential values in ``text`` with ``***``."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: f"{m.group('key')}***", text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Masks tokens in the rendered message of every record passing through."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class ErrorAggregator:
    """Counts failures per error kind and per provider for the exit report."""

    def __init__(self, max_per_kind: int = 50) -> None:
        self.errors: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.by_provider: Counter[str] = Counter()
        self.lock = threading.Lock()
        self.started_at = time.time()
        self.max_per_kind = max_per_kind

    def record_error(
        self, error_type: str, message: str, context: dict[str, Any] | None = None
    ) -> None:
        context = context or {}
        provider = str(context.get("provider") or "-")
        with self.lock:
            entries = self.errors[error_type]
            entries.append({"timestamp": time.time(), "message": message, "context": context})
            if len(entries) > self.max_per_kind:
                del entries[: len(entries) - self.max_per_kind]
            self.by_provider[provider] += 1

    def get_error_summary(self) -> dict[str, Any]:
        """Return ``{kind: {total_count, last_occurrence}}`` plus ``by_provider`` counts."""
        with self.lock:
            kinds = {
                error_type: {
                    "total_count": len(occurrences),
                    "last_occurrence": occurrences[-1] if occurrences else None,
                }
                for error_type, occurrences in self.errors.items()
            }
            if not kinds:
                return {}
            return {"kinds": kinds, "by_provider": dict(self.by_provider)}

    def reset(self) -> None:
        with self.lock:
            self.errors.clear()
            self.by_provider.clear()
            self.started_at = time.time()

    def log_summary_report(self) -> None:
        summary = self.get_error_summary()
        if not summary:
            logging.debug("No errors recorded in current session")
            return

        providers = ", ".join(f"{p}={n}" for p, n in sorted(summary["by_provider"].items()))
        logging.warning(f"🚨 Error summary providers=[{providers}]")
        for error_type, stats in summary["kinds"].items():
            last = stats["last_occurrence"]
            logging.warning(
                f"  {error_type}: {stats['total_count']} total, last: {last['message'] if last else '-'}"
            )


error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error with its kind and context, and record it in the aggregator.

    Args:
        error_type: Kind from the error taxonomy (e.g. 'network', 'auth').
        message: Descriptive error message.
        exception: The exception that occurred (optional).
        context: Provider, operation and other debugging data.
        level: Logging level (default: ERROR).
    """
    structured_message = f"[{error_type.upper()}] {message}"
    if exception:
        structured_message += f" | {type(exception).__name__}"
    if context:
        structured_message += " | " + " ".join(f"{k}={v}" for k, v in context.items())

    logging.log(level, structured_message)
    error_aggregator.record_error(error_type, message, context)


def resolve_log_level(environ: dict[str, str] | None = None) -> int:
    """Level from STREAMAUTH_LOG_LEVEL, else DEBUG=true/1/yes, else INFO."""
    env = os.environ if environ is None else environ
    named = env.get("STREAMAUTH_LOG_LEVEL", "").strip().upper()
    if named:
        level = logging.getLevelName(named)
        if isinstance(level, int):
            return level
    if env.get("DEBUG", "").lower() in ("true", "1", "yes"):
        return logging.DEBUG
    return logging.INFO


class LoggerConfigurator:
    """Installs the colorlog console handler on the root logger."""

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self.environ = environ

    def configure(self) -> None:
        log_level = resolve_log_level(self.environ)

        formatter = colorlog.ColoredFormatter(
            "%(log_color)s%(levelname).1s%(reset)s %(asctime)s %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "blue",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        handler.addFilter(SecretRedactingFilter())

        root_logger = logging.getLogger()
        root_logger.handlers[:] = [handler]
        root_logger.setLevel(log_level)

        # aiohttp debug output may include URLs with tokens
        logging.getLogger("aiohttp").setLevel(logging.WARNING)

        atexit.register(error_aggregator.log_summary_report)
