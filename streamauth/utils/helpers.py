"""General utility helper functions."""

from __future__ import annotations

__all__ = ["format_duration", "mask_token"]


def format_duration(total_seconds: int | float | None) -> str:
    """Return a human-friendly Hh Mm Ss string for a duration in seconds.

    Examples:
      65 -> "1m 5s"
      3605 -> "1h 0m 5s"
      59 -> "59s"
    """
    if total_seconds is None:
        return "unknown"
    seconds = int(total_seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, sec = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {sec}s"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h {minutes}m {sec}s"
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h {minutes}m {sec}s"


def mask_token(token: str | None, visible: int = 6) -> str:
    """Return a loggable form of a secret: its first characters and an ellipsis."""
    if not token:
        return "<none>"
    if len(token) <= visible:
        return "*" * len(token)
    return f"{token[:visible]}..."
