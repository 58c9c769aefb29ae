"""Stream resolver interface."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class MediaKind(str, Enum):
    MOVIE = "movie"
    SHOW = "show"


@dataclass(frozen=True)
class MediaRef:
    """Reference to the content to play.

    Attributes:
        title: Human-readable title, used for logging and matching.
        kind: Movie or show.
        season: Season number (shows only).
        episode: Episode number (shows only).
    """

    title: str
    kind: MediaKind = MediaKind.MOVIE
    season: int | None = None
    episode: int | None = None

    @property
    def episode_tag(self) -> str:
        """``S01E02`` style tag, or an empty string when not an episode."""
        if self.kind is not MediaKind.SHOW or self.season is None or self.episode is None:
            return ""
        return f"S{self.season:02d}E{self.episode:02d}"


class StreamResolver(Protocol):
    async def resolve_stream_url(self, media_ref: MediaRef) -> str: ...
