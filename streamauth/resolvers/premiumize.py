"""Resolve playable links from a folder in the debrid service's cloud storage."""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from ..auth.models import AuthorizedRequest, ProviderResponse
from ..errors.internal import ProtocolError, StreamNotFound
from .base import MediaRef

VIDEO_FILE_RE = re.compile(r"\.(mp4|mkv|avi)$", re.IGNORECASE)

CallFn = Callable[[AuthorizedRequest], Awaitable[ProviderResponse]]


class PremiumizeFolderResolver:
    """Lists a cloud folder and returns the link of the matching video file.

    Args:
        call: Authenticated call function bound to the debrid provider.
        folder_id: Cloud folder to search.
    """

    def __init__(self, call: CallFn, folder_id: str) -> None:
        if not folder_id:
            raise ValueError("folder_id required")
        self._call = call
        self.folder_id = folder_id

    async def resolve_stream_url(self, media_ref: MediaRef) -> str:
        """Return the direct link of the first video file matching ``media_ref``.

        Raises:
            ProtocolError: The folder listing failed.
            StreamNotFound: No video file matched.
            AuthRequired: The debrid credential is missing or unrecoverable.
        """
        response = await self._call(
            AuthorizedRequest("GET", "/folder/list", params={"id": self.folder_id})
        )
        payload = response.json_object()
        if not response.ok or payload.get("status") != "success":
            raise ProtocolError(
                f"Failed to list folder: {payload.get('message', response.status)}",
                data={"http_status": response.status},
                provider="premiumize",
                operation="folder_list",
            )

        files: list[dict[str, Any]] = [
            f for f in payload.get("content") or [] if isinstance(f, dict)
        ]
        tag = media_ref.episode_tag
        for item in files:
            name = str(item.get("name", ""))
            if not VIDEO_FILE_RE.search(name):
                continue
            if tag and tag.lower() not in name.lower():
                continue
            link = item.get("link") or item.get("stream_link")
            if link:
                logging.info(f"🎬 Stream resolved title={media_ref.title} file={name}")
                return str(link)

        logging.info(
            f"🔍 No playable file title={media_ref.title} tag={tag or '-'} candidates={len(files)}"
        )
        raise StreamNotFound(
            f"No playable video file found for {media_ref.title} {tag}".strip(),
            provider="premiumize",
            operation="resolve_stream_url",
        )
