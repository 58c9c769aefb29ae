"""
Unit tests for PremiumizeFolderResolver.
"""

import pytest

from streamauth.auth.models import AuthorizedRequest, ProviderResponse
from streamauth.errors.internal import ProtocolError, StreamNotFound
from streamauth.resolvers.base import MediaKind, MediaRef
from streamauth.resolvers.premiumize import PremiumizeFolderResolver

FOLDER = {
    "status": "success",
    "content": [
        {"name": "notes.txt", "link": "https://dl/notes.txt"},
        {"name": "Show.S01E01.mkv", "link": "https://dl/s01e01.mkv"},
        {"name": "Show.s01e02.MP4", "stream_link": "https://stream/s01e02"},
        {"name": "Movie.2020.avi", "link": "https://dl/movie.avi"},
    ],
}


class _Caller:
    def __init__(self, response: ProviderResponse) -> None:
        self.response = response
        self.requests: list[AuthorizedRequest] = []

    async def __call__(self, request: AuthorizedRequest) -> ProviderResponse:
        self.requests.append(request)
        return self.response


def test_episode_tag():
    assert MediaRef("Show", MediaKind.SHOW, 1, 2).episode_tag == "S01E02"
    assert MediaRef("Movie").episode_tag == ""


def test_folder_id_required():
    with pytest.raises(ValueError):
        PremiumizeFolderResolver(_Caller(ProviderResponse(200, FOLDER)), "")


@pytest.mark.asyncio
async def test_resolves_episode_by_tag():
    caller = _Caller(ProviderResponse(200, FOLDER))
    resolver = PremiumizeFolderResolver(caller, "folder123")

    url = await resolver.resolve_stream_url(MediaRef("Show", MediaKind.SHOW, 1, 2))

    assert url == "https://stream/s01e02"
    assert caller.requests[0].endpoint == "/folder/list"
    assert caller.requests[0].params == {"id": "folder123"}


@pytest.mark.asyncio
async def test_movie_takes_first_video_file():
    resolver = PremiumizeFolderResolver(_Caller(ProviderResponse(200, FOLDER)), "folder123")

    assert await resolver.resolve_stream_url(MediaRef("Movie")) == "https://dl/s01e01.mkv"


@pytest.mark.asyncio
async def test_no_match_raises_stream_not_found():
    resolver = PremiumizeFolderResolver(_Caller(ProviderResponse(200, FOLDER)), "folder123")

    with pytest.raises(StreamNotFound):
        await resolver.resolve_stream_url(MediaRef("Show", MediaKind.SHOW, 2, 1))


@pytest.mark.asyncio
async def test_failed_listing_raises_protocol_error():
    response = ProviderResponse(200, {"status": "error", "message": "Folder not found"})
    resolver = PremiumizeFolderResolver(_Caller(response), "folder123")

    with pytest.raises(ProtocolError) as exc_info:
        await resolver.resolve_stream_url(MediaRef("Movie"))
    assert "Folder not found" in str(exc_info.value)
