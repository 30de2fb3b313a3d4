"""Tests for the provider SDK loader (oEmbed over httpx)."""

import asyncio

import httpx
import pytest

from linguapath.courses.models import VideoProvider
from linguapath.video.errors import PlayerError, PlayerErrorCategory, PlayerInitError
from linguapath.video.sdk import ProviderSDKLoader


ENDPOINTS = {
    VideoProvider.YOUTUBE: "https://oembed.test/youtube",
    VideoProvider.VIMEO: "https://oembed.test/vimeo",
}

OEMBED = {
    "title": "Ordering coffee in Madrid",
    "author_name": "LinguaPath",
    "duration": 312,
    "thumbnail_url": "https://i.vimeocdn.com/video/1.jpg",
}


def make_loader(handler, **kwargs) -> tuple[ProviderSDKLoader, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    async def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return await handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording))
    options = {"timeout_seconds": 1.0, "retry_delay_seconds": 0, **kwargs}
    return ProviderSDKLoader(client, ENDPOINTS, **options), requests


def responses(*items):
    """Handler answering with the given responses in order."""
    queue = list(items)

    async def handler(request: httpx.Request) -> httpx.Response:
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return handler


@pytest.mark.asyncio
async def test_load_returns_metadata() -> None:
    loader, requests = make_loader(responses(httpx.Response(200, json=OEMBED)))

    metadata = await loader.load(VideoProvider.VIMEO, "76979871")

    assert metadata.title == "Ordering coffee in Madrid"
    assert metadata.duration == 312
    assert requests[0].url.params["url"] == "https://vimeo.com/76979871"
    assert requests[0].url.params["format"] == "json"


@pytest.mark.asyncio
async def test_server_errors_are_retried() -> None:
    loader, requests = make_loader(
        responses(
            httpx.Response(503),
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json=OEMBED),
        )
    )

    metadata = await loader.load(VideoProvider.YOUTUBE, "dQw4w9WgXcQ")

    assert metadata.provider == VideoProvider.YOUTUBE
    assert len(requests) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts() -> None:
    loader, requests = make_loader(
        responses(httpx.Response(500), httpx.Response(502)), max_attempts=2
    )

    with pytest.raises(PlayerInitError) as exc_info:
        await loader.load(VideoProvider.YOUTUBE, "dQw4w9WgXcQ")

    assert "2 attempts" in exc_info.value.message
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_timeout_is_retried_then_fails() -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json=OEMBED)

    loader, requests = make_loader(slow, timeout_seconds=0.01, max_attempts=2)

    with pytest.raises(PlayerInitError) as exc_info:
        await loader.load(VideoProvider.VIMEO, "76979871")

    assert "timed out" in exc_info.value.message
    assert len(requests) == 2


@pytest.mark.parametrize(
    ("provider", "status", "category"),
    [
        (VideoProvider.YOUTUBE, 401, PlayerErrorCategory.EMBED_DISABLED),
        (VideoProvider.YOUTUBE, 403, PlayerErrorCategory.PRIVATE),
        (VideoProvider.YOUTUBE, 404, PlayerErrorCategory.NOT_FOUND),
        (VideoProvider.VIMEO, 401, PlayerErrorCategory.PASSWORD_PROTECTED),
        (VideoProvider.VIMEO, 451, PlayerErrorCategory.REGION_LOCKED),
        (VideoProvider.VIMEO, 418, PlayerErrorCategory.UNKNOWN),
    ],
)
@pytest.mark.asyncio
async def test_refusals_are_not_retried(
    provider: VideoProvider, status: int, category: PlayerErrorCategory
) -> None:
    loader, requests = make_loader(responses(httpx.Response(status)))
    video_id = "dQw4w9WgXcQ" if provider == VideoProvider.YOUTUBE else "76979871"

    with pytest.raises(PlayerError) as exc_info:
        await loader.load(provider, video_id)

    assert exc_info.value.category == category
    assert exc_info.value.native_code == status
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_invalid_json_is_retried() -> None:
    loader, requests = make_loader(
        responses(httpx.Response(200, content=b"<html>"), httpx.Response(200, json=OEMBED))
    )

    metadata = await loader.load(VideoProvider.VIMEO, "76979871")

    assert metadata.title == OEMBED["title"]
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_non_object_json_is_retried() -> None:
    loader, requests = make_loader(
        responses(httpx.Response(200, json=["not", "oembed"]), httpx.Response(200, json=OEMBED))
    )

    metadata = await loader.load(VideoProvider.YOUTUBE, "dQw4w9WgXcQ")

    assert metadata.title == OEMBED["title"]
    assert len(requests) == 2
