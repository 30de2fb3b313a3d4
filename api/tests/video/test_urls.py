"""Tests for video URL parsing."""

import pytest

from linguapath.courses.models import VideoProvider
from linguapath.video.urls import InvalidVideoUrlError, is_valid_video_id, parse_video_url


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/watch?list=PL1&v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ",
        "https://youtube.com/shorts/dQw4w9WgXcQ",
        "dQw4w9WgXcQ",
    ],
)
def test_youtube_urls(url: str) -> None:
    parsed = parse_video_url(url)
    assert parsed.provider == VideoProvider.YOUTUBE
    assert parsed.video_id == "dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "url",
    [
        "https://vimeo.com/76979871",
        "https://player.vimeo.com/video/76979871",
        "https://vimeo.com/channels/staffpicks/76979871",
        " 76979871 ",
    ],
)
def test_vimeo_urls(url: str) -> None:
    parsed = parse_video_url(url)
    assert parsed.provider == VideoProvider.VIMEO
    assert parsed.video_id == "76979871"


@pytest.mark.parametrize("url", ["", "https://example.com/video.mp4", "vimeo.com/abc"])
def test_unparseable_urls(url: str) -> None:
    with pytest.raises(InvalidVideoUrlError):
        parse_video_url(url)


def test_video_id_validation() -> None:
    assert is_valid_video_id(VideoProvider.YOUTUBE, "dQw4w9WgXcQ")
    assert not is_valid_video_id(VideoProvider.YOUTUBE, "short")
    assert is_valid_video_id(VideoProvider.VIMEO, "76979871")
    assert not is_valid_video_id(VideoProvider.VIMEO, "dQw4w9WgXcQ")
    assert not is_valid_video_id(VideoProvider.VIMEO, "")
