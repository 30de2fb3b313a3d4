"""Video URL parsing and id validation for YouTube and Vimeo."""

import re
from dataclasses import dataclass

from linguapath.courses.models import VideoProvider

from .errors import VideoPlayerError


# Regex patterns for URL parsing
YOUTUBE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{11}$")
YOUTUBE_URL_PATTERNS = (
    re.compile(r"(?:www\.|m\.)?youtube\.com/watch\?(?:.*&)?v=([a-zA-Z0-9_-]{11})", re.IGNORECASE),
    re.compile(r"youtu\.be/([a-zA-Z0-9_-]{11})", re.IGNORECASE),
    re.compile(r"youtube(?:-nocookie)?\.com/(?:embed|shorts|live)/([a-zA-Z0-9_-]{11})", re.IGNORECASE),
)
VIMEO_ID_PATTERN = re.compile(r"^\d{6,12}$")
VIMEO_URL_PATTERNS = (
    re.compile(r"player\.vimeo\.com/video/(\d{6,12})", re.IGNORECASE),
    re.compile(r"vimeo\.com/(?:channels/[^/]+/|groups/[^/]+/videos/)?(\d{6,12})", re.IGNORECASE),
)


class InvalidVideoUrlError(VideoPlayerError):
    """Raised when a video URL cannot be parsed."""

    def __init__(self, url: str):
        super().__init__(f"Cannot parse video URL: {url}", "invalid_video_url")


@dataclass
class ParsedVideoUrl:
    """Parsed video URL information."""

    provider: VideoProvider
    video_id: str
    original_url: str = ""


def is_valid_video_id(provider: VideoProvider, video_id: str) -> bool:
    """Check the id format the provider uses."""
    if not video_id:
        return False
    if provider == VideoProvider.YOUTUBE:
        return bool(YOUTUBE_ID_PATTERN.match(video_id))
    return bool(VIMEO_ID_PATTERN.match(video_id))


def parse_video_url(url: str) -> ParsedVideoUrl:
    """Extract provider and id from a video URL or a bare id.

    Bare 11-character ids are taken as YouTube, bare numeric ids as Vimeo.

    Raises:
        InvalidVideoUrlError: If the URL matches neither provider.
    """
    url = url.strip()

    if YOUTUBE_ID_PATTERN.match(url) and not url.isdigit():
        return ParsedVideoUrl(VideoProvider.YOUTUBE, url, url)
    if VIMEO_ID_PATTERN.match(url):
        return ParsedVideoUrl(VideoProvider.VIMEO, url, url)

    for pattern in YOUTUBE_URL_PATTERNS:
        match = pattern.search(url)
        if match:
            return ParsedVideoUrl(VideoProvider.YOUTUBE, match.group(1), url)

    for pattern in VIMEO_URL_PATTERNS:
        match = pattern.search(url)
        if match:
            return ParsedVideoUrl(VideoProvider.VIMEO, match.group(1), url)

    raise InvalidVideoUrlError(url)
