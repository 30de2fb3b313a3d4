"""Provider adapters for the video progress tracker."""

from typing import TYPE_CHECKING

from linguapath.courses.models import VideoProvider

from .base import PlayerAdapter
from .vimeo import VimeoAdapter
from .youtube import YouTubeAdapter


if TYPE_CHECKING:
    from linguapath.video.sdk import ProviderSDKLoader


ADAPTERS: dict[VideoProvider, type[PlayerAdapter]] = {
    VideoProvider.YOUTUBE: YouTubeAdapter,
    VideoProvider.VIMEO: VimeoAdapter,
}


def create_adapter(provider: VideoProvider, loader: "ProviderSDKLoader") -> PlayerAdapter:
    """Adapter instance for a provider."""
    return ADAPTERS[VideoProvider(provider)](loader)


__all__ = [
    "ADAPTERS",
    "PlayerAdapter",
    "VimeoAdapter",
    "YouTubeAdapter",
    "create_adapter",
]
