"""FastAPI dependencies for video players.

Provides dependency injection for:
- ProviderSDKLoader instance (shared httpx client)
- Error handlers
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .errors import VideoPlayerError
from .sdk import ProviderSDKLoader


_sdk_loader_getter: Callable[[], ProviderSDKLoader] | None = None


def set_sdk_loader_getter(getter: Callable[[], ProviderSDKLoader]) -> None:
    """Set the SDK loader getter function."""
    global _sdk_loader_getter  # noqa: PLW0603 - Required for DI pattern
    _sdk_loader_getter = getter


def get_sdk_loader() -> ProviderSDKLoader:
    """Get ProviderSDKLoader instance from app state."""
    if _sdk_loader_getter is None:
        msg = "ProviderSDKLoader not configured"
        raise RuntimeError(msg)
    return _sdk_loader_getter()


SDKLoaderDep = Annotated[ProviderSDKLoader, Depends(get_sdk_loader)]


def handle_video_error(error: VideoPlayerError) -> HTTPException:
    """Convert video errors to HTTP exceptions."""
    status_map = {
        "invalid_video_url": status.HTTP_400_BAD_REQUEST,
        "player_init_failed": status.HTTP_502_BAD_GATEWAY,
        "not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
