"""Provider SDK loader.

Loading a provider means fetching the video's oEmbed document. A response
proves the provider is reachable and the video is embeddable, and carries
the title, thumbnail and (for Vimeo) the duration.

Each attempt is bounded by a timeout. Timeouts, network errors and 5xx
responses are retried; HTTP refusals (private, password protected, region
locked, not found, embedding disabled) are not.
"""

import asyncio

import httpx

from linguapath.core.logging import get_logger
from linguapath.courses.models import VideoProvider

from .errors import PlayerError, PlayerErrorCategory, PlayerInitError
from .models import VideoMetadata


logger = get_logger(__name__)


WATCH_URLS: dict[VideoProvider, str] = {
    VideoProvider.YOUTUBE: "https://www.youtube.com/watch?v={video_id}",
    VideoProvider.VIMEO: "https://vimeo.com/{video_id}",
}

# HTTP status -> category, per provider
REFUSAL_STATUS: dict[VideoProvider, dict[int, PlayerErrorCategory]] = {
    VideoProvider.YOUTUBE: {
        400: PlayerErrorCategory.INVALID_VIDEO_ID,
        401: PlayerErrorCategory.EMBED_DISABLED,
        403: PlayerErrorCategory.PRIVATE,
        404: PlayerErrorCategory.NOT_FOUND,
        451: PlayerErrorCategory.REGION_LOCKED,
    },
    VideoProvider.VIMEO: {
        401: PlayerErrorCategory.PASSWORD_PROTECTED,
        403: PlayerErrorCategory.PRIVATE,
        404: PlayerErrorCategory.NOT_FOUND,
        451: PlayerErrorCategory.REGION_LOCKED,
    },
}


class _RetryableLoadError(Exception):
    pass


class ProviderSDKLoader:
    """Fetches provider metadata with a timeout and a bounded retry budget."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoints: dict[VideoProvider, str],
        timeout_seconds: float = 15.0,
        max_attempts: int = 3,
        retry_delay_seconds: float = 0.5,
    ) -> None:
        """Initialize SDK loader.

        Args:
            client: Shared httpx client
            endpoints: oEmbed endpoint per provider
            timeout_seconds: Bound on each attempt
            max_attempts: Attempts before a PlayerInitError surfaces
            retry_delay_seconds: Pause between attempts
        """
        self.client = client
        self.endpoints = endpoints
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds

    async def load(self, provider: VideoProvider, video_id: str) -> VideoMetadata:
        """Load metadata for a video.

        Raises:
            PlayerError: Provider refused the video (not retried)
            PlayerInitError: Every attempt failed or timed out
        """
        last_error: str | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await asyncio.wait_for(
                    self._fetch(provider, video_id),
                    timeout=self.timeout_seconds,
                )
            except TimeoutError:
                last_error = f"timed out after {self.timeout_seconds}s"
            except _RetryableLoadError as e:
                last_error = str(e)

            logger.warning(
                "video_sdk_load_failed",
                provider=provider.value,
                video_id=video_id,
                attempt=attempt,
                max_attempts=self.max_attempts,
                error=last_error,
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(self.retry_delay_seconds)

        logger.error(
            "video_sdk_unavailable",
            provider=provider.value,
            video_id=video_id,
            error=last_error,
        )
        msg = (
            f"Failed to load the {provider.value} player after "
            f"{self.max_attempts} attempts: {last_error}"
        )
        raise PlayerInitError(msg)

    async def _fetch(self, provider: VideoProvider, video_id: str) -> VideoMetadata:
        params = {
            "url": WATCH_URLS[provider].format(video_id=video_id),
            "format": "json",
        }
        try:
            response = await self.client.get(self.endpoints[provider], params=params)
        except httpx.RequestError as e:
            raise _RetryableLoadError(f"{type(e).__name__}: {e}") from e

        if response.status_code >= 500:
            raise _RetryableLoadError(f"HTTP {response.status_code}")

        if response.status_code >= 400:
            category = REFUSAL_STATUS[provider].get(
                response.status_code, PlayerErrorCategory.UNKNOWN
            )
            logger.info(
                "video_refused_by_provider",
                provider=provider.value,
                video_id=video_id,
                status_code=response.status_code,
                category=category.value,
            )
            raise PlayerError(category, native_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise _RetryableLoadError("invalid oEmbed response") from e
        if not isinstance(data, dict):
            raise _RetryableLoadError("invalid oEmbed response")

        return VideoMetadata(
            provider=provider,
            video_id=video_id,
            title=data.get("title"),
            author_name=data.get("author_name"),
            duration=data.get("duration"),
            thumbnail_url=data.get("thumbnail_url"),
            raw=data,
        )
