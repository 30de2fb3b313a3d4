"""YouTube IFrame player adapter (time polling).

The IFrame API posts `infoDelivery` messages with the current time, plus
`onStateChange` and `onError` events with numeric codes.
"""

from typing import Any

from linguapath.courses.models import VideoProvider
from linguapath.video.errors import PlayerError, PlayerErrorCategory
from linguapath.video.models import (
    ErrorSignal,
    PlaybackEvent,
    PlaybackSignal,
    PlayerCommand,
    PlayerOptions,
    PlayerSignal,
    TimeSignal,
)

from .base import PlayerAdapter


# Player state codes from the IFrame API (-1 unstarted carries no signal)
STATE_EVENTS: dict[int, PlaybackEvent] = {
    0: PlaybackEvent.ENDED,
    1: PlaybackEvent.PLAY,
    2: PlaybackEvent.PAUSE,
    3: PlaybackEvent.BUFFERING,
    5: PlaybackEvent.CUED,
}

ERROR_CATEGORIES: dict[int, PlayerErrorCategory] = {
    2: PlayerErrorCategory.INVALID_VIDEO_ID,
    5: PlayerErrorCategory.PLAYBACK_ERROR,
    100: PlayerErrorCategory.NOT_FOUND,
    101: PlayerErrorCategory.EMBED_DISABLED,
    150: PlayerErrorCategory.EMBED_DISABLED,
}


class YouTubeAdapter(PlayerAdapter):
    provider = VideoProvider.YOUTUBE
    polls_progress = True

    def load_command(self, video_id: str, options: PlayerOptions) -> PlayerCommand:
        action = "loadVideoById" if options.autoplay else "cueVideoById"
        return PlayerCommand(
            action,
            {
                "videoId": video_id,
                "startSeconds": options.start_at,
                "volume": options.volume,
                "playbackRate": options.playback_rate,
            },
        )

    def play_command(self) -> PlayerCommand:
        return PlayerCommand("playVideo")

    def pause_command(self) -> PlayerCommand:
        return PlayerCommand("pauseVideo")

    def seek_command(self, seconds: float) -> PlayerCommand:
        return PlayerCommand("seekTo", {"seconds": seconds, "allowSeekAhead": True})

    def volume_command(self, volume: int) -> PlayerCommand:
        return PlayerCommand("setVolume", {"volume": volume})

    def playback_rate_command(self, rate: float) -> PlayerCommand:
        return PlayerCommand("setPlaybackRate", {"suggestedRate": rate})

    def translate(self, message: dict[str, Any]) -> list[PlayerSignal]:
        event = message.get("event")
        info = message.get("info")

        if event == "infoDelivery" and isinstance(info, dict):
            try:
                return [
                    TimeSignal(
                        current_time=float(info["currentTime"]),
                        duration=_as_float(info.get("duration")),
                    )
                ]
            except (KeyError, TypeError, ValueError):
                return []

        if event == "onStateChange":
            playback = STATE_EVENTS.get(_as_int(info))
            return [PlaybackSignal(playback)] if playback else []

        if event == "onError":
            code = _as_int(info)
            category = ERROR_CATEGORIES.get(code, PlayerErrorCategory.UNKNOWN)
            return [ErrorSignal(PlayerError(category, native_code=code))]

        return []


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float | None:
    # infoDelivery messages are deltas; duration is only sent when it changes
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None
