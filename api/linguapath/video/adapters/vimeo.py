"""Vimeo player adapter (native events).

The Vimeo player emits play, pause, ended, timeupdate and error events;
every timeupdate produces a progress event.
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


PLAYBACK_EVENTS: dict[str, PlaybackEvent] = {
    "play": PlaybackEvent.PLAY,
    "playing": PlaybackEvent.PLAY,
    "pause": PlaybackEvent.PAUSE,
    "ended": PlaybackEvent.ENDED,
    "bufferstart": PlaybackEvent.BUFFERING,
}

ERROR_CATEGORIES: dict[str, PlayerErrorCategory] = {
    "PrivacyError": PlayerErrorCategory.PRIVATE,
    "PasswordError": PlayerErrorCategory.PASSWORD_PROTECTED,
    "NotFoundError": PlayerErrorCategory.NOT_FOUND,
}


class VimeoAdapter(PlayerAdapter):
    provider = VideoProvider.VIMEO
    polls_progress = False

    def load_command(self, video_id: str, options: PlayerOptions) -> PlayerCommand:
        return PlayerCommand(
            "loadVideo",
            {
                "id": video_id,
                "autoplay": options.autoplay,
                "startTime": options.start_at,
                "volume": options.volume / 100,
                "playbackRate": options.playback_rate,
            },
        )

    def play_command(self) -> PlayerCommand:
        return PlayerCommand("play")

    def pause_command(self) -> PlayerCommand:
        return PlayerCommand("pause")

    def seek_command(self, seconds: float) -> PlayerCommand:
        return PlayerCommand("setCurrentTime", {"seconds": seconds})

    def volume_command(self, volume: int) -> PlayerCommand:
        # Vimeo takes 0.0-1.0
        return PlayerCommand("setVolume", {"volume": volume / 100})

    def playback_rate_command(self, rate: float) -> PlayerCommand:
        return PlayerCommand("setPlaybackRate", {"playbackRate": rate})

    def translate(self, message: dict[str, Any]) -> list[PlayerSignal]:
        event = message.get("event")
        data = message.get("data") or {}

        if event == "timeupdate":
            try:
                return [
                    TimeSignal(
                        current_time=float(data["seconds"]),
                        duration=float(data["duration"]),
                        emit_progress=True,
                    )
                ]
            except (KeyError, TypeError, ValueError):
                return []

        if event in PLAYBACK_EVENTS:
            return [PlaybackSignal(PLAYBACK_EVENTS[event])]

        if event == "error":
            name = data.get("name", "")
            category = ERROR_CATEGORIES.get(name, PlayerErrorCategory.UNKNOWN)
            detail = data.get("message")
            message_text = None
            if category == PlayerErrorCategory.UNKNOWN and detail:
                message_text = f"Video playback error. {detail}"
            return [ErrorSignal(PlayerError(category, message_text, native_code=name or None))]

        return []
