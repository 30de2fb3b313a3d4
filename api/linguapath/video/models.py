"""Video player value types.

Player states and their allowed transitions, tracker options, the
normalized progress event, provider metadata and the signals adapters
produce from native player messages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from linguapath.courses.models import DEFAULT_COMPLETION_THRESHOLD, VideoProvider

from .errors import PlayerError


class PlayerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    ERROR = "error"
    DESTROYED = "destroyed"


# playing and paused are sub-states of ready, so errors reach them too
ALLOWED_TRANSITIONS: dict[PlayerState, frozenset[PlayerState]] = {
    PlayerState.UNINITIALIZED: frozenset({PlayerState.LOADING, PlayerState.DESTROYED}),
    PlayerState.LOADING: frozenset(
        {PlayerState.READY, PlayerState.ERROR, PlayerState.DESTROYED}
    ),
    PlayerState.READY: frozenset(
        {
            PlayerState.PLAYING,
            PlayerState.PAUSED,
            PlayerState.ERROR,
            PlayerState.LOADING,
            PlayerState.DESTROYED,
        }
    ),
    PlayerState.PLAYING: frozenset(
        {
            PlayerState.PAUSED,
            PlayerState.READY,
            PlayerState.ERROR,
            PlayerState.LOADING,
            PlayerState.DESTROYED,
        }
    ),
    PlayerState.PAUSED: frozenset(
        {
            PlayerState.PLAYING,
            PlayerState.READY,
            PlayerState.ERROR,
            PlayerState.LOADING,
            PlayerState.DESTROYED,
        }
    ),
    PlayerState.ERROR: frozenset({PlayerState.LOADING, PlayerState.DESTROYED}),
    PlayerState.DESTROYED: frozenset({PlayerState.LOADING}),
}


def can_transition(current: PlayerState, target: PlayerState) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass
class PlayerOptions:
    """Tracker options for one initialization."""

    autoplay: bool = False
    start_at: float = 0.0
    volume: int = 100
    playback_rate: float = 1.0
    completion_threshold: int = DEFAULT_COMPLETION_THRESHOLD
    poll_interval_seconds: float = 30.0


@dataclass(frozen=True)
class ProgressEvent:
    current_time: float
    duration: float
    completion_percentage: int
    watched_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_time": self.current_time,
            "duration": self.duration,
            "completion_percentage": self.completion_percentage,
            "watched_seconds": self.watched_seconds,
        }


@dataclass(frozen=True)
class VideoMetadata:
    """Metadata returned by the provider's oEmbed endpoint."""

    provider: VideoProvider
    video_id: str
    title: str | None = None
    author_name: str | None = None
    duration: int | None = None
    thumbnail_url: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class PlayerCommand:
    """Instruction sent to the embedded player through the transport."""

    action: str
    args: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "command", "action": self.action, "args": self.args}


# ==============================================================================
# Normalized Signals (adapter output)
# ==============================================================================


class PlaybackEvent(str, Enum):
    PLAY = "play"
    PAUSE = "pause"
    ENDED = "ended"
    BUFFERING = "buffering"
    CUED = "cued"


@dataclass(frozen=True)
class TimeSignal:
    """Position report from the player."""

    current_time: float
    duration: float | None
    emit_progress: bool = False


@dataclass(frozen=True)
class PlaybackSignal:
    event: PlaybackEvent


@dataclass(frozen=True)
class ErrorSignal:
    error: PlayerError


PlayerSignal = TimeSignal | PlaybackSignal | ErrorSignal
