"""Provider adapter interface.

An adapter knows one provider: how to validate its ids, which commands its
player understands and how to read its native messages. Everything else
(state machine, progress, completion latch, polling) lives in the tracker.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from linguapath.core.logging import get_logger
from linguapath.video.errors import PlayerInitError
from linguapath.video.models import PlayerCommand, PlayerOptions, PlayerSignal, VideoMetadata
from linguapath.video.urls import is_valid_video_id


if TYPE_CHECKING:
    from linguapath.courses.models import VideoProvider
    from linguapath.video.sdk import ProviderSDKLoader
    from linguapath.video.transport import PlayerTransport


logger = get_logger(__name__)


class PlayerAdapter(ABC):
    """Capability set every provider implements."""

    provider: ClassVar["VideoProvider"]
    # True when the player only reports its position on request (time polling)
    polls_progress: ClassVar[bool] = False

    def __init__(self, loader: "ProviderSDKLoader"):
        self.loader = loader
        self.transport: PlayerTransport | None = None
        self.video_id: str | None = None

    async def load(self, video_id: str) -> VideoMetadata:
        """Validate the id and load the provider SDK for it."""
        if not is_valid_video_id(self.provider, video_id):
            msg = f"Malformed {self.provider.value} video id: {video_id!r}"
            raise PlayerInitError(msg)
        return await self.loader.load(self.provider, video_id)

    async def attach(
        self, transport: "PlayerTransport", video_id: str, options: PlayerOptions
    ) -> None:
        """Bind to the player behind the transport and cue the video."""
        self.transport = transport
        self.video_id = video_id
        await self._send(self.load_command(video_id, options))

    async def detach(self) -> None:
        """Tell the player to tear down and drop the transport."""
        if self.transport is None:
            return
        try:
            await self._send(PlayerCommand("destroy"))
        finally:
            self.transport = None
            self.video_id = None

    async def _send(self, command: PlayerCommand) -> None:
        if self.transport is None:
            raise PlayerInitError("Player is not attached")
        message = command.to_dict()
        message["provider"] = self.provider.value
        await self.transport.send(message)

    # ==========================================================================
    # Transport Controls
    # ==========================================================================

    async def play(self) -> None:
        await self._send(self.play_command())

    async def pause(self) -> None:
        await self._send(self.pause_command())

    async def seek(self, seconds: float) -> None:
        await self._send(self.seek_command(seconds))

    async def set_volume(self, volume: int) -> None:
        await self._send(self.volume_command(volume))

    async def set_playback_rate(self, rate: float) -> None:
        await self._send(self.playback_rate_command(rate))

    # ==========================================================================
    # Provider Specifics
    # ==========================================================================

    @abstractmethod
    def load_command(self, video_id: str, options: PlayerOptions) -> PlayerCommand: ...

    @abstractmethod
    def play_command(self) -> PlayerCommand: ...

    @abstractmethod
    def pause_command(self) -> PlayerCommand: ...

    @abstractmethod
    def seek_command(self, seconds: float) -> PlayerCommand: ...

    @abstractmethod
    def volume_command(self, volume: int) -> PlayerCommand:
        """Volume is given on the 0-100 scale."""

    @abstractmethod
    def playback_rate_command(self, rate: float) -> PlayerCommand: ...

    @abstractmethod
    def translate(self, message: dict[str, Any]) -> list[PlayerSignal]:
        """Turn one native player message into normalized signals.

        Unknown messages produce no signals.
        """
