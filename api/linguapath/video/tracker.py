"""Video progress tracker.

Wraps one embedded player behind a provider adapter and turns its native
messages into a uniform progress stream:

- progress events: every poll interval while playing and on pause/end for
  polling providers, on every timeupdate for event providers
- one completion event per player instance, the first time progress
  reaches the completion threshold
- error and state-change events

State machine:
    uninitialized -> loading -> ready <-> {playing <-> paused} -> destroyed
    error is reachable from loading and ready (incl. playing/paused);
    retry() moves error -> loading.
"""

import asyncio
import inspect
import math
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from linguapath.core.logging import get_logger

from .errors import InvalidPlayerStateError, PlayerError, PlayerInitError, VideoPlayerError
from .models import (
    ErrorSignal,
    PlaybackEvent,
    PlaybackSignal,
    PlayerOptions,
    PlayerSignal,
    PlayerState,
    ProgressEvent,
    TimeSignal,
    VideoMetadata,
    can_transition,
)


if TYPE_CHECKING:
    from .adapters.base import PlayerAdapter
    from .transport import PlayerTransport


logger = get_logger(__name__)

Listener = Callable[[Any], Awaitable[None] | None]

MIN_PLAYBACK_RATE = 0.25
MAX_PLAYBACK_RATE = 2.0

CONTROLLABLE_STATES = frozenset({PlayerState.READY, PlayerState.PLAYING, PlayerState.PAUSED})


def completion_percentage(current_time: float, duration: float) -> int | None:
    """min(round(current/duration x 100), 100), or None for an invalid sample."""
    if (
        math.isnan(current_time)
        or math.isnan(duration)
        or math.isinf(duration)
        or duration <= 0
        or current_time < 0
    ):
        return None
    return min(round(current_time / duration * 100), 100)


class VideoProgressTracker:
    """One player instance: state machine, progress stream and completion latch."""

    def __init__(self, adapter: "PlayerAdapter"):
        self.adapter = adapter
        self.state = PlayerState.UNINITIALIZED
        self.metadata: VideoMetadata | None = None
        self.options = PlayerOptions()

        self._listeners: dict[str, list[Listener]] = {
            "progress": [],
            "completion": [],
            "error": [],
            "state_change": [],
        }
        self._last_init: tuple[PlayerTransport | None, str, PlayerOptions] | None = None
        self._poll_task: asyncio.Task | None = None
        self._reset_session()

    def _reset_session(self) -> None:
        self._current_time: float | None = None
        self._duration: float | None = None
        self._watched_seconds = 0.0
        self._completion_fired = False

    # ==========================================================================
    # Subscriptions
    # ==========================================================================

    def _subscribe(self, kind: str, listener: Listener) -> Callable[[], None]:
        self._listeners[kind].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[kind]:
                self._listeners[kind].remove(listener)

        return unsubscribe

    def on_progress(self, listener: Callable[[ProgressEvent], Any]) -> Callable[[], None]:
        return self._subscribe("progress", listener)

    def on_completion(self, listener: Callable[[ProgressEvent], Any]) -> Callable[[], None]:
        return self._subscribe("completion", listener)

    def on_error(self, listener: Callable[[VideoPlayerError], Any]) -> Callable[[], None]:
        return self._subscribe("error", listener)

    def on_state_change(self, listener: Callable[[PlayerState], Any]) -> Callable[[], None]:
        return self._subscribe("state_change", listener)

    async def _emit(self, kind: str, payload: Any) -> None:
        for listener in list(self._listeners[kind]):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("video_listener_failed", kind=kind)

    # ==========================================================================
    # State Machine
    # ==========================================================================

    async def _transition(self, target: PlayerState, attempted: str) -> None:
        if not can_transition(self.state, target):
            raise InvalidPlayerStateError(self.state.value, attempted)
        previous, self.state = self.state, target
        logger.debug(
            "player_state_changed",
            provider=self.adapter.provider.value,
            previous=previous.value,
            state=target.value,
        )
        await self._emit("state_change", target)

    async def _try_transition(self, target: PlayerState) -> bool:
        """Transition driven by the player itself; ignored when not allowed."""
        if self.state == target:
            return False
        if not can_transition(self.state, target):
            logger.debug(
                "player_event_ignored",
                state=self.state.value,
                target=target.value,
            )
            return False
        await self._transition(target, target.value)
        return True

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def initialize(
        self,
        container: "PlayerTransport | None",
        video_id: str,
        options: PlayerOptions | None = None,
    ) -> VideoMetadata:
        """Attach to the player behind `container` and load `video_id`.

        Raises:
            PlayerInitError: Missing container, malformed id, SDK not loaded
                or the player could not be reached
            PlayerError: The provider refused the video
            InvalidPlayerStateError: Called while already loading
        """
        options = options or PlayerOptions()
        await self._transition(PlayerState.LOADING, "initialize")

        self._stop_polling()
        self._reset_session()
        self.options = options
        self._last_init = (container, video_id, options)

        try:
            if container is None:
                raise PlayerInitError("Player container is missing")
            metadata = await self.adapter.load(video_id)
            await self.adapter.attach(container, video_id, options)
        except VideoPlayerError as e:
            await self._fail(e)
            raise
        except Exception as e:
            error = PlayerInitError(f"Failed to initialize the video player: {e}")
            await self._fail(error)
            raise error from e

        self.metadata = metadata
        if metadata.duration:
            self._duration = float(metadata.duration)
        await self._transition(PlayerState.READY, "initialize")

        logger.info(
            "player_initialized",
            provider=self.adapter.provider.value,
            video_id=video_id,
        )
        return metadata

    async def retry(self) -> VideoMetadata:
        """Re-run initialization with the last arguments after an error."""
        if self.state != PlayerState.ERROR or self._last_init is None:
            raise InvalidPlayerStateError(self.state.value, "retry")
        container, video_id, options = self._last_init
        return await self.initialize(container, video_id, options)

    async def destroy(self) -> None:
        """Stop polling, detach the adapter and drop listeners. Idempotent."""
        if self.state == PlayerState.DESTROYED:
            return

        self._stop_polling()
        try:
            await self.adapter.detach()
        except Exception as e:
            logger.warning("player_detach_failed", error=str(e))

        await self._transition(PlayerState.DESTROYED, "destroy")
        for listeners in self._listeners.values():
            listeners.clear()
        self._reset_session()

    async def _fail(self, error: VideoPlayerError) -> None:
        self._stop_polling()
        logger.warning(
            "player_error",
            provider=self.adapter.provider.value,
            code=error.code,
            error=error.message,
        )
        await self._try_transition(PlayerState.ERROR)
        await self._emit("error", error)

    # ==========================================================================
    # Transport Controls
    # ==========================================================================

    def _require_controllable(self, action: str) -> None:
        if self.state not in CONTROLLABLE_STATES:
            raise InvalidPlayerStateError(self.state.value, action)

    async def play(self) -> None:
        self._require_controllable("play")
        await self.adapter.play()

    async def pause(self) -> None:
        self._require_controllable("pause")
        await self.adapter.pause()

    async def seek(self, seconds: float) -> None:
        self._require_controllable("seek")
        seconds = max(0.0, seconds)
        if self._duration:
            seconds = min(seconds, self._duration)
        await self.adapter.seek(seconds)

    async def set_volume(self, volume: int) -> int:
        """Set volume, clamped to 0-100. Returns the applied value."""
        self._require_controllable("set_volume")
        volume = max(0, min(100, int(volume)))
        await self.adapter.set_volume(volume)
        return volume

    async def set_playback_rate(self, rate: float) -> None:
        self._require_controllable("set_playback_rate")
        if not MIN_PLAYBACK_RATE <= rate <= MAX_PLAYBACK_RATE:
            msg = f"Playback rate must be between {MIN_PLAYBACK_RATE} and {MAX_PLAYBACK_RATE}"
            raise ValueError(msg)
        await self.adapter.set_playback_rate(rate)

    # ==========================================================================
    # Native Messages
    # ==========================================================================

    async def handle_message(self, message: dict[str, Any]) -> None:
        """Feed one native player message through the adapter."""
        if self.state in (PlayerState.UNINITIALIZED, PlayerState.DESTROYED):
            return
        for signal in self.adapter.translate(message):
            await self._apply(signal)

    async def _apply(self, signal: PlayerSignal) -> None:
        if isinstance(signal, TimeSignal):
            if self._record_sample(signal.current_time, signal.duration) and signal.emit_progress:
                await self._emit_progress()
        elif isinstance(signal, PlaybackSignal):
            await self._apply_playback(signal.event)
        elif isinstance(signal, ErrorSignal):
            await self._fail(signal.error)

    async def _apply_playback(self, event: PlaybackEvent) -> None:
        if event == PlaybackEvent.PLAY:
            if await self._try_transition(PlayerState.PLAYING):
                self._start_polling()
        elif event == PlaybackEvent.PAUSE:
            if await self._try_transition(PlayerState.PAUSED):
                self._stop_polling()
                await self._tick()
        elif event == PlaybackEvent.ENDED:
            if await self._try_transition(PlayerState.READY):
                self._stop_polling()
                await self._tick()

    def _record_sample(self, current_time: float, duration: float | None) -> bool:
        """Store a position sample; invalid samples are skipped.

        A sample without a duration keeps the last known one.
        """
        if duration is None:
            duration = self._duration
        if duration is None:
            return False
        if completion_percentage(current_time, duration) is None:
            return False
        self._current_time = current_time
        self._duration = duration
        self._watched_seconds = max(self._watched_seconds, current_time)
        return True

    async def _tick(self) -> None:
        """Progress emission of polling providers."""
        if self.adapter.polls_progress:
            await self._emit_progress()

    async def _emit_progress(self) -> None:
        if self._current_time is None or self._duration is None:
            return
        percentage = completion_percentage(self._current_time, self._duration)
        if percentage is None:
            return

        event = ProgressEvent(
            current_time=self._current_time,
            duration=self._duration,
            completion_percentage=percentage,
            watched_seconds=self._watched_seconds,
        )
        await self._emit("progress", event)

        if not self._completion_fired and percentage >= self.options.completion_threshold:
            self._completion_fired = True
            logger.info(
                "video_completion_reached",
                provider=self.adapter.provider.value,
                video_id=self.adapter.video_id,
                completion_percentage=percentage,
            )
            await self._emit("completion", event)

    # ==========================================================================
    # Polling
    # ==========================================================================

    def _start_polling(self) -> None:
        if not self.adapter.polls_progress or self._poll_task is not None:
            return
        self._poll_task = asyncio.create_task(self._poll_loop(), name="video_progress_poll")

    def _stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll_loop(self) -> None:
        while self.state == PlayerState.PLAYING:
            await asyncio.sleep(self.options.poll_interval_seconds)
            try:
                await self._emit_progress()
            except Exception:
                logger.exception("video_progress_poll_failed")

    # ==========================================================================
    # Status
    # ==========================================================================

    @property
    def completion_fired(self) -> bool:
        return self._completion_fired

    @property
    def watched_seconds(self) -> float:
        return self._watched_seconds

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()
