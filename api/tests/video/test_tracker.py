"""Tests for VideoProgressTracker."""

import asyncio
from unittest.mock import Mock

import pytest

from linguapath.video.adapters import VimeoAdapter, YouTubeAdapter
from linguapath.video.errors import (
    InvalidPlayerStateError,
    PlayerError,
    PlayerErrorCategory,
    PlayerInitError,
)
from linguapath.video.models import PlayerOptions, PlayerState, ProgressEvent
from linguapath.video.tracker import VideoProgressTracker, completion_percentage
from linguapath.video.transport import PlayerTransport


YOUTUBE_ID = "dQw4w9WgXcQ"
VIMEO_ID = "76979871"


def timeupdate(seconds: float, duration: float = 100) -> dict:
    return {"event": "timeupdate", "data": {"seconds": seconds, "duration": duration}}


def yt_state(code: int) -> dict:
    return {"event": "onStateChange", "info": code}


def yt_time(current: float, duration: float = 100) -> dict:
    return {"event": "infoDelivery", "info": {"currentTime": current, "duration": duration}}


class Recorder:
    def __init__(self, tracker: VideoProgressTracker) -> None:
        self.progress: list[ProgressEvent] = []
        self.completions: list[ProgressEvent] = []
        self.errors: list = []
        self.states: list[PlayerState] = []
        tracker.on_progress(self.progress.append)
        tracker.on_completion(self.completions.append)
        tracker.on_error(self.errors.append)
        tracker.on_state_change(self.states.append)


@pytest.fixture
def vimeo(sdk_loader) -> VideoProgressTracker:
    return VideoProgressTracker(VimeoAdapter(sdk_loader))


@pytest.fixture
def youtube(sdk_loader) -> VideoProgressTracker:
    return VideoProgressTracker(YouTubeAdapter(sdk_loader))


class TestCompletionPercentage:
    def test_rounds_and_caps(self) -> None:
        assert completion_percentage(33.4, 100) == 33
        assert completion_percentage(130, 100) == 100

    @pytest.mark.parametrize(
        ("current", "duration"),
        [(10, 0), (10, float("nan")), (float("nan"), 100), (-1, 100), (5, float("inf"))],
    )
    def test_invalid_samples(self, current: float, duration: float) -> None:
        assert completion_percentage(current, duration) is None


class TestInitialize:
    @pytest.mark.asyncio
    async def test_initialize_reaches_ready(
        self, youtube: VideoProgressTracker, transport
    ) -> None:
        recorder = Recorder(youtube)

        metadata = await youtube.initialize(transport, YOUTUBE_ID, PlayerOptions(start_at=42))

        assert youtube.state == PlayerState.READY
        assert metadata.title == "Ordering coffee"
        assert recorder.states == [PlayerState.LOADING, PlayerState.READY]
        load = transport.of_type("command")[0]
        assert load["action"] == "cueVideoById"
        assert load["args"]["startSeconds"] == 42

    @pytest.mark.asyncio
    async def test_autoplay_loads_instead_of_cueing(
        self, youtube: VideoProgressTracker, transport
    ) -> None:
        await youtube.initialize(transport, YOUTUBE_ID, PlayerOptions(autoplay=True))
        assert transport.commands == ["loadVideoById"]

    @pytest.mark.asyncio
    async def test_missing_container(self, vimeo: VideoProgressTracker) -> None:
        recorder = Recorder(vimeo)

        with pytest.raises(PlayerInitError):
            await vimeo.initialize(None, VIMEO_ID)

        assert vimeo.state == PlayerState.ERROR
        assert isinstance(recorder.errors[0], PlayerInitError)

    @pytest.mark.asyncio
    async def test_malformed_id(
        self, vimeo: VideoProgressTracker, transport, sdk_loader
    ) -> None:
        with pytest.raises(PlayerInitError):
            await vimeo.initialize(transport, "not-a-vimeo-id")
        sdk_loader.load.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_refusal_then_retry(
        self, vimeo: VideoProgressTracker, transport, sdk_loader
    ) -> None:
        load = sdk_loader.load.side_effect
        sdk_loader.load.side_effect = PlayerError(PlayerErrorCategory.PRIVATE, native_code=403)

        with pytest.raises(PlayerError):
            await vimeo.initialize(transport, VIMEO_ID)
        assert vimeo.state == PlayerState.ERROR

        sdk_loader.load.side_effect = load
        await vimeo.retry()
        assert vimeo.state == PlayerState.READY

    @pytest.mark.asyncio
    async def test_unreachable_player_moves_to_error_and_retries(
        self, youtube: VideoProgressTracker
    ) -> None:
        class BrokenTransport(PlayerTransport):
            fail = True

            async def send(self, message: dict) -> None:
                if self.fail:
                    raise RuntimeError("socket closed")

        broken = BrokenTransport()
        recorder = Recorder(youtube)

        with pytest.raises(PlayerInitError):
            await youtube.initialize(broken, YOUTUBE_ID)
        assert youtube.state == PlayerState.ERROR
        assert isinstance(recorder.errors[0], PlayerInitError)

        broken.fail = False
        await youtube.retry()
        assert youtube.state == PlayerState.READY

    @pytest.mark.asyncio
    async def test_retry_requires_error_state(
        self, vimeo: VideoProgressTracker, transport
    ) -> None:
        await vimeo.initialize(transport, VIMEO_ID)
        with pytest.raises(InvalidPlayerStateError):
            await vimeo.retry()

    @pytest.mark.asyncio
    async def test_initialize_while_loading_rejected(
        self, vimeo: VideoProgressTracker, transport, sdk_loader
    ) -> None:
        release = asyncio.Event()
        load = sdk_loader.load.side_effect

        async def slow_load(provider, video_id):
            await release.wait()
            return await load(provider, video_id)

        sdk_loader.load.side_effect = slow_load
        first = asyncio.create_task(vimeo.initialize(transport, VIMEO_ID))
        await asyncio.sleep(0)

        with pytest.raises(InvalidPlayerStateError):
            await vimeo.initialize(transport, VIMEO_ID)

        release.set()
        await first
        assert vimeo.state == PlayerState.READY


class TestControls:
    @pytest.mark.asyncio
    async def test_controls_need_initialized_player(self, vimeo: VideoProgressTracker) -> None:
        with pytest.raises(InvalidPlayerStateError):
            await vimeo.play()

    @pytest.mark.asyncio
    async def test_seek_clamped_to_duration(
        self, vimeo: VideoProgressTracker, transport
    ) -> None:
        await vimeo.initialize(transport, VIMEO_ID)

        await vimeo.seek(500)
        await vimeo.seek(-3)

        seeks = [m["args"]["seconds"] for m in transport.of_type("command")[1:]]
        assert seeks == [120.0, 0.0]

    @pytest.mark.asyncio
    async def test_volume_clamped(self, vimeo: VideoProgressTracker, transport) -> None:
        await vimeo.initialize(transport, VIMEO_ID)

        applied = await vimeo.set_volume(150)

        assert applied == 100
        assert transport.messages[-1]["args"] == {"volume": 1.0}

    @pytest.mark.asyncio
    async def test_playback_rate_bounds(self, vimeo: VideoProgressTracker, transport) -> None:
        await vimeo.initialize(transport, VIMEO_ID)

        await vimeo.set_playback_rate(1.5)
        with pytest.raises(ValueError):
            await vimeo.set_playback_rate(3)

        assert transport.messages[-1]["args"] == {"playbackRate": 1.5}


class TestEventProvider:
    @pytest.mark.asyncio
    async def test_every_timeupdate_emits_progress(
        self, vimeo: VideoProgressTracker, transport
    ) -> None:
        recorder = Recorder(vimeo)
        await vimeo.initialize(transport, VIMEO_ID)

        await vimeo.handle_message({"event": "play"})
        await vimeo.handle_message(timeupdate(10))
        await vimeo.handle_message(timeupdate(20))

        assert vimeo.state == PlayerState.PLAYING
        assert [e.completion_percentage for e in recorder.progress] == [10, 20]
        assert recorder.progress[-1].watched_seconds == 20

    @pytest.mark.asyncio
    async def test_completion_fires_once(self, vimeo: VideoProgressTracker, transport) -> None:
        """Crossing the threshold again after seeking back does not re-fire."""
        recorder = Recorder(vimeo)
        await vimeo.initialize(transport, VIMEO_ID, PlayerOptions(completion_threshold=80))

        for seconds in (50, 85, 40, 90, 100):
            await vimeo.handle_message(timeupdate(seconds))

        assert len(recorder.completions) == 1
        assert recorder.completions[0].completion_percentage == 85
        assert vimeo.completion_fired

    @pytest.mark.asyncio
    async def test_invalid_samples_skipped(self, vimeo: VideoProgressTracker, transport) -> None:
        recorder = Recorder(vimeo)
        await vimeo.initialize(transport, VIMEO_ID)

        await vimeo.handle_message(timeupdate(10, duration=0))
        await vimeo.handle_message({"event": "timeupdate", "data": {"seconds": "soon"}})

        assert recorder.progress == []

    @pytest.mark.asyncio
    async def test_native_error_moves_to_error_state(
        self, vimeo: VideoProgressTracker, transport
    ) -> None:
        recorder = Recorder(vimeo)
        await vimeo.initialize(transport, VIMEO_ID)
        await vimeo.handle_message({"event": "play"})

        await vimeo.handle_message({"event": "error", "data": {"name": "PasswordError"}})

        assert vimeo.state == PlayerState.ERROR
        assert recorder.errors[0].category == PlayerErrorCategory.PASSWORD_PROTECTED

    @pytest.mark.asyncio
    async def test_messages_before_initialize_ignored(self, vimeo: VideoProgressTracker) -> None:
        recorder = Recorder(vimeo)
        await vimeo.handle_message(timeupdate(50))
        assert recorder.progress == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_stream(
        self, vimeo: VideoProgressTracker, transport
    ) -> None:
        vimeo.on_progress(Mock(side_effect=RuntimeError("listener bug")))
        recorder = Recorder(vimeo)
        await vimeo.initialize(transport, VIMEO_ID)

        await vimeo.handle_message(timeupdate(30))

        assert len(recorder.progress) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self, vimeo: VideoProgressTracker, transport) -> None:
        events: list[ProgressEvent] = []
        unsubscribe = vimeo.on_progress(events.append)
        await vimeo.initialize(transport, VIMEO_ID)

        unsubscribe()
        await vimeo.handle_message(timeupdate(30))

        assert events == []


class TestPollingProvider:
    @pytest.mark.asyncio
    async def test_time_reports_do_not_emit_by_themselves(
        self, youtube: VideoProgressTracker, transport
    ) -> None:
        recorder = Recorder(youtube)
        await youtube.initialize(transport, YOUTUBE_ID)

        await youtube.handle_message(yt_time(30))

        assert recorder.progress == []

    @pytest.mark.asyncio
    async def test_polls_while_playing_and_emits_on_pause(
        self, youtube: VideoProgressTracker, transport
    ) -> None:
        recorder = Recorder(youtube)
        await youtube.initialize(transport, YOUTUBE_ID, PlayerOptions(poll_interval_seconds=0.01))

        await youtube.handle_message(yt_state(1))
        await youtube.handle_message(yt_time(30))
        assert youtube.is_polling
        await asyncio.sleep(0.05)
        polled = len(recorder.progress)

        await youtube.handle_message(yt_state(2))

        assert polled >= 1
        assert youtube.state == PlayerState.PAUSED
        assert not youtube.is_polling
        assert len(recorder.progress) == polled + 1

    @pytest.mark.asyncio
    async def test_ended_emits_final_progress(
        self, youtube: VideoProgressTracker, transport
    ) -> None:
        recorder = Recorder(youtube)
        await youtube.initialize(transport, YOUTUBE_ID)
        await youtube.handle_message(yt_state(1))
        await youtube.handle_message(yt_time(100))

        await youtube.handle_message(yt_state(0))

        assert youtube.state == PlayerState.READY
        assert recorder.progress[-1].completion_percentage == 100
        assert len(recorder.completions) == 1


    @pytest.mark.asyncio
    async def test_time_deltas_keep_known_duration(
        self, youtube: VideoProgressTracker, transport
    ) -> None:
        recorder = Recorder(youtube)
        await youtube.initialize(transport, YOUTUBE_ID)
        await youtube.handle_message(yt_state(1))
        await youtube.handle_message(yt_time(10))
        await youtube.handle_message({"event": "infoDelivery", "info": {"currentTime": 90}})

        await youtube.handle_message(yt_state(2))

        last = recorder.progress[-1]
        assert (last.current_time, last.duration) == (90.0, 100.0)
        assert last.completion_percentage == 90
        assert len(recorder.completions) == 1


class TestDestroy:
    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self, youtube: VideoProgressTracker, transport) -> None:
        await youtube.initialize(transport, YOUTUBE_ID)
        await youtube.handle_message(yt_state(1))

        await youtube.destroy()
        await youtube.destroy()

        assert youtube.state == PlayerState.DESTROYED
        assert transport.commands.count("destroy") == 1
        assert not youtube.is_polling

    @pytest.mark.asyncio
    async def test_destroy_drops_listeners(
        self, vimeo: VideoProgressTracker, transport
    ) -> None:
        events: list[ProgressEvent] = []
        vimeo.on_progress(events.append)
        await vimeo.initialize(transport, VIMEO_ID)
        await vimeo.destroy()

        await vimeo.initialize(transport, VIMEO_ID)
        await vimeo.handle_message(timeupdate(50))

        assert events == []
