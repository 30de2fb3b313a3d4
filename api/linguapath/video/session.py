"""Binds a player tracker to a learner's lesson.

Progress events are saved to the progress store; the completion event is
logged and forwarded to the client. Player errors and state changes are
forwarded as well.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from linguapath.core.logging import get_logger
from linguapath.progress.models import ProgressSnapshot

from .errors import PlayerError
from .models import PlayerOptions, PlayerState, ProgressEvent, VideoMetadata


if TYPE_CHECKING:
    from linguapath.progress.service import ProgressStore

    from .errors import VideoPlayerError
    from .tracker import VideoProgressTracker
    from .transport import PlayerTransport


logger = get_logger(__name__)


class PlayerSession:
    """One learner watching one lesson through one tracker."""

    def __init__(
        self,
        tracker: "VideoProgressTracker",
        progress_store: "ProgressStore",
        transport: "PlayerTransport",
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
    ):
        self.tracker = tracker
        self.progress_store = progress_store
        self.transport = transport
        self.user_id = user_id
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.saves = 0
        self.queued_saves = 0

    def _bind(self) -> None:
        self.tracker.on_progress(self._on_progress)
        self.tracker.on_completion(self._on_completion)
        self.tracker.on_error(self._on_error)
        self.tracker.on_state_change(self._on_state_change)

    async def start(self, video_id: str, options: PlayerOptions | None = None) -> VideoMetadata:
        """Subscribe to the tracker and initialize the player."""
        self._bind()
        return await self.tracker.initialize(self.transport, video_id, options)

    async def close(self) -> None:
        await self.tracker.destroy()

    async def _on_progress(self, event: ProgressEvent) -> None:
        snapshot = ProgressSnapshot(
            watched_seconds=event.watched_seconds,
            total_seconds=event.duration,
            current_time=event.current_time,
        )
        result = await self.progress_store.save_progress(
            self.user_id, self.course_id, self.lesson_id, snapshot
        )
        self.saves += 1
        if result.queued:
            self.queued_saves += 1

        await self.transport.send(
            {
                "type": "progress",
                "progress": event.to_dict(),
                "sync_status": result.status.value,
                "is_completed": bool(result.progress and result.progress.is_completed),
            }
        )

    async def _on_completion(self, event: ProgressEvent) -> None:
        logger.info(
            "lesson_video_completed",
            user_id=str(self.user_id),
            course_id=str(self.course_id),
            lesson_id=str(self.lesson_id),
            completion_percentage=event.completion_percentage,
        )
        await self.transport.send(
            {
                "type": "completion",
                "lesson_id": str(self.lesson_id),
                "progress": event.to_dict(),
            }
        )

    async def _on_error(self, error: "VideoPlayerError") -> None:
        payload = error.to_dict() if isinstance(error, PlayerError) else {"message": error.message}
        await self.transport.send({"type": "error", "code": error.code, "error": payload})

    async def _on_state_change(self, state: PlayerState) -> None:
        await self.transport.send({"type": "state", "state": state.value})
