"""Lesson progress store.

Business logic for:
- Saving watch progress (remote write, offline queue on failure)
- Resyncing queued updates with a bounded retry budget
- Manual lesson completion
- Course progress aggregation
"""

import asyncio
import math
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from linguapath.core.logging import get_logger

from .models import (
    CourseProgress,
    LessonProgress,
    PendingUpdate,
    ProgressSnapshot,
    SaveResult,
    SyncReport,
    SyncState,
    SyncStatus,
    build_course_progress,
    compute_completion_percentage,
)


if TYPE_CHECKING:
    from linguapath.courses.service import CourseDirectory

    from .queue import PendingProgressQueue
    from .repository import LessonProgressRepository


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ProgressCourseNotFoundError(ProgressError):
    """Course not found."""

    def __init__(self, message: str = "The requested course could not be found"):
        super().__init__(message, "course_not_found")


class ProgressLessonNotFoundError(ProgressError):
    """Lesson not found in the course."""

    def __init__(self, message: str = "The requested lesson could not be found"):
        super().__init__(message, "lesson_not_found")


# ==============================================================================
# Helpers
# ==============================================================================


def _seconds(value: float) -> int:
    """Whole, non-negative seconds; NaN and infinities count as 0."""
    if value is None or math.isnan(value) or math.isinf(value):
        return 0
    return max(0, int(value))


def merge_progress(
    existing: LessonProgress | None,
    user_id: UUID,
    course_id: UUID,
    lesson_id: UUID,
    snapshot: ProgressSnapshot,
    completion_threshold: int,
) -> LessonProgress:
    """Merge a snapshot into the stored record.

    watched_seconds only grows. total_seconds, resume_position and
    last_watched_at follow whichever of the two is more recent. The derived
    fields are always recomputed and completion never reverts.
    """
    watched = _seconds(snapshot.watched_seconds)
    total = _seconds(snapshot.total_seconds)
    resume = _seconds(snapshot.current_time)
    recorded_at = snapshot.recorded_at
    first_watched_at = recorded_at
    was_completed = False

    if existing is not None:
        watched = max(existing.watched_seconds, watched)
        first_watched_at = existing.first_watched_at
        was_completed = existing.is_completed
        if existing.last_watched_at > recorded_at:
            # Older snapshot delivered late
            total = existing.total_seconds or total
            resume = existing.resume_position
            recorded_at = existing.last_watched_at
        elif not total:
            total = existing.total_seconds

    percentage = compute_completion_percentage(watched, total)
    return LessonProgress(
        user_id=user_id,
        course_id=course_id,
        lesson_id=lesson_id,
        watched_seconds=watched,
        total_seconds=total,
        completion_percentage=percentage,
        is_completed=was_completed or percentage >= completion_threshold,
        resume_position=resume,
        first_watched_at=first_watched_at,
        last_watched_at=recorded_at,
    )


# ==============================================================================
# Progress Store
# ==============================================================================


class ProgressStore:
    """Durable lesson progress with an offline queue.

    Writes never raise: a failed write is queued and replayed later by
    sync_pending. Reads return None on failure.
    """

    def __init__(
        self,
        repository: "LessonProgressRepository",
        directory: "CourseDirectory",
        queue: "PendingProgressQueue",
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        on_queued: Callable[[UUID], None] | None = None,
    ):
        self.repository = repository
        self.directory = directory
        self.queue = queue
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.on_queued = on_queued

        # (user_id, lesson_id) pairs being replayed right now
        self._in_flight: set[tuple[UUID, UUID]] = set()
        self._syncing: dict[UUID, int] = {}
        self._last_report: dict[UUID, SyncReport] = {}
        self._last_synced_at: dict[UUID, datetime] = {}

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def _write(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        snapshot: ProgressSnapshot,
    ) -> LessonProgress:
        threshold = await self.directory.get_completion_threshold(course_id)
        existing = await self.repository.get(user_id, course_id, lesson_id)
        progress = merge_progress(
            existing, user_id, course_id, lesson_id, snapshot, threshold
        )
        await self.repository.upsert(progress)

        if progress.is_completed and not (existing and existing.is_completed):
            logger.info(
                "lesson_completed",
                user_id=str(user_id),
                course_id=str(course_id),
                lesson_id=str(lesson_id),
                completion_percentage=str(progress.completion_percentage),
            )
        return progress

    async def save_progress(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        snapshot: ProgressSnapshot,
    ) -> SaveResult:
        """Write progress, queueing it for resync if the write fails.

        Returns:
            SaveResult with status synced (written), pending (queued) or
            error (the queue itself was unavailable; the update is lost)
        """
        try:
            progress = await self._write(user_id, course_id, lesson_id, snapshot)
            return SaveResult(status=SyncStatus.SYNCED, progress=progress)
        except Exception as e:
            logger.warning(
                "progress_write_failed",
                user_id=str(user_id),
                lesson_id=str(lesson_id),
                error=str(e),
                error_type=type(e).__name__,
            )

        try:
            await self.queue.enqueue(
                user_id,
                PendingUpdate(lesson_id=lesson_id, course_id=course_id, snapshot=snapshot),
            )
        except Exception as e:
            logger.error(
                "progress_queue_failed",
                user_id=str(user_id),
                lesson_id=str(lesson_id),
                error=str(e),
            )
            return SaveResult(status=SyncStatus.ERROR)

        logger.info("progress_queued", user_id=str(user_id), lesson_id=str(lesson_id))
        if self.on_queued is not None:
            self.on_queued(user_id)
        return SaveResult(status=SyncStatus.PENDING)

    async def mark_lesson_completed(
        self, user_id: UUID, course_id: UUID, lesson_id: UUID
    ) -> SaveResult:
        """Record the whole lesson as watched."""
        lesson = await self.directory.get_lesson(course_id, lesson_id)
        if lesson is None:
            raise ProgressLessonNotFoundError

        duration = max(lesson.duration, 1)
        snapshot = ProgressSnapshot(
            watched_seconds=duration,
            total_seconds=duration,
            current_time=duration,
        )
        return await self.save_progress(user_id, course_id, lesson_id, snapshot)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_progress(
        self, user_id: UUID, course_id: UUID, lesson_id: UUID
    ) -> LessonProgress | None:
        """Get lesson progress; None when missing or unreadable."""
        try:
            return await self.repository.get(user_id, course_id, lesson_id)
        except Exception as e:
            logger.warning(
                "progress_read_failed",
                user_id=str(user_id),
                lesson_id=str(lesson_id),
                error=str(e),
            )
            return None

    async def get_course_progress(self, user_id: UUID, course_id: UUID) -> CourseProgress:
        """Progress over a whole course.

        Raises:
            ProgressCourseNotFoundError: If the course does not exist
        """
        course = await self.directory.get_course(course_id)
        if course is None:
            raise ProgressCourseNotFoundError

        try:
            by_lesson = await self.repository.list_for_course(user_id, course_id)
        except Exception as e:
            logger.warning(
                "course_progress_read_failed",
                user_id=str(user_id),
                course_id=str(course_id),
                error=str(e),
            )
            by_lesson = {}

        known = {lesson.id for lesson in course.lessons}
        return build_course_progress(
            course,
            user_id,
            {lesson_id: p for lesson_id, p in by_lesson.items() if lesson_id in known},
        )

    async def calculate_total_watch_time(self, user_id: UUID, course_id: UUID) -> int:
        """Sum of watched seconds over the course's lessons."""
        course_progress = await self.get_course_progress(user_id, course_id)
        return course_progress.total_watch_time

    # ==========================================================================
    # Offline Resync
    # ==========================================================================

    async def _apply_with_retries(self, user_id: UUID, entry: PendingUpdate) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self._write(user_id, entry.course_id, entry.lesson_id, entry.snapshot)
                return True
            except Exception as e:
                logger.warning(
                    "progress_resync_attempt_failed",
                    user_id=str(user_id),
                    lesson_id=str(entry.lesson_id),
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e),
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay_seconds)
        return False

    async def sync_pending(self, user_id: UUID) -> SyncReport:
        """Replay the user's queued updates.

        Each entry gets max_attempts tries. Entries that still fail stay
        queued with their retry_count increased and the report is degraded.
        Entries another call is already replaying are skipped, and an entry
        replaced by a newer update while in flight stays queued.
        """
        try:
            entries = await self.queue.entries(user_id)
        except Exception as e:
            logger.error("offline_queue_read_failed", user_id=str(user_id), error=str(e))
            return SyncReport(status=SyncStatus.ERROR)

        if not entries:
            return SyncReport(status=SyncStatus.SYNCED)

        report = SyncReport(status=SyncStatus.SYNCING)
        self._syncing[user_id] = self._syncing.get(user_id, 0) + 1
        logger.info("progress_resync_started", user_id=str(user_id), entries=len(entries))

        try:
            for entry in entries:
                key = (user_id, entry.lesson_id)
                if key in self._in_flight:
                    report.skipped_in_flight += 1
                    continue

                self._in_flight.add(key)
                try:
                    if await self._apply_with_retries(user_id, entry):
                        await self.queue.remove_if_unchanged(user_id, entry)
                        report.synced += 1
                    else:
                        await self.queue.record_failure(user_id, entry)
                        report.exhausted_lesson_ids.append(entry.lesson_id)
                finally:
                    self._in_flight.discard(key)

            report.remaining = await self.queue.count(user_id)
        except Exception as e:
            logger.error("progress_resync_failed", user_id=str(user_id), error=str(e))
            report.status = SyncStatus.ERROR
            return report
        finally:
            self._syncing[user_id] -= 1
            if not self._syncing[user_id]:
                del self._syncing[user_id]

        if report.degraded:
            report.status = SyncStatus.ERROR
        elif report.remaining:
            report.status = SyncStatus.PENDING
        else:
            report.status = SyncStatus.SYNCED

        self._last_synced_at[user_id] = datetime.now(UTC)
        if report.remaining:
            self._last_report[user_id] = report
        else:
            self._last_report.pop(user_id, None)

        log = logger.warning if report.degraded else logger.info
        log(
            "progress_resync_finished",
            user_id=str(user_id),
            synced=report.synced,
            remaining=report.remaining,
            skipped_in_flight=report.skipped_in_flight,
            exhausted=len(report.exhausted_lesson_ids),
        )
        return report

    def forget(self, user_id: UUID) -> None:
        """Drop the user's sync bookkeeping (logout). Queued entries stay."""
        self._last_report.pop(user_id, None)
        self._last_synced_at.pop(user_id, None)

    async def get_sync_status(self, user_id: UUID, scheduled: bool = False) -> SyncState:
        """Pending count and status of the user's offline queue."""
        pending = await self.queue.count(user_id)
        last = self._last_report.get(user_id)

        if user_id in self._syncing:
            status = SyncStatus.SYNCING
        elif not pending:
            status = SyncStatus.SYNCED
        elif last is not None and last.degraded:
            status = SyncStatus.ERROR
        else:
            status = SyncStatus.PENDING

        return SyncState(
            status=status,
            pending=pending,
            scheduled=scheduled,
            last_synced_at=self._last_synced_at.get(user_id),
        )
