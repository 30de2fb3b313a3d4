"""Pydantic schemas for lesson progress.

Request and response models for:
- Progress updates from the player (raw seconds only)
- Manual lesson completion
- Course progress
- Offline queue sync
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    CourseProgress,
    LessonProgress,
    SaveResult,
    SyncReport,
    SyncState,
    SyncStatus,
)


# ==============================================================================
# Lesson Progress Schemas
# ==============================================================================


class UpdateProgressRequest(BaseModel):
    """Raw progress reported by the player.

    Completion is always recomputed server-side from these values and the
    course's completion threshold.
    """

    course_id: UUID = Field(..., description="Course UUID")
    watched_seconds: float = Field(..., ge=0, description="Furthest position watched")
    total_seconds: float = Field(..., ge=0, description="Video duration in seconds")
    current_time: float = Field(0.0, ge=0, description="Current playback position")


class MarkLessonCompleteRequest(BaseModel):
    """Request to mark a lesson as fully watched."""

    course_id: UUID = Field(..., description="Course UUID")


class LessonProgressResponse(BaseModel):
    """Lesson progress response."""

    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    course_id: UUID
    watched_seconds: int
    total_seconds: int
    completion_percentage: Decimal = Field(description="0-100 percentage")
    is_completed: bool
    resume_position: int = Field(description="Resume position in seconds")
    first_watched_at: datetime
    last_watched_at: datetime

    @classmethod
    def from_entity(cls, entity: LessonProgress) -> "LessonProgressResponse":
        """Create response from entity."""
        return cls(
            lesson_id=entity.lesson_id,
            course_id=entity.course_id,
            watched_seconds=entity.watched_seconds,
            total_seconds=entity.total_seconds,
            completion_percentage=entity.completion_percentage,
            is_completed=entity.is_completed,
            resume_position=entity.resume_position,
            first_watched_at=entity.first_watched_at,
            last_watched_at=entity.last_watched_at,
        )


class SaveProgressResponse(BaseModel):
    """Outcome of a progress write.

    `pending` means the write was queued and will be replayed later;
    `progress` is then absent.
    """

    sync_status: SyncStatus
    progress: LessonProgressResponse | None = None

    @classmethod
    def from_result(cls, result: SaveResult) -> "SaveProgressResponse":
        return cls(
            sync_status=result.status,
            progress=LessonProgressResponse.from_entity(result.progress)
            if result.progress
            else None,
        )


# ==============================================================================
# Course Progress Schemas
# ==============================================================================


class CourseProgressResponse(BaseModel):
    """Progress over a whole course."""

    course_id: UUID
    overall_completion: int = Field(description="Percent of lessons completed")
    completed_lessons: int
    total_lessons: int
    current_lesson_id: UUID | None = None
    last_accessed_lesson_id: UUID | None = None
    total_watch_time: int = Field(description="Seconds watched over all lessons")
    estimated_time_remaining: int = Field(description="Seconds left, estimated")
    lessons: list[LessonProgressResponse] = []

    @classmethod
    def from_entity(cls, entity: CourseProgress) -> "CourseProgressResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            overall_completion=entity.overall_completion,
            completed_lessons=entity.completed_lessons,
            total_lessons=entity.total_lessons,
            current_lesson_id=entity.current_lesson_id,
            last_accessed_lesson_id=entity.last_accessed_lesson_id,
            total_watch_time=entity.total_watch_time,
            estimated_time_remaining=entity.estimated_time_remaining,
            lessons=[LessonProgressResponse.from_entity(p) for p in entity.lessons.values()],
        )


# ==============================================================================
# Sync Schemas
# ==============================================================================


class SyncReportResponse(BaseModel):
    """Outcome of one resync pass."""

    status: SyncStatus
    synced: int
    remaining: int
    skipped_in_flight: int
    degraded: bool
    exhausted_lesson_ids: list[UUID] = []

    @classmethod
    def from_report(cls, report: SyncReport) -> "SyncReportResponse":
        return cls(
            status=report.status,
            synced=report.synced,
            remaining=report.remaining,
            skipped_in_flight=report.skipped_in_flight,
            degraded=report.degraded,
            exhausted_lesson_ids=report.exhausted_lesson_ids,
        )


class SyncStateResponse(BaseModel):
    """Current state of the user's offline queue."""

    status: SyncStatus
    pending: int
    scheduled: bool
    last_synced_at: datetime | None = None

    @classmethod
    def from_state(cls, state: SyncState) -> "SyncStateResponse":
        return cls(
            status=state.status,
            pending=state.pending,
            scheduled=state.scheduled,
            last_synced_at=state.last_synced_at,
        )
