"""Database models for lesson watch progress.

Cassandra table definitions for:
- Lesson progress: watch progress per (user, course, lesson)

Plus the value types used by the progress store: incoming snapshots, queued
(offline) updates, sync reports and the derived course progress.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from linguapath.courses.models import ensure_utc_aware


if TYPE_CHECKING:
    from linguapath.courses.models import Course


class SyncStatus(str, Enum):
    """State of a user's progress relative to the remote store."""

    PENDING = "pending"  # updates queued, not yet written
    SYNCING = "syncing"  # a resync is running
    SYNCED = "synced"  # nothing queued
    ERROR = "error"  # queued updates exhausted their retry budget


# ==============================================================================
# Helper Functions
# ==============================================================================

_PERCENT_QUANTUM = Decimal("0.01")


def compute_completion_percentage(watched_seconds: float, total_seconds: float) -> Decimal:
    """watched/total as a percentage, clamped to [0, 100]."""
    if total_seconds <= 0:
        return Decimal(0)
    ratio = Decimal(str(watched_seconds)) / Decimal(str(total_seconds)) * 100
    clamped = min(Decimal(100), max(Decimal(0), ratio))
    return clamped.quantize(_PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return ensure_utc_aware(value)
    return ensure_utc_aware(datetime.fromisoformat(value))


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Progress per lesson
# Partition key: (user_id, course_id) so a course's progress is one read
LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    user_id UUID,
    course_id UUID,
    lesson_id UUID,
    watched_seconds INT,
    total_seconds INT,
    completion_percentage DECIMAL,
    is_completed BOOLEAN,
    resume_position INT,
    first_watched_at TIMESTAMP,
    last_watched_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), lesson_id)
)
"""

PROGRESS_TABLES_CQL = [
    LESSON_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


class LessonProgress:
    """Watch progress of one user on one lesson.

    completion_percentage and is_completed are derived from the raw seconds
    and the course threshold when the record is written.

    Attributes:
        user_id: User UUID
        course_id: Course UUID (partition key with user_id)
        lesson_id: Lesson UUID
        watched_seconds: Furthest position watched
        total_seconds: Video duration
        completion_percentage: watched/total x 100, clamped to [0, 100]
        is_completed: completion_percentage >= course completion threshold
        resume_position: Position to resume playback from
        first_watched_at: First progress event (never overwritten)
        last_watched_at: Most recent progress event
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        watched_seconds: int = 0,
        total_seconds: int = 0,
        completion_percentage: Decimal = Decimal(0),
        is_completed: bool = False,
        resume_position: int = 0,
        first_watched_at: datetime | None = None,
        last_watched_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.watched_seconds = watched_seconds
        self.total_seconds = total_seconds
        self.completion_percentage = completion_percentage
        self.is_completed = is_completed
        self.resume_position = resume_position
        now = datetime.now(UTC)
        self.first_watched_at = ensure_utc_aware(first_watched_at) or now
        self.last_watched_at = ensure_utc_aware(last_watched_at) or now

    @classmethod
    def from_row(cls, row: Any) -> "LessonProgress":
        """Create LessonProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            lesson_id=row.lesson_id,
            watched_seconds=row.watched_seconds or 0,
            total_seconds=row.total_seconds or 0,
            completion_percentage=row.completion_percentage or Decimal(0),
            is_completed=bool(row.is_completed),
            resume_position=row.resume_position or 0,
            first_watched_at=row.first_watched_at,
            last_watched_at=row.last_watched_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "lesson_id": self.lesson_id,
            "watched_seconds": self.watched_seconds,
            "total_seconds": self.total_seconds,
            "completion_percentage": self.completion_percentage,
            "is_completed": self.is_completed,
            "resume_position": self.resume_position,
            "first_watched_at": self.first_watched_at,
            "last_watched_at": self.last_watched_at,
        }

    def __repr__(self) -> str:
        return (
            f"<LessonProgress user={self.user_id} lesson={self.lesson_id} "
            f"{self.completion_percentage}% completed={self.is_completed}>"
        )


@dataclass
class ProgressSnapshot:
    """Raw progress reported by a player.

    Only the raw seconds are accepted; completion is always recomputed.
    """

    watched_seconds: float
    total_seconds: float
    current_time: float = 0.0
    recorded_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        self.recorded_at = ensure_utc_aware(self.recorded_at) or datetime.now(UTC)

    def to_dict(self) -> dict[str, Any]:
        return {
            "watched_seconds": self.watched_seconds,
            "total_seconds": self.total_seconds,
            "current_time": self.current_time,
            "recorded_at": self.recorded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressSnapshot":
        return cls(
            watched_seconds=float(data["watched_seconds"]),
            total_seconds=float(data["total_seconds"]),
            current_time=float(data.get("current_time", 0.0)),
            recorded_at=_parse_datetime(data.get("recorded_at")) or datetime.now(UTC),
        )


@dataclass
class PendingUpdate:
    """A progress write waiting in the offline queue."""

    lesson_id: UUID
    course_id: UUID
    snapshot: ProgressSnapshot
    queued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    retry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "lesson_id": str(self.lesson_id),
            "course_id": str(self.course_id),
            "snapshot": self.snapshot.to_dict(),
            "queued_at": self.queued_at.isoformat(),
            "retry_count": self.retry_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingUpdate":
        return cls(
            lesson_id=UUID(data["lesson_id"]),
            course_id=UUID(data["course_id"]),
            snapshot=ProgressSnapshot.from_dict(data["snapshot"]),
            queued_at=_parse_datetime(data.get("queued_at")) or datetime.now(UTC),
            retry_count=int(data.get("retry_count", 0)),
        )


@dataclass
class SaveResult:
    """Outcome of ProgressStore.save_progress."""

    status: SyncStatus
    progress: LessonProgress | None = None

    @property
    def queued(self) -> bool:
        return self.status == SyncStatus.PENDING


@dataclass
class SyncReport:
    """Outcome of one resync pass over a user's queue."""

    status: SyncStatus
    synced: int = 0
    remaining: int = 0
    skipped_in_flight: int = 0
    exhausted_lesson_ids: list[UUID] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """Some entries exhausted their retry budget and stay queued."""
        return bool(self.exhausted_lesson_ids)


@dataclass
class SyncState:
    """Current sync state of one user's offline queue."""

    status: SyncStatus
    pending: int = 0
    scheduled: bool = False
    last_synced_at: datetime | None = None


@dataclass
class CourseProgress:
    """Progress over a whole course, derived from lesson progress."""

    course_id: UUID
    user_id: UUID
    overall_completion: int
    completed_lessons: int
    total_lessons: int
    current_lesson_id: UUID | None
    last_accessed_lesson_id: UUID | None
    total_watch_time: int
    estimated_time_remaining: int
    lessons: dict[UUID, LessonProgress] = field(default_factory=dict)


def build_course_progress(
    course: "Course",
    user_id: UUID,
    progress_by_lesson: dict[UUID, LessonProgress],
) -> CourseProgress:
    """Derive course progress from the course's lessons and lesson progress."""
    total = len(course.lessons)
    completed = [
        lesson
        for lesson in course.lessons
        if (p := progress_by_lesson.get(lesson.id)) is not None and p.is_completed
    ]

    current = next(
        (
            lesson.id
            for lesson in course.lessons
            if not (
                (p := progress_by_lesson.get(lesson.id)) is not None and p.is_completed
            )
        ),
        None,
    )

    last_accessed = max(
        progress_by_lesson.values(),
        key=lambda p: p.last_watched_at,
        default=None,
    )

    remaining = total - len(completed)
    average_duration = course.total_duration / total if total else 0

    return CourseProgress(
        course_id=course.id,
        user_id=user_id,
        overall_completion=round(len(completed) / total * 100) if total else 0,
        completed_lessons=len(completed),
        total_lessons=total,
        current_lesson_id=current,
        last_accessed_lesson_id=last_accessed.lesson_id if last_accessed else None,
        total_watch_time=sum(p.watched_seconds for p in progress_by_lesson.values()),
        estimated_time_remaining=round(remaining * average_duration),
        lessons=dict(progress_by_lesson),
    )
