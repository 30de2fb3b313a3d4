"""Database models for the course catalog.

Cassandra table definitions for:
- Courses: course documents with unlock settings and aggregates
- Course lessons: the lesson collection of a course, clustered by order

Courses and lessons are written by the authoring side; this service only
reads them (the enrollment counter is the one field it updates).
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


DEFAULT_COMPLETION_THRESHOLD = 80


class CourseLevel(str, Enum):
    """Course difficulty level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class VideoProvider(str, Enum):
    """Hosting provider of a lesson video."""

    YOUTUBE = "youtube"  # polling-based player
    VIMEO = "vimeo"  # event-based player


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    language TEXT,
    level TEXT,
    price DECIMAL,
    currency TEXT,
    completion_threshold INT,
    unlock_sequential BOOLEAN,
    total_duration INT,
    enrollment_count INT,
    rating DECIMAL,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lesson collection of a course
# Partition key: course_id, so one read returns the whole ordered collection
COURSE_LESSONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_lessons (
    course_id UUID,
    lesson_order INT,
    lesson_id UUID,
    title TEXT,
    description TEXT,
    is_preview BOOLEAN,
    duration_seconds INT,
    learning_objectives LIST<TEXT>,
    video_provider TEXT,
    video_id TEXT,
    PRIMARY KEY (course_id, lesson_order, lesson_id)
) WITH CLUSTERING ORDER BY (lesson_order ASC, lesson_id ASC)
"""

COURSES_TABLES_CQL = [
    COURSES_TABLE_CQL,
    COURSE_LESSONS_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class Lesson:
    """A lesson of a course. Preview lessons bypass enrollment gating."""

    id: UUID
    course_id: UUID
    order: int
    title: str = ""
    description: str | None = None
    is_preview: bool = False
    duration: int = 0  # seconds
    learning_objectives: list[str] = field(default_factory=list)
    video_provider: VideoProvider | None = None
    video_id: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        """Create Lesson instance from a course_lessons row."""
        return cls(
            id=row.lesson_id,
            course_id=row.course_id,
            order=row.lesson_order,
            title=row.title or "",
            description=row.description,
            is_preview=bool(row.is_preview),
            duration=row.duration_seconds or 0,
            learning_objectives=list(row.learning_objectives or []),
            video_provider=VideoProvider(row.video_provider)
            if row.video_provider
            else None,
            video_id=row.video_id,
        )


@dataclass
class Course:
    """Course document with its lessons sorted by order."""

    id: UUID
    title: str
    language: str = ""
    level: CourseLevel = CourseLevel.BEGINNER
    price: Decimal = Decimal(0)
    currency: str = "INR"
    completion_threshold: int = DEFAULT_COMPLETION_THRESHOLD
    unlock_sequential: bool = True
    lessons: list[Lesson] = field(default_factory=list)
    total_duration: int = 0  # seconds
    enrollment_count: int = 0
    rating: Decimal = Decimal(0)
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.lessons = sorted(self.lessons, key=lambda lesson: lesson.order)
        if not self.total_duration:
            self.total_duration = sum(lesson.duration for lesson in self.lessons)
        self.created_at = ensure_utc_aware(self.created_at)
        self.updated_at = ensure_utc_aware(self.updated_at)

    @property
    def is_free(self) -> bool:
        """Check if the course costs nothing."""
        return self.price <= 0

    def lesson_by_id(self, lesson_id: UUID) -> Lesson | None:
        """Find a lesson of this course by id."""
        return next((lesson for lesson in self.lessons if lesson.id == lesson_id), None)

    @classmethod
    def from_row(cls, row: Any, lessons: list[Lesson] | None = None) -> "Course":
        """Create Course instance from a courses row and its lesson rows."""
        return cls(
            id=row.id,
            title=row.title or "",
            language=row.language or "",
            level=CourseLevel(row.level) if row.level else CourseLevel.BEGINNER,
            price=row.price or Decimal(0),
            currency=row.currency or "INR",
            completion_threshold=row.completion_threshold
            if row.completion_threshold is not None
            else DEFAULT_COMPLETION_THRESHOLD,
            unlock_sequential=True
            if row.unlock_sequential is None
            else row.unlock_sequential,
            lessons=lessons or [],
            total_duration=row.total_duration or 0,
            enrollment_count=row.enrollment_count or 0,
            rating=row.rating or Decimal(0),
            description=row.description,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


def check_lesson_order(lessons: list[Lesson]) -> list[str]:
    """Report violations of the lesson ordering invariant.

    Orders must be unique, start at 0 and be contiguous. Returns a list of
    human-readable problems (empty when the collection is well formed).
    """
    problems: list[str] = []
    orders = sorted(lesson.order for lesson in lessons)
    if not orders:
        return problems

    duplicates = sorted({o for o in orders if orders.count(o) > 1})
    if duplicates:
        problems.append(f"duplicate orders: {duplicates}")
    if orders[0] != 0:
        problems.append(f"first order is {orders[0]}, expected 0")

    unique = sorted(set(orders))
    gaps = [
        (prev, nxt) for prev, nxt in zip(unique, unique[1:], strict=False) if nxt - prev > 1
    ]
    if gaps:
        problems.append(f"order gaps: {gaps}")
    return problems
