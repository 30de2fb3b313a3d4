"""Pydantic schemas for the course directory.

Response models for:
- Course documents with a lesson outline
- Lesson detail (including the video reference)
- Lesson navigation
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import Course, CourseLevel, Lesson, VideoProvider


# ==============================================================================
# Lesson Schemas
# ==============================================================================


class LessonSummary(BaseModel):
    """Lesson entry of a course outline. The video reference is not exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order: int
    title: str
    is_preview: bool
    duration: int = Field(description="Duration in seconds")

    @classmethod
    def from_entity(cls, entity: Lesson) -> "LessonSummary":
        return cls(
            id=entity.id,
            order=entity.order,
            title=entity.title,
            is_preview=entity.is_preview,
            duration=entity.duration,
        )


class LessonResponse(LessonSummary):
    """Full lesson, returned once access has been granted."""

    course_id: UUID
    description: str | None = None
    learning_objectives: list[str] = []
    video_provider: VideoProvider | None = None
    video_id: str | None = None

    @classmethod
    def from_entity(cls, entity: Lesson) -> "LessonResponse":
        return cls(
            id=entity.id,
            course_id=entity.course_id,
            order=entity.order,
            title=entity.title,
            is_preview=entity.is_preview,
            duration=entity.duration,
            description=entity.description,
            learning_objectives=entity.learning_objectives,
            video_provider=entity.video_provider,
            video_id=entity.video_id,
        )


class LessonNavigationResponse(BaseModel):
    """Neighbours of a lesson in course order."""

    lesson_id: UUID
    previous: LessonSummary | None = None
    next: LessonSummary | None = None


# ==============================================================================
# Course Schemas
# ==============================================================================


class CourseResponse(BaseModel):
    """Course document with its lesson outline."""

    id: UUID
    title: str
    description: str | None = None
    language: str
    level: CourseLevel
    price: Decimal
    currency: str
    is_free: bool
    completion_threshold: int = Field(description="Percent of a lesson to watch")
    unlock_sequential: bool
    total_duration: int = Field(description="Sum of lesson durations in seconds")
    enrollment_count: int
    rating: Decimal
    lessons: list[LessonSummary] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Course) -> "CourseResponse":
        """Create response from entity."""
        return cls(
            id=entity.id,
            title=entity.title,
            description=entity.description,
            language=entity.language,
            level=entity.level,
            price=entity.price,
            currency=entity.currency,
            is_free=entity.is_free,
            completion_threshold=entity.completion_threshold,
            unlock_sequential=entity.unlock_sequential,
            total_duration=entity.total_duration,
            enrollment_count=entity.enrollment_count,
            rating=entity.rating,
            lessons=[LessonSummary.from_entity(lesson) for lesson in entity.lessons],
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class LessonListResponse(BaseModel):
    """Lessons a user may open."""

    course_id: UUID
    items: list[LessonSummary]
    total: int
