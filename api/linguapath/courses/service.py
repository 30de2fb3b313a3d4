"""Course/lesson directory service layer.

Read-only access to course documents and their lesson collections:
- Cached course lookups (explicit TTL cache owned by the directory)
- Lesson lookup and order adjacency (next/previous)
- Accessible-lesson listings using the shared unlock rule
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING
from uuid import UUID

from linguapath.core.cache import TTLCache
from linguapath.core.logging import get_logger

from .models import DEFAULT_COMPLETION_THRESHOLD, Course, Lesson, check_lesson_order
from .unlock import accessible_lessons, preview_lessons


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from linguapath.progress.repository import LessonProgressRepository


logger = get_logger(__name__)

# (user_id, course_id) -> passes the course-level access checks
CourseAccessCheck = Callable[[UUID, UUID], Awaitable[bool]]


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class LessonNotFoundError(CourseError):
    """Lesson not found in the course."""

    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


# ==============================================================================
# Course Directory
# ==============================================================================


class CourseDirectory:
    """Cached, read-only access to courses and their lessons."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        progress_repository: "LessonProgressRepository",
        cache: TTLCache[UUID, Course],
    ):
        """Initialize with Cassandra session and an owned course cache."""
        self.session = session
        self.keyspace = keyspace
        self.progress_repository = progress_repository
        self.cache = cache
        # Wired to the access control engine at startup; unset means previews only
        self.course_access: CourseAccessCheck | None = None
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._get_course_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_lessons WHERE course_id = ?
        """)

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get a course with its ordered lessons, or None if it does not exist.

        Found courses are cached for the cache TTL. Missing courses are not
        cached so a newly published course shows up immediately.
        """
        cached = self.cache.get(course_id)
        if cached is not None:
            return cached

        course_result, lesson_rows = await asyncio.gather(
            self.session.aexecute(self._get_course, [course_id]),
            self.session.aexecute(self._get_course_lessons, [course_id]),
        )
        row = course_result.one()
        if row is None:
            return None

        lessons = [Lesson.from_row(lesson_row) for lesson_row in lesson_rows]
        course = Course.from_row(row, lessons)

        problems = check_lesson_order(course.lessons)
        if problems:
            logger.warning(
                "lesson_order_invalid",
                course_id=str(course_id),
                problems=problems,
            )

        self.cache.set(course_id, course)
        return course

    async def get_completion_threshold(self, course_id: UUID) -> int:
        """Completion threshold of a course (default when the course is unknown)."""
        course = await self.get_course(course_id)
        if course is None:
            logger.warning("completion_threshold_defaulted", course_id=str(course_id))
            return DEFAULT_COMPLETION_THRESHOLD
        return course.completion_threshold

    def invalidate(self, course_id: UUID) -> None:
        """Drop a course from the cache (after it was edited)."""
        if self.cache.invalidate(course_id):
            logger.debug("course_cache_invalidated", course_id=str(course_id))

    def clear_cache(self) -> None:
        """Drop every cached course."""
        self.cache.clear()

    # ==========================================================================
    # Lessons
    # ==========================================================================

    async def get_lesson(self, course_id: UUID, lesson_id: UUID) -> Lesson | None:
        """Get one lesson of a course."""
        course = await self.get_course(course_id)
        return course.lesson_by_id(lesson_id) if course else None

    async def _adjacent_lesson(
        self, course_id: UUID, lesson_id: UUID, step: int
    ) -> Lesson | None:
        course = await self.get_course(course_id)
        if course is None:
            return None
        ids = [lesson.id for lesson in course.lessons]
        if lesson_id not in ids:
            return None
        index = ids.index(lesson_id) + step
        if 0 <= index < len(course.lessons):
            return course.lessons[index]
        return None

    async def get_next_lesson(self, course_id: UUID, lesson_id: UUID) -> Lesson | None:
        """Lesson following `lesson_id` in order, or None at the end."""
        return await self._adjacent_lesson(course_id, lesson_id, 1)

    async def get_previous_lesson(
        self, course_id: UUID, lesson_id: UUID
    ) -> Lesson | None:
        """Lesson preceding `lesson_id` in order, or None at the start."""
        return await self._adjacent_lesson(course_id, lesson_id, -1)

    async def get_accessible_lessons(
        self, user_id: UUID | None, course_id: UUID
    ) -> list[Lesson]:
        """Lessons the user may open, for navigation listings.

        Users without course access (anonymous, not enrolled, suspended,
        expired) only see preview lessons, as with the access control engine.
        """
        course = await self.get_course(course_id)
        if course is None:
            return []
        if user_id is None or self.course_access is None:
            return preview_lessons(course.lessons)
        if not await self.course_access(user_id, course_id):
            return preview_lessons(course.lessons)
        if not course.unlock_sequential:
            return list(course.lessons)

        completed = await self.progress_repository.completed_lesson_ids(
            user_id, course_id
        )
        return accessible_lessons(course.lessons, completed)
