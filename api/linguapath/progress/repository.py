"""Cassandra access to the lesson_progress table.

Plain reads and writes with no fallback: errors propagate. The progress
store layers the offline queue on top; the directory and the access engine
read through this repository directly so lookup failures stay visible.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from .models import LessonProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session


class LessonProgressRepository:
    """Reads and upserts LessonProgress rows."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_lesson_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress
            WHERE user_id = ? AND course_id = ? AND lesson_id = ?
        """)

        self._get_course_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress
            WHERE user_id = ? AND course_id = ?
        """)

        self._upsert_lesson_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_progress
            (user_id, course_id, lesson_id, watched_seconds, total_seconds,
             completion_percentage, is_completed, resume_position,
             first_watched_at, last_watched_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

    async def get(
        self, user_id: UUID, course_id: UUID, lesson_id: UUID
    ) -> LessonProgress | None:
        """Get progress for one lesson."""
        result = await self.session.aexecute(
            self._get_lesson_progress, [user_id, course_id, lesson_id]
        )
        row = result.one()
        return LessonProgress.from_row(row) if row else None

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> dict[UUID, LessonProgress]:
        """All lesson progress of a user in a course, keyed by lesson id."""
        rows = await self.session.aexecute(
            self._get_course_progress, [user_id, course_id]
        )
        return {row.lesson_id: LessonProgress.from_row(row) for row in rows}

    async def completed_lesson_ids(self, user_id: UUID, course_id: UUID) -> set[UUID]:
        """Ids of the lessons the user has completed in a course."""
        progress = await self.list_for_course(user_id, course_id)
        return {lesson_id for lesson_id, p in progress.items() if p.is_completed}

    async def upsert(self, progress: LessonProgress) -> None:
        """Write a progress record (insert or overwrite)."""
        await self.session.aexecute(
            self._upsert_lesson_progress,
            [
                progress.user_id,
                progress.course_id,
                progress.lesson_id,
                progress.watched_seconds,
                progress.total_seconds,
                progress.completion_percentage,
                progress.is_completed,
                progress.resume_position,
                progress.first_watched_at,
                progress.last_watched_at,
            ],
        )
