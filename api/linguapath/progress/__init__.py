"""Lesson progress module.

Provides:
- Durable lesson progress with resume position
- Offline queue for writes that could not reach the database
- Background resync of queued writes
- Course progress aggregation
"""

from .models import (
    PROGRESS_TABLES_CQL,
    CourseProgress,
    LessonProgress,
    ProgressSnapshot,
    SyncStatus,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "CourseProgress",
    "LessonProgress",
    "ProgressSnapshot",
    "SyncStatus",
]
