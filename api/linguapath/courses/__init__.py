"""Course and lesson directory.

Provides:
- Course documents with ordered lessons
- TTL-cached course lookups
- Sequential unlock rule shared with access control
"""

from .models import COURSES_TABLES_CQL, Course, CourseLevel, Lesson, VideoProvider


__all__ = [
    "COURSES_TABLES_CQL",
    "Course",
    "CourseLevel",
    "Lesson",
    "VideoProvider",
]
