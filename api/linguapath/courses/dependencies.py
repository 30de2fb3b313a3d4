"""FastAPI dependencies for the course directory.

Provides dependency injection for:
- CourseDirectory instance
- Error handlers
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .service import CourseDirectory, CourseError


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_course_directory_getter: Callable[[], CourseDirectory] | None = None


def set_course_directory_getter(getter: Callable[[], CourseDirectory]) -> None:
    """Set the course directory getter function."""
    global _course_directory_getter  # noqa: PLW0603 - Required for DI pattern
    _course_directory_getter = getter


def get_course_directory() -> CourseDirectory:
    """Get CourseDirectory instance from app state."""
    if _course_directory_getter is None:
        msg = "CourseDirectory not configured"
        raise RuntimeError(msg)
    return _course_directory_getter()


CourseDirectoryDep = Annotated[CourseDirectory, Depends(get_course_directory)]


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert course errors to HTTP exceptions."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
