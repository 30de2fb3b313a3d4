"""FastAPI dependencies for enrollments.

Provides dependency injection for:
- EnrollmentRegistry instance
- Error handlers
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .service import EnrollmentError, EnrollmentRegistry


_enrollment_registry_getter: Callable[[], EnrollmentRegistry] | None = None


def set_enrollment_registry_getter(getter: Callable[[], EnrollmentRegistry]) -> None:
    """Set the enrollment registry getter function."""
    global _enrollment_registry_getter  # noqa: PLW0603 - Required for DI pattern
    _enrollment_registry_getter = getter


def get_enrollment_registry() -> EnrollmentRegistry:
    """Get EnrollmentRegistry instance from app state."""
    if _enrollment_registry_getter is None:
        msg = "EnrollmentRegistry not configured"
        raise RuntimeError(msg)
    return _enrollment_registry_getter()


# Type alias for dependency injection
EnrollmentRegistryDep = Annotated[EnrollmentRegistry, Depends(get_enrollment_registry)]


def handle_enrollment_error(error: EnrollmentError) -> HTTPException:
    """Convert enrollment errors to HTTP exceptions.

    Args:
        error: Enrollment error

    Returns:
        HTTPException with appropriate status code
    """
    status_map = {
        "already_enrolled": status.HTTP_409_CONFLICT,
        "enrollment_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
