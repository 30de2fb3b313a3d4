"""FastAPI dependencies for access control.

Provides dependency injection for:
- AccessControlEngine instance
- Conversion of denials into HTTP errors for content endpoints
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .models import AccessDenied, AccessDeniedReason
from .presentation import present_denial
from .service import AccessControlEngine


_access_engine_getter: Callable[[], AccessControlEngine] | None = None


def set_access_engine_getter(getter: Callable[[], AccessControlEngine]) -> None:
    """Set the access engine getter function."""
    global _access_engine_getter  # noqa: PLW0603 - Required for DI pattern
    _access_engine_getter = getter


def get_access_engine() -> AccessControlEngine:
    """Get AccessControlEngine instance from app state."""
    if _access_engine_getter is None:
        msg = "AccessControlEngine not configured"
        raise RuntimeError(msg)
    return _access_engine_getter()


AccessEngineDep = Annotated[AccessControlEngine, Depends(get_access_engine)]


def handle_access_denied(denial: AccessDenied) -> HTTPException:
    """Convert a denial into an HTTP error carrying the access-denied view.

    Used by endpoints that serve protected content; the check endpoints
    themselves answer 200 with the verdict.
    """
    status_map = {
        AccessDeniedReason.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
        AccessDeniedReason.COURSE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
        AccessDeniedReason.LESSON_NOT_FOUND: status.HTTP_404_NOT_FOUND,
        AccessDeniedReason.VERIFICATION_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    status_code = status_map.get(denial.reason, status.HTTP_403_FORBIDDEN)

    detail = present_denial(denial).to_dict()
    detail["message"] = denial.message
    detail["redirect_to"] = denial.redirect_to
    return HTTPException(status_code=status_code, detail=detail)
