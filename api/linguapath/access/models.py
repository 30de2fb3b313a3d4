"""Access decision types.

An access check yields either AccessGranted or AccessDenied. Denials carry
an AccessDeniedReason, a user-facing message and a redirect hint.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal
from uuid import UUID


if TYPE_CHECKING:
    from linguapath.enrollments.models import Enrollment


class AccessDeniedReason(str, Enum):
    """Why access was refused. Each reason maps to one recovery action."""

    NOT_AUTHENTICATED = "not_authenticated"
    NOT_ENROLLED = "not_enrolled"
    PAYMENT_PENDING = "payment_pending"
    SUSPENDED = "suspended"
    EXPIRED = "expired"
    LESSON_LOCKED = "lesson_locked"
    PREVIOUS_LESSONS_INCOMPLETE = "previous_lessons_incomplete"
    COURSE_NOT_FOUND = "course_not_found"
    LESSON_NOT_FOUND = "lesson_not_found"
    VERIFICATION_ERROR = "verification_error"


@dataclass(frozen=True)
class AccessControlConfig:
    """Independent toggles of the access control engine."""

    require_authentication: bool = True
    require_enrollment: bool = True
    check_sequential_unlock: bool = True
    allow_preview_lessons: bool = True


@dataclass(frozen=True)
class AccessGranted:
    course_id: UUID
    lesson_id: UUID | None = None
    has_access: Literal[True] = True


@dataclass(frozen=True)
class AccessDenied:
    reason: AccessDeniedReason
    course_id: UUID | None = None
    lesson_id: UUID | None = None
    message: str = ""
    redirect_to: str | None = None
    has_access: Literal[False] = False

    def with_lesson(self, lesson_id: UUID) -> "AccessDenied":
        """Same denial with lesson context attached."""
        return AccessDenied(
            reason=self.reason,
            course_id=self.course_id,
            lesson_id=lesson_id,
            message=self.message,
            redirect_to=self.redirect_to,
        )


AccessCheckResult = AccessGranted | AccessDenied


@dataclass(frozen=True)
class EnrollmentStatusReport:
    """Enrollment of a user plus the course-level verdict."""

    is_enrolled: bool
    enrollment: "Enrollment | None"
    access: AccessCheckResult


@dataclass(frozen=True)
class RouteAccessDecision:
    """Verdict for a page route."""

    allowed: bool
    redirect_to: str | None = None
    reason: AccessDeniedReason | None = None
    message: str | None = None
