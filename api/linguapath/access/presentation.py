"""Display directives for access denials.

Maps an AccessDenied to a title, a description, a severity and two recovery
actions. Stateless; unknown reasons fall back to the verification error view.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from .models import AccessDenied, AccessDeniedReason


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class AccessAction:
    """A recovery button. `retry` actions re-run the check instead of navigating."""

    label: str
    href: str | None = None
    retry: bool = False


@dataclass(frozen=True)
class AccessDeniedView:
    reason: AccessDeniedReason
    title: str
    description: str
    severity: Severity
    primary_action: AccessAction
    secondary_action: AccessAction
    course_id: UUID | None = None
    lesson_id: UUID | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason.value,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "primary_action": _action_dict(self.primary_action),
            "secondary_action": _action_dict(self.secondary_action),
            "course_id": str(self.course_id) if self.course_id else None,
            "lesson_id": str(self.lesson_id) if self.lesson_id else None,
        }


def _action_dict(action: AccessAction) -> dict[str, Any]:
    return {"label": action.label, "href": action.href, "retry": action.retry}


@dataclass(frozen=True)
class _ActionSpec:
    label: str
    # Template with {course_id}, and the href used when the course is unknown
    href: str | None = None
    fallback: str | None = None
    retry: bool = False

    def build(self, course_id: UUID | None) -> AccessAction:
        if self.retry:
            return AccessAction(label=self.label, retry=True)
        if self.href and "{course_id}" in self.href:
            href = self.href.format(course_id=course_id) if course_id else self.fallback
        else:
            href = self.href
        return AccessAction(label=self.label, href=href)


@dataclass(frozen=True)
class _ViewSpec:
    title: str
    description: str
    severity: Severity
    primary: _ActionSpec
    secondary: _ActionSpec


# ==============================================================================
# Reason Table
# ==============================================================================

DENIAL_VIEWS: dict[AccessDeniedReason, _ViewSpec] = {
    AccessDeniedReason.NOT_AUTHENTICATED: _ViewSpec(
        title="Authentication Required",
        description="You need to be logged in to access this content.",
        severity=Severity.WARNING,
        primary=_ActionSpec("Sign In", "/login"),
        secondary=_ActionSpec("Create Account", "/signup"),
    ),
    AccessDeniedReason.NOT_ENROLLED: _ViewSpec(
        title="Enrollment Required",
        description="You need to enroll in this course to access its content.",
        severity=Severity.INFO,
        primary=_ActionSpec("Enroll Now", "/courses/{course_id}/enroll", "/courses"),
        secondary=_ActionSpec("View Course Details", "/courses/{course_id}", "/courses"),
    ),
    AccessDeniedReason.PAYMENT_PENDING: _ViewSpec(
        title="Payment Processing",
        description="Your payment is being processed. This usually takes a few minutes.",
        severity=Severity.WARNING,
        primary=_ActionSpec("Check Payment Status", "/courses/{course_id}", "/dashboard"),
        secondary=_ActionSpec("Contact Support", "/support"),
    ),
    AccessDeniedReason.SUSPENDED: _ViewSpec(
        title="Access Suspended",
        description="Your access to this course has been temporarily suspended.",
        severity=Severity.ERROR,
        primary=_ActionSpec("Contact Support", "/support"),
        secondary=_ActionSpec("View My Courses", "/dashboard"),
    ),
    AccessDeniedReason.EXPIRED: _ViewSpec(
        title="Access Expired",
        description="Your access to this course has expired. Renew to continue learning.",
        severity=Severity.WARNING,
        primary=_ActionSpec("Renew Access", "/courses/{course_id}/enroll", "/courses"),
        secondary=_ActionSpec("View Other Courses", "/courses"),
    ),
    AccessDeniedReason.LESSON_LOCKED: _ViewSpec(
        title="Lesson Locked",
        description="This lesson is currently locked. Complete previous lessons to unlock it.",
        severity=Severity.INFO,
        primary=_ActionSpec("View Course Progress", "/learn/{course_id}", "/dashboard"),
        secondary=_ActionSpec("Go to Current Lesson", "/learn/{course_id}", "/dashboard"),
    ),
    AccessDeniedReason.PREVIOUS_LESSONS_INCOMPLETE: _ViewSpec(
        title="Previous Lessons Required",
        description=(
            "Complete the previous lessons first. "
            "You need to watch 80% of each lesson to proceed."
        ),
        severity=Severity.INFO,
        primary=_ActionSpec("Continue Learning", "/learn/{course_id}", "/dashboard"),
        secondary=_ActionSpec("View Progress", "/learn/{course_id}", "/dashboard"),
    ),
    AccessDeniedReason.COURSE_NOT_FOUND: _ViewSpec(
        title="Course Not Found",
        description="The requested course could not be found or may have been removed.",
        severity=Severity.ERROR,
        primary=_ActionSpec("Browse Courses", "/courses"),
        secondary=_ActionSpec("Go Home", "/"),
    ),
    AccessDeniedReason.LESSON_NOT_FOUND: _ViewSpec(
        title="Lesson Not Found",
        description="The requested lesson could not be found in this course.",
        severity=Severity.ERROR,
        primary=_ActionSpec("View Course", "/courses/{course_id}", "/courses"),
        secondary=_ActionSpec("Browse Courses", "/courses"),
    ),
    AccessDeniedReason.VERIFICATION_ERROR: _ViewSpec(
        title="Verification Error",
        description=(
            "Unable to verify your access. "
            "Please try again or contact support if the problem persists."
        ),
        severity=Severity.ERROR,
        primary=_ActionSpec("Try Again", retry=True),
        secondary=_ActionSpec("Contact Support", "/support"),
    ),
}


def present_denial(result: AccessDenied) -> AccessDeniedView:
    """Build the display directive for a denial.

    The denial's own message, when present, replaces the generic description.
    """
    try:
        reason = AccessDeniedReason(result.reason)
    except ValueError:
        reason = AccessDeniedReason.VERIFICATION_ERROR
    template = DENIAL_VIEWS.get(reason, DENIAL_VIEWS[AccessDeniedReason.VERIFICATION_ERROR])

    return AccessDeniedView(
        reason=reason,
        title=template.title,
        description=result.message or template.description,
        severity=template.severity,
        primary_action=template.primary.build(result.course_id),
        secondary_action=template.secondary.build(result.course_id),
        course_id=result.course_id,
        lesson_id=result.lesson_id,
    )
