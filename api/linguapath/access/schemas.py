"""Pydantic schemas for access checks.

A check always answers 200 with the verdict; denials carry the display
directive for the access-denied screen.
"""

from uuid import UUID

from pydantic import BaseModel, Field

from linguapath.courses.schemas import LessonSummary
from linguapath.enrollments.schemas import EnrollmentResponse

from .models import (
    AccessCheckResult,
    AccessDenied,
    AccessDeniedReason,
    EnrollmentStatusReport,
    RouteAccessDecision,
)
from .presentation import present_denial


class AccessActionSchema(BaseModel):
    label: str
    href: str | None = None
    retry: bool = False


class AccessDeniedViewSchema(BaseModel):
    """What the access-denied screen shows."""

    reason: AccessDeniedReason
    title: str
    description: str
    severity: str
    primary_action: AccessActionSchema
    secondary_action: AccessActionSchema
    course_id: UUID | None = None
    lesson_id: UUID | None = None


class AccessCheckResponse(BaseModel):
    """Verdict of one access check."""

    has_access: bool
    course_id: UUID | None = None
    lesson_id: UUID | None = None
    reason: AccessDeniedReason | None = None
    message: str | None = None
    redirect_to: str | None = None
    view: AccessDeniedViewSchema | None = None

    @classmethod
    def from_result(cls, result: AccessCheckResult) -> "AccessCheckResponse":
        if isinstance(result, AccessDenied):
            return cls(
                has_access=False,
                course_id=result.course_id,
                lesson_id=result.lesson_id,
                reason=result.reason,
                message=result.message,
                redirect_to=result.redirect_to,
                view=AccessDeniedViewSchema(**present_denial(result).to_dict()),
            )
        return cls(
            has_access=True,
            course_id=result.course_id,
            lesson_id=result.lesson_id,
        )


class AccessibleLessonsResponse(BaseModel):
    course_id: UUID
    items: list[LessonSummary]
    total: int


class EnrollmentStatusResponse(BaseModel):
    """Enrollment of the user plus the course-level verdict."""

    is_enrolled: bool
    enrollment: EnrollmentResponse | None = None
    access: AccessCheckResponse

    @classmethod
    def from_report(cls, report: EnrollmentStatusReport) -> "EnrollmentStatusResponse":
        return cls(
            is_enrolled=report.is_enrolled,
            enrollment=EnrollmentResponse.from_entity(report.enrollment)
            if report.enrollment
            else None,
            access=AccessCheckResponse.from_result(report.access),
        )


class RouteAccessRequest(BaseModel):
    """Page route to validate, e.g. /learn/<course_id>/<lesson_id>."""

    pathname: str = Field(..., min_length=1, max_length=2000)


class RouteAccessResponse(BaseModel):
    allowed: bool
    redirect_to: str | None = None
    reason: AccessDeniedReason | None = None
    message: str | None = None

    @classmethod
    def from_decision(cls, decision: RouteAccessDecision) -> "RouteAccessResponse":
        return cls(
            allowed=decision.allowed,
            redirect_to=decision.redirect_to,
            reason=decision.reason,
            message=decision.message,
        )
