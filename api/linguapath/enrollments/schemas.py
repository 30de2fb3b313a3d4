"""Pydantic schemas for enrollments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import Enrollment, EnrollmentStatus


class EnrollRequest(BaseModel):
    """Request to enroll in a course."""

    course_id: UUID = Field(..., description="Course UUID to enroll in")
    payment_id: str | None = Field(
        None, max_length=200, description="Payment reference, when the course is paid"
    )


class UpdateEnrollmentStatusRequest(BaseModel):
    """Status change of an enrollment (suspend, complete, reactivate)."""

    status: EnrollmentStatus
    access_expires_at: datetime | None = Field(
        None, description="New end of the access window"
    )


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    user_id: UUID
    status: EnrollmentStatus
    payment_id: str | None = None
    access_expires_at: datetime | None = None
    enrolled_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            user_id=entity.user_id,
            status=EnrollmentStatus(entity.status),
            payment_id=entity.payment_id,
            access_expires_at=entity.access_expires_at,
            enrolled_at=entity.enrolled_at,
            updated_at=entity.updated_at,
        )


class EnrollmentListResponse(BaseModel):
    """List of user enrollments."""

    items: list[EnrollmentResponse]
    total: int
