"""Database models for course enrollments.

Cassandra table definitions for:
- Enrollments: one row per (course, user), partitioned by course
- Enrollments by user: the user's enrolled-course list

Architecture: dual-write pattern; both tables (and the course's
enrollment counter) are written in one LOGGED batch so they never diverge.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from linguapath.courses.models import ensure_utc_aware


class EnrollmentStatus(str, Enum):
    """Enrollment status."""

    ACTIVE = "active"  # Access granted
    SUSPENDED = "suspended"  # Blocked by an admin
    COMPLETED = "completed"  # Finished the course, keeps access
    PENDING = "pending"  # Payment recorded but not confirmed yet


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partitioned by course_id: "who is enrolled in this course?"
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    user_id UUID,
    status TEXT,
    payment_id TEXT,
    access_expires_at TIMESTAMP,
    enrolled_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

# Partitioned by user_id: "which courses is this user enrolled in?"
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    status TEXT,
    access_expires_at TIMESTAMP,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """Enrollment of a user in a course.

    Never deleted; only its status changes (suspension, completion, payment
    confirmation) and its access window may be set or extended.

    Attributes:
        course_id: Course UUID
        user_id: User UUID
        status: active, suspended, completed or pending
        payment_id: Payment reference from the payment provider (optional)
        access_expires_at: End of the access window (optional)
        enrolled_at: Enrollment timestamp
        updated_at: Last status change
    """

    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        status: str = EnrollmentStatus.ACTIVE.value,
        payment_id: str | None = None,
        access_expires_at: datetime | None = None,
        enrolled_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.status = status
        self.payment_id = payment_id
        self.access_expires_at = ensure_utc_aware(access_expires_at)
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.enrolled_at

    @property
    def is_active(self) -> bool:
        """Check if the enrollment status is active."""
        return self.status == EnrollmentStatus.ACTIVE.value

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the access window has passed."""
        if self.access_expires_at is None:
            return False
        return self.access_expires_at < (now or datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from an enrollments row."""
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            status=row.status or EnrollmentStatus.ACTIVE.value,
            payment_id=row.payment_id,
            access_expires_at=row.access_expires_at,
            enrolled_at=row.enrolled_at,
            updated_at=row.updated_at,
        )

    @classmethod
    def from_user_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from an enrollments_by_user row."""
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            status=row.status or EnrollmentStatus.ACTIVE.value,
            access_expires_at=row.access_expires_at,
            enrolled_at=row.enrolled_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "course_id": self.course_id,
            "user_id": self.user_id,
            "status": self.status,
            "payment_id": self.payment_id,
            "access_expires_at": self.access_expires_at,
            "enrolled_at": self.enrolled_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment user={self.user_id} course={self.course_id} {self.status}>"
        )
