# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Enrollment registry service layer.

Business logic for:
- Enrollment lookups (per course, per user)
- Enrolling a user (atomic dual-write + course counter)
- Status transitions driven by the admin/payment process
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from linguapath.core.logging import get_logger

from .models import Enrollment, EnrollmentStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from linguapath.courses.service import CourseDirectory


logger = get_logger(__name__)

# update_status default: keep the stored access window
KEEP_EXPIRY: Any = object()


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EnrollmentError(Exception):
    """Base enrollment error."""

    def __init__(self, message: str, code: str = "enrollment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AlreadyEnrolledError(EnrollmentError):
    """User is already enrolled in the course."""

    def __init__(self, message: str = "You are already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class EnrollmentNotFoundError(EnrollmentError):
    """No enrollment for the user in the course."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class EnrollmentCourseNotFoundError(EnrollmentError):
    """Tried to enroll in a course that does not exist."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


# ==============================================================================
# Enrollment Registry
# ==============================================================================


class EnrollmentRegistry:
    """Reads and writes enrollments.

    Enrollments are never deleted. Writes touch both enrollment tables and,
    for a new enrollment, the course's enrollment_count, all inside one
    LOGGED batch.
    """

    def __init__(self, session: "Session", keyspace: str, directory: "CourseDirectory"):
        """Initialize with Cassandra session and the course directory."""
        self.session = session
        self.keyspace = keyspace
        self.directory = directory
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._get_user_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ?
        """)

        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (course_id, user_id, status, payment_id, access_expires_at,
             enrolled_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_enrollment_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, status, access_expires_at, enrolled_at)
            VALUES (?, ?, ?, ?, ?)
        """)

        # Derived from the enrollments partition, never from the directory cache
        self._count_enrollments = self.session.prepare(f"""
            SELECT COUNT(*) AS enrollment_count FROM {self.keyspace}.enrollments
            WHERE course_id = ?
        """)

        self._set_enrollment_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET enrollment_count = ?, updated_at = ?
            WHERE id = ?
        """)

        self._update_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET status = ?, access_expires_at = ?, updated_at = ?
            WHERE course_id = ? AND user_id = ?
        """)

        self._update_status_by_user = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments_by_user
            SET status = ?, access_expires_at = ?
            WHERE user_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        """Get the enrollment of a user in a course."""
        result = await self.session.aexecute(self._get_enrollment, [course_id, user_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def is_enrolled(self, user_id: UUID, course_id: UUID) -> bool:
        """Check if the user has an active enrollment in the course."""
        enrollment = await self.get_enrollment(user_id, course_id)
        return enrollment is not None and enrollment.is_active

    async def _enrollment_count(self, course_id: UUID) -> int:
        row = (await self.session.aexecute(self._count_enrollments, [course_id])).one()
        return (row.enrollment_count if row else 0) or 0

    async def get_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        """All enrollments of a user, newest first."""
        rows = await self.session.aexecute(self._get_user_enrollments, [user_id])
        enrollments = [Enrollment.from_user_row(row) for row in rows]
        return sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def enroll(
        self,
        user_id: UUID,
        course_id: UUID,
        payment_id: str | None = None,
    ) -> Enrollment:
        """Enroll a user in a course.

        Writes the enrollment row, the user's enrolled-courses row and the
        course's enrollment_count in one LOGGED batch, so either all three
        are applied or none is.

        Args:
            user_id: User to enroll
            course_id: Course to enroll in
            payment_id: Payment reference when the enrollment was paid

        Returns:
            The new active enrollment

        Raises:
            EnrollmentCourseNotFoundError: If the course does not exist
            AlreadyEnrolledError: If an enrollment already exists
        """
        course = await self.directory.get_course(course_id)
        if course is None:
            raise EnrollmentCourseNotFoundError

        if await self.get_enrollment(user_id, course_id) is not None:
            raise AlreadyEnrolledError

        current_count = await self._enrollment_count(course_id)

        now = datetime.now(UTC)
        enrollment = Enrollment(
            course_id=course_id,
            user_id=user_id,
            status=EnrollmentStatus.ACTIVE.value,
            payment_id=payment_id,
            enrolled_at=now,
            updated_at=now,
        )

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._insert_enrollment,
            [
                course_id,
                user_id,
                enrollment.status,
                payment_id,
                None,
                now,
                now,
            ],
        )
        batch.add(
            self._insert_enrollment_by_user,
            [user_id, course_id, enrollment.status, None, now],
        )
        batch.add(self._set_enrollment_count, [current_count + 1, now, course_id])
        await self.session.aexecute(batch)

        # A concurrent enroll may have counted the same rows; settle on the recount
        recount = await self._enrollment_count(course_id)
        if recount != current_count + 1:
            await self.session.aexecute(self._set_enrollment_count, [recount, now, course_id])
            logger.info(
                "enrollment_count_reconciled",
                course_id=str(course_id),
                written=current_count + 1,
                enrollment_count=recount,
            )

        self.directory.invalidate(course_id)

        logger.info(
            "user_enrolled",
            user_id=str(user_id),
            course_id=str(course_id),
            paid=payment_id is not None,
            enrollment_count=current_count + 1,
        )
        return enrollment

    async def update_status(
        self,
        user_id: UUID,
        course_id: UUID,
        status: EnrollmentStatus,
        access_expires_at: datetime | None = KEEP_EXPIRY,
    ) -> Enrollment:
        """Change an enrollment's status and access window.

        Used by the admin/payment process for suspension, completion,
        payment confirmation and expiry windows. The stored window is kept
        unless `access_expires_at` is passed; None clears it.

        Raises:
            EnrollmentNotFoundError: If the user is not enrolled
        """
        enrollment = await self.get_enrollment(user_id, course_id)
        if enrollment is None:
            raise EnrollmentNotFoundError

        if access_expires_at is KEEP_EXPIRY:
            access_expires_at = enrollment.access_expires_at

        now = datetime.now(UTC)
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._update_status,
            [status.value, access_expires_at, now, course_id, user_id],
        )
        batch.add(
            self._update_status_by_user,
            [status.value, access_expires_at, user_id, course_id],
        )
        await self.session.aexecute(batch)

        logger.info(
            "enrollment_status_changed",
            user_id=str(user_id),
            course_id=str(course_id),
            old_status=enrollment.status,
            new_status=status.value,
        )

        enrollment.status = status.value
        enrollment.access_expires_at = access_expires_at
        enrollment.updated_at = now
        return enrollment
