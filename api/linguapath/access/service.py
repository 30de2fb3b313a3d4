"""Access control engine.

Decides whether a user may open a course, a lesson or the enrollment page.
Checks are pure reads. Any failure while reading the directory, the
enrollment registry or lesson progress becomes a verification_error denial;
the engine never raises and never grants access on error.
"""

import asyncio
import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from linguapath.core.logging import get_logger
from linguapath.courses.unlock import accessible_lessons, preview_lessons
from linguapath.enrollments.models import EnrollmentStatus

from .models import (
    AccessCheckResult,
    AccessControlConfig,
    AccessDenied,
    AccessDeniedReason,
    AccessGranted,
    EnrollmentStatusReport,
    RouteAccessDecision,
)


if TYPE_CHECKING:
    from linguapath.courses.models import Course, Lesson
    from linguapath.courses.service import CourseDirectory
    from linguapath.enrollments.models import Enrollment
    from linguapath.enrollments.service import EnrollmentRegistry
    from linguapath.progress.repository import LessonProgressRepository


logger = get_logger(__name__)


# ==============================================================================
# Route Patterns
# ==============================================================================

ENROLL_ROUTE = re.compile(r"^/courses/([^/]+)/enroll/?$")
LEARN_ROUTE = re.compile(r"^/learn/([^/]+)(?:/([^/]+))?/?$")
COURSE_ROUTE = re.compile(r"^/courses/([^/]+)/?$")
PROTECTED_PREFIXES = ("/dashboard", "/profile", "/settings")

# Denials a preview lesson bypasses
ENROLLMENT_REASONS = frozenset(
    {
        AccessDeniedReason.NOT_ENROLLED,
        AccessDeniedReason.SUSPENDED,
        AccessDeniedReason.EXPIRED,
        AccessDeniedReason.PAYMENT_PENDING,
    }
)


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


# ==============================================================================
# Access Control Engine
# ==============================================================================


class AccessControlEngine:
    """Single source of truth for course, lesson and enrollment-page access."""

    def __init__(
        self,
        directory: "CourseDirectory",
        enrollments: "EnrollmentRegistry",
        progress: "LessonProgressRepository",
        config: AccessControlConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.directory = directory
        self.enrollments = enrollments
        self.progress = progress
        self.config = config or AccessControlConfig()
        self.clock = clock or (lambda: datetime.now(UTC))

    # ==========================================================================
    # Course Level
    # ==========================================================================

    def _evaluate_course(
        self,
        course_id: UUID,
        course: "Course | None",
        enrollment: "Enrollment | None",
    ) -> AccessCheckResult:
        """Apply the course-level rules in order; first failure wins."""
        if course is None:
            return AccessDenied(
                reason=AccessDeniedReason.COURSE_NOT_FOUND,
                course_id=course_id,
                message="The requested course could not be found.",
                redirect_to="/courses",
            )

        if not self.config.require_enrollment:
            return AccessGranted(course_id=course_id)

        if enrollment is None:
            return AccessDenied(
                reason=AccessDeniedReason.NOT_ENROLLED,
                course_id=course_id,
                message="You need to enroll in this course to access its content.",
                redirect_to=f"/courses/{course_id}/enroll",
            )

        if enrollment.status == EnrollmentStatus.SUSPENDED.value:
            return AccessDenied(
                reason=AccessDeniedReason.SUSPENDED,
                course_id=course_id,
                message="Your access to this course has been suspended. Please contact support.",
                redirect_to="/support",
            )

        if enrollment.is_expired(self.clock()):
            return AccessDenied(
                reason=AccessDeniedReason.EXPIRED,
                course_id=course_id,
                message="Your access to this course has expired. Please renew your enrollment.",
                redirect_to=f"/courses/{course_id}/enroll",
            )

        if enrollment.payment_id and not enrollment.is_active:
            return AccessDenied(
                reason=AccessDeniedReason.PAYMENT_PENDING,
                course_id=course_id,
                message="Your payment is being processed. Please try again in a few minutes.",
                redirect_to=f"/courses/{course_id}",
            )

        return AccessGranted(course_id=course_id)

    def _not_authenticated(self, course_id: UUID) -> AccessDenied:
        return AccessDenied(
            reason=AccessDeniedReason.NOT_AUTHENTICATED,
            course_id=course_id,
            message="You must be logged in to access this course.",
            redirect_to="/login",
        )

    async def _load_course_and_enrollment(
        self, user_id: UUID | None, course_id: UUID
    ) -> tuple["Course | None", "Enrollment | None"]:
        """Course and enrollment lookups, issued concurrently."""
        if user_id is None or not self.config.require_enrollment:
            return await self.directory.get_course(course_id), None
        course, enrollment = await asyncio.gather(
            self.directory.get_course(course_id),
            self.enrollments.get_enrollment(user_id, course_id),
        )
        return course, enrollment

    async def _course_access(
        self, user_id: UUID | None, course_id: UUID
    ) -> tuple[AccessCheckResult, "Course | None"]:
        if self.config.require_authentication and user_id is None:
            return self._not_authenticated(course_id), None

        course, enrollment = await self._load_course_and_enrollment(user_id, course_id)
        return self._evaluate_course(course_id, course, enrollment), course

    def _verification_error(
        self, course_id: UUID, lesson_id: UUID | None, error: Exception, scope: str
    ) -> AccessDenied:
        logger.error(
            "access_verification_failed",
            scope=scope,
            course_id=str(course_id),
            lesson_id=str(lesson_id) if lesson_id else None,
            error=str(error),
            error_type=type(error).__name__,
        )
        return AccessDenied(
            reason=AccessDeniedReason.VERIFICATION_ERROR,
            course_id=course_id,
            lesson_id=lesson_id,
            message=f"Unable to verify {scope} access. Please try again.",
        )

    async def check_course_access(
        self, user_id: UUID | None, course_id: UUID
    ) -> AccessCheckResult:
        """Check whether the user may open the course."""
        try:
            result, _ = await self._course_access(user_id, course_id)
        except Exception as e:
            return self._verification_error(course_id, None, e, "course")

        if isinstance(result, AccessDenied):
            logger.info(
                "course_access_denied",
                user_id=str(user_id) if user_id else None,
                course_id=str(course_id),
                reason=result.reason.value,
            )
        return result

    # ==========================================================================
    # Lesson Level
    # ==========================================================================

    async def check_lesson_access(
        self, user_id: UUID | None, course_id: UUID, lesson_id: UUID
    ) -> AccessCheckResult:
        """Check whether the user may open one lesson of the course."""
        try:
            result = await self._lesson_access(user_id, course_id, lesson_id)
        except Exception as e:
            return self._verification_error(course_id, lesson_id, e, "lesson")

        if isinstance(result, AccessDenied):
            logger.info(
                "lesson_access_denied",
                user_id=str(user_id) if user_id else None,
                course_id=str(course_id),
                lesson_id=str(lesson_id),
                reason=result.reason.value,
            )
        return result

    async def _lesson_access(
        self, user_id: UUID | None, course_id: UUID, lesson_id: UUID
    ) -> AccessCheckResult:
        course_result, course = await self._course_access(user_id, course_id)
        lesson = course.lesson_by_id(lesson_id) if course else None

        if isinstance(course_result, AccessDenied):
            if (
                lesson is not None
                and lesson.is_preview
                and self.config.allow_preview_lessons
                and course_result.reason in ENROLLMENT_REASONS
            ):
                # Previews bypass enrollment, not authentication
                return AccessGranted(course_id=course_id, lesson_id=lesson_id)
            return course_result.with_lesson(lesson_id)

        if lesson is None:
            return AccessDenied(
                reason=AccessDeniedReason.LESSON_NOT_FOUND,
                course_id=course_id,
                lesson_id=lesson_id,
                message="The requested lesson could not be found.",
                redirect_to=f"/courses/{course_id}",
            )

        if lesson.is_preview and self.config.allow_preview_lessons:
            return AccessGranted(course_id=course_id, lesson_id=lesson_id)

        if not course.unlock_sequential or not self.config.check_sequential_unlock:
            return AccessGranted(course_id=course_id, lesson_id=lesson_id)

        if user_id is None:
            completed: set[UUID] = set()
            has_progress = False
        else:
            by_lesson = await self.progress.list_for_course(user_id, course_id)
            completed = {lid for lid, p in by_lesson.items() if p.is_completed}
            has_progress = bool(by_lesson)

        open_ids = {item.id for item in self._unlocked(course.lessons, completed)}
        if lesson_id in open_ids:
            return AccessGranted(course_id=course_id, lesson_id=lesson_id)

        if not has_progress:
            return AccessDenied(
                reason=AccessDeniedReason.LESSON_LOCKED,
                course_id=course_id,
                lesson_id=lesson_id,
                message="This lesson is currently locked.",
                redirect_to=f"/learn/{course_id}",
            )
        return AccessDenied(
            reason=AccessDeniedReason.PREVIOUS_LESSONS_INCOMPLETE,
            course_id=course_id,
            lesson_id=lesson_id,
            message=(
                "Complete the previous lessons to unlock this one. You need to watch "
                f"{course.completion_threshold}% of each lesson to proceed."
            ),
            redirect_to=f"/learn/{course_id}",
        )

    def _unlocked(self, lessons: list["Lesson"], completed: set[UUID]) -> list["Lesson"]:
        """Shared unlock rule, honoring allow_preview_lessons."""
        if self.config.allow_preview_lessons:
            return accessible_lessons(lessons, completed)
        return accessible_lessons(
            [lesson for lesson in lessons if not lesson.is_preview], completed
        )

    # ==========================================================================
    # Enrollment Page
    # ==========================================================================

    async def check_enrollment_page_access(
        self, user_id: UUID | None, course_id: UUID
    ) -> AccessCheckResult:
        """Check whether the user may open the course's enrollment page."""
        if user_id is None:
            return AccessDenied(
                reason=AccessDeniedReason.NOT_AUTHENTICATED,
                course_id=course_id,
                message="You must be logged in to enroll in courses.",
                redirect_to="/login",
            )

        try:
            course, enrollment = await asyncio.gather(
                self.directory.get_course(course_id),
                self.enrollments.get_enrollment(user_id, course_id),
            )
        except Exception as e:
            return self._verification_error(course_id, None, e, "enrollment")

        if course is None:
            return AccessDenied(
                reason=AccessDeniedReason.COURSE_NOT_FOUND,
                course_id=course_id,
                message="The requested course could not be found.",
                redirect_to="/courses",
            )

        if enrollment is not None and enrollment.is_active:
            return AccessDenied(
                reason=AccessDeniedReason.NOT_ENROLLED,
                course_id=course_id,
                message="You are already enrolled in this course.",
                redirect_to=f"/learn/{course_id}",
            )

        return AccessGranted(course_id=course_id)

    # ==========================================================================
    # Listings
    # ==========================================================================

    async def has_course_access(self, user_id: UUID, course_id: UUID) -> bool:
        """Course-level verdict as a predicate; lookup failures deny."""
        try:
            result, _ = await self._course_access(user_id, course_id)
        except Exception as e:
            logger.error(
                "course_access_check_failed",
                course_id=str(course_id),
                error=str(e),
            )
            return False
        return isinstance(result, AccessGranted)

    async def get_accessible_lessons(
        self, user_id: UUID | None, course_id: UUID
    ) -> list["Lesson"]:
        """Lessons the user may open right now, in order.

        Returns an empty list when the course cannot be read.
        """
        try:
            course = await self.directory.get_course(course_id)
            if course is None:
                return []

            previews = preview_lessons(course.lessons) if self.config.allow_preview_lessons else []
            if user_id is None:
                return previews

            course_result, _ = await self._course_access(user_id, course_id)
            if isinstance(course_result, AccessDenied):
                return previews

            if not course.unlock_sequential or not self.config.check_sequential_unlock:
                return list(course.lessons)

            completed = await self.progress.completed_lesson_ids(user_id, course_id)
            return self._unlocked(course.lessons, completed)
        except Exception as e:
            logger.error(
                "accessible_lessons_failed",
                course_id=str(course_id),
                error=str(e),
            )
            return []

    async def get_user_enrollment_status(
        self, user_id: UUID | None, course_id: UUID
    ) -> EnrollmentStatusReport:
        """Enrollment of the user together with the course-level verdict."""
        enrollment = None
        if user_id is not None:
            try:
                enrollment = await self.enrollments.get_enrollment(user_id, course_id)
            except Exception as e:
                logger.error(
                    "enrollment_status_failed",
                    course_id=str(course_id),
                    error=str(e),
                )
                return EnrollmentStatusReport(
                    is_enrolled=False,
                    enrollment=None,
                    access=self._verification_error(course_id, None, e, "course"),
                )

        access = await self.check_course_access(user_id, course_id)
        return EnrollmentStatusReport(
            is_enrolled=enrollment is not None and enrollment.is_active,
            enrollment=enrollment,
            access=access,
        )

    # ==========================================================================
    # Page Routes
    # ==========================================================================

    async def validate_route_access(
        self, user_id: UUID | None, pathname: str
    ) -> RouteAccessDecision:
        """Decide whether a page route may be rendered, or where to redirect."""
        try:
            return await self._route_access(user_id, pathname)
        except Exception as e:
            logger.error("route_validation_failed", pathname=pathname, error=str(e))
            return RouteAccessDecision(
                allowed=False,
                redirect_to="/courses",
                reason=AccessDeniedReason.VERIFICATION_ERROR,
                message="Unable to verify access",
            )

    async def _route_access(self, user_id: UUID | None, pathname: str) -> RouteAccessDecision:
        if match := ENROLL_ROUTE.match(pathname):
            course_id = _parse_uuid(match.group(1))
            if course_id is None:
                return self._course_missing_route()
            result = await self.check_enrollment_page_access(user_id, course_id)
            return self._route_decision(result, "/courses")

        if match := LEARN_ROUTE.match(pathname):
            course_id = _parse_uuid(match.group(1))
            if course_id is None:
                return self._course_missing_route()
            if match.group(2):
                lesson_id = _parse_uuid(match.group(2))
                if lesson_id is None:
                    return RouteAccessDecision(
                        allowed=False,
                        redirect_to=f"/courses/{course_id}",
                        reason=AccessDeniedReason.LESSON_NOT_FOUND,
                        message="The requested lesson could not be found.",
                    )
                result = await self.check_lesson_access(user_id, course_id, lesson_id)
                return self._route_decision(result, f"/courses/{course_id}")
            result = await self.check_course_access(user_id, course_id)
            return self._route_decision(result, "/courses")

        if match := COURSE_ROUTE.match(pathname):
            course_id = _parse_uuid(match.group(1))
            if course_id is None or await self.directory.get_course(course_id) is None:
                return self._course_missing_route()
            return RouteAccessDecision(allowed=True)

        if pathname.startswith(PROTECTED_PREFIXES) and user_id is None:
            return RouteAccessDecision(
                allowed=False,
                redirect_to="/login",
                reason=AccessDeniedReason.NOT_AUTHENTICATED,
                message="Authentication required",
            )

        return RouteAccessDecision(allowed=True)

    def _route_decision(self, result: AccessCheckResult, fallback: str) -> RouteAccessDecision:
        if isinstance(result, AccessGranted):
            return RouteAccessDecision(allowed=True)
        return RouteAccessDecision(
            allowed=False,
            redirect_to=result.redirect_to or fallback,
            reason=result.reason,
            message=result.message,
        )

    def _course_missing_route(self) -> RouteAccessDecision:
        return RouteAccessDecision(
            allowed=False,
            redirect_to="/courses",
            reason=AccessDeniedReason.COURSE_NOT_FOUND,
            message="Course not found",
        )
