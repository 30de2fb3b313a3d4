"""Access control API endpoints.

Provides routes for:
- Course, lesson and enrollment-page access checks
- Lessons the user may open right now
- Enrollment status with the course-level verdict
- Page route validation (redirect decisions)

Anonymous callers are allowed; the engine decides what they may see.
"""

from uuid import UUID

from fastapi import APIRouter

from linguapath.auth.dependencies import OptionalUser
from linguapath.courses.schemas import LessonSummary

from .dependencies import AccessEngineDep
from .schemas import (
    AccessCheckResponse,
    AccessibleLessonsResponse,
    EnrollmentStatusResponse,
    RouteAccessRequest,
    RouteAccessResponse,
)


router = APIRouter(prefix="/v1/access", tags=["access"])


@router.get(
    "/courses/{course_id}",
    response_model=AccessCheckResponse,
    summary="Check course access",
)
async def check_course_access(
    course_id: UUID,
    engine: AccessEngineDep,
    user: OptionalUser,
) -> AccessCheckResponse:
    result = await engine.check_course_access(user.id if user else None, course_id)
    return AccessCheckResponse.from_result(result)


@router.get(
    "/courses/{course_id}/lessons/{lesson_id}",
    response_model=AccessCheckResponse,
    summary="Check lesson access",
)
async def check_lesson_access(
    course_id: UUID,
    lesson_id: UUID,
    engine: AccessEngineDep,
    user: OptionalUser,
) -> AccessCheckResponse:
    result = await engine.check_lesson_access(
        user.id if user else None, course_id, lesson_id
    )
    return AccessCheckResponse.from_result(result)


@router.get(
    "/courses/{course_id}/enroll-page",
    response_model=AccessCheckResponse,
    summary="Check enrollment page access",
)
async def check_enrollment_page_access(
    course_id: UUID,
    engine: AccessEngineDep,
    user: OptionalUser,
) -> AccessCheckResponse:
    """Denied for anonymous users and for users already enrolled."""
    result = await engine.check_enrollment_page_access(
        user.id if user else None, course_id
    )
    return AccessCheckResponse.from_result(result)


@router.get(
    "/courses/{course_id}/accessible-lessons",
    response_model=AccessibleLessonsResponse,
    summary="List lessons the user may open",
)
async def get_accessible_lessons(
    course_id: UUID,
    engine: AccessEngineDep,
    user: OptionalUser,
) -> AccessibleLessonsResponse:
    lessons = await engine.get_accessible_lessons(user.id if user else None, course_id)
    items = [LessonSummary.from_entity(lesson) for lesson in lessons]
    return AccessibleLessonsResponse(course_id=course_id, items=items, total=len(items))


@router.get(
    "/courses/{course_id}/enrollment-status",
    response_model=EnrollmentStatusResponse,
    summary="Get enrollment status",
)
async def get_enrollment_status(
    course_id: UUID,
    engine: AccessEngineDep,
    user: OptionalUser,
) -> EnrollmentStatusResponse:
    report = await engine.get_user_enrollment_status(user.id if user else None, course_id)
    return EnrollmentStatusResponse.from_report(report)


@router.post(
    "/routes",
    response_model=RouteAccessResponse,
    summary="Validate a page route",
)
async def validate_route(
    data: RouteAccessRequest,
    engine: AccessEngineDep,
    user: OptionalUser,
) -> RouteAccessResponse:
    """Decide whether a page may render, or where to redirect."""
    decision = await engine.validate_route_access(user.id if user else None, data.pathname)
    return RouteAccessResponse.from_decision(decision)
