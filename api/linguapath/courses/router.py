"""Course directory API endpoints.

Provides routes for:
- Course documents with their lesson outline (public)
- Unlocked lessons of a course
- Lesson detail, gated by access control
- Previous/next lesson navigation
"""

from uuid import UUID

from fastapi import APIRouter

from linguapath.access.dependencies import AccessEngineDep, handle_access_denied
from linguapath.access.models import AccessDenied
from linguapath.auth.dependencies import CurrentUser, OptionalUser

from .dependencies import CourseDirectoryDep, handle_course_error
from .schemas import (
    CourseResponse,
    LessonListResponse,
    LessonNavigationResponse,
    LessonResponse,
    LessonSummary,
)
from .service import CourseNotFoundError, LessonNotFoundError


router = APIRouter(prefix="/v1/courses", tags=["courses"])


@router.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course",
)
async def get_course(
    course_id: UUID,
    directory: CourseDirectoryDep,
) -> CourseResponse:
    """Get a course with its lesson outline. Video references are not included."""
    course = await directory.get_course(course_id)
    if course is None:
        raise handle_course_error(CourseNotFoundError())
    return CourseResponse.from_entity(course)


@router.get(
    "/{course_id}/lessons",
    response_model=LessonListResponse,
    summary="List unlocked lessons",
)
async def list_unlocked_lessons(
    course_id: UUID,
    directory: CourseDirectoryDep,
    user: OptionalUser,
) -> LessonListResponse:
    """Lessons unlocked by the user's progress.

    Previews only for users without course access, matching /v1/access.
    """
    lessons = await directory.get_accessible_lessons(user.id if user else None, course_id)
    items = [LessonSummary.from_entity(lesson) for lesson in lessons]
    return LessonListResponse(course_id=course_id, items=items, total=len(items))


@router.get(
    "/{course_id}/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Get lesson",
)
async def get_lesson(
    course_id: UUID,
    lesson_id: UUID,
    directory: CourseDirectoryDep,
    engine: AccessEngineDep,
    user: OptionalUser,
) -> LessonResponse:
    """Get a lesson with its video reference.

    Raises:
        HTTPException: With the access-denied view when access is refused
    """
    result = await engine.check_lesson_access(user.id if user else None, course_id, lesson_id)
    if isinstance(result, AccessDenied):
        raise handle_access_denied(result)

    lesson = await directory.get_lesson(course_id, lesson_id)
    if lesson is None:
        raise handle_course_error(LessonNotFoundError())
    return LessonResponse.from_entity(lesson)


@router.get(
    "/{course_id}/lessons/{lesson_id}/navigation",
    response_model=LessonNavigationResponse,
    summary="Get previous and next lesson",
)
async def get_lesson_navigation(
    course_id: UUID,
    lesson_id: UUID,
    directory: CourseDirectoryDep,
    user: CurrentUser,
) -> LessonNavigationResponse:
    if await directory.get_lesson(course_id, lesson_id) is None:
        raise handle_course_error(LessonNotFoundError())

    previous = await directory.get_previous_lesson(course_id, lesson_id)
    following = await directory.get_next_lesson(course_id, lesson_id)
    return LessonNavigationResponse(
        lesson_id=lesson_id,
        previous=LessonSummary.from_entity(previous) if previous else None,
        next=LessonSummary.from_entity(following) if following else None,
    )
