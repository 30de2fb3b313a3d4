"""Lesson progress API endpoints.

Provides routes for:
- Progress updates from the player
- Manual lesson completion
- Progress queries (lesson and course)
- Offline queue sync (run now, status, cancel on logout)
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from linguapath.access.dependencies import AccessEngineDep, handle_access_denied
from linguapath.access.models import AccessDenied
from linguapath.auth.dependencies import CurrentUser

from .dependencies import ProgressStoreDep, SyncWorkerDep, handle_progress_error
from .models import ProgressSnapshot, SaveResult, SyncStatus
from .schemas import (
    CourseProgressResponse,
    LessonProgressResponse,
    MarkLessonCompleteRequest,
    SaveProgressResponse,
    SyncReportResponse,
    SyncStateResponse,
    UpdateProgressRequest,
)
from .service import ProgressError


router = APIRouter(prefix="/v1/progress", tags=["progress"])


# ==============================================================================
# Access Validation Helper
# ==============================================================================


async def validate_lesson_access(
    engine: AccessEngineDep,
    user: CurrentUser,
    course_id: UUID,
    lesson_id: UUID,
) -> None:
    """Refuse progress writes for lessons the user may not open.

    Raises:
        HTTPException: With the access-denied view
    """
    result = await engine.check_lesson_access(user.id, course_id, lesson_id)
    if isinstance(result, AccessDenied):
        raise handle_access_denied(result)


def _save_response(result: SaveResult) -> SaveProgressResponse:
    if result.status == SyncStatus.ERROR:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress could not be saved. Please try again.",
        )
    return SaveProgressResponse.from_result(result)


# ==============================================================================
# Lesson Progress Endpoints
# ==============================================================================


@router.put(
    "/lessons/{lesson_id}",
    response_model=SaveProgressResponse,
    summary="Save lesson progress",
)
async def save_lesson_progress(
    lesson_id: UUID,
    data: UpdateProgressRequest,
    store: ProgressStoreDep,
    engine: AccessEngineDep,
    user: CurrentUser,
) -> SaveProgressResponse:
    """Save raw player progress.

    When the database write fails the update is queued and the response
    reports `pending`; the background sync writes it later.
    """
    await validate_lesson_access(engine, user, data.course_id, lesson_id)

    snapshot = ProgressSnapshot(
        watched_seconds=data.watched_seconds,
        total_seconds=data.total_seconds,
        current_time=data.current_time,
    )
    result = await store.save_progress(user.id, data.course_id, lesson_id, snapshot)
    return _save_response(result)


@router.get(
    "/lessons/{lesson_id}",
    response_model=LessonProgressResponse,
    summary="Get lesson progress",
)
async def get_lesson_progress(
    lesson_id: UUID,
    store: ProgressStoreDep,
    user: CurrentUser,
    course_id: UUID = Query(..., description="Course UUID"),
) -> LessonProgressResponse:
    progress = await store.get_progress(user.id, course_id, lesson_id)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Progress not found",
        )
    return LessonProgressResponse.from_entity(progress)


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=SaveProgressResponse,
    summary="Mark lesson as completed",
)
async def mark_lesson_completed(
    lesson_id: UUID,
    data: MarkLessonCompleteRequest,
    store: ProgressStoreDep,
    engine: AccessEngineDep,
    user: CurrentUser,
) -> SaveProgressResponse:
    """Record the whole lesson as watched."""
    await validate_lesson_access(engine, user, data.course_id, lesson_id)

    try:
        result = await store.mark_lesson_completed(user.id, data.course_id, lesson_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return _save_response(result)


# ==============================================================================
# Course Progress Endpoints
# ==============================================================================


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID,
    store: ProgressStoreDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    try:
        progress = await store.get_course_progress(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return CourseProgressResponse.from_entity(progress)


# ==============================================================================
# Offline Sync Endpoints
# ==============================================================================


@router.post(
    "/sync",
    response_model=SyncReportResponse,
    summary="Sync queued progress now",
)
async def sync_now(
    store: ProgressStoreDep,
    worker: SyncWorkerDep,
    user: CurrentUser,
) -> SyncReportResponse:
    """Replay the user's queued updates immediately (e.g. after reconnecting)."""
    report = await store.sync_pending(user.id)
    if report.status != SyncStatus.SYNCED:
        worker.schedule(user.id)
    return SyncReportResponse.from_report(report)


@router.get(
    "/sync",
    response_model=SyncStateResponse,
    summary="Get sync status",
)
async def get_sync_status(
    store: ProgressStoreDep,
    worker: SyncWorkerDep,
    user: CurrentUser,
) -> SyncStateResponse:
    state = await store.get_sync_status(user.id, scheduled=worker.is_scheduled(user.id))
    return SyncStateResponse.from_state(state)


@router.delete(
    "/sync",
    response_model=SyncStateResponse,
    summary="Stop background sync (logout)",
)
async def cancel_sync(
    store: ProgressStoreDep,
    worker: SyncWorkerDep,
    user: CurrentUser,
) -> SyncStateResponse:
    """Stop replaying the user's queue in the background.

    Queued entries stay stored and are replayed on the next save or sync.
    """
    worker.cancel(user.id)
    store.forget(user.id)
    state = await store.get_sync_status(user.id, scheduled=False)
    return SyncStateResponse.from_state(state)
