"""Enrollment API endpoints.

Provides routes for:
- Enrolling in a course
- Listing the current user's enrollments
- Reading one enrollment
- Status changes by administrators
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from linguapath.auth.dependencies import AdminUser, CurrentUser

from .dependencies import EnrollmentRegistryDep, handle_enrollment_error
from .schemas import (
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    UpdateEnrollmentStatusRequest,
)
from .service import EnrollmentError


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
)
async def enroll(
    data: EnrollRequest,
    registry: EnrollmentRegistryDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Enroll the current user in a course.

    The enrollment record and the course's enrollment count are written
    together.
    """
    try:
        enrollment = await registry.enroll(
            user_id=user.id,
            course_id=data.course_id,
            payment_id=data.payment_id,
        )
        return EnrollmentResponse.from_entity(enrollment)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e


@router.get(
    "/my",
    response_model=EnrollmentListResponse,
    summary="List my enrollments",
)
async def list_my_enrollments(
    registry: EnrollmentRegistryDep,
    user: CurrentUser,
) -> EnrollmentListResponse:
    """Get all enrollments of the current user, newest first."""
    enrollments = await registry.get_user_enrollments(user.id)
    items = [EnrollmentResponse.from_entity(e) for e in enrollments]
    return EnrollmentListResponse(items=items, total=len(items))


@router.get(
    "/{course_id}",
    response_model=EnrollmentResponse,
    summary="Get my enrollment in a course",
)
async def get_enrollment(
    course_id: UUID,
    registry: EnrollmentRegistryDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    enrollment = await registry.get_enrollment(user.id, course_id)
    if enrollment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Enrollment not found",
        )
    return EnrollmentResponse.from_entity(enrollment)


@router.patch(
    "/{course_id}/users/{user_id}",
    response_model=EnrollmentResponse,
    summary="Change an enrollment's status (admin)",
)
async def update_enrollment_status(
    course_id: UUID,
    user_id: UUID,
    data: UpdateEnrollmentStatusRequest,
    registry: EnrollmentRegistryDep,
    admin: AdminUser,
) -> EnrollmentResponse:
    """Suspend, complete, confirm or reactivate an enrollment.

    The access window only changes when `access_expires_at` is in the body.
    """
    window = {}
    if "access_expires_at" in data.model_fields_set:
        window["access_expires_at"] = data.access_expires_at
    try:
        enrollment = await registry.update_status(
            user_id=user_id,
            course_id=course_id,
            status=data.status,
            **window,
        )
        return EnrollmentResponse.from_entity(enrollment)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
