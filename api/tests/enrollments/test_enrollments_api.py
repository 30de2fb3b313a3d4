"""API tests for /v1/enrollments."""

from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from linguapath.enrollments.models import EnrollmentStatus
from linguapath.enrollments.service import AlreadyEnrolledError, EnrollmentNotFoundError


@pytest.fixture
def course_id() -> UUID:
    """Test course ID."""
    return uuid4()


class TestEnroll:
    def test_created(
        self,
        client: TestClient,
        services,
        auth_headers,
        mock_registry,
        make_enrollment,
        user_id,
        course_id,
    ) -> None:
        mock_registry.enroll = AsyncMock(
            return_value=make_enrollment(user_id, course_id, payment_id="pay_123")
        )

        response = client.post(
            "/v1/enrollments",
            json={"course_id": str(course_id), "payment_id": "pay_123"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["status"] == "active"
        mock_registry.enroll.assert_awaited_once_with(
            user_id=user_id, course_id=course_id, payment_id="pay_123"
        )

    def test_already_enrolled(
        self, client: TestClient, services, auth_headers, mock_registry, course_id
    ) -> None:
        mock_registry.enroll = AsyncMock(side_effect=AlreadyEnrolledError())

        response = client.post(
            "/v1/enrollments", json={"course_id": str(course_id)}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["message"] == "You are already enrolled in this course"

    def test_requires_login(self, client: TestClient, services, course_id) -> None:
        response = client.post("/v1/enrollments", json={"course_id": str(course_id)})
        assert response.status_code == 401


class TestReadEnrollments:
    def test_my_enrollments(
        self,
        client: TestClient,
        services,
        auth_headers,
        mock_registry,
        make_enrollment,
        user_id,
    ) -> None:
        mock_registry.get_user_enrollments = AsyncMock(
            return_value=[
                make_enrollment(user_id, uuid4()),
                make_enrollment(user_id, uuid4(), status=EnrollmentStatus.PENDING),
            ]
        )

        data = client.get("/v1/enrollments/my", headers=auth_headers).json()

        assert data["total"] == 2
        assert [item["status"] for item in data["items"]] == ["active", "pending"]

    def test_not_enrolled(
        self, client: TestClient, services, auth_headers, course_id
    ) -> None:
        response = client.get(f"/v1/enrollments/{course_id}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Enrollment not found"


class TestUpdateStatus:
    def test_student_forbidden(
        self, client: TestClient, services, auth_headers, mock_registry, user_id, course_id
    ) -> None:
        mock_registry.update_status = AsyncMock()

        response = client.patch(
            f"/v1/enrollments/{course_id}/users/{user_id}",
            json={"status": "suspended"},
            headers=auth_headers,
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient permissions"
        mock_registry.update_status.assert_not_awaited()

    def test_admin_suspends(
        self,
        client: TestClient,
        services,
        admin_headers,
        mock_registry,
        make_enrollment,
        user_id,
        course_id,
    ) -> None:
        mock_registry.update_status = AsyncMock(
            return_value=make_enrollment(user_id, course_id, status=EnrollmentStatus.SUSPENDED)
        )

        response = client.patch(
            f"/v1/enrollments/{course_id}/users/{user_id}",
            json={"status": "suspended"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "suspended"
        mock_registry.update_status.assert_awaited_once_with(
            user_id=user_id,
            course_id=course_id,
            status=EnrollmentStatus.SUSPENDED,
        )

    def test_explicit_null_clears_window(
        self,
        client: TestClient,
        services,
        admin_headers,
        mock_registry,
        make_enrollment,
        user_id,
        course_id,
    ) -> None:
        mock_registry.update_status = AsyncMock(return_value=make_enrollment(user_id, course_id))

        response = client.patch(
            f"/v1/enrollments/{course_id}/users/{user_id}",
            json={"status": "active", "access_expires_at": None},
            headers=admin_headers,
        )

        assert response.status_code == 200
        mock_registry.update_status.assert_awaited_once_with(
            user_id=user_id,
            course_id=course_id,
            status=EnrollmentStatus.ACTIVE,
            access_expires_at=None,
        )

    def test_unknown_enrollment(
        self, client: TestClient, services, admin_headers, mock_registry, user_id, course_id
    ) -> None:
        mock_registry.update_status = AsyncMock(side_effect=EnrollmentNotFoundError())

        response = client.patch(
            f"/v1/enrollments/{course_id}/users/{user_id}",
            json={"status": "completed"},
            headers=admin_headers,
        )

        assert response.status_code == 404
