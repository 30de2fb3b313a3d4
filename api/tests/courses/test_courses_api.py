"""API tests for /v1/courses."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from linguapath.enrollments.models import EnrollmentStatus


@pytest.fixture
def course(services, published):
    return published(lessons=3)


class TestGetCourse:
    def test_outline_without_video_references(self, client: TestClient, course) -> None:
        response = client.get(f"/v1/courses/{course.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Spanish for Travellers"
        assert [lesson["order"] for lesson in data["lessons"]] == [0, 1, 2]
        assert "video_id" not in data["lessons"][0]

    def test_unknown_course(self, client: TestClient, course) -> None:
        response = client.get(f"/v1/courses/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["message"] == "Course not found"

    def test_unlocked_lessons(self, client: TestClient, course, mock_directory) -> None:
        mock_directory.get_accessible_lessons = AsyncMock(return_value=course.lessons[:1])

        data = client.get(f"/v1/courses/{course.id}/lessons").json()

        assert data["total"] == 1
        mock_directory.get_accessible_lessons.assert_awaited_once_with(None, course.id)


class TestGetLesson:
    def test_granted_lesson_includes_video(
        self, client: TestClient, auth_headers, course, mock_registry, make_enrollment, user_id
    ) -> None:
        mock_registry.get_enrollment.return_value = make_enrollment(user_id, course.id)

        response = client.get(
            f"/v1/courses/{course.id}/lessons/{course.lessons[0].id}", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["video_provider"] == "youtube"
        assert response.json()["video_id"] == "dQw4w9WgXcQ"

    def test_suspended_lesson_forbidden(
        self, client: TestClient, auth_headers, course, mock_registry, make_enrollment, user_id
    ) -> None:
        mock_registry.get_enrollment.return_value = make_enrollment(
            user_id, course.id, status=EnrollmentStatus.SUSPENDED
        )

        response = client.get(
            f"/v1/courses/{course.id}/lessons/{course.lessons[0].id}", headers=auth_headers
        )

        assert response.status_code == 403
        denied = response.json()["access_denied"]
        assert denied["reason"] == "suspended"
        assert denied["redirect_to"] == "/support"

    def test_anonymous_lesson_unauthorized(self, client: TestClient, course) -> None:
        response = client.get(f"/v1/courses/{course.id}/lessons/{course.lessons[0].id}")

        assert response.status_code == 401
        assert response.json()["access_denied"]["title"] == "Authentication Required"

    def test_unknown_lesson(
        self, client: TestClient, auth_headers, course, mock_registry, make_enrollment, user_id
    ) -> None:
        mock_registry.get_enrollment.return_value = make_enrollment(user_id, course.id)

        response = client.get(f"/v1/courses/{course.id}/lessons/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["access_denied"]["reason"] == "lesson_not_found"

    def test_lookup_failure_unavailable(
        self, client: TestClient, auth_headers, course, mock_registry
    ) -> None:
        mock_registry.get_enrollment.side_effect = ConnectionError("timeout")

        response = client.get(
            f"/v1/courses/{course.id}/lessons/{course.lessons[0].id}", headers=auth_headers
        )

        assert response.status_code == 503
        assert response.json()["access_denied"]["primary_action"]["retry"] is True


class TestNavigation:
    def test_neighbours(self, client: TestClient, auth_headers, course, mock_directory) -> None:
        mock_directory.get_previous_lesson = AsyncMock(return_value=course.lessons[0])
        mock_directory.get_next_lesson = AsyncMock(return_value=course.lessons[2])

        data = client.get(
            f"/v1/courses/{course.id}/lessons/{course.lessons[1].id}/navigation",
            headers=auth_headers,
        ).json()

        assert data["previous"]["order"] == 0
        assert data["next"]["order"] == 2

    def test_requires_login(self, client: TestClient, course) -> None:
        response = client.get(
            f"/v1/courses/{course.id}/lessons/{course.lessons[1].id}/navigation"
        )
        assert response.status_code == 401
