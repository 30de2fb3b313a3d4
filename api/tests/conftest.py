"""Shared fixtures.

The API client runs without the lifespan: no Cassandra or Redis is needed,
and tests place mocked services on the application state.
"""

import os
import tempfile
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_REQUESTS", "false")
os.environ.setdefault("LOG_INCLUDE_CALLER_INFO", "false")
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "linguapath-test-logs"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from linguapath.auth.security import create_access_token  # noqa: E402
from linguapath.courses.models import Course, Lesson, VideoProvider  # noqa: E402
from linguapath.courses.service import CourseDirectory  # noqa: E402
from linguapath.enrollments.models import Enrollment, EnrollmentStatus  # noqa: E402
from linguapath.enrollments.service import EnrollmentRegistry  # noqa: E402
from linguapath.progress.models import LessonProgress, compute_completion_percentage  # noqa: E402
from linguapath.progress.repository import LessonProgressRepository  # noqa: E402


# ==============================================================================
# Identities
# ==============================================================================


@pytest.fixture
def user_id() -> UUID:
    """Test learner ID."""
    return uuid4()


@pytest.fixture
def access_token(user_id: UUID) -> str:
    return create_access_token({"sub": str(user_id), "email": "learner@example.com"})


@pytest.fixture
def auth_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    token = create_access_token(
        {"sub": str(uuid4()), "email": "admin@example.com", "role": "admin"}
    )
    return {"Authorization": f"Bearer {token}"}


# ==============================================================================
# Domain Factories
# ==============================================================================


@pytest.fixture
def make_course() -> Callable[..., Course]:
    """Build a course with `lessons` lessons ordered 0..n-1."""

    def _make(
        lessons: int = 3,
        previews: tuple[int, ...] = (),
        threshold: int = 80,
        unlock_sequential: bool = True,
        duration: int = 600,
        provider: VideoProvider = VideoProvider.YOUTUBE,
    ) -> Course:
        course_id = uuid4()
        video_id = "dQw4w9WgXcQ" if provider == VideoProvider.YOUTUBE else "76979871"
        return Course(
            id=course_id,
            title="Spanish for Travellers",
            language="es",
            price=Decimal("499.00"),
            completion_threshold=threshold,
            unlock_sequential=unlock_sequential,
            lessons=[
                Lesson(
                    id=uuid4(),
                    course_id=course_id,
                    order=order,
                    title=f"Lesson {order}",
                    is_preview=order in previews,
                    duration=duration,
                    video_provider=provider,
                    video_id=video_id,
                )
                for order in range(lessons)
            ],
        )

    return _make


@pytest.fixture
def make_progress() -> Callable[..., LessonProgress]:
    """Stored progress of a user on a lesson at a given percentage."""

    def _make(
        user_id: UUID,
        lesson: Lesson,
        percentage: int,
        threshold: int = 80,
        last_watched_at: datetime | None = None,
    ) -> LessonProgress:
        total = lesson.duration or 100
        watched = round(total * percentage / 100)
        completion = compute_completion_percentage(watched, total)
        return LessonProgress(
            user_id=user_id,
            course_id=lesson.course_id,
            lesson_id=lesson.id,
            watched_seconds=watched,
            total_seconds=total,
            completion_percentage=completion,
            is_completed=completion >= threshold,
            resume_position=watched,
            first_watched_at=datetime(2026, 1, 5, 9, 0, tzinfo=UTC),
            last_watched_at=last_watched_at or datetime(2026, 1, 5, 9, 30, tzinfo=UTC),
        )

    return _make


@pytest.fixture
def make_enrollment() -> Callable[..., Enrollment]:
    def _make(
        user_id: UUID,
        course_id: UUID,
        status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
        payment_id: str | None = None,
        access_expires_at: datetime | None = None,
    ) -> Enrollment:
        return Enrollment(
            course_id=course_id,
            user_id=user_id,
            status=status.value,
            payment_id=payment_id,
            access_expires_at=access_expires_at,
            enrolled_at=datetime(2026, 1, 2, tzinfo=UTC),
        )

    return _make


# ==============================================================================
# Mocked Services
# ==============================================================================


@pytest.fixture
def mock_directory() -> Mock:
    directory = Mock(spec=CourseDirectory)
    directory.get_course = AsyncMock(return_value=None)
    directory.get_lesson = AsyncMock(return_value=None)
    directory.get_completion_threshold = AsyncMock(return_value=80)
    return directory


@pytest.fixture
def mock_registry() -> Mock:
    registry = Mock(spec=EnrollmentRegistry)
    registry.get_enrollment = AsyncMock(return_value=None)
    return registry


@pytest.fixture
def mock_progress_repository() -> Mock:
    repository = Mock(spec=LessonProgressRepository)
    repository.get = AsyncMock(return_value=None)
    repository.list_for_course = AsyncMock(return_value={})
    repository.completed_lesson_ids = AsyncMock(return_value=set())
    repository.upsert = AsyncMock()
    return repository


# ==============================================================================
# API Client
# ==============================================================================


@pytest.fixture
def app_state() -> Iterator:
    """Application state, restored after the test."""
    from linguapath.main import app_state as state

    saved = dict(vars(state))
    yield state
    for name in list(vars(state)):
        delattr(state, name)
    for name, value in saved.items():
        setattr(state, name, value)


@pytest.fixture
def client(app_state) -> TestClient:
    """Test client without lifespan (no database connections)."""
    from linguapath.main import app

    return TestClient(app)


@pytest.fixture
def services(app_state, mock_directory, mock_registry, mock_progress_repository):
    """Real engine, store and worker over mocked lookups, installed on the app."""
    from linguapath.access.models import AccessControlConfig
    from linguapath.access.service import AccessControlEngine
    from linguapath.progress.queue import InMemoryKeyValueStore, PendingProgressQueue
    from linguapath.progress.service import ProgressStore
    from linguapath.progress.sync import ProgressSyncWorker

    store = ProgressStore(
        repository=mock_progress_repository,
        directory=mock_directory,
        queue=PendingProgressQueue(InMemoryKeyValueStore()),
        retry_delay_seconds=0,
    )
    worker = ProgressSyncWorker(store)
    store.on_queued = worker.schedule

    app_state.course_directory = mock_directory
    app_state.enrollment_registry = mock_registry
    app_state.progress_store = store
    app_state.sync_worker = worker
    app_state.access_engine = AccessControlEngine(
        directory=mock_directory,
        enrollments=mock_registry,
        progress=mock_progress_repository,
        config=AccessControlConfig(),
    )
    return app_state


@pytest.fixture
def published(mock_directory, make_course):
    """Publish a course in the mocked directory."""

    def _publish(**kwargs) -> Course:
        course = make_course(**kwargs)
        mock_directory.get_course.side_effect = lambda course_id: (
            course if course_id == course.id else None
        )
        mock_directory.get_lesson.side_effect = lambda course_id, lesson_id: (
            course.lesson_by_id(lesson_id) if course_id == course.id else None
        )
        mock_directory.get_completion_threshold.return_value = course.completion_threshold
        return course

    return _publish
