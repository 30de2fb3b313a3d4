"""Tests for ProgressStore: remote writes, offline queue and resync."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest

from linguapath.courses.models import Course
from linguapath.progress.models import LessonProgress, PendingUpdate, ProgressSnapshot, SyncStatus
from linguapath.progress.queue import (
    InMemoryKeyValueStore,
    KeyValueStore,
    PendingProgressQueue,
)
from linguapath.progress.service import (
    ProgressCourseNotFoundError,
    ProgressLessonNotFoundError,
    ProgressStore,
)


T0 = datetime(2026, 2, 1, 10, 0, tzinfo=UTC)


class BrokenKeyValueStore(KeyValueStore):
    """Store whose backend is down."""

    async def get(self, key: str) -> bytes | None:
        raise ConnectionError("redis down")

    async def put(self, key: str, value: bytes) -> None:
        raise ConnectionError("redis down")

    async def delete(self, key: str) -> None:
        raise ConnectionError("redis down")


def snapshot(watched: float = 50, at: datetime = T0) -> ProgressSnapshot:
    return ProgressSnapshot(
        watched_seconds=watched, total_seconds=100, current_time=watched, recorded_at=at
    )


@pytest.fixture
def queue() -> PendingProgressQueue:
    return PendingProgressQueue(InMemoryKeyValueStore())


@pytest.fixture
def on_queued() -> Mock:
    return Mock()


@pytest.fixture
def store(mock_progress_repository, mock_directory, queue, on_queued) -> ProgressStore:
    return ProgressStore(
        repository=mock_progress_repository,
        directory=mock_directory,
        queue=queue,
        max_attempts=3,
        retry_delay_seconds=0,
        on_queued=on_queued,
    )


@pytest.fixture
def written(mock_progress_repository) -> list[LessonProgress]:
    """Records that reached the database."""
    records: list[LessonProgress] = []
    mock_progress_repository.upsert.side_effect = records.append
    return records


def failing_then(records: list[LessonProgress], failures: int) -> Callable:
    calls = {"n": 0}

    def upsert(progress: LessonProgress) -> None:
        calls["n"] += 1
        if calls["n"] <= failures:
            raise ConnectionError("cassandra timeout")
        records.append(progress)

    return upsert


class TestSaveProgress:
    @pytest.mark.asyncio
    async def test_successful_write_is_synced(
        self, store: ProgressStore, written, on_queued: Mock, user_id: UUID
    ) -> None:
        course_id, lesson_id = uuid4(), uuid4()

        result = await store.save_progress(user_id, course_id, lesson_id, snapshot(85))

        assert result.status == SyncStatus.SYNCED
        assert result.progress.is_completed is True
        assert len(written) == 1
        on_queued.assert_not_called()

    @pytest.mark.asyncio
    async def test_threshold_read_from_course(
        self, store: ProgressStore, mock_directory, written, user_id: UUID
    ) -> None:
        mock_directory.get_completion_threshold.return_value = 90

        result = await store.save_progress(user_id, uuid4(), uuid4(), snapshot(85))

        assert result.progress.is_completed is False

    @pytest.mark.asyncio
    async def test_failed_write_is_queued(
        self,
        store: ProgressStore,
        mock_progress_repository,
        queue: PendingProgressQueue,
        on_queued: Mock,
        user_id: UUID,
    ) -> None:
        mock_progress_repository.upsert.side_effect = ConnectionError("cassandra timeout")

        result = await store.save_progress(user_id, uuid4(), uuid4(), snapshot())

        assert result.status == SyncStatus.PENDING
        assert result.queued
        assert await queue.count(user_id) == 1
        on_queued.assert_called_once_with(user_id)

    @pytest.mark.asyncio
    async def test_failed_read_is_queued_too(
        self, store: ProgressStore, mock_progress_repository, queue, user_id: UUID
    ) -> None:
        mock_progress_repository.get.side_effect = ConnectionError("cassandra timeout")

        result = await store.save_progress(user_id, uuid4(), uuid4(), snapshot())

        assert result.status == SyncStatus.PENDING
        mock_progress_repository.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_queue_unavailable_reports_error(
        self, mock_progress_repository, mock_directory, on_queued: Mock, user_id: UUID
    ) -> None:
        store = ProgressStore(
            repository=mock_progress_repository,
            directory=mock_directory,
            queue=PendingProgressQueue(BrokenKeyValueStore()),
            on_queued=on_queued,
        )
        mock_progress_repository.upsert.side_effect = ConnectionError("cassandra timeout")

        result = await store.save_progress(user_id, uuid4(), uuid4(), snapshot())

        assert result.status == SyncStatus.ERROR
        on_queued.assert_not_called()


class TestSyncPending:
    @pytest.mark.asyncio
    async def test_failed_save_then_sync_persists_exactly_once(
        self,
        store: ProgressStore,
        mock_progress_repository,
        queue: PendingProgressQueue,
        user_id: UUID,
    ) -> None:
        records: list[LessonProgress] = []
        mock_progress_repository.upsert.side_effect = failing_then(records, failures=1)
        lesson_id = uuid4()

        saved = await store.save_progress(user_id, uuid4(), lesson_id, snapshot(60))
        first = await store.sync_pending(user_id)
        second = await store.sync_pending(user_id)

        assert saved.status == SyncStatus.PENDING
        assert first.status == SyncStatus.SYNCED
        assert first.synced == 1
        assert second.synced == 0
        assert [r.lesson_id for r in records] == [lesson_id]
        assert records[0].watched_seconds == 60
        assert await queue.count(user_id) == 0

    @pytest.mark.asyncio
    async def test_empty_queue_is_synced(self, store: ProgressStore, user_id: UUID) -> None:
        report = await store.sync_pending(user_id)
        assert report.status == SyncStatus.SYNCED
        assert report.synced == 0

    @pytest.mark.asyncio
    async def test_exhausted_retries_degrade_and_keep_entry(
        self,
        store: ProgressStore,
        mock_progress_repository,
        queue: PendingProgressQueue,
        user_id: UUID,
    ) -> None:
        mock_progress_repository.upsert.side_effect = ConnectionError("cassandra timeout")
        lesson_id = uuid4()
        await store.save_progress(user_id, uuid4(), lesson_id, snapshot())

        report = await store.sync_pending(user_id)

        assert report.status == SyncStatus.ERROR
        assert report.degraded
        assert report.exhausted_lesson_ids == [lesson_id]
        assert report.remaining == 1
        # One failed save plus three resync attempts
        assert mock_progress_repository.upsert.await_count == 4
        entries = await queue.entries(user_id)
        assert entries[0].retry_count == 1

        state = await store.get_sync_status(user_id)
        assert state.status == SyncStatus.ERROR
        assert state.pending == 1

    @pytest.mark.asyncio
    async def test_drained_queue_drops_report_and_forget_clears_user(
        self, store: ProgressStore, mock_progress_repository, user_id: UUID
    ) -> None:
        records: list[LessonProgress] = []
        mock_progress_repository.upsert.side_effect = failing_then(records, failures=1)
        await store.save_progress(user_id, uuid4(), uuid4(), snapshot(60))

        await store.sync_pending(user_id)

        assert user_id not in store._last_report
        assert (await store.get_sync_status(user_id)).last_synced_at is not None

        store.forget(user_id)

        assert user_id not in store._last_synced_at
        assert (await store.get_sync_status(user_id)).last_synced_at is None

    @pytest.mark.asyncio
    async def test_entry_in_flight_is_skipped(
        self,
        store: ProgressStore,
        mock_progress_repository,
        queue: PendingProgressQueue,
        user_id: UUID,
    ) -> None:
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_upsert(progress: LessonProgress) -> None:
            entered.set()
            await release.wait()

        course_id, lesson_id = uuid4(), uuid4()
        await queue.enqueue(
            user_id, PendingUpdate(lesson_id=lesson_id, course_id=course_id, snapshot=snapshot())
        )
        mock_progress_repository.upsert.side_effect = slow_upsert

        first = asyncio.create_task(store.sync_pending(user_id))
        await entered.wait()
        assert (await store.get_sync_status(user_id)).status == SyncStatus.SYNCING

        concurrent = await store.sync_pending(user_id)
        release.set()
        finished = await first

        assert concurrent.skipped_in_flight == 1
        assert concurrent.synced == 0
        assert finished.synced == 1
        assert mock_progress_repository.upsert.await_count == 1
        assert await queue.count(user_id) == 0

    @pytest.mark.asyncio
    async def test_entry_replaced_while_in_flight_stays_queued(
        self,
        store: ProgressStore,
        mock_progress_repository,
        queue: PendingProgressQueue,
        user_id: UUID,
    ) -> None:
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_upsert(progress: LessonProgress) -> None:
            entered.set()
            await release.wait()

        course_id, lesson_id = uuid4(), uuid4()
        await queue.enqueue(
            user_id, PendingUpdate(lesson_id=lesson_id, course_id=course_id, snapshot=snapshot())
        )
        mock_progress_repository.upsert.side_effect = slow_upsert

        task = asyncio.create_task(store.sync_pending(user_id))
        await entered.wait()
        await queue.enqueue(
            user_id,
            PendingUpdate(
                lesson_id=lesson_id,
                course_id=course_id,
                snapshot=snapshot(70, at=T0 + timedelta(seconds=10)),
            ),
        )
        release.set()
        report = await task

        assert report.status == SyncStatus.PENDING
        assert report.remaining == 1
        assert (await queue.entries(user_id))[0].snapshot.watched_seconds == 70

    @pytest.mark.asyncio
    async def test_queue_read_failure_reports_error(
        self, mock_progress_repository, mock_directory, user_id: UUID
    ) -> None:
        store = ProgressStore(
            repository=mock_progress_repository,
            directory=mock_directory,
            queue=PendingProgressQueue(BrokenKeyValueStore()),
        )

        report = await store.sync_pending(user_id)

        assert report.status == SyncStatus.ERROR


class TestReads:
    @pytest.mark.asyncio
    async def test_get_progress_read_failure_returns_none(
        self, store: ProgressStore, mock_progress_repository, user_id: UUID
    ) -> None:
        mock_progress_repository.get.side_effect = ConnectionError("cassandra timeout")
        assert await store.get_progress(user_id, uuid4(), uuid4()) is None

    @pytest.mark.asyncio
    async def test_course_progress(
        self,
        store: ProgressStore,
        mock_directory,
        mock_progress_repository,
        make_course: Callable[..., Course],
        make_progress: Callable[..., LessonProgress],
        user_id: UUID,
    ) -> None:
        course = make_course(lessons=3)
        mock_directory.get_course.return_value = course
        first = make_progress(user_id, course.lessons[0], 100)
        orphan = make_progress(user_id, course.lessons[1], 50)
        orphan.lesson_id = uuid4()
        mock_progress_repository.list_for_course.return_value = {
            first.lesson_id: first,
            orphan.lesson_id: orphan,
        }

        progress = await store.get_course_progress(user_id, course.id)

        assert progress.completed_lessons == 1
        assert progress.total_lessons == 3
        assert progress.overall_completion == 33
        assert progress.current_lesson_id == course.lessons[1].id
        assert progress.last_accessed_lesson_id == first.lesson_id
        assert progress.total_watch_time == 600
        assert progress.estimated_time_remaining == 1200
        assert set(progress.lessons) == {first.lesson_id}

    @pytest.mark.asyncio
    async def test_total_watch_time(
        self,
        store: ProgressStore,
        mock_directory,
        mock_progress_repository,
        make_course: Callable[..., Course],
        make_progress: Callable[..., LessonProgress],
        user_id: UUID,
    ) -> None:
        course = make_course(lessons=2)
        mock_directory.get_course.return_value = course
        watched = [make_progress(user_id, lesson, 50) for lesson in course.lessons]
        mock_progress_repository.list_for_course.return_value = {p.lesson_id: p for p in watched}

        assert await store.calculate_total_watch_time(user_id, course.id) == 600

    @pytest.mark.asyncio
    async def test_course_progress_unknown_course(
        self, store: ProgressStore, user_id: UUID
    ) -> None:
        with pytest.raises(ProgressCourseNotFoundError):
            await store.get_course_progress(user_id, uuid4())


class TestMarkLessonCompleted:
    @pytest.mark.asyncio
    async def test_marks_full_duration(
        self,
        store: ProgressStore,
        mock_directory,
        written,
        make_course: Callable[..., Course],
        user_id: UUID,
    ) -> None:
        course = make_course(lessons=1, duration=420)
        lesson = course.lessons[0]
        mock_directory.get_lesson.return_value = lesson

        result = await store.mark_lesson_completed(user_id, course.id, lesson.id)

        assert result.status == SyncStatus.SYNCED
        assert written[0].watched_seconds == 420
        assert written[0].is_completed is True

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, store: ProgressStore, user_id: UUID) -> None:
        with pytest.raises(ProgressLessonNotFoundError):
            await store.mark_lesson_completed(user_id, uuid4(), uuid4())
