"""Periodic resync of offline progress queues.

One process-wide worker replays the queues of scheduled users every
interval. A user is scheduled when one of their saves gets queued and
cancelled on logout; cancelling leaves the queued entries stored.
"""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from linguapath.core.logging import get_logger

from .models import SyncStatus


if TYPE_CHECKING:
    from uuid import UUID

    from .service import ProgressStore


logger = get_logger(__name__)


class ProgressSyncWorker:
    """Background task calling ProgressStore.sync_pending for scheduled users."""

    def __init__(self, store: ProgressStore, interval_seconds: float = 30.0) -> None:
        """Initialize sync worker.

        Args:
            store: Progress store whose queues are replayed
            interval_seconds: Seconds between passes
        """
        self.store = store
        self.interval_seconds = interval_seconds

        self._scheduled: set[UUID] = set()
        self._running = False
        self._worker_task: asyncio.Task | None = None
        self._start_time: float = 0.0
        self._last_pass_at: datetime | None = None

        # Counters for monitoring
        self._passes = 0
        self._entries_synced = 0
        self._degraded_passes = 0

    # ==========================================================================
    # Scheduling
    # ==========================================================================

    def schedule(self, user_id: UUID) -> None:
        """Include the user's queue in the next passes."""
        if user_id not in self._scheduled:
            self._scheduled.add(user_id)
            logger.debug("progress_sync_scheduled", user_id=str(user_id))

    def cancel(self, user_id: UUID) -> bool:
        """Stop replaying the user's queue (logout)."""
        if user_id not in self._scheduled:
            return False
        self._scheduled.discard(user_id)
        logger.info("progress_sync_cancelled", user_id=str(user_id))
        return True

    def is_scheduled(self, user_id: UUID) -> bool:
        return user_id in self._scheduled

    # ==========================================================================
    # Background Worker
    # ==========================================================================

    async def start(self) -> None:
        """Start the background worker."""
        if self._running:
            logger.warning("progress_sync_worker_already_running")
            return

        self._running = True
        self._start_time = time.monotonic()
        self._worker_task = asyncio.create_task(
            self._worker_loop(),
            name="progress_sync_worker",
        )
        logger.info("progress_sync_worker_started", interval=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the background worker."""
        if not self._running:
            return

        self._running = False

        if self._worker_task:
            self._worker_task.cancel()
            try:
                await asyncio.wait_for(self._worker_task, timeout=5.0)
            except TimeoutError:
                logger.warning("progress_sync_worker_stop_timeout")
            except asyncio.CancelledError:
                pass
            self._worker_task = None

        logger.info(
            "progress_sync_worker_stopped",
            passes=self._passes,
            entries_synced=self._entries_synced,
            scheduled_users=len(self._scheduled),
        )

    async def _worker_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_once()
            except Exception:
                logger.exception("progress_sync_worker_error")

    async def run_once(self) -> int:
        """Replay every scheduled queue once.

        Users whose queue is empty afterwards are unscheduled.

        Returns:
            Number of entries written
        """
        synced = 0
        for user_id in list(self._scheduled):
            if user_id not in self._scheduled:
                # Cancelled during this pass
                continue
            report = await self.store.sync_pending(user_id)
            synced += report.synced
            if report.degraded:
                self._degraded_passes += 1
            if report.status == SyncStatus.SYNCED:
                # Drained
                self._scheduled.discard(user_id)

        self._passes += 1
        self._entries_synced += synced
        self._last_pass_at = datetime.now(UTC)
        return synced

    # ==========================================================================
    # Status/Monitoring
    # ==========================================================================

    @property
    def is_running(self) -> bool:
        """Check if worker is running."""
        return self._running

    def get_stats(self) -> dict:
        """Get worker statistics for monitoring."""
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "scheduled_users": len(self._scheduled),
            "passes": self._passes,
            "entries_synced": self._entries_synced,
            "degraded_passes": self._degraded_passes,
            "last_pass_at": self._last_pass_at,
            "uptime_seconds": time.monotonic() - self._start_time if self._running else 0.0,
        }
