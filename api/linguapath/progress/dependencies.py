"""FastAPI dependencies for lesson progress.

Provides dependency injection for:
- ProgressStore and ProgressSyncWorker instances
- Error handlers
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .service import ProgressError, ProgressStore
from .sync import ProgressSyncWorker


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_progress_store_getter: Callable[[], ProgressStore] | None = None
_sync_worker_getter: Callable[[], ProgressSyncWorker] | None = None


def set_progress_store_getter(getter: Callable[[], ProgressStore]) -> None:
    """Set the progress store getter function."""
    global _progress_store_getter  # noqa: PLW0603 - Required for DI pattern
    _progress_store_getter = getter


def set_sync_worker_getter(getter: Callable[[], ProgressSyncWorker]) -> None:
    """Set the sync worker getter function."""
    global _sync_worker_getter  # noqa: PLW0603 - Required for DI pattern
    _sync_worker_getter = getter


def get_progress_store() -> ProgressStore:
    """Get ProgressStore instance from app state."""
    if _progress_store_getter is None:
        msg = "ProgressStore not configured"
        raise RuntimeError(msg)
    return _progress_store_getter()


def get_sync_worker() -> ProgressSyncWorker:
    """Get ProgressSyncWorker instance from app state."""
    if _sync_worker_getter is None:
        msg = "ProgressSyncWorker not configured"
        raise RuntimeError(msg)
    return _sync_worker_getter()


# Type aliases for dependency injection
ProgressStoreDep = Annotated[ProgressStore, Depends(get_progress_store)]
SyncWorkerDep = Annotated[ProgressSyncWorker, Depends(get_sync_worker)]


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Convert progress errors to HTTP exceptions.

    Args:
        error: Progress error

    Returns:
        HTTPException with appropriate status code
    """
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
