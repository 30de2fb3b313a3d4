"""LinguaPath API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from linguapath.access.models import AccessControlConfig
from linguapath.access.router import router as access_router
from linguapath.access.service import AccessControlEngine
from linguapath.config import get_settings
from linguapath.config.settings import Settings
from linguapath.core.cache import TTLCache
from linguapath.core.context import get_request_id
from linguapath.core.database import init_async_cassandra, shutdown_async_cassandra
from linguapath.core.logging import configure_structlog, get_logger
from linguapath.core.middleware import RequestContextMiddleware
from linguapath.core.redis import init_redis, shutdown_redis
from linguapath.courses.models import VideoProvider
from linguapath.courses.router import router as courses_router
from linguapath.courses.service import CourseDirectory
from linguapath.enrollments.router import router as enrollments_router
from linguapath.enrollments.service import EnrollmentRegistry
from linguapath.health import router as health_router
from linguapath.progress.queue import (
    InMemoryKeyValueStore,
    KeyValueStore,
    PendingProgressQueue,
    RedisKeyValueStore,
)
from linguapath.progress.repository import LessonProgressRepository
from linguapath.progress.router import router as progress_router
from linguapath.progress.service import ProgressStore
from linguapath.progress.sync import ProgressSyncWorker
from linguapath.video.router import router as video_router
from linguapath.video.sdk import ProviderSDKLoader
from linguapath.video.websocket_router import router as player_ws_router


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    http_client: httpx.AsyncClient | None = None
    course_directory: CourseDirectory | None = None
    enrollment_registry: EnrollmentRegistry | None = None
    progress_store: ProgressStore | None = None
    sync_worker: ProgressSyncWorker | None = None
    access_engine: AccessControlEngine | None = None
    sdk_loader: ProviderSDKLoader | None = None


app_state = AppState()


def get_course_directory() -> CourseDirectory:
    """Get CourseDirectory instance from app state."""
    if app_state.course_directory is None:
        msg = "CourseDirectory not initialized"
        raise RuntimeError(msg)
    return app_state.course_directory


def get_enrollment_registry() -> EnrollmentRegistry:
    """Get EnrollmentRegistry instance from app state."""
    if app_state.enrollment_registry is None:
        msg = "EnrollmentRegistry not initialized"
        raise RuntimeError(msg)
    return app_state.enrollment_registry


def get_progress_store() -> ProgressStore:
    """Get ProgressStore instance from app state."""
    if app_state.progress_store is None:
        msg = "ProgressStore not initialized"
        raise RuntimeError(msg)
    return app_state.progress_store


def get_sync_worker() -> ProgressSyncWorker:
    """Get ProgressSyncWorker instance from app state."""
    if app_state.sync_worker is None:
        msg = "ProgressSyncWorker not initialized"
        raise RuntimeError(msg)
    return app_state.sync_worker


def get_access_engine() -> AccessControlEngine:
    """Get AccessControlEngine instance from app state."""
    if app_state.access_engine is None:
        msg = "AccessControlEngine not initialized"
        raise RuntimeError(msg)
    return app_state.access_engine


def get_sdk_loader() -> ProviderSDKLoader:
    """Get ProviderSDKLoader instance from app state."""
    if app_state.sdk_loader is None:
        msg = "ProviderSDKLoader not initialized"
        raise RuntimeError(msg)
    return app_state.sdk_loader


def build_queue_store(settings: Settings, redis_client: Any) -> KeyValueStore:
    """Backing store of the pending-progress queue."""
    if settings.progress_queue_backend == "redis":
        if redis_client is not None:
            return RedisKeyValueStore(redis_client)
        logger.warning(
            "progress_queue_memory_fallback",
            message="Redis unavailable - queued progress is kept in process memory",
        )
    return InMemoryKeyValueStore()


def init_services(session: Any, settings: Settings, redis_client: Any = None) -> None:
    """Build the service graph on top of a Cassandra session."""
    keyspace = settings.cassandra_keyspace

    repository = LessonProgressRepository(session=session, keyspace=keyspace)

    app_state.course_directory = CourseDirectory(
        session=session,
        keyspace=keyspace,
        progress_repository=repository,
        cache=TTLCache(
            ttl=settings.directory_cache_ttl_seconds,
            max_entries=settings.directory_cache_max_entries,
        ),
    )
    logger.info("course_directory_initialized", cache_ttl=settings.directory_cache_ttl_seconds)

    app_state.enrollment_registry = EnrollmentRegistry(
        session=session,
        keyspace=keyspace,
        directory=app_state.course_directory,
    )
    logger.info("enrollment_registry_initialized")

    queue = PendingProgressQueue(
        build_queue_store(settings, redis_client),
        key_prefix=settings.progress_queue_key_prefix,
    )
    app_state.progress_store = ProgressStore(
        repository=repository,
        directory=app_state.course_directory,
        queue=queue,
        max_attempts=settings.progress_sync_max_attempts,
        retry_delay_seconds=settings.progress_sync_retry_delay_seconds,
    )
    app_state.sync_worker = ProgressSyncWorker(
        store=app_state.progress_store,
        interval_seconds=settings.progress_sync_interval_seconds,
    )
    app_state.progress_store.on_queued = app_state.sync_worker.schedule
    logger.info("progress_store_initialized", queue_backend=type(queue.store).__name__)

    app_state.access_engine = AccessControlEngine(
        directory=app_state.course_directory,
        enrollments=app_state.enrollment_registry,
        progress=repository,
        config=AccessControlConfig(
            require_authentication=settings.access_require_authentication,
            require_enrollment=settings.access_require_enrollment,
            check_sequential_unlock=settings.access_check_sequential_unlock,
            allow_preview_lessons=settings.access_allow_preview_lessons,
        ),
    )
    app_state.course_directory.course_access = app_state.access_engine.has_course_access
    logger.info("access_engine_initialized")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - the offline queue falls back to memory)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - offline progress queue kept in memory",
        )

    # Initialize Cassandra (async)
    try:
        app_state.cassandra_session = await init_async_cassandra(settings)
        logger.info("cassandra_initialized")
        init_services(app_state.cassandra_session, settings, redis_client)
        await app_state.sync_worker.start()
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    # Provider SDK loader (independent of database)
    app_state.http_client = httpx.AsyncClient(follow_redirects=True)
    app_state.sdk_loader = ProviderSDKLoader(
        client=app_state.http_client,
        endpoints={
            VideoProvider.YOUTUBE: settings.youtube_oembed_url,
            VideoProvider.VIMEO: settings.vimeo_oembed_url,
        },
        timeout_seconds=settings.video_sdk_timeout_seconds,
        max_attempts=settings.video_sdk_max_attempts,
    )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    if app_state.sync_worker is not None:
        await app_state.sync_worker.stop()
    if app_state.http_client is not None:
        await app_state.http_client.aclose()
        app_state.http_client = None
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Never expose stack traces; the handlers below log details internally
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LinguaPath - lesson access and progress API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages.

        Access denials carry the access-denied view as a dict detail.
        """
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        content: dict[str, Any] = {
            "error": True,
            "status_code": exc.status_code,
            "request_id": request_id,
        }
        if (
            exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
            and exc.status_code != status.HTTP_503_SERVICE_UNAVAILABLE
        ):
            content["message"] = "Internal server error"
        elif isinstance(exc.detail, dict):
            content["message"] = exc.detail.get("message") or exc.detail.get("title")
            content["access_denied"] = exc.detail
        else:
            content["message"] = str(exc.detail)

        return ORJSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(courses_router)
    app.include_router(enrollments_router)
    app.include_router(access_router)
    app.include_router(progress_router)
    app.include_router(video_router)
    app.include_router(player_ws_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LinguaPath API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


# Configure router dependencies before creating app
from linguapath.access.dependencies import set_access_engine_getter  # noqa: E402
from linguapath.courses.dependencies import set_course_directory_getter  # noqa: E402
from linguapath.enrollments.dependencies import (  # noqa: E402
    set_enrollment_registry_getter,
)
from linguapath.progress.dependencies import (  # noqa: E402
    set_progress_store_getter,
    set_sync_worker_getter,
)
from linguapath.video.dependencies import set_sdk_loader_getter  # noqa: E402


set_course_directory_getter(get_course_directory)
set_enrollment_registry_getter(get_enrollment_registry)
set_progress_store_getter(get_progress_store)
set_sync_worker_getter(get_sync_worker)
set_access_engine_getter(get_access_engine)
set_sdk_loader_getter(get_sdk_loader)


app = create_app()

if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "linguapath.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        workers=_settings.api_workers,
        reload=_settings.api_reload and _settings.is_development,
    )
