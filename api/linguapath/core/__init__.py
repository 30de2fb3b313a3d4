# Core infrastructure
from linguapath.core.cache import TTLCache
from linguapath.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from linguapath.core.logging import configure_structlog, get_logger
from linguapath.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "TTLCache",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_trace_id",
    "set_user_id",
]
