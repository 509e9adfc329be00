# Core infrastructure
from academy.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from academy.core.logging import configure_structlog, get_logger
from academy.core.middleware import RequestContextMiddleware, set_user_context


__all__ = [
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_context",
    "set_user_id",
]
