"""Academy API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from academy.config import Settings, get_settings
from academy.core.context import get_request_id
from academy.core.database import (
    init_async_cassandra,
    init_neo4j,
    shutdown_async_cassandra,
    shutdown_neo4j,
)
from academy.core.logging import configure_structlog, get_logger
from academy.core.middleware import RequestContextMiddleware
from academy.enrolments.cassandra_store import CassandraGraphStore
from academy.enrolments.neo4j_store import Neo4jGraphStore
from academy.enrolments.router import courses_router
from academy.enrolments.router import router as enrolments_router
from academy.enrolments.service import EnrolmentService
from academy.health import router as health_router


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings)

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    neo4j_driver: Any = None
    enrolment_service: EnrolmentService | None = None


app_state = AppState()


async def init_graph_store(settings: Settings) -> CassandraGraphStore | Neo4jGraphStore:
    """Connect the configured backend and wrap it in a graph store."""
    if settings.graph_backend == "neo4j":
        app_state.neo4j_driver = await init_neo4j()
        return Neo4jGraphStore(
            driver=app_state.neo4j_driver,
            database=settings.neo4j_database,
            query_timeout=settings.neo4j_query_timeout,
        )

    app_state.cassandra_session = await init_async_cassandra()
    return CassandraGraphStore(
        session=app_state.cassandra_session,
        keyspace=settings.cassandra_keyspace,
    )


async def shutdown_graph_store() -> None:
    if app_state.neo4j_driver is not None:
        await shutdown_neo4j()
        app_state.neo4j_driver = None
    if app_state.cassandra_session is not None:
        await shutdown_async_cassandra()
        app_state.cassandra_session = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        graph_backend=settings.graph_backend,
    )

    try:
        store = await init_graph_store(settings)
        app_state.enrolment_service = EnrolmentService(store=store)
        app.state.enrolment_service = app_state.enrolment_service
        logger.info("enrolment_service_initialized", graph_backend=settings.graph_backend)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            graph_backend=settings.graph_backend,
            error=str(e),
            message="Running without graph store connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    app_state.enrolment_service = None
    await shutdown_graph_store()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces never reach responses; the handlers below log them instead.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course progress API",
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
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
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
        """Catch-all for unhandled exceptions, including graph store failures.

        Details are logged; the response carries only the request ID.
        """
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

    app.include_router(health_router)
    app.include_router(enrolments_router)
    app.include_router(courses_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Academy API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
