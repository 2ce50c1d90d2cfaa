"""ZYBoard API - Main Application Module.

This module initializes the FastAPI application with configuration,
middleware, routing, and lifecycle management for the cloud storage backend.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import ConfigValidator, get_config_summary, settings
from app.core.dependencies import get_object_storage, get_persistence
from app.core.logging import setup_logging
from app.persistence.base import PersistenceAdapter
from app.persistence.errors import DataAccessError
from app.persistence.factory import create_persistence
from app.storage.errors import ObjectStorageError
from app.storage.webdav import WebDAVStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the persistence adapter and WebDAV client, and close them on shutdown."""
    setup_logging(settings)
    logger.info("Starting %s v%s (%s)", settings.app_name, settings.version, settings.environment.value)
    logger.debug("Configuration: %s", get_config_summary())

    try:
        ConfigValidator.validate_required_settings()
    except ValueError as e:
        logger.warning("%s", e)

    persistence = create_persistence(settings)
    try:
        await persistence.initialize()
    except Exception:
        logger.exception("Persistence initialisation failed")
        await persistence.close()
        raise
    if not await persistence.test_connection():
        logger.warning("Database is not reachable at startup (%s)", persistence.connection_info())

    object_storage = WebDAVStorage(
        settings.webdav_url,
        settings.webdav_username,
        settings.webdav_password,
        base_dir=settings.webdav_base_dir,
        timeout=settings.webdav_timeout,
    )
    app.state.persistence = persistence
    app.state.object_storage = object_storage

    try:
        yield
    finally:
        logger.info("Shutting down %s", settings.app_name)
        try:
            await object_storage.close()
        finally:
            await persistence.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Personal cloud storage with quotas, teams and notifications",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    setup_middleware(app)
    setup_exception_handlers(app)
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    error_code: str,
    details=None,
    headers: dict | None = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    response = JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "message": message,
            "error_code": error_code,
            "details": details,
            "timestamp": datetime.now(UTC).isoformat(),
            "request_id": request_id,
        },
        headers=headers,
    )
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        return _error_response(
            request, exc.status_code, message, error_code, details, getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            errors.append(
                {
                    "loc": list(error.get("loc", [])),
                    "msg": str(error.get("msg", "Validation error")),
                    "type": error.get("type", "value_error"),
                }
            )

        return _error_response(request, 400, "Validation error", "VALIDATION_ERROR", errors)

    def internal_details(exc: Exception):
        return None if settings.is_production else {"error": str(exc), "type": type(exc).__name__}

    @app.exception_handler(DataAccessError)
    async def data_access_exception_handler(request: Request, exc: DataAccessError):
        logger.error("Data access failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _error_response(
            request, 500, "Database operation failed", "DATABASE_ERROR", internal_details(exc)
        )

    @app.exception_handler(ObjectStorageError)
    async def object_storage_exception_handler(request: Request, exc: ObjectStorageError):
        logger.error("Object storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _error_response(
            request, 500, "File storage operation failed", "STORAGE_ERROR", internal_details(exc)
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return _error_response(
            request, 500, "Internal server error", "INTERNAL_ERROR", internal_details(exc)
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    from app.domains.activity.controller import router as activity_router
    from app.domains.auth.controller import router as auth_router
    from app.domains.file.controller import router as file_router
    from app.domains.notification.controller import router as notification_router
    from app.domains.storage.controller import router as storage_router
    from app.domains.team.controller import router as team_router
    from app.domains.user.controller import router as user_router

    @app.get("/api/health")
    async def health_check(
        persistence: PersistenceAdapter = Depends(get_persistence),
        object_storage: WebDAVStorage = Depends(get_object_storage),
    ):
        """Report database and WebDAV reachability."""
        database_ok = await persistence.test_connection()
        webdav_ok = await object_storage.check_connection()
        return {
            "status": "healthy" if database_ok and webdav_ok else "degraded",
            "database": "connected" if database_ok else "disconnected",
            "webdav": "connected" if webdav_ok else "disconnected",
            "database_type": settings.db_type,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "docs_url": "/docs" if settings.is_development else None,
        }

    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(file_router)
    app.include_router(storage_router)
    app.include_router(activity_router)
    app.include_router(notification_router)
    app.include_router(team_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
