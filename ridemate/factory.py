"""Application factory for creating FastAPI instances."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ridemate import __version__
from ridemate.config.settings import BaseAppSettings, SettingsFactory
from ridemate.core.errors import RideMateError
from ridemate.core.logging import get_logger, install_middlewares, setup_logging
from ridemate.database import Database

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Startup
    logger.info(
        "Starting RideMate",
        environment=app.state.settings.environment,
        version=__version__,
    )

    yield

    # Shutdown
    await app.state.db.dispose()
    logger.info("Shutting down RideMate")


def create_app(settings: Optional[BaseAppSettings] = None) -> FastAPI:
    """
    Application factory with settings injection.

    Args:
        settings: Optional settings instance. If None, creates from environment.

    Returns:
        Configured FastAPI application instance.
    """

    if settings is None:
        settings = SettingsFactory.create()

    setup_logging(settings.log_level)

    # Create FastAPI instance
    app = FastAPI(
        title="RideMate",
        version=__version__,
        description="Ride-sharing marketplace: trips, seat bookings and admin review",
        lifespan=lifespan,
    )

    # Store settings and database in app state for dependency injection
    app.state.settings = settings
    app.state.db = Database(settings)

    # Configure middleware
    setup_middleware(app, settings)

    # Setup routes
    setup_routes(app, settings)

    # Setup error handlers
    setup_error_handlers(app, settings)

    return app


# Environment-specific app factory functions for deployment
def create_staging_app() -> FastAPI:
    """Create staging app instance."""
    return create_app(SettingsFactory.create("staging"))


def create_production_app() -> FastAPI:
    """Create production app instance."""
    return create_app(SettingsFactory.create("production"))


def setup_middleware(app: FastAPI, settings: BaseAppSettings):
    """Configure application middleware."""

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation id + request logging
    install_middlewares(app)


def setup_routes(app: FastAPI, settings: BaseAppSettings):
    """Configure application routes."""

    # API info endpoint
    @app.get("/")
    async def root():
        return {
            "app": settings.app_name,
            "version": __version__,
            "environment": settings.environment,
            "docs": "/docs",
            "redoc": "/redoc",
        }

    from ridemate.api import api_router
    from ridemate.api.health import router as health_router
    from ridemate.api.metrics import router as metrics_router

    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(api_router)


REQUEST_LOCATIONS = ("body", "query", "path")


def _field_name(loc) -> str:
    return ".".join(str(part) for part in loc if part not in REQUEST_LOCATIONS)


def _error_body(code: str, message: str, details=None) -> dict:
    body = {"success": False, "error": code, "message": message}
    if details:
        body["details"] = details
    return body


def setup_error_handlers(app: FastAPI, settings: BaseAppSettings):
    """Configure error handlers."""

    @app.exception_handler(RideMateError)
    async def domain_error_handler(request: Request, exc: RideMateError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Request failed",
            path=request.url.path,
            error=exc.code,
            message=exc.message,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": _field_name(error["loc"]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_failed", "Validation failed", details),
        )

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc):
        logger.error(
            "Unhandled error",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_error", "Internal server error"),
        )
