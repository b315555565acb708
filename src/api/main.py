"""
FastAPI main application.

REST API for the template provisioning service.
"""

from contextlib import asynccontextmanager
from typing import Callable, Optional
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from modules.provisioning.config import get_provisioning_config
from modules.provisioning.core.exceptions import (
    ProvisioningException,
    TemplateNotFoundException,
    RenderedInstanceNotFoundException,
    ValidationException,
    TemplateValidationException,
    ConfigurationException,
    RenderException,
    PersistenceException,
)
from modules.provisioning.engine import ProvisioningEngine
from modules.provisioning.storage.sql_store import SqlTemplateStore
from src.api.v1.router import api_router
from src.api.v1.models.responses import ErrorResponse, HealthResponse
from src.api.config import get_api_settings
from src.database.connection import create_tables, close_connections, check_connection, get_session_maker
from shared.utils.logger import setup_logger, log_error

logger = setup_logger(__name__)

settings = get_api_settings()

# Most specific first; subclasses must precede their base
_ERROR_MAP = [
    (TemplateNotFoundException, status.HTTP_404_NOT_FOUND, "template_not_found"),
    (RenderedInstanceNotFoundException, status.HTTP_404_NOT_FOUND, "rendered_instance_not_found"),
    (TemplateValidationException, status.HTTP_400_BAD_REQUEST, "invalid_template"),
    (ValidationException, status.HTTP_400_BAD_REQUEST, "validation_error"),
    (RenderException, 422, "render_error"),
    (ConfigurationException, status.HTTP_500_INTERNAL_SERVER_ERROR, "generator_misconfigured"),
    (PersistenceException, status.HTTP_500_INTERNAL_SERVER_ERROR, "persistence_error"),
]


def error_response(status_code: int, error: str, message: str, detail: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def classify_exception(exc: ProvisioningException):
    """Return (status code, error code) for a provisioning exception."""
    for exc_type, status_code, code in _ERROR_MAP:
        if isinstance(exc, exc_type):
            return status_code, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "provisioning_error"


async def build_default_engine() -> ProvisioningEngine:
    """Create tables if configured and build an engine over the SQL store."""
    config = get_provisioning_config()

    if config.auto_create_tables:
        await create_tables()

    if not await check_connection():
        logger.warning("Database is not reachable at startup")

    return ProvisioningEngine(SqlTemplateStore(get_session_maker()), config=config)


def create_application(engine: Optional[ProvisioningEngine] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        engine: Provisioning engine to serve (optional, built on startup
            over the configured database when omitted)

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.TITLE} v{settings.VERSION}")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

        owns_engine = getattr(app.state, "engine", None) is None
        if owns_engine:
            app.state.engine = await build_default_engine()

        yield

        logger.info(f"Shutting down {settings.TITLE}")
        if owns_engine:
            await close_connections()

    app = FastAPI(
        title=settings.TITLE,
        description=settings.DESCRIPTION,
        version=settings.VERSION,
        docs_url="/docs" if settings.ENABLE_DOCS else None,
        redoc_url="/redoc" if settings.ENABLE_DOCS else None,
        openapi_url="/openapi.json" if settings.ENABLE_DOCS else None,
        lifespan=lifespan,
    )
    app.state.engine = engine

    # Configure CORS
    if settings.ENABLE_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=settings.CORS_METHODS,
            allow_headers=settings.CORS_HEADERS,
            expose_headers=["X-Generated-Values", "X-Cache"],
        )

    # Add GZip compression for responses
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Add request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next: Callable):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    # Include API routers
    app.include_router(api_router, prefix=settings.V1_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["health"], response_model=HealthResponse)
    async def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            Health status of the API, database and render cache
        """
        engine: Optional[ProvisioningEngine] = request.app.state.engine
        if engine is None:
            return HealthResponse(
                status="starting",
                version=settings.VERSION,
                environment=settings.ENVIRONMENT,
                database=False,
                store_type="none",
            )

        health = await engine.health_check()
        return HealthResponse(
            status=health["status"],
            version=settings.VERSION,
            environment=settings.ENVIRONMENT,
            database=health["database"],
            store_type=health["store_type"],
            cache=health["cache"],
        )

    # Root endpoint
    @app.get("/", tags=["root"])
    async def root():
        """
        Root endpoint with API information.

        Returns:
            API information and available endpoints
        """
        return {
            "name": settings.TITLE,
            "version": settings.VERSION,
            "docs": "/docs" if settings.ENABLE_DOCS else "disabled",
            "health": "/health",
            "api_v1": settings.V1_PREFIX,
        }

    @app.exception_handler(ProvisioningException)
    async def provisioning_exception_handler(request: Request, exc: ProvisioningException):
        status_code, code = classify_exception(exc)

        if status_code >= 500:
            log_error(logger, exc, context=f"{request.method} {request.url.path}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {status_code} {code}: {exc}")

        return error_response(status_code, code, str(exc))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_request: Request, exc: HTTPException):
        return error_response(exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_request: Request, exc: RequestValidationError):
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "validation_error",
            "Request validation failed",
            detail=str(exc.errors()),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(_request: Request, exc: Exception):
        """
        Global exception handler for unhandled errors.

        Args:
            _request: FastAPI request
            exc: Exception raised

        Returns:
            JSON error response
        """
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_server_error",
            "An internal server error occurred",
            detail=str(exc) if settings.DEBUG else None,
        )

    return app


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
