"""docshare Backend - Main FastAPI Application

Document storage and sharing service: private uploads through presigned
URLs, owner-controlled public share links, download counting.

This module creates and configures the main FastAPI application, including:
- The document and shared-link routers
- Middleware (request ID correlation, CORS)
- Exception handlers mapping broker errors to HTTP responses
- Health and observability endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import settings
from .database import create_tables
from .domain.documents.errors import DocumentAccessError, ErrorKind

# Observability
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.request_id import get_request_id
from .observability.router import router as observability_router

# API v1 Routers
from .api.v1.documents.router import router as documents_router
from .api.v1.documents.router import shared_router

# Configure logging
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

IS_PRODUCTION = settings.ENVIRONMENT == "production"

# Seconds clients should wait before retrying a 503
RETRY_AFTER_SECONDS = 5

ERROR_STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.STATE_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.GATEWAY_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.REPOSITORY_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Startup: create missing tables when AUTO_CREATE_TABLES is set
    - Shutdown: log only; the engine pool closes with the process
    """
    logger.info("docshare API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    if settings.AUTO_CREATE_TABLES:
        create_tables()
        logger.info("Database tables ensured")

    yield

    logger.info("docshare API shutting down...")


# Create FastAPI application
app = FastAPI(
    title="docshare API",
    description="Private document storage with owner-controlled public share links",
    version=__version__,
    docs_url=None if IS_PRODUCTION else "/docs",
    redoc_url=None if IS_PRODUCTION else "/redoc",
    openapi_url=None if IS_PRODUCTION else "/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

# Request ID Middleware (must be first for proper correlation)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(DocumentAccessError)
async def document_access_exception_handler(
    request: Request,
    exc: DocumentAccessError
) -> JSONResponse:
    """Render broker errors as {"error": kind, "message": ...}.

    Retryable kinds (store unavailable) become 503 with Retry-After.
    """
    status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None

    if exc.retryable:
        logger.error(
            f"{exc.kind.value} on {request.method} {request.url.path}: {exc.message}"
        )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.kind.value,
            "message": exc.message,
            "request_id": get_request_id(),
        },
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": ErrorKind.VALIDATION_FAILED.value,
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors()),
            "request_id": get_request_id(),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors that escaped the repository.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
            "request_id": get_request_id(),
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle uncaught exceptions. Details are logged, never returned."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": get_request_id(),
        },
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

# Observability (health, metrics, ready)
app.include_router(observability_router)

app.include_router(documents_router, prefix="/api/v1")
app.include_router(shared_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> Dict[str, Any]:
    """Root endpoint - API information."""
    return {
        "name": "docshare API",
        "version": __version__,
        "status": "running",
        "docs": None if IS_PRODUCTION else "/docs",
    }


def create_app() -> FastAPI:
    """Application factory for test instances and ASGI servers."""
    return app


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "docshare.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=not IS_PRODUCTION,
        log_level=settings.LOG_LEVEL.lower(),
    )
