"""
Main FastAPI application module for BillNotify.

This module initializes the FastAPI application, configures middleware,
sets up the health check endpoint, and registers the notification and SMS
webhook routers.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import settings
from .models import ErrorKind
from .routers import notifications, sms
from .utils.logging import get_logger, setup_logging

# Set up structured logging
setup_logging(level="DEBUG" if settings.debug else "INFO")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Logs startup and shutdown. Provider clients open one connection per
    call, so there is nothing to initialize or close here.

    Args:
        app: The FastAPI application instance

    Yields:
        None
    """
    logger.info(
        "Application starting up",
        extra={
            "environment": settings.environment,
            "whatsapp_configured": bool(settings.zoko_api_key),
            "sms_configured": bool(settings.fast2sms_api_key),
        },
    )

    yield

    logger.info("Application shutting down")


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="WhatsApp-first transactional notifications with SMS fallback",
    version="1.0.0",
    lifespan=lifespan,
)

# Attach rate limiter to app
app.state.limiter = notifications.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Configure CORS middleware (the billing frontend calls from the browser)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next) -> Response:
    """
    Request logging middleware.

    Logs every HTTP request with method, path, status and processing time.

    Args:
        request: The incoming HTTP request
        call_next: The next middleware or route handler

    Returns:
        The HTTP response with X-Process-Time header
    """
    start_time = time.time()
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.info(
        f"Incoming request: {request.method} {request.url.path}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "correlation_id": correlation_id,
        },
    )

    response = await call_next(request)

    process_time = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time": f"{process_time:.4f}s",
            "correlation_id": correlation_id,
        },
    )

    response.headers["X-Process-Time"] = str(process_time)

    return response


# Registered after log_requests so it runs outermost and sets correlation_id first
@app.middleware("http")
async def add_correlation_id(request: Request, call_next) -> Response:
    """
    Correlation ID middleware.

    Uses the caller's X-Correlation-ID or generates one, stores it in
    request state for logging, and echoes it in the response headers.

    Args:
        request: The incoming HTTP request
        call_next: The next middleware or route handler

    Returns:
        The HTTP response with X-Correlation-ID header
    """
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
    request.state.correlation_id = correlation_id

    response = await call_next(request)

    response.headers["X-Correlation-ID"] = correlation_id

    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Answer malformed request bodies with a 400 VALIDATION_ERROR body.

    Args:
        request: The incoming HTTP request
        exc: The pydantic validation error

    Returns:
        JSON response listing the offending fields
    """
    fields = sorted(
        {str(error["loc"][-1]) for error in exc.errors() if error.get("loc")}
    )

    logger.warning(
        "Request validation failed",
        extra={
            "path": request.url.path,
            "fields": fields,
            "correlation_id": getattr(request.state, "correlation_id", None),
        },
    )

    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Missing or invalid fields",
            "errorCode": ErrorKind.VALIDATION_ERROR.value,
            "fields": fields,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Logs the stack trace and returns a 500 with a unique error ID for
    tracking. Does not expose technical details to callers.

    Args:
        request: The incoming HTTP request
        exc: The unhandled exception

    Returns:
        JSON response with error ID and generic message
    """
    error_id = str(uuid.uuid4())
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.error(
        "Unhandled exception occurred",
        extra={
            "error_id": error_id,
            "correlation_id": correlation_id,
            "error_type": type(exc).__name__,
            "error_message": str(exc),
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "errorCode": ErrorKind.UNKNOWN.value,
            "error_id": error_id,
        },
        headers={"X-Error-ID": error_id},
    )


@app.get("/healthz", tags=["health"])
async def health_check() -> dict[str, str]:
    """
    Basic health check endpoint.

    Returns:
        Dictionary with status: ok
    """
    return {"status": "ok"}


# Register routers
app.include_router(notifications.router, prefix="/api", tags=["notifications"])
app.include_router(sms.router, prefix="/api/sms", tags=["sms"])

logger.info("BillNotify application initialized successfully")
