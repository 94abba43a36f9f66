"""
Main Entry Point - FastAPI Application
Project: AutoService CRM

Configures the FastAPI application with middleware, routers, error
envelope and lifecycle (database and scheduler).
"""

import logging
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from autocrm.api import api_router
from autocrm.core.config import settings
from autocrm.core.database import close_db, init_db
from autocrm.core.exceptions import AppException, translate_integrity_error
from autocrm.services.scheduler import shutdown_scheduler, start_scheduler

# ------------------------------------------------------------
# Logging configuration
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_ERROR",
    403: "INSUFFICIENT_PERMISSIONS",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Any] = None,
    exc: Optional[BaseException] = None,
) -> JSONResponse:
    """
    Builds the error envelope.

    {"success": false, "error": {"code", "message", "details"?, "stack"?}}
    The stack trace is only exposed in development.
    """
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    if exc is not None and settings.is_development:
        error["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


# ------------------------------------------------------------
# Lifespan handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle.

    - Startup: checks the database connection, starts the scheduler
    - Shutdown: stops the scheduler, closes the database pool
    """
    logger.info("Starting %s v%s (%s)", settings.app_name, settings.app_version, settings.app_env)
    await init_db()
    if settings.scheduler_enabled:
        start_scheduler()
    logger.info("Application started")

    yield

    logger.info("Shutting down application...")
    shutdown_scheduler()
    await close_db()
    logger.info("Application stopped")


# ------------------------------------------------------------
# FastAPI application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="CRM for an auto-repair shop - Backend API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ------------------------------------------------------------
# Middleware
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


# ------------------------------------------------------------
# Exception handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Renders domain exceptions with their own status and code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.warning("%s %s -> %s %s: %s", request.method, request.url.path, exc.status_code, exc.error_code, exc.detail)
    return error_response(exc.status_code, exc.error_code, exc.detail, details=exc.extra)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads are reported as VALIDATION_ERROR with per-field details."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    logger.warning("%s %s -> validation failed: %s", request.method, request.url.path, details)
    message = details[0]["message"] if len(details) == 1 else "Ошибка валидации"
    return error_response(400, "VALIDATION_ERROR", message, details=details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = "Маршрут не найден" if exc.status_code == 404 else str(exc.detail)
    return error_response(exc.status_code, code, message)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Constraint violations that escaped the service layer."""
    translated = translate_integrity_error(exc)
    logger.warning("%s %s -> integrity error: %s", request.method, request.url.path, exc.orig)
    return error_response(translated.status_code, translated.error_code, translated.detail)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for unexpected exceptions.

    Logs the error with the request context and answers 500.
    """
    logger.error(
        "Unhandled exception on %s %s from %s: %s",
        request.method,
        request.url.path,
        request.client.host if request.client else "-",
        exc,
        exc_info=True,
    )
    return error_response(500, "INTERNAL_SERVER_ERROR", "Внутренняя ошибка сервера", exc=exc)


# ------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------
@app.get(
    "/api/health",
    name="Health Check",
    summary="Application health",
    tags=["System"],
)
async def health_check() -> dict[str, Any]:
    return {
        "status": "ok",
        "version": settings.app_version,
        "environment": settings.app_env,
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ------------------------------------------------------------
# Router
# ------------------------------------------------------------
app.include_router(api_router)
