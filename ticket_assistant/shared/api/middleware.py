"""
Shared API Middleware
======================

Request tracing, access logging, and the mapping from the application
exception hierarchy to HTTP responses.

Error bodies always carry ``detail`` and ``correlation_id``; client errors
also carry the exception name and its ``details``.
"""

import time
import uuid
from typing import Callable, List, Tuple, Type
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

from ticket_assistant.config import settings
from ticket_assistant.core import (
    ApplicationException,
    DomainException,
    PermissionDenied,
    ResourceNotFoundException,
    ValidationException,
)
from ticket_assistant.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
USER_HEADER = "X-User-ID"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Reuses the caller's ``X-Correlation-ID`` or mints one.

    The id is echoed on the response and handed to direct-mode triage, so
    the request log lines and the triage run share it.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request, plus an ``X-Response-Time`` header."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = {
            "correlation_id": _correlation_id(request),
            "method": request.method,
            "path": request.url.path,
            "user_id": request.headers.get(USER_HEADER),
        }
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={**context, "error": str(e), "duration_ms": _elapsed_ms(start_time)}
            )
            raise

        duration_ms = _elapsed_ms(start_time)
        response.headers["X-Response-Time"] = f"{duration_ms / 1000:.3f}s"
        logger.info(
            "Request completed",
            extra={**context, "status_code": response.status_code, "duration_ms": duration_ms}
        )
        return response


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


# Checked in order; subclasses before their bases
_STATUS_BY_EXCEPTION: List[Tuple[Type[ApplicationException], int]] = [
    (ValidationException, 400),
    (PermissionDenied, 403),
    (ResourceNotFoundException, 404),
    (DomainException, 422),
]


def status_for(exc: ApplicationException) -> int:
    """HTTP status for an application exception; unmapped ones are server errors."""
    for exc_type, status_code in _STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    correlation_id = _correlation_id(request)
    status_code = status_for(exc)

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Application exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
            "status_code": status_code
        }
    )

    if status_code >= 500:
        content = {"detail": "Internal server error"}
    else:
        content = exc.to_dict()
    content["correlation_id"] = correlation_id
    return JSONResponse(status_code=status_code, content=content)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler; the exception text is only shown in development."""
    correlation_id = _correlation_id(request)

    logger.exception(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if settings.environment == "development" else None
        }
    )
