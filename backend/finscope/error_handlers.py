"""
FinScope — Global Exception Handlers

Every error leaves the API inside the standard envelope
(``{success: false, error, timestamp, ...}``). Unknown exceptions are
logged with their traceback; their message is only echoed back in
development.
"""

from __future__ import annotations

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from finscope.config import get_settings
from finscope.envelope import fail
from finscope.errors import FinscopeError, utc_now_iso

log = structlog.get_logger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(FinscopeError)
    async def finscope_error_handler(request: Request, exc: FinscopeError):
        log.warning(
            "request.failed",
            path=str(request.url.path),
            status=exc.status_code,
            error=exc.message,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(status_code=exc.status_code, content=fail(exc.to_shape()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "error": "Route not found",
                    "path": str(request.url.path),
                    "timestamp": utc_now_iso(),
                },
            )
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(fail(detail)))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed path, query or body parameters → 400 with field details."""
        errors = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", []) if loc != "body"),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        log.warning(
            "validation_error",
            path=str(request.url.path),
            errors=errors,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(status_code=400, content=fail("Validation error", errors=errors))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Catch-all → 500; the message is only exposed in development."""
        log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
            traceback=traceback.format_exc(),
            request_id=getattr(request.state, "request_id", None),
        )
        message = str(exc) if get_settings().is_development else "Internal server error"
        return JSONResponse(status_code=500, content=fail(message))
