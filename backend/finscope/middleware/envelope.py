"""
FinScope — Response Envelope Middleware

Successful JSON responses whose body is not already an envelope are
wrapped as ``{success: true, data, timestamp}``. Bodies that declare
``success`` pass through untouched.
"""

from __future__ import annotations

import json

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from finscope.envelope import shape

log = structlog.get_logger(__name__)

# OpenAPI and docs bodies are left alone
_API_PREFIX = "/api/"


class ResponseEnvelopeMiddleware(BaseHTTPMiddleware):
    """Apply ``shape`` to 2xx JSON bodies under ``/api``."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if not request.url.path.startswith(_API_PREFIX):
            return response
        content_type = response.headers.get("content-type", "")
        if response.status_code >= 400 or not content_type.startswith("application/json"):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        payload = json.loads(body) if body else None
        if isinstance(payload, dict) and "success" in payload:
            return Response(
                content=body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )

        log.debug("envelope.wrapped", path=request.url.path)
        headers = {k: v for k, v in response.headers.items() if k.lower() not in ("content-length", "content-type")}
        return JSONResponse(shape(payload), status_code=response.status_code, headers=headers)
