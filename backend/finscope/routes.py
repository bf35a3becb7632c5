"""
FinScope — Health Route

Service-wide health check. Probes every provider service in parallel and
reports per-service status with response times.
"""

from __future__ import annotations

import asyncio
import time

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse

from finscope import __version__
from finscope.config import get_settings
from finscope.envelope import ok
from finscope.errors import FinscopeError
from finscope.services import ServiceContainer, get_services

health_router = APIRouter()

# Track server start time for uptime calculations
APP_START_TIME: float = time.monotonic()


async def _timed(probe) -> dict:
    t0 = time.perf_counter()
    try:
        result = await probe()
    except Exception as exc:
        return {
            "status": "unhealthy",
            "error": exc.message if isinstance(exc, FinscopeError) else str(exc),
            "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
        }
    return {
        "status": result.get("status", "healthy"),
        "mode": result.get("mode"),
        "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
    }


@health_router.get("/health")
async def health_check(request: Request, services: ServiceContainer = Depends(get_services)):
    """Deep health check: every provider service, cache stats, scheduler state."""
    settings = get_settings()
    probes = {
        "marketData": services.market.health,
        "economicIndicators": services.economic.health,
        "news": services.news.health,
        "companyFilings": services.filings.health,
        "banking": services.banking.health_check,
    }
    results = await asyncio.gather(*(_timed(p) for p in probes.values()))
    checks = dict(zip(probes, results))

    healthy = all(c["status"] == "healthy" for c in checks.values())
    scheduler = getattr(request.app.state, "scheduler", None)
    body = ok(
        {
            "status": "healthy" if healthy else "unhealthy",
            "version": __version__,
            "environment": settings.node_env,
            "mockMode": services.mock_mode,
            "uptime_seconds": round(time.monotonic() - APP_START_TIME, 1),
            "services": checks,
            "cache": services.cache.stats(),
            "scheduler": scheduler.status() if scheduler is not None else {"running": False},
        }
    )
    if not healthy:
        body["success"] = False
        body["error"] = "One or more services are unhealthy"
        return JSONResponse(status_code=503, content=jsonable_encoder(body))
    return body
