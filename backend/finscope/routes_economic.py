"""
FinScope — Economic Indicator Routes

FRED-backed US indicators, Indian reference figures, forex rates and the
combined summary.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from finscope.envelope import ok
from finscope.services import ServiceContainer, get_services

economic_router = APIRouter()


@economic_router.get("/us")
async def get_us(services: ServiceContainer = Depends(get_services)):
    return ok(await services.economic.get_us_summary())


@economic_router.get("/india")
async def get_india(services: ServiceContainer = Depends(get_services)):
    return ok(await services.economic.get_regional_summary("india"))


@economic_router.get("/global")
async def get_global(services: ServiceContainer = Depends(get_services)):
    return ok(await services.economic.get_global_summary())


@economic_router.get("/forex")
async def get_forex(services: ServiceContainer = Depends(get_services)):
    return ok(await services.economic.get_forex())


@economic_router.get("/summary")
async def get_summary(services: ServiceContainer = Depends(get_services)):
    """US, India and forex within a 10 s budget; late slots get demo data."""
    return ok(await services.economic.get_summary())


@economic_router.get("/fred/{series_id}")
async def get_fred_series(series_id: str, services: ServiceContainer = Depends(get_services)):
    return ok(await services.economic.get_series(series_id))


@economic_router.get("/health")
async def economic_health(services: ServiceContainer = Depends(get_services)):
    return ok(await services.economic.health())
