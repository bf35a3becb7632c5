"""
FinScope — Stock Analysis Routes

Full multi-factor analysis, quick RSI read, trending quotes, news
sentiment and symbol search.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from finscope.envelope import ok
from finscope.services import ServiceContainer, get_services

analysis_router = APIRouter()


@analysis_router.get("/analyze/{symbol}")
async def analyze_stock(symbol: str, services: ServiceContainer = Depends(get_services)):
    """Quote, news, fundamentals, technicals and macro context in one report.

    Fails with an error payload only when no quote could be obtained.
    """
    return ok(await services.analysis.analyze(symbol))


@analysis_router.get("/search")
async def search_stocks(
    q: str = Query("", description="Symbol or company name"),
    services: ServiceContainer = Depends(get_services),
):
    return ok(await services.analysis.search(q))


@analysis_router.get("/quick/{symbol}")
async def quick_analysis(symbol: str, services: ServiceContainer = Depends(get_services)):
    return ok(await services.analysis.quick(symbol))


@analysis_router.get("/trending")
async def trending_stocks(services: ServiceContainer = Depends(get_services)):
    return ok(await services.analysis.trending())


@analysis_router.get("/sentiment/{symbol}")
async def stock_sentiment(symbol: str, services: ServiceContainer = Depends(get_services)):
    return ok(await services.analysis.sentiment(symbol))
