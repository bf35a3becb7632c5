"""
FinScope — Market Data Routes

Quotes (global and Indian), regional indices, symbol search, bulk quotes
and the Alpha Vantage series/indicator/overview endpoints. All requests
flow through ``MarketDataService`` and therefore through the cache.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from finscope.envelope import ok
from finscope.services import ServiceContainer, get_services

market_router = APIRouter()

INTRADAY_INTERVALS = "^(1min|5min|15min|30min|60min)$"
INDICATOR_INTERVALS = "^(1min|5min|15min|30min|60min|daily|weekly|monthly)$"


class BulkQuoteRequest(BaseModel):
    symbols: list[str] = Field(default_factory=list, description="Ticker symbols, at most 20")


# ──────────────────────────────────────────────
# Quotes
# ──────────────────────────────────────────────


@market_router.get("/stock/{symbol}")
async def get_stock(symbol: str, services: ServiceContainer = Depends(get_services)):
    """Quote through the provider chain (demo data as last resort)."""
    return ok(await services.market.get_quote(symbol))


@market_router.get("/indian-stock/{symbol}")
async def get_indian_stock(symbol: str, services: ServiceContainer = Depends(get_services)):
    """NSE quote; ``.NS`` is appended unless an exchange suffix is present."""
    return ok(await services.market.get_indian_quote(symbol))


@market_router.get("/indian-stocks/top")
async def get_top_indian_stocks(services: ServiceContainer = Depends(get_services)):
    return ok(await services.market.get_regional_top_symbols("india"))


@market_router.get("/indian-indices")
async def get_indian_indices(services: ServiceContainer = Depends(get_services)):
    return ok(await services.market.get_regional_indices("india"))


@market_router.get("/search")
async def search_symbols(
    q: str = Query("", description="Symbol or company name"),
    services: ServiceContainer = Depends(get_services),
):
    results = await services.market.search_symbols(q)
    return ok(results, count=len(results))


@market_router.post("/bulk")
async def bulk_quotes(body: BulkQuoteRequest, services: ServiceContainer = Depends(get_services)):
    """Parallel quotes; per-symbol failures are reported, not raised."""
    return ok(await services.market.bulk_quotes(body.symbols))


# ──────────────────────────────────────────────
# Alpha Vantage
# ──────────────────────────────────────────────


@market_router.get("/alpha/quote/{symbol}")
async def get_alpha_quote(symbol: str, services: ServiceContainer = Depends(get_services)):
    return ok(await services.market.get_alpha_quote(symbol))


@market_router.get("/alpha/intraday/{symbol}")
async def get_intraday(
    symbol: str,
    interval: str = Query("5min", pattern=INTRADAY_INTERVALS),
    services: ServiceContainer = Depends(get_services),
):
    return ok(await services.market.get_intraday_series(symbol, interval))


@market_router.get("/alpha/daily/{symbol}")
async def get_daily(
    symbol: str,
    outputsize: str = Query("compact", pattern="^(compact|full)$"),
    services: ServiceContainer = Depends(get_services),
):
    return ok(await services.market.get_daily_series(symbol, outputsize))


@market_router.get("/alpha/technical/{symbol}/{indicator}")
async def get_technical(
    symbol: str,
    indicator: str,
    interval: str = Query("daily", pattern=INDICATOR_INTERVALS),
    time_period: int = Query(14, ge=2, le=200),
    services: ServiceContainer = Depends(get_services),
):
    """RSI, MACD, SMA, EMA, BBANDS, STOCH or ADX."""
    return ok(await services.market.get_technical_indicator(symbol, indicator, interval, time_period))


@market_router.get("/alpha/overview/{symbol}")
async def get_overview(symbol: str, services: ServiceContainer = Depends(get_services)):
    return ok(await services.market.get_company_overview(symbol))


@market_router.get("/alpha/analysis/{symbol}")
async def get_alpha_analysis(symbol: str, services: ServiceContainer = Depends(get_services)):
    """Quote, overview, daily bars, SMA20 and RSI14 with availability flags."""
    return ok(await services.market.alpha_analysis(symbol))


@market_router.get("/health")
async def market_health(services: ServiceContainer = Depends(get_services)):
    return ok(await services.market.health())
