"""
FinScope — Company Filings Routes

SEC EDGAR filings, form filters, XBRL company facts and CIK lookup.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from finscope.envelope import ok
from finscope.services import ServiceContainer, get_services
from finscope.services.filings import CompanyFilingsService

filings_router = APIRouter()


@filings_router.get("/company/{ticker}")
async def get_company_filings(
    ticker: str,
    limit: int = Query(10, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    return ok(await services.filings.get_filings(ticker, limit))


@filings_router.get("/company/{ticker}/form/{form_type}")
async def get_filings_by_form(
    ticker: str,
    form_type: str,
    limit: int = Query(10, ge=1, le=50),
    services: ServiceContainer = Depends(get_services),
):
    return ok(await services.filings.get_filings_by_form(ticker, form_type, limit))


@filings_router.get("/company/{ticker}/facts")
async def get_company_facts(ticker: str, services: ServiceContainer = Depends(get_services)):
    """Latest XBRL value for revenue, net income, assets, liabilities, equity."""
    return ok(await services.filings.get_company_facts(ticker))


@filings_router.get("/cik/{ticker}")
async def get_cik(ticker: str, services: ServiceContainer = Depends(get_services)):
    return ok(await services.filings.get_cik(ticker))


@filings_router.get("/search")
async def search_companies(
    q: str = Query("", description="Ticker or company name"),
    services: ServiceContainer = Depends(get_services),
):
    results = await services.filings.search_companies(q)
    return ok(results, count=len(results))


@filings_router.get("/forms")
async def get_form_types():
    return ok(CompanyFilingsService.form_types())


@filings_router.get("/latest/10-k")
async def get_latest_10k(services: ServiceContainer = Depends(get_services)):
    return ok(await services.filings.latest_10k())


@filings_router.get("/health")
async def filings_health(services: ServiceContainer = Depends(get_services)):
    return ok(await services.filings.health())
