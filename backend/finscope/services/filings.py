"""
FinScope — Company Filings Service

CIK resolution, recent filings and XBRL company facts from SEC EDGAR.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from finscope.cache import TTLCache, cached, first_available, make_cache_key
from finscope.data import mock_data
from finscope.data.sec_client import SECClient
from finscope.errors import DependencyUnhealthy, ValidationFailed
from finscope.models import Company, Filing

log = structlog.get_logger(__name__)

KNOWN_CIKS = {
    "AAPL": "0000320193",
    "MSFT": "0000789019",
    "GOOGL": "0001652044",
    "GOOG": "0001652044",
    "AMZN": "0001018724",
    "TSLA": "0001318605",
    "META": "0001326801",
    "NVDA": "0001045810",
    "JPM": "0000019617",
    "JNJ": "0000200406",
}

DEMO_CIK = "0000000000"

FORM_TYPES = {
    "10-K": "Annual report with audited financial statements",
    "10-Q": "Quarterly report with unaudited financial statements",
    "8-K": "Current report of material events or corporate changes",
    "DEF 14A": "Definitive proxy statement for shareholder meetings",
    "20-F": "Annual report for foreign private issuers",
    "S-1": "Registration statement for new securities offerings",
}

LATEST_10K_TICKERS = ["AAPL", "GOOGL", "MSFT", "AMZN", "TSLA"]

BY_FORM_SCAN = 50
MAX_SEARCH_RESULTS = 10


class CompanyFilingsService:
    def __init__(self, cache: TTLCache, sec: SECClient, mock_mode: bool = False):
        self.cache = cache
        self.sec = sec
        self.mock_mode = mock_mode

    async def _directory(self) -> list[Company]:
        key = make_cache_key("filings", "directory")
        result = await self.cache.read_through("filings", key, self.sec.get_exchange_directory)
        return result or []

    @cached("filings", name="cik")
    async def get_cik(self, ticker: str) -> Company:
        """Known table, then the SEC ticker/exchange map, then the demo CIK."""
        sym = (ticker or "").upper().strip()
        if not sym:
            raise ValidationFailed("Ticker is required")
        if sym in KNOWN_CIKS:
            return Company(cik=KNOWN_CIKS[sym], ticker=sym, name=mock_data.company_name(sym))
        if not self.mock_mode:
            for company in await self._directory():
                if company.ticker.upper() == sym:
                    return company
        log.info("filings.demo_cik", ticker=sym)
        return Company(cik=DEMO_CIK, ticker=sym, name=f"{sym} Company (Demo Data)")

    async def get_filings(self, ticker: str, limit: int = 10) -> dict:
        company = await self.get_cik(ticker)
        filings = await self._filings(company, max(1, min(limit, 100)))
        return {"company": company, "filings": filings, "count": len(filings)}

    @cached("filings", name="recent")
    async def _filings(self, company: Company, limit: int) -> list[Filing]:
        loaders = []
        if not self.mock_mode and company.cik != DEMO_CIK:
            loaders.append(("sec", lambda: self.sec.get_filings(company.cik, limit)))
        outcome = await first_available(loaders, mock=lambda: mock_data.mock_filings(company.ticker, limit), label="filings")
        return outcome.value

    async def get_filings_by_form(self, ticker: str, form: str, limit: int = 10) -> dict:
        """Filter a wider recent-filings window by form type."""
        wanted = (form or "").upper().strip()
        if not wanted:
            raise ValidationFailed("Form type is required")
        company = await self.get_cik(ticker)
        filings = await self._filings(company, BY_FORM_SCAN)
        matching = [f for f in filings if f.form.upper() == wanted][:limit]
        return {"company": company, "formType": wanted, "filings": matching, "count": len(matching)}

    async def get_company_facts(self, ticker: str) -> dict:
        company = await self.get_cik(ticker)
        key = make_cache_key("filings", "facts", company.cik, company.ticker)

        async def load() -> dict:
            loaders = []
            if not self.mock_mode and company.cik != DEMO_CIK:
                loaders.append(("sec", lambda: self.sec.get_company_facts(company.cik)))
            outcome = await first_available(loaders, label="facts")
            if outcome.found:
                return {
                    "company": company,
                    "entityName": outcome.value["entityName"] or company.name,
                    "financials": outcome.value["facts"],
                    "dataSource": "SEC EDGAR XBRL",
                }
            return {
                "company": company,
                "entityName": company.name,
                "financials": mock_data.mock_company_facts(company.ticker),
                "dataSource": mock_data.DEMO_SOURCE,
                "note": mock_data.DEMO_NOTE,
            }

        return await self.cache.read_through("filings", key, load)

    async def search_companies(self, query: str) -> list[Company]:
        q = (query or "").strip().lower()
        if not q:
            raise ValidationFailed("Search query is required")
        key = make_cache_key("filings", "search", q)

        async def load() -> list[Company]:
            directory = None if self.mock_mode else await self.sec.get_ticker_directory()
            if directory is None:
                directory = [Company(cik=cik, ticker=t, name=mock_data.company_name(t)) for t, cik in KNOWN_CIKS.items()]
            hits = [c for c in directory if q in c.ticker.lower() or q in c.name.lower()]
            return hits[:MAX_SEARCH_RESULTS]

        return await self.cache.read_through("filings", key, load)

    @staticmethod
    def form_types() -> list[dict]:
        return [{"form": form, "description": desc} for form, desc in FORM_TYPES.items()]

    async def latest_10k(self, tickers: Optional[list[str]] = None) -> list[dict]:
        tickers = tickers or LATEST_10K_TICKERS
        results = await asyncio.gather(*(self.get_filings_by_form(t, "10-K", 1) for t in tickers), return_exceptions=True)
        out = []
        for ticker, res in zip(tickers, results):
            if isinstance(res, BaseException):
                out.append({"ticker": ticker, "error": str(res)})
            else:
                out.append({"ticker": ticker, "company": res["company"], "filing": res["filings"][0] if res["filings"] else None})
        return out

    async def health(self) -> dict:
        if self.mock_mode:
            return {"status": "healthy", "mode": "mock"}
        filings = await self.sec.get_filings(KNOWN_CIKS["AAPL"], 1)
        if not filings:
            raise DependencyUnhealthy("SEC EDGAR is not responding", details="Probe ticker AAPL")
        return {"status": "healthy", "mode": "live", "latestFiling": filings[0]}
