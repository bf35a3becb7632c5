"""
FinScope — SEC EDGAR Client

Company submissions, XBRL company facts and ticker directories from the
public EDGAR JSON endpoints. The SEC requires a descriptive User-Agent
with contact details on every request.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog

from finscope.data.base_client import UpstreamClient, safe_float, safe_int
from finscope.models import Company, FactValue, Filing

log = structlog.get_logger(__name__)

_SUBMISSIONS_URL = "https://data.sec.gov/submissions/CIK{cik}.json"
_FACTS_URL = "https://data.sec.gov/api/xbrl/companyfacts/CIK{cik}.json"
_TICKERS_EXCHANGE_URL = "https://www.sec.gov/files/company_tickers_exchange.json"
_TICKERS_URL = "https://www.sec.gov/files/company_tickers.json"
_ARCHIVE_URL = "https://www.sec.gov/Archives/edgar/data/{cik}/{accession}/{document}"

_HEADERS = {
    "User-Agent": "FinScope Research Bot 1.0 (contact@finscope.example)",
    "Accept": "application/json",
}

# Output key → XBRL concept names, tried in order
FACT_ALIASES: dict[str, tuple[str, ...]] = {
    "revenue": ("Revenues", "RevenueFromContractWithCustomerExcludingAssessedTax", "SalesRevenueNet"),
    "netIncome": ("NetIncomeLoss", "ProfitLoss"),
    "totalAssets": ("Assets",),
    "totalLiabilities": ("Liabilities",),
    "stockholdersEquity": (
        "StockholdersEquity",
        "StockholdersEquityIncludingPortionAttributableToNoncontrollingInterest",
    ),
}


def filing_url(cik: str, accession_number: str, primary_document: str) -> str:
    if not primary_document:
        return ""
    return _ARCHIVE_URL.format(
        cik=int(cik),
        accession=accession_number.replace("-", ""),
        document=primary_document,
    )


def zip_recent_filings(recent: dict, cik: str, limit: Optional[int] = None) -> list[Filing]:
    """Zip the parallel arrays in ``filings.recent`` into ``Filing`` records."""
    accessions = recent.get("accessionNumber") or []
    count = len(accessions) if limit is None else min(limit, len(accessions))

    def col(name: str, i: int, default: Any = "") -> Any:
        values = recent.get(name) or []
        return values[i] if i < len(values) and values[i] is not None else default

    filings = []
    for i in range(count):
        accession = accessions[i]
        document = col("primaryDocument", i)
        filings.append(
            Filing(
                accession_number=accession,
                form=col("form", i),
                filing_date=col("filingDate", i),
                report_date=col("reportDate", i),
                primary_document=document,
                size=safe_int(col("size", i, 0)) or 0,
                is_xbrl=bool(col("isXBRL", i, 0)),
                url=filing_url(cik, accession, document),
                description=col("primaryDocDescription", i),
            )
        )
    return filings


def latest_fact(concept: dict) -> Optional[FactValue]:
    """Observation with the greatest ``end`` date across every unit bucket."""
    best: Optional[tuple[str, str, dict]] = None
    for unit, observations in (concept.get("units") or {}).items():
        for obs in observations or []:
            end = obs.get("end")
            if not end or safe_float(obs.get("val")) is None:
                continue
            if best is None or end > best[0]:
                best = (end, unit, obs)
    if best is None:
        return None
    end, unit, obs = best
    return FactValue(
        value=safe_float(obs["val"]),
        unit=unit,
        end_date=end,
        start_date=obs.get("start"),
        form=obs.get("form", ""),
        filed=obs.get("filed", ""),
    )


def extract_facts(facts: dict, aliases: dict[str, tuple[str, ...]] = FACT_ALIASES) -> dict[str, Optional[FactValue]]:
    """Resolve each output key through its alias list, then take the latest observation."""
    gaap = (facts.get("facts") or {}).get("us-gaap") or {}
    out: dict[str, Optional[FactValue]] = {}
    for key, names in aliases.items():
        concept = next((gaap[n] for n in names if n in gaap), None)
        out[key] = latest_fact(concept) if concept else None
    return out


class SECClient(UpstreamClient):
    """SEC EDGAR JSON adapter."""

    name = "sec"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport)

    async def get_submissions(self, cik: str) -> Optional[dict]:
        return await self._get_json(_SUBMISSIONS_URL.format(cik=cik.zfill(10)), headers=_HEADERS)

    async def get_filings(self, cik: str, limit: int = 10) -> Optional[list[Filing]]:
        data = await self.get_submissions(cik)
        if not data:
            return None
        recent = (data.get("filings") or {}).get("recent") or {}
        filings = zip_recent_filings(recent, cik, limit)
        return filings or None

    async def get_company_facts(self, cik: str) -> Optional[dict]:
        data = await self._get_json(_FACTS_URL.format(cik=cik.zfill(10)), headers=_HEADERS)
        if not data:
            return None
        extracted = extract_facts(data)
        if not any(extracted.values()):
            return None
        return {"entityName": data.get("entityName", ""), "facts": extracted}

    async def get_exchange_directory(self) -> Optional[list[Company]]:
        """Rows of ``[cik, name, ticker, exchange]`` from the ticker/exchange map."""
        data = await self._get_json(_TICKERS_EXCHANGE_URL, headers=_HEADERS)
        if not data:
            return None
        fields = data.get("fields") or ["cik", "name", "ticker", "exchange"]
        companies = []
        for row in data.get("data") or []:
            rec = dict(zip(fields, row))
            if rec.get("cik") is None or not rec.get("ticker"):
                continue
            companies.append(Company(cik=rec["cik"], ticker=rec["ticker"], name=rec.get("name", ""), exchange=rec.get("exchange")))
        return companies or None

    async def get_ticker_directory(self) -> Optional[list[Company]]:
        data = await self._get_json(_TICKERS_URL, headers=_HEADERS)
        if not isinstance(data, dict):
            return None
        companies = [
            Company(cik=row["cik_str"], ticker=row.get("ticker", ""), name=row.get("title", ""))
            for row in data.values()
            if isinstance(row, dict) and row.get("cik_str") is not None
        ]
        return companies or None
