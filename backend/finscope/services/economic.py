"""
FinScope — Economic Indicators Service

FRED series for the US, static reference figures for India, and FX rates
from the Yahoo chart endpoint. The composite summary runs its slots
concurrently under one overall budget and fills any slot that fails or
is still outstanding with demo data.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Optional

import structlog

from finscope.cache import TTLCache, cached, first_available, make_cache_key
from finscope.data import mock_data
from finscope.data.fred_client import FREDClient
from finscope.data.yahoo_client import YahooFinanceClient
from finscope.errors import DependencyUnhealthy, ValidationFailed, utc_now_iso
from finscope.models import EconomicSeries

log = structlog.get_logger(__name__)

US_SERIES = {
    "gdp": "GDP",
    "unemployment": "UNRATE",
    "inflation": "CPIAUCSL",
    "federalRate": "FEDFUNDS",
}

INDIA_REFERENCE = {
    "gdp": {"value": 3.7, "unit": "% YoY", "description": "Real GDP growth"},
    "inflation": {"value": 4.87, "unit": "%", "description": "CPI inflation"},
    "repoRate": {"value": 6.50, "unit": "%", "description": "RBI policy repo rate"},
    "unemployment": {"value": 3.2, "unit": "%", "description": "Unemployment rate"},
    "fiscalDeficit": {"value": 5.8, "unit": "% of GDP", "description": "Central government fiscal deficit"},
    "currentAccount": {"value": -0.9, "unit": "% of GDP", "description": "Current account balance"},
}

REGIONS = ("us", "india")

SUMMARY_BUDGET_SECONDS = 10.0
GDP_STALE_DAYS = 92
PROJECTED_QUARTERS_MAX = 4


def describe_series(series: EconomicSeries) -> dict:
    """Latest value plus change versus the prior observation."""
    latest, previous = series.latest, series.previous
    if latest is None:
        return {"seriesId": series.series_id, "title": series.title, "value": None, "source": series.source}
    change = latest.value - previous.value if previous else 0.0
    change_pct = (change / previous.value * 100) if previous and previous.value else 0.0
    return {
        "seriesId": series.series_id,
        "title": series.title,
        "value": latest.value,
        "date": latest.date,
        "previousValue": previous.value if previous else None,
        "change": round(change, 4),
        "changePercent": round(change_pct, 2),
        "source": series.source,
    }


def project_gdp(series: EconomicSeries, today: Optional[date] = None) -> Optional[dict]:
    """Extend a stale quarterly GDP series by its latest growth rate.

    Returns None when the newest observation is recent enough.
    """
    latest, previous = series.latest, series.previous
    if latest is None:
        return None
    today = today or date.today()
    latest_date = datetime.strptime(latest.date[:10], "%Y-%m-%d").date()
    if (today - latest_date).days <= GDP_STALE_DAYS:
        return None
    growth = (latest.value - previous.value) / previous.value if previous and previous.value else 0.0

    quarters = []
    value, when = latest.value, latest_date
    while len(quarters) < PROJECTED_QUARTERS_MAX:
        when = when + timedelta(days=91)
        if when > today + timedelta(days=91):
            break
        value = value * (1 + growth)
        quarters.append({"date": when.isoformat(), "value": round(value, 2), "projected": True})
    return {"basedOn": latest.date, "quarterlyGrowth": round(growth * 100, 3), "projectedGdp": quarters}


class EconomicIndicatorsService:
    """FRED-backed indicators with regional summaries."""

    def __init__(
        self,
        cache: TTLCache,
        fred: FREDClient,
        yahoo: YahooFinanceClient,
        mock_mode: bool = False,
        summary_budget: float = SUMMARY_BUDGET_SECONDS,
    ):
        self.cache = cache
        self.fred = fred
        self.yahoo = yahoo
        self.mock_mode = mock_mode
        self.summary_budget = summary_budget

    @cached("economic", name="series")
    async def get_series(self, series_id: str) -> EconomicSeries:
        sid = series_id.upper().strip()
        if not sid:
            raise ValidationFailed("Series ID is required")
        loaders = [] if self.mock_mode else [("fred", lambda: self.fred.get_series(sid))]
        outcome = await first_available(loaders, mock=lambda: mock_data.mock_economic_series(sid), label="economic")
        return outcome.value

    @cached("economic", name="us_summary")
    async def get_us_summary(self) -> dict:
        names = list(US_SERIES)
        results = await asyncio.gather(*(self.get_series(US_SERIES[n]) for n in names), return_exceptions=True)
        out = {}
        for name, res in zip(names, results):
            if isinstance(res, BaseException):
                log.warning("economic.series_failed", series=US_SERIES[name], error=str(res))
                res = mock_data.mock_economic_series(US_SERIES[name])
            out[name] = describe_series(res)
        return out

    def get_india_summary(self) -> dict:
        return {
            **{k: dict(v) for k, v in INDIA_REFERENCE.items()},
            "source": "RBI / MOSPI reference figures",
        }

    async def get_regional_summary(self, region: str) -> dict:
        region = (region or "").lower()
        if region in ("us", "usa"):
            return await self.get_us_summary()
        if region == "india":
            return self.get_india_summary()
        raise ValidationFailed(f"Unknown region '{region}'", details=f"Supported: {list(REGIONS)}")

    async def get_global_summary(self) -> dict:
        usa, india = await asyncio.gather(self.get_us_summary(), self.get_regional_summary("india"), return_exceptions=True)
        if isinstance(usa, BaseException):
            log.warning("economic.global_slot_failed", slot="usa", error=str(usa))
            usa = {n: describe_series(mock_data.mock_economic_series(s)) for n, s in US_SERIES.items()}
        if isinstance(india, BaseException):
            india = self.get_india_summary()
        return {
            "usa": usa,
            "india": india,
            "metadata": {"lastUpdated": utc_now_iso(), "sources": ["FRED", "RBI", "MOSPI"]},
        }

    @cached("economic", name="forex")
    async def get_forex(self) -> dict:
        pairs = list(mock_data.FOREX_PAIRS)

        async def rate(pair: str) -> dict:
            loaders = [] if self.mock_mode else [("yahoo", lambda: self.yahoo.get_quote(pair))]
            outcome = await first_available(loaders, mock=lambda: None, label="forex")
            quote = outcome.value
            if quote is None:
                return mock_data.mock_forex_rate(pair)
            label = mock_data.FOREX_PAIRS[pair][0]
            return {
                "pair": label,
                "symbol": pair,
                "rate": quote.current_price,
                "change": quote.change,
                "changePercent": quote.change_percent,
                "timestamp": quote.timestamp,
                "source": quote.source,
            }

        rates = await asyncio.gather(*(rate(p) for p in pairs))
        return {r["pair"]: r for r in rates}

    async def get_summary(self) -> dict:
        """US, India and FX under one time budget, demo data for missing slots."""
        key = make_cache_key("economic", "summary")
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        slots: dict[str, tuple[Callable[[], Awaitable], Callable[[], object]]] = {
            "usa": (
                self.get_us_summary,
                lambda: {n: describe_series(mock_data.mock_economic_series(s)) for n, s in US_SERIES.items()},
            ),
            "india": (lambda: self.get_regional_summary("india"), self.get_india_summary),
            "forex": (self.get_forex, lambda: {mock_data.FOREX_PAIRS[p][0]: mock_data.mock_forex_rate(p) for p in mock_data.FOREX_PAIRS}),
        }
        tasks = {name: asyncio.ensure_future(load()) for name, (load, _) in slots.items()}
        done, pending = await asyncio.wait(tasks.values(), timeout=self.summary_budget)
        for task in pending:
            task.cancel()

        result: dict = {}
        degraded = []
        for name, task in tasks.items():
            if task in done and task.exception() is None:
                result[name] = task.result()
            else:
                reason = "timeout" if task in pending else str(task.exception())
                log.warning("economic.summary_slot_fallback", slot=name, reason=reason)
                degraded.append(name)
                result[name] = slots[name][1]()

        result["metadata"] = {
            "lastUpdated": utc_now_iso(),
            "availableRegions": ["usa", "india"],
            "availableIndicators": sorted(set(US_SERIES) | set(INDIA_REFERENCE)),
            "degradedSlots": degraded,
        }

        try:
            gdp = await self.get_series("GDP")
            visual = project_gdp(gdp)
        except Exception as exc:
            log.warning("economic.projection_failed", error=str(exc))
            visual = None
        if visual:
            result["visualizations"] = visual

        if not degraded:
            self.cache.put("economic", key, result)
        return result

    async def health(self) -> dict:
        if self.mock_mode or not self.fred.is_configured:
            return {"status": "healthy", "mode": "mock", "fredConfigured": self.fred.is_configured}
        series = await self.fred.get_series("GDP", limit=1)
        if series is None:
            raise DependencyUnhealthy("FRED is not responding", details="Probe series GDP")
        return {"status": "healthy", "mode": "live", "latest": describe_series(series)}
