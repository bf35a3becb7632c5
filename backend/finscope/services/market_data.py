"""
FinScope — Market Data Service

Quotes, time series, company overviews, technical indicators and symbol
search. Quotes walk the provider chain Yahoo → Alpha Vantage → FMP before
falling back to demo data.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from finscope.cache import TTLCache, cached, first_available, make_cache_key
from finscope.data import mock_data
from finscope.data.alpha_vantage_client import AlphaVantageClient
from finscope.data.fmp_client import FMPClient
from finscope.data.yahoo_client import YahooFinanceClient, logo_url
from finscope.errors import DependencyUnhealthy, ErrorShape, TotalUnavailable, ValidationFailed
from finscope.models import IndicatorSeries, PriceSeries, Quote, SymbolMatch, TechnicalIndicator

log = structlog.get_logger(__name__)

REGIONAL_TOP_SYMBOLS = {
    "india": ["RELIANCE", "TCS", "HDFCBANK", "INFY", "HINDUNILVR", "ICICIBANK", "KOTAKBANK", "BHARTIARTL", "ITC", "SBIN"],
    "us": ["AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META", "NVDA", "JPM"],
}

REGIONAL_INDICES = {
    "india": [("^NSEI", "NIFTY 50"), ("^BSESN", "SENSEX"), ("GC=F", "Gold")],
    "us": [("^GSPC", "S&P 500"), ("^DJI", "Dow Jones"), ("^IXIC", "NASDAQ Composite")],
}

POPULAR_SYMBOLS = ["AAPL", "GOOGL", "MSFT", "AMZN", "TSLA"]

STATIC_SEARCH_LIST = [
    {"symbol": "AAPL", "name": "Apple Inc.", "exchange": "NASDAQ", "sector": "Technology"},
    {"symbol": "MSFT", "name": "Microsoft Corporation", "exchange": "NASDAQ", "sector": "Technology"},
    {"symbol": "GOOGL", "name": "Alphabet Inc.", "exchange": "NASDAQ", "sector": "Communication Services"},
    {"symbol": "TSLA", "name": "Tesla Inc.", "exchange": "NASDAQ", "sector": "Consumer Cyclical"},
    {"symbol": "RELIANCE.NS", "name": "Reliance Industries Ltd.", "exchange": "NSE", "sector": "Energy"},
    {"symbol": "TCS.NS", "name": "Tata Consultancy Services Ltd.", "exchange": "NSE", "sector": "Technology"},
    {"symbol": "HDFCBANK.NS", "name": "HDFC Bank Ltd.", "exchange": "NSE", "sector": "Financial Services"},
    {"symbol": "INFY.NS", "name": "Infosys Ltd.", "exchange": "NSE", "sector": "Technology"},
]

QUOTE_SUGGESTED_ACTIONS = [
    "Verify the stock symbol is correct",
    "Try again in a few minutes",
    "Check if the market is currently open",
    "Contact support if the issue persists",
]

MAX_BULK_SYMBOLS = 20


def indian_symbol(symbol: str) -> str:
    sym = symbol.upper().strip()
    if sym.endswith((".NS", ".BO")) or sym.startswith("^"):
        return sym
    return f"{sym}.NS"


def quote_unavailable(symbol: str) -> ErrorShape:
    return ErrorShape(
        message=f"Stock data for {symbol.upper()} is currently unavailable. Please try again later.",
        details="All market data providers failed to return a quote",
        suggested_actions=list(QUOTE_SUGGESTED_ACTIONS),
    )


class MarketDataService:
    """Composes the quote providers with the cache and demo fallback."""

    def __init__(
        self,
        cache: TTLCache,
        yahoo: YahooFinanceClient,
        alpha: AlphaVantageClient,
        fmp: FMPClient,
        mock_mode: bool = False,
    ):
        self.cache = cache
        self.yahoo = yahoo
        self.alpha = alpha
        self.fmp = fmp
        self.mock_mode = mock_mode

    # ── Quotes ──

    async def get_quote(self, symbol: str, allow_mock: bool = True) -> Quote:
        """Quote via the provider chain.

        Raises ``TotalUnavailable`` when every provider failed and
        ``allow_mock`` is False. Demo quotes are cached like real ones.
        """
        sym = symbol.upper().strip()
        if not sym:
            raise ValidationFailed("Symbol is required")
        key = make_cache_key("quote", "quote", sym, mock=allow_mock)
        return await self.cache.read_through("quote", key, lambda: self._load_quote(sym, allow_mock))

    async def _load_quote(self, sym: str, allow_mock: bool) -> Quote:
        loaders = [] if self.mock_mode else [
            ("yahoo", lambda: self.yahoo.get_quote(sym)),
            ("alpha_vantage", lambda: self.alpha.get_quote(sym)),
            ("fmp", lambda: self.fmp.get_quote(sym)),
        ]
        mock = (lambda: mock_data.mock_quote(sym)) if (allow_mock or self.mock_mode) else None
        outcome = await first_available(loaders, mock=mock, label="quote")
        if not outcome.found:
            log.error("quote.unavailable", symbol=sym, attempted=outcome.attempted)
            raise TotalUnavailable.from_shape(quote_unavailable(sym))
        return outcome.value

    async def get_alpha_quote(self, symbol: str) -> Quote:
        """Alpha Vantage quote only, demo data when it has no answer."""
        sym = symbol.upper()
        key = make_cache_key("quote", "alpha_quote", sym)

        async def load() -> Quote:
            loaders = [] if self.mock_mode else [("alpha_vantage", lambda: self.alpha.get_quote(sym))]
            outcome = await first_available(loaders, mock=lambda: mock_data.mock_quote(sym), label="alpha_quote")
            return outcome.value

        return await self.cache.read_through("quote", key, load)

    async def get_indian_quote(self, symbol: str) -> Quote:
        sym = indian_symbol(symbol)
        quote = await self.get_quote(sym)
        if quote.is_demo:
            quote = quote.model_copy(update={"currency": "INR", "exchange": "NSE"})
        return quote

    async def get_many(self, symbols: list[str], allow_mock: bool = True) -> list[tuple[str, Optional[Quote], Optional[str]]]:
        """Fetch quotes in parallel; each slot is ``(symbol, quote, error)``."""
        results = await asyncio.gather(
            *(self.get_quote(s, allow_mock=allow_mock) for s in symbols),
            return_exceptions=True,
        )
        slots = []
        for sym, res in zip(symbols, results):
            if isinstance(res, BaseException):
                slots.append((sym.upper(), None, getattr(res, "message", str(res))))
            else:
                slots.append((sym.upper(), res, None))
        return slots

    async def get_regional_top_symbols(self, region: str = "india") -> dict:
        region = region.lower()
        if region not in REGIONAL_TOP_SYMBOLS:
            raise ValidationFailed(f"Unknown region '{region}'", details=f"Supported: {sorted(REGIONAL_TOP_SYMBOLS)}")
        symbols = REGIONAL_TOP_SYMBOLS[region]
        if region == "india":
            symbols = [indian_symbol(s) for s in symbols]
        slots = await self.get_many(symbols)
        stocks = [q for _, q, _ in slots if q is not None]
        return {"region": region, "stocks": stocks, "count": len(stocks)}

    async def get_regional_indices(self, region: str = "india") -> list[dict]:
        indices = REGIONAL_INDICES.get(region.lower())
        if indices is None:
            raise ValidationFailed(f"Unknown region '{region}'")
        slots = await self.get_many([sym for sym, _ in indices])
        out = []
        for (sym, label), (_, quote, error) in zip(indices, slots):
            if quote is None:
                out.append({"symbol": sym, "name": label, "error": error})
            else:
                out.append({**quote.to_dict(), "name": label})
        return out

    async def bulk_quotes(self, symbols: list[str]) -> dict:
        if not symbols or not isinstance(symbols, list):
            raise ValidationFailed("Symbols array is required")
        if len(symbols) > MAX_BULK_SYMBOLS:
            raise ValidationFailed(f"Maximum {MAX_BULK_SYMBOLS} symbols allowed per request")
        slots = await self.get_many([str(s) for s in symbols])
        successful = [q for _, q, _ in slots if q is not None]
        failed = [{"symbol": s, "error": e} for s, q, e in slots if q is None]
        return {
            "successful": successful,
            "failed": failed,
            "stats": {"requested": len(symbols), "successful": len(successful), "failed": len(failed)},
        }

    # ── Time Series ──

    @cached("quote", name="intraday")
    async def get_intraday_series(self, symbol: str, interval: str = "5min") -> PriceSeries:
        sym = symbol.upper()
        loaders = [] if self.mock_mode else [("alpha_vantage", lambda: self.alpha.get_intraday(sym, interval))]
        outcome = await first_available(
            loaders, mock=lambda: mock_data.mock_price_series(sym, interval, points=50), label="intraday"
        )
        return outcome.value

    @cached("quote", name="daily")
    async def get_daily_series(self, symbol: str, output_size: str = "compact") -> PriceSeries:
        sym = symbol.upper()
        yahoo_range = "5y" if output_size == "full" else "6mo"
        loaders = [] if self.mock_mode else [
            ("alpha_vantage", lambda: self.alpha.get_daily(sym, output_size)),
            ("yahoo", lambda: self.yahoo.get_series(sym, "1d", yahoo_range)),
        ]
        outcome = await first_available(
            loaders, mock=lambda: mock_data.mock_price_series(sym, "daily", points=100), label="daily"
        )
        return outcome.value

    # ── Fundamentals / Technicals ──

    async def get_company_overview(self, symbol: str, allow_mock: bool = True) -> Optional[dict]:
        sym = symbol.upper()
        key = make_cache_key("overview", "overview", sym)

        async def load() -> Optional[dict]:
            if self.mock_mode:
                return mock_data.mock_overview(sym)
            return await self.alpha.get_overview(sym)

        overview = await self.cache.read_through("overview", key, load)
        if overview is None and allow_mock:
            return mock_data.mock_overview(sym)
        return overview

    async def get_technical_indicator(
        self,
        symbol: str,
        indicator: TechnicalIndicator | str,
        interval: str = "daily",
        time_period: int = 14,
        allow_mock: bool = True,
    ) -> Optional[IndicatorSeries]:
        try:
            ind = TechnicalIndicator(str(indicator).upper()) if not isinstance(indicator, TechnicalIndicator) else indicator
        except ValueError:
            raise ValidationFailed(
                f"Unsupported indicator '{indicator}'",
                details=f"Supported: {[i.value for i in TechnicalIndicator]}",
            )
        sym = symbol.upper()
        key = make_cache_key("technical", sym, ind.value, interval, time_period)

        async def load() -> Optional[IndicatorSeries]:
            if self.mock_mode:
                return mock_data.mock_indicator(sym, ind, interval, time_period)
            return await self.alpha.get_indicator(sym, ind, interval, time_period)

        series = await self.cache.read_through("technical", key, load)
        if series is None and allow_mock:
            return mock_data.mock_indicator(sym, ind, interval, time_period)
        return series

    # ── Search ──

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        """Yahoo search; static list when the provider has no answer."""
        q = (query or "").strip()
        if not q:
            raise ValidationFailed("Search query is required")
        key = make_cache_key("search", q.lower())

        async def load() -> list[SymbolMatch]:
            matches = None if self.mock_mode else await self.yahoo.search(q)
            if matches:
                return matches
            log.info("search.static_fallback", query=q)
            return self.static_search(q)

        return await self.cache.read_through("search", key, load)

    @staticmethod
    def static_search(query: str) -> list[SymbolMatch]:
        q = query.lower()
        return [
            SymbolMatch(**row, logo=logo_url(row["symbol"], row["name"]))
            for row in STATIC_SEARCH_LIST
            if q in row["symbol"].lower() or q in row["name"].lower() or q in row["sector"].lower()
        ]

    # ── Composites ──

    async def alpha_analysis(self, symbol: str) -> dict:
        """Quote, overview, recent daily bars, SMA20 and RSI14 in one call."""
        sym = symbol.upper()
        quote, overview, daily, sma, rsi = await asyncio.gather(
            self.get_alpha_quote(sym),
            self.get_company_overview(sym, allow_mock=False),
            self.get_daily_series(sym, "compact"),
            self.get_technical_indicator(sym, TechnicalIndicator.SMA, "daily", 20, allow_mock=False),
            self.get_technical_indicator(sym, TechnicalIndicator.RSI, "daily", 14, allow_mock=False),
            return_exceptions=True,
        )

        def ok(v):
            return None if isinstance(v, BaseException) else v

        quote, overview, daily, sma, rsi = ok(quote), ok(overview), ok(daily), ok(sma), ok(rsi)
        return {
            "symbol": sym,
            "quote": quote,
            "overview": overview,
            "dailyData": daily.bars[:30] if daily else [],
            "technicalIndicators": {
                "sma20": sma.values[:10] if sma else None,
                "rsi": rsi.values[:10] if rsi else None,
            },
            "dataAvailable": {
                "quote": quote is not None and not quote.is_demo,
                "overview": overview is not None,
                "dailyData": daily is not None and daily.source != mock_data.DEMO_SOURCE,
                "sma": sma is not None,
                "rsi": rsi is not None,
            },
        }

    async def health(self) -> dict:
        """Probe the live chain with AAPL; demo data does not count."""
        sym = "AAPL"
        if self.mock_mode:
            return {"status": "healthy", "provider": "mock", "testSymbol": sym, "mode": "mock"}
        outcome = await first_available(
            [
                ("yahoo", lambda: self.yahoo.get_quote(sym)),
                ("alpha_vantage", lambda: self.alpha.get_quote(sym)),
                ("fmp", lambda: self.fmp.get_quote(sym)),
            ],
            label="market_health",
        )
        if not outcome.found:
            raise DependencyUnhealthy("Market data providers are not responding", details=f"Probe symbol {sym}")
        return {"status": "healthy", "provider": outcome.provider, "testSymbol": sym, "price": outcome.value.current_price}
