"""
FinScope — Alpha Vantage Client

Quotes, time series, company overview, technical indicators, news
sentiment and symbol search from https://www.alphavantage.co.

Alpha Vantage reports rate limiting and bad requests with HTTP 200 and a
``Note`` / ``Information`` / ``Error Message`` body. Those responses are
treated exactly like transport failures.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import httpx
import structlog

from finscope.data.base_client import EXTENDED_TIMEOUT, UpstreamClient, safe_float, safe_int
from finscope.models import (
    IndicatorSeries,
    NewsArticle,
    PriceBar,
    PriceRange,
    PriceSeries,
    Quote,
    Sentiment,
    SymbolMatch,
    TechnicalIndicator,
)

log = structlog.get_logger(__name__)

_BASE_URL = "https://www.alphavantage.co/query"

SOURCE = "Alpha Vantage"

INTRADAY_INTERVALS = ("1min", "5min", "15min", "30min", "60min")
INDICATOR_INTERVALS = INTRADAY_INTERVALS + ("daily", "weekly", "monthly")

# Indicators that take no ``time_period`` / ``series_type`` parameters
_NO_PERIOD = {TechnicalIndicator.MACD, TechnicalIndicator.STOCH}
_NO_SERIES_TYPE = {TechnicalIndicator.STOCH, TechnicalIndicator.ADX}

_FAILURE_KEYS = ("Note", "Information", "Error Message")


def sentiment_from_score(score: Optional[float]) -> Sentiment:
    if score is None:
        return Sentiment.NEUTRAL
    if score > 0.1:
        return Sentiment.POSITIVE
    if score < -0.1:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


class AlphaVantageClient(UpstreamClient):
    """Alpha Vantage adapter."""

    name = "alpha_vantage"

    def __init__(self, api_key: str = "demo", transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport)
        self._api_key = api_key or "demo"

    async def _query(self, params: dict, timeout: float = 10.0, required_key: Optional[str] = None) -> Optional[dict]:
        data = await self._get_json(_BASE_URL, params={**params, "apikey": self._api_key}, timeout=timeout)
        if not isinstance(data, dict) or not data:
            return None
        for key in _FAILURE_KEYS:
            if key in data:
                log.warning("alpha_vantage.rejected", function=params.get("function"), reason=str(data[key])[:200])
                return None
        if required_key and required_key not in data:
            log.debug("alpha_vantage.missing_key", function=params.get("function"), key=required_key)
            return None
        return data

    # ── Quotes ──

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        data = await self._query({"function": "GLOBAL_QUOTE", "symbol": symbol}, required_key="Global Quote")
        if data is None:
            return None
        return self.normalize_quote(symbol, data["Global Quote"])

    @staticmethod
    def normalize_quote(symbol: str, gq: dict) -> Optional[Quote]:
        price = safe_float(gq.get("05. price"))
        if price is None:
            return None
        previous = safe_float(gq.get("08. previous close"))
        if previous is None:
            previous = price
        low, high = safe_float(gq.get("04. low")), safe_float(gq.get("03. high"))
        sym = gq.get("01. symbol") or symbol.upper()
        latest_day = gq.get("07. latest trading day")
        return Quote.build(
            symbol=sym,
            name=sym,
            current_price=price,
            previous_close=previous,
            volume=safe_int(gq.get("06. volume")),
            day_range=PriceRange(
                low=min(low, price) if low is not None else None,
                high=max(high, price) if high is not None else None,
            ),
            market_state="CLOSED",
            timestamp=f"{latest_day}T00:00:00Z" if latest_day else datetime.utcnow().isoformat() + "Z",
            source=SOURCE,
        )

    # ── Time Series ──

    async def get_intraday(self, symbol: str, interval: str = "5min") -> Optional[PriceSeries]:
        if interval not in INTRADAY_INTERVALS:
            interval = "5min"
        key = f"Time Series ({interval})"
        data = await self._query(
            {"function": "TIME_SERIES_INTRADAY", "symbol": symbol, "interval": interval},
            required_key=key,
        )
        if data is None:
            return None
        return self.normalize_series(symbol, interval, data, key)

    async def get_daily(self, symbol: str, output_size: str = "compact") -> Optional[PriceSeries]:
        key = "Time Series (Daily)"
        data = await self._query(
            {
                "function": "TIME_SERIES_DAILY",
                "symbol": symbol,
                "outputsize": "full" if output_size == "full" else "compact",
            },
            required_key=key,
        )
        if data is None:
            return None
        return self.normalize_series(symbol, "daily", data, key)

    @staticmethod
    def normalize_series(symbol: str, interval: str, data: dict, key: str) -> Optional[PriceSeries]:
        rows = data.get(key) or {}
        bars = []
        for stamp in sorted(rows, reverse=True):
            row = rows[stamp]
            close = safe_float(row.get("4. close"))
            if close is None:
                continue
            bars.append(
                PriceBar(
                    timestamp=stamp,
                    open=safe_float(row.get("1. open")) or close,
                    high=safe_float(row.get("2. high")) or close,
                    low=safe_float(row.get("3. low")) or close,
                    close=close,
                    volume=safe_int(row.get("5. volume")) or 0,
                )
            )
        if not bars:
            return None
        meta = data.get("Meta Data") or {}
        return PriceSeries(
            symbol=symbol.upper(),
            interval=interval,
            bars=bars,
            last_refreshed=meta.get("3. Last Refreshed") or bars[0].timestamp,
            source=SOURCE,
        )

    # ── Fundamentals ──

    async def get_overview(self, symbol: str) -> Optional[dict]:
        data = await self._query({"function": "OVERVIEW", "symbol": symbol}, timeout=EXTENDED_TIMEOUT, required_key="Symbol")
        if data is None:
            return None
        return {**data, "source": SOURCE}

    # ── Technical Indicators ──

    async def get_indicator(
        self,
        symbol: str,
        indicator: TechnicalIndicator,
        interval: str = "daily",
        time_period: int = 14,
    ) -> Optional[IndicatorSeries]:
        params: dict[str, Any] = {"function": indicator.value, "symbol": symbol, "interval": interval}
        if indicator not in _NO_PERIOD:
            params["time_period"] = time_period
        if indicator not in _NO_SERIES_TYPE:
            params["series_type"] = "close"
        key = f"Technical Analysis: {indicator.value}"
        data = await self._query(params, timeout=EXTENDED_TIMEOUT, required_key=key)
        if data is None:
            return None
        values = [{"date": day, **row} for day, row in sorted(data[key].items(), reverse=True)]
        if not values:
            return None
        return IndicatorSeries(
            symbol=symbol.upper(),
            indicator=indicator,
            interval=interval,
            time_period=None if indicator in _NO_PERIOD else time_period,
            values=values,
            source=SOURCE,
        )

    # ── News ──

    async def get_news(
        self,
        tickers: Optional[str] = None,
        topics: Optional[str] = None,
        limit: int = 50,
    ) -> Optional[list[NewsArticle]]:
        params: dict[str, Any] = {"function": "NEWS_SENTIMENT", "limit": limit}
        if tickers:
            params["tickers"] = tickers
        if topics:
            params["topics"] = topics
        data = await self._query(params, required_key="feed")
        if data is None:
            return None
        articles = [self.normalize_article(item, tickers) for item in data.get("feed") or []]
        return [a for a in articles if a is not None] or None

    @staticmethod
    def normalize_article(item: dict, ticker: Optional[str] = None) -> Optional[NewsArticle]:
        title = item.get("title")
        if not title:
            return None
        score = safe_float(item.get("overall_sentiment_score"))
        relevance = 0.5
        for ts in item.get("ticker_sentiment") or []:
            if ticker and ts.get("ticker") == ticker.upper():
                relevance = safe_float(ts.get("relevance_score")) or relevance
                break
        return NewsArticle(
            title=title,
            summary=item.get("summary") or "",
            source=item.get("source") or SOURCE,
            published_at=_parse_av_time(item.get("time_published")),
            sentiment=sentiment_from_score(score),
            sentiment_score=score,
            url=item.get("url") or "",
            relevance_score=max(0.0, min(1.0, relevance)),
            category=((item.get("topics") or [{}])[0] or {}).get("topic", "general").lower(),
            tickers=[t.get("ticker") for t in item.get("ticker_sentiment") or [] if t.get("ticker")],
        )

    # ── Search ──

    async def search_symbols(self, keywords: str) -> Optional[list[SymbolMatch]]:
        data = await self._query({"function": "SYMBOL_SEARCH", "keywords": keywords}, required_key="bestMatches")
        if data is None:
            return None
        matches = [
            SymbolMatch(
                symbol=m.get("1. symbol", ""),
                name=m.get("2. name", ""),
                type=m.get("3. type", "Equity"),
                region=m.get("4. region", ""),
                currency=m.get("8. currency", ""),
                match_score=safe_float(m.get("9. matchScore")),
            )
            for m in data["bestMatches"]
            if m.get("1. symbol")
        ]
        return matches or None


def _parse_av_time(raw: Optional[str]) -> str:
    """``20240115T143000`` → ISO-8601."""
    if not raw:
        return ""
    try:
        return datetime.strptime(raw, "%Y%m%dT%H%M%S").isoformat() + "Z"
    except ValueError:
        return raw
