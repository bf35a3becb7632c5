"""
FinScope — Yahoo Finance Client

Unofficial chart and search endpoints. No key required, but Yahoo rejects
requests without a browser-like User-Agent.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import structlog

from finscope.data.base_client import UpstreamClient, safe_float, safe_int
from finscope.models import PriceBar, PriceRange, PriceSeries, Quote, SymbolMatch

log = structlog.get_logger(__name__)

_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
_SEARCH_URL = "https://query1.finance.yahoo.com/v1/finance/search"

_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json",
}

SOURCE = "Yahoo Finance"

# Logo domains that don't follow the "<name>.com" pattern
_LOGO_DOMAINS = {
    "AAPL": "apple.com",
    "MSFT": "microsoft.com",
    "GOOGL": "abc.xyz",
    "GOOG": "abc.xyz",
    "AMZN": "amazon.com",
    "TSLA": "tesla.com",
    "META": "meta.com",
    "NVDA": "nvidia.com",
    "NFLX": "netflix.com",
    "RELIANCE.NS": "ril.com",
    "TCS.NS": "tcs.com",
    "INFY.NS": "infosys.com",
    "HDFCBANK.NS": "hdfcbank.com",
}


def detect_exchange(symbol: str, reported: str = "") -> str:
    """Map suffixes and Yahoo exchange codes onto a display exchange."""
    sym = symbol.upper()
    if sym.endswith(".NS"):
        return "NSE"
    if sym.endswith(".BO"):
        return "BSE"
    code = (reported or "").upper()
    if code in ("NYQ", "NYSE"):
        return "NYSE"
    if code in ("NMS", "NGM", "NCM", "NASDAQ", "NASDAQGS"):
        return "NASDAQ"
    return reported or "UNKNOWN"


def logo_url(symbol: str, name: str = "") -> Optional[str]:
    domain = _LOGO_DOMAINS.get(symbol.upper())
    if domain is None and name:
        word = name.split()[0].lower().strip(",.")
        domain = f"{word}.com" if word.isalnum() else None
    return f"https://logo.clearbit.com/{domain}" if domain else None


class YahooFinanceClient(UpstreamClient):
    """Yahoo Finance chart/search adapter."""

    name = "yahoo"

    async def _chart(self, symbol: str, params: Optional[dict] = None) -> Optional[dict]:
        data = await self._get_json(_CHART_URL.format(symbol=symbol), params=params, headers=_HEADERS)
        if not data:
            return None
        results = (data.get("chart") or {}).get("result") or []
        if not results:
            log.debug("yahoo.empty_chart", symbol=symbol)
            return None
        return results[0]

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        """Latest quote from ``chart.result[0].meta``."""
        result = await self._chart(symbol)
        if result is None:
            return None
        return self.normalize_quote(symbol, result)

    @staticmethod
    def normalize_quote(symbol: str, result: dict) -> Optional[Quote]:
        meta = result.get("meta") or {}
        price = safe_float(meta.get("regularMarketPrice"))
        if price is None:
            return None
        previous = safe_float(meta.get("previousClose"))
        if previous is None:
            previous = safe_float(meta.get("chartPreviousClose")) or price

        quote_block = ((result.get("indicators") or {}).get("quote") or [{}])[0]
        volume = safe_int(meta.get("regularMarketVolume"))
        if volume is None:
            volumes = [v for v in (quote_block.get("volume") or []) if v is not None]
            volume = int(volumes[-1]) if volumes else None

        day_low = safe_float(meta.get("regularMarketDayLow"))
        day_high = safe_float(meta.get("regularMarketDayHigh"))
        if day_low is None or day_high is None:
            lows = [v for v in (quote_block.get("low") or []) if v is not None]
            highs = [v for v in (quote_block.get("high") or []) if v is not None]
            day_low = day_low if day_low is not None else (min(lows) if lows else None)
            day_high = day_high if day_high is not None else (max(highs) if highs else None)
        if day_low is not None and day_high is not None:
            day_low, day_high = min(day_low, price), max(day_high, price)

        sym = meta.get("symbol") or symbol.upper()
        return Quote.build(
            symbol=sym,
            name=meta.get("longName") or meta.get("shortName") or sym,
            currency=meta.get("currency") or "USD",
            exchange=detect_exchange(sym, meta.get("exchangeName") or meta.get("fullExchangeName") or ""),
            current_price=price,
            previous_close=previous,
            volume=volume,
            day_range=PriceRange(low=day_low, high=day_high),
            fifty_two_week_range=PriceRange(
                low=safe_float(meta.get("fiftyTwoWeekLow")),
                high=safe_float(meta.get("fiftyTwoWeekHigh")),
            ),
            market_cap=safe_float(meta.get("marketCap")),
            market_state=meta.get("marketState") or "REGULAR",
            timestamp=_epoch_iso(meta.get("regularMarketTime")),
            source=SOURCE,
        )

    async def get_series(self, symbol: str, interval: str = "1d", range_: str = "1mo") -> Optional[PriceSeries]:
        """OHLCV bars from ``chart.result[0].indicators.quote[0]``, newest first."""
        result = await self._chart(symbol, params={"interval": interval, "range": range_})
        if result is None:
            return None
        timestamps = result.get("timestamp") or []
        quote_block = ((result.get("indicators") or {}).get("quote") or [{}])[0]
        bars = []
        for i, ts in enumerate(timestamps):
            close = _at(quote_block.get("close"), i)
            if close is None:
                continue
            bars.append(
                PriceBar(
                    timestamp=_epoch_iso(ts),
                    open=_at(quote_block.get("open"), i) or close,
                    high=_at(quote_block.get("high"), i) or close,
                    low=_at(quote_block.get("low"), i) or close,
                    close=close,
                    volume=int(_at(quote_block.get("volume"), i) or 0),
                )
            )
        if not bars:
            return None
        bars.reverse()
        return PriceSeries(
            symbol=symbol.upper(),
            interval=interval,
            bars=bars,
            last_refreshed=bars[0].timestamp,
            source=SOURCE,
        )

    async def search(self, query: str, limit: int = 10) -> Optional[list[SymbolMatch]]:
        data = await self._get_json(
            _SEARCH_URL,
            params={"q": query, "quotesCount": limit, "newsCount": 0},
            headers=_HEADERS,
        )
        if not data:
            return None
        matches = []
        for item in data.get("quotes") or []:
            symbol, name = item.get("symbol"), item.get("shortname") or item.get("longname")
            if not symbol or not name:
                continue
            matches.append(
                SymbolMatch(
                    symbol=symbol,
                    name=name,
                    exchange=detect_exchange(symbol, item.get("exchange", "")),
                    type=item.get("quoteType", "EQUITY").title(),
                    sector=item.get("sector", ""),
                    logo=logo_url(symbol, name),
                )
            )
            if len(matches) >= limit:
                break
        return matches or None


def _at(values: Optional[list], index: int) -> Optional[float]:
    if not values or index >= len(values):
        return None
    return safe_float(values[index])


def _epoch_iso(ts) -> str:
    if ts is None:
        return datetime.now(timezone.utc).isoformat()
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).isoformat()
