"""
FinScope — Financial Modeling Prep Client

Tertiary quote source and secondary news source. Runs on the public
``demo`` key, which covers a handful of large-cap symbols.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import httpx

from finscope.data.base_client import UpstreamClient, safe_float, safe_int
from finscope.models import NewsArticle, PriceRange, Quote, Sentiment

_BASE_URL = "https://financialmodelingprep.com/api/v3"

SOURCE = "Financial Modeling Prep"

SUMMARY_LIMIT = 200


class FMPClient(UpstreamClient):
    """Financial Modeling Prep adapter."""

    name = "fmp"

    def __init__(self, api_key: str = "demo", transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport)
        self._api_key = api_key or "demo"

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        data = await self._get_json(f"{_BASE_URL}/quote/{symbol}", params={"apikey": self._api_key})
        if not isinstance(data, list) or not data:
            return None
        return self.normalize_quote(symbol, data[0])

    @staticmethod
    def normalize_quote(symbol: str, row: dict) -> Optional[Quote]:
        price = safe_float(row.get("price"))
        if price is None:
            return None
        previous = safe_float(row.get("previousClose"))
        if previous is None:
            previous = price
        low, high = safe_float(row.get("dayLow")), safe_float(row.get("dayHigh"))
        ts = row.get("timestamp")
        return Quote.build(
            symbol=row.get("symbol") or symbol.upper(),
            name=row.get("name") or symbol.upper(),
            exchange=row.get("exchange") or "",
            current_price=price,
            previous_close=previous,
            volume=safe_int(row.get("volume")),
            day_range=PriceRange(
                low=min(low, price) if low is not None else None,
                high=max(high, price) if high is not None else None,
            ),
            fifty_two_week_range=PriceRange(low=safe_float(row.get("yearLow")), high=safe_float(row.get("yearHigh"))),
            market_cap=safe_float(row.get("marketCap")),
            market_state="UNKNOWN",
            timestamp=(
                datetime.fromtimestamp(int(ts), tz=timezone.utc).isoformat()
                if ts
                else datetime.now(timezone.utc).isoformat()
            ),
            source=SOURCE,
        )

    async def get_stock_news(self, symbol: str, limit: int = 20) -> Optional[list[NewsArticle]]:
        data = await self._get_json(
            f"{_BASE_URL}/stock_news",
            params={"tickers": symbol, "limit": limit, "apikey": self._api_key},
        )
        return self._normalize_news(data, [symbol.upper()])

    async def get_general_news(self, page: int = 0) -> Optional[list[NewsArticle]]:
        data = await self._get_json(f"{_BASE_URL}/general_news", params={"page": page, "apikey": self._api_key})
        return self._normalize_news(data, [])

    @staticmethod
    def _normalize_news(data, tickers: list[str]) -> Optional[list[NewsArticle]]:
        if not isinstance(data, list):
            return None
        articles = []
        for item in data:
            title = item.get("title")
            if not title:
                continue
            text = item.get("text") or ""
            articles.append(
                NewsArticle(
                    title=title,
                    summary=text[:SUMMARY_LIMIT] + "..." if len(text) > SUMMARY_LIMIT else text,
                    source=item.get("site") or item.get("publisher") or SOURCE,
                    published_at=item.get("publishedDate") or "",
                    sentiment=Sentiment.NEUTRAL,
                    url=item.get("url") or "",
                    relevance_score=0.8,
                    tickers=[item["symbol"]] if item.get("symbol") else list(tickers),
                )
            )
        return articles or None
