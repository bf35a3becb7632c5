"""
FinScope — RSS News Client

Keyless headline feeds (Yahoo Finance, MarketWatch, CNBC) fetched with
httpx and parsed with feedparser.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Optional

import feedparser
import httpx
import structlog

from finscope.data.base_client import UpstreamClient
from finscope.models import NewsArticle

log = structlog.get_logger(__name__)

YAHOO_FINANCE_FEED = "https://feeds.finance.yahoo.com/rss/2.0/headline?s=%5EGSPC&region=US&lang=en-US"

RSS_FEEDS: dict[str, list[str]] = {
    "financial": [
        YAHOO_FINANCE_FEED,
        "https://www.cnbc.com/id/100003114/device/rss/rss.html",
    ],
    "markets": ["https://www.marketwatch.com/rss/topstories"],
    "economy": ["https://www.cnbc.com/id/20910258/device/rss/rss.html"],
}

_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; FinScope/1.0)"}

SUMMARY_LIMIT = 200
PER_FEED_LIMIT = 20


def _published(entry) -> str:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if parsed:
        return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc).isoformat()
    return entry.get("published", "")


class RSSClient(UpstreamClient):
    name = "rss"

    async def fetch_feed(self, url: str, limit: int = PER_FEED_LIMIT) -> Optional[list[NewsArticle]]:
        try:
            async with self._client(10.0, _HEADERS) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                text = resp.text
        except httpx.HTTPError as exc:
            log.warning("rss.fetch_error", url=url, error=str(exc) or type(exc).__name__)
            return None

        feed = feedparser.parse(text)
        source = (feed.get("feed") or {}).get("title") or "RSS Feed"
        articles = []
        for entry in feed.entries[:limit]:
            title = entry.get("title")
            if not title:
                continue
            summary = entry.get("summary", "")
            articles.append(
                NewsArticle(
                    title=title,
                    summary=summary[:SUMMARY_LIMIT] + "..." if len(summary) > SUMMARY_LIMIT else summary,
                    source=source,
                    published_at=_published(entry),
                    url=entry.get("link", ""),
                    relevance_score=0.6,
                )
            )
        return articles or None

    async def fetch_category(self, category: str = "financial") -> Optional[list[NewsArticle]]:
        """Concatenate every feed registered for ``category``."""
        articles: list[NewsArticle] = []
        for url in RSS_FEEDS.get(category, RSS_FEEDS["financial"]):
            batch = await self.fetch_feed(url)
            if batch:
                articles.extend(batch)
        return articles or None
