"""
FinScope — News Service

Alpha Vantage news sentiment first, Financial Modeling Prep second, a
synthetic article set last. RSS feeds back the realtime and feed-specific
endpoints.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from finscope.cache import TTLCache, cached, first_available
from finscope.data import mock_data
from finscope.data.alpha_vantage_client import AlphaVantageClient
from finscope.data.fmp_client import FMPClient
from finscope.data.rss_client import YAHOO_FINANCE_FEED, RSS_FEEDS, RSSClient
from finscope.engines.sentiment import keyword_sentiment
from finscope.errors import DependencyUnhealthy, ValidationFailed
from finscope.models import NewsArticle, Sentiment

log = structlog.get_logger(__name__)

NEWS_CATEGORIES = ["all", "markets", "economy", "monetary-policy", "earnings", "currency", "commodities", "crypto"]

# Alpha Vantage topic filter per category
_CATEGORY_TOPICS = {
    "markets": "financial_markets",
    "economy": "economy_macro",
    "monetary-policy": "economy_monetary",
    "earnings": "earnings",
    "currency": "economy_fiscal",
    "commodities": "energy_transportation",
    "crypto": "blockchain",
}

REALTIME_SOURCES = ("alpha_vantage", "rss", "yahoo")

SENTIMENT_SAMPLE = 50


def _tag_sentiment(articles: list[NewsArticle]) -> list[NewsArticle]:
    """Score untagged (neutral, scoreless) articles with the keyword model."""
    tagged = []
    for a in articles:
        if a.sentiment_score is None and a.sentiment == Sentiment.NEUTRAL:
            label, score = keyword_sentiment(f"{a.title} {a.summary}")
            a = a.model_copy(update={"sentiment": label, "sentiment_score": score})
        tagged.append(a)
    return tagged


def _dedupe(articles: list[NewsArticle]) -> list[NewsArticle]:
    seen: set[str] = set()
    unique = []
    for a in articles:
        key = a.title.lower().strip()[:50]
        if key in seen:
            continue
        seen.add(key)
        unique.append(a)
    return unique


def summarize_sentiment(articles: list[NewsArticle]) -> dict:
    """Counts, percentages (1 dp) and the dominant label."""
    counts = {s.value: 0 for s in Sentiment}
    for a in articles:
        counts[a.sentiment.value] += 1
    total = len(articles)
    pct = {k: round(v / total * 100, 1) if total else 0.0 for k, v in counts.items()}
    if counts["positive"] > counts["negative"]:
        overall = "positive"
    elif counts["negative"] > counts["positive"]:
        overall = "negative"
    else:
        overall = "neutral"
    return {
        "overall": overall,
        "counts": counts,
        "percentages": pct,
        "totalArticles": total,
        "categories": NEWS_CATEGORIES,
    }


class NewsService:
    def __init__(
        self,
        cache: TTLCache,
        alpha: AlphaVantageClient,
        fmp: FMPClient,
        rss: RSSClient,
        mock_mode: bool = False,
    ):
        self.cache = cache
        self.alpha = alpha
        self.fmp = fmp
        self.rss = rss
        self.mock_mode = mock_mode

    @cached("news", name="articles")
    async def get_articles(self, ticker: Optional[str] = None, topics: Optional[str] = None) -> list[NewsArticle]:
        """Ticker- or topic-filtered articles via the provider chain."""
        sym = ticker.upper() if ticker else None
        if self.mock_mode:
            loaders = []
        else:
            loaders = [
                ("alpha_vantage", lambda: self.alpha.get_news(tickers=sym, topics=topics)),
                ("fmp", lambda: self.fmp.get_stock_news(sym) if sym else self.fmp.get_general_news()),
            ]
        mock = (lambda: mock_data.mock_stock_news(sym)) if sym else (lambda: mock_data.mock_general_news())
        outcome = await first_available(loaders, mock=mock, label="news")
        return outcome.value

    @cached("news", name="general")
    async def get_general_articles(self, region: str = "global") -> list[NewsArticle]:
        if self.mock_mode:
            loaders = []
        else:
            loaders = [
                ("alpha_vantage", lambda: self.alpha.get_news(topics="financial_markets,economy_macro")),
                ("fmp", lambda: self.fmp.get_general_news()),
            ]
        outcome = await first_available(loaders, mock=lambda: mock_data.mock_general_news(region), label="news")
        return outcome.value

    async def get_indian_articles(self) -> list[NewsArticle]:
        return await self.get_general_articles("india")

    async def get_latest(self, limit: int = 20) -> list[NewsArticle]:
        articles = await self.get_general_articles("global")
        return sorted(articles, key=lambda a: a.published_at, reverse=True)[:limit]

    async def get_by_category(self, category: str) -> list[NewsArticle]:
        cat = (category or "").lower()
        if cat not in NEWS_CATEGORIES:
            raise ValidationFailed(f"Unknown category '{category}'", details=f"Supported: {NEWS_CATEGORIES}")
        if cat == "all":
            return await self.get_general_articles("global")
        articles = await self.get_articles(topics=_CATEGORY_TOPICS[cat])
        matching = [a for a in articles if a.category == cat]
        return matching or articles

    async def search(self, query: str) -> list[NewsArticle]:
        q = (query or "").strip().lower()
        if not q:
            raise ValidationFailed("Search query is required")
        general, indian = await asyncio.gather(self.get_general_articles("global"), self.get_indian_articles())
        return [a for a in _dedupe(general + indian) if q in a.title.lower() or q in a.summary.lower()]

    async def get_sentiment_summary(self, limit: int = SENTIMENT_SAMPLE) -> dict:
        articles = await self.get_general_articles("global")
        return summarize_sentiment(articles[:limit])

    # ── Feed-specific endpoints ──

    @cached("news", name="rss")
    async def get_rss(self, category: str = "financial") -> list[NewsArticle]:
        if category not in RSS_FEEDS:
            raise ValidationFailed(f"Unknown feed category '{category}'", details=f"Supported: {sorted(RSS_FEEDS)}")
        loaders = [] if self.mock_mode else [("rss", lambda: self.rss.fetch_category(category))]
        outcome = await first_available(loaders, mock=lambda: mock_data.mock_general_news(), label="rss")
        return _tag_sentiment(outcome.value)

    @cached("news", name="yahoo_rss")
    async def get_yahoo_finance(self) -> list[NewsArticle]:
        loaders = [] if self.mock_mode else [("yahoo_rss", lambda: self.rss.fetch_feed(YAHOO_FINANCE_FEED))]
        outcome = await first_available(loaders, mock=lambda: mock_data.mock_general_news(), label="yahoo_rss")
        return _tag_sentiment(outcome.value)

    async def get_realtime(self, sources: Optional[list[str]] = None) -> dict:
        """Merge several feeds, newest first, de-duplicated by headline."""
        wanted = [s for s in (sources or REALTIME_SOURCES) if s in REALTIME_SOURCES]
        if not wanted:
            raise ValidationFailed("No supported sources requested", details=f"Supported: {list(REALTIME_SOURCES)}")
        fetchers = {
            "alpha_vantage": lambda: self.get_general_articles("global"),
            "rss": lambda: self.get_rss("financial"),
            "yahoo": self.get_yahoo_finance,
        }
        results = await asyncio.gather(*(fetchers[s]() for s in wanted), return_exceptions=True)
        merged: list[NewsArticle] = []
        by_source = {}
        for source, res in zip(wanted, results):
            if isinstance(res, BaseException):
                log.warning("news.realtime_source_failed", source=source, error=str(res))
                by_source[source] = 0
                continue
            by_source[source] = len(res)
            merged.extend(res)
        articles = sorted(_dedupe(merged), key=lambda a: a.published_at, reverse=True)
        return {"articles": articles, "sources": by_source, "total": len(articles)}

    async def health(self) -> dict:
        if self.mock_mode:
            return {"status": "healthy", "mode": "mock"}
        outcome = await first_available(
            [
                ("alpha_vantage", lambda: self.alpha.get_news(limit=1)),
                ("fmp", lambda: self.fmp.get_general_news()),
            ],
            label="news_health",
        )
        if not outcome.found:
            raise DependencyUnhealthy("News providers are not responding")
        return {"status": "healthy", "mode": "live", "provider": outcome.provider}
