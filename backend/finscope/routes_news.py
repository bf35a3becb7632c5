"""
FinScope — News Routes

General, Indian and ticker news, category and keyword filters, sentiment
summary, and the RSS-backed realtime/feed endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from finscope.envelope import ok
from finscope.services import ServiceContainer, get_services
from finscope.services.news import NEWS_CATEGORIES

news_router = APIRouter()


def _articles(articles: list, **extra):
    return ok(articles, count=len(articles), **extra)


@news_router.get("/indian")
async def get_indian_news(services: ServiceContainer = Depends(get_services)):
    return _articles(await services.news.get_indian_articles(), region="india")


@news_router.get("/global")
async def get_global_news(services: ServiceContainer = Depends(get_services)):
    return _articles(await services.news.get_general_articles("global"), region="global")


@news_router.get("/latest")
async def get_latest_news(
    limit: int = Query(20, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    return _articles(await services.news.get_latest(limit))


@news_router.get("/categories")
async def get_categories():
    return ok(NEWS_CATEGORIES)


@news_router.get("/category/{category}")
async def get_news_by_category(category: str, services: ServiceContainer = Depends(get_services)):
    return _articles(await services.news.get_by_category(category), category=category.lower())


@news_router.get("/search")
async def search_news(
    q: str = Query("", description="Keyword matched against title and summary"),
    services: ServiceContainer = Depends(get_services),
):
    return _articles(await services.news.search(q), query=q)


@news_router.get("/sentiment")
async def get_news_sentiment(services: ServiceContainer = Depends(get_services)):
    return ok(await services.news.get_sentiment_summary())


@news_router.get("/stock/{symbol}")
async def get_stock_news(symbol: str, services: ServiceContainer = Depends(get_services)):
    return _articles(await services.news.get_articles(ticker=symbol), symbol=symbol.upper())


@news_router.get("/realtime")
async def get_realtime_news(
    sources: Optional[str] = Query(None, description="Comma-separated: alpha_vantage, rss, yahoo"),
    services: ServiceContainer = Depends(get_services),
):
    wanted = [s.strip() for s in sources.split(",") if s.strip()] if sources else None
    return ok(await services.news.get_realtime(wanted))


@news_router.get("/rss")
async def get_rss_news(
    category: str = Query("financial"),
    services: ServiceContainer = Depends(get_services),
):
    return _articles(await services.news.get_rss(category), category=category)


@news_router.get("/yahoo-finance")
async def get_yahoo_news(services: ServiceContainer = Depends(get_services)):
    return _articles(await services.news.get_yahoo_finance())


@news_router.get("/alpha-vantage")
async def get_alpha_vantage_news(
    tickers: Optional[str] = Query(None),
    topics: Optional[str] = Query(None),
    services: ServiceContainer = Depends(get_services),
):
    return _articles(await services.news.get_articles(ticker=tickers, topics=topics))


@news_router.get("/health")
async def news_health(services: ServiceContainer = Depends(get_services)):
    return ok(await services.news.health())
