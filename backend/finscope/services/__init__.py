"""
FinScope — Service Container

Builds every provider service, engine and adapter once from ``Settings``
and shares the single process cache between them. Routes receive the
container through ``Depends(get_services)`` so tests can override it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from finscope.cache import TTLCache
from finscope.config import Settings, get_settings
from finscope.data.alpha_vantage_client import AlphaVantageClient
from finscope.data.fmp_client import FMPClient
from finscope.data.fred_client import FREDClient
from finscope.data.huggingface_client import HuggingFaceClient
from finscope.data.rss_client import RSSClient
from finscope.data.sec_client import SECClient
from finscope.data.yahoo_client import YahooFinanceClient
from finscope.engines.planning import PlanningEngine
from finscope.engines.stock_analysis import StockAnalysisPipeline
from finscope.services.banking import BankingAggregatorService
from finscope.services.economic import EconomicIndicatorsService
from finscope.services.filings import CompanyFilingsService
from finscope.services.market_data import MarketDataService
from finscope.services.news import NewsService

log = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    cache: TTLCache
    market: MarketDataService
    economic: EconomicIndicatorsService
    news: NewsService
    filings: CompanyFilingsService
    banking: BankingAggregatorService
    analysis: StockAnalysisPipeline
    planning: PlanningEngine
    mock_mode: bool = False


def build_services(settings: Settings, cache: Optional[TTLCache] = None) -> ServiceContainer:
    """Wire adapters into services. Nothing here touches the network."""
    cache = cache or TTLCache(
        default_ttl=settings.default_ttl_seconds, max_entries=settings.cache_max_entries
    )
    mock_mode = settings.mock_mode

    yahoo = YahooFinanceClient()
    alpha = AlphaVantageClient(settings.alpha_vantage_key)
    fmp = FMPClient()
    fred = FREDClient(settings.fred_api_key)
    sec = SECClient()
    rss = RSSClient()
    hf = HuggingFaceClient(settings.hugging_face_api_key)

    market = MarketDataService(cache, yahoo, alpha, fmp, mock_mode=mock_mode)
    economic = EconomicIndicatorsService(cache, fred, yahoo, mock_mode=mock_mode)
    news = NewsService(cache, alpha, fmp, rss, mock_mode=mock_mode)
    filings = CompanyFilingsService(cache, sec, mock_mode=mock_mode)
    banking = BankingAggregatorService(
        settings.plaid_client_id,
        settings.plaid_secret,
        settings.plaid_env,
        latency_ms=(settings.banking_latency_min_ms, settings.banking_latency_max_ms),
    )
    analysis = StockAnalysisPipeline(cache, market, news, economic, hf=hf, mock_mode=mock_mode)

    log.info("services.built", mock_mode=mock_mode, default_ttl=cache.default_ttl)
    return ServiceContainer(
        cache=cache,
        market=market,
        economic=economic,
        news=news,
        filings=filings,
        banking=banking,
        analysis=analysis,
        planning=PlanningEngine(),
        mock_mode=mock_mode,
    )


_container: Optional[ServiceContainer] = None


def get_services() -> ServiceContainer:
    """Process-wide container, built on first use."""
    global _container
    if _container is None:
        _container = build_services(get_settings())
    return _container
