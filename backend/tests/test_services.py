"""
Provider Service Tests

Market data, economic indicators, news, company filings and the mock
banking aggregator, all in mock mode or with adapters replaced by mocks.
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest

from finscope.cache import TTLCache
from finscope.data.fred_client import FREDClient
from finscope.data.sec_client import SECClient
from finscope.data.yahoo_client import YahooFinanceClient
from finscope.errors import DependencyUnhealthy, ValidationFailed
from finscope.models import Company, Filing
from finscope.services.banking import BankingAggregatorService, generate_spending_insights
from finscope.services.economic import EconomicIndicatorsService
from finscope.services.filings import DEMO_CIK, CompanyFilingsService
from finscope.services.market_data import indian_symbol


# ──────────────────────────────────────────────
# Market Data
# ──────────────────────────────────────────────

class TestMarketData:
    def test_mock_quote_tagged_demo(self, services):
        quote = asyncio.run(services.market.get_quote("AAPL"))
        assert quote.source == "Demo"
        assert quote.is_demo
        assert quote.change == pytest.approx(quote.current_price - quote.previous_close, abs=0.01)

    def test_empty_symbol_rejected(self, services):
        with pytest.raises(ValidationFailed):
            asyncio.run(services.market.get_quote("  "))

    def test_indian_symbol_suffix(self):
        assert indian_symbol("reliance") == "RELIANCE.NS"
        assert indian_symbol("TCS.BO") == "TCS.BO"
        assert indian_symbol("^NSEI") == "^NSEI"

    def test_indian_demo_quote_in_rupees(self, services):
        quote = asyncio.run(services.market.get_indian_quote("INFY"))
        assert quote.symbol == "INFY.NS"
        assert quote.currency == "INR"

    def test_regional_top_symbols(self, services):
        result = asyncio.run(services.market.get_regional_top_symbols("india"))
        assert result["count"] == 10
        assert all(q.symbol.endswith(".NS") for q in result["stocks"])

    def test_bulk_limit(self, services):
        with pytest.raises(ValidationFailed):
            asyncio.run(services.market.bulk_quotes([f"S{i}" for i in range(21)]))

    def test_bulk_stats(self, services):
        result = asyncio.run(services.market.bulk_quotes(["AAPL", "MSFT"]))
        assert result["stats"] == {"requested": 2, "successful": 2, "failed": 0}

    def test_static_search_fallback(self, services):
        matches = asyncio.run(services.market.search_symbols("tech"))
        symbols = {m.symbol for m in matches}
        assert {"AAPL", "MSFT"} <= symbols

    def test_unknown_indicator_rejected(self, services):
        with pytest.raises(ValidationFailed):
            asyncio.run(services.market.get_technical_indicator("AAPL", "WILLR"))

    def test_alpha_analysis_flags_demo(self, services):
        result = asyncio.run(services.market.alpha_analysis("AAPL"))
        assert result["dataAvailable"]["quote"] is False
        assert len(result["dailyData"]) <= 30


# ──────────────────────────────────────────────
# Economic Indicators
# ──────────────────────────────────────────────

class TestEconomicIndicators:
    def test_us_summary_keys(self, services):
        summary = asyncio.run(services.economic.get_us_summary())
        assert set(summary) == {"gdp", "unemployment", "inflation", "federalRate"}
        assert summary["unemployment"]["seriesId"] == "UNRATE"

    def test_india_reference(self, services):
        india = asyncio.run(services.economic.get_regional_summary("india"))
        assert india["repoRate"]["value"] == 6.50

    def test_unknown_region(self, services):
        with pytest.raises(ValidationFailed):
            asyncio.run(services.economic.get_regional_summary("mars"))

    def test_summary_budget_fills_slow_slot(self):
        svc = EconomicIndicatorsService(
            TTLCache(), FREDClient(""), YahooFinanceClient(), mock_mode=True, summary_budget=0.05
        )

        async def slow():
            await asyncio.sleep(5)
            return {"never": True}

        svc.get_us_summary = slow
        result = asyncio.run(svc.get_summary())
        assert "never" not in result["usa"]
        assert "gdp" in result["usa"]
        assert result["metadata"]["degradedSlots"] == ["usa"]
        assert "india" in result and "forex" in result

    def test_degraded_summary_not_cached(self):
        cache = TTLCache()
        svc = EconomicIndicatorsService(cache, FREDClient(""), YahooFinanceClient(), mock_mode=True, summary_budget=0.05)
        svc.get_us_summary = AsyncMock(side_effect=RuntimeError("fred down"))
        asyncio.run(svc.get_summary())
        asyncio.run(svc.get_summary())
        assert svc.get_us_summary.await_count == 2

    def test_live_health_raises_when_fred_silent(self):
        fred = FREDClient("key")
        fred.get_series = AsyncMock(return_value=None)
        svc = EconomicIndicatorsService(TTLCache(), fred, YahooFinanceClient())
        with pytest.raises(DependencyUnhealthy):
            asyncio.run(svc.health())


# ──────────────────────────────────────────────
# News
# ──────────────────────────────────────────────

class TestNews:
    def test_stock_news_demo_set(self, services):
        articles = asyncio.run(services.news.get_articles(ticker="aapl"))
        assert len(articles) == 5
        assert all("AAPL" in a.tickers for a in articles)

    def test_search_filters_case_insensitive(self, services):
        articles = asyncio.run(services.news.get_general_articles("global"))
        word = articles[0].title.split()[0].upper()
        hits = asyncio.run(services.news.search(word))
        assert hits
        assert all(word.lower() in (a.title + a.summary).lower() for a in hits)

    def test_search_requires_query(self, services):
        with pytest.raises(ValidationFailed):
            asyncio.run(services.news.search(""))

    def test_unknown_category(self, services):
        with pytest.raises(ValidationFailed):
            asyncio.run(services.news.get_by_category("sports"))

    def test_sentiment_summary_percentages(self, services):
        summary = asyncio.run(services.news.get_sentiment_summary())
        assert summary["totalArticles"] > 0
        assert sum(summary["counts"].values()) == summary["totalArticles"]

    def test_realtime_merges_sources(self, services):
        result = asyncio.run(services.news.get_realtime())
        assert set(result["sources"]) == {"alpha_vantage", "rss", "yahoo"}
        titles = [a.title.lower()[:50] for a in result["articles"]]
        assert len(titles) == len(set(titles))


# ──────────────────────────────────────────────
# Company Filings
# ──────────────────────────────────────────────

class TestCompanyFilings:
    def test_known_cik(self, services):
        company = asyncio.run(services.filings.get_cik("aapl"))
        assert company.cik == "0000320193"

    def test_exchange_map_lookup(self):
        sec = SECClient()
        sec.get_exchange_directory = AsyncMock(
            return_value=[Company(cik="1234", ticker="ACME", name="Acme Corp", exchange="NYSE")]
        )
        svc = CompanyFilingsService(TTLCache(), sec)
        company = asyncio.run(svc.get_cik("acme"))
        assert company.cik == "0000001234"

    def test_unknown_ticker_gets_demo_cik(self):
        sec = SECClient()
        sec.get_exchange_directory = AsyncMock(return_value=None)
        svc = CompanyFilingsService(TTLCache(), sec)
        company = asyncio.run(svc.get_cik("ZZZZ"))
        assert company.cik == DEMO_CIK

    def test_by_form_filters_generic_result(self):
        sec = SECClient()
        sec.get_filings = AsyncMock(return_value=[
            Filing(accession_number="a", form="10-Q", filing_date="2024-08-02"),
            Filing(accession_number="b", form="10-K", filing_date="2023-11-03"),
            Filing(accession_number="c", form="8-K", filing_date="2023-10-01"),
        ])
        svc = CompanyFilingsService(TTLCache(), sec)
        result = asyncio.run(svc.get_filings_by_form("AAPL", "10-k"))
        assert result["count"] == 1
        assert result["filings"][0].accession_number == "b"
        sec.get_filings.assert_awaited_once_with("0000320193", 50)

    def test_demo_facts_tagged(self, services):
        facts = asyncio.run(services.filings.get_company_facts("AAPL"))
        assert facts["dataSource"] == "Demo"
        assert set(facts["financials"]) == {
            "revenue", "netIncome", "totalAssets", "totalLiabilities", "stockholdersEquity",
        }

    def test_form_catalogue(self):
        forms = [f["form"] for f in CompanyFilingsService.form_types()]
        assert forms == ["10-K", "10-Q", "8-K", "DEF 14A", "20-F", "S-1"]

    def test_latest_10k(self, services):
        rows = asyncio.run(services.filings.latest_10k())
        assert [r["ticker"] for r in rows] == ["AAPL", "GOOGL", "MSFT", "AMZN", "TSLA"]
        assert all(r["filing"].form == "10-K" for r in rows)


# ──────────────────────────────────────────────
# Banking (mock)
# ──────────────────────────────────────────────

def _banking() -> BankingAggregatorService:
    return BankingAggregatorService(latency_ms=(0, 0))


class TestBanking:
    def test_link_token_format(self):
        token = asyncio.run(_banking().create_link_token("user42"))
        assert token["linkToken"].startswith("link-sandbox-user42-")

    def test_link_token_requires_user(self):
        with pytest.raises(ValidationFailed):
            asyncio.run(_banking().create_link_token(""))

    def test_exchange(self):
        result = asyncio.run(_banking().exchange_public_token("public-x", "user42"))
        assert result["accessToken"].startswith("access-sandbox-")
        assert result["itemId"]

    def test_accounts_tagged(self):
        result = asyncio.run(_banking().get_accounts("access-sandbox-x"))
        assert result["totalAccounts"] == 3
        assert "mock data" in result["note"]

    def test_transactions_window(self):
        today = date.today()
        result = asyncio.run(
            _banking().get_transactions(
                "access-sandbox-x",
                (today - timedelta(days=30)).isoformat(),
                (today + timedelta(days=1)).isoformat(),
            )
        )
        assert result["totalTransactions"] == 3

    def test_transactions_bad_range(self):
        with pytest.raises(ValidationFailed):
            asyncio.run(_banking().get_transactions("tok", "2024-02-01", "2024-01-01"))

    def test_spending_insights(self):
        transactions = [
            {"amount": -50.0, "category": ["Food and Drink"], "date": "2024-01-05"},
            {"amount": -150.0, "category": ["Shops"], "date": "2024-02-10"},
            {"amount": -25.0, "category": ["Food and Drink"], "date": "2024-02-11"},
            {"amount": -500.0, "category": ["Transfer"], "date": "2024-02-12"},
            {"amount": 2500.0, "category": ["Deposit"], "date": "2024-02-15"},
        ]
        insights = generate_spending_insights(transactions)
        assert insights["totalSpending"] == 225.0
        assert insights["expenseTransactions"] == 3
        assert insights["totalTransactions"] == 5
        assert insights["averageTransaction"] == 75.0
        top = insights["topCategories"][0]
        assert top == {"category": "Shops", "amount": 150.0, "count": 1, "percentage": 66.67}
        assert [m["month"] for m in insights["monthlyTrends"]] == ["2024-01", "2024-02"]

    def test_health_check(self):
        assert asyncio.run(_banking().health_check())["status"] == "healthy"
