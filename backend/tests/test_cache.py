"""
Cache & Fallback Tests

TTL expiry, read-through behaviour, the ``@cached`` decorator and the
ordered provider chain.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from finscope.cache import TTLCache, cached, first_available, make_cache_key
from finscope.data.alpha_vantage_client import AlphaVantageClient
from finscope.data.fmp_client import FMPClient
from finscope.data.yahoo_client import YahooFinanceClient
from finscope.errors import TotalUnavailable
from finscope.models import Quote
from finscope.services.market_data import MarketDataService


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# ──────────────────────────────────────────────
# TTLCache
# ──────────────────────────────────────────────

class TestTTLCache:
    def test_put_and_get(self):
        cache = TTLCache()
        cache.put_with_ttl("quote:AAPL", {"price": 1}, ttl=60)
        assert cache.get("quote:AAPL") == {"price": 1}

    def test_entry_expires(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.put_with_ttl("k", "v", ttl=10)
        clock.now += 9
        assert cache.get("k") == "v"
        clock.now += 2
        assert cache.get("k") is None
        assert "k" not in cache

    def test_namespace_ttl(self):
        cache = TTLCache()
        assert cache.ttl_for("quote") == 300
        assert cache.ttl_for("economic") == 1800
        assert cache.ttl_for("filings") == 3600
        assert cache.ttl_for("news") == 900
        assert cache.ttl_for("analysis") == 300

    def test_unknown_namespace_uses_default(self):
        cache = TTLCache(default_ttl=42)
        assert cache.ttl_for("something-else") == 42

    def test_reads_return_copies(self):
        cache = TTLCache()
        cache.put("news", "news:x", {"items": [1, 2]})
        first = cache.get("news:x")
        first["items"].append(3)
        assert cache.get("news:x") == {"items": [1, 2]}

    def test_per_entry_ttl_within_namespace_store(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.put("quote", "quote:a", 1)
        cache.put("filings", "filings:a", 2)
        clock.now += 301
        assert cache.get("quote:a") is None
        assert cache.get("filings:a") == 2
        assert cache.stats()["expired"] == 1

    def test_bounded_evicts_least_recently_used(self):
        cache = TTLCache(max_entries=2)
        cache.put("quote", "quote:a", 1)
        cache.put("quote", "quote:b", 2)
        assert cache.get("quote:a") == 1
        cache.put("quote", "quote:c", 3)
        assert "quote:b" not in cache
        assert cache.get("quote:a") == 1
        assert cache.get("quote:c") == 3
        assert cache.stats()["maxEntries"] == 2

    def test_delete(self):
        cache = TTLCache()
        cache.put("quote", "quote:a", 1)
        assert cache.delete("quote:a") is True
        assert cache.delete("quote:a") is False
        assert "quote:a" not in cache

    def test_clear_prefix(self):
        cache = TTLCache()
        cache.put("quote", "quote:a", 1)
        cache.put("quote", "quote:b", 2)
        cache.put("news", "news:a", 3)
        assert cache.clear_prefix("quote") == 2
        assert len(cache) == 1

    def test_stats_count_hits_and_misses(self):
        cache = TTLCache()
        cache.get("missing")
        cache.put("quote", "quote:a", 1)
        cache.get("quote:a")
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["writes"] == 1


class TestReadThrough:
    def test_loader_skipped_on_fresh_hit(self):
        cache = TTLCache()
        loader = AsyncMock(return_value={"v": 1})
        first = asyncio.run(cache.read_through("quote", "quote:x", loader))
        second = asyncio.run(cache.read_through("quote", "quote:x", loader))
        assert first == second == {"v": 1}
        assert loader.await_count == 1

    def test_none_is_not_stored(self):
        cache = TTLCache()
        loader = AsyncMock(return_value=None)
        asyncio.run(cache.read_through("quote", "quote:x", loader))
        asyncio.run(cache.read_through("quote", "quote:x", loader))
        assert loader.await_count == 2

    def test_cached_decorator_keys_on_arguments(self):
        class Service:
            def __init__(self):
                self.cache = TTLCache()
                self.calls = 0

            @cached("quote", name="echo")
            async def echo(self, value):
                self.calls += 1
                return {"value": value}

        svc = Service()
        asyncio.run(svc.echo("a"))
        asyncio.run(svc.echo("a"))
        asyncio.run(svc.echo("b"))
        assert svc.calls == 2

    def test_make_cache_key_is_deterministic(self):
        assert make_cache_key("quote", "AAPL", mock=True) == make_cache_key("quote", "AAPL", mock=True)
        assert make_cache_key("quote", "x" * 200).startswith("quote:")
        assert len(make_cache_key("quote", "x" * 200)) < 128


# ──────────────────────────────────────────────
# Fallback chain
# ──────────────────────────────────────────────

class TestFirstAvailable:
    def test_first_success_short_circuits(self):
        l1 = AsyncMock(return_value="one")
        l2 = AsyncMock(return_value="two")
        outcome = asyncio.run(first_available([("a", l1), ("b", l2)]))
        assert outcome.value == "one"
        assert outcome.provider == "a"
        l2.assert_not_awaited()

    def test_exception_treated_as_empty(self):
        boom = AsyncMock(side_effect=RuntimeError("down"))
        ok = AsyncMock(return_value=["row"])
        outcome = asyncio.run(first_available([("a", boom), ("b", ok)]))
        assert outcome.value == ["row"]
        assert outcome.attempted == ["a", "b"]

    def test_empty_list_falls_through(self):
        empty = AsyncMock(return_value=[])
        mock = AsyncMock(return_value=["demo"])
        outcome = asyncio.run(first_available([("a", empty)], mock=mock))
        assert outcome.used_mock
        assert outcome.value == ["demo"]

    def test_no_mock_means_not_found(self):
        outcome = asyncio.run(first_available([("a", AsyncMock(return_value=None))]))
        assert not outcome.found
        assert outcome.provider is None


class TestQuoteFallbackOrder:
    """Primary empty, secondary answers: mock is never consulted."""

    def test_secondary_source_wins(self):
        yahoo = YahooFinanceClient()
        alpha = AlphaVantageClient()
        fmp = FMPClient()
        secondary = Quote.build(symbol="AAPL", current_price=190.0, previous_close=188.0, source="Alpha Vantage")
        yahoo.get_quote = AsyncMock(return_value=None)
        alpha.get_quote = AsyncMock(return_value=secondary)
        fmp.get_quote = AsyncMock(return_value=None)

        market = MarketDataService(TTLCache(), yahoo, alpha, fmp, mock_mode=False)
        with patch("finscope.services.market_data.mock_data.mock_quote") as mock_quote:
            quote = asyncio.run(market.get_quote("aapl"))
            mock_quote.assert_not_called()

        assert quote.source == "Alpha Vantage"
        assert yahoo.get_quote.await_count == 1
        fmp.get_quote.assert_not_awaited()

    def test_all_fail_without_mock_raises(self):
        yahoo, alpha, fmp = YahooFinanceClient(), AlphaVantageClient(), FMPClient()
        for client in (yahoo, alpha, fmp):
            client.get_quote = AsyncMock(return_value=None)
        market = MarketDataService(TTLCache(), yahoo, alpha, fmp, mock_mode=False)
        with pytest.raises(TotalUnavailable) as exc:
            asyncio.run(market.get_quote("ZZZZ", allow_mock=False))
        assert "ZZZZ" in exc.value.message
        assert "Verify the stock symbol is correct" in exc.value.to_shape().suggested_actions

    def test_quote_cached_within_ttl(self):
        yahoo, alpha, fmp = YahooFinanceClient(), AlphaVantageClient(), FMPClient()
        yahoo.get_quote = AsyncMock(
            return_value=Quote.build(symbol="MSFT", current_price=400.0, previous_close=400.0, source="Yahoo Finance")
        )
        market = MarketDataService(TTLCache(), yahoo, alpha, fmp)
        a = asyncio.run(market.get_quote("MSFT"))
        b = asyncio.run(market.get_quote("MSFT"))
        assert a.model_dump_json() == b.model_dump_json()
        assert yahoo.get_quote.await_count == 1
