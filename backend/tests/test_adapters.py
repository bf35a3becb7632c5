"""
Upstream Adapter Tests

Each adapter is driven through ``httpx.MockTransport``: normalization,
upstream-specific failure detection, and the "return None, never raise"
contract.
"""

from __future__ import annotations

import asyncio
import json

import httpx

from finscope.data.alpha_vantage_client import AlphaVantageClient, sentiment_from_score
from finscope.data.base_client import safe_float, safe_int
from finscope.data.fred_client import FREDClient
from finscope.data.huggingface_client import HuggingFaceClient
from finscope.data.sec_client import SECClient, extract_facts, filing_url, latest_fact, zip_recent_filings
from finscope.data.yahoo_client import YahooFinanceClient, detect_exchange
from finscope.models import Sentiment, TechnicalIndicator


def _transport(payload, status: int = 200, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if isinstance(payload, Exception):
            raise payload
        body = payload if isinstance(payload, str) else json.dumps(payload)
        return httpx.Response(status, text=body, headers={"content-type": "application/json"})

    return httpx.MockTransport(handler)


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

class TestCoercion:
    def test_safe_float(self):
        assert safe_float("12.5") == 12.5
        assert safe_float("3.4%") == 3.4
        assert safe_float(".") is None
        assert safe_float("None") is None
        assert safe_float(None) is None
        assert safe_float("abc") is None

    def test_safe_int(self):
        assert safe_int("1500") == 1500
        assert safe_int("-") is None


# ──────────────────────────────────────────────
# Yahoo Finance
# ──────────────────────────────────────────────

CHART = {
    "chart": {
        "result": [
            {
                "meta": {
                    "symbol": "AAPL",
                    "currency": "USD",
                    "exchangeName": "NMS",
                    "regularMarketPrice": 190.0,
                    "previousClose": 188.0,
                    "regularMarketTime": 1700000000,
                    "longName": "Apple Inc.",
                },
                "timestamp": [1699900000, 1700000000],
                "indicators": {
                    "quote": [
                        {
                            "open": [187.0, 189.0],
                            "high": [189.5, 191.0],
                            "low": [186.0, 188.5],
                            "close": [188.0, 190.0],
                            "volume": [1000, 2000],
                        }
                    ]
                },
            }
        ]
    }
}


class TestYahooClient:
    def test_quote_normalization(self):
        client = YahooFinanceClient(transport=_transport(CHART))
        quote = asyncio.run(client.get_quote("AAPL"))
        assert quote.symbol == "AAPL"
        assert quote.current_price == 190.0
        assert quote.change == 2.0
        assert round(quote.change_percent, 2) == 1.06
        assert quote.volume == 2000
        assert quote.exchange == "NASDAQ"
        assert quote.source == "Yahoo Finance"

    def test_series_newest_first(self):
        client = YahooFinanceClient(transport=_transport(CHART))
        series = asyncio.run(client.get_series("AAPL"))
        assert [b.close for b in series.bars] == [190.0, 188.0]

    def test_empty_result_is_none(self):
        client = YahooFinanceClient(transport=_transport({"chart": {"result": []}}))
        assert asyncio.run(client.get_quote("NOPE")) is None

    def test_http_error_is_none(self):
        client = YahooFinanceClient(transport=_transport({"error": "x"}, status=500))
        assert asyncio.run(client.get_quote("AAPL")) is None

    def test_transport_error_is_none(self):
        client = YahooFinanceClient(transport=_transport(httpx.ConnectError("refused")))
        assert asyncio.run(client.get_quote("AAPL")) is None

    def test_search_keeps_named_quotes(self):
        payload = {
            "quotes": [
                {"symbol": "RELIANCE.NS", "shortname": "Reliance Industries", "exchange": "NSI"},
                {"symbol": "NONAME"},
            ]
        }
        client = YahooFinanceClient(transport=_transport(payload))
        matches = asyncio.run(client.search("reliance"))
        assert len(matches) == 1
        assert matches[0].exchange == "NSE"

    def test_detect_exchange(self):
        assert detect_exchange("TCS.NS") == "NSE"
        assert detect_exchange("TCS.BO") == "BSE"
        assert detect_exchange("IBM", "NYQ") == "NYSE"


# ──────────────────────────────────────────────
# Alpha Vantage
# ──────────────────────────────────────────────

class TestAlphaVantageClient:
    def test_global_quote(self):
        payload = {
            "Global Quote": {
                "01. symbol": "IBM",
                "03. high": "145.0",
                "04. low": "141.0",
                "05. price": "144.0",
                "06. volume": "3000000",
                "07. latest trading day": "2024-05-01",
                "08. previous close": "140.0",
            }
        }
        client = AlphaVantageClient("key", transport=_transport(payload))
        quote = asyncio.run(client.get_quote("IBM"))
        assert quote.current_price == 144.0
        assert quote.change == 4.0
        assert quote.timestamp == "2024-05-01T00:00:00Z"

    def test_rate_limit_note_is_failure(self):
        payload = {"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute."}
        client = AlphaVantageClient("key", transport=_transport(payload))
        assert asyncio.run(client.get_quote("IBM")) is None

    def test_information_key_is_failure(self):
        client = AlphaVantageClient("key", transport=_transport({"Information": "premium endpoint"}))
        assert asyncio.run(client.get_overview("IBM")) is None

    def test_api_key_sent(self):
        seen: list[httpx.Request] = []
        client = AlphaVantageClient("", transport=_transport({}, seen=seen))
        asyncio.run(client.get_quote("IBM"))
        assert seen[0].url.params["apikey"] == "demo"

    def test_indicator_values_newest_first(self):
        payload = {
            "Technical Analysis: RSI": {
                "2024-05-01": {"RSI": "72.1"},
                "2024-05-02": {"RSI": "75.0"},
            }
        }
        client = AlphaVantageClient("key", transport=_transport(payload))
        series = asyncio.run(client.get_indicator("IBM", TechnicalIndicator.RSI))
        assert series.values[0]["date"] == "2024-05-02"
        assert series.latest("RSI") == 75.0

    def test_news_sentiment_thresholds(self):
        assert sentiment_from_score(0.2) == Sentiment.POSITIVE
        assert sentiment_from_score(-0.2) == Sentiment.NEGATIVE
        assert sentiment_from_score(0.05) == Sentiment.NEUTRAL
        assert sentiment_from_score(None) == Sentiment.NEUTRAL


# ──────────────────────────────────────────────
# FRED
# ──────────────────────────────────────────────

class TestFREDClient:
    def test_missing_values_filtered(self):
        payload = {
            "observations": [
                {"date": "2024-04-01", "value": "."},
                {"date": "2024-03-01", "value": "3.9"},
                {"date": "2024-02-01", "value": "3.8"},
            ]
        }
        client = FREDClient("key", transport=_transport(payload))
        series = asyncio.run(client.get_series("unrate"))
        assert series.series_id == "UNRATE"
        assert [o.value for o in series.observations] == [3.9, 3.8]
        assert series.latest.date == "2024-03-01"

    def test_unconfigured_makes_no_request(self):
        seen: list[httpx.Request] = []
        client = FREDClient("", transport=_transport({}, seen=seen))
        assert asyncio.run(client.get_series("GDP")) is None
        assert seen == []


# ──────────────────────────────────────────────
# SEC EDGAR
# ──────────────────────────────────────────────

RECENT = {
    "accessionNumber": ["0000320193-24-000123", "0000320193-24-000100"],
    "form": ["10-Q", "8-K"],
    "filingDate": ["2024-08-02", "2024-07-01"],
    "reportDate": ["2024-06-29", ""],
    "primaryDocument": ["aapl-20240629.htm", "ex99.htm"],
    "size": [123456, 789],
    "isXBRL": [1, 0],
}


class TestSECParsing:
    def test_zip_parallel_arrays(self):
        filings = zip_recent_filings(RECENT, "320193")
        assert len(filings) == 2
        assert filings[0].form == "10-Q"
        assert filings[1].filing_date == "2024-07-01"
        assert filings[0].is_xbrl is True

    def test_filing_url(self):
        url = filing_url("0000320193", "0000320193-24-000123", "aapl-20240629.htm")
        assert url == "https://www.sec.gov/Archives/edgar/data/320193/000032019324000123/aapl-20240629.htm"

    def test_latest_fact_across_units(self):
        concept = {
            "units": {
                "USD": [
                    {"end": "2023-09-30", "val": 100, "form": "10-K", "filed": "2023-11-03"},
                    {"end": "2024-06-29", "val": 120, "form": "10-Q", "filed": "2024-08-02", "start": "2024-03-31"},
                ],
                "EUR": [{"end": "2024-01-01", "val": 90, "form": "10-Q", "filed": "2024-02-01"}],
            }
        }
        fact = latest_fact(concept)
        assert fact.value == 120
        assert fact.unit == "USD"
        assert fact.start_date == "2024-03-31"

    def test_revenue_alias(self):
        facts = {
            "facts": {
                "us-gaap": {
                    "RevenueFromContractWithCustomerExcludingAssessedTax": {
                        "units": {"USD": [{"end": "2024-06-29", "val": 85_000_000_000, "form": "10-Q", "filed": "x"}]}
                    }
                }
            }
        }
        out = extract_facts(facts)
        assert out["revenue"].value == 85_000_000_000
        assert out["netIncome"] is None

    def test_client_sends_descriptive_user_agent(self):
        seen: list[httpx.Request] = []
        client = SECClient(transport=_transport({"filings": {"recent": RECENT}}, seen=seen))
        filings = asyncio.run(client.get_filings("320193", limit=1))
        assert len(filings) == 1
        assert "CIK0000320193.json" in str(seen[0].url)
        assert "FinScope" in seen[0].headers["user-agent"]


# ──────────────────────────────────────────────
# Hugging Face
# ──────────────────────────────────────────────

class TestHuggingFaceClient:
    def test_probabilities_averaged(self):
        payload = [
            [{"label": "positive", "score": 0.8}, {"label": "neutral", "score": 0.1}, {"label": "negative", "score": 0.1}],
            [{"label": "positive", "score": 0.2}, {"label": "neutral", "score": 0.3}, {"label": "negative", "score": 0.5}],
        ]
        client = HuggingFaceClient("hf-key", transport=_transport(payload))
        probs = asyncio.run(client.classify(["good news", "bad news"]))
        assert round(probs["positive"], 2) == 0.5
        assert round(probs["negative"], 2) == 0.3

    def test_unconfigured_returns_none(self):
        assert asyncio.run(HuggingFaceClient("").classify(["text"])) is None
