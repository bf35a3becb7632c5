"""
Sentiment Engine Tests

Keyword scoring, percentage breakdowns, trend detection and the FinBERT
path with its fallback.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from finscope.data.huggingface_client import HuggingFaceClient
from finscope.engines.sentiment import (
    analyze_sentiment,
    analyze_sentiment_ai,
    keyword_sentiment,
    percentage_breakdown,
    sentiment_trend,
)
from finscope.models import NewsArticle, Sentiment

P, N, Z = Sentiment.POSITIVE, Sentiment.NEGATIVE, Sentiment.NEUTRAL


def _articles(labels: list[Sentiment]) -> list[NewsArticle]:
    """Newest first: the first label gets the most recent timestamp."""
    now = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)
    return [
        NewsArticle(title=f"headline {i}", sentiment=s, published_at=(now - timedelta(hours=i)).isoformat())
        for i, s in enumerate(labels)
    ]


# ──────────────────────────────────────────────
# Keyword scoring
# ──────────────────────────────────────────────

class TestKeywordSentiment:
    def test_positive(self):
        label, score = keyword_sentiment("Stocks rally on strong growth")
        assert label == Sentiment.POSITIVE
        assert score == 0.75

    def test_negative(self):
        label, score = keyword_sentiment("Shares plunge after weak guidance")
        assert label == Sentiment.NEGATIVE
        assert score < 0

    def test_tie_is_neutral(self):
        assert keyword_sentiment("gain then loss") == (Sentiment.NEUTRAL, 0.0)

    def test_empty(self):
        assert keyword_sentiment("") == (Sentiment.NEUTRAL, 0.0)

    def test_distinct_words_only(self):
        _, once = keyword_sentiment("rally")
        _, twice = keyword_sentiment("rally rally rally")
        assert once == twice


# ──────────────────────────────────────────────
# Aggregation
# ──────────────────────────────────────────────

class TestAnalyzeSentiment:
    def test_mixed_but_positive(self):
        result = analyze_sentiment(_articles([P, P, Z, N, P]))
        assert result["score"] == 0.4
        assert result["overall"] == "positive"
        assert result["breakdown"] == {"positive": 60, "neutral": 20, "negative": 20}
        assert result["confidence"] == "low"
        assert "60% positive" in result["reasoning"]
        assert result["articleCount"] == 5

    def test_no_articles(self):
        result = analyze_sentiment([])
        assert result["overall"] == "neutral"
        assert result["score"] == 0.0
        assert result["breakdown"] == {"positive": 33, "neutral": 34, "negative": 33}
        assert result["confidence"] == "low"

    def test_negative_reasoning(self):
        result = analyze_sentiment(_articles([N, N, N, Z]))
        assert result["overall"] == "negative"
        assert result["reasoning"].startswith("Negative sentiment with 75%")

    def test_neutral_band(self):
        result = analyze_sentiment(_articles([P, N, Z]))
        assert result["overall"] == "neutral"
        assert result["reasoning"].startswith("Mixed sentiment")

    def test_confidence_tiers(self):
        assert analyze_sentiment(_articles([Z] * 6))["confidence"] == "medium"
        assert analyze_sentiment(_articles([Z] * 11))["confidence"] == "high"


class TestPercentageBreakdown:
    def test_thirds_sum_to_100(self):
        result = percentage_breakdown({"positive": 1, "neutral": 1, "negative": 1})
        assert sum(result.values()) == 100
        assert result["neutral"] == 34

    def test_probabilities(self):
        result = percentage_breakdown({"positive": 0.617, "neutral": 0.201, "negative": 0.182})
        assert result == {"positive": 62, "neutral": 20, "negative": 18}

    def test_zero_total(self):
        assert percentage_breakdown({"positive": 0, "neutral": 0, "negative": 0}) == {
            "positive": 33, "neutral": 34, "negative": 33,
        }


class TestSentimentTrend:
    def test_improving(self):
        assert sentiment_trend(_articles([P, P, N, N])) == "improving"

    def test_declining(self):
        assert sentiment_trend(_articles([N, N, P, P])) == "declining"

    def test_stable(self):
        assert sentiment_trend(_articles([P, N, P, N])) == "stable"

    def test_single_article(self):
        assert sentiment_trend(_articles([P])) == "stable"

    def test_order_independent(self):
        articles = _articles([P, P, N, N])
        assert sentiment_trend(list(reversed(articles))) == "improving"


# ──────────────────────────────────────────────
# FinBERT path
# ──────────────────────────────────────────────

class TestAnalyzeSentimentAI:
    def test_unconfigured_uses_keyword(self):
        result = asyncio.run(analyze_sentiment_ai(_articles([P, P]), HuggingFaceClient("")))
        assert result["method"] == "keyword"

    def test_finbert_probabilities(self):
        client = HuggingFaceClient("hf-key")
        client.classify = AsyncMock(return_value={"positive": 0.7, "neutral": 0.2, "negative": 0.1})
        result = asyncio.run(analyze_sentiment_ai(_articles([Z, Z]), client))
        assert result["method"] == "finbert"
        assert result["overall"] == "positive"
        assert result["score"] == 0.6
        assert result["breakdown"] == {"positive": 70, "neutral": 20, "negative": 10}

    def test_finbert_failure_falls_back(self):
        client = HuggingFaceClient("hf-key")
        client.classify = AsyncMock(return_value=None)
        result = asyncio.run(analyze_sentiment_ai(_articles([N, N]), client))
        assert result["method"] == "keyword"
        assert result["overall"] == "negative"
