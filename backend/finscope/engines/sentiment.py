"""
FinScope — Sentiment Engine

News-sentiment aggregation for the stock-analysis pipeline. The keyword
scorer is always available; FinBERT via Hugging Face is used when a key is
configured and answers.
"""

from __future__ import annotations

import math
import re
from typing import Optional

import structlog

from finscope.data.huggingface_client import HuggingFaceClient
from finscope.models import NewsArticle, Sentiment

log = structlog.get_logger(__name__)

POSITIVE_WORDS = frozenset({
    "good", "great", "excellent", "positive", "up", "rise", "gain", "profit",
    "strong", "bullish", "buy", "growth", "increase", "boost", "surge", "rally",
})
NEGATIVE_WORDS = frozenset({
    "bad", "poor", "terrible", "negative", "down", "fall", "loss", "weak",
    "bearish", "sell", "decline", "decrease", "drop", "crash", "plunge",
})

OVERALL_THRESHOLD = 0.3
TREND_THRESHOLD = 0.2

# Tie-break order when distributing the rounding residual
_BREAKDOWN_ORDER = ("neutral", "positive", "negative")

_WORD_RE = re.compile(r"[a-z]+")

_WEIGHTS = {Sentiment.POSITIVE: 1, Sentiment.NEGATIVE: -1, Sentiment.NEUTRAL: 0}


def keyword_sentiment(text: str) -> tuple[Sentiment, float]:
    """Label a headline by counting distinct positive and negative keywords.

    Returns the label and a signed score in [-1, 1].
    """
    words = set(_WORD_RE.findall((text or "").lower()))
    pos = len(words & POSITIVE_WORDS)
    neg = len(words & NEGATIVE_WORDS)
    total = pos + neg + 1
    if pos > neg:
        return Sentiment.POSITIVE, round(pos / total, 4)
    if neg > pos:
        return Sentiment.NEGATIVE, round(-neg / total, 4)
    return Sentiment.NEUTRAL, 0.0


def percentage_breakdown(weights: dict[str, float]) -> dict[str, int]:
    """Integer percentages summing to exactly 100 (largest remainder)."""
    total = sum(weights.values())
    if total <= 0:
        return {"positive": 33, "neutral": 34, "negative": 33}
    raw = {k: weights.get(k, 0.0) / total * 100 for k in _BREAKDOWN_ORDER}
    floors = {k: math.floor(v) for k, v in raw.items()}
    residual = 100 - sum(floors.values())
    ranked = sorted(_BREAKDOWN_ORDER, key=lambda k: (-(raw[k] - floors[k]), _BREAKDOWN_ORDER.index(k)))
    for k in ranked[:residual]:
        floors[k] += 1
    return {"positive": floors["positive"], "neutral": floors["neutral"], "negative": floors["negative"]}


def _overall(score: float) -> Sentiment:
    if score > OVERALL_THRESHOLD:
        return Sentiment.POSITIVE
    if score < -OVERALL_THRESHOLD:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def _confidence(count: int) -> str:
    if count > 10:
        return "high"
    if count > 5:
        return "medium"
    return "low"


def _reasoning(overall: Sentiment, breakdown: dict[str, int]) -> str:
    if overall == Sentiment.POSITIVE:
        return f"Strong positive sentiment with {breakdown['positive']}% positive news coverage"
    if overall == Sentiment.NEGATIVE:
        return f"Negative sentiment with {breakdown['negative']}% negative news coverage"
    return (
        f"Mixed sentiment with {breakdown['positive']}% positive and "
        f"{breakdown['negative']}% negative news coverage"
    )


def _positive_fraction(articles: list[NewsArticle]) -> float:
    if not articles:
        return 0.0
    return sum(1 for a in articles if a.sentiment == Sentiment.POSITIVE) / len(articles)


def sentiment_trend(articles: list[NewsArticle]) -> str:
    """Compare the positive share of the newer half against the older half."""
    if len(articles) < 2:
        return "stable"
    ordered = sorted(articles, key=lambda a: a.published_at, reverse=True)
    split = math.ceil(len(ordered) / 2)
    recent, older = ordered[:split], ordered[split:]
    recent_pos = _positive_fraction(recent)
    older_pos = _positive_fraction(older) if older else recent_pos
    delta = recent_pos - older_pos
    if delta > TREND_THRESHOLD:
        return "improving"
    if delta < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def analyze_sentiment(articles: list[NewsArticle]) -> dict:
    """Aggregate per-article labels into an overall sentiment block."""
    if not articles:
        return {
            "overall": Sentiment.NEUTRAL.value,
            "score": 0.0,
            "confidence": "low",
            "breakdown": {"positive": 33, "neutral": 34, "negative": 33},
            "reasoning": "Insufficient news data for sentiment analysis",
            "recentTrend": "stable",
            "articleCount": 0,
            "method": "keyword",
        }

    counts = {s.value: 0 for s in Sentiment}
    for a in articles:
        counts[a.sentiment.value] += 1
    score = sum(_WEIGHTS[a.sentiment] for a in articles) / len(articles)
    overall = _overall(score)
    breakdown = percentage_breakdown(counts)
    return {
        "overall": overall.value,
        "score": round(score, 4),
        "confidence": _confidence(len(articles)),
        "breakdown": breakdown,
        "reasoning": _reasoning(overall, breakdown),
        "recentTrend": sentiment_trend(articles),
        "articleCount": len(articles),
        "method": "keyword",
    }


async def analyze_sentiment_ai(
    articles: list[NewsArticle],
    client: Optional[HuggingFaceClient],
) -> dict:
    """FinBERT-scored sentiment; the label-count analysis when unavailable."""
    baseline = analyze_sentiment(articles)
    if not articles or client is None or not client.is_configured:
        return baseline

    probabilities = await client.classify([f"{a.title}. {a.summary}" for a in articles])
    if probabilities is None:
        log.info("sentiment.ai_unavailable", articles=len(articles))
        return baseline

    score = probabilities["positive"] - probabilities["negative"]
    overall = _overall(score)
    breakdown = percentage_breakdown(probabilities)
    return {
        **baseline,
        "overall": overall.value,
        "score": round(score, 4),
        "breakdown": breakdown,
        "reasoning": _reasoning(overall, breakdown),
        "method": "finbert",
    }
