"""
FinScope — Stock Analysis Engine

Combines quote, news, company overview, technical indicators and the
economic backdrop into one analysis with a BUY/HOLD/SELL recommendation.
Pure scoring functions sit at module level; ``StockAnalysisPipeline`` does
the concurrent fetching.
"""

from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING, Any, Optional

import numpy as np
import structlog

from finscope.cache import TTLCache, make_cache_key
from finscope.data import mock_data
from finscope.data.base_client import safe_float
from finscope.data.huggingface_client import HuggingFaceClient
from finscope.engines.sentiment import analyze_sentiment, analyze_sentiment_ai
from finscope.errors import ErrorShape, TotalUnavailable, ValidationFailed, utc_now_iso
from finscope.models import EconomicSeries, IndicatorSeries, NewsArticle, PriceSeries, Quote, TechnicalIndicator

if TYPE_CHECKING:
    from finscope.services.economic import EconomicIndicatorsService
    from finscope.services.market_data import MarketDataService
    from finscope.services.news import NewsService

log = structlog.get_logger(__name__)

ANALYSIS_BUDGET_SECONDS = 10.0
TRADING_DAYS = 252

TRENDING_SYMBOLS = ["AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "NVDA", "META", "NFLX"]

POPULAR_STOCKS = [
    {"symbol": "AAPL", "name": "Apple Inc.", "type": "Equity", "region": "United States"},
    {"symbol": "GOOGL", "name": "Alphabet Inc.", "type": "Equity", "region": "United States"},
    {"symbol": "MSFT", "name": "Microsoft Corporation", "type": "Equity", "region": "United States"},
    {"symbol": "AMZN", "name": "Amazon.com Inc.", "type": "Equity", "region": "United States"},
    {"symbol": "TSLA", "name": "Tesla Inc.", "type": "Equity", "region": "United States"},
]

ECONOMIC_SERIES = {"gdp": "GDP", "inflation": "CPIAUCSL", "unemployment": "UNRATE"}

# Alpha Vantage overview field → metric name
FUNDAMENTAL_FIELDS = {
    "PERatio": "peRatio",
    "PEGRatio": "pegRatio",
    "PriceToBookRatio": "priceToBook",
    "DividendYield": "dividendYield",
    "ProfitMargin": "profitMargin",
    "DebtToEquityRatio": "debtToEquity",
}


# ──────────────────────────────────────────────
# Formatting
# ──────────────────────────────────────────────


def format_stock_data(quote: Quote) -> dict:
    return {
        "symbol": quote.symbol,
        "name": quote.name or mock_data.company_name(quote.symbol),
        "currentPrice": quote.current_price,
        "change": quote.change,
        "changePercent": quote.change_percent,
        "volume": quote.volume,
        "dayRange": quote.day_range.to_dict(),
        "fiftyTwoWeekRange": quote.fifty_two_week_range.to_dict(),
        "marketCap": quote.market_cap,
        "currency": quote.currency,
        "exchangeName": quote.exchange,
        "marketState": quote.market_state,
        "previousClose": quote.previous_close,
        "source": quote.source,
    }


def format_company_info(overview: dict) -> dict:
    return {
        "name": overview.get("Name") or "N/A",
        "description": overview.get("Description") or "No description available",
        "sector": overview.get("Sector") or "N/A",
        "industry": overview.get("Industry") or "N/A",
        "marketCap": safe_float(overview.get("MarketCapitalization")),
        "employees": safe_float(overview.get("FullTimeEmployees")),
        "exchange": overview.get("Exchange") or "N/A",
        "currency": overview.get("Currency") or "USD",
        "source": overview.get("source", "Alpha Vantage"),
    }


def format_news(articles: list[NewsArticle], limit: int = 10) -> list[dict]:
    return [
        {
            "title": a.title,
            "summary": a.summary,
            "source": a.source,
            "timestamp": a.published_at,
            "sentiment": a.sentiment.value,
            "url": a.url,
            "relevanceScore": a.relevance_score,
        }
        for a in articles[:limit]
    ]


def key_metrics(quote: Quote, overview: Optional[dict]) -> dict:
    metrics: dict[str, Any] = {
        "currentPrice": quote.current_price,
        "dayChange": quote.change,
        "volume": quote.volume,
    }
    if overview:
        for field, name in (
            ("MarketCapitalization", "marketCap"),
            ("PERatio", "peRatio"),
            ("DividendYield", "dividendYield"),
            ("Beta", "beta"),
            ("EPS", "eps"),
            ("BookValue", "bookValue"),
        ):
            metrics[name] = safe_float(overview.get(field))
    return metrics


# ──────────────────────────────────────────────
# Sub-analyses
# ──────────────────────────────────────────────


def realized_volatility(series: Optional[PriceSeries]) -> Optional[float]:
    """Annualized standard deviation of daily log returns."""
    if series is None or len(series.bars) < 3:
        return None
    closes = np.array([b.close for b in reversed(series.bars) if b.close > 0], dtype=float)
    if len(closes) < 3:
        return None
    returns = np.diff(np.log(closes))
    return round(float(np.std(returns, ddof=1) * math.sqrt(TRADING_DAYS)), 4)


def analyze_technical(indicators: dict[str, Optional[IndicatorSeries]]) -> Optional[dict]:
    """Signals from the latest indicator values. Only RSI votes."""
    populated = {k: v for k, v in indicators.items() if v is not None and v.values}
    if not populated:
        return None

    details: dict[str, dict] = {}
    signals: list[dict] = []

    rsi_series = populated.get("rsi")
    if rsi_series is not None:
        rsi = rsi_series.latest("RSI")
        entry = {"value": rsi, "signal": "neutral", "description": "RSI in neutral territory"}
        if rsi is not None and rsi > 70:
            entry.update(signal="overbought", description="RSI above 70 suggests the stock is overbought")
            signals.append({"type": "sell", "strength": "medium", "reason": "RSI overbought"})
        elif rsi is not None and rsi < 30:
            entry.update(signal="oversold", description="RSI below 30 suggests the stock is oversold")
            signals.append({"type": "buy", "strength": "medium", "reason": "RSI oversold"})
        details["rsi"] = entry

    macd_series = populated.get("macd")
    if macd_series is not None:
        details["macd"] = {
            "value": macd_series.latest("MACD"),
            "signalLine": macd_series.latest("MACD_Signal"),
            "histogram": macd_series.latest("MACD_Hist"),
        }

    sma_series = populated.get("sma")
    if sma_series is not None:
        details["sma"] = {"value": sma_series.latest("SMA"), "period": sma_series.time_period}

    buys = sum(1 for s in signals if s["type"] == "buy")
    sells = sum(1 for s in signals if s["type"] == "sell")
    if buys > sells:
        overall, recommendation = "bullish", "buy"
    elif sells > buys:
        overall, recommendation = "bearish", "sell"
    else:
        overall, recommendation = "neutral", "hold"

    return {
        "overall": overall,
        "recommendation": recommendation,
        "confidence": "high" if len(populated) >= 3 else "medium",
        "indicators": details,
        "signals": signals,
        "buySignals": buys,
        "sellSignals": sells,
    }


def analyze_fundamental(overview: Optional[dict]) -> Optional[dict]:
    if not overview:
        return None
    metrics = {name: safe_float(overview.get(field)) for field, name in FUNDAMENTAL_FIELDS.items()}
    present = sum(1 for v in metrics.values() if v is not None)
    if present == 0:
        return None

    analysis = []
    pe = metrics["peRatio"]
    if pe is not None and pe > 0:
        if pe < 15:
            analysis.append({"metric": "P/E Ratio", "signal": "positive", "reason": "Attractive valuation below 15x earnings"})
        elif pe > 30:
            analysis.append({"metric": "P/E Ratio", "signal": "negative", "reason": "High valuation above 30x earnings"})

    margin = metrics["profitMargin"]
    if margin is not None:
        if margin > 0.15:
            analysis.append({"metric": "Profit Margin", "signal": "positive", "reason": "Strong profitability above 15%"})
        elif margin < 0.05:
            analysis.append({"metric": "Profit Margin", "signal": "negative", "reason": "Thin profitability below 5%"})

    positives = sum(1 for a in analysis if a["signal"] == "positive")
    negatives = sum(1 for a in analysis if a["signal"] == "negative")
    if positives > negatives:
        overall = "strong"
    elif negatives > positives:
        overall = "weak"
    else:
        overall = "neutral"

    return {
        "overall": overall,
        "confidence": "high" if present >= 4 else "medium",
        "metrics": metrics,
        "analysis": analysis,
        "reasoning": f"{positives} positive and {negatives} negative fundamental signals",
    }


def _pct_change(series: Optional[EconomicSeries]) -> Optional[float]:
    if series is None or series.latest is None or series.previous is None or not series.previous.value:
        return None
    return (series.latest.value - series.previous.value) / series.previous.value


def analyze_economic(series: dict[str, Optional[EconomicSeries]]) -> Optional[dict]:
    """GDP direction, annualized CPI pace and unemployment direction."""
    if not any(s is not None and not s.is_empty for s in series.values()):
        return None

    gdp_change = _pct_change(series.get("gdp"))
    if gdp_change is None:
        gdp_trend = "unknown"
    elif gdp_change > 0.002:
        gdp_trend = "growing"
    elif gdp_change < -0.002:
        gdp_trend = "contracting"
    else:
        gdp_trend = "stable"

    cpi_change = _pct_change(series.get("inflation"))
    if cpi_change is None:
        inflation_level = "unknown"
    else:
        annualized = ((1 + cpi_change) ** 12 - 1) * 100
        if annualized > 4:
            inflation_level = "high"
        elif annualized < 1.5:
            inflation_level = "low"
        else:
            inflation_level = "moderate"

    unemployment = series.get("unemployment")
    if unemployment is None or unemployment.latest is None or unemployment.previous is None:
        unemployment_trend = "unknown"
    else:
        delta = unemployment.latest.value - unemployment.previous.value
        if delta > 0.1:
            unemployment_trend = "rising"
        elif delta < -0.1:
            unemployment_trend = "falling"
        else:
            unemployment_trend = "stable"

    score = {"growing": 1, "contracting": -1}.get(gdp_trend, 0)
    score += {"falling": 1, "rising": -1}.get(unemployment_trend, 0)
    score -= 1 if inflation_level == "high" else 0

    if score > 0:
        overall, impact = "supportive", "Economic environment supports equity performance"
    elif score < 0:
        overall, impact = "headwind", "Economic conditions create headwinds for equities"
    else:
        overall, impact = "neutral", "Economic environment provides a neutral backdrop"

    return {
        "overall": overall,
        "confidence": "medium",
        "factors": {
            "gdpTrend": gdp_trend,
            "inflationLevel": inflation_level,
            "unemploymentTrend": unemployment_trend,
        },
        "impact": impact,
    }


_RISK_ASSESSMENTS = {
    "low": "Investment shows low risk characteristics with stable fundamentals and positive market conditions.",
    "medium": "Moderate risk investment with balanced risk-reward profile. Normal market volatility expected.",
    "high": "High risk investment with significant volatility potential. Suitable only for risk-tolerant investors.",
}

_RISK_RECOMMENDATIONS = {
    "low": "Suitable for conservative investors seeking stable returns.",
    "medium": "Appropriate for moderate investors with balanced risk appetite.",
    "high": "Only suitable for aggressive investors with high risk tolerance.",
}


def assess_risk(
    sentiment: dict,
    rsi: Optional[float],
    volatility: Optional[float],
    economic: dict,
    articles: list[NewsArticle],
) -> dict:
    """Additive 0–10 risk score from a base of 3."""
    score = 3
    factors = []
    if sentiment.get("overall") == "negative":
        score += 2
        factors.append("Negative market sentiment")
    if volatility is not None and volatility > 0.3:
        score += 2
        factors.append(f"High realized volatility ({volatility:.0%} annualized)")
    if rsi is not None and (rsi > 75 or rsi < 25):
        score += 1
        factors.append("Extreme RSI reading")
    if economic.get("factors", {}).get("inflationLevel") == "high":
        score += 1
        factors.append("High inflation environment")
    if articles and analyze_sentiment(articles[:5])["overall"] == "negative":
        score += 1
        factors.append("Recent news flow is negative")

    score = min(score, 10)
    if score <= 3:
        level = "low"
    elif score >= 7:
        level = "high"
    else:
        level = "medium"

    return {
        "level": level,
        "score": score,
        "factors": factors,
        "assessment": _RISK_ASSESSMENTS[level],
        "recommendation": _RISK_RECOMMENDATIONS[level],
    }


_SUMMARIES = {
    "BUY": "Strong buying opportunity identified",
    "SELL": "Consider reducing position",
    "HOLD": "Maintain current position",
}

_TIME_HORIZONS = {"low": "long-term", "medium": "medium-term", "high": "short-term"}


def recommend(
    sentiment: dict,
    technical: dict,
    fundamental: dict,
    risk: dict,
    economic: dict,
    current_price: Optional[float],
) -> dict:
    """Weighted score on a 0–10 scale starting from a neutral 5."""
    score = 5.0
    reasoning = []

    if sentiment.get("overall") == "positive":
        score += 1.5
        reasoning.append("Positive market sentiment supports bullish outlook")
    elif sentiment.get("overall") == "negative":
        score -= 1.5
        reasoning.append("Negative sentiment creates headwinds")

    if technical.get("overall") == "bullish":
        score += 1
        reasoning.append("Technical indicators suggest upward momentum")
    elif technical.get("overall") == "bearish":
        score -= 1
        reasoning.append("Technical indicators show weakening trend")

    if fundamental.get("overall") == "strong":
        score += 1
        reasoning.append("Strong fundamental metrics support investment")
    elif fundamental.get("overall") == "weak":
        score -= 1
        reasoning.append("Weak fundamentals raise concerns")

    if risk.get("level") == "low":
        score += 0.5
        reasoning.append("Low risk profile enhances attractiveness")
    elif risk.get("level") == "high":
        score -= 1
        reasoning.append("High risk level requires caution")

    if economic.get("overall") == "supportive":
        score += 0.5
        reasoning.append("Favorable economic conditions")
    elif economic.get("overall") == "headwind":
        score -= 0.5
        reasoning.append("Challenging economic environment")

    if score >= 7:
        action = "BUY"
    elif score <= 3:
        action = "SELL"
    else:
        action = "HOLD"
    confidence = "high" if score >= 8 or score <= 2 else "medium"

    target = round(current_price * (1 + (score - 5) * 0.1), 2) if current_price else None
    return {
        "action": action,
        "confidence": confidence,
        "score": round(score, 1),
        "reasoning": reasoning or ["Signals are balanced across sentiment, technicals and fundamentals"],
        "timeHorizon": _TIME_HORIZONS.get(risk.get("level"), "medium-term"),
        "targetPrice": target,
        "summary": f"{_SUMMARIES[action]} with {confidence} confidence.",
    }


# ──────────────────────────────────────────────
# Pipeline
# ──────────────────────────────────────────────


def no_stock_data(symbol: str) -> ErrorShape:
    return ErrorShape(
        message="No stock data available",
        details=f"All quote providers failed for {symbol}",
        suggested_actions=[
            "Verify the stock symbol is correct",
            "Try again in a few minutes",
            "Contact support if the issue persists",
        ],
    )


class StockAnalysisPipeline:
    """Fan-out over the provider services, fan-in into one analysis."""

    def __init__(
        self,
        cache: TTLCache,
        market: MarketDataService,
        news: NewsService,
        economic: EconomicIndicatorsService,
        hf: Optional[HuggingFaceClient] = None,
        mock_mode: bool = False,
        budget: float = ANALYSIS_BUDGET_SECONDS,
    ):
        self.cache = cache
        self.market = market
        self.news = news
        self.economic = economic
        self.hf = hf
        self.mock_mode = mock_mode
        self.budget = budget

    async def _technicals(self, sym: str) -> dict[str, Optional[IndicatorSeries]]:
        rsi, macd, sma = await asyncio.gather(
            self.market.get_technical_indicator(sym, TechnicalIndicator.RSI, "daily", 14, allow_mock=False),
            self.market.get_technical_indicator(sym, TechnicalIndicator.MACD, "daily", 26, allow_mock=False),
            self.market.get_technical_indicator(sym, TechnicalIndicator.SMA, "daily", 20, allow_mock=False),
            return_exceptions=True,
        )
        out = {}
        for name, res in (("rsi", rsi), ("macd", macd), ("sma", sma)):
            if isinstance(res, BaseException):
                log.warning("analysis.indicator_failed", indicator=name, error=str(res))
                res = None
            out[name] = res
        return out

    async def _economic_series(self) -> dict[str, Optional[EconomicSeries]]:
        names = list(ECONOMIC_SERIES)
        results = await asyncio.gather(
            *(self.economic.get_series(ECONOMIC_SERIES[n]) for n in names), return_exceptions=True
        )
        return {n: (None if isinstance(r, BaseException) else r) for n, r in zip(names, results)}

    async def _gather(self, sym: str) -> dict[str, Any]:
        """Run every slot under one budget; failed or late slots become None."""
        slots = {
            "quote": self.market.get_quote(sym, allow_mock=self.mock_mode),
            "news": self.news.get_articles(ticker=sym),
            "overview": self.market.get_company_overview(sym, allow_mock=False),
            "technical": self._technicals(sym),
            "economic": self._economic_series(),
            "daily": self.market.get_daily_series(sym),
        }
        tasks = {name: asyncio.ensure_future(coro) for name, coro in slots.items()}
        done, pending = await asyncio.wait(tasks.values(), timeout=self.budget)
        for task in pending:
            task.cancel()

        results: dict[str, Any] = {}
        for name, task in tasks.items():
            if task in done and task.exception() is None:
                results[name] = task.result()
                continue
            reason = "timeout" if task in pending else str(task.exception())
            log.warning("analysis.slot_missing", symbol=sym, slot=name, reason=reason)
            results[name] = None
        return results

    async def analyze(self, symbol: str) -> dict:
        sym = (symbol or "").upper().strip()
        if not sym:
            raise ValidationFailed("Symbol is required")
        key = make_cache_key("analysis", "analyze", sym)
        return await self.cache.read_through("analysis", key, lambda: self._analyze(sym))

    async def _analyze(self, sym: str) -> dict:
        log.info("analysis.start", symbol=sym)
        data = await self._gather(sym)
        quote: Optional[Quote] = data["quote"]
        if quote is None:
            raise TotalUnavailable.from_shape(no_stock_data(sym))

        articles: list[NewsArticle] = data["news"] or []
        overview: Optional[dict] = data["overview"]
        technicals = data["technical"] or {}

        if articles:
            sentiment = await analyze_sentiment_ai(articles, self.hf)
        else:
            sentiment = mock_data.demo_sentiment(sym)
        technical = analyze_technical(technicals) or mock_data.demo_technical(sym)
        fundamental = analyze_fundamental(overview) or mock_data.demo_fundamental(sym)
        economic = analyze_economic(data["economic"] or {}) or mock_data.demo_economic()

        rsi_series = technicals.get("rsi")
        risk = assess_risk(
            sentiment,
            rsi_series.latest("RSI") if rsi_series else None,
            realized_volatility(data["daily"]),
            economic,
            articles,
        )
        recommendation = recommend(sentiment, technical, fundamental, risk, economic, quote.current_price)

        now = utc_now_iso()
        log.info("analysis.complete", symbol=sym, action=recommendation["action"], risk=risk["level"])
        return {
            "symbol": sym,
            "timestamp": now,
            "lastUpdated": now,
            "stockData": format_stock_data(quote),
            "companyInfo": format_company_info(overview) if overview else mock_data.demo_company_info(sym),
            "sentimentAnalysis": sentiment,
            "technicalAnalysis": technical,
            "fundamentalAnalysis": fundamental,
            "economicAnalysis": economic,
            "recentNews": format_news(articles),
            "overallRecommendation": recommendation,
            "riskAssessment": risk,
            "keyMetrics": key_metrics(quote, overview),
        }

    async def quick(self, symbol: str) -> dict:
        """Quote plus an RSI-only technical read."""
        sym = (symbol or "").upper().strip()
        if not sym:
            raise ValidationFailed("Symbol is required")
        try:
            quote = await self.market.get_quote(sym, allow_mock=self.mock_mode)
        except TotalUnavailable:
            raise TotalUnavailable.from_shape(no_stock_data(sym))
        rsi = await self.market.get_technical_indicator(sym, TechnicalIndicator.RSI, "daily", 14, allow_mock=False)
        technical = analyze_technical({"rsi": rsi})
        return {
            "symbol": sym,
            "name": quote.name or mock_data.company_name(sym),
            "price": quote.current_price,
            "change": quote.change,
            "changePercent": quote.change_percent,
            "volume": quote.volume,
            "recommendation": technical["recommendation"] if technical else "hold",
            "technicalSignal": technical["overall"] if technical else "neutral",
            "source": quote.source,
            "timestamp": utc_now_iso(),
        }

    async def trending(self) -> dict:
        slots = await self.market.get_many(TRENDING_SYMBOLS, allow_mock=self.mock_mode)
        stocks = []
        for sym, quote, error in slots:
            row = {"symbol": sym, "name": mock_data.company_name(sym)}
            if quote is None:
                row.update(price=None, change=None, changePercent=None, error="Data unavailable")
            else:
                row.update(
                    price=quote.current_price,
                    change=quote.change,
                    changePercent=quote.change_percent,
                    source=quote.source,
                )
            stocks.append(row)
        return {"stocks": stocks, "lastUpdated": utc_now_iso()}

    async def sentiment(self, symbol: str) -> dict:
        sym = (symbol or "").upper().strip()
        if not sym:
            raise ValidationFailed("Symbol is required")
        articles = await self.news.get_articles(ticker=sym)
        analysis = await analyze_sentiment_ai(articles, self.hf) if articles else mock_data.demo_sentiment(sym)
        return {
            "symbol": sym,
            "sentiment": analysis,
            "articles": format_news(articles),
            "articleCount": len(articles),
            "lastUpdated": utc_now_iso(),
        }

    async def search(self, query: str) -> dict:
        """Alpha Vantage symbol search; popular list when it has no answer."""
        q = (query or "").strip()
        if not q:
            raise ValidationFailed("Search query is required")
        key = make_cache_key("search", "analysis", q.lower())
        matches = None
        if not self.mock_mode:
            matches = await self.cache.read_through("search", key, lambda: self.market.alpha.search_symbols(q))
        if matches:
            return {"results": matches[:10], "query": q, "fallback": False}
        lowered = q.lower()
        results = [s for s in POPULAR_STOCKS if lowered in s["symbol"].lower() or lowered in s["name"].lower()]
        return {
            "results": results,
            "query": q,
            "fallback": True,
            "message": "Showing popular stocks (search API unavailable)",
        }
