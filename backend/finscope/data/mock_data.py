"""
FinScope — Synthetic Data Generator

Deterministic payloads shaped like every provider result. Randomness is
seeded from the input (symbol, series id) so repeated calls agree. Every
record is tagged ``source="Demo"`` or carries a ``note`` so callers can tell
demo data apart.
"""

from __future__ import annotations

import random
import zlib
from datetime import datetime, timedelta, timezone
from typing import Optional

from finscope.models import (
    EconomicSeries,
    FactValue,
    Filing,
    IndicatorSeries,
    NewsArticle,
    Observation,
    PriceBar,
    PriceRange,
    PriceSeries,
    Quote,
    Sentiment,
    TechnicalIndicator,
)

DEMO_SOURCE = "Demo"
DEMO_NOTE = "This is mock data for demonstration purposes"

COMPANY_NAMES = {
    "AAPL": "Apple Inc.",
    "MSFT": "Microsoft Corporation",
    "GOOGL": "Alphabet Inc.",
    "AMZN": "Amazon.com Inc.",
    "TSLA": "Tesla Inc.",
    "META": "Meta Platforms Inc.",
    "NVDA": "NVIDIA Corporation",
    "NFLX": "Netflix Inc.",
    "JPM": "JPMorgan Chase & Co.",
    "RELIANCE": "Reliance Industries Ltd.",
    "TCS": "Tata Consultancy Services Ltd.",
    "HDFCBANK": "HDFC Bank Ltd.",
    "INFY": "Infosys Ltd.",
}

_SECTORS = {
    "AAPL": "Technology",
    "MSFT": "Technology",
    "GOOGL": "Communication Services",
    "AMZN": "Consumer Cyclical",
    "TSLA": "Consumer Cyclical",
    "META": "Communication Services",
    "NVDA": "Technology",
    "NFLX": "Communication Services",
    "JPM": "Financial Services",
}


def company_name(symbol: str) -> str:
    """Display name for a ticker, falling back to ``"<SYM> Corporation"``."""
    base = symbol.upper().split(".")[0]
    return COMPANY_NAMES.get(base, f"{base} Corporation")


def _rng(*parts: str) -> random.Random:
    seed = zlib.crc32(":".join(p.upper() for p in parts).encode())
    return random.Random(seed)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────
# Market Data
# ──────────────────────────────────────────────


def mock_quote(symbol: str, exchange: str = "", currency: str = "USD") -> Quote:
    r = _rng("quote", symbol)
    base = round(r.uniform(50, 500), 2)
    previous = round(base * (1 + r.uniform(-0.03, 0.03)), 2)
    low = round(min(base, previous) * (1 - r.uniform(0.001, 0.02)), 2)
    high = round(max(base, previous) * (1 + r.uniform(0.001, 0.02)), 2)
    return Quote.build(
        symbol=symbol.upper(),
        name=company_name(symbol),
        currency=currency,
        exchange=exchange or ("NSE" if symbol.upper().endswith(".NS") else "NASDAQ"),
        current_price=base,
        previous_close=previous,
        volume=r.randint(1_000_000, 50_000_000),
        day_range=PriceRange(low=low, high=high),
        fifty_two_week_range=PriceRange(low=round(base * 0.7, 2), high=round(base * 1.3, 2)),
        market_cap=round(base * r.randint(1_000_000_000, 16_000_000_000), 0),
        market_state="CLOSED",
        source=DEMO_SOURCE,
    )


def mock_price_series(symbol: str, interval: str = "daily", points: int = 30) -> PriceSeries:
    r = _rng("series", symbol, interval)
    step = {
        "1min": timedelta(minutes=1),
        "5min": timedelta(minutes=5),
        "15min": timedelta(minutes=15),
        "30min": timedelta(minutes=30),
        "60min": timedelta(hours=1),
    }.get(interval, timedelta(days=1))
    anchor = _now().replace(second=0, microsecond=0)
    price = mock_quote(symbol).current_price
    bars = []
    for i in range(points):
        open_ = price * (1 + r.uniform(-0.01, 0.01))
        close = price
        bars.append(
            PriceBar(
                timestamp=(anchor - step * i).strftime("%Y-%m-%d %H:%M:%S" if step < timedelta(days=1) else "%Y-%m-%d"),
                open=round(open_, 2),
                high=round(max(open_, close) * (1 + r.uniform(0, 0.01)), 2),
                low=round(min(open_, close) * (1 - r.uniform(0, 0.01)), 2),
                close=round(close, 2),
                volume=r.randint(100_000, 5_000_000),
            )
        )
        price = open_
    return PriceSeries(
        symbol=symbol.upper(),
        interval=interval,
        bars=bars,
        last_refreshed=bars[0].timestamp if bars else None,
        source=DEMO_SOURCE,
    )


def mock_indicator(
    symbol: str,
    indicator: TechnicalIndicator,
    interval: str = "daily",
    time_period: Optional[int] = None,
    points: int = 10,
) -> IndicatorSeries:
    r = _rng("indicator", symbol, indicator.value)
    price = mock_quote(symbol).current_price
    today = _now().date()
    values = []
    for i in range(points):
        day = (today - timedelta(days=i)).isoformat()
        if indicator == TechnicalIndicator.RSI:
            row = {"RSI": f"{r.uniform(35, 65):.4f}"}
        elif indicator == TechnicalIndicator.MACD:
            macd = r.uniform(-2, 2)
            signal = macd + r.uniform(-0.5, 0.5)
            row = {"MACD": f"{macd:.4f}", "MACD_Signal": f"{signal:.4f}", "MACD_Hist": f"{macd - signal:.4f}"}
        elif indicator == TechnicalIndicator.BBANDS:
            row = {
                "Real Upper Band": f"{price * 1.05:.4f}",
                "Real Middle Band": f"{price:.4f}",
                "Real Lower Band": f"{price * 0.95:.4f}",
            }
        elif indicator == TechnicalIndicator.STOCH:
            row = {"SlowK": f"{r.uniform(20, 80):.4f}", "SlowD": f"{r.uniform(20, 80):.4f}"}
        elif indicator == TechnicalIndicator.ADX:
            row = {"ADX": f"{r.uniform(10, 40):.4f}"}
        else:
            row = {indicator.value: f"{price * r.uniform(0.95, 1.05):.4f}"}
        row["date"] = day
        values.append(row)
    return IndicatorSeries(
        symbol=symbol.upper(),
        indicator=indicator,
        interval=interval,
        time_period=time_period,
        values=values,
        source=DEMO_SOURCE,
    )


def mock_overview(symbol: str) -> dict:
    r = _rng("overview", symbol)
    base = symbol.upper()
    return {
        "Symbol": base,
        "Name": company_name(base),
        "Description": f"{company_name(base)} is a publicly traded company.",
        "Exchange": "NASDAQ",
        "Currency": "USD",
        "Sector": _SECTORS.get(base, "Technology"),
        "Industry": "Diversified",
        "MarketCapitalization": str(r.randint(50, 3000) * 1_000_000_000),
        "PERatio": f"{r.uniform(12, 35):.2f}",
        "PEGRatio": f"{r.uniform(0.8, 2.5):.2f}",
        "PriceToBookRatio": f"{r.uniform(1.5, 12):.2f}",
        "DividendYield": f"{r.uniform(0, 0.03):.4f}",
        "ProfitMargin": f"{r.uniform(0.05, 0.3):.4f}",
        "DebtToEquityRatio": f"{r.uniform(0.2, 2.0):.2f}",
        "Beta": f"{r.uniform(0.8, 1.6):.2f}",
        "52WeekHigh": f"{r.uniform(150, 400):.2f}",
        "52WeekLow": f"{r.uniform(80, 150):.2f}",
        "source": DEMO_SOURCE,
    }


# ──────────────────────────────────────────────
# Economic Data
# ──────────────────────────────────────────────


_MOCK_SERIES = {
    "GDP": ("Gross Domestic Product", [27000.0, 26900.0, 26800.0], 90),
    "UNRATE": ("Unemployment Rate", [4.1, 4.0, 4.2], 30),
    "CPIAUCSL": ("Consumer Price Index for All Urban Consumers", [310.3, 309.7, 309.1], 30),
    "FEDFUNDS": ("Federal Funds Effective Rate", [5.25, 5.25, 5.50], 30),
}

FOREX_PAIRS = {
    "USDINR=X": ("USD/INR", 83.12),
    "EURUSD=X": ("EUR/USD", 1.0856),
    "GBPUSD=X": ("GBP/USD", 1.2645),
    "JPYUSD=X": ("JPY/USD", 0.0067),
}


def mock_economic_series(series_id: str) -> EconomicSeries:
    title, values, spacing = _MOCK_SERIES.get(series_id.upper(), (series_id.upper(), [100.0, 99.5, 99.0], 30))
    today = _now().date().replace(day=1)
    observations = [
        Observation(date=(today - timedelta(days=spacing * i)).isoformat(), value=v)
        for i, v in enumerate(values)
    ]
    return EconomicSeries(series_id=series_id.upper(), title=title, observations=observations, source=DEMO_SOURCE)


def mock_forex_rate(pair: str) -> dict:
    label, rate = FOREX_PAIRS.get(pair, (pair, 1.0))
    return {
        "pair": label,
        "symbol": pair,
        "rate": rate,
        "change": 0.0,
        "changePercent": 0.0,
        "timestamp": _now().isoformat(),
        "source": DEMO_SOURCE,
    }


# ──────────────────────────────────────────────
# News
# ──────────────────────────────────────────────


_STOCK_HEADLINES = [
    ("{name} Reports Strong Quarterly Earnings", "{name} beat analyst expectations with robust revenue growth.", Sentiment.POSITIVE),
    ("Analysts Upgrade {sym} Price Target", "Several analysts raised their price targets citing strong fundamentals.", Sentiment.POSITIVE),
    ("{name} Announces New Product Line", "The company unveiled new products expected to drive future growth.", Sentiment.POSITIVE),
    ("{sym} Faces Regulatory Scrutiny", "Regulators are reviewing recent business practices at {name}.", Sentiment.NEGATIVE),
    ("{sym} Shares Trade Flat Ahead of Fed Decision", "Investors remain cautious ahead of the central bank announcement.", Sentiment.NEUTRAL),
]

_GENERAL_HEADLINES = [
    ("Federal Reserve Holds Interest Rates Steady", "The Fed kept rates unchanged, signaling patience on future cuts.", Sentiment.NEUTRAL, "monetary-policy"),
    ("Tech Stocks Rally on AI Optimism", "Technology shares climbed as investors bet on artificial intelligence growth.", Sentiment.POSITIVE, "markets"),
    ("Global Supply Chain Pressures Ease", "Shipping costs and delivery times continued to normalize this quarter.", Sentiment.POSITIVE, "economy"),
    ("Cryptocurrency Markets See Increased Volatility", "Bitcoin and other digital assets swung sharply amid regulatory news.", Sentiment.NEGATIVE, "crypto"),
    ("Energy Prices Climb on Production Cuts", "Oil prices rose after major producers announced output reductions.", Sentiment.NEUTRAL, "commodities"),
]


def mock_stock_news(symbol: str) -> list[NewsArticle]:
    sym = symbol.upper()
    name = company_name(sym)
    now = _now()
    return [
        NewsArticle(
            title=title.format(name=name, sym=sym),
            summary=summary.format(name=name, sym=sym),
            source=DEMO_SOURCE,
            published_at=(now - timedelta(hours=4 * i + 1)).isoformat(),
            sentiment=sentiment,
            url=f"https://example.com/news/{sym.lower()}-{i + 1}",
            relevance_score=round(0.9 - i * 0.1, 2),
            category="earnings" if i == 0 else "markets",
            tickers=[sym],
        )
        for i, (title, summary, sentiment) in enumerate(_STOCK_HEADLINES)
    ]


def mock_general_news(region: str = "global") -> list[NewsArticle]:
    now = _now()
    return [
        NewsArticle(
            title=title,
            summary=summary,
            source=DEMO_SOURCE,
            published_at=(now - timedelta(hours=2 * i + 1)).isoformat(),
            sentiment=sentiment,
            url=f"https://example.com/news/{region}-{i + 1}",
            relevance_score=0.8,
            category=category,
        )
        for i, (title, summary, sentiment, category) in enumerate(_GENERAL_HEADLINES)
    ]


# ──────────────────────────────────────────────
# Company Filings
# ──────────────────────────────────────────────


_MOCK_FORMS = ["10-K", "10-Q", "8-K", "DEF 14A"]


def mock_filings(ticker: str, limit: int = 10) -> list[Filing]:
    today = _now().date()
    filings = []
    for i in range(limit):
        filed = today - timedelta(days=30 * i)
        accession = f"0000000000-{filed.strftime('%y')}-{i + 1:06d}"
        filings.append(
            Filing(
                accession_number=accession,
                form=_MOCK_FORMS[i % len(_MOCK_FORMS)],
                filing_date=filed.isoformat(),
                report_date=(filed - timedelta(days=15)).isoformat(),
                primary_document=f"{ticker.lower()}-{filed.strftime('%Y%m%d')}.htm",
                size=100_000 + i * 1_000,
                is_xbrl=i % 2 == 0,
                url="",
                description=f"{DEMO_NOTE} for {ticker.upper()}",
            )
        )
    return filings


def mock_company_facts(ticker: str) -> dict[str, FactValue]:
    r = _rng("facts", ticker)
    end = _now().date().replace(month=12, day=31) - timedelta(days=365)
    start = end.replace(month=1, day=1)

    def fact(lo: int, hi: int) -> FactValue:
        return FactValue(
            value=float(r.randint(lo, hi) * 1_000_000),
            unit="USD",
            end_date=end.isoformat(),
            start_date=start.isoformat(),
            form="10-K",
            filed=(end + timedelta(days=45)).isoformat(),
        )

    assets = fact(50_000, 400_000)
    liabilities = FactValue(**{**assets.model_dump(), "value": round(assets.value * 0.6, 0)})
    equity = FactValue(**{**assets.model_dump(), "value": assets.value - liabilities.value})
    return {
        "revenue": fact(10_000, 400_000),
        "netIncome": fact(1_000, 100_000),
        "totalAssets": assets,
        "totalLiabilities": liabilities,
        "stockholdersEquity": equity,
    }


# ──────────────────────────────────────────────
# Stock-Analysis Demo Sub-Results
# ──────────────────────────────────────────────


_DEMO_SENTIMENT = {
    "AAPL": ("positive", 65, 25, 10),
    "MSFT": ("positive", 70, 20, 10),
    "GOOGL": ("positive", 60, 30, 10),
    "AMZN": ("neutral", 45, 40, 15),
    "TSLA": ("positive", 55, 25, 20),
}


def demo_sentiment(symbol: str) -> dict:
    overall, pos, neu, neg = _DEMO_SENTIMENT.get(symbol.upper(), ("neutral", 40, 40, 20))
    return {
        "overall": overall,
        "score": round((pos - neg) / 100, 2),
        "confidence": "medium",
        "reasoning": f"Demo sentiment: {pos}% positive, {neg}% negative coverage",
        "breakdown": {"positive": pos, "neutral": neu, "negative": neg},
        "recentTrend": "stable",
        "method": "demo",
        "source": DEMO_SOURCE,
    }


def demo_technical(symbol: str) -> dict:
    r = _rng("technical", symbol)
    rsi = round(r.uniform(40, 60), 2)
    return {
        "overall": "neutral",
        "signal": "hold",
        "recommendation": "hold",
        "confidence": "low",
        "indicators": {
            "rsi": {"value": rsi, "signal": "neutral", "description": "Demo RSI in neutral territory"},
        },
        "buySignals": 0,
        "sellSignals": 0,
        "reasoning": "Technical data unavailable; showing neutral demo indicators",
        "source": DEMO_SOURCE,
    }


def demo_fundamental(symbol: str) -> dict:
    return {
        "overall": "neutral",
        "confidence": "low",
        "metrics": {},
        "analysis": [],
        "reasoning": "Fundamental data unavailable; showing neutral demo assessment",
        "source": DEMO_SOURCE,
    }


def demo_company_info(symbol: str) -> dict:
    base = symbol.upper()
    return {
        "name": company_name(base),
        "sector": _SECTORS.get(base, "Unknown"),
        "industry": "Unknown",
        "description": f"Company profile for {base} is unavailable.",
        "marketCap": None,
        "source": DEMO_SOURCE,
    }


def demo_economic() -> dict:
    return {
        "overall": "neutral",
        "factors": {"gdpTrend": "stable", "inflationLevel": "moderate", "unemploymentTrend": "stable"},
        "impact": "Economic data unavailable; assuming a neutral backdrop",
        "source": DEMO_SOURCE,
    }
