"""
FinScope — Data Models

Pydantic models for every normalized upstream record and for the planning
profile. Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from finscope.errors import utc_now_iso


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


# ──────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class RiskTolerance(str, Enum):
    CONSERVATIVE = "Conservative"
    MODERATE = "Moderate"
    AGGRESSIVE = "Aggressive"


class InvestmentGoal(str, Enum):
    RETIREMENT = "Retirement"
    HOUSE = "House"
    EDUCATION = "Education"
    EMERGENCY_FUND = "EmergencyFund"
    WEALTH_BUILDING = "WealthBuilding"


class TechnicalIndicator(str, Enum):
    RSI = "RSI"
    MACD = "MACD"
    SMA = "SMA"
    EMA = "EMA"
    BBANDS = "BBANDS"
    STOCH = "STOCH"
    ADX = "ADX"


# ──────────────────────────────────────────────
# Market Data
# ──────────────────────────────────────────────


class PriceRange(CamelModel):
    low: Optional[float] = None
    high: Optional[float] = None


class Quote(CamelModel):
    """Normalized equity/index quote. ``source`` names the upstream."""

    symbol: str
    name: str = ""
    currency: str = "USD"
    exchange: str = ""
    current_price: float
    previous_close: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: Optional[int] = None
    day_range: PriceRange = Field(default_factory=PriceRange)
    fifty_two_week_range: PriceRange = Field(default_factory=PriceRange)
    market_cap: Optional[float] = None
    market_state: str = "UNKNOWN"
    timestamp: str = Field(default_factory=utc_now_iso)
    source: str

    @classmethod
    def build(cls, *, current_price: float, previous_close: float, **fields: Any) -> "Quote":
        """Derive change figures from price and previous close."""
        change = current_price - previous_close
        change_percent = (change / previous_close * 100) if previous_close else 0.0
        return cls(
            current_price=current_price,
            previous_close=previous_close,
            change=round(change, 4),
            change_percent=round(change_percent, 4),
            **fields,
        )

    @property
    def is_demo(self) -> bool:
        return self.source == "Demo"


class PriceBar(CamelModel):
    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: int = 0


class PriceSeries(CamelModel):
    """OHLCV bars, newest first."""

    symbol: str
    interval: str
    bars: list[PriceBar] = Field(default_factory=list)
    last_refreshed: Optional[str] = None
    source: str


class IndicatorSeries(CamelModel):
    """Technical indicator values keyed by date, newest first."""

    symbol: str
    indicator: TechnicalIndicator
    interval: str = "daily"
    time_period: Optional[int] = None
    values: list[dict[str, Any]] = Field(default_factory=list)
    source: str

    def latest(self, field_name: Optional[str] = None) -> Optional[float]:
        """Latest value of ``field_name`` (defaults to the indicator name)."""
        if not self.values:
            return None
        row = max(self.values, key=lambda v: v.get("date", ""))
        key = field_name or self.indicator.value
        value = row.get(key)
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None


class SymbolMatch(CamelModel):
    symbol: str
    name: str
    exchange: str = ""
    type: str = "Equity"
    region: str = ""
    currency: str = ""
    sector: str = ""
    logo: Optional[str] = None
    match_score: Optional[float] = None


# ──────────────────────────────────────────────
# Economic Data
# ──────────────────────────────────────────────


class Observation(CamelModel):
    date: str
    value: float


class EconomicSeries(CamelModel):
    """Economic time series; observations sorted newest first."""

    series_id: str
    title: str = ""
    observations: list[Observation] = Field(default_factory=list)
    source: str = "FRED"

    @field_validator("observations")
    @classmethod
    def _newest_first(cls, v: list[Observation]) -> list[Observation]:
        dedup: dict[str, Observation] = {}
        for obs in v:
            dedup.setdefault(obs.date, obs)
        return sorted(dedup.values(), key=lambda o: o.date, reverse=True)

    @property
    def is_empty(self) -> bool:
        return not self.observations

    @property
    def latest(self) -> Optional[Observation]:
        return self.observations[0] if self.observations else None

    @property
    def previous(self) -> Optional[Observation]:
        return self.observations[1] if len(self.observations) > 1 else None


# ──────────────────────────────────────────────
# News
# ──────────────────────────────────────────────


class NewsArticle(CamelModel):
    title: str
    summary: str = ""
    source: str = ""
    published_at: str = ""
    sentiment: Sentiment = Sentiment.NEUTRAL
    sentiment_score: Optional[float] = None
    url: str = ""
    relevance_score: float = Field(default=0.5, ge=0.0, le=1.0)
    category: str = "general"
    tickers: list[str] = Field(default_factory=list)


# ──────────────────────────────────────────────
# Company Filings
# ──────────────────────────────────────────────


class Company(CamelModel):
    cik: str
    ticker: str
    name: str
    exchange: Optional[str] = None

    @field_validator("cik", mode="before")
    @classmethod
    def _zero_pad(cls, v: Any) -> str:
        return str(v).strip().zfill(10)


class Filing(CamelModel):
    accession_number: str
    form: str
    filing_date: str
    report_date: str = ""
    primary_document: str = ""
    size: int = 0
    is_xbrl: bool = Field(default=False, alias="isXBRL")
    url: str = ""
    description: str = ""


class FactValue(CamelModel):
    value: float
    unit: str
    end_date: str
    start_date: Optional[str] = None
    form: str = ""
    filed: str = ""


# ──────────────────────────────────────────────
# Planning Profile
# ──────────────────────────────────────────────


_HORIZON_RE = re.compile(r"^\s*(\d+)")

DEFAULT_AGE = 25
DEFAULT_INCOME = 50000.0
DEFAULT_MONTHLY_EXPENSES = 3000.0
DEFAULT_MONTHLY_SAVINGS = 500.0
DEFAULT_HORIZON_YEARS = 30
MAX_HORIZON_YEARS = 100
MAX_AMOUNT = 1e12


def _as_float(value: Any, default: float) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(f):
        return default
    return f


def _amount(value: Any, default: float) -> float:
    return min(MAX_AMOUNT, max(0.0, _as_float(value, default)))


def parse_horizon_years(value: Any) -> int:
    """``"30 years"`` → 30; unparseable input → 30; capped at 100 years."""
    if isinstance(value, (int, float)):
        years = int(value) if math.isfinite(value) else 0
    else:
        match = _HORIZON_RE.match(str(value or ""))
        years = int(match.group(1)) if match else 0
    if years <= 0:
        return DEFAULT_HORIZON_YEARS
    return min(years, MAX_HORIZON_YEARS)


_GOAL_ALIASES = {
    "emergency fund": InvestmentGoal.EMERGENCY_FUND,
    "emergencyfund": InvestmentGoal.EMERGENCY_FUND,
    "wealth building": InvestmentGoal.WEALTH_BUILDING,
    "wealthbuilding": InvestmentGoal.WEALTH_BUILDING,
    "retirement": InvestmentGoal.RETIREMENT,
    "house": InvestmentGoal.HOUSE,
    "education": InvestmentGoal.EDUCATION,
}


class Profile(CamelModel):
    """Planning input. Use ``Profile.sanitize`` for untrusted payloads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    age: int = Field(default=DEFAULT_AGE, ge=18, le=100)
    income: float = Field(default=DEFAULT_INCOME, ge=0)
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE
    investment_goal: InvestmentGoal = InvestmentGoal.RETIREMENT
    time_horizon: str = f"{DEFAULT_HORIZON_YEARS} years"
    current_savings: float = Field(default=0.0, ge=0)
    monthly_expenses: float = Field(default=DEFAULT_MONTHLY_EXPENSES, ge=0)
    monthly_savings: float = Field(default=DEFAULT_MONTHLY_SAVINGS, ge=0)
    target_home_price: Optional[float] = Field(default=None, ge=0)

    @property
    def years(self) -> int:
        return parse_horizon_years(self.time_horizon)

    @classmethod
    def sanitize(cls, raw: Optional[dict]) -> "Profile":
        """Clamp and default every field instead of rejecting the payload."""
        raw = raw or {}

        def pick(snake: str, camel: str, default: Any = None) -> Any:
            if camel in raw:
                return raw[camel]
            return raw.get(snake, default)

        age = int(_as_float(pick("age", "age"), DEFAULT_AGE))
        income = _amount(pick("income", "income"), DEFAULT_INCOME)

        risk_raw = pick("risk_tolerance", "riskTolerance")
        try:
            risk = RiskTolerance(risk_raw)
        except ValueError:
            risk = RiskTolerance.MODERATE

        goal_raw = pick("investment_goal", "investmentGoal")
        if isinstance(goal_raw, InvestmentGoal):
            goal = goal_raw
        else:
            goal = _GOAL_ALIASES.get(str(goal_raw or "").strip().lower(), InvestmentGoal.RETIREMENT)

        horizon_raw = pick("time_horizon", "timeHorizon")
        horizon = f"{parse_horizon_years(horizon_raw)} years"

        home_price = pick("target_home_price", "targetHomePrice")
        home_price = _amount(home_price, 0.0) if home_price is not None else None

        return cls(
            age=max(18, min(100, age)),
            income=income,
            risk_tolerance=risk,
            investment_goal=goal,
            time_horizon=horizon,
            current_savings=_amount(pick("current_savings", "currentSavings"), 0.0),
            monthly_expenses=_amount(pick("monthly_expenses", "monthlyExpenses"), DEFAULT_MONTHLY_EXPENSES),
            monthly_savings=_amount(pick("monthly_savings", "monthlySavings"), DEFAULT_MONTHLY_SAVINGS),
            target_home_price=home_price,
        )

    def with_changes(self, changes: dict) -> "Profile":
        """New sanitized profile with ``changes`` (camel or snake keys) applied."""
        merged = self.to_dict()
        for key, value in changes.items():
            merged[to_camel(key) if "_" in key else key] = value
        return Profile.sanitize(merged)
