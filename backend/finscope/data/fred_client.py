"""
FinScope — FRED (Federal Reserve Economic Data) Client

Lightweight wrapper around the FRED observations API.
Free API key: https://fred.stlouisfed.org/docs/api/api_key.html
"""

from __future__ import annotations

from typing import Optional

import httpx

from finscope.data.base_client import UpstreamClient, safe_float
from finscope.models import EconomicSeries, Observation

_BASE_URL = "https://api.stlouisfed.org/fred"


class FREDClient(UpstreamClient):
    """Federal Reserve Economic Data API client."""

    name = "fred"

    # Common series IDs for quick access
    SERIES = {
        "gdp": "GDP",
        "unemployment": "UNRATE",
        "inflation": "CPIAUCSL",
        "federalRate": "FEDFUNDS",
    }

    TITLES = {
        "GDP": "Gross Domestic Product",
        "UNRATE": "Unemployment Rate",
        "CPIAUCSL": "Consumer Price Index for All Urban Consumers",
        "FEDFUNDS": "Federal Funds Effective Rate",
    }

    def __init__(self, api_key: str = "", transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport)
        self._api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def get_series(self, series_id: str, limit: int = 10, sort_order: str = "desc") -> Optional[EconomicSeries]:
        """Fetch the latest observations for a FRED series.

        Missing values (``"."``) are dropped. Returns None when unconfigured
        or when the upstream has no usable rows.
        """
        if not self.is_configured:
            return None

        sid = series_id.upper()
        data = await self._get_json(
            f"{_BASE_URL}/series/observations",
            params={
                "series_id": sid,
                "api_key": self._api_key,
                "file_type": "json",
                "limit": limit,
                "sort_order": sort_order,
            },
        )
        if not data:
            return None

        observations = []
        for obs in data.get("observations") or []:
            value = safe_float(obs.get("value"))
            if value is None or not obs.get("date"):
                continue
            observations.append(Observation(date=obs["date"], value=value))
        if not observations:
            return None

        return EconomicSeries(series_id=sid, title=self.TITLES.get(sid, sid), observations=observations, source="FRED")
