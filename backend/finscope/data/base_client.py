"""
FinScope — Upstream Client Base

Shared request plumbing for the adapters. Every call opens its own
``httpx.AsyncClient`` with a hard timeout; transport errors, HTTP error
statuses and undecodable bodies are logged as warnings and returned as
``None`` so the caller's fallback chain moves on.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog

log = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
EXTENDED_TIMEOUT = 15.0


class UpstreamClient:
    """Base class for adapters.

    ``transport`` is forwarded to httpx and lets tests plug in an
    ``httpx.MockTransport`` instead of the network.
    """

    name = "upstream"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def _client(self, timeout: float, headers: Optional[dict] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            headers=headers,
            transport=self._transport,
            follow_redirects=True,
        )

    async def _get_json(
        self,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> Optional[Any]:
        try:
            async with self._client(timeout, headers) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning(f"{self.name}.fetch_error", url=url, error=str(exc) or type(exc).__name__)
            return None

    async def _post_json(
        self,
        url: str,
        payload: Any,
        headers: Optional[dict] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> Optional[Any]:
        try:
            async with self._client(timeout, headers) as client:
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning(f"{self.name}.fetch_error", url=url, error=str(exc) or type(exc).__name__)
            return None


def safe_float(val: Any) -> Optional[float]:
    """Coerce upstream strings ("None", "-", "12.5%") to float or None."""
    if val is None:
        return None
    if isinstance(val, (int, float)):
        return float(val)
    text = str(val).strip().rstrip("%")
    if text in ("", ".", "-", "None", "null", "N/A"):
        return None
    try:
        return float(text)
    except ValueError:
        return None


def safe_int(val: Any) -> Optional[int]:
    f = safe_float(val)
    return int(f) if f is not None else None
