"""
FinScope — Response Envelope

Every JSON response is ``{success, data?, error?, timestamp, ...}``.
"""

from __future__ import annotations

from typing import Any

from finscope.errors import ErrorShape, utc_now_iso


def ok(data: Any = None, **extra: Any) -> dict:
    """Success envelope."""
    body = {"success": True, "data": data, "timestamp": utc_now_iso()}
    body.update(extra)
    return body


def fail(error: str | ErrorShape, **extra: Any) -> dict:
    """Failure envelope. An ``ErrorShape`` is placed under ``data``."""
    body: dict = {"success": False, "timestamp": utc_now_iso()}
    if isinstance(error, ErrorShape):
        body["error"] = error.message
        body["data"] = error.to_dict()
    else:
        body["error"] = error
    body.update(extra)
    return body


def shape(payload: Any) -> dict:
    """Wrap a naked payload unless it already declares ``success``."""
    if isinstance(payload, dict) and "success" in payload:
        return payload
    return ok(payload)
