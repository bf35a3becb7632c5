"""
FinScope — Error Taxonomy

User-visible failures share one payload shape (``ErrorShape``). Adapter
exceptions never reach this module: they are logged and turned into
``None`` so the fallback chain can continue.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


DEFAULT_SUGGESTED_ACTIONS = [
    "Try again in a few minutes",
    "Contact support if the issue persists",
]


class ErrorShape(BaseModel):
    """Payload surfaced when every upstream (and the mock, if allowed) failed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    error: bool = True
    message: str
    details: str = ""
    suggested_actions: list[str] = Field(default_factory=lambda: list(DEFAULT_SUGGESTED_ACTIONS))
    timestamp: str = Field(default_factory=utc_now_iso)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class FinscopeError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, details: str = "", suggested_actions: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.suggested_actions = suggested_actions

    def to_shape(self) -> ErrorShape:
        kwargs = {"message": self.message, "details": self.details}
        if self.suggested_actions is not None:
            kwargs["suggested_actions"] = self.suggested_actions
        return ErrorShape(**kwargs)


class ValidationFailed(FinscopeError):
    """A required input is absent or malformed."""

    status_code = 400


class TotalUnavailable(FinscopeError):
    """Every upstream failed and mock fallback is disallowed for the endpoint."""

    status_code = 500

    @classmethod
    def from_shape(cls, shape: ErrorShape) -> "TotalUnavailable":
        return cls(shape.message, shape.details, shape.suggested_actions)


class DependencyUnhealthy(FinscopeError):
    """Raised by health probes when a dependency is not answering."""

    status_code = 503
