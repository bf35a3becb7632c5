"""
FinScope — Financial Planning Routes

Plan generation, change-impact analysis, scenario simulation and goal
tracking. Profiles are sanitized (clamped and defaulted) rather than
rejected. The engine is pure; timestamps are added here.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from finscope.envelope import ok
from finscope.errors import ValidationFailed
from finscope.models import MAX_AMOUNT, MAX_HORIZON_YEARS, CamelModel, Profile, parse_horizon_years
from finscope.services import ServiceContainer, get_services

planning_router = APIRouter()


class PlanRequest(CamelModel):
    profile: Optional[dict] = None


class AnalyzeRequest(CamelModel):
    field: Optional[str] = None
    value: Any = None
    current_profile: Optional[dict] = None
    changes: Optional[dict] = None
    profile: Optional[dict] = None


class SimulateRequest(CamelModel):
    scenarios: Optional[list] = None
    base_profile: Optional[dict] = None


Amount = Annotated[float, Field(ge=0, le=MAX_AMOUNT, allow_inf_nan=False)]


class GoalBody(CamelModel):
    target_amount: Optional[Amount] = None
    timeframe: Any = None


class TrackRequest(CamelModel):
    profile: Optional[dict] = None
    goal: Optional[GoalBody] = None


class TrackDetailedRequest(CamelModel):
    current_savings: Amount = 0.0
    monthly_contribution: Amount = 0.0
    target_amount: Optional[Amount] = None
    timeframe: Any = None
    profile: Optional[dict] = None


def _timeframe(value: Any) -> int:
    """Years from a number or an ``"N years"`` string; at most 100."""
    if value is None or value == "":
        raise ValidationFailed("Timeframe is required")
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value > MAX_HORIZON_YEARS:
            raise ValidationFailed(f"Timeframe must be at most {MAX_HORIZON_YEARS} years")
        return int(value)
    return parse_horizon_years(value)


@planning_router.post("/plan")
async def generate_plan(body: PlanRequest, services: ServiceContainer = Depends(get_services)):
    """Allocation, retirement, emergency fund, health score and projections."""
    if body.profile is None:
        raise ValidationFailed("Profile is required")
    plan = services.planning.generate_plan(Profile.sanitize(body.profile))
    return ok(plan)


@planning_router.post("/analyze")
async def analyze_change(body: AnalyzeRequest, services: ServiceContainer = Depends(get_services)):
    """Either one typed field change or a multi-field diff."""
    if body.field is not None:
        if body.current_profile is None:
            raise ValidationFailed("Field, value, and current profile are required")
        result = services.planning.analyze_change(body.field, body.value, Profile.sanitize(body.current_profile))
    elif body.changes is not None:
        if body.profile is None:
            raise ValidationFailed("Changes and current profile are required")
        result = services.planning.analyze_changes(body.changes, Profile.sanitize(body.profile))
    else:
        raise ValidationFailed("Provide either field/value/currentProfile or changes/profile")
    return ok(result)


@planning_router.post("/simulate")
async def simulate(body: SimulateRequest, services: ServiceContainer = Depends(get_services)):
    if body.base_profile is None:
        raise ValidationFailed("Scenarios and base profile are required")
    return ok(services.planning.simulate(body.scenarios or [], Profile.sanitize(body.base_profile)))


@planning_router.post("/track")
async def track_goal(body: TrackRequest, services: ServiceContainer = Depends(get_services)):
    if body.profile is None or body.goal is None or body.goal.target_amount is None:
        raise ValidationFailed("Profile and goal with target amount are required")
    result = services.planning.track(
        Profile.sanitize(body.profile), body.goal.target_amount, _timeframe(body.goal.timeframe)
    )
    return ok(result)


@planning_router.post("/track-detailed")
async def track_goal_detailed(body: TrackDetailedRequest, services: ServiceContainer = Depends(get_services)):
    """Month-by-month projection with yearly milestones."""
    if body.target_amount is None:
        raise ValidationFailed("Target amount and timeframe are required")
    result = services.planning.track_detailed(
        Profile.sanitize(body.profile),
        body.current_savings,
        body.monthly_contribution,
        body.target_amount,
        _timeframe(body.timeframe),
    )
    return ok(result)
