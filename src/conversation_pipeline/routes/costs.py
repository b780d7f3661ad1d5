"""Recognition cost planning and monitoring endpoints."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Query

from conversation_pipeline.config import AppConfig
from conversation_pipeline.dependencies import get_config, get_cost_monitor
from conversation_pipeline.domain.cost_monitor import CostMonitor
from conversation_pipeline.domain.cost_policy import (
    BUDGET_PROBE_MINUTES,
    MonthlyProjection,
    TierComparison,
    TierRequirements,
    calculate_cost,
    compare_tiers,
    get_tier,
    project_monthly_cost,
    recommend_tier,
    tier_features,
)
from conversation_pipeline.exceptions import NoTierAvailableError
from conversation_pipeline.response_models import CostStatusResponse, TierRecommendation

router = APIRouter(prefix="/costs", tags=["costs"])

ConfigDep = Annotated[AppConfig, Depends(get_config)]
MonitorDep = Annotated[CostMonitor, Depends(get_cost_monitor)]


@router.get("/tiers", response_model=List[TierComparison])
def list_tiers(
    duration_minutes: Annotated[float, Query(ge=0)] = BUDGET_PROBE_MINUTES,
    monthly_usage_minutes: Annotated[float, Query(ge=0)] = 0.0,
):
    """Prices every tier for the same audio length."""
    return compare_tiers(duration_minutes, monthly_usage_minutes)


@router.post("/recommendation", response_model=TierRecommendation)
def recommend(requirements: TierRequirements):
    """Recommends the tier that best fits the given constraints."""
    try:
        name = recommend_tier(requirements)
    except NoTierAvailableError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return TierRecommendation(
        tier=name,
        features=tier_features(get_tier(name)),
        reference_estimate=calculate_cost(BUDGET_PROBE_MINUTES, name),
    )


@router.get("/projection", response_model=MonthlyProjection)
def projection(
    calls_per_day: Annotated[float, Query(ge=0)],
    average_duration_minutes: Annotated[float, Query(ge=0)],
    tier: str = "balanced",
):
    """Projects monthly spend for a call volume."""
    try:
        return project_monthly_cost(calls_per_day, average_duration_minutes, tier)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/status", response_model=CostStatusResponse)
def cost_status(config: ConfigDep, monitor: MonitorDep, tier: str | None = None):
    """Reports this month's spend against limits and downgrade suggestions."""
    current_tier = tier or config.cost.default_tier
    try:
        recommendations = monitor.recommendations(current_tier)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return CostStatusResponse(
        month=monitor.current_month,
        tier=current_tier,
        limits=monitor.check_limits(),
        recommendations=recommendations,
    )
