from pydantic import BaseModel

from conversation_pipeline.domain.cost_monitor import CostLimitStatus
from conversation_pipeline.domain.cost_policy import CostEstimate, CostOverrides


class ProcessingStartRequest(BaseModel):
    """Optional tier selection for a processing run."""

    tier: str | None = None
    overrides: CostOverrides | None = None


class ProcessingAccepted(BaseModel):
    conversation_id: str
    status: str = "accepted"


class TierRecommendation(BaseModel):
    tier: str
    features: list[str]
    reference_estimate: CostEstimate


class CostStatusResponse(BaseModel):
    """Current month's spend against limits, with downgrade suggestions."""

    month: str
    tier: str
    limits: CostLimitStatus
    recommendations: list[str]
