"""
Cost policy for speech recognition.

Maps a named tier, or explicit feature overrides, to a fully resolved
recognition configuration and prices it. Everything here is a pure function
of its inputs: rates, surcharges and discount bands are module constants.
"""

from typing import Literal

from pydantic import BaseModel, Field

from conversation_pipeline.exceptions import NoTierAvailableError

TierName = Literal["budget", "balanced", "quality", "premium"]
AccuracyPriority = Literal["low", "medium", "high"]

DEFAULT_MODEL = "default"
PREMIUM_MODEL = "latest_long"

BASE_RATE_WITH_LOGGING = 0.016
BASE_RATE_WITHOUT_LOGGING = 0.024

SPEAKER_DIARIZATION_PREMIUM = 0.60
ENHANCED_MODEL_PREMIUM = 0.25
WORD_TIMESTAMPS_PREMIUM = 0.10
PREMIUM_MODEL_PREMIUM = 0.25

FREE_MINUTES_PER_MONTH = 60.0
DAYS_PER_MONTH = 30
WEEKS_PER_MONTH = 4.33

BUDGET_PROBE_MINUTES = 10.0
BALANCED_REFERENCE_MULTIPLIER = 1.6


class CostTier(BaseModel, frozen=True):
    """A named bundle of recognition features with a relative cost."""

    name: str
    description: str
    max_speakers: int
    use_enhanced: bool
    enable_word_time_offsets: bool
    model: str
    enable_data_logging: bool
    estimated_cost_multiplier: float


COST_TIERS: dict[str, CostTier] = {
    "budget": CostTier(
        name="Budget",
        description="Maximum cost savings with acceptable quality",
        max_speakers=2,
        use_enhanced=False,
        enable_word_time_offsets=False,
        model=DEFAULT_MODEL,
        enable_data_logging=True,
        estimated_cost_multiplier=1.0,
    ),
    "balanced": CostTier(
        name="Balanced",
        description="Good balance of cost and features",
        max_speakers=4,
        use_enhanced=False,
        enable_word_time_offsets=False,
        model=DEFAULT_MODEL,
        enable_data_logging=True,
        estimated_cost_multiplier=1.6,
    ),
    "quality": CostTier(
        name="Quality",
        description="Better accuracy with moderate cost increase",
        max_speakers=6,
        use_enhanced=True,
        enable_word_time_offsets=False,
        model=PREMIUM_MODEL,
        enable_data_logging=True,
        estimated_cost_multiplier=2.1,
    ),
    "premium": CostTier(
        name="Premium",
        description="Best features available (highest cost)",
        max_speakers=8,
        use_enhanced=True,
        enable_word_time_offsets=True,
        model=PREMIUM_MODEL,
        enable_data_logging=False,
        estimated_cost_multiplier=3.2,
    ),
}


class VolumeDiscountBand(BaseModel, frozen=True):
    """Half-open range [min_minutes, max_minutes) of monthly usage."""

    min_minutes: float
    max_minutes: float
    rate: float


VOLUME_DISCOUNTS: tuple[VolumeDiscountBand, ...] = (
    VolumeDiscountBand(min_minutes=0, max_minutes=500_000, rate=1.0),
    VolumeDiscountBand(min_minutes=500_000, max_minutes=1_000_000, rate=0.625),
    VolumeDiscountBand(min_minutes=1_000_000, max_minutes=2_000_000, rate=0.5),
    VolumeDiscountBand(min_minutes=2_000_000, max_minutes=float("inf"), rate=0.25),
)


class RecognitionConfig(BaseModel, frozen=True):
    """Resolved recognition feature set for a single request."""

    tier: str
    max_speakers: int = Field(ge=1)
    min_speakers: int = Field(default=1, ge=1)
    use_enhanced: bool = False
    enable_word_time_offsets: bool = False
    model: str = DEFAULT_MODEL
    enable_data_logging: bool = True
    enable_speaker_diarization: bool = True
    enable_automatic_punctuation: bool = True
    alternative_language_codes: list[str] = Field(default_factory=list)


class CostOverrides(BaseModel, frozen=True):
    """Explicit feature toggles layered on top of a base tier."""

    tier: TierName = "balanced"
    max_speakers: int | None = Field(default=None, ge=1)
    use_enhanced: bool | None = None
    enable_word_time_offsets: bool | None = None
    model: str | None = None
    enable_data_logging: bool | None = None


class CostEstimate(BaseModel, frozen=True):
    """Priced breakdown of a recognition request."""

    duration_minutes: float
    effective_rate: float
    base_cost: float
    surcharges: dict[str, float] = Field(default_factory=dict)
    premium_cost: float
    total_cost: float
    currency: str = "USD"
    breakdown: list[str] = Field(default_factory=list)


class TierComparison(BaseModel, frozen=True):
    tier: str
    cost: float
    features: list[str]
    savings: float


class TierRequirements(BaseModel, frozen=True):
    """Constraints used to pick a tier."""

    max_budget: float | None = Field(default=None, ge=0)
    min_speakers: int = Field(default=2, ge=1)
    accuracy_priority: AccuracyPriority = "medium"
    privacy_required: bool = False


class MonthlyProjection(BaseModel, frozen=True):
    daily_cost: float
    weekly_cost: float
    monthly_cost: float
    yearly_projection: float
    free_minutes_used: float
    paid_minutes: float


def get_tier(name: str) -> CostTier:
    """Returns the tier definition for a case-insensitive tier name."""
    try:
        return COST_TIERS[name.strip().lower()]
    except KeyError as e:
        raise ValueError(
            f"Unknown cost tier '{name}', expected one of {sorted(COST_TIERS)}"
        ) from e


def config_for_tier(name: str) -> RecognitionConfig:
    tier = get_tier(name)
    return RecognitionConfig(
        tier=name.strip().lower(),
        max_speakers=tier.max_speakers,
        use_enhanced=tier.use_enhanced,
        enable_word_time_offsets=tier.enable_word_time_offsets,
        model=tier.model,
        enable_data_logging=tier.enable_data_logging,
    )


def volume_discount_multiplier(monthly_usage_minutes: float) -> float:
    """Returns the price multiplier for the month's cumulative usage."""
    for band in VOLUME_DISCOUNTS:
        if band.min_minutes <= monthly_usage_minutes < band.max_minutes:
            return band.rate
    return 1.0


def calculate_cost(
    duration_minutes: float,
    selection: str | RecognitionConfig,
    monthly_usage_minutes: float = 0.0,
) -> CostEstimate:
    """
    Prices a recognition request.

    Every enabled premium feature adds its surcharge against the discounted
    base cost; surcharges never compound on each other.

    Args:
        duration_minutes: Billable audio length in minutes.
        selection: A tier name or an already resolved configuration.
        monthly_usage_minutes: Minutes already used this month, for the
            volume discount band.

    Returns:
        CostEstimate rounded to 4 decimal places.
    """
    if duration_minutes < 0:
        raise ValueError("duration_minutes must not be negative")

    config = config_for_tier(selection) if isinstance(selection, str) else selection

    base_rate = (
        BASE_RATE_WITH_LOGGING
        if config.enable_data_logging
        else BASE_RATE_WITHOUT_LOGGING
    )
    effective_rate = base_rate * volume_discount_multiplier(monthly_usage_minutes)
    base_cost = duration_minutes * effective_rate

    breakdown = [
        f"Base: {duration_minutes:.2f} min x ${effective_rate:.4f} = ${base_cost:.4f}"
    ]
    surcharges: dict[str, float] = {}

    if config.enable_speaker_diarization and config.max_speakers > 2:
        surcharges["diarization"] = base_cost * SPEAKER_DIARIZATION_PREMIUM
        breakdown.append(
            f"Speaker diarization ({config.max_speakers} speakers): "
            f"+${surcharges['diarization']:.4f}"
        )
    if config.use_enhanced:
        surcharges["enhanced_model"] = base_cost * ENHANCED_MODEL_PREMIUM
        breakdown.append(f"Enhanced models: +${surcharges['enhanced_model']:.4f}")
    if config.enable_word_time_offsets:
        surcharges["word_timestamps"] = base_cost * WORD_TIMESTAMPS_PREMIUM
        breakdown.append(f"Word timestamps: +${surcharges['word_timestamps']:.4f}")
    if config.model == PREMIUM_MODEL:
        surcharges["premium_model"] = base_cost * PREMIUM_MODEL_PREMIUM
        breakdown.append(f"Premium model: +${surcharges['premium_model']:.4f}")

    premium_cost = sum(surcharges.values())

    return CostEstimate(
        duration_minutes=round(duration_minutes, 4),
        effective_rate=round(effective_rate, 6),
        base_cost=round(base_cost, 4),
        surcharges={name: round(value, 4) for name, value in surcharges.items()},
        premium_cost=round(premium_cost, 4),
        total_cost=round(base_cost + premium_cost, 4),
        breakdown=breakdown,
    )


def resolve_config(
    selection: str | CostOverrides | None = None,
    monthly_usage_minutes: float = 0.0,
    duration_minutes: float = 0.0,
) -> tuple[RecognitionConfig, CostEstimate]:
    """
    Resolves a tier or override set into a recognition configuration.

    Args:
        selection: Tier name, explicit overrides, or None for the balanced tier.
        monthly_usage_minutes: Minutes already used this month.
        duration_minutes: Expected audio length used for the estimate.

    Returns:
        Tuple of (RecognitionConfig, CostEstimate).
    """
    if selection is None:
        selection = "balanced"
    if isinstance(selection, str):
        config = config_for_tier(selection)
    else:
        base = config_for_tier(selection.tier)
        updates = selection.model_dump(exclude={"tier"}, exclude_none=True)
        config = base.model_copy(update=updates)

    return config, calculate_cost(duration_minutes, config, monthly_usage_minutes)


def tier_features(tier: CostTier) -> list[str]:
    features: list[str] = []
    if tier.max_speakers > 2:
        features.append(f"{tier.max_speakers} speakers")
    if tier.use_enhanced:
        features.append("Enhanced models")
    if tier.enable_word_time_offsets:
        features.append("Word timestamps")
    if tier.model == PREMIUM_MODEL:
        features.append("Premium model")
    if tier.enable_data_logging:
        features.append("Data logging (cheaper)")
    return features


def compare_tiers(
    duration_minutes: float, monthly_usage_minutes: float = 0.0
) -> list[TierComparison]:
    """Prices every tier for the same duration, with savings against premium."""
    premium_cost = calculate_cost(
        duration_minutes, "premium", monthly_usage_minutes
    ).total_cost

    comparisons = []
    for name, tier in COST_TIERS.items():
        cost = calculate_cost(duration_minutes, name, monthly_usage_minutes).total_cost
        comparisons.append(
            TierComparison(
                tier=name,
                cost=cost,
                features=tier_features(tier),
                savings=round(premium_cost - cost, 2),
            )
        )
    return comparisons


def recommend_tier(requirements: TierRequirements) -> str:
    """
    Picks the tier best matching the given constraints.

    Raises:
        NoTierAvailableError: If no tier satisfies the speaker count and
            privacy constraints.
    """
    candidates = [
        (name, tier)
        for name, tier in COST_TIERS.items()
        if requirements.min_speakers <= tier.max_speakers
        and not (requirements.privacy_required and tier.enable_data_logging)
    ]
    if not candidates:
        raise NoTierAvailableError(
            requirements.min_speakers, requirements.privacy_required
        )

    if requirements.accuracy_priority == "high":
        candidates.sort(key=lambda item: -item[1].estimated_cost_multiplier)
    elif requirements.accuracy_priority == "low":
        candidates.sort(key=lambda item: item[1].estimated_cost_multiplier)
    else:
        candidates.sort(
            key=lambda item: abs(
                item[1].estimated_cost_multiplier - BALANCED_REFERENCE_MULTIPLIER
            )
        )

    if requirements.max_budget is not None:
        affordable = [
            (name, tier)
            for name, tier in candidates
            if calculate_cost(BUDGET_PROBE_MINUTES, name).total_cost
            <= requirements.max_budget
        ]
        if affordable:
            candidates = affordable

    return candidates[0][0]


def project_monthly_cost(
    calls_per_day: float, average_duration_minutes: float, tier: str
) -> MonthlyProjection:
    """Projects spend for a usage pattern, applying the monthly free minutes once."""
    total_minutes = calls_per_day * average_duration_minutes * DAYS_PER_MONTH
    free_minutes = min(total_minutes, FREE_MINUTES_PER_MONTH)
    paid_minutes = max(0.0, total_minutes - FREE_MINUTES_PER_MONTH)

    paid_cost = (
        calculate_cost(paid_minutes, tier, total_minutes).total_cost
        if paid_minutes > 0
        else 0.0
    )

    return MonthlyProjection(
        daily_cost=round(paid_cost / DAYS_PER_MONTH, 2),
        weekly_cost=round(paid_cost / WEEKS_PER_MONTH, 2),
        monthly_cost=round(paid_cost, 2),
        yearly_projection=round(paid_cost * 12, 2),
        free_minutes_used=round(free_minutes, 2),
        paid_minutes=round(paid_minutes, 2),
    )


def optimizations_applied(config: RecognitionConfig) -> list[str]:
    optimizations: list[str] = []
    if config.enable_data_logging:
        optimizations.append("Data logging enabled (cheaper pricing)")
    if not config.use_enhanced:
        optimizations.append("Standard model used (cost optimized)")
    if config.max_speakers <= 4:
        optimizations.append(f"Speaker limit: {config.max_speakers} (cost optimized)")
    if not config.enable_word_time_offsets:
        optimizations.append("Word timestamps disabled (cost optimized)")
    if len(config.alternative_language_codes) <= 1:
        optimizations.append("Limited alternative languages (cost optimized)")
    return optimizations


def premium_features_used(config: RecognitionConfig) -> list[str]:
    features: list[str] = []
    if config.enable_speaker_diarization:
        features.append("Speaker Diarization")
    if config.use_enhanced:
        features.append("Enhanced Models")
    if config.enable_word_time_offsets:
        features.append("Word Timestamps")
    if config.model == PREMIUM_MODEL:
        features.append("Premium Model")
    return features
