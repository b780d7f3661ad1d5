"""Monthly recognition usage and spend tracking."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from conversation_pipeline.domain.cost_policy import get_tier
from conversation_pipeline.infrastructure.interfaces.usage_counter import UsageCounter

logger = logging.getLogger(__name__)

RECOMMENDATION_SPEND_RATIO = 0.5
SPEAKER_RECOMMENDATION_LIMIT = 4


class CostLimits(BaseModel, frozen=True):
    """Spend limits applied to the running monthly totals."""

    monthly_cost_limit: float = Field(default=100.0, gt=0)
    alert_threshold: float = Field(default=0.8, gt=0, le=1)
    max_cost_per_request: float = Field(default=5.0, gt=0)


class CostLimitStatus(BaseModel, frozen=True):
    within_limits: bool
    warnings: list[str]
    monthly_usage: float
    monthly_cost: float
    percentage_used: float


def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CostMonitor:
    """
    Tracks usage minutes and spend for the current billing month.

    Totals live in an injected UsageCounter so several processes can share
    them. Counters are keyed by month, so every read or update first follows
    the clock into the current month; a new month starts from zero without
    touching the previous month's keys.
    """

    def __init__(
        self,
        counter: UsageCounter,
        limits: CostLimits | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._counter = counter
        self._limits = limits or CostLimits()
        self._clock = clock
        self._month_key = month_key(clock())

    @property
    def limits(self) -> CostLimits:
        return self._limits

    @property
    def current_month(self) -> str:
        return self._roll_over()

    @property
    def monthly_usage(self) -> float:
        return self._counter.totals(self._roll_over())[0]

    @property
    def monthly_cost(self) -> float:
        return self._counter.totals(self._roll_over())[1]

    def _roll_over(self) -> str:
        now_key = month_key(self._clock())
        if now_key != self._month_key:
            logger.info(
                "Billing month rolled over",
                extra={"previous_month": self._month_key, "month": now_key},
            )
            self._month_key = now_key
        return self._month_key

    def reset(self, key: str | None = None) -> None:
        """Clears the totals of ``key``, or of the current month."""
        self._month_key = key or month_key(self._clock())
        self._counter.reset(self._month_key)
        logger.info("Cost monitor reset", extra={"month": self._month_key})

    def track_usage(self, minutes: float, cost: float) -> None:
        """Adds a usage and cost delta to the running monthly totals."""
        if minutes < 0 or cost < 0:
            raise ValueError("usage and cost deltas must not be negative")

        key = self._roll_over()
        self._counter.add(key, minutes, cost)
        logger.info(
            "Recognition usage tracked",
            extra={"month": key, "minutes": minutes, "cost": cost},
        )

    def check_limits(self) -> CostLimitStatus:
        """Reports alert-threshold warnings and whether the monthly cap holds."""
        usage, cost = self._counter.totals(self._roll_over())
        limit = self._limits.monthly_cost_limit
        percentage_used = cost / limit * 100

        warnings: list[str] = []
        within_limits = True

        if percentage_used >= self._limits.alert_threshold * 100:
            warnings.append(
                f"Monthly cost is at {percentage_used:.1f}% of limit "
                f"({cost:.2f}/{limit:.2f})"
            )
        if cost >= limit:
            warnings.append(f"Monthly cost limit exceeded: {cost:.2f}")
            within_limits = False

        return CostLimitStatus(
            within_limits=within_limits,
            warnings=warnings,
            monthly_usage=round(usage, 2),
            monthly_cost=round(cost, 2),
            percentage_used=round(percentage_used, 1),
        )

    def recommendations(self, current_tier: str) -> list[str]:
        """Suggests cheaper settings once spend passes half the monthly cap."""
        tier = get_tier(current_tier)
        if self.monthly_cost <= self._limits.monthly_cost_limit * RECOMMENDATION_SPEND_RATIO:
            return []

        recommendations: list[str] = []
        if tier.use_enhanced:
            recommendations.append(
                "Consider disabling enhanced models to reduce costs by ~25%"
            )
        if tier.max_speakers > SPEAKER_RECOMMENDATION_LIMIT:
            recommendations.append(
                "Reduce max speakers to 4 or fewer to lower diarization costs"
            )
        if tier.enable_word_time_offsets:
            recommendations.append(
                "Disable word timestamps if not essential (~10% savings)"
            )
        if not tier.enable_data_logging:
            recommendations.append(
                "Enable data logging for 33% cost reduction (if privacy allows)"
            )
        return recommendations
