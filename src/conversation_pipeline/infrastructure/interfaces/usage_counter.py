"""Abstract interface for shared usage/spend counters."""

from abc import ABC, abstractmethod


class UsageCounter(ABC):
    """Atomic accumulators for usage minutes and spend, keyed by month."""

    @abstractmethod
    def add(self, month_key: str, minutes: float, cost: float) -> None:
        """
        Atomically adds a usage and cost delta.

        Args:
            month_key: Billing month in YYYY-MM form.
            minutes: Usage minutes to add.
            cost: Spend to add.
        """

    @abstractmethod
    def totals(self, month_key: str) -> tuple[float, float]:
        """Returns (minutes, cost) accumulated for the month."""

    @abstractmethod
    def reset(self, month_key: str) -> None:
        """Clears the totals for the month."""
