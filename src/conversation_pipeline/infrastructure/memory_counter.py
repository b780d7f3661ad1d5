"""Process-local implementation of the UsageCounter interface."""

import threading

from conversation_pipeline.infrastructure.interfaces import UsageCounter


class InMemoryUsageCounter(UsageCounter):
    """Lock-guarded counters for single-process deployments and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._totals: dict[str, tuple[float, float]] = {}

    def add(self, month_key: str, minutes: float, cost: float) -> None:
        with self._lock:
            current_minutes, current_cost = self._totals.get(month_key, (0.0, 0.0))
            self._totals[month_key] = (current_minutes + minutes, current_cost + cost)

    def totals(self, month_key: str) -> tuple[float, float]:
        with self._lock:
            return self._totals.get(month_key, (0.0, 0.0))

    def reset(self, month_key: str) -> None:
        with self._lock:
            self._totals.pop(month_key, None)
