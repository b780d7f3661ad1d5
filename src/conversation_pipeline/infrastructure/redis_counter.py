"""Redis implementation of the UsageCounter interface."""

import redis

from conversation_pipeline.exceptions import UsageCounterError
from conversation_pipeline.infrastructure.interfaces import UsageCounter
from conversation_pipeline.logging import setup_logging

logger = setup_logging()


class RedisUsageCounter(UsageCounter):
    """
    Shared monthly counters stored as Redis floats.

    Each month keeps two keys, ``<prefix>:<month>:minutes`` and
    ``<prefix>:<month>:cost``, updated together in a MULTI/EXEC pipeline.
    """

    def __init__(self, client: redis.Redis, key_prefix: str):
        self._client = client
        self._key_prefix = key_prefix

    def _keys(self, month_key: str) -> tuple[str, str]:
        base = f"{self._key_prefix}:{month_key}"
        return f"{base}:minutes", f"{base}:cost"

    def add(self, month_key: str, minutes: float, cost: float) -> None:
        minutes_key, cost_key = self._keys(month_key)
        try:
            with self._client.pipeline(transaction=True) as pipe:
                pipe.incrbyfloat(minutes_key, minutes)
                pipe.incrbyfloat(cost_key, cost)
                pipe.execute()
        except redis.RedisError as e:
            logger.exception("Redis usage update failed", extra={"key": cost_key})
            raise UsageCounterError(cost_key, "add", cause=e) from e

    def totals(self, month_key: str) -> tuple[float, float]:
        minutes_key, cost_key = self._keys(month_key)
        try:
            minutes, cost = self._client.mget(minutes_key, cost_key)
        except redis.RedisError as e:
            logger.exception("Redis usage read failed", extra={"key": cost_key})
            raise UsageCounterError(cost_key, "get", cause=e) from e
        return float(minutes or 0.0), float(cost or 0.0)

    def reset(self, month_key: str) -> None:
        minutes_key, cost_key = self._keys(month_key)
        try:
            self._client.delete(minutes_key, cost_key)
            logger.info("Usage counters reset", extra={"month": month_key})
        except redis.RedisError as e:
            logger.exception("Redis usage reset failed", extra={"key": cost_key})
            raise UsageCounterError(cost_key, "reset", cause=e) from e
