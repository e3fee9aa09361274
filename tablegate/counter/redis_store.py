from __future__ import annotations

import logging

from redis import Redis
from redis.exceptions import RedisError

from ..errors import CounterError
from .base import UsageCounter

logger = logging.getLogger(__name__)


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisCounterStore:
    """
    Usage counter kept in Redis: one hash per date, one field per hour.

    Increments use HINCRBY, which Redis applies atomically, so any number of
    processes can share the counter without losing updates.
    """

    def __init__(self, redis: Redis, prefix: str = "tablegate:stats") -> None:
        self.redis = redis
        self.prefix = prefix.rstrip(":")

    def _key(self, day: str) -> str:
        return f"{self.prefix}:{day}"

    def load(self) -> UsageCounter:
        result: UsageCounter = {}
        try:
            for key in self.redis.scan_iter(match=f"{self.prefix}:*"):
                day = _decode(key)[len(self.prefix) + 1:]
                hours = self.redis.hgetall(key)
                result[day] = {_decode(h): int(c) for h, c in hours.items()}
        except RedisError as exc:
            raise CounterError(f"Failed to read usage counter from Redis: {exc}") from exc
        return result

    def merge(self, increments: UsageCounter) -> None:
        if not increments:
            return
        try:
            pipe = self.redis.pipeline()
            for day, hours in increments.items():
                for hour, count in hours.items():
                    pipe.hincrby(self._key(day), hour, int(count))
            pipe.execute()
        except RedisError as exc:
            raise CounterError(f"Failed to persist usage counter to Redis: {exc}") from exc

    def close(self) -> None:
        self.redis.close()
