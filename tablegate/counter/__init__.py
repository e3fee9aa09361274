from __future__ import annotations

from redis import Redis

from ..config import CounterConfig
from .base import CounterStore, UsageCounter, date_key, hour_key
from .file_store import JsonFileCounterStore
from .recorder import RequestCounter
from .redis_store import RedisCounterStore


def make_counter_store(config: CounterConfig) -> CounterStore:
    if config.backend == "redis":
        return RedisCounterStore(Redis.from_url(config.redis_url), prefix=config.redis_prefix)
    return JsonFileCounterStore(config.path)


def make_request_counter(config: CounterConfig) -> RequestCounter:
    return RequestCounter(make_counter_store(config), flush_interval_s=config.flush_interval_s)


__all__ = [
    "CounterStore",
    "JsonFileCounterStore",
    "RedisCounterStore",
    "RequestCounter",
    "UsageCounter",
    "date_key",
    "hour_key",
    "make_counter_store",
    "make_request_counter",
]
