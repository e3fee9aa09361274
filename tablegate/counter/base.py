from __future__ import annotations

from datetime import datetime
from typing import Dict, Protocol

# date ("dd.MM.yyyy") -> hour ("HH") -> request count
UsageCounter = Dict[str, Dict[str, int]]

DATE_FORMAT = "%d.%m.%Y"
HOUR_FORMAT = "%H"


def date_key(ts: datetime) -> str:
    return ts.strftime(DATE_FORMAT)


def hour_key(ts: datetime) -> str:
    return ts.strftime(HOUR_FORMAT)


def merge_counts(target: UsageCounter, increments: UsageCounter) -> UsageCounter:
    """Add `increments` into `target` in place and return it."""
    for day, hours in increments.items():
        bucket = target.setdefault(day, {})
        for hour, count in hours.items():
            bucket[hour] = bucket.get(hour, 0) + int(count)
    return target


class CounterStore(Protocol):
    """
    Durable backing store for the usage counter.
    """

    def load(self) -> UsageCounter:
        """Return every persisted count. Raises CounterError on failure."""
        ...

    def merge(self, increments: UsageCounter) -> None:
        """Add `increments` to the persisted counts. Raises CounterError on failure."""
        ...

    def close(self) -> None:
        """Release any resources held by the store."""
        ...
