from __future__ import annotations

import copy
import logging
import threading
from datetime import datetime
from typing import Optional

from ..errors import CounterError
from .base import CounterStore, UsageCounter, date_key, hour_key, merge_counts

logger = logging.getLogger(__name__)


class RequestCounter:
    """
    Per-date, per-hour tally of completed requests.

    record() only touches an in-memory table of pending increments under a
    lock, so concurrent requests never lose an update. Pending increments are
    handed to the CounterStore by a background thread every
    `flush_interval_s` seconds and once more on close().

    Usage:
        counter = RequestCounter(JsonFileCounterStore("stats.json"))
        counter.start()
        counter.record()
        counter.read()   # {"19.10.2026": {"14": 1}}
        counter.close()
    """

    def __init__(self, store: CounterStore, flush_interval_s: float = 5.0) -> None:
        if flush_interval_s <= 0:
            raise ValueError("flush_interval_s must be > 0")
        self.store = store
        self.flush_interval_s = flush_interval_s
        self._pending: UsageCounter = {}
        self._lock = threading.Lock()
        # held for the whole hand-off so read() never sees counts in flight
        self._flush_lock = threading.Lock()
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("RequestCounter is already started")
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._run, name="tablegate-counter-flush", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stopping.wait(self.flush_interval_s):
            try:
                self.flush()
            except CounterError as exc:
                logger.warning("Usage counter flush failed, will retry: %s", exc)
            except Exception:
                logger.exception("Unexpected usage counter flush failure, will retry")

    def record(self, timestamp: Optional[datetime] = None) -> None:
        ts = timestamp or datetime.now()
        day, hour = date_key(ts), hour_key(ts)
        with self._lock:
            bucket = self._pending.setdefault(day, {})
            bucket[hour] = bucket.get(hour, 0) + 1

    def pending(self) -> UsageCounter:
        with self._lock:
            return copy.deepcopy(self._pending)

    def flush(self) -> int:
        """
        Hand pending increments to the store. Returns the number of requests
        flushed. On failure the increments are kept for the next attempt.

        Raises:
            CounterError: If the store rejects the write
        """
        with self._flush_lock:
            with self._lock:
                batch, self._pending = self._pending, {}
            if not batch:
                return 0
            try:
                self.store.merge(batch)
            except Exception:
                with self._lock:
                    self._pending = merge_counts(batch, self._pending)
                raise
        return sum(sum(hours.values()) for hours in batch.values())

    def read(self) -> UsageCounter:
        """
        Persisted counts plus those not flushed yet.

        Raises:
            CounterError: If the store cannot be read
        """
        with self._flush_lock:
            persisted = self.store.load()
            return merge_counts(persisted, self.pending())

    def close(self) -> None:
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout=self.flush_interval_s + 5)
            self._thread = None
        try:
            self.flush()
        except Exception as exc:
            logger.error("Final usage counter flush failed: %s", exc)
        finally:
            self.store.close()
