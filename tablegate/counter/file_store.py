from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from ..errors import CounterError
from .base import UsageCounter, merge_counts

logger = logging.getLogger(__name__)


class JsonFileCounterStore:
    """
    Usage counter persisted as one JSON document.

    The whole document is rewritten on every merge: it is written to a
    temporary file in the same directory and then moved over the target, so
    readers never observe a half-written file. A missing file is an empty
    counter.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> UsageCounter:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise CounterError(f"cannot read {self.path}: {exc}") from exc

        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CounterError(f"{self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CounterError(f"{self.path} does not contain a JSON object")
        try:
            return {
                str(day): {str(hour): int(count) for hour, count in hours.items()}
                for day, hours in data.items()
            }
        except (AttributeError, TypeError, ValueError) as exc:
            raise CounterError(f"{self.path} has malformed counts: {exc}") from exc

    def _write(self, counts: UsageCounter) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(counts, fh)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CounterError(f"cannot write {self.path}: {exc}") from exc

    def load(self) -> UsageCounter:
        with self._lock:
            return self._read()

    def merge(self, increments: UsageCounter) -> None:
        if not increments:
            return
        with self._lock:
            counts = self._read()
            self._write(merge_counts(counts, increments))
        logger.debug("Persisted usage counter to %s", self.path)

    def close(self) -> None:
        return None
