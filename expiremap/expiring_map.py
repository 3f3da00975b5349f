from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable

from expiremap.reclaimer import Reclaimer
from expiremap.storage import BucketTable, Entry

logger = logging.getLogger("expiremap")

DEFAULT_INITIAL_BUCKET_COUNT = 16
DEFAULT_LOAD_FACTOR = 0.75
DEFAULT_SWEEP_PERIOD_SECONDS = 1.0


@dataclass
class MapStats:
    entries: int
    buckets: int
    load_factor: float
    resizes: int
    swept: int


class ExpiringMap:
    """Thread-safe key-value map where every entry carries its own time-to-live.

    Expired entries are never returned. They are dropped lazily when read and
    eagerly by a background reclaimer that sweeps the whole table every
    ``sweep_period`` seconds. A single lock guards the table, the entry count
    and the bucket count, so every operation (sweep and resize included) is
    linearizable.
    """

    def __init__(
        self,
        *,
        initial_bucket_count: int = DEFAULT_INITIAL_BUCKET_COUNT,
        load_factor: float = DEFAULT_LOAD_FACTOR,
        sweep_period: float = DEFAULT_SWEEP_PERIOD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        start_reclaimer: bool = True,
    ) -> None:
        if initial_bucket_count < 1:
            raise ValueError("Initial bucket count must be at least 1.")
        if load_factor <= 0:
            raise ValueError("Load factor must be positive.")

        self._table = BucketTable(initial_bucket_count)
        self._load_factor = load_factor
        self._clock = clock
        self._size = 0
        self._resizes = 0
        self._swept = 0
        self._lock = RLock()

        self._reclaimer = Reclaimer(self, sweep_period)
        if start_reclaimer:
            self._reclaimer.start()

    def put(self, key: Any, value: Any, ttl_ms: int) -> None:
        with self._lock:
            expires_at = self._clock() + ttl_ms / 1000
            entry = self._table.find(key)
            if entry is not None:
                entry.value = value
                entry.expires_at = expires_at
                return
            self._table.append(Entry(key=key, value=value, expires_at=expires_at))
            self._size += 1
            if self._size > self._load_factor * self._table.bucket_count:
                self._resize()

    def get(self, key: Any, default: Any = None) -> Any:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return default
            return entry.value

    def remove(self, key: Any) -> bool:
        with self._lock:
            if self._table.discard(key) is None:
                return False
            self._size -= 1
            return True

    def contains(self, key: Any) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    __contains__ = contains

    def sweep(self) -> int:
        """Remove every expired entry from every bucket and return how many went."""
        with self._lock:
            removed = self._table.purge(self._clock())
            self._size -= removed
            self._swept += removed
            return removed

    @property
    def bucket_count(self) -> int:
        with self._lock:
            return self._table.bucket_count

    @property
    def load_factor(self) -> float:
        return self._load_factor

    @property
    def reclaimer(self) -> Reclaimer:
        return self._reclaimer

    def stats(self) -> MapStats:
        with self._lock:
            return MapStats(
                entries=self._size,
                buckets=self._table.bucket_count,
                load_factor=self._load_factor,
                resizes=self._resizes,
                swept=self._swept,
            )

    def close(self) -> None:
        self._reclaimer.stop()

    def __len__(self) -> int:
        with self._lock:
            return self._size

    def __enter__(self) -> "ExpiringMap":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    def _live_entry(self, key: Any) -> Entry | None:
        entry = self._table.find(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._table.discard(key)
            self._size -= 1
            return None
        return entry

    def _resize(self) -> None:
        # Caller holds the lock. One doubling per trigger; no re-entry into put.
        old_count = self._table.bucket_count
        self._table = self._table.redistribute(old_count * 2)
        self._resizes += 1
        logger.debug("Resized buckets %d -> %d (entries=%d)", old_count, old_count * 2, self._size)
