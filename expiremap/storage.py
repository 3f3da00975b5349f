from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator


@dataclass
class Entry:
    key: Any
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


def bucket_index(key: Any, bucket_count: int) -> int:
    if key is None:
        return 0
    return abs(hash(key)) % bucket_count


class BucketTable:
    """Fixed number of buckets, each an ordered list of entries.

    Key uniqueness is not enforced here; the owning map guarantees it by
    always calling ``find`` before ``append``.
    """

    def __init__(self, bucket_count: int) -> None:
        self._buckets: list[list[Entry]] = [[] for _ in range(bucket_count)]

    @property
    def bucket_count(self) -> int:
        return len(self._buckets)

    def bucket_for(self, key: Any) -> list[Entry]:
        return self._buckets[bucket_index(key, len(self._buckets))]

    def find(self, key: Any) -> Entry | None:
        for entry in self.bucket_for(key):
            if entry.key is key or entry.key == key:
                return entry
        return None

    def append(self, entry: Entry) -> None:
        self.bucket_for(entry.key).append(entry)

    def discard(self, key: Any) -> Entry | None:
        bucket = self.bucket_for(key)
        for position, entry in enumerate(bucket):
            if entry.key is key or entry.key == key:
                del bucket[position]
                return entry
        return None

    def purge(self, now: float) -> int:
        removed = 0
        for position, bucket in enumerate(self._buckets):
            kept = [entry for entry in bucket if not entry.is_expired(now)]
            if len(kept) != len(bucket):
                removed += len(bucket) - len(kept)
                self._buckets[position] = kept
        return removed

    def redistribute(self, bucket_count: int) -> "BucketTable":
        # Entries move as-is: expiry is never recomputed and nothing is filtered.
        table = BucketTable(bucket_count)
        for entry in self.entries():
            table.append(entry)
        return table

    def entries(self) -> Iterator[Entry]:
        for bucket in self._buckets:
            yield from bucket
