"""
Calendar bucketing of the element-set archive.

The archive is partitioned into contiguous, non-overlapping buckets whose
width shrinks as catalog density grows: yearly before 1970, quarterly until
1975, monthly until 1990 and 15 days after that. Each bucket is stored as one
compressed file named after its start day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterator, List, Optional

import numpy as np
import pandas as pd

HISTORY_START = pd.Timestamp("1959-01-01", tz="UTC")
HISTORY_END = pd.Timestamp("2021-09-30", tz="UTC")

_YEAR_1970 = pd.Timestamp("1970-01-01", tz="UTC")
_YEAR_1975 = pd.Timestamp("1975-01-01", tz="UTC")
_YEAR_1990 = pd.Timestamp("1990-01-01", tz="UTC")


def timestamp_to_millis(ts: pd.Timestamp) -> int:
    """UTC milliseconds for a pandas Timestamp."""
    return int(ts.value // 1_000_000)


def millis_to_timestamp(millis: int) -> pd.Timestamp:
    return pd.Timestamp(millis, unit="ms", tz="UTC")


def next_boundary(previous: Optional[pd.Timestamp] = None) -> pd.Timestamp:
    """
    Compute the boundary following ``previous``.

    Args:
        previous: Start of the current bucket, or None for the first boundary

    Returns:
        Start of the next bucket
    """
    if previous is None:
        return HISTORY_START
    if previous < _YEAR_1970:
        return previous + pd.DateOffset(years=1)
    if previous < _YEAR_1975:
        return previous + pd.DateOffset(months=3)
    if previous < _YEAR_1990:
        return previous + pd.DateOffset(months=1)
    return previous + pd.DateOffset(days=15)


@dataclass(frozen=True)
class Bucket:
    """One archive file's time range ``[start, end)`` in UTC milliseconds."""

    index: int
    name: str
    start: int
    end: int

    def contains(self, epoch: int) -> bool:
        return self.start <= epoch < self.end

    def intersects(self, start: int, end: int) -> bool:
        """True if ``[self.start, self.end)`` overlaps the closed range ``[start, end]``."""
        return self.start <= end and start < self.end


class BucketSchedule:
    """
    Sorted, immutable list of archive buckets.

    Built once at startup and shared by reference between the archive
    writer and the runtime dataset manager.

    Example:
        >>> schedule = BucketSchedule.build()
        >>> bucket = schedule[schedule.find_bucket_index(epoch_ms)]
        >>> print(f"{bucket.name}.csv.gz")
    """

    def __init__(self, buckets: List[Bucket]):
        self.buckets = buckets
        self._starts = np.array([b.start for b in buckets], dtype=np.int64)
        self._ends = np.array([b.end for b in buckets], dtype=np.int64)
        self._by_name = {b.name: b for b in buckets}

    @classmethod
    def build(
        cls,
        history_start: Optional[date] = None,
        history_end: Optional[date] = None,
    ) -> "BucketSchedule":
        """
        Generate the schedule by repeatedly applying ``next_boundary``.

        Args:
            history_start: First bucket start (default 1959-01-01)
            history_end: Last day a bucket may start on (default 2021-09-30)
        """
        current = next_boundary() if history_start is None else pd.Timestamp(history_start.isoformat(), tz="UTC")
        end = HISTORY_END if history_end is None else pd.Timestamp(history_end.isoformat(), tz="UTC")

        buckets: List[Bucket] = []
        while current <= end:
            following = next_boundary(current)
            buckets.append(Bucket(
                index=len(buckets),
                name=current.date().isoformat(),
                start=timestamp_to_millis(current),
                end=timestamp_to_millis(following),
            ))
            current = following
        return cls(buckets)

    def __len__(self) -> int:
        return len(self.buckets)

    def __getitem__(self, index: int) -> Bucket:
        return self.buckets[index]

    def __iter__(self) -> Iterator[Bucket]:
        return iter(self.buckets)

    @property
    def start(self) -> int:
        return int(self._starts[0])

    @property
    def end(self) -> int:
        return int(self._ends[-1])

    def get(self, name: str) -> Optional[Bucket]:
        return self._by_name.get(name)

    def find_bucket_index(self, epoch: int) -> int:
        """
        Binary search for the bucket containing ``epoch``.

        Returns 0 for epochs before the first bucket and ``len(self)`` for
        epochs at or after the end of the last one.
        """
        if not self.buckets:
            return 0
        if epoch >= self._ends[-1]:
            return len(self.buckets)
        index = int(np.searchsorted(self._starts, epoch, side="right")) - 1
        return max(index, 0)

    def buckets_between(self, start: int, end: int) -> List[Bucket]:
        """All buckets intersecting the closed range ``[start, end]``."""
        if not self.buckets or end < self._starts[0] or start >= self._ends[-1]:
            return []
        first = self.find_bucket_index(start)
        last = min(self.find_bucket_index(end), len(self.buckets) - 1)
        return self.buckets[first:last + 1]
