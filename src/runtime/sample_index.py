"""
Per-object, time-sorted index of element sets.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Iterator, List, Optional

from src.archive.models import ElementSample


class SampleIndex:
    """
    Element sets for one object kept sorted by epoch.

    Entries live in two parallel flat lists (epochs and samples) so lookups
    are a binary search over plain integers.
    """

    def __init__(self):
        self._epochs: List[int] = []
        self._samples: List[ElementSample] = []

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[ElementSample]:
        return iter(self._samples)

    @property
    def epochs(self) -> List[int]:
        return list(self._epochs)

    def insert(self, sample: ElementSample) -> None:
        """Insert in epoch order; a sample with an equal epoch replaces the existing one."""
        position = bisect_left(self._epochs, sample.epoch)
        if position < len(self._epochs) and self._epochs[position] == sample.epoch:
            self._samples[position] = sample
            return
        self._epochs.insert(position, sample.epoch)
        self._samples.insert(position, sample)

    def closest(self, query_time: int, tolerance: int) -> Optional[ElementSample]:
        """
        Find the element set nearest to ``query_time`` within ``tolerance``.

        Args:
            query_time: UTC milliseconds
            tolerance: Maximum distance in milliseconds between query and epoch

        Returns:
            The nearer of the bracketing samples (ties go to the earlier one),
            or None when neither is within tolerance
        """
        if not self._samples:
            return None

        position = bisect_left(self._epochs, query_time)

        after = None
        if position < len(self._samples) and self._epochs[position] - query_time <= tolerance:
            after = self._samples[position]

        before = None
        if position > 0 and query_time - self._epochs[position - 1] <= tolerance:
            before = self._samples[position - 1]

        if before is not None and after is not None:
            if query_time - before.epoch <= after.epoch - query_time:
                return before
            return after
        return after if after is not None else before

    def purge_range(self, start: int, end: int) -> int:
        """
        Keep only samples with ``start <= epoch <= end``.

        Returns:
            Number of samples removed
        """
        low = bisect_left(self._epochs, start)
        high = bisect_right(self._epochs, end)
        removed = len(self._samples) - (high - low)
        if removed:
            self._epochs = self._epochs[low:high]
            self._samples = self._samples[low:high]
        return removed
