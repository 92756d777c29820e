"""
DatasetManager: Sliding-window store of archived element sets.

Loads the merged catalog once, then keeps the archive buckets around the
current model time resident: ``advance_to`` fetches buckets ahead of time,
``purge`` evicts what has fallen out of the retention window. Objects live
in an index-stable arena (parallel lists plus an id-to-position map), which
also gives the amortized purge a plain integer cursor.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

import numpy as np

from src.archive.archive_io import iter_bucket_samples, iter_catalog_objects
from src.archive.buckets import Bucket, BucketSchedule
from src.archive.models import ElementSample, TrackedObject, days_to_millis, MS_PER_SECOND
from src.propagation.orbital_mechanics import Propagator, SGP4Propagator
from src.runtime.interpolator import PositionInterpolator
from src.runtime.sample_index import SampleIndex
from src.runtime.sources import ArchiveSource
from src.utils.config_loader import RuntimeConfig
from src.utils.metrics import PerformanceMetrics, timer

logger = logging.getLogger(__name__)


class DatasetManager:
    """
    Time-windowed view of the archive for a moving model time.

    Loads for different buckets run concurrently, but every insert happens
    on the event loop and ``purge`` is synchronous, so a Sample Index is
    never modified by two parties at once.

    Example:
        >>> manager = DatasetManager(LocalArchiveSource(Path("resources/filtered")),
        ...                          BucketSchedule.build())
        >>> manager.load_catalog()
        >>> await manager.advance_to(now_ms)
        >>> manager.purge(now_ms)
        >>> position = manager.position_at("25544", now_ms)
    """

    def __init__(
        self,
        source: ArchiveSource,
        schedule: BucketSchedule,
        config: Optional[RuntimeConfig] = None,
        propagator: Optional[Propagator] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        config = config or RuntimeConfig()
        self.source = source
        self.schedule = schedule
        self.propagator = propagator or SGP4Propagator()
        self.rng = rng or np.random.default_rng()

        self.accuracy_ms = days_to_millis(config.accuracy_days)
        self.lookahead_ms = days_to_millis(config.lookahead_days)
        self.purge_buffer_ms = days_to_millis(config.purge_buffer_days)
        self.purge_batch = config.purge_batch
        self.update_period_ms = int(round(config.update_period_seconds * MS_PER_SECOND))

        # Arena
        self.objects: List[TrackedObject] = []
        self.indexes: List[SampleIndex] = []
        self._interpolators: List[Optional[PositionInterpolator]] = []
        self._positions: Dict[str, int] = {}

        self.loaded_buckets: Dict[int, Bucket] = {}
        self._in_flight: Dict[int, asyncio.Task] = {}
        self._purge_cursor = 0
        self.metrics = PerformanceMetrics()

    def __len__(self) -> int:
        return len(self.objects)

    def __contains__(self, catalog_id: str) -> bool:
        return catalog_id in self._positions

    # ── Catalog ─────────────────────────────────────────────────

    def register(self, obj: TrackedObject) -> int:
        """Add an object to the arena, or replace its metadata if known. Returns its position."""
        position = self._positions.get(obj.catalog_id)
        if position is not None:
            self.objects[position] = obj
            return position

        position = len(self.objects)
        self.objects.append(obj)
        self.indexes.append(SampleIndex())
        self._interpolators.append(None)
        self._positions[obj.catalog_id] = position
        return position

    def load_catalog(self) -> int:
        """
        Fetch and register the merged catalog.

        Returns:
            Number of catalog entries applied
        """
        payload = self.source.fetch_catalog()
        count = 0
        for obj in iter_catalog_objects(payload):
            self.register(obj)
            count += 1
        logger.info("Loaded catalog: %d objects", count)
        return count

    def get_object(self, catalog_id: str) -> Optional[TrackedObject]:
        position = self._positions.get(catalog_id)
        return None if position is None else self.objects[position]

    # ── Loading ─────────────────────────────────────────────────

    async def advance_to(self, current_time: int) -> List[str]:
        """
        Ensure every bucket intersecting ``[current_time, current_time + LOOKAHEAD]`` is loaded.

        Returns:
            Names of the buckets loaded by this call

        Raises:
            Whatever the archive source raised for the first failed bucket,
            after the other loads have finished. Failed buckets stay
            unloaded and are retried on the next call.
        """
        wanted = self.schedule.buckets_between(current_time, current_time + self.lookahead_ms)
        pending = [b for b in wanted if b.index not in self.loaded_buckets]
        if not pending:
            return []

        results = await asyncio.gather(
            *(self._ensure_loaded(bucket) for bucket in pending),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            raise errors[0]
        return [bucket.name for bucket, loaded in zip(pending, results) if loaded]

    async def _ensure_loaded(self, bucket: Bucket) -> bool:
        if bucket.index in self.loaded_buckets:
            return False
        task = self._in_flight.get(bucket.index)
        if task is None:
            task = asyncio.ensure_future(self._load_bucket(bucket))
            self._in_flight[bucket.index] = task
            await task
            return True
        # Already being loaded by another caller
        await task
        return False

    def _fetch_samples(self, bucket: Bucket) -> List[ElementSample]:
        return list(iter_bucket_samples(self.source.fetch_bucket(bucket.name)))

    async def _load_bucket(self, bucket: Bucket) -> None:
        try:
            with timer("bucket_load_s", self.metrics):
                # Fetch and decompress off the loop; insert on it
                samples = await asyncio.to_thread(self._fetch_samples, bucket)
                self.apply_samples(samples)
        except Exception:
            logger.error("Failed to load bucket %s", bucket.name)
            raise
        finally:
            self._in_flight.pop(bucket.index, None)

        self.loaded_buckets[bucket.index] = bucket
        logger.info("Loaded bucket %s (%d element sets)", bucket.name, len(samples))

    def apply_samples(self, samples: List[ElementSample]) -> int:
        """Insert samples into their objects' indexes. Unknown ids get a placeholder catalog entry."""
        for sample in samples:
            position = self._positions.get(sample.catalog_id)
            if position is None:
                logger.debug("Element set for uncatalogued object %s", sample.catalog_id)
                position = self.register(TrackedObject(catalog_id=sample.catalog_id))
            self.indexes[position].insert(sample)
        return len(samples)

    # ── Eviction ────────────────────────────────────────────────

    def purge(self, current_time: int) -> int:
        """
        Evict data outside ``[current_time - ACCURACY, current_time + PURGE_BUFFER + ACCURACY]``.

        Bucket records are dropped immediately. Sample Indexes are trimmed
        round-robin, 1/PURGE_BATCH of the arena per call, so one index can
        keep stale samples for up to PURGE_BATCH calls.

        Returns:
            Number of element sets removed
        """
        retain_start = current_time - self.accuracy_ms
        retain_end = current_time + self.purge_buffer_ms + self.accuracy_ms

        for index, bucket in list(self.loaded_buckets.items()):
            if not bucket.intersects(retain_start, retain_end):
                del self.loaded_buckets[index]
                logger.debug("Released bucket %s", bucket.name)

        self._purge_cursor = (self._purge_cursor + 1) % self.purge_batch
        removed = 0
        for position in range(self._purge_cursor, len(self.indexes), self.purge_batch):
            removed += self.indexes[position].purge_range(retain_start, retain_end)
        return removed

    # ── Queries ─────────────────────────────────────────────────

    def closest_sample(self, catalog_id: str, query_time: int) -> Optional[ElementSample]:
        """Element set nearest ``query_time`` within ACCURACY, or None."""
        position = self._positions.get(catalog_id)
        if position is None:
            return None
        return self.indexes[position].closest(query_time, self.accuracy_ms)

    def _interpolator(self, position: int) -> PositionInterpolator:
        interpolator = self._interpolators[position]
        if interpolator is None:
            index = self.indexes[position]
            interpolator = PositionInterpolator(
                lookup=lambda when: index.closest(when, self.accuracy_ms),
                propagator=self.propagator,
                update_period_ms=self.update_period_ms,
                rng=self.rng,
            )
            self._interpolators[position] = interpolator
        return interpolator

    def position_at(self, catalog_id: str, query_time: int) -> Optional[np.ndarray]:
        """
        ECI position (km) of an object at ``query_time``.

        Returns None for unknown objects, outside the launch-to-decay window
        and when no element set lies within ACCURACY of the anchors.
        """
        position = self._positions.get(catalog_id)
        if position is None:
            return None
        if not self.objects[position].is_in_window(query_time):
            return None
        return self._interpolator(position).position_at(query_time)

    def get_all_positions(self, query_time: int) -> List[dict]:
        """Snapshot of every object with a defined position at ``query_time``."""
        snapshot = []
        for obj in self.objects:
            position = self.position_at(obj.catalog_id, query_time)
            if position is None:
                continue
            snapshot.append({
                "catalog_id": obj.catalog_id,
                "name": obj.name,
                "object_class": obj.object_class.value,
                "x": float(position[0]),
                "y": float(position[1]),
                "z": float(position[2]),
            })
        return snapshot

    def get_status(self) -> dict:
        """Get store status."""
        return {
            "objects": len(self.objects),
            "element_sets": sum(len(index) for index in self.indexes),
            "loaded_buckets": sorted(b.name for b in self.loaded_buckets.values()),
            "loading": len(self._in_flight),
            "purge_cursor": self._purge_cursor,
            "metrics": self.metrics.summary(),
        }
