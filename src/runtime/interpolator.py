"""
Velocity-aware interpolation between sparse propagator evaluations.

Propagating every object on every frame is too expensive for a full
catalog, so each object keeps two propagated anchors one update period
apart and blends between them. A random phase offset per object spreads
the propagator calls of many objects across the period.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

import numpy as np

from src.archive.models import MS_PER_SECOND, ElementSample, from_millis
from src.propagation.orbital_mechanics import Propagator

SampleLookup = Callable[[int], Optional[ElementSample]]


class PositionInterpolator:
    """
    Position of one object between two propagated anchors.

    Args:
        lookup: Returns the element set to propagate from at a given time
            (UTC ms), or None when the object has no usable data there
        propagator: Pure ``propagate(sample, datetime)`` implementation
        update_period_ms: Model time between anchors
        jitter_ms: Phase offset applied at first use (default: random in
            ``[0, update_period_ms]``)
        rng: Generator for the jitter draw
    """

    def __init__(
        self,
        lookup: SampleLookup,
        propagator: Propagator,
        update_period_ms: int,
        jitter_ms: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        if update_period_ms <= 0:
            raise ValueError(f"update_period_ms must be positive, got {update_period_ms}")

        self.lookup = lookup
        self.propagator = propagator
        self.update_period_ms = int(update_period_ms)
        if jitter_ms is None:
            rng = rng or np.random.default_rng()
            jitter_ms = int(rng.integers(0, self.update_period_ms + 1))
        self.jitter_ms = int(jitter_ms)

        self.t1: Optional[int] = None
        self.t2: Optional[int] = None
        self.p1 = self.v1 = self.p2 = self.v2 = None

    @property
    def is_initialized(self) -> bool:
        return self.t1 is not None

    def reset(self) -> None:
        self.t1 = self.t2 = None
        self.p1 = self.v1 = self.p2 = self.v2 = None

    def _propagate(self, when: int) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        sample = self.lookup(when)
        if sample is None:
            return None
        state = self.propagator.propagate(sample, from_millis(when))
        return state.position, state.velocity

    def _anchor(self, t1: int, t2: int) -> bool:
        first = self._propagate(t1)
        second = self._propagate(t2) if first is not None else None
        if second is None:
            self.reset()
            return False
        self.t1, self.t2 = t1, t2
        (self.p1, self.v1), (self.p2, self.v2) = first, second
        return True

    def _shift(self) -> bool:
        t2 = self.t2 + self.update_period_ms
        second = self._propagate(t2)
        if second is None:
            self.reset()
            return False
        self.t1, self.p1, self.v1 = self.t2, self.p2, self.v2
        self.t2 = t2
        self.p2, self.v2 = second
        return True

    def position_at(self, query_time: int) -> Optional[np.ndarray]:
        """
        Interpolated ECI position (km) at ``query_time`` (UTC ms).

        Returns:
            Position, or None when no element set is available near an anchor
        """
        if not self.is_initialized or query_time < self.t1:
            # First use, or time moved backwards
            t1 = query_time - self.jitter_ms
            if not self._anchor(t1, t1 + self.update_period_ms):
                return None
        elif self.t2 < query_time <= self.t2 + self.update_period_ms:
            if not self._shift():
                return None
        elif query_time > self.t2 + self.update_period_ms:
            # Re-anchor around the query instead of stepping through the skip
            delta = query_time - self.t1
            if not self._anchor(query_time, query_time + delta):
                return None

        if query_time == self.t1:
            return self.p1.copy()
        if query_time == self.t2:
            return self.p2.copy()

        f = (query_time - self.t1) / (self.t2 - self.t1)
        dt1 = (query_time - self.t1) / MS_PER_SECOND
        dt2 = (query_time - self.t2) / MS_PER_SECOND
        return (1.0 - f) * (self.p1 + self.v1 * dt1) + f * (self.p2 + self.v2 * dt2)
