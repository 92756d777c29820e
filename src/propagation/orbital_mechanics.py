"""
Satellite propagation using SGP4/SDP4.
Turns an archived element set into an ECI position and velocity.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Protocol

import numpy as np

from skyfield.api import EarthSatellite, load

from src.archive.models import ElementSample
from src.utils.logging_config import get_logger

logger = get_logger("propagation")

EARTH_RADIUS_KM = 6378.137  # WGS84


@dataclass
class StateVector:
    """Satellite state vector (position and velocity)."""

    time: datetime
    position: np.ndarray  # [x, y, z] in km (ECI frame)
    velocity: np.ndarray  # [vx, vy, vz] in km/s (ECI frame)
    frame: str = "ECI"

    def __post_init__(self):
        """Ensure arrays are numpy arrays."""
        self.position = np.asarray(self.position, dtype=np.float64)
        self.velocity = np.asarray(self.velocity, dtype=np.float64)

    @property
    def speed(self) -> float:
        """Magnitude of velocity vector (km/s)."""
        return float(np.linalg.norm(self.velocity))

    @property
    def altitude(self) -> float:
        """Altitude above Earth's surface (km)."""
        return float(np.linalg.norm(self.position)) - EARTH_RADIUS_KM


class Propagator(Protocol):
    """Pure function of (element set, time) to state. Anything with this method will do."""

    def propagate(self, sample: ElementSample, time: datetime) -> StateVector:
        ...


class SGP4Propagator:
    """
    SGP4/SDP4 propagation of archived element sets via Skyfield.

    Parsed satellites are cached per element set.

    Example:
        >>> propagator = SGP4Propagator()
        >>> state = propagator.propagate(sample, datetime.now(timezone.utc))
        >>> print(f"Altitude: {state.altitude:.1f} km")
    """

    def __init__(self, cache_size: int = 65536):
        self.ts = load.timescale()
        self._satellite = lru_cache(maxsize=cache_size)(self._build_satellite)
        logger.debug(f"Initialized SGP4 propagator (cache {cache_size})")

    def _build_satellite(self, line1: str, line2: str) -> EarthSatellite:
        return EarthSatellite(line1, line2, ts=self.ts)

    def propagate(self, sample: ElementSample, time: datetime) -> StateVector:
        """
        Propagate an element set to a specific time.

        Args:
            sample: Element set to propagate from
            time: Target time (naive datetimes are taken as UTC)

        Returns:
            StateVector with position and velocity in ECI frame
        """
        if time.tzinfo is None:
            time = time.replace(tzinfo=timezone.utc)

        satellite = self._satellite(sample.line1, sample.line2)
        geocentric = satellite.at(self.ts.from_datetime(time))

        return StateVector(
            time=time,
            position=geocentric.position.km,
            velocity=geocentric.velocity.km_per_s,
            frame='ECI'
        )
