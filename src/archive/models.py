"""
Core data model for tracked objects and their element sets.

Timestamps are carried as integer UTC milliseconds throughout the archive
and the runtime store; ``to_millis``/``from_millis`` convert at the edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

MS_PER_SECOND = 1000
MS_PER_DAY = 24 * 60 * 60 * MS_PER_SECOND


def to_millis(value: datetime) -> int:
    """Convert a datetime to UTC milliseconds. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * MS_PER_SECOND))


def from_millis(millis: int) -> datetime:
    """Convert UTC milliseconds to a timezone-aware datetime."""
    return datetime.fromtimestamp(millis / MS_PER_SECOND, tz=timezone.utc)


def days_to_millis(days: float) -> int:
    return int(round(days * MS_PER_DAY))


def parse_day(value: str) -> Optional[int]:
    """Parse a ``YYYY-MM-DD`` calendar day to UTC milliseconds at midnight; None if unparseable."""
    try:
        day = datetime.strptime(value.strip()[:10], "%Y-%m-%d")
    except ValueError:
        return None
    return to_millis(day)


class ObjectClass(str, Enum):
    """Object type as published in the catalog."""

    PAYLOAD = "PAYLOAD"
    ROCKET_BODY = "ROCKET BODY"
    DEBRIS = "DEBRIS"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str) -> Optional["ObjectClass"]:
        """Map a raw OBJECT_TYPE value; None for anything outside the vocabulary."""
        normalized = value.strip().upper().replace("_", " ")
        for member in cls:
            if member.value == normalized:
                return member
        return None


class SizeClass(str, Enum):
    """Radar cross-section size bucket."""

    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"

    @classmethod
    def parse(cls, value: str) -> Optional["SizeClass"]:
        normalized = value.strip().upper()
        for member in cls:
            if member.value == normalized:
                return member
        return None

    @classmethod
    def default_for(cls, object_class: ObjectClass) -> "SizeClass":
        """Size assumed when the catalog never supplied one."""
        return cls.SMALL if object_class == ObjectClass.DEBRIS else cls.LARGE


@dataclass(frozen=True)
class ElementSample:
    """One two-line element set for one object at one epoch."""

    catalog_id: str
    epoch: int  # UTC milliseconds
    rev_at_epoch: str
    line1: str
    line2: str

    @property
    def epoch_datetime(self) -> datetime:
        return from_millis(self.epoch)

    def __repr__(self) -> str:
        return f"ElementSample(catalog_id='{self.catalog_id}', epoch={self.epoch_datetime.isoformat()})"


@dataclass
class LaunchInfo:
    """Launch metadata shared by every object from one launch."""

    country_code: str = ""
    launch_date: Optional[int] = None  # UTC milliseconds
    launch_site: str = ""


@dataclass
class TrackedObject:
    """Descriptive catalog entry for one tracked space object."""

    catalog_id: str
    object_designator: str = ""
    name: str = ""
    object_class: ObjectClass = ObjectClass.UNKNOWN
    size_class: Optional[SizeClass] = None
    launch: LaunchInfo = field(default_factory=LaunchInfo)
    decay_time: Optional[int] = None  # UTC milliseconds

    @property
    def launch_time(self) -> Optional[int]:
        return self.launch.launch_date

    def is_in_window(self, query_time: int) -> bool:
        """True while the object exists: launched and not yet decayed. Absent bounds are open."""
        if self.launch.launch_date is not None and query_time < self.launch.launch_date:
            return False
        if self.decay_time is not None and query_time > self.decay_time:
            return False
        return True

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "catalog_id": self.catalog_id,
            "object_designator": self.object_designator,
            "name": self.name,
            "object_class": self.object_class.value,
            "size_class": self.size_class.value if self.size_class else None,
            "country_code": self.launch.country_code,
            "launch_date": self.launch.launch_date,
            "launch_site": self.launch.launch_site,
            "decay_time": self.decay_time,
        }
