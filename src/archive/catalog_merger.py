"""
Catalog merging across many raw extracts.

Every raw record repeats the object's descriptive metadata, with quality
that varies over time: early records often carry placeholders such as
"TBA - TO BE ASSIGNED" that later records replace with real values. The
merger keeps the first real value per field, lets size and decay date
evolve, and shares one launch record between all objects of a launch.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, Optional

from src.archive.exceptions import MissingCatalogIdError
from src.archive.models import LaunchInfo, ObjectClass, SizeClass, TrackedObject, parse_day
from src.utils.logging_config import get_logger

logger = get_logger("archive")

PLACEHOLDER_PREFIXES = ("TBA", "UNKNOWN", "OBJECT", "NULL", "TBD")

# "1998-067A" -> launch "1998-067"
LAUNCH_KEY_WIDTH = 8

CATALOG_FIELDS = (
    "object_designator",
    "name",
    "object_class",
    "size_class",
    "country_code",
    "launch_date",
    "launch_site",
    "decay_date",
)


def is_acceptable(value: Optional[str]) -> bool:
    """A value is usable if it is non-empty and not a placeholder token."""
    if value is None:
        return False
    value = value.strip()
    if not value:
        return False
    return not value.upper().startswith(PLACEHOLDER_PREFIXES)


def launch_key(object_designator: str) -> Optional[str]:
    """International designator prefix identifying the launch, or None if too short."""
    if len(object_designator) < LAUNCH_KEY_WIDTH:
        return None
    return object_designator[:LAUNCH_KEY_WIDTH]


def _fill_launch(target: LaunchInfo, source: LaunchInfo) -> None:
    """Copy values from ``source`` into empty slots of ``target``."""
    if not target.country_code and source.country_code:
        target.country_code = source.country_code
    if target.launch_date is None and source.launch_date is not None:
        target.launch_date = source.launch_date
    if not target.launch_site and source.launch_site:
        target.launch_site = source.launch_site


class CatalogMerger:
    """
    Accumulate per-object metadata with field-level precedence.

    Example:
        >>> merger = CatalogMerger()
        >>> merger.merge("25544", {"name": "TBA - TO BE ASSIGNED"})
        >>> merger.merge("25544", {"name": "ISS (ZARYA)"})
        >>> merger.get("25544").name
        'ISS (ZARYA)'
    """

    def __init__(self):
        self._objects: Dict[str, TrackedObject] = {}
        self._launches: Dict[str, LaunchInfo] = {}

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[TrackedObject]:
        return iter(self._objects.values())

    def __contains__(self, catalog_id: str) -> bool:
        return catalog_id in self._objects

    @property
    def launch_count(self) -> int:
        return len(self._launches)

    def get(self, catalog_id: str) -> Optional[TrackedObject]:
        return self._objects.get(catalog_id)

    def merge(self, catalog_id: str, fields: Mapping[str, str]) -> TrackedObject:
        """
        Merge one record's descriptive fields into the catalog.

        Args:
            catalog_id: NORAD catalog number
            fields: Raw values keyed by the names in ``CATALOG_FIELDS``; missing keys are empty

        Returns:
            The merged catalog entry

        Raises:
            MissingCatalogIdError: If ``catalog_id`` is empty
        """
        if not catalog_id:
            raise MissingCatalogIdError(f"Record without catalog id: {dict(fields)}")

        obj = self._objects.get(catalog_id)
        if obj is None:
            obj = TrackedObject(catalog_id=catalog_id)
            self._objects[catalog_id] = obj

        designator = fields.get("object_designator", "")
        if not obj.object_designator and is_acceptable(designator):
            obj.object_designator = designator.strip()
            self._attach_launch(obj)

        name = fields.get("name", "")
        if not obj.name and is_acceptable(name):
            obj.name = name.strip()

        raw_class = fields.get("object_class", "")
        if obj.object_class == ObjectClass.UNKNOWN and is_acceptable(raw_class):
            parsed_class = ObjectClass.parse(raw_class)
            if parsed_class is not None:
                obj.object_class = parsed_class

        # Size and decay keep the latest known value
        raw_size = fields.get("size_class", "")
        if is_acceptable(raw_size):
            parsed_size = SizeClass.parse(raw_size)
            if parsed_size is not None:
                obj.size_class = parsed_size

        raw_decay = fields.get("decay_date", "")
        if is_acceptable(raw_decay):
            decay = parse_day(raw_decay)
            if decay is not None:
                obj.decay_time = decay

        launch = obj.launch
        country_code = fields.get("country_code", "")
        if not launch.country_code and is_acceptable(country_code):
            launch.country_code = country_code.strip()

        raw_launch_date = fields.get("launch_date", "")
        if launch.launch_date is None and is_acceptable(raw_launch_date):
            launch.launch_date = parse_day(raw_launch_date)

        launch_site = fields.get("launch_site", "")
        if not launch.launch_site and is_acceptable(launch_site):
            launch.launch_site = launch_site.strip()

        return obj

    def _attach_launch(self, obj: TrackedObject) -> None:
        """Adopt the shared launch record for the object's launch, or seed it."""
        key = launch_key(obj.object_designator)
        if key is None:
            return

        shared = self._launches.get(key)
        if shared is None:
            self._launches[key] = obj.launch
        elif shared is not obj.launch:
            _fill_launch(shared, obj.launch)
            obj.launch = shared

    def finalize(self) -> List[TrackedObject]:
        """
        Apply defaults and return the catalog in first-seen order.

        Objects that never reported a size get SMALL for debris and LARGE otherwise.
        """
        defaulted = 0
        for obj in self._objects.values():
            if obj.size_class is None:
                obj.size_class = SizeClass.default_for(obj.object_class)
                defaulted += 1

        logger.info(
            f"Catalog finalized: {len(self._objects)} objects, "
            f"{len(self._launches)} launches, {defaulted} default sizes"
        )
        return list(self._objects.values())
