"""
Archive - Offline aggregation of historical element sets

Turns dense raw gp_history extracts into a sparse, time-bucketed archive
plus a merged per-object catalog.

Components:
- raw_records: gp_history CSV reader
- thinning: per-object gap-based downsampling
- catalog_merger: field-precedence metadata merge with shared launches
- buckets: calendar bucket schedule and binary-search lookup
- archive_io: bucket/catalog file format and writer
- pipeline: producer/writer stages joined by a bounded channel

Example:
    >>> from src.archive import AggregationPipeline
    >>> from src.utils.config_loader import ArchiveConfig
    >>> result = AggregationPipeline(ArchiveConfig()).run()
"""

__version__ = "0.1.0"

from .buckets import Bucket, BucketSchedule, next_boundary
from .catalog_merger import CatalogMerger
from .exceptions import ArchiveError, EpochOrderError, MalformedRowError, MissingCatalogIdError
from .models import ElementSample, LaunchInfo, ObjectClass, SizeClass, TrackedObject
from .pipeline import AggregationPipeline, AggregationResult
from .thinning import EpochThinner

__all__ = [
    "Bucket",
    "BucketSchedule",
    "next_boundary",
    "CatalogMerger",
    "ArchiveError",
    "EpochOrderError",
    "MalformedRowError",
    "MissingCatalogIdError",
    "ElementSample",
    "LaunchInfo",
    "ObjectClass",
    "SizeClass",
    "TrackedObject",
    "AggregationPipeline",
    "AggregationResult",
    "EpochThinner",
]
