"""
Runtime - Time-windowed access to the element-set archive

Components:
- sample_index: per-object epoch-sorted element sets
- sources: local directory and HTTP archive readers
- dataset_manager: load-ahead and eviction around model time
- interpolator: velocity-aware position interpolation
- playback_clock: async model-time driver
"""

from .dataset_manager import DatasetManager
from .interpolator import PositionInterpolator
from .playback_clock import PlaybackClock
from .sample_index import SampleIndex
from .sources import ArchiveSource, HttpArchiveSource, LocalArchiveSource

__all__ = [
    "DatasetManager",
    "PositionInterpolator",
    "PlaybackClock",
    "SampleIndex",
    "ArchiveSource",
    "HttpArchiveSource",
    "LocalArchiveSource",
]
