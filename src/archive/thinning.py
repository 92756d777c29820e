"""
Epoch thinning of dense element-set streams.

A freshly fitted element set predicts well for roughly two weeks. Keeping
every published set is wasteful, so for each object only the set seen last
before a gap longer than the threshold is committed: the freshest element
set right before the object's data would otherwise go stale.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from src.archive.exceptions import EpochOrderError
from src.archive.models import ElementSample, MS_PER_DAY
from src.utils.logging_config import get_logger

logger = get_logger("archive")

GAP_THRESHOLD_MS = 14 * MS_PER_DAY


@dataclass
class _ObjectTrack:
    """Per-object thinning state."""

    last_committed_epoch: int
    last_seen_epoch: int
    pending: Optional[ElementSample] = None


class EpochThinner:
    """
    Downsample element sets per object to about one per two-week window.

    Input must be non-decreasing in epoch per object. ``ingest`` returns the
    sample to commit, if any; ``flush`` commits everything still pending.

    Example:
        >>> thinner = EpochThinner()
        >>> for sample in samples:
        ...     committed = thinner.ingest(sample)
        ...     if committed is not None:
        ...         writer.write(committed)
        >>> for sample in thinner.flush():
        ...     writer.write(sample)
    """

    def __init__(self, gap_threshold_ms: int = GAP_THRESHOLD_MS):
        self.gap_threshold_ms = gap_threshold_ms
        self._tracks: Dict[str, _ObjectTrack] = {}
        self.stats = {
            "records_ingested": 0,
            "samples_emitted": 0,
        }

    def __len__(self) -> int:
        return len(self._tracks)

    @property
    def pending_count(self) -> int:
        return sum(1 for track in self._tracks.values() if track.pending is not None)

    def ingest(self, sample: ElementSample) -> Optional[ElementSample]:
        """
        Offer the next element set for an object.

        Args:
            sample: Element set; its epoch must not precede the object's previous one

        Returns:
            The previously pending sample if this one ends a gap, else None

        Raises:
            EpochOrderError: If the object's epochs go backwards
        """
        self.stats["records_ingested"] += 1
        epoch = sample.epoch
        track = self._tracks.get(sample.catalog_id)

        if track is None:
            self._tracks[sample.catalog_id] = _ObjectTrack(
                last_committed_epoch=epoch,
                last_seen_epoch=epoch,
                pending=sample,
            )
            return None

        if epoch < track.last_seen_epoch:
            raise EpochOrderError(
                f"Epoch for object {sample.catalog_id} went backwards: "
                f"{sample.epoch_datetime.isoformat()} after {track.last_seen_epoch} ms"
            )
        track.last_seen_epoch = epoch

        emitted = None
        if track.pending is not None and epoch - track.last_committed_epoch > self.gap_threshold_ms:
            emitted = track.pending
            track.last_committed_epoch = emitted.epoch
            self.stats["samples_emitted"] += 1

        track.pending = sample
        return emitted

    def flush(self) -> List[ElementSample]:
        """
        Commit every pending sample.

        Returns:
            Pending samples ordered by epoch
        """
        flushed = []
        for track in self._tracks.values():
            if track.pending is None:
                continue
            flushed.append(track.pending)
            track.last_committed_epoch = track.pending.epoch
            track.pending = None

        flushed.sort(key=lambda s: s.epoch)
        self.stats["samples_emitted"] += len(flushed)
        if flushed:
            logger.debug(f"Flushed {len(flushed)} pending element sets")
        return flushed
