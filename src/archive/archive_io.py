"""
Archive file format: bucket files of thinned element sets and the merged catalog.

Bucket file ``<YYYY-MM-DD>.csv.gz`` rows:
    catalogId,epochMillis,revolutionsAtEpoch,elementLine1,elementLine2

Catalog file rows:
    catalogId,objectDesignator,name,objectClass,sizeClass,countryCode,
    launchDateMillis,launchSite,decayDateMillis
"""

from __future__ import annotations

import gzip
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Optional

from src.archive.buckets import Bucket, BucketSchedule
from src.archive.exceptions import EpochOrderError, MalformedRowError
from src.archive.models import (
    ElementSample,
    LaunchInfo,
    ObjectClass,
    SizeClass,
    TrackedObject,
)
from src.utils.logging_config import get_logger

logger = get_logger("archive")

BUCKET_SUFFIX = ".csv.gz"
SAMPLE_COLUMNS = 5
CATALOG_COLUMNS = 9


def bucket_filename(bucket: Bucket) -> str:
    return f"{bucket.name}{BUCKET_SUFFIX}"


def _optional_millis(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def _parse_optional_millis(value: str) -> Optional[int]:
    return int(value) if value else None


def format_sample_row(sample: ElementSample) -> str:
    return ",".join([
        sample.catalog_id,
        str(sample.epoch),
        sample.rev_at_epoch,
        sample.line1,
        sample.line2,
    ]) + "\n"


def parse_sample_row(line: str) -> ElementSample:
    """
    Parse one bucket row.

    Raises:
        MalformedRowError: On a wrong column count or a non-integer epoch
    """
    parts = line.rstrip("\r\n").split(",")
    if len(parts) != SAMPLE_COLUMNS or not parts[0]:
        raise MalformedRowError(f"expected {SAMPLE_COLUMNS} columns: {line!r}")
    try:
        epoch = int(parts[1])
    except ValueError:
        raise MalformedRowError(f"bad epoch in row: {line!r}")
    return ElementSample(
        catalog_id=parts[0],
        epoch=epoch,
        rev_at_epoch=parts[2],
        line1=parts[3],
        line2=parts[4],
    )


def format_catalog_row(obj: TrackedObject) -> str:
    size_class = obj.size_class or SizeClass.default_for(obj.object_class)
    return ",".join([
        obj.catalog_id,
        obj.object_designator,
        obj.name.replace(",", "."),
        obj.object_class.value,
        size_class.value,
        obj.launch.country_code,
        _optional_millis(obj.launch.launch_date),
        obj.launch.launch_site,
        _optional_millis(obj.decay_time),
    ]) + "\n"


def parse_catalog_row(line: str) -> TrackedObject:
    """
    Parse one catalog row. An empty size falls back to the class default.

    Raises:
        MalformedRowError: On a wrong column count or bad date fields
    """
    parts = line.rstrip("\r\n").split(",")
    if len(parts) != CATALOG_COLUMNS or not parts[0]:
        raise MalformedRowError(f"expected {CATALOG_COLUMNS} columns: {line!r}")

    object_class = ObjectClass.parse(parts[3]) or ObjectClass.UNKNOWN
    size_class = SizeClass.parse(parts[4]) if parts[4] else None
    try:
        launch_date = _parse_optional_millis(parts[6])
        decay_time = _parse_optional_millis(parts[8])
    except ValueError:
        raise MalformedRowError(f"bad date in catalog row: {line!r}")

    return TrackedObject(
        catalog_id=parts[0],
        object_designator=parts[1],
        name=parts[2],
        object_class=object_class,
        size_class=size_class or SizeClass.default_for(object_class),
        launch=LaunchInfo(
            country_code=parts[5],
            launch_date=launch_date,
            launch_site=parts[7],
        ),
        decay_time=decay_time,
    )


def _decompressed_lines(payload: bytes) -> Iterator[str]:
    if payload[:2] == b"\x1f\x8b":
        payload = gzip.decompress(payload)
    return iter(payload.decode("utf-8").splitlines())


def iter_bucket_samples(payload: bytes) -> Iterator[ElementSample]:
    """Yield the samples of a bucket file's bytes, skipping blank and malformed rows."""
    for line in _decompressed_lines(payload):
        if not line.strip():
            continue
        try:
            yield parse_sample_row(line)
        except MalformedRowError as e:
            logger.warning(f"Skipping bucket row: {e}")


def iter_catalog_objects(payload: bytes) -> Iterator[TrackedObject]:
    """Yield the entries of a catalog file's bytes, skipping blank and malformed rows."""
    for line in _decompressed_lines(payload):
        if not line.strip():
            continue
        try:
            yield parse_catalog_row(line)
        except MalformedRowError as e:
            logger.warning(f"Skipping catalog row: {e}")


def write_catalog(objects: Iterable[TrackedObject], filepath: Path) -> int:
    """
    Write the merged catalog as a compressed file.

    Returns:
        Number of objects written
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with gzip.open(filepath, "wt", encoding="utf-8", newline="") as f:
        for obj in objects:
            f.write(format_catalog_row(obj))
            count += 1

    logger.info(f"Wrote catalog {filepath} ({count} objects)")
    return count


class ArchiveWriter:
    """
    Append thinned samples to per-bucket compressed files.

    Samples must arrive in bucket order. Moving forward closes the open file
    and creates the files of every bucket passed over, so a reader never
    finds a hole in the archive.

    Example:
        >>> schedule = BucketSchedule.build()
        >>> with ArchiveWriter(Path("resources/filtered"), schedule) as writer:
        ...     for sample in samples:
        ...         writer.write(sample)
    """

    def __init__(self, output_dir: Path, schedule: BucketSchedule):
        self.output_dir = Path(output_dir)
        self.schedule = schedule
        self._index: Optional[int] = None
        self._stream: Optional[IO[str]] = None
        self._stream_bucket: Optional[Bucket] = None
        self.stats = {
            "rows_written": 0,
            "rows_dropped": 0,
            "files_written": 0,
        }

    def __enter__(self) -> "ArchiveWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def current_bucket(self) -> Optional[Bucket]:
        return None if self._index is None else self.schedule[self._index]

    def write(self, sample: ElementSample) -> None:
        """
        Append one sample to its bucket file.

        Raises:
            EpochOrderError: If the sample belongs to a bucket already closed
        """
        index = self.schedule.find_bucket_index(sample.epoch)
        if index >= len(self.schedule) or sample.epoch < self.schedule.start:
            self.stats["rows_dropped"] += 1
            logger.warning(f"Dropping {sample!r}: outside the bucket schedule")
            return

        if self._index is not None and index < self._index:
            raise EpochOrderError(
                f"Epochs in wrong order: {sample!r} precedes open bucket {self.current_bucket.name}"
            )

        self._rotate_to(index)
        self._stream.write(format_sample_row(sample))
        self.stats["rows_written"] += 1

    def write_many(self, samples: Iterable[ElementSample]) -> None:
        for sample in samples:
            self.write(sample)

    def _rotate_to(self, index: int) -> None:
        if self._index == index:
            return

        first = 0 if self._index is None else self._index + 1
        self._close_stream()
        for i in range(first, index + 1):
            self._open_stream(i)
            if i != index:
                self._close_stream()
        self._index = index

    def _open_stream(self, index: int) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        bucket = self.schedule[index]
        self._stream = gzip.open(self.output_dir / bucket_filename(bucket), "wt", encoding="utf-8", newline="")
        self._stream_bucket = bucket
        self.stats["files_written"] += 1
        logger.debug(f"Opened output for {bucket.name}")

    def _close_stream(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
            logger.debug(f"Closed output for {self._stream_bucket.name}")

    def complete(self) -> None:
        """Create the (empty) files of every remaining bucket and close."""
        if len(self.schedule):
            self._rotate_to(len(self.schedule) - 1)
        self.close()

    def close(self) -> None:
        self._close_stream()

    def written_buckets(self) -> List[Bucket]:
        """Buckets with a file on disk, in order."""
        if self._index is None:
            return []
        return self.schedule.buckets[:self._index + 1]
