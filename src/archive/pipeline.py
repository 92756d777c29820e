"""
Aggregation pipeline: raw gp_history extracts -> thinned, bucketed archive.

A producer task decompresses and parses raw extracts, merges catalog
metadata and thins element sets. A consumer task compresses and writes the
committed samples. The two are connected by a bounded queue: the producer
suspends while the queue is full and resumes as the writer drains it, so a
slow compressor never causes unbounded buffering.
"""

from __future__ import annotations

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from src.archive.archive_io import ArchiveWriter, write_catalog
from src.archive.buckets import BucketSchedule
from src.archive.catalog_merger import CatalogMerger
from src.archive.exceptions import EpochOrderError
from src.archive.models import ElementSample, days_to_millis
from src.archive.raw_records import RawRecord, RawRecordReader
from src.archive.thinning import EpochThinner
from src.utils.config_loader import ArchiveConfig
from src.utils.logging_config import get_logger

logger = get_logger("archive")

# Marks the end of the sample stream on the channel
_END = object()


@dataclass
class AggregationResult:
    """Summary of one aggregation run."""

    files_processed: int
    records_read: int
    rows_skipped: int
    samples_written: int
    samples_dropped: int
    buckets_written: int
    objects: int
    launches: int
    elapsed_s: float

    def to_dict(self) -> dict:
        return asdict(self)


class AggregationPipeline:
    """
    Build the archive and merged catalog from raw extracts.

    Files are processed one at a time in sorted order, so the combined
    stream is in epoch order. Any ordering violation aborts the run.

    Example:
        >>> pipeline = AggregationPipeline(ArchiveConfig(raw_dir=Path("resources/raw")))
        >>> result = pipeline.run()
        >>> print(f"Wrote {result.samples_written} element sets")
    """

    def __init__(
        self,
        config: ArchiveConfig,
        schedule: Optional[BucketSchedule] = None,
        show_progress: bool = False,
    ):
        self.config = config
        self.schedule = schedule or BucketSchedule.build(config.history_start, config.history_end)
        self.thinner = EpochThinner(days_to_millis(config.gap_threshold_days))
        self.merger = CatalogMerger()
        self.reader = RawRecordReader()
        self.show_progress = show_progress
        self._current_bucket: Optional[int] = None

    def list_raw_files(self) -> List[Path]:
        """Raw extracts in ``raw_dir``, hidden files excluded, in sorted order."""
        raw_dir = Path(self.config.raw_dir)
        if not raw_dir.exists():
            raise FileNotFoundError(f"Raw directory not found: {raw_dir}")
        return sorted(p for p in raw_dir.iterdir() if p.is_file() and not p.name.startswith("."))

    def process_record(self, record: RawRecord) -> List[ElementSample]:
        """
        Apply one raw record to the catalog and the thinner.

        Crossing into a later bucket first flushes every pending sample into
        the bucket being closed, so each sample lands in the bucket that
        contains its epoch.

        Returns:
            Samples to write, in write order

        Raises:
            EpochOrderError: If the record belongs to a bucket already passed
        """
        self.merger.merge(record.catalog_id, record.catalog_fields())

        committed: List[ElementSample] = []
        index = self.schedule.find_bucket_index(record.epoch)
        if self._current_bucket is not None:
            if index < self._current_bucket:
                raise EpochOrderError(
                    f"Epochs in wrong order: {record.catalog_id} at {record.epoch} ms "
                    f"precedes bucket {self._current_bucket}"
                )
            if index > self._current_bucket:
                committed.extend(self.thinner.flush())
                if index < len(self.schedule):
                    logger.debug(f"Starting on bucket {self.schedule[index].name}")
        self._current_bucket = index

        emitted = self.thinner.ingest(record.to_sample())
        if emitted is not None:
            committed.append(emitted)
        return committed

    def run(self, files: Optional[Sequence[Path]] = None) -> AggregationResult:
        """Run the pipeline to completion on a fresh event loop."""
        return asyncio.run(self.run_async(files))

    async def run_async(self, files: Optional[Sequence[Path]] = None) -> AggregationResult:
        """
        Run the producer and writer stages concurrently.

        Args:
            files: Extracts to process (default: everything in ``raw_dir``)

        Returns:
            Run statistics
        """
        t0 = time.perf_counter()
        files = sorted(files) if files is not None else self.list_raw_files()
        logger.info(f"Found {len(files)} files")

        output_dir = Path(self.config.output_dir)
        channel: asyncio.Queue = asyncio.Queue(maxsize=self.config.channel_capacity)
        writer = ArchiveWriter(output_dir, self.schedule)
        # One worker, so shutdown(wait=True) also waits out an in-flight batch
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="archive-writer")

        producer = asyncio.create_task(self._produce(files, channel))
        consumer = asyncio.create_task(self._consume(channel, writer, executor))
        try:
            await asyncio.gather(producer, consumer)
        except BaseException:
            producer.cancel()
            consumer.cancel()
            await asyncio.gather(producer, consumer, return_exceptions=True)
            executor.shutdown(wait=True)
            writer.close()
            logger.error("Aggregation aborted")
            raise

        executor.shutdown(wait=True)
        writer.complete()
        objects = self.merger.finalize()
        write_catalog(objects, output_dir / self.config.catalog_filename)

        result = AggregationResult(
            files_processed=self.reader.stats["files_read"],
            records_read=self.reader.stats["rows_read"],
            rows_skipped=self.reader.stats["rows_skipped"],
            samples_written=writer.stats["rows_written"],
            samples_dropped=writer.stats["rows_dropped"],
            buckets_written=writer.stats["files_written"],
            objects=len(objects),
            launches=self.merger.launch_count,
            elapsed_s=time.perf_counter() - t0,
        )
        logger.info(
            f"Aggregated {result.records_read} records into {result.samples_written} "
            f"element sets across {result.buckets_written} buckets in {result.elapsed_s:.1f}s"
        )
        return result

    async def _produce(self, files: Sequence[Path], channel: asyncio.Queue) -> None:
        for path in tqdm(files, desc="Aggregating", unit="file", disable=not self.show_progress):
            for record in self.reader.read_file(path):
                for sample in self.process_record(record):
                    # Suspends while the writer is saturated
                    await channel.put(sample)

        for sample in self.thinner.flush():
            await channel.put(sample)
        await channel.put(_END)

    async def _consume(
        self, channel: asyncio.Queue, writer: ArchiveWriter, executor: ThreadPoolExecutor
    ) -> None:
        loop = asyncio.get_running_loop()
        batch_size = self.config.write_batch_size
        while True:
            item = await channel.get()
            batch: List[ElementSample] = []
            finished = False
            while True:
                if item is _END:
                    finished = True
                    break
                batch.append(item)
                if len(batch) >= batch_size or channel.empty():
                    break
                item = channel.get_nowait()

            if batch:
                # Compression runs in the writer thread
                await loop.run_in_executor(executor, writer.write_many, batch)
            if finished:
                return
