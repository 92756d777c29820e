"""
End-to-End Integration Tests for the archive.

Tests the full chain: raw gp_history extracts → aggregation pipeline →
bucket files + catalog → DatasetManager → SGP4 positions.

Test categories:
  - Archive layout produced by the pipeline
  - Runtime loading from the local archive
  - Position queries through the real propagator
  - Playback across bucket boundaries
"""

from datetime import date, datetime, timedelta

import numpy as np
import pytest

from src.archive import AggregationPipeline, BucketSchedule
from src.archive.models import to_millis
from src.runtime import DatasetManager, LocalArchiveSource, PlaybackClock
from src.utils.config_loader import ArchiveConfig, RuntimeConfig

# Epoch of the ISS element set used throughout (2008 day 264.51782528)
TLE_EPOCH = datetime(2008, 9, 20, 12, 25, 40)


# -----------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------

@pytest.fixture
def archive_config(tmp_path):
    return ArchiveConfig(
        raw_dir=tmp_path / "raw",
        output_dir=tmp_path / "archive",
        history_start=date(2008, 9, 1),
        history_end=date(2008, 12, 31),
    )


@pytest.fixture
def built_archive(archive_config, raw_row, write_extract):
    """Daily extracts for the ISS and one debris object, then aggregate."""
    for offset in range(-3, 4):
        when = TLE_EPOCH + timedelta(days=offset)
        rows = [raw_row("25544", epoch=when)]
        if offset == 0:
            rows.append(raw_row("33000", epoch=when, OBJECT_NAME="ISS DEB", OBJECT_ID="1998-067XY",
                                OBJECT_TYPE="DEBRIS", RCS_SIZE="", DECAY_DATE="2008-10-01"))
        write_extract(archive_config.raw_dir / f"{when:%Y-%m-%d}.csv.gz", rows)

    result = AggregationPipeline(archive_config).run()
    schedule = BucketSchedule.build(archive_config.history_start, archive_config.history_end)
    return archive_config, schedule, result


@pytest.fixture
def manager(built_archive):
    config, schedule, _ = built_archive
    manager = DatasetManager(
        LocalArchiveSource(config.output_dir, config.catalog_filename),
        schedule,
        config=RuntimeConfig(),
        rng=np.random.default_rng(42),
    )
    manager.load_catalog()
    return manager


# -----------------------------------------------------------------------
# Tests
# -----------------------------------------------------------------------

class TestArchiveBuild:
    def test_result_counts(self, built_archive):
        _, schedule, result = built_archive
        assert result.files_processed == 7
        assert result.records_read == 8
        assert result.objects == 2
        assert result.launches == 1
        assert result.buckets_written == len(schedule)

    def test_one_file_per_bucket(self, built_archive):
        config, schedule, _ = built_archive
        for bucket in schedule:
            assert (config.output_dir / f"{bucket.name}.csv.gz").exists()
        assert (config.output_dir / "catalog.csv.gz").exists()


@pytest.mark.asyncio
class TestRuntime:
    async def test_positions_from_archive(self, manager):
        query = to_millis(TLE_EPOCH + timedelta(hours=6))
        loaded = await manager.advance_to(query)
        assert "2008-09-16" in loaded

        position = manager.position_at("25544", query)
        altitude = np.linalg.norm(position) - 6378.137
        assert 300 < altitude < 450

    async def test_catalog_metadata_applied(self, manager):
        iss = manager.get_object("25544")
        debris = manager.get_object("33000")
        assert iss.name == "ISS (ZARYA)"
        # Filled from the launch shared with the ISS during the merge
        assert debris.launch.country_code == "ISS"
        assert debris.launch_time == iss.launch_time
        assert debris.decay_time == to_millis(datetime(2008, 10, 1))

    async def test_decayed_object_suppressed(self, manager):
        await manager.advance_to(to_millis(TLE_EPOCH))
        after_decay = to_millis(datetime(2008, 10, 2))
        assert manager.position_at("33000", after_decay) is None

    async def test_snapshot(self, manager):
        query = to_millis(TLE_EPOCH + timedelta(hours=1))
        await manager.advance_to(query)
        ids = sorted(entry["catalog_id"] for entry in manager.get_all_positions(query))
        assert ids == ["25544", "33000"]

    async def test_playback_moves_window(self, manager):
        start = to_millis(TLE_EPOCH)
        clock = PlaybackClock(manager, start_time=start, speed=86400.0)
        await manager.advance_to(start)

        # Forty simulated days later the original buckets are out of range
        for _ in range(40):
            await clock.tick(1.0)
        names = {b.name for b in manager.loaded_buckets.values()}
        assert "2008-09-16" not in names
        assert clock.current_time == start + 40 * 86_400_000
