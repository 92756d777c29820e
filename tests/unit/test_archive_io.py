"""
Unit tests for the archive file format and writer.
"""

import gzip
from datetime import date

import pytest

from src.archive.archive_io import (
    ArchiveWriter,
    format_catalog_row,
    format_sample_row,
    iter_bucket_samples,
    iter_catalog_objects,
    parse_catalog_row,
    parse_sample_row,
    write_catalog,
)
from src.archive.buckets import BucketSchedule
from src.archive.exceptions import EpochOrderError, MalformedRowError
from src.archive.models import LaunchInfo, ObjectClass, SizeClass, TrackedObject


@pytest.fixture
def schedule():
    # 2000-01-01, 2000-01-16, 2000-01-31, 2000-02-15
    return BucketSchedule.build(date(2000, 1, 1), date(2000, 2, 15))


class TestRows:
    """Test row formatting and parsing."""

    def test_sample_row_layout(self, make_sample):
        sample = make_sample(epoch=946684800000, rev="563")
        row = format_sample_row(sample)
        assert row.startswith("25544,946684800000,563,1 25544U")
        assert row.endswith("\n")
        assert parse_sample_row(row) == sample

    @pytest.mark.parametrize("line", [
        "25544,946684800000,563",
        "25544,notanumber,563,l1,l2",
        ",946684800000,563,l1,l2",
    ])
    def test_malformed_sample_row(self, line):
        with pytest.raises(MalformedRowError):
            parse_sample_row(line)

    def test_catalog_row_with_absent_dates(self):
        obj = TrackedObject(catalog_id="5", name="VANGUARD 1", object_class=ObjectClass.PAYLOAD)
        row = format_catalog_row(obj)
        assert row == "5,,VANGUARD 1,PAYLOAD,LARGE,,,,\n"

        parsed = parse_catalog_row(row)
        assert parsed.launch_time is None
        assert parsed.decay_time is None
        assert parsed.size_class == SizeClass.LARGE

    def test_catalog_row_values(self):
        obj = TrackedObject(
            catalog_id="25544",
            object_designator="1998-067A",
            name="ISS (ZARYA)",
            object_class=ObjectClass.PAYLOAD,
            size_class=SizeClass.LARGE,
            launch=LaunchInfo(country_code="ISS", launch_date=911520000000, launch_site="TTMTR"),
        )
        parsed = parse_catalog_row(format_catalog_row(obj))
        assert parsed.to_dict() == obj.to_dict()

    def test_empty_size_defaults_by_class(self):
        parsed = parse_catalog_row("7,,DEB,DEBRIS,,,,,\n")
        assert parsed.size_class == SizeClass.SMALL


class TestPayloadReaders:
    def test_bucket_payload_skips_bad_rows(self, make_sample):
        good = make_sample()
        text = format_sample_row(good) + "\n" + "garbage\n"
        assert list(iter_bucket_samples(gzip.compress(text.encode()))) == [good]
        assert list(iter_bucket_samples(text.encode())) == [good]

    def test_catalog_file(self, tmp_path):
        objects = [TrackedObject(catalog_id=str(i)) for i in range(3)]
        path = tmp_path / "catalog.csv.gz"
        assert write_catalog(objects, path) == 3
        assert [o.catalog_id for o in iter_catalog_objects(path.read_bytes())] == ["0", "1", "2"]


class TestArchiveWriter:
    """Test bucket file writing."""

    def test_writes_into_bucket_files(self, tmp_path, schedule, make_sample):
        first = make_sample(epoch=schedule[0].start + 1)
        third = make_sample(epoch=schedule[2].start)
        with ArchiveWriter(tmp_path, schedule) as writer:
            writer.write(first)
            writer.write(third)

        assert list(iter_bucket_samples((tmp_path / "2000-01-01.csv.gz").read_bytes())) == [first]
        # Skipped bucket exists and is empty
        assert list(iter_bucket_samples((tmp_path / "2000-01-16.csv.gz").read_bytes())) == []
        assert list(iter_bucket_samples((tmp_path / "2000-01-31.csv.gz").read_bytes())) == [third]
        assert writer.stats["rows_written"] == 2
        assert writer.stats["files_written"] == 3

    def test_complete_creates_remaining_files(self, tmp_path, schedule, make_sample):
        writer = ArchiveWriter(tmp_path, schedule)
        writer.write(make_sample(epoch=schedule[0].start))
        writer.complete()

        names = sorted(p.name for p in tmp_path.iterdir())
        assert names == [f"{b.name}.csv.gz" for b in schedule]
        assert [b.name for b in writer.written_buckets()] == [b.name for b in schedule]

    def test_earlier_bucket_raises(self, tmp_path, schedule, make_sample):
        writer = ArchiveWriter(tmp_path, schedule)
        writer.write(make_sample(epoch=schedule[1].start))
        with pytest.raises(EpochOrderError):
            writer.write(make_sample(epoch=schedule[0].start))
        writer.close()

    def test_out_of_schedule_dropped(self, tmp_path, schedule, make_sample):
        writer = ArchiveWriter(tmp_path, schedule)
        writer.write(make_sample(epoch=schedule.start - 1))
        writer.write(make_sample(epoch=schedule.end))
        writer.close()
        assert writer.stats["rows_dropped"] == 2
        assert writer.stats["rows_written"] == 0
        assert writer.written_buckets() == []
