"""
Reader for raw Space-Track ``gp_history`` extracts.

Extracts are gzip-compressed CSV files, one per day, with every value
quoted. Concatenated extracts may repeat the header row mid-stream; the
column map is rebuilt whenever a header is seen.
"""

from __future__ import annotations

import csv
import gzip
import io
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional

from src.archive.exceptions import MalformedRowError, MissingCatalogIdError
from src.archive.models import ElementSample, to_millis
from src.utils.logging_config import get_logger

logger = get_logger("archive")

# Column order of the gp_history class when no header has been seen
RAW_COLUMNS = (
    "CCSDS_OMM_VERS", "COMMENT", "CREATION_DATE", "ORIGINATOR", "OBJECT_NAME",
    "OBJECT_ID", "CENTER_NAME", "REF_FRAME", "TIME_SYSTEM", "MEAN_ELEMENT_THEORY",
    "EPOCH", "MEAN_MOTION", "ECCENTRICITY", "INCLINATION", "RA_OF_ASC_NODE",
    "ARG_OF_PERICENTER", "MEAN_ANOMALY", "EPHEMERIS_TYPE", "CLASSIFICATION_TYPE", "NORAD_CAT_ID",
    "ELEMENT_SET_NO", "REV_AT_EPOCH", "BSTAR", "MEAN_MOTION_DOT", "MEAN_MOTION_DDOT",
    "SEMIMAJOR_AXIS", "PERIOD", "APOAPSIS", "PERIAPSIS", "OBJECT_TYPE",
    "RCS_SIZE", "COUNTRY_CODE", "LAUNCH_DATE", "SITE", "DECAY_DATE",
    "FILE", "GP_ID", "TLE_LINE0", "TLE_LINE1", "TLE_LINE2",
)
HEADER_MARKER = RAW_COLUMNS[0]

_EPOCH_FORMATS = (
    '%Y-%m-%dT%H:%M:%S.%f',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d %H:%M:%S.%f',
    '%Y-%m-%d %H:%M:%S',
)


def parse_epoch(epoch_str: str) -> Optional[int]:
    """Parse a Space-Track epoch string to UTC milliseconds."""
    if not epoch_str:
        return None

    for fmt in _EPOCH_FORMATS:
        try:
            return to_millis(datetime.strptime(epoch_str[:26], fmt))
        except (ValueError, IndexError):
            continue

    return None


@dataclass(frozen=True)
class RawRecord:
    """One parsed gp_history row: an element set plus descriptive metadata."""

    catalog_id: str
    epoch: int
    rev_at_epoch: str
    line1: str
    line2: str
    object_designator: str = ""
    name: str = ""
    object_class: str = ""
    size_class: str = ""
    country_code: str = ""
    launch_date: str = ""
    launch_site: str = ""
    decay_date: str = ""

    def to_sample(self) -> ElementSample:
        return ElementSample(
            catalog_id=self.catalog_id,
            epoch=self.epoch,
            rev_at_epoch=self.rev_at_epoch,
            line1=self.line1,
            line2=self.line2,
        )

    def catalog_fields(self) -> Dict[str, str]:
        """Descriptive fields keyed for ``CatalogMerger.merge``."""
        return {
            "object_designator": self.object_designator,
            "name": self.name,
            "object_class": self.object_class,
            "size_class": self.size_class,
            "country_code": self.country_code,
            "launch_date": self.launch_date,
            "launch_site": self.launch_site,
            "decay_date": self.decay_date,
        }


class RawRecordReader:
    """
    Stream ``RawRecord`` objects out of gp_history extracts.

    Blank lines, header rows and malformed rows are skipped and counted.
    A row without a catalog number aborts the read.

    Example:
        >>> reader = RawRecordReader()
        >>> for record in reader.read_file(Path("resources/raw/2020-01-01.csv.gz")):
        ...     print(record.catalog_id, record.epoch)
        >>> print(reader.stats)
    """

    def __init__(self):
        self._columns: Dict[str, int] = {name: i for i, name in enumerate(RAW_COLUMNS)}
        self.stats = {
            "files_read": 0,
            "rows_read": 0,
            "rows_skipped": 0,
            "headers_seen": 0,
        }

    def read_file(self, filepath: Path) -> Iterator[RawRecord]:
        """
        Read one extract, gzip-compressed or plain.

        Args:
            filepath: Path to the extract

        Yields:
            Parsed records in file order
        """
        filepath = Path(filepath)
        if not filepath.exists():
            logger.error(f"Raw extract not found: {filepath}")
            raise FileNotFoundError(f"Raw extract not found: {filepath}")

        logger.info(f"Reading data from {filepath}")
        opener = gzip.open if filepath.suffix == ".gz" else open
        with opener(filepath, "rb") as f:
            yield from self.read_lines(self._decode_lines(f))

        self.stats["files_read"] += 1
        logger.info(f"Completed processing {filepath}")

    def read_bytes(self, payload: bytes) -> Iterator[RawRecord]:
        """Read an extract already in memory (gzip magic is detected)."""
        if payload[:2] == b"\x1f\x8b":
            payload = gzip.decompress(payload)
        yield from self.read_lines(self._decode_lines(io.BytesIO(payload)))

    def _decode_lines(self, raw_lines: Iterable[bytes]) -> Iterator[str]:
        """Decode each line on its own; a line that is not valid UTF-8 is skipped and counted."""
        for line_no, raw in enumerate(raw_lines, 1):
            try:
                yield raw.decode("utf-8")
            except UnicodeDecodeError as e:
                self.stats["rows_skipped"] += 1
                logger.warning(f"Skipping undecodable line {line_no}: {e}")

    def read_lines(self, lines: Iterable[str]) -> Iterator[RawRecord]:
        for row in csv.reader(lines):
            if not row or all(not value for value in row):
                continue
            if row[0] == HEADER_MARKER:
                self._columns = {name: i for i, name in enumerate(row)}
                self.stats["headers_seen"] += 1
                continue

            try:
                record = self.parse_row(row)
            except MalformedRowError as e:
                self.stats["rows_skipped"] += 1
                logger.warning(f"Skipping malformed row: {e}")
                continue

            self.stats["rows_read"] += 1
            yield record

    def parse_row(self, row: list) -> RawRecord:
        """
        Map one CSV row to a record using the current column map.

        Raises:
            MissingCatalogIdError: If NORAD_CAT_ID is empty
            MalformedRowError: If the row is short or its epoch is unparseable
        """
        if len(row) < len(self._columns):
            raise MalformedRowError(f"expected {len(self._columns)} columns, got {len(row)}")

        def col(name: str) -> str:
            index = self._columns.get(name)
            return row[index].strip() if index is not None else ""

        catalog_id = col("NORAD_CAT_ID")
        if not catalog_id:
            raise MissingCatalogIdError(f"Missing NORAD_CAT_ID: {row}")

        epoch = parse_epoch(col("EPOCH"))
        if epoch is None:
            raise MalformedRowError(f"unparseable epoch {col('EPOCH')!r} for {catalog_id}")

        line1 = col("TLE_LINE1")
        line2 = col("TLE_LINE2")
        if not line1.startswith("1 ") or not line2.startswith("2 "):
            raise MalformedRowError(f"invalid element lines for {catalog_id}")

        return RawRecord(
            catalog_id=catalog_id,
            epoch=epoch,
            rev_at_epoch=col("REV_AT_EPOCH"),
            line1=line1,
            line2=line2,
            object_designator=col("OBJECT_ID"),
            # Archive rows are comma separated and unquoted
            name=col("OBJECT_NAME").replace(",", "."),
            object_class=col("OBJECT_TYPE"),
            size_class=col("RCS_SIZE"),
            country_code=col("COUNTRY_CODE"),
            launch_date=col("LAUNCH_DATE"),
            launch_site=col("SITE"),
            decay_date=col("DECAY_DATE"),
        )
