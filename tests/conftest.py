"""
Shared fixtures: element sets, raw gp_history rows and extract files.
"""

import csv
import gzip
import io
import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Log files go to a temp dir; read when logging_config is first imported
os.environ.setdefault("SATELLITE_HISTORY_LOG_DIR", tempfile.mkdtemp(prefix="satellite-history-logs-"))

from src.archive.models import ElementSample, to_millis
from src.archive.raw_records import RAW_COLUMNS

ISS_LINE1 = "1 25544U 98067A   08264.51782528 -.00002182  00000-0 -11606-4 0  2927"
ISS_LINE2 = "2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.72125391563537"

BASE_DATE = datetime(2000, 1, 1)


def day(n: float) -> int:
    """UTC ms ``n`` days after 2000-01-01."""
    return to_millis(BASE_DATE + timedelta(days=n))


@pytest.fixture
def make_sample():
    def _make(catalog_id="25544", epoch=None, rev="1000"):
        return ElementSample(
            catalog_id=catalog_id,
            epoch=day(0) if epoch is None else epoch,
            rev_at_epoch=rev,
            line1=ISS_LINE1,
            line2=ISS_LINE2,
        )
    return _make


@pytest.fixture
def raw_row():
    """Build one gp_history row (list of strings) in the default column order."""
    def _row(catalog_id="25544", epoch=None, **fields):
        values = {
            "CCSDS_OMM_VERS": "2.0",
            "OBJECT_NAME": "ISS (ZARYA)",
            "OBJECT_ID": "1998-067A",
            "EPOCH": (epoch or BASE_DATE).strftime("%Y-%m-%dT%H:%M:%S.%f"),
            "NORAD_CAT_ID": catalog_id,
            "REV_AT_EPOCH": "1000",
            "OBJECT_TYPE": "PAYLOAD",
            "RCS_SIZE": "LARGE",
            "COUNTRY_CODE": "ISS",
            "LAUNCH_DATE": "1998-11-20",
            "SITE": "TTMTR",
            "DECAY_DATE": "",
            "TLE_LINE0": "0 ISS (ZARYA)",
            "TLE_LINE1": ISS_LINE1,
            "TLE_LINE2": ISS_LINE2,
        }
        values.update(fields)
        return [values.get(name, "") for name in RAW_COLUMNS]
    return _row


@pytest.fixture
def write_extract():
    """Write rows as a gzip-compressed, fully quoted extract with a header."""
    def _write(path: Path, rows, header: bool = True) -> Path:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        if header:
            writer.writerow(RAW_COLUMNS)
        writer.writerows(rows)
        path.parent.mkdir(parents=True, exist_ok=True)
        with gzip.open(path, "wt", encoding="utf-8", newline="") as f:
            f.write(buffer.getvalue())
        return path
    return _write
