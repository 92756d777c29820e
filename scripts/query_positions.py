#!/usr/bin/env python3
"""
CLI script for querying object positions from the archive.

Loads the catalog and the buckets around the requested time through the
DatasetManager and prints interpolated ECI positions.
"""

import sys
import asyncio
from pathlib import Path
from datetime import datetime
import click
import pandas as pd

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.archive.buckets import BucketSchedule
from src.archive.models import to_millis
from src.runtime import DatasetManager, HttpArchiveSource, LocalArchiveSource
from src.utils.config_loader import ArchiveConfig, Config, RuntimeConfig
from src.utils.logging_config import get_logger

logger = get_logger("runtime")


async def _query(manager: DatasetManager, query_time: int, catalog_ids) -> pd.DataFrame:
    await manager.advance_to(query_time)
    snapshot = manager.get_all_positions(query_time)
    frame = pd.DataFrame(snapshot, columns=["catalog_id", "name", "object_class", "x", "y", "z"])
    if catalog_ids:
        frame = frame[frame["catalog_id"].isin(catalog_ids)]
    return frame


@click.command()
@click.option(
    '--config-dir',
    '-c',
    default='config',
    type=click.Path(),
    help='Directory containing runtime.yaml and archive.yaml'
)
@click.option(
    '--time',
    '-t',
    'query_time',
    required=True,
    type=click.DateTime(formats=['%Y-%m-%d', '%Y-%m-%dT%H:%M:%S']),
    help='UTC time to query'
)
@click.option(
    '--object',
    '-n',
    'catalog_ids',
    multiple=True,
    help='Catalog id to report (repeatable; default: all)'
)
@click.option(
    '--archive-dir',
    type=click.Path(exists=True, file_okay=False),
    help='Local archive directory (overrides config)'
)
@click.option(
    '--output',
    '-o',
    type=click.Path(dir_okay=False),
    help='Write positions to CSV instead of printing'
)
def main(config_dir, query_time: datetime, catalog_ids, archive_dir, output):
    """
    Print ECI positions (km) of catalog objects at a UTC time.

    Examples:
        python scripts/query_positions.py -t 2000-06-01 -n 25544
        python scripts/query_positions.py -t 1995-01-01T12:00:00 -o positions.csv
    """
    config = Config(Path(config_dir))
    runtime: RuntimeConfig = config.load_config("runtime.yaml", RuntimeConfig)
    archive: ArchiveConfig = config.load_config("archive.yaml", ArchiveConfig)
    if archive_dir:
        runtime.archive_dir = Path(archive_dir)
        runtime.archive_url = None

    if runtime.archive_url:
        source = HttpArchiveSource(runtime.archive_url, archive.catalog_filename)
    else:
        source = LocalArchiveSource(runtime.archive_dir, archive.catalog_filename)

    schedule = BucketSchedule.build(archive.history_start, archive.history_end)
    manager = DatasetManager(source, schedule, config=runtime)

    try:
        manager.load_catalog()
        frame = asyncio.run(_query(manager, to_millis(query_time), list(catalog_ids)))
    except (OSError, ValueError) as e:
        logger.error(f"Query failed: {e}")
        click.echo(f"❌ Query failed: {e}", err=True)
        sys.exit(1)

    if output:
        frame.to_csv(output, index=False)
        click.echo(f"✅ Wrote {len(frame)} positions to {output}")
    elif frame.empty:
        click.echo("No trackable objects at that time")
    else:
        click.echo(frame.to_string(index=False))


if __name__ == '__main__':
    main()
