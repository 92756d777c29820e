#!/usr/bin/env python3
"""
CLI script for building the element-set archive.

Reads raw gp_history extracts in sorted order, thins each object's element
sets, writes one compressed file per calendar bucket and the merged catalog.
"""

import sys
from pathlib import Path
import json
import click

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.archive import AggregationPipeline, ArchiveError
from src.utils.config_loader import ArchiveConfig, Config
from src.utils.logging_config import LogConfig, get_logger

logger = get_logger("archive")


@click.command()
@click.option(
    '--config-dir',
    '-c',
    default='config',
    type=click.Path(),
    help='Directory containing archive.yaml'
)
@click.option(
    '--raw-dir',
    '-i',
    type=click.Path(exists=True, file_okay=False),
    help='Directory of raw gp_history extracts (overrides config)'
)
@click.option(
    '--output-dir',
    '-o',
    type=click.Path(file_okay=False),
    help='Output directory for bucket files and catalog (overrides config)'
)
@click.option(
    '--gap-days',
    type=float,
    help='Thinning gap threshold in days (overrides config)'
)
@click.option(
    '--stats-file',
    type=click.Path(dir_okay=False),
    help='Write run statistics as JSON'
)
@click.option(
    '--progress/--no-progress',
    default=True,
    help='Show a progress bar'
)
@click.option(
    '--log-dir',
    type=click.Path(file_okay=False),
    help='Directory for log files (default: data/logs)'
)
def main(config_dir, raw_dir, output_dir, gap_days, stats_file, progress, log_dir):
    """
    Aggregate raw element-set history into the bucketed archive.

    Examples:
        # Use config/archive.yaml (or defaults)
        python scripts/aggregate_history.py

        # Explicit directories
        python scripts/aggregate_history.py -i resources/raw -o resources/filtered
    """
    if log_dir:
        LogConfig.setup(log_dir=Path(log_dir))

    config: ArchiveConfig = Config(Path(config_dir)).load_config("archive.yaml", ArchiveConfig)
    if raw_dir:
        config.raw_dir = Path(raw_dir)
    if output_dir:
        config.output_dir = Path(output_dir)
    if gap_days:
        config.gap_threshold_days = gap_days

    click.echo(f"📂 Raw extracts: {config.raw_dir}")
    click.echo(f"💾 Output:       {config.output_dir}")
    click.echo()

    pipeline = AggregationPipeline(config, show_progress=progress)
    try:
        result = pipeline.run()
    except (ArchiveError, FileNotFoundError) as e:
        logger.error(f"Aggregation failed: {e}")
        click.echo(f"❌ Aggregation failed: {e}", err=True)
        sys.exit(1)

    click.echo()
    click.echo("✅ Aggregation complete")
    click.echo(f"   Files processed: {result.files_processed}")
    click.echo(f"   Records read:    {result.records_read} ({result.rows_skipped} skipped)")
    click.echo(f"   Element sets:    {result.samples_written} ({result.samples_dropped} outside schedule)")
    click.echo(f"   Buckets:         {result.buckets_written}")
    click.echo(f"   Objects:         {result.objects} from {result.launches} launches")
    click.echo(f"   Elapsed:         {result.elapsed_s:.1f}s")

    if stats_file:
        with open(stats_file, 'w') as f:
            json.dump(result.to_dict(), f, indent=2)
        click.echo(f"   Stats written to {stats_file}")


if __name__ == '__main__':
    main()
