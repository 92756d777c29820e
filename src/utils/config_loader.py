"""
Configuration management for the satellite history archive.
Loads YAML configs with validation.
"""

from datetime import date
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class ArchiveConfig(BaseModel):
    """Configuration for the offline aggregation pass."""

    raw_dir: Path = Field(Path("resources/raw"), description="Directory of raw gp_history extracts")
    output_dir: Path = Field(Path("resources/filtered"), description="Directory for bucket files and catalog")

    # Thinning
    gap_threshold_days: float = Field(14.0, gt=0, description="Gap that commits the pending element set")

    # Writer stage
    channel_capacity: int = Field(1024, ge=1, description="Bounded channel size between parser and writer")
    write_batch_size: int = Field(256, ge=1, description="Max samples handed to the writer thread at once")

    # Bucket schedule
    history_start: date = Field(date(1959, 1, 1), description="Start of the first bucket")
    history_end: date = Field(date(2021, 9, 30), description="Last bucket start (inclusive)")
    catalog_filename: str = Field("catalog.csv.gz", description="Merged catalog file name")

    class Config:
        """Pydantic config."""
        validate_assignment = True


class RuntimeConfig(BaseModel):
    """Configuration for the runtime dataset manager."""

    archive_dir: Path = Field(Path("resources/filtered"), description="Local archive directory")
    archive_url: Optional[str] = Field(None, description="Base URL serving the archive (overrides archive_dir)")

    # Retention window
    accuracy_days: float = Field(14.0, gt=0, description="How far an element set is trusted from its epoch")
    lookahead_days: float = Field(30.0, gt=0, description="How far ahead of current time buckets are loaded")
    purge_buffer_days: float = Field(365.0, ge=0, description="How far ahead of current time samples are kept")
    purge_batch: int = Field(1000, ge=1, description="Objects purged per tick = catalog size / purge_batch")

    # Interpolation
    update_period_seconds: float = Field(60.0, gt=0, description="Model time between propagator calls")

    # Playback
    tick_seconds: float = Field(1.0 / 30.0, gt=0, description="Real time between playback ticks")
    speed: float = Field(60.0, gt=0, description="Model seconds per real second")

    class Config:
        """Pydantic config."""
        validate_assignment = True


class Config:
    """Main configuration manager."""

    def __init__(self, config_dir: Path = Path("config")):
        """
        Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files
        """
        self.config_dir = config_dir
        self.archive: Optional[ArchiveConfig] = None
        self.runtime: Optional[RuntimeConfig] = None

    def load_all(self):
        """Load all configuration files."""
        self.archive = self.load_config("archive.yaml", ArchiveConfig)
        self.runtime = self.load_config("runtime.yaml", RuntimeConfig)

    def load_config(self, filename: str, config_class: type[BaseModel]) -> BaseModel:
        """
        Load and validate a configuration file.

        Args:
            filename: Config file name
            config_class: Pydantic model class for validation

        Returns:
            Validated configuration object

        Example:
            >>> config = Config()
            >>> runtime = config.load_config("runtime.yaml", RuntimeConfig)
            >>> print(f"Loading {runtime.lookahead_days} days ahead")
        """
        filepath = self.config_dir / filename

        if not filepath.exists():
            # Return default configuration
            return config_class()

        with open(filepath, 'r') as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            return config_class()

        return config_class(**config_dict)

    def save_config(self, config: BaseModel, filename: str):
        """
        Save configuration to YAML file.

        Args:
            config: Configuration object to save
            filename: Output filename
        """
        filepath = self.config_dir / filename
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w') as f:
            yaml.dump(config.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)

    def create_default_configs(self):
        """Create default configuration files if they don't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        configs = [
            ("archive.yaml", ArchiveConfig()),
            ("runtime.yaml", RuntimeConfig()),
        ]

        for filename, config in configs:
            filepath = self.config_dir / filename
            if not filepath.exists():
                self.save_config(config, filename)
