"""
Structured logging configuration for the satellite history archive.
Provides JSON-formatted logs per component for the ingest and runtime paths.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger


class LogConfig:
    """Centralized logging configuration."""

    LOG_DIR = Path("data/logs")
    LOG_FORMAT = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )
    COMPONENTS = (
        "archive",
        "runtime",
        "propagation",
    )

    @classmethod
    def setup(cls, log_level: str = "INFO", enable_json: bool = True, log_dir: Optional[Path] = None):
        """
        Set up logging for the entire application.

        Args:
            log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            enable_json: Whether to enable JSON logging to files
            log_dir: Directory for log files (default: LOG_DIR)
        """
        log_dir = Path(log_dir) if log_dir else cls.LOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)

        # Remove default logger
        logger.remove()

        logger.add(
            sys.stderr,
            format=cls.LOG_FORMAT,
            level=log_level,
            colorize=True,
        )

        if enable_json:
            for component in cls.COMPONENTS:
                logger.add(
                    log_dir / f"{component}.jsonl",
                    format="{message}",
                    level="INFO",
                    rotation="1 day",
                    retention="30 days",
                    compression="zip",
                    serialize=True,
                    filter=lambda record, comp=component: record["extra"].get("component") == comp,
                )

        logger.add(
            log_dir / "application.log",
            format=cls.LOG_FORMAT,
            level=log_level,
            rotation="500 MB",
            retention="7 days",
            compression="zip",
        )

        logger.info(f"Logging initialized at level {log_level}")


def get_logger(component: str):
    """
    Get a logger for a specific component.

    Args:
        component: Component name (e.g., 'archive', 'runtime')

    Returns:
        Configured logger instance

    Example:
        >>> from src.utils.logging_config import get_logger
        >>> logger = get_logger("archive")
        >>> logger.info("Bucket rotated", bucket="1998-11-15")
    """
    return logger.bind(component=component)


# Initialize logging on module import with default settings
# Can be reconfigured by calling LogConfig.setup() explicitly;
# SATELLITE_HISTORY_LOG_DIR overrides the log directory
try:
    LogConfig.setup(log_level="INFO", enable_json=True, log_dir=os.environ.get("SATELLITE_HISTORY_LOG_DIR"))
except Exception as e:
    # Fallback to basic logging if setup fails
    logging.basicConfig(level=logging.INFO)
    logging.warning(f"Failed to initialize advanced logging: {e}")
