"""
Archive sources: where the runtime reads bucket and catalog bytes from.

Adapters only move bytes. Failures are raised to the caller.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import requests

from src.archive.archive_io import BUCKET_SUFFIX
from src.utils.logging_config import get_logger

logger = get_logger("runtime")

DEFAULT_CATALOG_FILENAME = "catalog.csv.gz"


class ArchiveSource(Protocol):
    def fetch_bucket(self, name: str) -> bytes:
        ...

    def fetch_catalog(self) -> bytes:
        ...


class LocalArchiveSource:
    """Read archive files from a directory written by the aggregation pipeline."""

    def __init__(self, archive_dir: Path, catalog_filename: str = DEFAULT_CATALOG_FILENAME):
        self.archive_dir = Path(archive_dir)
        self.catalog_filename = catalog_filename

    def _read(self, filename: str) -> bytes:
        filepath = self.archive_dir / filename
        if not filepath.exists():
            logger.error(f"Archive file not found: {filepath}")
            raise FileNotFoundError(f"Archive file not found: {filepath}")
        return filepath.read_bytes()

    def fetch_bucket(self, name: str) -> bytes:
        return self._read(f"{name}{BUCKET_SUFFIX}")

    def fetch_catalog(self) -> bytes:
        return self._read(self.catalog_filename)


class HttpArchiveSource:
    """
    Fetch archive files from a static HTTP server.

    Each fetch is a standalone request, so concurrent loads from worker
    threads share no connection state.
    """

    def __init__(
        self,
        base_url: str,
        catalog_filename: str = DEFAULT_CATALOG_FILENAME,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.catalog_filename = catalog_filename
        self.timeout = timeout

    def _get(self, filename: str) -> bytes:
        url = f"{self.base_url}/{filename}"
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch {url}: {e}")
            raise
        return response.content

    def fetch_bucket(self, name: str) -> bytes:
        return self._get(f"{name}{BUCKET_SUFFIX}")

    def fetch_catalog(self) -> bytes:
        return self._get(self.catalog_filename)
