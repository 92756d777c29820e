"""
Performance metrics for archive loading and ingestion.
"""

import time
from contextlib import contextmanager
from typing import Dict, Optional
import numpy as np


class PerformanceMetrics:
    """Track and report timing and throughput metrics."""

    def __init__(self):
        self.metrics: Dict[str, list] = {}

    def record(self, metric_name: str, value: float):
        """
        Record a metric value.

        Args:
            metric_name: Name of the metric (e.g. 'bucket_load_s')
            value: Metric value
        """
        self.metrics.setdefault(metric_name, []).append(value)

    def get_stats(self, metric_name: str) -> Dict[str, float]:
        """
        Get statistics for a metric.

        Args:
            metric_name: Name of the metric

        Returns:
            Dictionary with mean, max, total and count; empty if never recorded
        """
        if metric_name not in self.metrics:
            return {}

        values = np.array(self.metrics[metric_name])
        return {
            "mean": float(np.mean(values)),
            "max": float(np.max(values)),
            "total": float(np.sum(values)),
            "count": len(values),
        }

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Get summary of all metrics."""
        return {name: self.get_stats(name) for name in self.metrics}

    def reset(self):
        """Clear all metrics."""
        self.metrics.clear()


@contextmanager
def timer(metric_name: str, metrics: Optional[PerformanceMetrics] = None):
    """
    Context manager for timing code blocks.

    Args:
        metric_name: Name for the timing metric
        metrics: Optional PerformanceMetrics instance to record to

    Example:
        >>> metrics = PerformanceMetrics()
        >>> with timer("bucket_load_s", metrics):
        ...     manager.apply_bucket(bucket, payload)
        >>> print(metrics.get_stats("bucket_load_s"))
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if metrics:
            metrics.record(metric_name, elapsed)
