# ========================
# lifexp/utils/performance_monitor.py
# ========================

"""
Performance Monitoring Utilities

Times each pipeline stage and tracks process memory with psutil.
"""

import time
import os
import logging
from contextlib import contextmanager
from typing import Dict, Any, Optional

import psutil

logger = logging.getLogger(__name__)

class PerformanceMonitor:
    """
    Tracks wall time, peak memory and per-stage checkpoints for one pipeline run.
    """

    def __init__(self, name: str = "Pipeline"):
        """
        Initialize performance monitor.

        Args:
            name (str): Name for this monitoring session
        """
        self.name = name
        self.start_time = None
        self.end_time = None
        self.peak_memory_mb = 0.0
        self.records_processed = 0
        self.checkpoints = []
        self.summary: Optional[Dict[str, Any]] = None
        self._process = psutil.Process(os.getpid())

        logger.debug(f"PerformanceMonitor initialized: {name}")

    def start_monitoring(self) -> None:
        """Start performance monitoring."""
        self.start_time = time.time()
        self.peak_memory_mb = self._get_memory_usage_mb()

        logger.info(f"{self.name} - Performance monitoring started")
        logger.info(f"Initial memory usage: {self.peak_memory_mb:.2f} MB")

    def add_checkpoint(self, name: str, records: int = 0,
                       metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        Record the end of a pipeline stage.

        Args:
            name (str): Stage name
            records (int): Records the stage handled
            metadata (dict): Optional metadata to store
        """
        now = time.time()
        previous = self.checkpoints[-1]['timestamp'] if self.checkpoints else (self.start_time or now)
        memory_mb = self._get_memory_usage_mb()
        self.peak_memory_mb = max(self.peak_memory_mb, memory_mb)
        self.records_processed = max(self.records_processed, records)

        checkpoint = {
            'name': name,
            'timestamp': now,
            'stage_seconds': now - previous,
            'memory_mb': memory_mb,
            'records': records,
            'metadata': metadata or {}
        }
        self.checkpoints.append(checkpoint)
        logger.debug(f"Checkpoint '{name}': {checkpoint}")

    def stop_monitoring(self) -> Dict[str, Any]:
        """
        Stop monitoring and return performance summary.

        Returns:
            dict: Performance statistics
        """
        self.end_time = time.time()
        total_time = self.end_time - self.start_time if self.start_time else 0
        throughput = self.records_processed / total_time if total_time > 0 else 0

        summary = {
            'name': self.name,
            'total_processing_time_seconds': total_time,
            'records_processed': self.records_processed,
            'average_throughput_records_per_second': throughput,
            'peak_memory_usage_mb': self.peak_memory_mb,
            'stages': {c['name']: c['stage_seconds'] for c in self.checkpoints},
        }

        self._log_summary(summary)
        return summary

    def _log_summary(self, summary: Dict[str, Any]) -> None:
        logger.info(
            f"{summary['name']} - {summary['records_processed']:,} records in "
            f"{summary['total_processing_time_seconds']:.2f}s, "
            f"peak memory {summary['peak_memory_usage_mb']:.2f} MB"
        )
        for stage, seconds in summary['stages'].items():
            logger.info(f"  {stage}: {seconds:.3f}s")

    def _get_memory_usage_mb(self) -> float:
        """Get current resident memory in MB."""
        return self._process.memory_info().rss / (1024 * 1024)

@contextmanager
def monitor_performance(name: str = "Pipeline"):
    """
    Context manager for easy performance monitoring.

    Args:
        name (str): Name for this monitoring session

    Yields:
        PerformanceMonitor: Monitor instance
    """
    monitor = PerformanceMonitor(name)
    monitor.start_monitoring()
    try:
        yield monitor
    finally:
        monitor.summary = monitor.stop_monitoring()
