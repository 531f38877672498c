# ========================
# lifexp/utils/__init__.py
# ========================

"""
Utilities Package

Common utilities and helper functions for the life expectancy pipeline.
"""

from .config import Config
from .performance_monitor import monitor_performance, PerformanceMonitor
from .logging_setup import setup_logging
from .data_generator import DataGenerator
from .job_metadata import JobMetadataManager
from .rounding import round_half_up

__all__ = [
    'Config',
    'monitor_performance',
    'PerformanceMonitor',
    'setup_logging',
    'DataGenerator',
    'JobMetadataManager',
    'round_half_up'
]
