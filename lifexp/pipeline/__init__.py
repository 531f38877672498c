# ========================
# lifexp/pipeline/__init__.py
# ========================

"""
Data Pipeline Package

This package contains all core components for the life expectancy pipeline:
- table: In-memory table with Country and Country/Year indices
- ingestion: CSV reading
- exploration: Read-only dataset summaries
- cleaning: Type coercion, imputation, deduplication and backfill
- transformation: Rankings, trends and growth reports
- storage: Output management
- orchestrator: Pipeline coordination
"""

from .table import LifeExpectancyTable, UnknownFieldError
from .ingestion import CSVReader
from .exploration import DataExplorer
from .cleaning import DataCleaner, TypeConversionError
from .transformation import DataAggregator
from .storage import DataSaver
from .orchestrator import DataPipeline

__all__ = [
    'LifeExpectancyTable',
    'UnknownFieldError',
    'CSVReader',
    'DataExplorer',
    'DataCleaner',
    'TypeConversionError',
    'DataAggregator',
    'DataSaver',
    'DataPipeline'
]

__version__ = "1.0.0"
