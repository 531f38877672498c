# ========================
# lifexp/pipeline/orchestrator.py
# ========================

"""
Pipeline Orchestrator Module

Main orchestrator class that coordinates the entire pipeline:
load, explore, clean, aggregate, save.
"""

import logging
from typing import Optional
from pathlib import Path

from .ingestion import CSVReader
from .exploration import DataExplorer
from .cleaning import DataCleaner
from .transformation import DataAggregator
from .storage import DataSaver
from ..utils.performance_monitor import monitor_performance
from ..utils.config import Config

logger = logging.getLogger(__name__)

class DataPipeline:
    """
    Orchestrates the life expectancy pipeline.
    Stages run strictly in sequence on one table owned by the run.
    """

    def __init__(self,
                 input_file: str,
                 output_dir: str,
                 chunk_size: int = 1000,
                 config: Optional[Config] = None):
        """
        Initialize the data pipeline.

        Args:
            input_file (str): Path to input CSV file
            output_dir (str): Directory for output files
            chunk_size (int): Number of rows read per chunk
            config (Config): Configuration object
        """
        self.input_file = input_file
        self.output_dir = output_dir
        self.chunk_size = chunk_size
        self.config = config or Config()

        self.reader = CSVReader(self.input_file)
        self.cleaner = DataCleaner(
            missing_value_policy=self.config.MISSING_VALUE_POLICY,
            negative_value_policy=self.config.NEGATIVE_VALUE_POLICY
        )
        self.aggregator = DataAggregator(top_n_limit=self.config.TOP_N_LIMIT)
        self.saver = DataSaver(self.output_dir)
        self.table = None

        logger.info("DataPipeline initialized:")
        logger.info(f"  Input: {self.input_file}")
        logger.info(f"  Output: {self.output_dir}")
        logger.info(f"  Missing value policy: {self.config.MISSING_VALUE_POLICY}")

    def run(self) -> dict:
        """
        Execute the complete pipeline from start to finish.

        Returns:
            dict: Summary of processing results and saved files

        Raises:
            TypeConversionError: If the input holds non-numeric data in a numeric column
        """
        logger.info(f"Starting data pipeline for '{self.input_file}'...")

        with monitor_performance("Life Expectancy Pipeline") as monitor:
            self.table = self.reader.load_table(self.chunk_size)
            monitor.add_checkpoint('load', len(self.table))

            logger.info("Exploring raw data...")
            exploration = DataExplorer(self.table).explore()
            monitor.add_checkpoint('explore', len(self.table))

            logger.info("Cleaning data...")
            cleaning_report = self.cleaner.clean(self.table)
            monitor.add_checkpoint('clean', len(self.table))

            logger.info("Building reports...")
            reports = self.aggregator.build_reports(self.table)
            monitor.add_checkpoint('aggregate', len(self.table))

            summary = {
                'input_file': self.input_file,
                'exploration': exploration,
                'cleaning_report': cleaning_report,
                'data_quality_stats': self.cleaner.get_statistics(),
                'aggregation_summary': self.aggregator.get_aggregation_summary(),
            }

            logger.info("Saving cleaned data and reports...")
            saved_files = self.saver.save_all_data(self.table, reports, summary)
            saved_files['data_dictionary'] = self.saver.create_data_dictionary()
            monitor.add_checkpoint('save', len(self.table))

        results = {
            'pipeline_status': 'completed',
            'input_file': self.input_file,
            'output_directory': self.output_dir,
            'saved_files': saved_files,
            'exploration': exploration,
            'cleaning_report': cleaning_report,
            'data_quality_stats': self.cleaner.get_statistics(),
            'reports': reports,
            'processing_stats': self._get_processing_stats(monitor.summary),
        }

        logger.info("Pipeline finished successfully.")
        self._log_final_summary(results)

        return results

    def _get_processing_stats(self, performance: Optional[dict]) -> dict:
        """Get processing statistics."""
        return {
            **self.aggregator.get_aggregation_summary(),
            'chunk_size': self.chunk_size,
            'input_file_size': Path(self.input_file).stat().st_size if Path(self.input_file).exists() else 0,
            'performance': performance or {},
        }

    def _log_final_summary(self, results: dict) -> None:
        """Log final pipeline summary."""
        logger.info("="*60)
        logger.info("PIPELINE EXECUTION SUMMARY")
        logger.info("="*60)

        quality_stats = results['data_quality_stats']
        cleaning = results['cleaning_report']

        logger.info(f"Input file: {results['input_file']}")
        logger.info(f"Records in/out: {cleaning['records_in']:,} -> {cleaning['records_out']:,}")
        logger.info(f"Data quality rate: {quality_stats['success_rate']:.1f}%")
        logger.info(f"Overall average growth: {results['reports']['overall_average_growth']}")
        logger.info(f"Output files generated: {len(results['saved_files'])}")
        logger.info(f"Output directory: {results['output_directory']}")

        for dataset_type, file_path in results['saved_files'].items():
            logger.info(f"  - {dataset_type}: {file_path}")

        logger.info("="*60)

    def validate_input(self) -> bool:
        """
        Validate input file exists and is readable.

        Returns:
            bool: True if input is valid
        """
        input_path = Path(self.input_file)
        if not input_path.exists():
            logger.error(f"Input file does not exist: {self.input_file}")
            return False

        if not input_path.is_file():
            logger.error(f"Input path is not a file: {self.input_file}")
            return False

        try:
            with open(self.input_file, 'r', encoding='utf-8') as f:
                f.readline()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read input file: {e}")
            return False

        logger.info(f"Input validation passed: {self.input_file}")
        return True
