# ========================
# lifexp/pipeline/storage.py
# ========================

"""
Data Storage Module

Writes the cleaned table and the reporting views to the output directory.
"""

import csv
import json
import logging
from typing import Dict, List, Any
from pathlib import Path

from .table import LifeExpectancyTable

logger = logging.getLogger(__name__)

# Report name -> (file name, column order)
REPORT_FILES = {
    'composite_ranking': (
        'composite_ranking.csv',
        ['country', 'avg_life_expectancy', 'avg_gdp', 'avg_schooling',
         'avg_immunization_rate', 'composite_score'],
    ),
    'global_trend': (
        'global_trend.csv',
        ['year', 'global_avg_life_expectancy'],
    ),
    'top_life_expectancy_by_year': (
        'top_life_expectancy_by_year.csv',
        ['year', 'country', 'avg_life_expectancy'],
    ),
    'expenditure_vs_life_expectancy': (
        'expenditure_vs_life_expectancy.csv',
        ['country', 'avg_health_expenditure', 'avg_life_expectancy'],
    ),
    'largest_improvement': (
        'largest_improvement.csv',
        ['country', 'life_expectancy_change'],
    ),
    'largest_decline': (
        'largest_decline.csv',
        ['country', 'life_expectancy_change'],
    ),
    'yearly_growth': (
        'yearly_growth.csv',
        ['year', 'avg_growth'],
    ),
}

CLEANED_TABLE_FILE = 'cleaned_life_expectancy.csv'
SUMMARY_FILE = 'pipeline_summary.json'


class DataSaver:
    """
    Saves the cleaned table and the DataAggregator reports as CSV and JSON.
    """

    def __init__(self, output_dir: str = "data/processed"):
        """
        Initialize the data saver.

        Args:
            output_dir (str): Directory to save output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"DataSaver initialized with output directory: {self.output_dir}")

    def save_all_data(self, table: LifeExpectancyTable, reports: Dict[str, Any],
                      summary: Dict[str, Any]) -> Dict[str, str]:
        """
        Save the cleaned table, every report and the run summary.

        Args:
            table: Cleaned LifeExpectancyTable
            reports: Output of DataAggregator.build_reports()
            summary: JSON-serializable run summary

        Returns:
            dict: Mapping of data type to saved file path
        """
        saved_files = {}

        try:
            saved_files['cleaned_table'] = self.save_cleaned_table(table)
            for name in REPORT_FILES:
                if name in reports:
                    saved_files[name] = self.save_report(name, reports[name])

            saved_files['summary'] = self._save_summary(summary)

            logger.info(f"All data saved successfully to {len(saved_files)} files")
            return saved_files

        except Exception as e:
            logger.error(f"Error saving data: {e}")
            raise

    def save_cleaned_table(self, table: LifeExpectancyTable) -> str:
        """Save the cleaned records, ordered by Row_ID."""
        file_path = self.output_dir / CLEANED_TABLE_FILE
        self._write_csv(file_path, table.fieldnames, table.snapshot())
        return str(file_path)

    def save_report(self, name: str, rows: List[Dict[str, Any]]) -> str:
        """
        Save one report.

        Raises:
            KeyError: If the report name is not a known report
        """
        file_name, headers = REPORT_FILES[name]
        file_path = self.output_dir / file_name
        self._write_csv(file_path, headers, rows)
        return str(file_path)

    def _save_summary(self, summary_data: Dict) -> str:
        """Save the run summary as JSON."""
        file_path = self.output_dir / SUMMARY_FILE

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(summary_data, f, indent=2, ensure_ascii=False, default=str)

        logger.info(f"Summary saved to {file_path}")
        return str(file_path)

    def _write_csv(self, file_path: Path, headers: List[str], data_items: List[Dict]) -> None:
        """Write data to CSV file. Missing values are written as empty cells."""
        try:
            with open(file_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=headers, extrasaction='ignore')
                writer.writeheader()
                writer.writerows(data_items)

            logger.info(f"Saved {len(data_items)} records to {file_path}")

        except Exception as e:
            logger.error(f"Error writing CSV file {file_path}: {e}")
            raise

    def create_data_dictionary(self) -> str:
        """Create a data dictionary explaining all output files."""
        file_path = self.output_dir / "DATA_DICTIONARY.md"

        content = """# Data Dictionary

This document describes the structure and content of all generated data files.

## Files Overview

### 1. cleaned_life_expectancy.csv
The worldlifexpectancy table after cleaning: numeric columns typed, the
`under-fivedeaths` column renamed to `under_fivedeaths`, one row per
Country/Year, empty Status values backfilled.

### 2. composite_ranking.csv
Countries ranked by composite score.

| Column | Type | Description |
|--------|------|-------------|
| country | string | Country name |
| avg_life_expectancy | float | Average life expectancy (years) |
| avg_gdp | float | Average GDP |
| avg_schooling | float | Average years of schooling |
| avg_immunization_rate | float | Average of (Polio + Diphtheria) / 2 |
| composite_score | float | 0.4*LE + 0.3*GDP + 0.2*Schooling + 0.1*Immunization |

### 3. global_trend.csv

| Column | Type | Description |
|--------|------|-------------|
| year | integer | Observation year |
| global_avg_life_expectancy | float | Average life expectancy across countries |

### 4. top_life_expectancy_by_year.csv
First rows of the per-year, per-country listing ordered by year, then life
expectancy descending.

| Column | Type | Description |
|--------|------|-------------|
| year | integer | Observation year |
| country | string | Country name |
| avg_life_expectancy | float | Life expectancy for that country and year |

### 5. expenditure_vs_life_expectancy.csv

| Column | Type | Description |
|--------|------|-------------|
| country | string | Country name |
| avg_health_expenditure | float | Average health expenditure (% of GDP) |
| avg_life_expectancy | float | Average life expectancy (years) |

### 6. largest_improvement.csv / largest_decline.csv

| Column | Type | Description |
|--------|------|-------------|
| country | string | Country name |
| life_expectancy_change | float | Highest minus lowest life expectancy |

The decline file keeps rows whose change is negative. The change is a
max-minus-min spread, so that file only ever holds the header.

### 7. yearly_growth.csv

| Column | Type | Description |
|--------|------|-------------|
| year | integer | Observation year |
| avg_growth | float | Change in global average versus the previous year (2 decimals) |

### 8. pipeline_summary.json
Exploration figures, cleaning report, quality statistics and the overall
average growth percentage.

## Data Quality Notes

- Averages ignore missing values
- Values are rounded half-up to 1 decimal unless noted
- Rows with negative life expectancy or mortality counts are listed in the
  summary; they are only removed when the negative-value policy is `drop`
"""

        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)

        logger.info(f"Data dictionary created at {file_path}")
        return str(file_path)
