# ========================
# lifexp/pipeline/exploration.py
# ========================

"""
Data Exploration Module

Read-only summaries used to size up the dataset before and after cleaning.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .table import (
    LifeExpectancyTable, COUNTRY, YEAR, LIFE_EXPECTANCY, GDP, is_missing,
)
from ..utils.rounding import mean

logger = logging.getLogger(__name__)


def as_number(value: Any) -> Optional[float]:
    """Lenient numeric parse; missing or unparseable values become None."""
    if is_missing(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class DataExplorer:
    """
    Summary queries over a LifeExpectancyTable. Nothing here mutates the table,
    and values are parsed leniently so raw string tables can be explored too.
    """

    def __init__(self, table: LifeExpectancyTable):
        self.table = table

    def dataset_bounds(self) -> Tuple[Optional[int], Optional[int], int]:
        """
        Returns:
            tuple: (first year, last year, number of distinct countries)
        """
        years = [as_number(r.get(YEAR)) for r in self.table]
        years = [int(y) for y in years if y is not None]
        countries = {r.get(COUNTRY) for r in self.table if not is_missing(r.get(COUNTRY))}

        if not years:
            return None, None, len(countries)
        return min(years), max(years), len(countries)

    def null_counts(self, fields: Iterable[str]) -> Dict[str, int]:
        """
        Count missing (None or empty) values per field.

        Raises:
            UnknownFieldError: If a field is not a column of the table
        """
        counts = {}
        for field in fields:
            counts[field] = sum(1 for value in self.table.column(field) if is_missing(value))
        return counts

    def per_country_average(self, field: str) -> Dict[Any, Optional[float]]:
        """
        Mean of a numeric field per country, ordered by mean descending.
        Countries with no usable value come last with a mean of None.
        """
        self.table.require_field(field)

        averages = {}
        for country in self.table.countries():
            values = [as_number(r.get(field)) for r in self.table.rows_for_country(country)]
            averages[country] = mean(values)

        ordered = sorted(
            averages.items(),
            key=lambda item: (item[1] is None, -(item[1] or 0.0)),
        )
        return dict(ordered)

    def missing_value_summary(self) -> Dict[str, int]:
        """Total records plus missing life expectancy and GDP counts."""
        counts = self.null_counts([f for f in (LIFE_EXPECTANCY, GDP) if self.table.has_field(f)])
        return {
            'total_records': len(self.table),
            'missing_life_expectancy': counts.get(LIFE_EXPECTANCY, 0),
            'missing_gdp': counts.get(GDP, 0),
        }

    def country_distribution(self) -> List[Dict[str, Any]]:
        """Average life expectancy and GDP per country, best life expectancy first."""
        le = self.per_country_average(LIFE_EXPECTANCY)
        gdp = self.per_country_average(GDP) if self.table.has_field(GDP) else {}
        return [
            {'country': country, 'avg_life_expectancy': avg, 'avg_gdp': gdp.get(country)}
            for country, avg in le.items()
        ]

    def explore(self) -> Dict[str, Any]:
        """Bundle the exploration queries for the run summary."""
        first_year, last_year, num_countries = self.dataset_bounds()
        summary = {
            'first_year': first_year,
            'last_year': last_year,
            'num_countries': num_countries,
            **self.missing_value_summary(),
            'country_distribution': (
                self.country_distribution() if self.table.has_field(LIFE_EXPECTANCY) else []
            ),
        }
        logger.info(
            f"Dataset spans {first_year}-{last_year} across {num_countries} countries, "
            f"{summary['total_records']} records "
            f"({summary['missing_life_expectancy']} missing life expectancy, "
            f"{summary['missing_gdp']} missing GDP)"
        )
        return summary
