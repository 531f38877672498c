# ========================
# lifexp/pipeline/transformation.py
# ========================

"""
Data Transformation Module

Builds the reporting views (rankings, trends, growth) from a cleaned table.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from .table import (
    LifeExpectancyTable, COUNTRY, YEAR, LIFE_EXPECTANCY, GDP, SCHOOLING, POLIO,
    DIPHTHERIA, PERCENTAGE_EXPENDITURE, is_missing,
)
from ..utils.rounding import mean, round_half_up

logger = logging.getLogger(__name__)

# Composite score weights
LIFE_EXPECTANCY_WEIGHT = 0.4
GDP_WEIGHT = 0.3
SCHOOLING_WEIGHT = 0.2
IMMUNIZATION_WEIGHT = 0.1

CHANGE_DIRECTIONS = ('improvement', 'decline')


def _value(record: Dict[str, Any], field: str) -> Optional[float]:
    value = record.get(field)
    return None if is_missing(value) else value


def _immunization_rate(record: Dict[str, Any]) -> Optional[float]:
    polio = _value(record, POLIO)
    diphtheria = _value(record, DIPHTHERIA)
    if polio is None or diphtheria is None:
        return None
    return (polio + diphtheria) / 2


def _descending(value: Optional[float]):
    """Sort key placing larger values first and missing values last."""
    return (value is None, -(value or 0.0))


class DataAggregator:
    """
    Grouped reporting views over a cleaned LifeExpectancyTable.
    Averages skip missing values; arithmetic involving a missing average
    yields None.
    """

    def __init__(self, top_n_limit: int = 10):
        """
        Initialize the data aggregator.

        Args:
            top_n_limit (int): Row limit for the top-n-by-year view
        """
        self.top_n_limit = top_n_limit
        self.reports: Dict[str, Any] = {}
        self.records_processed = 0
        logger.info(f"DataAggregator initialized with top_n_limit={top_n_limit}")

    def _group(self, table: LifeExpectancyTable, *keys: str) -> Dict[Any, List[Dict[str, Any]]]:
        groups = defaultdict(list)
        for record in table:
            key = tuple(record.get(k) for k in keys)
            groups[key if len(keys) > 1 else key[0]].append(record)
        return groups

    def composite_ranking(self, table: LifeExpectancyTable) -> List[Dict[str, Any]]:
        """
        Rank countries by a weighted blend of life expectancy, GDP, schooling
        and immunization averages.
        """
        rows = []
        for country, records in self._group(table, COUNTRY).items():
            avg_le = mean(_value(r, LIFE_EXPECTANCY) for r in records)
            avg_gdp = mean(_value(r, GDP) for r in records)
            avg_schooling = mean(_value(r, SCHOOLING) for r in records)
            avg_immunization = mean(_immunization_rate(r) for r in records)

            components = (avg_le, avg_gdp, avg_schooling, avg_immunization)
            if any(c is None for c in components):
                score = None
            else:
                score = (avg_le * LIFE_EXPECTANCY_WEIGHT
                         + avg_gdp * GDP_WEIGHT
                         + avg_schooling * SCHOOLING_WEIGHT
                         + avg_immunization * IMMUNIZATION_WEIGHT)

            rows.append({
                'country': country,
                'avg_life_expectancy': round_half_up(avg_le, 1),
                'avg_gdp': round_half_up(avg_gdp, 1),
                'avg_schooling': round_half_up(avg_schooling, 1),
                'avg_immunization_rate': round_half_up(avg_immunization, 1),
                'composite_score': round_half_up(score, 1),
            })

        rows.sort(key=lambda r: _descending(r['composite_score']))
        return rows

    def global_trend(self, table: LifeExpectancyTable) -> List[Dict[str, Any]]:
        """Average life expectancy across countries for each year."""
        rows = [
            {
                'year': year,
                'global_avg_life_expectancy': round_half_up(
                    mean(_value(r, LIFE_EXPECTANCY) for r in records), 1
                ),
            }
            for year, records in self._group(table, YEAR).items()
        ]
        rows.sort(key=lambda r: r['year'])
        return rows

    def top_n_by_year(self, table: LifeExpectancyTable, n: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Per (Year, Country) life expectancy ordered by year, then by life
        expectancy descending. The limit applies to the whole listing,
        not to each year.
        """
        n = self.top_n_limit if n is None else n

        rows = [
            {
                'year': year,
                'country': country,
                'avg_life_expectancy': round_half_up(
                    mean(_value(r, LIFE_EXPECTANCY) for r in records), 1
                ),
            }
            for (year, country), records in self._group(table, YEAR, COUNTRY).items()
        ]
        rows.sort(key=lambda r: (r['year'], _descending(r['avg_life_expectancy']), str(r['country'])))
        return rows[:n]

    def expenditure_correlation(self, table: LifeExpectancyTable) -> List[Dict[str, Any]]:
        """
        Average health expenditure next to average life expectancy per country,
        highest spenders first. No correlation coefficient is computed.
        """
        rows = []
        for country, records in self._group(table, COUNTRY).items():
            avg_expenditure = mean(_value(r, PERCENTAGE_EXPENDITURE) for r in records)
            rows.append({
                'country': country,
                'avg_health_expenditure': avg_expenditure,
                'avg_life_expectancy': mean(_value(r, LIFE_EXPECTANCY) for r in records),
            })

        rows.sort(key=lambda r: _descending(r['avg_health_expenditure']))
        for row in rows:
            row['avg_health_expenditure'] = round_half_up(row['avg_health_expenditure'], 1)
            row['avg_life_expectancy'] = round_half_up(row['avg_life_expectancy'], 1)
        return rows

    def largest_change(self, table: LifeExpectancyTable, direction: str = 'improvement') -> List[Dict[str, Any]]:
        """
        Spread between a country's highest and lowest life expectancy.

        'improvement' lists every country, largest spread first. 'decline'
        keeps countries whose spread is negative; since max >= min that list
        is always empty, as the metric does not look at which year came first.

        Raises:
            ValueError: If direction is not 'improvement' or 'decline'
        """
        if direction not in CHANGE_DIRECTIONS:
            raise ValueError(f"Invalid direction='{direction}'. Use 'improvement' or 'decline'.")

        rows = []
        for country, records in self._group(table, COUNTRY).items():
            values = [v for v in (_value(r, LIFE_EXPECTANCY) for r in records) if v is not None]
            change = round_half_up(max(values) - min(values), 1) if values else None
            rows.append({'country': country, 'life_expectancy_change': change})

        if direction == 'decline':
            return [r for r in rows if r['life_expectancy_change'] is not None and r['life_expectancy_change'] < 0]

        rows.sort(key=lambda r: _descending(r['life_expectancy_change']))
        return rows

    def yearly_growth(self, table: LifeExpectancyTable) -> List[Dict[str, Any]]:
        """
        Year-over-year change in global average life expectancy, to 2 decimals.
        Each year is compared with the previous year present in the data; the
        first year has no growth.
        """
        averages = sorted(
            (year, mean(_value(r, LIFE_EXPECTANCY) for r in records))
            for year, records in self._group(table, YEAR).items()
        )

        rows = []
        previous = None
        for year, avg in averages:
            if previous is None or avg is None:
                growth = None
            else:
                growth = round_half_up(avg - round_half_up(previous, 2), 2)
            rows.append({'year': year, 'avg_growth': growth})
            previous = avg
        return rows

    def overall_average_growth(self, table: LifeExpectancyTable) -> Optional[str]:
        """Mean yearly growth as a percentage string such as ``'35.00%'``."""
        growths = [r['avg_growth'] for r in self.yearly_growth(table) if r['avg_growth'] is not None]
        if not growths:
            return None
        return f"{round_half_up(mean(growths), 2) * 100:.2f}%"

    def build_reports(self, table: LifeExpectancyTable) -> Dict[str, Any]:
        """
        Compute every reporting view.

        Returns:
            dict: Report name -> rows (or the overall growth string)
        """
        logger.info(f"Building reports over {len(table)} records...")
        self.records_processed = len(table)

        self.reports = {
            'composite_ranking': self.composite_ranking(table),
            'global_trend': self.global_trend(table),
            'top_life_expectancy_by_year': self.top_n_by_year(table),
            'expenditure_vs_life_expectancy': self.expenditure_correlation(table),
            'largest_improvement': self.largest_change(table, 'improvement'),
            'largest_decline': self.largest_change(table, 'decline'),
            'yearly_growth': self.yearly_growth(table),
            'overall_average_growth': self.overall_average_growth(table),
        }

        self._log_summary_statistics()
        return self.reports

    def _log_summary_statistics(self) -> None:
        """Log headline figures from the reports."""
        ranking = self.reports.get('composite_ranking') or []
        if ranking:
            leader = ranking[0]
            logger.info(f"Top composite score: {leader['country']} ({leader['composite_score']})")
        logger.info(f"Years covered by trend: {len(self.reports.get('global_trend') or [])}")
        logger.info(f"Overall average growth: {self.reports.get('overall_average_growth')}")

    def get_aggregation_summary(self) -> Dict[str, Any]:
        """Get a summary of all aggregations."""
        return {
            'records_processed': self.records_processed,
            'countries_ranked': len(self.reports.get('composite_ranking') or []),
            'years_in_trend': len(self.reports.get('global_trend') or []),
            'top_n_rows': len(self.reports.get('top_life_expectancy_by_year') or []),
            'countries_with_decline': len(self.reports.get('largest_decline') or []),
            'overall_average_growth': self.reports.get('overall_average_growth'),
        }
