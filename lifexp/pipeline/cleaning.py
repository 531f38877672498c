# ========================
# lifexp/pipeline/cleaning.py
# ========================

"""
Data Cleaning Module

Applies the cleaning steps to a LifeExpectancyTable in a fixed order:
type coercion, column rename, negative-value audit, missing-value handling,
duplicate removal, Status backfill and adjacent-year interpolation.
"""

import logging
import math
from collections import Counter, defaultdict
from typing import Any, Dict, List, Optional

from .table import (
    LifeExpectancyTable, LEGACY_COLUMN_NAMES, FLOAT_FIELDS, INT_FIELDS, KNOWN_STATUSES,
    ROW_ID, COUNTRY, YEAR, STATUS, LIFE_EXPECTANCY, ADULT_MORTALITY, INFANT_DEATHS,
    UNDER_FIVE_DEATHS, GDP, is_missing,
)
from ..utils.rounding import mean, round_half_up

logger = logging.getLogger(__name__)

MISSING_VALUE_POLICIES = ('impute', 'delete', 'interpolate')
NEGATIVE_VALUE_POLICIES = ('report', 'drop')

NON_NEGATIVE_FIELDS = [LIFE_EXPECTANCY, ADULT_MORTALITY, INFANT_DEATHS, UNDER_FIVE_DEATHS]

# Every row must carry these to be grouped
KEY_FIELDS = [COUNTRY, YEAR]


class TypeConversionError(ValueError):
    """A column holds a value that cannot be stored as a number, or a key column is empty."""

    def __init__(self, field: str, value: Any, row_id: Any, reason: str = "cannot be converted to a number"):
        super().__init__(f"{field}={value!r} (Row_ID {row_id}) {reason}")
        self.field = field
        self.value = value
        self.row_id = row_id


class DataCleaner:
    """
    Runs the set-based cleaning steps over a table.
    Every step is idempotent and treats "no matching rows" as a no-op.
    """

    def __init__(self, missing_value_policy: str = 'impute', negative_value_policy: str = 'report'):
        """
        Initialize the data cleaner.

        Args:
            missing_value_policy (str): 'impute' fills missing life expectancy with
                the global mean; 'delete' drops rows missing life expectancy or GDP;
                'interpolate' leaves gaps for the adjacent-year fill only
            negative_value_policy (str): 'report' only flags negative values;
                'drop' deletes the flagged rows
        """
        if missing_value_policy not in MISSING_VALUE_POLICIES:
            raise ValueError(
                f"Invalid missing_value_policy='{missing_value_policy}'. "
                f"Use 'impute', 'delete' or 'interpolate'."
            )
        if negative_value_policy not in NEGATIVE_VALUE_POLICIES:
            raise ValueError(
                f"Invalid negative_value_policy='{negative_value_policy}'. Use 'report' or 'drop'."
            )

        self.missing_value_policy = missing_value_policy
        self.negative_value_policy = negative_value_policy

        self.records_processed = 0
        self.records_dropped = 0
        self.values_coerced = 0
        self.negatives_flagged = 0
        self.values_imputed = 0
        self.duplicates_removed = 0
        self.statuses_backfilled = 0
        self.values_interpolated = 0
        logger.info(
            f"DataCleaner initialized (missing values: {missing_value_policy}, "
            f"negative values: {negative_value_policy})"
        )

    def clean(self, table: LifeExpectancyTable) -> Dict[str, Any]:
        """
        Apply every cleaning step in order.

        Args:
            table (LifeExpectancyTable): Table to clean in place

        Returns:
            dict: Per-step report of what changed

        Raises:
            TypeConversionError: If a numeric column holds non-numeric data
        """
        self.records_processed += len(table)
        report = {'records_in': len(table)}

        # 1-2. Schema-level fixes
        report['values_coerced'] = self.coerce_types(table)
        report['columns_renamed'] = self.normalize_column_names(table)

        # 3. Negative-value audit
        negatives = self.audit_negative_values(table)
        report['negative_rows'] = [r[ROW_ID] for r in negatives]
        if negatives and self.negative_value_policy == 'drop':
            report['negative_rows_dropped'] = self._drop(table, report['negative_rows'])
        else:
            report['negative_rows_dropped'] = 0

        # 4-5. At most one missing-value policy per run
        report['life_expectancy_imputed'] = 0
        report['incomplete_rows_dropped'] = 0
        if self.missing_value_policy == 'impute':
            report['life_expectancy_imputed'] = self.impute_missing_life_expectancy(table)
        elif self.missing_value_policy == 'delete':
            report['incomplete_rows_dropped'] = self.drop_incomplete_rows(table)

        # 6. Duplicates
        report['duplicates_removed'] = self.remove_duplicates(table)

        # 7-8. Cross-row fills
        report['statuses_backfilled'] = self.backfill_status(table)
        report['life_expectancy_interpolated'] = self.interpolate_life_expectancy(table)

        report['records_out'] = len(table)
        logger.info(f"Cleaning complete: {report['records_in']} -> {report['records_out']} records")
        return report

    def coerce_types(self, table: LifeExpectancyTable) -> int:
        """
        Cast numeric columns to float or int. Missing values become None.

        Returns:
            int: Number of values whose representation changed

        Raises:
            TypeConversionError: On the first value that is not a finite number,
                or on a row missing Country or Year
        """
        targets = []
        for field in FLOAT_FIELDS:
            if table.has_field(field):
                targets.append((field, float))
        for field in INT_FIELDS:
            if table.has_field(field):
                targets.append((field, int))
        for legacy, normalized in LEGACY_COLUMN_NAMES.items():
            if table.has_field(legacy):
                targets.append((legacy, int if normalized in INT_FIELDS else float))

        keys = [f for f in KEY_FIELDS if table.has_field(f)]

        changed = 0
        for record in table:
            for field in keys:
                if is_missing(record.get(field)):
                    raise TypeConversionError(field, record.get(field), record.get(ROW_ID), "is a required key")
            for field, kind in targets:
                value = record.get(field)
                converted = self._convert(value, kind, field, record.get(ROW_ID))
                if converted is not value:
                    changed += 1
                record[field] = converted

        table.reindex()
        self.values_coerced += changed
        logger.info(f"Type coercion changed {changed} values across {len(targets)} columns")
        return changed

    @staticmethod
    def _convert(value: Any, kind: type, field: str, row_id: Any) -> Optional[Any]:
        if is_missing(value):
            return None
        if kind is int and isinstance(value, int) and not isinstance(value, bool):
            return value
        if kind is float and isinstance(value, float):
            number = value
        else:
            try:
                number = float(value.strip() if isinstance(value, str) else value)
            except (TypeError, ValueError):
                raise TypeConversionError(field, value, row_id)

        # float() also accepts "nan" and "inf"
        if not math.isfinite(number):
            raise TypeConversionError(field, value, row_id)
        if kind is int:
            if not number.is_integer():
                raise TypeConversionError(field, value, row_id)
            return int(number)
        return number

    def normalize_column_names(self, table: LifeExpectancyTable) -> List[str]:
        """
        Rename legacy column spellings (``under-fivedeaths``).

        Returns:
            list[str]: Columns that were renamed
        """
        renamed = []
        for legacy, normalized in LEGACY_COLUMN_NAMES.items():
            if table.rename_field(legacy, normalized):
                renamed.append(legacy)
        return renamed

    def audit_negative_values(self, table: LifeExpectancyTable) -> List[Dict[str, Any]]:
        """
        Rows where life expectancy or a mortality count is negative.
        Detection only: the table is not modified.
        """
        fields = [f for f in NON_NEGATIVE_FIELDS if table.has_field(f)]
        flagged = [
            record for record in table
            if any(self._is_negative(record.get(f)) for f in fields)
        ]
        self.negatives_flagged += len(flagged)

        if flagged:
            logger.warning(f"Found {len(flagged)} rows with negative values")
        return flagged

    @staticmethod
    def _is_negative(value: Any) -> bool:
        return isinstance(value, (int, float)) and value < 0

    def impute_missing_life_expectancy(self, table: LifeExpectancyTable) -> int:
        """
        Fill missing life expectancy with the dataset-wide mean.
        The mean is taken once, before any row is updated.

        Returns:
            int: Number of rows imputed
        """
        global_mean = mean(
            r.get(LIFE_EXPECTANCY) for r in table if not is_missing(r.get(LIFE_EXPECTANCY))
        )
        if global_mean is None:
            logger.warning("No known life expectancy values; nothing to impute from")
            return 0

        imputed = 0
        for record in table:
            if is_missing(record.get(LIFE_EXPECTANCY)):
                record[LIFE_EXPECTANCY] = global_mean
                imputed += 1

        self.values_imputed += imputed
        if imputed:
            logger.info(f"Imputed life expectancy for {imputed} rows with global mean {global_mean:.2f}")
        return imputed

    def drop_incomplete_rows(self, table: LifeExpectancyTable) -> int:
        """
        Delete rows missing life expectancy or GDP.

        Returns:
            int: Number of rows deleted
        """
        doomed = [
            r[ROW_ID] for r in table
            if is_missing(r.get(LIFE_EXPECTANCY)) or is_missing(r.get(GDP))
        ]
        removed = self._drop(table, doomed)
        if removed:
            logger.info(f"Dropped {removed} rows missing life expectancy or GDP")
        return removed

    def find_duplicates(self, table: LifeExpectancyTable) -> List[int]:
        """
        Row_IDs of every record after the first within its (Country, Year) group,
        ordering group members by Row_ID ascending.
        """
        duplicates = []
        for country, year in table.group_keys():
            members = sorted(table.rows_at(country, year), key=lambda r: r[ROW_ID])
            duplicates.extend(r[ROW_ID] for r in members[1:])
        return sorted(duplicates)

    def remove_duplicates(self, table: LifeExpectancyTable) -> int:
        """
        Keep one record per (Country, Year).

        Returns:
            int: Number of rows deleted
        """
        removed = self._drop(table, self.find_duplicates(table))
        self.duplicates_removed += removed
        if removed:
            logger.info(f"Removed {removed} duplicate country-year rows")
        return removed

    def backfill_status(self, table: LifeExpectancyTable) -> int:
        """
        Fill empty Status values from other rows of the same country.

        First pass builds Country -> status; second pass applies it. A country
        with both statuses takes the majority one, ties going to the status
        of its earliest year.

        Returns:
            int: Number of rows updated
        """
        known = self._resolve_statuses(table)

        updated = 0
        for record in table:
            country = record.get(COUNTRY)
            if is_missing(record.get(STATUS)) and country in known:
                record[STATUS] = known[country]
                updated += 1

        self.statuses_backfilled += updated
        if updated:
            logger.info(f"Backfilled Status for {updated} rows")
        return updated

    def _resolve_statuses(self, table: LifeExpectancyTable) -> Dict[Any, str]:
        resolved = {}
        for country in table.countries():
            rows = [r for r in table.rows_for_country(country) if r.get(STATUS) in KNOWN_STATUSES]
            if not rows:
                continue

            counts = Counter(r[STATUS] for r in rows)
            ranked = counts.most_common()
            if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
                earliest = min(rows, key=lambda r: (self._year_key(r.get(YEAR)), r[ROW_ID]))
                resolved[country] = earliest[STATUS]
                logger.warning(
                    f"{country} has conflicting Status values {dict(counts)}; "
                    f"using '{resolved[country]}' from its earliest year"
                )
            else:
                resolved[country] = ranked[0][0]
                if len(ranked) > 1:
                    logger.warning(
                        f"{country} has conflicting Status values {dict(counts)}; "
                        f"using majority '{resolved[country]}'"
                    )
        return resolved

    @staticmethod
    def _year_key(year: Any):
        return (year is None, year if isinstance(year, int) else 0)

    def interpolate_life_expectancy(self, table: LifeExpectancyTable) -> int:
        """
        Fill missing life expectancy with the average of the previous and next
        year for the same country, rounded to one decimal.

        The lookup of known values is built before any row changes, so a value
        filled here never feeds another fill in the same pass.

        Returns:
            int: Number of rows filled
        """
        known = defaultdict(list)
        for record in table:
            value = record.get(LIFE_EXPECTANCY)
            if not is_missing(value) and isinstance(record.get(YEAR), int):
                known[(record.get(COUNTRY), record[YEAR])].append(value)

        filled = 0
        for record in table:
            year = record.get(YEAR)
            if not is_missing(record.get(LIFE_EXPECTANCY)) or not isinstance(year, int):
                continue

            country = record.get(COUNTRY)
            previous = known.get((country, year - 1))
            following = known.get((country, year + 1))
            if not previous or not following:
                continue

            record[LIFE_EXPECTANCY] = round_half_up((previous[0] + following[0]) / 2, 1)
            filled += 1

        self.values_interpolated += filled
        if filled:
            logger.info(f"Interpolated life expectancy for {filled} rows from adjacent years")
        return filled

    def _drop(self, table: LifeExpectancyTable, row_ids: List[int]) -> int:
        removed = table.delete_rows(row_ids)
        self.records_dropped += removed
        return removed

    def get_statistics(self) -> Dict[str, Any]:
        """Get cleaning statistics."""
        return {
            'records_processed': self.records_processed,
            'records_dropped': self.records_dropped,
            'records_cleaned': self.records_processed - self.records_dropped,
            'values_coerced': self.values_coerced,
            'negatives_flagged': self.negatives_flagged,
            'values_imputed': self.values_imputed,
            'duplicates_removed': self.duplicates_removed,
            'statuses_backfilled': self.statuses_backfilled,
            'values_interpolated': self.values_interpolated,
            'success_rate': (self.records_processed - self.records_dropped) / self.records_processed * 100 if self.records_processed > 0 else 0
        }
