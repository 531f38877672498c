# ========================
# lifexp/pipeline/table.py
# ========================

"""
In-Memory Table Module

Owns the life expectancy records for one pipeline run, together with the
lookup indices the cleaning and reporting stages need.
"""

import copy
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Column names as they appear in the worldlifexpectancy source
ROW_ID = 'Row_ID'
COUNTRY = 'Country'
YEAR = 'Year'
STATUS = 'Status'
LIFE_EXPECTANCY = 'Lifeexpectancy'
ADULT_MORTALITY = 'AdultMortality'
INFANT_DEATHS = 'infantdeaths'
UNDER_FIVE_DEATHS = 'under_fivedeaths'
GDP = 'GDP'
PERCENTAGE_EXPENDITURE = 'percentageexpenditure'
SCHOOLING = 'Schooling'
POLIO = 'Polio'
DIPHTHERIA = 'Diphtheria'

# Raw header spellings and their normalized names
LEGACY_COLUMN_NAMES = {
    'under-fivedeaths': UNDER_FIVE_DEATHS,
}

FLOAT_FIELDS = [LIFE_EXPECTANCY, GDP, PERCENTAGE_EXPENDITURE, SCHOOLING, POLIO, DIPHTHERIA]
INT_FIELDS = [YEAR, ADULT_MORTALITY, INFANT_DEATHS, UNDER_FIVE_DEATHS]

KNOWN_STATUSES = ('Developing', 'Developed')

DEFAULT_FIELDNAMES = [
    ROW_ID, COUNTRY, YEAR, STATUS, LIFE_EXPECTANCY, ADULT_MORTALITY,
    INFANT_DEATHS, UNDER_FIVE_DEATHS, GDP, PERCENTAGE_EXPENDITURE,
    SCHOOLING, POLIO, DIPHTHERIA,
]


class UnknownFieldError(KeyError):
    """Raised when an operation names a column the table does not have."""

    def __init__(self, field: str):
        super().__init__(field)
        self.field = field

    def __str__(self) -> str:
        return f"Field not found: {self.field!r}"


def is_missing(value: Any) -> bool:
    """A value counts as missing when it is None or an empty string."""
    return value is None or (isinstance(value, str) and not value.strip())


class LifeExpectancyTable:
    """
    Ordered collection of country-year records with indices by Country
    and by (Country, Year).

    Records are plain dictionaries keyed by column name. Every record
    carries a unique Row_ID; one is assigned on construction when the
    source did not provide it.
    """

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None,
                 fieldnames: Optional[List[str]] = None):
        """
        Initialize the table.

        Args:
            records (list[dict]): Rows to own (not copied)
            fieldnames (list[str]): Column order; inferred from the first
                                    record when omitted
        """
        self._records: List[Dict[str, Any]] = records if records is not None else []

        if fieldnames is None:
            fieldnames = list(self._records[0].keys()) if self._records else list(DEFAULT_FIELDNAMES)
        self._fieldnames: List[str] = list(fieldnames)

        self._assign_row_ids()
        self.reindex()

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]],
                     fieldnames: Optional[List[str]] = None) -> 'LifeExpectancyTable':
        """Build a table from copies of the given records."""
        return cls([dict(r) for r in records], fieldnames)

    def _assign_row_ids(self) -> None:
        """
        Give every record a unique Row_ID, continuing after the highest existing one.
        The first record keeps a repeated Row_ID; later ones get a new id.
        """
        if ROW_ID not in self._fieldnames:
            self._fieldnames.insert(0, ROW_ID)

        existing = [r[ROW_ID] for r in self._records if not is_missing(r.get(ROW_ID))]
        next_id = max((int(v) for v in existing), default=0) + 1

        seen = set()
        assigned = 0
        repeated = 0
        for record in self._records:
            if not is_missing(record.get(ROW_ID)):
                row_id = int(record[ROW_ID])
                if row_id not in seen:
                    record[ROW_ID] = row_id
                    seen.add(row_id)
                    continue
                repeated += 1

            record[ROW_ID] = next_id
            next_id += 1
            assigned += 1

        if repeated:
            logger.warning(f"Found {repeated} repeated Row_ID values; assigned new ids to the repeats")
        if assigned:
            logger.debug(f"Assigned {assigned} synthetic Row_ID values")

    def reindex(self) -> None:
        """Rebuild the Country and (Country, Year) indices."""
        self._by_country: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
        self._by_key: Dict[Tuple[Any, Any], List[Dict[str, Any]]] = defaultdict(list)

        for record in self._records:
            country = record.get(COUNTRY)
            self._by_country[country].append(record)
            self._by_key[(country, record.get(YEAR))].append(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._records)

    @property
    def records(self) -> List[Dict[str, Any]]:
        return self._records

    @property
    def fieldnames(self) -> List[str]:
        return list(self._fieldnames)

    def has_field(self, field: str) -> bool:
        return field in self._fieldnames

    def require_field(self, field: str) -> None:
        """
        Raises:
            UnknownFieldError: If the table has no such column
        """
        if not self.has_field(field):
            raise UnknownFieldError(field)

    def column(self, field: str) -> List[Any]:
        """All values of one column, in row order."""
        self.require_field(field)
        return [record.get(field) for record in self._records]

    def countries(self) -> List[Any]:
        """Distinct countries in first-seen order."""
        return list(self._by_country.keys())

    def years(self) -> List[Any]:
        """Distinct years in ascending order (missing years excluded)."""
        return sorted({r.get(YEAR) for r in self._records if not is_missing(r.get(YEAR))})

    def rows_for_country(self, country: Any) -> List[Dict[str, Any]]:
        return list(self._by_country.get(country, []))

    def rows_at(self, country: Any, year: Any) -> List[Dict[str, Any]]:
        return list(self._by_key.get((country, year), []))

    def group_keys(self) -> List[Tuple[Any, Any]]:
        """Distinct (Country, Year) pairs in first-seen order."""
        return list(self._by_key.keys())

    def delete_rows(self, row_ids: Iterable[int]) -> int:
        """
        Delete records by Row_ID.

        Returns:
            int: Number of records removed
        """
        doomed = set(row_ids)
        if not doomed:
            return 0

        before = len(self._records)
        self._records[:] = [r for r in self._records if r[ROW_ID] not in doomed]
        removed = before - len(self._records)

        if removed:
            self.reindex()
            logger.debug(f"Deleted {removed} rows")
        return removed

    def rename_field(self, old: str, new: str) -> bool:
        """
        Rename a column in the schema and in every record.

        Returns:
            bool: True if a rename happened, False if ``old`` is absent
        """
        if not self.has_field(old):
            return False
        if self.has_field(new):
            raise ValueError(f"Cannot rename {old!r}: column {new!r} already exists")

        self._fieldnames[self._fieldnames.index(old)] = new
        for record in self._records:
            record[new] = record.pop(old, None)

        logger.info(f"Renamed column '{old}' to '{new}'")
        return True

    def copy(self) -> 'LifeExpectancyTable':
        """Deep copy of the table, safe to mutate independently."""
        return LifeExpectancyTable(copy.deepcopy(self._records), self._fieldnames)

    def snapshot(self) -> List[Dict[str, Any]]:
        """Row copies ordered by Row_ID, handy for change detection."""
        return [dict(r) for r in sorted(self._records, key=lambda r: r[ROW_ID])]
