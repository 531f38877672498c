# ========================
# tests/test_cleaning.py
# ========================

import unittest
import sys
import os

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lifexp.pipeline.table import LifeExpectancyTable
from lifexp.pipeline.cleaning import DataCleaner, TypeConversionError

def _record(country, year, life_expectancy='70', status='Developing', gdp='1000', **extra):
    record = {
        'Country': country,
        'Year': str(year),
        'Status': status,
        'Lifeexpectancy': life_expectancy,
        'AdultMortality': '150',
        'infantdeaths': '10',
        'under-fivedeaths': '12',
        'GDP': gdp,
        'percentageexpenditure': '5.5',
        'Schooling': '11.0',
        'Polio': '85',
        'Diphtheria': '87',
    }
    record.update(extra)
    return record

def _table(*records):
    return LifeExpectancyTable.from_records(records)

class TestDataCleaner(unittest.TestCase):

    def setUp(self):
        self.cleaner = DataCleaner()

    def test_coerce_types(self):
        """
        Tests that numeric columns become floats and integers, with blanks as None.
        """
        table = _table(_record('Chile', 2000, life_expectancy='77.3', gdp=''))

        changed = self.cleaner.coerce_types(table)
        record = table.records[0]

        self.assertGreater(changed, 0)
        self.assertEqual(record['Lifeexpectancy'], 77.3)
        self.assertIsInstance(record['Lifeexpectancy'], float)
        self.assertEqual(record['Year'], 2000)
        self.assertEqual(record['AdultMortality'], 150)
        self.assertIsInstance(record['AdultMortality'], int)
        self.assertEqual(record['under-fivedeaths'], 12)
        self.assertIsNone(record['GDP'])

        # Second pass has nothing left to convert
        self.assertEqual(self.cleaner.coerce_types(table), 0)

    def test_coerce_types_rejects_garbage(self):
        """
        Tests that a non-numeric value fails the stage with TypeConversionError.
        """
        table = _table(_record('Chile', 2000), _record('Chile', 2001, AdultMortality='n/a'))

        with self.assertRaises(TypeConversionError) as ctx:
            self.cleaner.coerce_types(table)

        self.assertEqual(ctx.exception.field, 'AdultMortality')
        self.assertEqual(ctx.exception.row_id, 2)
        self.assertIsInstance(ctx.exception, ValueError)

    def test_coerce_types_rejects_fractional_counts(self):
        """
        Tests that integer columns do not silently truncate fractions.
        """
        table = _table(_record('Chile', 2000, infantdeaths='3.5'))
        with self.assertRaises(TypeConversionError):
            self.cleaner.coerce_types(table)

    def test_coerce_types_rejects_non_finite(self):
        """
        Tests that "nan" and "inf" are treated as garbage, not as numbers.
        """
        for text in ('nan', 'inf', '-Infinity', 'NaN'):
            table = _table(_record('Chile', 2000, life_expectancy='70'),
                           _record('Chile', 2001, life_expectancy=text))
            with self.assertRaises(TypeConversionError) as ctx:
                self.cleaner.coerce_types(table)
            self.assertEqual(ctx.exception.field, 'Lifeexpectancy', text)
            self.assertEqual(ctx.exception.row_id, 2, text)

        table = _table(_record('Chile', 2000, gdp=float('inf')))
        with self.assertRaises(TypeConversionError):
            self.cleaner.coerce_types(table)

    def test_coerce_types_requires_country_and_year(self):
        """
        Tests that a row without Country or Year fails the stage.
        """
        with self.assertRaises(TypeConversionError) as ctx:
            self.cleaner.coerce_types(_table(_record('US', '', life_expectancy='70'),
                                             _record('US', 2001, life_expectancy='70')))
        self.assertEqual(ctx.exception.field, 'Year')
        self.assertEqual(ctx.exception.row_id, 1)

        with self.assertRaises(TypeConversionError) as ctx:
            self.cleaner.coerce_types(_table(_record('  ', 2000)))
        self.assertEqual(ctx.exception.field, 'Country')

    def test_normalize_column_names(self):
        """
        Tests the under-fivedeaths rename.
        """
        table = _table(_record('Chile', 2000))

        self.assertEqual(self.cleaner.normalize_column_names(table), ['under-fivedeaths'])
        self.assertTrue(table.has_field('under_fivedeaths'))
        self.assertFalse(table.has_field('under-fivedeaths'))
        self.assertEqual(self.cleaner.normalize_column_names(table), [])

    def test_audit_negative_values_is_detection_only(self):
        """
        Tests that negative rows are reported and left untouched.
        """
        table = _table(
            _record('Chile', 2000),
            _record('Chile', 2001, AdultMortality='-5'),
            _record('Chile', 2002, life_expectancy='-1'),
        )
        self.cleaner.coerce_types(table)

        flagged = self.cleaner.audit_negative_values(table)

        self.assertEqual([r['Row_ID'] for r in flagged], [2, 3])
        self.assertEqual(len(table), 3)
        self.assertEqual(table.records[1]['AdultMortality'], -5)

    def test_impute_uses_mean_taken_before_updates(self):
        """
        Tests that every missing row receives the same pre-update mean.
        """
        table = _table(
            _record('Chile', 2000, life_expectancy='70'),
            _record('Chile', 2001, life_expectancy=''),
            _record('Japan', 2000, life_expectancy='80'),
            _record('Japan', 2001, life_expectancy=''),
        )
        self.cleaner.coerce_types(table)

        imputed = self.cleaner.impute_missing_life_expectancy(table)

        self.assertEqual(imputed, 2)
        self.assertEqual(table.records[1]['Lifeexpectancy'], 75.0)
        self.assertEqual(table.records[3]['Lifeexpectancy'], 75.0)
        self.assertEqual(self.cleaner.impute_missing_life_expectancy(table), 0)

    def test_impute_without_known_values_is_noop(self):
        """
        Tests imputation when no life expectancy is known at all.
        """
        table = _table(_record('Chile', 2000, life_expectancy=''))
        self.cleaner.coerce_types(table)

        self.assertEqual(self.cleaner.impute_missing_life_expectancy(table), 0)
        self.assertIsNone(table.records[0]['Lifeexpectancy'])

    def test_drop_incomplete_rows(self):
        """
        Tests deleting rows missing life expectancy or GDP.
        """
        table = _table(
            _record('Chile', 2000),
            _record('Chile', 2001, life_expectancy=''),
            _record('Chile', 2002, gdp=''),
        )
        self.cleaner.coerce_types(table)

        self.assertEqual(self.cleaner.drop_incomplete_rows(table), 2)
        self.assertEqual([r['Year'] for r in table], [2000])
        self.assertEqual(self.cleaner.drop_incomplete_rows(table), 0)

    def test_remove_duplicates_keeps_lowest_row_id(self):
        """
        Tests that one row per Country/Year survives, the first by Row_ID.
        """
        table = LifeExpectancyTable.from_records([
            dict(_record('Chile', 2000, life_expectancy='71'), Row_ID=9),
            dict(_record('Chile', 2000, life_expectancy='72'), Row_ID=3),
            dict(_record('Chile', 2001), Row_ID=4),
            dict(_record('Chile', 2000, life_expectancy='73'), Row_ID=5),
        ])
        self.cleaner.coerce_types(table)

        self.assertEqual(self.cleaner.find_duplicates(table), [5, 9])
        self.assertEqual(self.cleaner.remove_duplicates(table), 2)

        survivors = table.rows_at('Chile', 2000)
        self.assertEqual(len(survivors), 1)
        self.assertEqual(survivors[0]['Row_ID'], 3)
        self.assertEqual(survivors[0]['Lifeexpectancy'], 72.0)
        self.assertEqual(self.cleaner.remove_duplicates(table), 0)

    def test_backfill_status(self):
        """
        Tests filling blank Status values from the same country.
        """
        table = _table(
            _record('Chile', 2000, status='Developing'),
            _record('Chile', 2001, status=''),
            _record('Japan', 2000, status=''),
            _record('Japan', 2001, status='Developed'),
            _record('Atlantis', 2000, status=''),
        )

        self.assertEqual(self.cleaner.backfill_status(table), 2)
        self.assertEqual([r['Status'] for r in table], ['Developing', 'Developing', 'Developed', 'Developed', ''])
        self.assertEqual(self.cleaner.backfill_status(table), 0)

    def test_backfill_status_conflict_uses_majority(self):
        """
        Tests that conflicting statuses resolve to the majority value.
        """
        table = _table(
            _record('Chile', 2000, status='Developed'),
            _record('Chile', 2001, status='Developing'),
            _record('Chile', 2002, status='Developing'),
            _record('Chile', 2003, status=''),
        )
        self.cleaner.coerce_types(table)

        self.cleaner.backfill_status(table)
        self.assertEqual(table.records[3]['Status'], 'Developing')

    def test_backfill_status_conflict_tie_uses_earliest_year(self):
        """
        Tests that a tied conflict resolves to the status of the earliest year.
        """
        table = _table(
            _record('Chile', 2003, status='Developing'),
            _record('Chile', 2001, status='Developed'),
            _record('Chile', 2002, status=''),
        )
        self.cleaner.coerce_types(table)

        self.cleaner.backfill_status(table)
        self.assertEqual(table.records[2]['Status'], 'Developed')

    def test_interpolate_from_adjacent_years(self):
        """
        Tests (US,2000,70), (US,2001,null), (US,2002,74) -> 72.0.
        """
        table = _table(
            _record('US', 2000, life_expectancy='70'),
            _record('US', 2001, life_expectancy=''),
            _record('US', 2002, life_expectancy='74'),
        )
        self.cleaner.coerce_types(table)

        self.assertEqual(self.cleaner.interpolate_life_expectancy(table), 1)
        self.assertEqual(table.rows_at('US', 2001)[0]['Lifeexpectancy'], 72.0)

    def test_interpolate_rounds_half_up(self):
        """
        Tests that the adjacent-year average rounds like SQL ROUND.
        """
        table = _table(
            _record('US', 2000, life_expectancy='70.1'),
            _record('US', 2001, life_expectancy=''),
            _record('US', 2002, life_expectancy='70.4'),
        )
        self.cleaner.coerce_types(table)

        self.cleaner.interpolate_life_expectancy(table)
        self.assertEqual(table.rows_at('US', 2001)[0]['Lifeexpectancy'], 70.3)

    def test_interpolate_needs_both_neighbours(self):
        """
        Tests that gaps at the edges or next to other gaps are left alone.
        """
        table = _table(
            _record('US', 2000, life_expectancy=''),
            _record('US', 2001, life_expectancy='71'),
            _record('US', 2002, life_expectancy=''),
            _record('US', 2003, life_expectancy=''),
            _record('US', 2004, life_expectancy='75'),
        )
        self.cleaner.coerce_types(table)

        self.assertEqual(self.cleaner.interpolate_life_expectancy(table), 0)
        self.assertEqual(
            [r['Lifeexpectancy'] for r in table],
            [None, 71.0, None, None, 75.0],
        )

    def test_invalid_policies(self):
        """
        Tests that unknown policies are rejected up front.
        """
        with self.assertRaises(ValueError):
            DataCleaner(missing_value_policy='both')
        with self.assertRaises(ValueError):
            DataCleaner(negative_value_policy='fix')

class TestCleanRun(unittest.TestCase):

    def _messy_table(self):
        return _table(
            _record('US', 2000, life_expectancy='70', status='Developed'),
            _record('US', 2001, life_expectancy='', status=''),
            _record('US', 2002, life_expectancy='74', status=''),
            _record('US', 2002, life_expectancy='74', status=''),
            _record('Peru', 2000, life_expectancy='68', gdp=''),
            _record('Peru', 2001, life_expectancy='69', AdultMortality='-3'),
        )

    def test_clean_with_impute_policy(self):
        """
        Tests a full run: typed values, unique keys, complete statuses.
        """
        table = self._messy_table()
        cleaner = DataCleaner(missing_value_policy='impute')

        report = cleaner.clean(table)

        self.assertEqual(report['records_in'], 6)
        self.assertEqual(report['records_out'], 5)
        self.assertEqual(report['columns_renamed'], ['under-fivedeaths'])
        self.assertEqual(report['negative_rows'], [6])
        self.assertEqual(report['negative_rows_dropped'], 0)
        self.assertEqual(report['life_expectancy_imputed'], 1)
        self.assertEqual(report['incomplete_rows_dropped'], 0)
        self.assertEqual(report['duplicates_removed'], 1)
        self.assertEqual(report['statuses_backfilled'], 2)
        # Imputation already filled the gap
        self.assertEqual(report['life_expectancy_interpolated'], 0)

        keys = [(r['Country'], r['Year']) for r in table]
        self.assertEqual(len(keys), len(set(keys)))
        self.assertTrue(all(r['Status'] for r in table if r['Country'] == 'US'))
        self.assertTrue(all(isinstance(r['under_fivedeaths'], int) for r in table))

        stats = cleaner.get_statistics()
        self.assertEqual(stats['records_processed'], 6)
        self.assertEqual(stats['records_dropped'], 1)
        self.assertEqual(stats['duplicates_removed'], 1)

    def test_clean_with_delete_policy(self):
        """
        Tests that the delete policy drops incomplete rows instead of imputing.
        """
        table = self._messy_table()
        report = DataCleaner(missing_value_policy='delete').clean(table)

        self.assertEqual(report['life_expectancy_imputed'], 0)
        self.assertEqual(report['incomplete_rows_dropped'], 2)
        self.assertEqual(sorted((r['Country'], r['Year']) for r in table),
                         [('Peru', 2001), ('US', 2000), ('US', 2002)])

    def test_clean_with_interpolate_policy(self):
        """
        Tests that the interpolate policy leaves gaps for the adjacent-year fill.
        """
        table = self._messy_table()
        report = DataCleaner(missing_value_policy='interpolate').clean(table)

        self.assertEqual(report['life_expectancy_imputed'], 0)
        self.assertEqual(report['life_expectancy_interpolated'], 1)
        self.assertEqual(table.rows_at('US', 2001)[0]['Lifeexpectancy'], 72.0)

    def test_clean_drops_negatives_when_configured(self):
        """
        Tests that the drop policy enforces non-negative mortality counts.
        """
        table = self._messy_table()
        report = DataCleaner(negative_value_policy='drop').clean(table)

        self.assertEqual(report['negative_rows_dropped'], 1)
        for record in table:
            self.assertGreaterEqual(record['AdultMortality'], 0)
            self.assertGreaterEqual(record['infantdeaths'], 0)
            self.assertGreaterEqual(record['under_fivedeaths'], 0)

    def test_clean_is_idempotent(self):
        """
        Tests that cleaning already-clean data changes nothing.
        """
        for policy in ('impute', 'delete', 'interpolate'):
            table = self._messy_table()
            cleaner = DataCleaner(missing_value_policy=policy)
            cleaner.clean(table)
            before = table.snapshot()

            report = cleaner.clean(table)

            self.assertEqual(table.snapshot(), before, policy)
            self.assertEqual(report['values_coerced'], 0)
            self.assertEqual(report['duplicates_removed'], 0)
            self.assertEqual(report['statuses_backfilled'], 0)
            self.assertEqual(report['life_expectancy_imputed'], 0)
            self.assertEqual(report['incomplete_rows_dropped'], 0)

    def test_clean_aborts_on_garbage(self):
        """
        Tests that a type conversion failure stops the whole run.
        """
        table = _table(_record('US', 2000, life_expectancy='seventy'))
        with self.assertRaises(TypeConversionError):
            DataCleaner().clean(table)

        table = _table(_record('US', 2000, life_expectancy='nan'),
                       _record('US', 2001, life_expectancy='70'),
                       _record('US', 2002, life_expectancy=''))
        with self.assertRaises(TypeConversionError):
            DataCleaner().clean(table)

    def test_clean_keeps_one_copy_of_rows_sharing_a_row_id(self):
        """
        Tests that exact copies sharing a Row_ID collapse to one row, not zero.
        """
        table = LifeExpectancyTable.from_records([
            dict(_record('US', 2000), Row_ID='1'),
            dict(_record('US', 2000), Row_ID='1'),
        ])

        report = DataCleaner().clean(table)

        self.assertEqual(report['duplicates_removed'], 1)
        self.assertEqual(len(table), 1)
        self.assertEqual(table.records[0]['Row_ID'], 1)

if __name__ == '__main__':
    unittest.main()
