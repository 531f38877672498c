# ========================
# lifexp/pipeline/ingestion.py
# ========================

"""
Data Ingestion Module

Reads the worldlifexpectancy CSV export into an in-memory table.
"""

import csv
import logging

from .table import LifeExpectancyTable

logger = logging.getLogger(__name__)

class CSVReader:
    """
    CSV reader for the life expectancy export.
    Rows can be streamed in chunks or materialized as a LifeExpectancyTable.
    """

    def __init__(self, file_path):
        """
        Initialize the CSV reader.

        Args:
            file_path (str): Path to the CSV file to read
        """
        self.file_path = file_path
        self.header = []
        logger.info(f"Initialized CSVReader for file: {file_path}")

    def read_in_chunks(self, chunk_size):
        """
        A generator that yields a list of dictionaries for each chunk of data.

        Args:
            chunk_size (int): The number of rows to yield per chunk.

        Yields:
            list[dict]: A list of dictionaries representing a chunk of rows.
        """
        try:
            with open(self.file_path, 'r', newline='', encoding='utf-8') as f:
                reader = csv.DictReader(f)
                self.header = [name.strip() for name in reader.fieldnames or []]
                reader.fieldnames = self.header
                logger.info(f"CSV header: {self.header}")

                chunk = []
                row_count = 0

                for row in reader:
                    chunk.append(row)
                    row_count += 1

                    if len(chunk) == chunk_size:
                        logger.debug(f"Yielding chunk with {len(chunk)} rows")
                        yield chunk
                        chunk = []

                if chunk:
                    logger.debug(f"Yielding final chunk with {len(chunk)} rows")
                    yield chunk

                logger.info(f"Total rows read: {row_count}")

        except FileNotFoundError:
            logger.error(f"File '{self.file_path}' was not found")
            raise
        except Exception as e:
            logger.error(f"Error reading CSV file: {e}")
            raise

    def load_table(self, chunk_size=1000):
        """
        Read the whole file into a LifeExpectancyTable.

        Values are kept as the raw strings from the file; type coercion is
        the cleaning stage's job.

        Args:
            chunk_size (int): Rows read per chunk while loading

        Returns:
            LifeExpectancyTable: Table owning every row of the file
        """
        records = []
        for chunk in self.read_in_chunks(chunk_size):
            records.extend(chunk)

        table = LifeExpectancyTable(records, fieldnames=list(self.header) if self.header else None)
        logger.info(f"Loaded {len(table)} records with {len(table.fieldnames)} columns")
        return table
