#!/usr/bin/env python3
# ========================
# scripts/run_large_scale_test.py
# ========================

"""
Script to run the pipeline over a large synthetic dataset
(many countries over a long year range) and check its outputs.
"""

import sys
import os

# Add project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lifexp.pipeline.orchestrator import DataPipeline
from lifexp.pipeline.storage import REPORT_FILES, CLEANED_TABLE_FILE
from lifexp.utils.data_generator import DataGenerator
from lifexp.utils.logging_setup import setup_logging

def main():
    """Run a large-scale test of the pipeline."""

    if len(sys.argv) > 1:
        try:
            num_countries = int(sys.argv[1])
        except ValueError:
            print("Usage: python run_large_scale_test.py [num_countries]")
            print("Example: python run_large_scale_test.py 5000")
            sys.exit(1)
    else:
        num_countries = 2000

    setup_logging()

    input_file = f'data/raw/large_life_expectancy_{num_countries}.csv'
    output_dir = 'data/processed/large_scale'

    print("="*60)
    print("LARGE SCALE LIFE EXPECTANCY PIPELINE TEST")
    print("="*60)
    print(f"Countries: {num_countries:,} (years 1990-2022)")
    print(f"Input file: {input_file}")
    print(f"Output directory: {output_dir}")
    print("="*60)

    # Step 1: Generate sample data
    if os.path.exists(input_file):
        print("\nStep 1: Using existing data file.")
    else:
        print(f"\nStep 1: Generating data for {num_countries:,} countries...")
        DataGenerator(seed=42).generate_dataset(input_file, num_countries, start_year=1990, end_year=2022)

    # Step 2: Run the pipeline
    print("\nStep 2: Running pipeline...")
    results = DataPipeline(input_file, output_dir, chunk_size=10000).run()
    performance = results['processing_stats']['performance']
    print(f"Processed in {performance.get('total_processing_time_seconds', 0):.2f}s, "
          f"peak memory {performance.get('peak_memory_usage_mb', 0):.1f} MB")

    # Step 3: Verify outputs
    print("\nStep 3: Verifying outputs...")
    expected_files = [CLEANED_TABLE_FILE] + [file_name for file_name, _ in REPORT_FILES.values()]

    missing_files = []
    for filename in expected_files:
        filepath = os.path.join(output_dir, filename)
        if os.path.exists(filepath):
            print(f"OK      {filename}: {os.path.getsize(filepath):,} bytes")
        else:
            missing_files.append(filename)
            print(f"MISSING {filename}")

    if missing_files:
        print(f"\nWarning: {len(missing_files)} output files are missing!")
        sys.exit(1)
    print("\nAll output files generated successfully!")

if __name__ == '__main__':
    main()
