#!/usr/bin/env python3
# ========================
# main.py
# ========================

"""
Main Entry Point for the World Life Expectancy Pipeline

Generates a sample dataset when no input file is present, then runs
exploration, cleaning and reporting over it.
"""

import sys
import logging
from pathlib import Path

from lifexp.pipeline import DataPipeline
from lifexp.utils import Config, setup_logging, DataGenerator

def main():
    """Main execution function."""
    config = Config()

    setup_logging(
        log_level=config.LOG_LEVEL,
        log_file="pipeline.log",
        log_dir="logs"
    )

    logger = logging.getLogger(__name__)
    logger.info("="*60)
    logger.info("WORLD LIFE EXPECTANCY PIPELINE - MAIN EXECUTION")
    logger.info("="*60)

    try:
        config.ensure_directories()

        input_file = config.DEFAULT_INPUT_FILE
        generation_stats = None

        # Step 1: Make sure there is something to process
        if not Path(input_file).exists():
            logger.info(f"Step 1: No input at {input_file}, generating sample data...")
            generator = DataGenerator(seed=42)
            generation_stats = generator.generate_dataset(
                file_path=input_file,
                num_countries=config.SAMPLE_COUNTRIES,
                start_year=config.SAMPLE_START_YEAR,
                end_year=config.SAMPLE_END_YEAR
            )
        else:
            logger.info(f"Step 1: Using existing input {input_file}")

        # Step 2: Configure and run the pipeline
        logger.info("Step 2: Running data pipeline...")
        pipeline = DataPipeline(
            input_file=input_file,
            output_dir=config.DEFAULT_OUTPUT_DIR,
            chunk_size=config.DEFAULT_CHUNK_SIZE,
            config=config
        )

        if not pipeline.validate_input():
            logger.error("Input validation failed. Exiting.")
            return 1

        results = pipeline.run()

        # Step 3: Print summary
        _print_execution_summary(results, generation_stats)

        logger.info("Pipeline execution completed successfully!")
        return 0

    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}", exc_info=True)
        return 1

def _print_execution_summary(results: dict, generation_stats: dict = None) -> None:
    """Print final execution summary."""
    print("\n" + "="*70)
    print("PIPELINE EXECUTION SUMMARY")
    print("="*70)

    if generation_stats:
        print("Sample Data:")
        print(f"   - Rows generated: {generation_stats['total_rows']:,}")
        print(f"   - Defects injected: {generation_stats['defect_types']}")

    exploration = results['exploration']
    cleaning = results['cleaning_report']

    print("\nExploration:")
    print(f"   - Years: {exploration['first_year']}-{exploration['last_year']}")
    print(f"   - Countries: {exploration['num_countries']}")
    print(f"   - Missing life expectancy: {exploration['missing_life_expectancy']}")
    print(f"   - Missing GDP: {exploration['missing_gdp']}")

    print("\nCleaning:")
    print(f"   - Records in/out: {cleaning['records_in']:,} -> {cleaning['records_out']:,}")
    print(f"   - Negative-value rows: {len(cleaning['negative_rows'])}")
    print(f"   - Life expectancy imputed: {cleaning['life_expectancy_imputed']}")
    print(f"   - Duplicates removed: {cleaning['duplicates_removed']}")
    print(f"   - Statuses backfilled: {cleaning['statuses_backfilled']}")
    print(f"   - Life expectancy interpolated: {cleaning['life_expectancy_interpolated']}")

    reports = results['reports']
    print("\nTop 5 by composite score:")
    for row in reports['composite_ranking'][:5]:
        print(f"   - {row['country']}: {row['composite_score']}")
    print(f"\nOverall average growth: {reports['overall_average_growth']}")

    print("\nGenerated Outputs:")
    for dataset_type, file_path in results['saved_files'].items():
        print(f"   - {dataset_type.replace('_', ' ').title()}: {Path(file_path).name}")

    print("="*70)

if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
