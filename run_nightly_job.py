#!/usr/bin/env python
# run_nightly_job.py - Script to run the nightly job

import sys
import argparse
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from demand_replenishment.db import db
from demand_replenishment.batch.nightly_job import run_nightly_job, ALL_STEPS
from demand_replenishment.exceptions import ReplenishmentError
from demand_replenishment.logging_setup import get_logger

def main():
    """Run the nightly job."""
    parser = argparse.ArgumentParser(description='Run the demand replenishment nightly job')
    parser.add_argument('--steps', nargs='+', choices=ALL_STEPS, help='Steps to run (default: all)')
    parser.add_argument('--as-of', type=date.fromisoformat, help='Business date, YYYY-MM-DD (default: today)')
    parser.add_argument('--database-url', type=str, help='SQLAlchemy URL overriding the configuration')

    args = parser.parse_args()

    logger = get_logger('nightly_job_runner')

    logger.info("Starting nightly job runner...")
    logger.info(f"Steps: {', '.join(args.steps) if args.steps else 'all'}")

    db.initialize(args.database_url)

    try:
        results = run_nightly_job(args.steps, as_of=args.as_of)
    except (ReplenishmentError, SQLAlchemyError) as e:
        logger.exception(f"Error running nightly job: {str(e)}")
        return 1

    if not results.get('success', False):
        logger.error(f"Nightly job failed: {results.get('error', 'Unknown error')}")
        return 1

    logger.info("Nightly job completed successfully")
    logger.info(f"Duration: {results.get('duration')}")

    for process_name, process_result in results.get('processes', {}).items():
        logger.info(f"Process '{process_name}': {process_result.get('error_count', 0)} errors")
        for message in process_result.get('errors', []):
            logger.info(f"  {message}")

    return 0

if __name__ == "__main__":
    sys.exit(main())
