"""Starts the map phase of a serverless MapReduce job."""

import argparse
import sys

from mapreduce.common import constants
from mapreduce.common.config import DriverConfig
from mapreduce.common.exceptions import MapReduceException
from mapreduce.common.logging import Logging
from mapreduce.driver.driver import Driver

logger = Logging.get_logger(__name__)


def run_job(job_id: str, config_path: str = constants.DRIVER_CONFIG_FILENAME) -> int:
    """
    Runs a job and maps its outcome to a process exit code.
    """
    try:
        config = DriverConfig.from_file(config_path)
        totals = Driver(job_id, config).run()
    except MapReduceException as e:
        logger.error(f"Job {job_id} failed: {e}")
        print(f"Job {job_id} failed: {e}", file=sys.stderr)
        return e.exit_code
    except Exception as e:
        logger.exception(f"Job {job_id} failed unexpectedly")
        print(f"Job {job_id} failed unexpectedly: {e}", file=sys.stderr)
        return 1

    print(f"Total seconds {totals.elapsed_seconds:f}\n"
          f"Total lines {totals.lines_processed}\n"
          f"Total S3 operations {totals.s3_read_operations}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("job_id", help=f"Job identifier. Settings are read from ./{constants.DRIVER_CONFIG_FILENAME}")
    args = parser.parse_args(argv)
    return run_job(args.job_id)


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
