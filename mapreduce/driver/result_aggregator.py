from mapreduce.common.job.invocation_result import InvocationResult
from mapreduce.common.logging import Logging

logger = Logging.get_logger(__name__)


class JobTotals:
    def __init__(self, s3_read_operations: int = 0, lines_processed: int = 0, elapsed_seconds: float = 0.0):
        self.s3_read_operations = s3_read_operations
        self.lines_processed = lines_processed
        self.elapsed_seconds = elapsed_seconds

    def to_dict(self) -> dict:
        return {
            's3ReadOperations': self.s3_read_operations,
            'linesProcessed': self.lines_processed,
            'elapsedSeconds': self.elapsed_seconds,
        }

    def __eq__(self, other):
        if not isinstance(other, JobTotals):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"JobTotals({self.to_dict()})"


class ResultAggregator:
    """
    Folds mapper results into job totals. Results may arrive in any order.
    A failed result aborts aggregation and no totals are reported.
    """
    def __init__(self, expected_results: int):
        self.expected_results = expected_results
        self.received_results = 0
        self.failed = False
        self._totals = JobTotals()

    @property
    def is_complete(self) -> bool:
        return self.received_results == self.expected_results

    @property
    def totals(self) -> JobTotals:
        if self.failed:
            raise RuntimeError("Aggregation was aborted by a failed mapper")
        if not self.is_complete:
            raise RuntimeError(f"Only {self.received_results} of {self.expected_results} results aggregated")
        return self._totals

    def add(self, result: InvocationResult):
        if self.failed:
            raise RuntimeError("Aggregation was aborted by a failed mapper")
        if not result.is_success:
            logger.error(f"Mapper {result.mapper_id} failed, discarding totals: {result.error}")
            self.failed = True
            self._totals = None
            raise result.error

        self._totals.s3_read_operations += result.s3_read_operations
        self._totals.lines_processed += result.lines_processed
        self._totals.elapsed_seconds += result.elapsed_seconds
        self.received_results += 1
        logger.debug(f"Aggregated {result} ({self.received_results}/{self.expected_results})")

    def report(self) -> JobTotals:
        totals = self.totals
        logger.info(f"Total seconds {totals.elapsed_seconds:f}")
        logger.info(f"Total lines {totals.lines_processed}")
        logger.info(f"Total S3 operations {totals.s3_read_operations}")
        return totals
