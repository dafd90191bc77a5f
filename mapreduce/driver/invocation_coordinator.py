import concurrent.futures
import typing

import botocore

from mapreduce.common.aws.lambda_handler import LambdaHandler
from mapreduce.common.constants import JobState
from mapreduce.common.exceptions import InvocationError, MapReduceException
from mapreduce.common.job.invocation_result import InvocationResult
from mapreduce.common.job.job_state import JobStateTracker
from mapreduce.common.logging import Logging
from mapreduce.driver.result_aggregator import JobTotals, ResultAggregator

logger = Logging.get_logger(__name__)


class InvocationCoordinator:
    """
    Fans out one synchronous mapper invocation per batch and folds the results into job totals.
    At most max_concurrency mappers run at the same time.
    """
    def __init__(self, lambda_handler: LambdaHandler, max_concurrency: int, job_state: JobStateTracker):
        self.lambda_handler = lambda_handler
        self.max_concurrency = max_concurrency
        self.job_state = job_state

    @staticmethod
    def _get_mapper_payload(batch: typing.List[str], mapper_id: int, source_bucket: str, job_bucket: str,
                            job_id: str) -> dict:
        return {
            'bucket': source_bucket,
            'keys': batch,
            'jobBucket': job_bucket,
            'jobId': job_id,
            'mapperId': mapper_id,
        }

    def _invoke_mapper(self, function_arn: str, mapper_id: int, payload: dict) -> InvocationResult:
        try:
            response, function_error = self.lambda_handler.invoke(function_arn, payload)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            return InvocationResult.failure(mapper_id, InvocationError("Failed to invoke mapper",
                                                                       f"mapper {mapper_id}: {e}"))
        try:
            result = InvocationResult.from_payload(mapper_id, response, function_error)
        except MapReduceException as e:
            return InvocationResult.failure(mapper_id, e)
        logger.debug(f"Mapper {mapper_id} returned {response!r}")
        return result

    def dispatch(self, batches: typing.List[typing.List[str]], function_arn: str, source_bucket: str,
                 job_bucket: str, job_id: str) -> JobTotals:
        """
        Invokes the mapper once per batch and waits for every result.

        :param batches: Object keys per mapper, in partition order
        :param function_arn: ARN of the deployed mapper
        :param source_bucket: Bucket holding the dataset
        :param job_bucket: Bucket receiving mapper outputs
        :param job_id: Job identifier
        :return: Totals over all mapper results
        :raises MapReduceException: the error of the first failed mapper; pending mappers are not started
        """
        self.job_state.advance(JobState.DISPATCHING)
        logger.info(f"Dispatching {len(batches)} mappers, at most {self.max_concurrency} concurrently")

        aggregator = ResultAggregator(len(batches))
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.max_concurrency)
        try:
            futures = [executor.submit(self._invoke_mapper, function_arn, mapper_id,
                                       self._get_mapper_payload(batch, mapper_id, source_bucket, job_bucket, job_id))
                       for mapper_id, batch in enumerate(batches)]
            for future in concurrent.futures.as_completed(futures):
                aggregator.add(future.result())
        except MapReduceException:
            self.job_state.fail()
            raise
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        self.job_state.advance(JobState.COMPLETED)
        return aggregator.report()
