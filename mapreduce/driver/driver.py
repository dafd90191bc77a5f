import typing

from mapreduce.common import constants, date, partitioner
from mapreduce.common.aws.lambda_handler import LambdaHandler
from mapreduce.common.aws.s3_handler import S3Handler
from mapreduce.common.config import DriverConfig
from mapreduce.common.constants import FunctionRole, JobState
from mapreduce.common.exceptions import MapReduceException
from mapreduce.common.job.job_descriptor import JobData, JobDescriptor, JobDescriptorStore
from mapreduce.common.job.job_state import JobStateTracker
from mapreduce.common.logging import Logging
from mapreduce.driver.deployment_manager import DeploymentManager, WorkerFunction
from mapreduce.driver.invocation_coordinator import InvocationCoordinator
from mapreduce.driver.result_aggregator import JobTotals

logger = Logging.get_logger(__name__)


class Driver:
    """
    Runs the map phase of a job: partitions the dataset, deploys the job's functions,
    invokes one mapper per batch and reports the aggregated mapper stats.
    """
    def __init__(self, job_id: str, config: DriverConfig,
                 lambda_handler: LambdaHandler = None,
                 source_handler: S3Handler = None,
                 job_bucket_handler: S3Handler = None):
        Logging.set_correlation_id(job_id)

        self.job_id = job_id
        self.config = config
        # One pooled connection per in-flight mapper invocation.
        pool_size = max(config.concurrent_lambdas, constants.DEFAULT_MAX_POOL_CONNECTIONS)
        self.lambda_handler = lambda_handler or LambdaHandler(region_name=config.region,
                                                              function_timeout=config.lambda_timeout,
                                                              max_pool_connections=pool_size)
        self.source_handler = source_handler or S3Handler(config.bucket, region_name=config.region)
        self.job_bucket_handler = job_bucket_handler or S3Handler(config.job_bucket, region_name=config.region)

        self.descriptor_store = JobDescriptorStore(self.job_bucket_handler)
        self.deployment_manager = DeploymentManager(self.lambda_handler, self.job_bucket_handler)
        self.job_state = None

    def function_name(self, role: FunctionRole) -> str:
        return WorkerFunction.function_name(self.config.lambda_prefix, role, self.job_id)

    @property
    def statement_id(self) -> str:
        return f"{self.job_id}-s3-invoke"

    def run(self) -> JobTotals:
        logger.info(f"Starting job {self.job_id}: bucket={self.config.bucket}, prefix={self.config.prefix}, "
                    f"jobBucket={self.config.job_bucket}, region={self.config.region}, "
                    f"lambdaMemory={self.config.lambda_memory}, concurrentLambdas={self.config.concurrent_lambdas}")

        objects = self.source_handler.list_objects(self.config.prefix, self.config.max_keys)
        batches = self._partition(objects)
        self.job_state = JobStateTracker(self.job_id)

        workers = []
        try:
            descriptor = self.descriptor_store.write_descriptor(self.job_id,
                                                                self.config.job_bucket,
                                                                self.function_name(FunctionRole.REDUCER),
                                                                self.config.reducer.handler,
                                                                len(batches))
            workers = self._build_worker_functions(descriptor)
            deployed = self._deploy(workers)
            self.job_state.advance(JobState.DEPLOYED)

            job_data = JobData(len(batches), len(objects), date.get_epoch_seconds())
            self.descriptor_store.write_job_data(self.job_id, job_data)

            coordinator = InvocationCoordinator(self.lambda_handler, self.config.concurrent_lambdas, self.job_state)
            return coordinator.dispatch(batches,
                                        deployed[FunctionRole.MAPPER].arn,
                                        self.config.bucket,
                                        self.config.job_bucket,
                                        self.job_id)
        except MapReduceException as e:
            logger.error(f"Job {self.job_id} failed: {e}")
            self.job_state.fail()
            if workers and self.config.cleanup_on_failure:
                self.deployment_manager.delete_all(workers)
            raise

    def _partition(self, objects: typing.List[partitioner.StoredObject]) -> typing.List[typing.List[str]]:
        worker_memory = partitioner.memory_mb_to_bytes(self.config.lambda_memory)
        objects_per_batch = partitioner.compute_batch_size(objects, worker_memory)
        batches = partitioner.create_batches(objects, objects_per_batch)
        logger.info(f"Partitioned {len(objects)} objects into {len(batches)} batches "
                    f"of up to {objects_per_batch} objects")
        return batches

    def _build_worker_functions(self, descriptor: JobDescriptor) -> typing.List[WorkerFunction]:
        artifacts = self.deployment_manager.package_all(self.config.functions, descriptor)
        return [WorkerFunction(role,
                               self.function_name(role),
                               function_config.handler,
                               artifacts[role],
                               self.config.lambda_memory,
                               self.config.lambda_timeout,
                               self.config.role,
                               self.config.lambda_runtime)
                for role, function_config in self.config.functions.items()]

    def _deploy(self, workers: typing.List[WorkerFunction]) -> typing.Dict[FunctionRole, WorkerFunction]:
        deployed = {worker.role: worker for worker in self.deployment_manager.deploy_all(workers)}

        reducer_coordinator_arn = deployed[FunctionRole.REDUCER_COORDINATOR].arn
        self.deployment_manager.authorize_trigger(reducer_coordinator_arn,
                                                  self.job_bucket_handler.bucket_arn,
                                                  self.statement_id)
        self.deployment_manager.configure_trigger_notification(
            reducer_coordinator_arn,
            constants.MAPPER_OUTPUT_PREFIX_TEMPLATE.format(job_id=self.job_id),
            self.statement_id)
        return deployed
