import json

from mapreduce.common import constants
from mapreduce.common.aws.s3_handler import S3Handler
from mapreduce.common.exceptions import ConfigError
from mapreduce.common.logging import Logging

logger = Logging.get_logger(__name__)


class JobDescriptor:
    """
    Job metadata read by the reducer coordinator to learn how many mapper outputs to expect
    and which reducer to start.
    """
    def __init__(self, job_id: str, job_bucket: str, reducer_function_name: str, reducer_handler: str,
                 map_count: int):
        self._job_id = job_id
        self._job_bucket = job_bucket
        self._reducer_function_name = reducer_function_name
        self._reducer_handler = reducer_handler
        self._map_count = map_count

    @property
    def job_id(self) -> str:
        return self._job_id

    @property
    def job_bucket(self) -> str:
        return self._job_bucket

    @property
    def reducer_function_name(self) -> str:
        return self._reducer_function_name

    @property
    def reducer_handler(self) -> str:
        return self._reducer_handler

    @property
    def map_count(self) -> int:
        return self._map_count

    def to_dict(self) -> dict:
        return {
            'jobId': self._job_id,
            'jobBucket': self._job_bucket,
            'reducerFunctionName': self._reducer_function_name,
            'reducerHandler': self._reducer_handler,
            'mapCount': self._map_count,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def __eq__(self, other):
        if not isinstance(other, JobDescriptor):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"JobDescriptor({self.to_dict()})"


class JobData:
    """
    Summary of a job written at job start for observability.
    """
    def __init__(self, map_count: int, total_objects: int, start_time: float):
        self.map_count = map_count
        self.total_objects = total_objects
        self.start_time = start_time

    def to_dict(self) -> dict:
        return {
            'mapCount': self.map_count,
            'totalObjects': self.total_objects,
            'startTime': self.start_time,
        }


class JobDescriptorStore:
    """
    Persists job metadata to the job bucket before any mapper is invoked.
    """
    def __init__(self, storage: S3Handler):
        self.storage = storage

    def write_descriptor(self, job_id: str, job_bucket: str, reducer_name: str, reducer_handler: str,
                         map_count: int) -> JobDescriptor:
        """
        Builds and stores the job descriptor.

        :param map_count: Number of batches, i.e. mapper invocations of the job
        :return: The stored descriptor, to be bundled with the deployed functions
        """
        if map_count < 1:
            raise ConfigError("Invalid mapper count", f"job {job_id} has {map_count} mappers")

        descriptor = JobDescriptor(job_id, job_bucket, reducer_name, reducer_handler, map_count)
        key = constants.JOB_DESCRIPTOR_KEY_TEMPLATE.format(job_id=job_id)
        self.storage.store_content_in_s3(key, descriptor.to_json())
        logger.info(f"Wrote job descriptor to s3://{self.storage.bucket_name}/{key}: {descriptor.to_dict()}")
        return descriptor

    def write_job_data(self, job_id: str, job_data: JobData) -> str:
        key = constants.JOB_DATA_KEY_TEMPLATE.format(job_id=job_id)
        self.storage.store_content_in_s3(key, json.dumps(job_data.to_dict()))
        logger.debug(f"Wrote job data to s3://{self.storage.bucket_name}/{key}")
        return key
