"""
Splits a dataset of S3 objects into batches that fit the memory of one mapper.
"""
import math
import typing

from mapreduce.common import constants
from mapreduce.common.exceptions import ConfigError, EmptyDatasetError
from mapreduce.common.logging import Logging

logger = Logging.get_logger(__name__)


class StoredObject(typing.NamedTuple):
    """
    An object of the input dataset, as listed from S3.
    """
    key: str
    size: int

    @staticmethod
    def from_s3_listing(entry: dict) -> "StoredObject":
        return StoredObject(entry['Key'], entry['Size'])


def memory_mb_to_bytes(memory_mb: int) -> int:
    return memory_mb * constants.BYTES_PER_MB


def compute_batch_size(objects: typing.Sequence[StoredObject], worker_memory_bytes: int) -> int:
    """
    Number of objects one mapper can hold, based on the average object size.

    :param objects: Objects of the dataset
    :param worker_memory_bytes: Memory of a mapper in bytes
    :return: Objects per batch, at least 1
    """
    if not objects:
        raise EmptyDatasetError("Dataset is empty", "no objects to partition")
    if worker_memory_bytes <= 0:
        raise ConfigError("Invalid worker memory", f"{worker_memory_bytes} bytes")

    total_size = sum(obj.size for obj in objects)
    avg_object_size = total_size / len(objects)
    logger.info(f"Dataset size (bytes) {total_size}, nKeys: {len(objects)}, avg size (bytes): {avg_object_size}")

    if avg_object_size == 0:
        return len(objects)

    usable_memory = constants.MEMORY_SAFETY_FACTOR * worker_memory_bytes
    return max(1, math.floor(usable_memory / avg_object_size))


def create_batches(objects: typing.Sequence[typing.Union[StoredObject, str]],
                   objects_per_batch: int) -> typing.List[typing.List[str]]:
    """
    Groups object keys, in order, into batches of objects_per_batch keys.
    The last batch holds the remainder and may be smaller.
    """
    if objects_per_batch < 1:
        raise ConfigError("Invalid batch size", f"{objects_per_batch} objects per batch")

    batches = []
    batch = []
    for obj in objects:
        batch.append(obj.key if isinstance(obj, StoredObject) else obj)
        if len(batch) == objects_per_batch:
            batches.append(batch)
            batch = []

    if batch:
        batches.append(batch)

    logger.debug(f"Created {len(batches)} batches of up to {objects_per_batch} objects")
    return batches
