from enum import Enum


class FunctionRole(Enum):
    """
    The three Lambda functions deployed for every job. Values are used in function names.
    """
    MAPPER = "mapper"
    REDUCER = "reducer"
    REDUCER_COORDINATOR = "reducerCoordinator"


class JobState(Enum):
    PARTITIONED = "Partitioned"
    DEPLOYED = "Deployed"
    DISPATCHING = "Dispatching"
    COMPLETED = "Completed"
    FAILED = "Failed"


# Allowed forward transitions of a job.
JOB_STATE_TRANSITIONS = {
    JobState.PARTITIONED: {JobState.DEPLOYED, JobState.FAILED},
    JobState.DEPLOYED: {JobState.DISPATCHING, JobState.FAILED},
    JobState.DISPATCHING: {JobState.COMPLETED, JobState.FAILED},
    JobState.COMPLETED: set(),
    JobState.FAILED: set(),
}

DRIVER_CONFIG_FILENAME = "driverconfig.json"

# Share of worker memory available to the dataset. The rest is left to the runtime.
MEMORY_SAFETY_FACTOR = 0.6
BYTES_PER_MB = 1000 * 1000

DEFAULT_LAMBDA_PREFIX = "BL"
DEFAULT_LAMBDA_RUNTIME = "python3.12"
DEFAULT_LAMBDA_TIMEOUT = 300
DEFAULT_MAX_KEYS = 1000
DEFAULT_MAX_POOL_CONNECTIONS = 10
# Seconds a synchronous invoke may wait beyond the function timeout.
INVOKE_READ_TIMEOUT_MARGIN = 30
ROLE_ENV_VAR = "serverless_mapreduce_role"

# Object store principal allowed to invoke the reducer coordinator.
S3_PRINCIPAL = "s3.amazonaws.com"

JOB_DESCRIPTOR_FILENAME = "jobinfo.json"
JOB_DESCRIPTOR_KEY_TEMPLATE = "{job_id}/jobinfo.json"
JOB_DATA_KEY_TEMPLATE = "{job_id}/jobdata"
MAPPER_OUTPUT_PREFIX_TEMPLATE = "{job_id}/task/mapper/"

INVOCATION_RESULT_VERSION = 1
