from mapreduce.common.constants import JOB_STATE_TRANSITIONS, JobState
from mapreduce.common.exceptions import JobStateError
from mapreduce.common.logging import Logging

logger = Logging.get_logger(__name__)


class JobStateTracker:
    """
    Tracks a job through Partitioned -> Deployed -> Dispatching -> Completed | Failed.
    Transitions only move forward.
    """
    def __init__(self, job_id: str, state: JobState = JobState.PARTITIONED):
        self.job_id = job_id
        self.state = state

    def advance(self, state: JobState):
        if state not in JOB_STATE_TRANSITIONS[self.state]:
            raise JobStateError("Illegal job state transition",
                                f"job {self.job_id}: {self.state.value} -> {state.value}")
        logger.debug(f"Job {self.job_id}: {self.state.value} -> {state.value}")
        self.state = state

    def fail(self):
        if self.state != JobState.FAILED:
            self.advance(JobState.FAILED)
