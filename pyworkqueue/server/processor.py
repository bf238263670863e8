# pyworkqueue/server/processor.py
import logging
from pyworkqueue.common.job import Job
from pyworkqueue.common.stat import Stat
from pyworkqueue.common.states import JobStatus, PerformOutcome

logger = logging.getLogger(__name__)


class JobProcessor:
    """Runs one reserved job and records how it ended."""

    def __init__(self, job: Job):
        self.job = job

    def process(self) -> PerformOutcome:
        job = self.job
        job.update_status(JobStatus.RUNNING)
        try:
            outcome = job.perform()
        except Exception as e:
            logger.error(f"{job} failed.", exc_info=True)
            job.fail(e)
            return PerformOutcome.FAILED

        if outcome is PerformOutcome.CANCELLED:
            job.update_status(JobStatus.CANCELLED)
            return outcome

        job.update_status(JobStatus.COMPLETE)
        stat = Stat(job.storage)
        stat.incr("processed")
        stat.incr(f"processed:{job.worker}")
        logger.info(f"{job} has finished")
        return outcome
