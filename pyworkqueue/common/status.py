# pyworkqueue/common/status.py
import time
from typing import Optional

from pyworkqueue.common.states import JobStatus
from pyworkqueue.config import get_storage
from pyworkqueue.storage.base import JobStorage

# Finished statuses are kept for a day, then the store may drop them.
TERMINAL_STATUS_TTL = 24 * 60 * 60


class Status:
    """Opt-in status tracking for a single job id."""

    def __init__(self, job_id: str, storage: Optional[JobStorage] = None):
        self.job_id = job_id
        self.storage = storage or get_storage()

    @classmethod
    def create(cls, job_id: str, storage: Optional[JobStorage] = None) -> "Status":
        """Start tracking ``job_id`` in the WAITING state."""
        status = cls(job_id, storage)
        now = time.time()
        status.storage.set_status(
            job_id,
            {"status": int(JobStatus.WAITING), "updated": now, "started": now},
        )
        return status

    def is_tracking(self) -> bool:
        return self.storage.get_status(self.job_id) is not None

    def update(self, status: int) -> None:
        """Record a new status. Does nothing for untracked jobs."""
        status = JobStatus(status)
        record = self.storage.get_status(self.job_id)
        if record is None:
            return

        record.update(status=int(status), updated=time.time())
        ttl = TERMINAL_STATUS_TTL if status.is_terminal else None
        self.storage.set_status(self.job_id, record, ttl=ttl)

    def get(self) -> Optional[JobStatus]:
        record = self.storage.get_status(self.job_id)
        if record is None:
            return None
        return JobStatus(record["status"])

    def stop(self) -> None:
        self.storage.delete_status(self.job_id)

    def __str__(self) -> str:
        return f"job:{self.job_id}:status"
