# pyworkqueue/client.py
import logging
from typing import Any, Optional, List, Mapping

from .common.exceptions import DontCreate
from .common.failure import Failure, FailureRecord
from .common.job import Job
from .common.stat import Stat
from .common.states import JobStatus
from .common.status import Status
from .config import get_event_bus, get_storage
from .events import AFTER_ENQUEUE, BEFORE_ENQUEUE, EventBus
from .execution.handler import handler_name
from .storage.base import JobStorage

logger = logging.getLogger(__name__)


class Client:
    """
    A client for interacting with PyWorkQueue, enabling job enqueuing,
    retrying failures and querying queues, statuses and counters.
    """
    def __init__(
        self, storage: Optional[JobStorage] = None, events: Optional[EventBus] = None
    ):
        self.storage = storage or get_storage()
        self.events = events or get_event_bus()

    def enqueue(
        self,
        queue: str,
        handler: Any,
        args: Optional[Mapping] = None,
        monitor: bool = False,
        job_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Queue a job for ``handler`` (a handler class or its identifier).

        Returns the job id, or None when a ``before_enqueue`` listener raised
        :class:`DontCreate`.
        """
        hook_params = {
            "class_name": handler_name(handler),
            "args": args,
            "queue": queue,
            "job_id": job_id or self.storage.generate_id(),
        }
        try:
            self.events.trigger(BEFORE_ENQUEUE, hook_params)
        except DontCreate:
            logger.info(f"Enqueue of {hook_params['class_name']} on {queue} was vetoed")
            return None

        Job.create(
            queue,
            hook_params["class_name"],
            args,
            monitor,
            job_id=hook_params["job_id"],
            storage=self.storage,
        )
        self.events.trigger(AFTER_ENQUEUE, hook_params)
        return hook_params["job_id"]

    def retry_failure(self, index: int) -> str:
        """Queue a fresh attempt of the job behind the failure at ``index``."""
        records = Failure(self.storage).all(index, 1)
        if not records:
            raise IndexError(f"No failure recorded at index {index}")
        record = records[0]
        return Job(record.queue, record.payload, storage=self.storage, events=self.events).recreate()

    # --- Query Methods ---

    def job_status(self, job_id: str) -> Optional[JobStatus]:
        return Status(job_id, self.storage).get()

    def queue_size(self, queue: str) -> int:
        return self.storage.queue_size(queue)

    def queues(self) -> List[str]:
        return self.storage.queues()

    def get_stat(self, name: str) -> int:
        return Stat(self.storage).get(name)

    def failure_count(self) -> int:
        return Failure(self.storage).count()

    def get_failures(self, page: int = 1, page_size: int = 20) -> List[FailureRecord]:
        start = (page - 1) * page_size
        return Failure(self.storage).all(start, page_size)


BackgroundJobClient = Client
