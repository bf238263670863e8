# pyworkqueue/server/worker.py
import logging
import os
import socket
import time
from typing import List, Optional

from pyworkqueue.common.job import Job
from pyworkqueue.common.states import PerformOutcome
from pyworkqueue.events import EventBus
from pyworkqueue.execution.factory import JobFactory
from pyworkqueue.server.processor import JobProcessor
from pyworkqueue.storage.base import JobStorage

logger = logging.getLogger(__name__)

# A zero timeout would block forever and hide shutdown requests
MIN_BLOCKING_TIMEOUT = 0.1


class Worker:
    def __init__(
        self,
        storage: JobStorage,
        queues: Optional[List[str]] = None,
        events: Optional[EventBus] = None,
        factory: Optional[JobFactory] = None,
        blocking: bool = False,
        interval: float = 5.0,
        cooldown: float = 5.0,
    ):
        self.storage = storage
        self.queues = list(queues or ["default"])
        self.events = events
        self.factory = factory
        self.blocking = blocking
        self.interval = interval
        self.cooldown = cooldown
        self.worker_id = f"{socket.gethostname()}:{os.getpid()}:{','.join(self.queues)}"
        self._shutdown_requested = False

    def reserve(self) -> Optional[Job]:
        """Take the next job, checking queues in the order they were given."""
        if self.blocking:
            return Job.reserve_blocking(
                self.queues,
                timeout=max(self.interval, MIN_BLOCKING_TIMEOUT),
                storage=self.storage,
                events=self.events,
                factory=self.factory,
            )

        for queue in self.queues:
            job = Job.reserve(
                queue, storage=self.storage, events=self.events, factory=self.factory
            )
            if job:
                return job
        return None

    def work_one(self) -> Optional[PerformOutcome]:
        """Reserve and process a single job. Returns None when there was none."""
        job = self.reserve()
        if job is None:
            return None

        job.worker = self.worker_id
        logger.info(f"[{self.worker_id}] Picked up {job}")
        return JobProcessor(job).process()

    def run(self, burst: bool = False) -> None:
        """Starts the worker's processing loop.

        With ``burst`` the loop ends as soon as every queue is empty.
        """
        logger.info(f"[{self.worker_id}] Starting worker for queues: {', '.join(self.queues)}")
        while not self._shutdown_requested:
            try:
                outcome = self.work_one()
                if outcome is None:
                    if burst:
                        break
                    if not self.blocking:
                        time.sleep(self.interval)

            except KeyboardInterrupt:
                logger.info(f"[{self.worker_id}] Shutdown requested...")
                self._shutdown_requested = True
            except Exception:
                logger.exception(f"[{self.worker_id}] Unhandled exception in worker loop")
                time.sleep(self.cooldown)  # Cooldown period after a major failure

        logger.info(f"[{self.worker_id}] Worker has stopped.")

    def shutdown(self) -> None:
        self._shutdown_requested = True
