# pyworkqueue/common/job.py
import logging
import time
from collections.abc import Mapping
from typing import Optional, Dict, Any, List

from pyworkqueue.events import AFTER_PERFORM, BEFORE_PERFORM, ON_FAILURE, EventBus
from pyworkqueue.common.exceptions import DontPerform, InvalidArgumentsError
from pyworkqueue.common.failure import Failure
from pyworkqueue.common.stat import Stat
from pyworkqueue.common.states import JobStatus, PerformOutcome
from pyworkqueue.common.status import Status
from pyworkqueue.config import get_event_bus, get_job_factory, get_storage
from pyworkqueue.execution.factory import JobFactory
from pyworkqueue.execution.handler import handler_name
from pyworkqueue.serialization.json_serializer import dumps
from pyworkqueue.storage.base import JobStorage

logger = logging.getLogger(__name__)


class Job:
    """
    A unit of work popped from (or about to be pushed to) a queue.

    The payload is the stored form of the job and is never modified here::

        {"class": "app.jobs.SendEmail", "args": [{"to": "a@b.c"}],
         "id": "3f2a...", "queue_time": 1718000000.123}

    ``args`` always holds a single element, the arguments mapping (or
    ``None``). ``worker`` is set by whoever runs the job and only labels
    failure records and counters.

    Storage, event bus and handler factory default to the ones installed with
    :func:`pyworkqueue.configure`.
    """

    def __init__(
        self,
        queue: str,
        payload: Dict[str, Any],
        storage: Optional[JobStorage] = None,
        events: Optional[EventBus] = None,
        factory: Optional[JobFactory] = None,
    ):
        self._queue = queue
        self.payload = payload
        self.worker: Optional[str] = None
        self._storage = storage
        self._events = events
        self._factory = factory
        self._instance: Optional[Any] = None

    @property
    def queue(self) -> str:
        return self._queue

    @property
    def storage(self) -> JobStorage:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    @property
    def events(self) -> EventBus:
        if self._events is None:
            self._events = get_event_bus()
        return self._events

    @property
    def factory(self) -> JobFactory:
        if self._factory is None:
            self._factory = get_job_factory()
        return self._factory

    @factory.setter
    def factory(self, factory: JobFactory) -> None:
        self._factory = factory

    @property
    def id(self) -> Optional[str]:
        return self.payload.get("id")

    # --- Queueing ---

    @classmethod
    def create(
        cls,
        queue: str,
        class_name: Any,
        args: Optional[Mapping] = None,
        monitor: bool = False,
        job_id: Optional[str] = None,
        storage: Optional[JobStorage] = None,
    ) -> str:
        """
        Push a new job onto ``queue`` and return its id.

        Args:
            queue: Name of the queue to push to.
            class_name: Identifier of the handler, or a handler class.
            args: Mapping of arguments for the handler, or None.
            monitor: Track the job's status, starting as WAITING.
            job_id: Id to use instead of a freshly generated one.

        Raises:
            InvalidArgumentsError: ``args`` is neither None nor a mapping, or
                holds values the serializer cannot encode.
        """
        if args is not None and not isinstance(args, Mapping):
            raise InvalidArgumentsError(
                f"Job arguments must be a mapping, got {type(args).__name__}"
            )

        storage = storage or get_storage()
        if job_id is None:
            job_id = storage.generate_id()

        payload = {
            "class": handler_name(class_name),
            "args": [dict(args) if args is not None else None],
            "id": job_id,
            "queue_time": time.time(),
        }
        try:
            storage.push(queue, payload)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentsError(f"Job arguments are not serializable: {e}") from e
        logger.debug(f"Pushed job {job_id} onto queue {queue}")

        if monitor:
            Status.create(job_id, storage)

        return job_id

    @classmethod
    def reserve(
        cls,
        queue: str,
        storage: Optional[JobStorage] = None,
        events: Optional[EventBus] = None,
        factory: Optional[JobFactory] = None,
    ) -> Optional["Job"]:
        """Pop the next job from ``queue``, or return None if it is empty."""
        storage = storage or get_storage()
        payload = storage.pop(queue)
        if not isinstance(payload, dict):
            return None
        return cls(queue, payload, storage=storage, events=events, factory=factory)

    @classmethod
    def reserve_blocking(
        cls,
        queues: List[str],
        timeout: Optional[float] = None,
        storage: Optional[JobStorage] = None,
        events: Optional[EventBus] = None,
        factory: Optional[JobFactory] = None,
    ) -> Optional["Job"]:
        """
        Wait up to ``timeout`` seconds (forever when None) for a job on any of
        ``queues``. The job is bound to the queue that produced it.
        """
        storage = storage or get_storage()
        item = storage.blocking_pop(queues, timeout)
        if not item:
            return None
        queue, payload = item
        return cls(queue, payload, storage=storage, events=events, factory=factory)

    def recreate(self) -> str:
        """Queue a new attempt of this job under a fresh id."""
        monitor = Status(self.payload["id"], self.storage).is_tracking()
        return Job.create(
            self.queue,
            self.payload["class"],
            self.get_arguments(),
            monitor,
            storage=self.storage,
        )

    # --- Status ---

    def update_status(self, status: int) -> None:
        if not self.payload.get("id"):
            return
        Status(self.payload["id"], self.storage).update(status)

    def get_status(self) -> Optional[JobStatus]:
        return Status(self.payload["id"], self.storage).get()

    # --- Execution ---

    def get_arguments(self) -> Dict[str, Any]:
        args = self.payload.get("args")
        if not args or args[0] is None:
            return {}
        return args[0]

    def get_instance(self) -> Any:
        """The handler for this job, built by the factory on first use."""
        if self._instance is not None:
            return self._instance

        self._instance = self.factory.create(
            self.payload["class"], self.get_arguments(), self.queue
        )
        self._instance.job = self
        return self._instance

    def perform(self) -> PerformOutcome:
        """
        Run the job's handler between the ``before_perform`` and
        ``after_perform`` hooks.

        Returns COMPLETED, or CANCELLED when a hook or the handler raised
        :class:`DontPerform`. Any other exception is left to the caller, which
        is expected to pass it to :meth:`fail`.
        """
        try:
            self.events.trigger(BEFORE_PERFORM, self)

            instance = self.get_instance()
            set_up = getattr(instance, "set_up", None)
            if callable(set_up):
                set_up()

            instance.perform()

            tear_down = getattr(instance, "tear_down", None)
            if callable(tear_down):
                tear_down()

            self.events.trigger(AFTER_PERFORM, self)
        except DontPerform:
            logger.info(f"{self} was cancelled before completing")
            return PerformOutcome.CANCELLED

        return PerformOutcome.COMPLETED

    def fail(self, exception: BaseException) -> None:
        """Record ``exception`` as the reason this attempt failed."""
        self.events.trigger(
            ON_FAILURE, {"exception": exception, "job": self}
        )

        self.update_status(JobStatus.FAILED)
        Failure(self.storage).create(self.payload, exception, self.worker, self.queue)
        stat = Stat(self.storage)
        stat.incr("failed")
        stat.incr(f"failed:{self.worker}")

    def __str__(self) -> str:
        if not self.payload:
            return ""
        name = [f"Job{{{self.queue}}}"]
        if self.payload.get("id"):
            name.append(f"ID: {self.payload['id']}")
        name.append(str(self.payload.get("class", "")))
        if self.payload.get("args"):
            name.append(dumps(self.payload["args"]))
        return "(" + " | ".join(name) + ")"

    def __repr__(self) -> str:
        return f"<Job queue={self.queue!r} id={self.id!r} class={self.payload.get('class')!r}>"
