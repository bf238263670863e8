import os
import socket
import threading
import time

import pytest

from pyworkqueue.common.failure import Failure
from pyworkqueue.common.job import Job
from pyworkqueue.common.stat import Stat
from pyworkqueue.common.states import JobStatus, PerformOutcome
from pyworkqueue.common.status import Status
from pyworkqueue.config import configure
from pyworkqueue.events import ON_FAILURE, EventBus
from pyworkqueue.execution.factory import HandlerRegistry
from pyworkqueue.server.processor import JobProcessor
from pyworkqueue.server.worker import Worker
from pyworkqueue.storage.memory_storage import MemoryStorage
from tests.test_tasks import ALL_HANDLERS


# --- Fixtures ---
@pytest.fixture
def memory_storage():
    storage = MemoryStorage()
    configure(storage)
    return storage


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def registry():
    registry = HandlerRegistry()
    for handler in ALL_HANDLERS:
        registry.register(handler)
    return registry


@pytest.fixture
def worker(memory_storage, events, registry):
    return Worker(
        memory_storage, queues=["high", "default"], events=events, factory=registry, interval=0.1
    )


def reserved(memory_storage, events, registry, worker_id="test-worker"):
    job = Job.reserve("default", storage=memory_storage, events=events, factory=registry)
    job.worker = worker_id
    return job


# --- JobProcessor ---


def test_processor_success(memory_storage, events, registry):
    job_id = Job.create("default", "recording", {"x": 10, "y": 5}, monitor=True)
    job = reserved(memory_storage, events, registry)

    outcome = JobProcessor(job).process()

    assert outcome is PerformOutcome.COMPLETED
    assert Status(job_id).get() == JobStatus.COMPLETE
    assert Stat().get("processed") == 1
    assert Stat().get("processed:test-worker") == 1
    assert Failure().count() == 0


def test_processor_failure(memory_storage, events, registry):
    failures = []
    events.listen(ON_FAILURE, lambda exception, job: failures.append(str(exception)))
    job_id = Job.create("default", "failing", monitor=True)
    job = reserved(memory_storage, events, registry)

    outcome = JobProcessor(job).process()

    assert outcome is PerformOutcome.FAILED
    assert failures == ["This task is designed to fail"]
    assert Status(job_id).get() == JobStatus.FAILED
    [record] = Failure().all()
    assert record.exception == "ValueError"
    assert record.worker == "test-worker"
    assert any("designed to fail" in line for line in record.backtrace)
    assert Stat().get("failed") == 1
    assert Stat().get("failed:test-worker") == 1
    assert Stat().get("processed") == 0


def test_processor_cancellation(memory_storage, events, registry):
    job_id = Job.create("default", "cancelling", monitor=True)
    job = reserved(memory_storage, events, registry)

    assert JobProcessor(job).process() is PerformOutcome.CANCELLED
    assert Status(job_id).get() == JobStatus.CANCELLED
    assert Failure().count() == 0
    assert Stat().get("failed") == 0
    assert Stat().get("processed") == 0


def test_processor_unknown_handler_is_recorded_as_failure(memory_storage, events, registry):
    Job.create("default", "missing-handler")
    job = reserved(memory_storage, events, registry)

    assert JobProcessor(job).process() is PerformOutcome.FAILED
    [record] = Failure().all()
    assert record.exception == "HandlerResolutionError"


# --- Worker ---


def test_worker_id(worker):
    assert worker.worker_id == f"{socket.gethostname()}:{os.getpid()}:high,default"


def test_worker_default_queue(memory_storage):
    assert Worker(memory_storage).queues == ["default"]


def test_worker_work_one(worker, memory_storage):
    assert worker.work_one() is None

    Job.create("default", "recording", monitor=True)
    assert worker.work_one() is PerformOutcome.COMPLETED
    assert Stat().get(f"processed:{worker.worker_id}") == 1


def test_worker_checks_queues_in_order(worker, events):
    picked = []
    events.listen("before_perform", lambda job: picked.append(job.queue))
    Job.create("default", "recording")
    Job.create("high", "recording")

    worker.run(burst=True)
    assert picked == ["high", "default"]


def test_worker_burst_processes_everything(worker, memory_storage):
    ids = [Job.create("default", name, monitor=True) for name in ("recording", "failing", "cancelling")]

    worker.run(burst=True)

    statuses = [Status(job_id).get() for job_id in ids]
    assert statuses == [JobStatus.COMPLETE, JobStatus.FAILED, JobStatus.CANCELLED]
    assert memory_storage.queue_size("default") == 0
    assert Failure().all()[0].worker == worker.worker_id


def test_blocking_worker_in_thread(memory_storage, events, registry):
    worker = Worker(
        memory_storage,
        queues=["default"],
        events=events,
        factory=registry,
        blocking=True,
        interval=0.1,
    )
    worker_thread = threading.Thread(target=worker.run)
    worker_thread.start()

    job_id = Job.create("default", "recording", {"x": 100, "y": 200}, monitor=True)
    deadline = time.monotonic() + 5
    while Status(job_id).get() != JobStatus.COMPLETE and time.monotonic() < deadline:
        time.sleep(0.05)

    worker.shutdown()
    worker_thread.join(timeout=5)
    assert not worker_thread.is_alive()
    assert Status(job_id).get() == JobStatus.COMPLETE


def test_blocking_worker_with_zero_interval_still_shuts_down(memory_storage, events, registry):
    worker = Worker(
        memory_storage,
        queues=["default"],
        events=events,
        factory=registry,
        blocking=True,
        interval=0,
    )
    assert worker.reserve() is None  # Returns instead of waiting forever

    worker_thread = threading.Thread(target=worker.run)
    worker_thread.start()
    time.sleep(0.2)
    worker.shutdown()
    worker_thread.join(timeout=5)
    assert not worker_thread.is_alive()
