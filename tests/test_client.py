import pytest

import pyworkqueue
from pyworkqueue.client import BackgroundJobClient, Client
from pyworkqueue.common.exceptions import DontCreate, InvalidArgumentsError
from pyworkqueue.common.job import Job
from pyworkqueue.common.states import JobStatus
from pyworkqueue.config import configure, get_event_bus, get_storage
from pyworkqueue.events import AFTER_ENQUEUE, BEFORE_ENQUEUE, EventBus
from pyworkqueue.storage.memory_storage import MemoryStorage
from tests.test_tasks import RecordingHandler


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
def client(memory_storage, events):
    return Client(memory_storage, events)


def test_client_enqueue(client, memory_storage):
    job_id = client.enqueue("default", RecordingHandler, {"x": 1}, monitor=True)

    assert client.queue_size("default") == 1
    assert client.job_status(job_id) == JobStatus.WAITING
    job = Job.reserve("default")
    assert job.payload["id"] == job_id
    assert job.payload["class"] == "recording"
    assert job.get_arguments() == {"x": 1}


def test_client_enqueue_hooks(client, events):
    calls = []
    events.listen(BEFORE_ENQUEUE, lambda **params: calls.append(("before", params)))
    events.listen(AFTER_ENQUEUE, lambda **params: calls.append(("after", params)))

    job_id = client.enqueue("mail", "send_email", {"to": "a@example.com"})

    params = {
        "class_name": "send_email",
        "args": {"to": "a@example.com"},
        "queue": "mail",
        "job_id": job_id,
    }
    assert calls == [("before", params), ("after", params)]


def test_client_enqueue_vetoed(client, events):
    def veto(class_name, args, queue, job_id):
        raise DontCreate()

    after = []
    events.listen(BEFORE_ENQUEUE, veto)
    events.listen(AFTER_ENQUEUE, lambda **params: after.append(params))

    assert client.enqueue("default", "recording") is None
    assert client.queue_size("default") == 0
    assert after == []


def test_client_enqueue_with_job_id(client):
    assert client.enqueue("default", "recording", job_id="custom") == "custom"
    assert Job.reserve("default").payload["id"] == "custom"


def test_client_enqueue_invalid_args(client):
    with pytest.raises(InvalidArgumentsError):
        client.enqueue("default", "recording", ["not", "a", "mapping"])
    assert client.queue_size("default") == 0


def test_client_queries(client):
    client.enqueue("b", "recording")
    client.enqueue("a", "recording")
    client.enqueue("a", "recording")

    assert client.queues() == ["a", "b"]
    assert client.queue_size("a") == 2
    assert client.get_stat("processed") == 0
    assert client.job_status("unknown") is None


def test_client_failures_and_retry(client, memory_storage):
    old_id = client.enqueue("default", "failing", {"n": 1}, monitor=True)
    job = Job.reserve("default")
    job.worker = "w"
    job.fail(ValueError("first"))
    client.enqueue("default", "failing", {"n": 2})
    Job.reserve("default").fail(ValueError("second"))

    assert client.failure_count() == 2
    assert [f.error for f in client.get_failures(page=1, page_size=1)] == ["first"]
    assert [f.error for f in client.get_failures(page=2, page_size=1)] == ["second"]

    new_id = client.retry_failure(0)
    assert new_id != old_id
    assert client.job_status(new_id) == JobStatus.WAITING
    retried = Job.reserve("default")
    assert retried.payload["id"] == new_id
    assert retried.get_arguments() == {"n": 1}

    with pytest.raises(IndexError):
        client.retry_failure(5)


def test_background_job_client_alias():
    assert BackgroundJobClient is Client


# Test global config
def test_global_config(memory_storage):
    # Already configured by memory_storage fixture
    assert get_storage() is memory_storage
    assert isinstance(get_event_bus(), EventBus)

    # Test error when not configured
    configure(None)  # Clear config
    with pytest.raises(RuntimeError, match="PyWorkQueue has not been configured"):
        get_storage()
    configure(memory_storage)  # Restore for other tests


def test_get_client_is_cached_until_reconfigured(memory_storage):
    pyworkqueue.configure(memory_storage)
    first = pyworkqueue.get_client()
    assert pyworkqueue.get_client() is first
    assert first.storage is memory_storage

    pyworkqueue.configure(MemoryStorage())
    assert pyworkqueue.get_client() is not first
