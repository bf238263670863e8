# main.py
import logging
import threading
import time

import pyworkqueue
from pyworkqueue import DontPerform, JobHandler
from pyworkqueue.events import BEFORE_PERFORM, ON_FAILURE
from pyworkqueue.storage.memory_storage import MemoryStorage
from pyworkqueue.server.worker import Worker


@pyworkqueue.register_handler
class AddNumbers(JobHandler):
    name = "add_numbers"

    def perform(self):
        print(f"Executing add_numbers with args: {self.args}")
        return self.args["x"] + self.args["y"]


@pyworkqueue.register_handler
class Explode(JobHandler):
    name = "explode"

    def perform(self):
        raise ValueError("boom")


def skip_on_maintenance(job):
    if job.get_arguments().get("maintenance"):
        raise DontPerform()


def report_failure(exception, job):
    print(f"{job} failed with {exception!r}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    # 1. Configure PyWorkQueue
    storage = MemoryStorage()
    pyworkqueue.configure(storage)
    events = pyworkqueue.get_event_bus()
    events.listen(BEFORE_PERFORM, skip_on_maintenance)
    events.listen(ON_FAILURE, report_failure)

    # 2. Enqueue a few jobs
    client = pyworkqueue.get_client()
    job_id = client.enqueue("default", AddNumbers, {"x": 1, "y": 2}, monitor=True)
    skipped_id = client.enqueue("default", AddNumbers, {"x": 0, "y": 0, "maintenance": True}, monitor=True)
    failing_id = client.enqueue("default", "explode", monitor=True)
    print(f"Enqueued jobs {job_id}, {skipped_id}, {failing_id}")

    # 3. Start a worker in a separate thread (for demonstration)
    worker = Worker(storage, queues=["default"], blocking=True, interval=1)
    worker_thread = threading.Thread(target=worker.run, daemon=True)
    worker_thread.start()

    # 4. Wait and check job statuses
    time.sleep(2)  # Give the worker time to process
    for jid in (job_id, skipped_id, failing_id):
        print(f"Job {jid}: {client.job_status(jid)!r}")
    print(f"Failures recorded: {client.failure_count()}")

    # Stop the worker gracefully
    worker.shutdown()
    worker_thread.join(timeout=5)
    print("\nDemonstration finished.")
