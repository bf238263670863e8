# pyworkqueue/storage/memory_storage.py
import logging
import time
from collections import deque
from threading import RLock, Condition
from typing import Optional, List, Dict, Any, Tuple

from pyworkqueue.storage.base import JobStorage
from pyworkqueue.serialization.base import BaseSerializer
from pyworkqueue.serialization.json_serializer import JsonSerializer
from pyworkqueue.common.exceptions import PayloadDecodeError

logger = logging.getLogger(__name__)


class MemoryStorage(JobStorage):
    def __init__(self, serializer: Optional[BaseSerializer] = None):
        self.serializer = serializer or JsonSerializer()
        # Payloads are kept encoded so they round-trip like a real store.
        self._queues: Dict[str, deque[str]] = {}
        self._statuses: Dict[str, Tuple[str, Optional[float]]] = {}
        self._failures: List[str] = []
        self._stats: Dict[str, int] = {}
        self._lock = RLock()
        self._condition = Condition(self._lock)

    def push(self, queue: str, payload: Dict[str, Any]) -> None:
        data = self.serializer.serialize_payload(payload)
        with self._lock:
            self._queues.setdefault(queue, deque()).append(data)
            self._condition.notify_all()  # Wake any blocked worker

    def pop(self, queue: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._pop_locked(queue)

    def blocking_pop(
        self, queues: List[str], timeout: Optional[float] = None
    ) -> Optional[Tuple[str, Dict[str, Any]]]:
        deadline = time.monotonic() + timeout if timeout else None
        with self._condition:
            while True:
                for queue_name in queues:
                    payload = self._pop_locked(queue_name)
                    if payload is not None:
                        return queue_name, payload

                if deadline is None:
                    self._condition.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._condition.wait(remaining)

    def _pop_locked(self, queue: str) -> Optional[Dict[str, Any]]:
        pending = self._queues.get(queue)
        while pending:
            data = pending.popleft()
            try:
                return self.serializer.deserialize_payload(data)
            except PayloadDecodeError:
                logger.warning(f"Dropping undecodable payload from queue {queue}: {data!r}")
        return None

    def queue_size(self, queue: str) -> int:
        with self._lock:
            return len(self._queues.get(queue, ()))

    def queues(self) -> List[str]:
        with self._lock:
            return sorted(self._queues)

    def set_status(
        self, job_id: str, record: Dict[str, Any], ttl: Optional[int] = None
    ) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        with self._lock:
            self._statuses[job_id] = (self.serializer.serialize_record(record), expires_at)

    def get_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._statuses.get(job_id)
            if entry is None:
                return None
            data, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._statuses[job_id]
                return None
            return self.serializer.deserialize_record(data)

    def delete_status(self, job_id: str) -> None:
        with self._lock:
            self._statuses.pop(job_id, None)

    def record_failure(self, record: Dict[str, Any]) -> None:
        with self._lock:
            self._failures.append(self.serializer.serialize_record(record))

    def failure_count(self) -> int:
        with self._lock:
            return len(self._failures)

    def get_failures(self, start: int, count: int) -> List[Dict[str, Any]]:
        with self._lock:
            selected = self._failures[start:start + count]
        return [self.serializer.deserialize_record(data) for data in selected]

    def clear_failures(self) -> None:
        with self._lock:
            self._failures = []

    def incr_stat(self, name: str, by: int = 1) -> int:
        with self._lock:
            self._stats[name] = self._stats.get(name, 0) + by
            return self._stats[name]

    def get_stat(self, name: str) -> int:
        with self._lock:
            return self._stats.get(name, 0)

    def clear_stat(self, name: str) -> None:
        with self._lock:
            self._stats.pop(name, None)
