# pyworkqueue/storage/redis_storage.py
import redis
import logging
from typing import Optional, List, Any, Dict, Tuple

from .base import JobStorage
from ..serialization.base import BaseSerializer
from ..serialization.json_serializer import JsonSerializer
from ..common.exceptions import PayloadDecodeError

logger = logging.getLogger(__name__)


class RedisStorage(JobStorage):
    """
    Redis layout (all keys under ``prefix``)::

        queues             SET     names of every queue pushed to
        queue:<name>       LIST    encoded payloads, RPUSH / LPOP
        job:<id>:status    STRING  encoded status record, expires once terminal
        failed             LIST    encoded failure records, append-only
        stat:<name>        STRING  integer counter
    """

    def __init__(
        self,
        connection_pool=None,
        redis_client=None,
        url: Optional[str] = None,
        prefix: str = "pyworkqueue:",
        serializer: Optional[BaseSerializer] = None,
    ):
        if redis_client:
            connection_pool = redis_client.connection_pool
        if connection_pool:
            if connection_pool.connection_kwargs.get("decode_responses", False):
                self.redis_client = redis_client or redis.Redis(connection_pool=connection_pool)
            else:
                # The pool's own settings win over Redis(decode_responses=...)
                self.redis_client = redis.Redis(
                    connection_pool=redis.ConnectionPool(
                        connection_class=connection_pool.connection_class,
                        **{**connection_pool.connection_kwargs, "decode_responses": True},
                    )
                )
        elif url:
            self.redis_client = redis.Redis.from_url(url, decode_responses=True)
        else:
            self.redis_client = redis.Redis(
                host="localhost", port=6379, db=0, decode_responses=True
            )
        self.prefix = prefix
        self.serializer = serializer or JsonSerializer()

    def _key(self, *parts: str) -> str:
        return self.prefix + ":".join(parts)

    def _queue_key(self, queue: str) -> str:
        return self._key("queue", queue)

    def _decode_payload(self, queue: str, data: str) -> Optional[Dict[str, Any]]:
        try:
            return self.serializer.deserialize_payload(data)
        except PayloadDecodeError:
            logger.warning(f"Dropping undecodable payload from queue {queue}: {data!r}")
            return None

    # --- Queues ---

    def push(self, queue: str, payload: Dict[str, Any]) -> None:
        data = self.serializer.serialize_payload(payload)
        with self.redis_client.pipeline() as pipe:
            pipe.sadd(self._key("queues"), queue)
            pipe.rpush(self._queue_key(queue), data)
            pipe.execute()

    def pop(self, queue: str) -> Optional[Dict[str, Any]]:
        while True:
            data = self.redis_client.lpop(self._queue_key(queue))
            if data is None:
                return None
            payload = self._decode_payload(queue, data)
            if payload is not None:
                return payload

    def blocking_pop(
        self, queues: List[str], timeout: Optional[float] = None
    ) -> Optional[Tuple[str, Dict[str, Any]]]:
        keys = [self._queue_key(queue) for queue in queues]
        item = self.redis_client.blpop(keys, timeout=timeout or 0)
        if not item:
            return None
        key, data = item
        queue = key[len(self._queue_key("")):]
        payload = self._decode_payload(queue, data)
        if payload is None:
            return None
        return queue, payload

    def queue_size(self, queue: str) -> int:
        return self.redis_client.llen(self._queue_key(queue))

    def queues(self) -> List[str]:
        return sorted(self.redis_client.smembers(self._key("queues")))

    # --- Status tracking ---

    def set_status(
        self, job_id: str, record: Dict[str, Any], ttl: Optional[int] = None
    ) -> None:
        self.redis_client.set(
            self._key("job", job_id, "status"),
            self.serializer.serialize_record(record),
            ex=ttl,
        )

    def get_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        data = self.redis_client.get(self._key("job", job_id, "status"))
        if data is None:
            return None
        return self.serializer.deserialize_record(data)

    def delete_status(self, job_id: str) -> None:
        self.redis_client.delete(self._key("job", job_id, "status"))

    # --- Failures ---

    def record_failure(self, record: Dict[str, Any]) -> None:
        self.redis_client.rpush(self._key("failed"), self.serializer.serialize_record(record))

    def failure_count(self) -> int:
        return self.redis_client.llen(self._key("failed"))

    def get_failures(self, start: int, count: int) -> List[Dict[str, Any]]:
        rows = self.redis_client.lrange(self._key("failed"), start, start + count - 1)
        return [self.serializer.deserialize_record(row) for row in rows]

    def clear_failures(self) -> None:
        self.redis_client.delete(self._key("failed"))

    # --- Counters ---

    def incr_stat(self, name: str, by: int = 1) -> int:
        return self.redis_client.incrby(self._key("stat", name), by)

    def get_stat(self, name: str) -> int:
        value = self.redis_client.get(self._key("stat", name))
        return int(value) if value else 0

    def clear_stat(self, name: str) -> None:
        self.redis_client.delete(self._key("stat", name))
