# pyworkqueue/common/failure.py
import logging
import traceback
from dataclasses import dataclass, asdict, fields
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from pyworkqueue.config import get_storage
from pyworkqueue.storage.base import JobStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FailureRecord:
    """What is kept about one failed attempt at a job."""

    failed_at: str
    payload: Dict[str, Any]
    exception: str
    error: str
    backtrace: List[str]
    worker: Optional[str]
    queue: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FailureRecord":
        return cls(**{f.name: data.get(f.name) for f in fields(cls)})


class Failure:
    def __init__(self, storage: Optional[JobStorage] = None):
        self.storage = storage or get_storage()

    def create(
        self,
        payload: Dict[str, Any],
        exception: BaseException,
        worker: Optional[str],
        queue: str,
    ) -> FailureRecord:
        backtrace = "".join(
            traceback.format_exception(type(exception), exception, exception.__traceback__)
        )
        record = FailureRecord(
            failed_at=datetime.now(UTC).isoformat(),
            payload=payload,
            exception=type(exception).__name__,
            error=str(exception),
            backtrace=backtrace.splitlines(),
            worker=str(worker) if worker is not None else None,
            queue=queue,
        )
        self.storage.record_failure(record.to_dict())
        logger.debug(f"Recorded failure of job {payload.get('id')} on queue {queue}")
        return record

    def count(self) -> int:
        return self.storage.failure_count()

    def all(self, start: int = 0, count: int = 20) -> List[FailureRecord]:
        return [FailureRecord.from_dict(data) for data in self.storage.get_failures(start, count)]

    def clear(self) -> None:
        self.storage.clear_failures()
