# pyworkqueue/storage/base.py
import uuid
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Tuple


class JobStorage(ABC):
    """
    Everything the job core needs from a backing store.

    Queues are FIFO per name. ``pop`` and ``blocking_pop`` must hand a payload
    to exactly one caller. A ``blocking_pop`` timeout of ``None`` (or 0)
    blocks until a payload arrives.
    """

    # --- Queues ---

    @abstractmethod
    def push(self, queue: str, payload: Dict[str, Any]) -> None: ...

    @abstractmethod
    def pop(self, queue: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    def blocking_pop(
        self, queues: List[str], timeout: Optional[float] = None
    ) -> Optional[Tuple[str, Dict[str, Any]]]: ...

    @abstractmethod
    def queue_size(self, queue: str) -> int: ...

    @abstractmethod
    def queues(self) -> List[str]: ...

    def generate_id(self) -> str:
        return uuid.uuid4().hex

    # --- Status tracking ---

    @abstractmethod
    def set_status(
        self, job_id: str, record: Dict[str, Any], ttl: Optional[int] = None
    ) -> None: ...

    @abstractmethod
    def get_status(self, job_id: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    def delete_status(self, job_id: str) -> None: ...

    # --- Failures ---

    @abstractmethod
    def record_failure(self, record: Dict[str, Any]) -> None: ...

    @abstractmethod
    def failure_count(self) -> int: ...

    @abstractmethod
    def get_failures(self, start: int, count: int) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def clear_failures(self) -> None: ...

    # --- Counters ---

    @abstractmethod
    def incr_stat(self, name: str, by: int = 1) -> int: ...

    @abstractmethod
    def get_stat(self, name: str) -> int: ...

    @abstractmethod
    def clear_stat(self, name: str) -> None: ...
