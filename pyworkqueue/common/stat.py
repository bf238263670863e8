# pyworkqueue/common/stat.py
from typing import Optional

from pyworkqueue.config import get_storage
from pyworkqueue.storage.base import JobStorage


class Stat:
    """Named integer counters, e.g. ``failed`` and ``failed:<worker>``."""

    def __init__(self, storage: Optional[JobStorage] = None):
        self.storage = storage or get_storage()

    def incr(self, name: str, by: int = 1) -> int:
        return self.storage.incr_stat(name, by)

    def decr(self, name: str, by: int = 1) -> int:
        return self.storage.incr_stat(name, -by)

    def get(self, name: str) -> int:
        return self.storage.get_stat(name)

    def clear(self, name: str) -> None:
        self.storage.clear_stat(name)
