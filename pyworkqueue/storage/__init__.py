from .base import JobStorage
from .memory_storage import MemoryStorage
from .redis_storage import RedisStorage

try:  # Optional dependency
    from .sql_storage import SqlStorage
except ImportError:  # pragma: no cover
    SqlStorage = None  # type: ignore[assignment]

__all__ = ["JobStorage", "MemoryStorage", "RedisStorage", "SqlStorage"]
