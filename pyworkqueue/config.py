# pyworkqueue/config.py
from typing import Optional
from pyworkqueue.events import EventBus
from pyworkqueue.execution.factory import HandlerRegistry, JobFactory
from pyworkqueue.storage.base import JobStorage

class _GlobalConfig:
    def __init__(self):
        self.storage: Optional[JobStorage] = None
        self.events: EventBus = EventBus()
        self.factory: JobFactory = HandlerRegistry()

_GLOBAL_CONFIG = _GlobalConfig()

def configure(
    storage: Optional[JobStorage],
    events: Optional[EventBus] = None,
    factory: Optional[JobFactory] = None,
) -> None:
    _GLOBAL_CONFIG.storage = storage
    _GLOBAL_CONFIG.events = events or EventBus()
    if factory is not None:
        _GLOBAL_CONFIG.factory = factory

def get_storage() -> JobStorage:
    if not _GLOBAL_CONFIG.storage:
        raise RuntimeError("PyWorkQueue has not been configured. Call pyworkqueue.configure() first.")
    return _GLOBAL_CONFIG.storage

def get_event_bus() -> EventBus:
    return _GLOBAL_CONFIG.events

def get_job_factory() -> JobFactory:
    return _GLOBAL_CONFIG.factory
