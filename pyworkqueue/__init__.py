from .client import BackgroundJobClient, Client
from .common.exceptions import DontCreate, DontPerform
from .common.job import Job
from .common.states import JobStatus, PerformOutcome
from .config import configure as _configure, get_event_bus, get_job_factory, get_storage
from .events import EventBus
from .execution.factory import HandlerRegistry, ImportFactory, JobFactory
from .execution.handler import JobHandler
from .storage.base import JobStorage

_client: Client | None = None


def configure(
    storage: JobStorage | None,
    events: EventBus | None = None,
    factory: JobFactory | None = None,
) -> None:
    _configure(storage, events, factory)
    global _client
    _client = None


def get_client() -> Client:
    global _client
    if _client is None:
        _client = Client(get_storage(), get_event_bus())
    return _client


def register_handler(handler, name: str | None = None):
    """Register ``handler`` with the default handler registry. Usable as a decorator."""
    factory = get_job_factory()
    if not isinstance(factory, HandlerRegistry):
        raise RuntimeError(
            f"The configured job factory ({type(factory).__name__}) is not a HandlerRegistry"
        )
    return factory.register(handler, name)


__all__ = [
    "BackgroundJobClient",
    "Client",
    "DontCreate",
    "DontPerform",
    "EventBus",
    "HandlerRegistry",
    "ImportFactory",
    "Job",
    "JobFactory",
    "JobHandler",
    "JobStatus",
    "PerformOutcome",
    "configure",
    "get_client",
    "get_event_bus",
    "get_job_factory",
    "get_storage",
    "register_handler",
]
