# pyworkqueue/execution/handler.py
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from pyworkqueue.common.job import Job


def handler_name(handler: Any) -> str:
    """The class identifier stored in a payload for ``handler``.

    A handler class may set ``name`` to choose its identifier; otherwise the
    dotted import path of the class is used. Strings are returned unchanged.
    """
    if isinstance(handler, str):
        return handler
    name = getattr(handler, "name", None)
    if isinstance(name, str) and name:
        return name
    return f"{handler.__module__}.{handler.__qualname__}"


class JobHandler(ABC):
    """
    Base class for the code that does a job's work.

    Handlers are built with the job's arguments and queue name. The owning
    :class:`~pyworkqueue.common.job.Job` is attached as ``job`` before
    ``set_up`` runs. ``set_up`` and ``tear_down`` are optional; any object
    with a ``perform`` method works as a handler, subclassing is not required.
    """

    name: Optional[str] = None

    def __init__(self, args: Dict[str, Any], queue: str):
        self.args = args
        self.queue = queue
        self.job: Optional["Job"] = None

    def set_up(self) -> None:
        pass

    @abstractmethod
    def perform(self) -> Any: ...

    def tear_down(self) -> None:
        pass
