"""Synchronous lifecycle hooks.

Listeners are plain callables registered by event name on an :class:`EventBus`.
``trigger`` calls them in registration order on the calling thread. Nothing is
caught: a listener that raises stops the remaining listeners and the
exception reaches the caller of ``trigger``. This is how a ``before_perform``
listener cancels a job (by raising :class:`~pyworkqueue.common.exceptions.DontPerform`)
and how a ``before_enqueue`` listener vetoes a job (by raising
:class:`~pyworkqueue.common.exceptions.DontCreate`).

Job events
==========

before_perform
    Called with the :class:`~pyworkqueue.common.job.Job` before its handler is
    constructed.

after_perform
    Called with the job after the handler's ``tear_down``. Skipped when the
    job is cancelled or raises.

on_failure
    Called with the keyword arguments ``exception`` and ``job`` when a worker
    records a failed job.

Client events
=============

before_enqueue / after_enqueue
    Called with the keyword arguments ``class_name``, ``args``, ``queue`` and
    ``job_id`` around :meth:`~pyworkqueue.client.Client.enqueue`.

A bus is not thread-safe. Threads sharing one bus must register listeners
before the workers start.
"""
import inspect
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

BEFORE_PERFORM = "before_perform"
AFTER_PERFORM = "after_perform"
ON_FAILURE = "on_failure"
BEFORE_ENQUEUE = "before_enqueue"
AFTER_ENQUEUE = "after_enqueue"


def _same_bound_method(a: Any, b: Any) -> bool:
    # `obj.method` builds a new object on every access
    return (
        inspect.ismethod(a)
        and inspect.ismethod(b)
        and a.__self__ is b.__self__
        and a.__func__ is b.__func__
    )


class EventBus:
    def __init__(self):
        self._events: Dict[str, List[Callable[..., Any]]] = {}

    def listen(self, event: str, callback: Callable[..., Any]) -> bool:
        """Register ``callback`` for ``event``. Duplicates are kept."""
        self._events.setdefault(event, []).append(callback)
        return True

    def stop_listening(self, event: str, callback: Callable[..., Any]) -> bool:
        """Remove the first registration of ``callback`` for ``event``, if any."""
        callbacks = self._events.get(event)
        if not callbacks:
            return True
        for index, registered in enumerate(callbacks):
            if registered is callback or _same_bound_method(registered, callback):
                del callbacks[index]
                break
        return True

    def trigger(self, event: str, data: Any = None) -> bool:
        """
        Call every listener of ``event`` with ``data``.

        A list or tuple is passed as positional arguments, a dict as keyword
        arguments, and any other value as the single argument.
        """
        callbacks = self._events.get(event)
        if not callbacks:
            return True

        if isinstance(data, dict):
            args, kwargs = (), data
        elif isinstance(data, (list, tuple)):
            args, kwargs = tuple(data), {}
        else:
            args, kwargs = (data,), {}

        # Listeners may unregister themselves while running
        for callback in list(callbacks):
            if not callable(callback):
                logger.debug(f"Skipping non-callable listener for {event}: {callback!r}")
                continue
            callback(*args, **kwargs)
        return True

    def clear_listeners(self) -> None:
        self._events = {}

    def listeners(self, event: str) -> List[Callable[..., Any]]:
        return list(self._events.get(event, []))
