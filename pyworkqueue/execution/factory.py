# pyworkqueue/execution/factory.py
import importlib
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from pyworkqueue.common.exceptions import HandlerResolutionError
from pyworkqueue.execution.handler import handler_name

logger = logging.getLogger(__name__)

HandlerConstructor = Callable[[Dict[str, Any], str], Any]


class JobFactory(ABC):
    """Turns a payload's class identifier into a handler instance."""

    @abstractmethod
    def create(self, class_name: str, args: Dict[str, Any], queue: str) -> Any: ...


def _build(constructor: HandlerConstructor, class_name: str, args: Dict[str, Any], queue: str) -> Any:
    if not callable(constructor):
        raise HandlerResolutionError(f"Job handler {class_name} is not callable")
    # Only a signature mismatch is a resolution error; errors raised by the
    # handler's own __init__ propagate unchanged.
    try:
        signature = inspect.signature(constructor)
    except (TypeError, ValueError):
        signature = None  # Builtins and some C types cannot be introspected
    if signature is not None:
        try:
            signature.bind(args, queue)
        except TypeError as e:
            raise HandlerResolutionError(f"Could not construct job handler: {class_name}") from e
    instance = constructor(args, queue)
    if not callable(getattr(instance, "perform", None)):
        raise HandlerResolutionError(
            f"Job handler {class_name} does not have a perform method"
        )
    return instance


class HandlerRegistry(JobFactory):
    """Factory backed by an explicit name -> constructor mapping.

    Example::

        registry = HandlerRegistry()

        @registry.register
        class SendEmail(JobHandler):
            name = "send_email"

            def perform(self):
                ...
    """

    def __init__(self):
        self._constructors: Dict[str, HandlerConstructor] = {}

    def register(self, handler: HandlerConstructor, name: Optional[str] = None) -> HandlerConstructor:
        key = name or handler_name(handler)
        self._constructors[key] = handler
        logger.debug(f"Registered job handler {key}")
        return handler

    def unregister(self, name: str) -> None:
        self._constructors.pop(name, None)

    def names(self) -> List[str]:
        return list(self._constructors.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._constructors

    def create(self, class_name: str, args: Dict[str, Any], queue: str) -> Any:
        constructor = self._constructors.get(class_name)
        if constructor is None:
            raise HandlerResolutionError(f"No job handler registered as: {class_name}")
        return _build(constructor, class_name, args, queue)


class ImportFactory(JobFactory):
    """Resolves ``package.module.ClassName`` identifiers by importing them."""

    def create(self, class_name: str, args: Dict[str, Any], queue: str) -> Any:
        module_name, _, attr_name = class_name.rpartition(".")
        try:
            if not module_name:
                raise ImportError(f"{class_name} is not a dotted path")
            module = importlib.import_module(module_name)
            constructor = getattr(module, attr_name)
        except (ImportError, AttributeError) as e:
            raise HandlerResolutionError(
                f"Could not load job handler: {class_name}"
            ) from e
        return _build(constructor, class_name, args, queue)
