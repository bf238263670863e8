# pyworkqueue/common/exceptions.py


class PyWorkQueueException(Exception):
    """Base exception for the PyWorkQueue library."""

    pass


class InvalidArgumentsError(PyWorkQueueException, ValueError):
    """Raised when a job is created with arguments that are not a mapping."""

    pass


class HandlerResolutionError(PyWorkQueueException):
    """Raised when a job's handler class cannot be resolved or constructed."""

    pass


class PayloadDecodeError(PyWorkQueueException):
    """Raised when stored data cannot be decoded into a payload or record."""

    pass


class DontPerform(PyWorkQueueException):
    """
    Raised by a ``before_perform`` listener or by a handler's ``set_up`` /
    ``perform`` to skip the job. Not a failure: ``Job.perform`` absorbs it.
    """

    pass


class DontCreate(PyWorkQueueException):
    """Raised by a ``before_enqueue`` listener to stop a job from being queued."""

    pass
