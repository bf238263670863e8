# pyworkqueue/common/states.py

from enum import Enum, IntEnum


class JobStatus(IntEnum):
    """Tracked status codes stored against a job id."""

    WAITING = 1
    RUNNING = 2
    FAILED = 3
    COMPLETE = 4
    CANCELLED = 5

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {JobStatus.FAILED, JobStatus.COMPLETE, JobStatus.CANCELLED}
)

ALL_STATUSES = [status.name.lower() for status in JobStatus]


class PerformOutcome(Enum):
    """
    Result of running a job through the perform pipeline.

    Only COMPLETED is truthy, so callers that expect the plain
    "performed or not" answer can keep testing the outcome as a bool.
    """

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    def __bool__(self) -> bool:
        return self is PerformOutcome.COMPLETED
