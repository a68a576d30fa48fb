"""Task records and their lifecycle statuses."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Status(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD = "dead"


_VALID_STATUSES = frozenset(status.value for status in Status)


def is_valid_status(value: object) -> bool:
    """Return True if ``value`` names one of the known task statuses."""
    if isinstance(value, Status):
        return True
    return isinstance(value, str) and value in _VALID_STATUSES


@dataclass(frozen=True)
class Task:
    """A unit of work held in the queue.

    Optional fields left as ``None`` (or ``0`` for ``max_attempts``) are
    filled in with defaults when the task is enqueued.
    """

    id: str = ""
    type: str = ""
    payload: bytes = b""
    status: Status | None = None
    attempts: int = 0
    max_attempts: int = 0
    last_error: str | None = None
    run_at: datetime | None = None
    locked_by: str | None = None
    locked_until: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_terminal(self) -> bool:
        """Return True if the task will never run again."""
        return self.status in (Status.COMPLETED, Status.DEAD)

    def can_retry(self) -> bool:
        """Return True if the task has attempts left."""
        return self.attempts < self.max_attempts