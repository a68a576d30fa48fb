"""Queue operations with validation and defaults on top of a store."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from dispatchq.store import Context, Store
from dispatchq.task import Status, Task

DEFAULT_MAX_ATTEMPTS = 3


class QueueValidationError(ValueError):
    """Base class for rejected queue requests."""

    message = "invalid queue request"

    def __init__(self) -> None:
        super().__init__(self.message)


class TaskIDRequiredError(QueueValidationError):
    message = "task id is required"


class TaskTypeRequiredError(QueueValidationError):
    message = "task type is required"


class WorkerIDRequiredError(QueueValidationError):
    message = "worker id is required"


class LeaseDurationInvalidError(QueueValidationError):
    message = "lease duration must be positive"


def _require(value: object, error: type[QueueValidationError]) -> None:
    if not value:
        raise error()


class Service:
    """Coordinates queue operations using a storage backend."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def enqueue(self, task: Task, ctx: Context | None = None) -> Task:
        """Validate, fill in defaults and store ``task``; return what was stored."""
        _require(task.id, TaskIDRequiredError)
        _require(task.type, TaskTypeRequiredError)

        now = datetime.now(timezone.utc)
        prepared = replace(
            task,
            status=task.status or Status.PENDING,
            max_attempts=(
                task.max_attempts if task.max_attempts > 0 else DEFAULT_MAX_ATTEMPTS
            ),
            run_at=task.run_at or now,
            created_at=task.created_at or now,
            updated_at=now,
        )
        self.store.create_task(prepared, ctx)
        return prepared

    def get_task(self, task_id: str, ctx: Context | None = None) -> Task:
        """Return the task with ``task_id``."""
        _require(task_id, TaskIDRequiredError)
        return self.store.get_task(task_id, ctx)

    def claim_next_task(
        self, worker_id: str, lease_duration: timedelta, ctx: Context | None = None
    ) -> Task:
        """Lease one available task to ``worker_id``."""
        _require(worker_id, WorkerIDRequiredError)
        _require(lease_duration > timedelta(0), LeaseDurationInvalidError)
        return self.store.claim_next_task(worker_id, lease_duration, ctx)

    def complete_task(self, task_id: str, ctx: Context | None = None) -> None:
        """Mark a task as completed."""
        _require(task_id, TaskIDRequiredError)
        self.store.complete_task(task_id, ctx)