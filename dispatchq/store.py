"""Storage backends for tasks."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from dispatchq.task import Status, Task


class StoreError(Exception):
    """Base class for storage errors."""

    default_message = "storage error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class TaskNotFoundError(StoreError):
    """Raised when no task has the requested id."""

    default_message = "task not found"


class NoTaskAvailableError(StoreError):
    """Raised when no task is ready to be claimed."""

    default_message = "no task available"


class CancelledError(Exception):
    """Raised when an operation is attempted with a cancelled context."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class Context:
    """A cancellation signal that can be shared between callers."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Mark the context as cancelled."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if the context has been cancelled."""
        if self._event.is_set():
            raise CancelledError()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Store(Protocol):
    """Operations a task storage backend provides."""

    def create_task(self, task: Task, ctx: Context | None = None) -> None: ...

    def get_task(self, task_id: str, ctx: Context | None = None) -> Task: ...

    def claim_next_task(
        self, worker_id: str, lease_duration: timedelta, ctx: Context | None = None
    ) -> Task: ...

    def complete_task(self, task_id: str, ctx: Context | None = None) -> None: ...

    def fail_task(
        self,
        task_id: str,
        message: str,
        retry_delay: timedelta,
        ctx: Context | None = None,
    ) -> None: ...


_Change = Callable[[Task, datetime], "dict[str, Any]"]


class MemoryStore:
    """Keeps tasks in memory; nothing survives the process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[str, Task] = {}

    @contextmanager
    def _session(self, ctx: Context | None) -> Iterator[dict[str, Task]]:
        if ctx is not None:
            ctx.raise_if_cancelled()
        with self._lock:
            yield self._tasks

    def _release(self, task_id: str, ctx: Context | None, change: _Change) -> None:
        """Unlock a task and apply ``change``, stamping the update time."""
        with self._session(ctx) as tasks:
            now = _utcnow()
            task = tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError()
            tasks[task_id] = replace(
                task,
                locked_by=None,
                locked_until=None,
                updated_at=now,
                **change(task, now),
            )

    def create_task(self, task: Task, ctx: Context | None = None) -> None:
        """Store a new task."""
        with self._session(ctx) as tasks:
            tasks[task.id] = task

    def get_task(self, task_id: str, ctx: Context | None = None) -> Task:
        """Return the task with ``task_id`` or raise TaskNotFoundError."""
        with self._session(ctx) as tasks:
            try:
                return tasks[task_id]
            except KeyError:
                raise TaskNotFoundError() from None

    def claim_next_task(
        self, worker_id: str, lease_duration: timedelta, ctx: Context | None = None
    ) -> Task:
        """Lease one ready pending task to ``worker_id``."""
        with self._session(ctx) as tasks:
            now = _utcnow()
            ready = (
                task
                for task in tasks.values()
                if task.status == Status.PENDING
                and (task.run_at is None or task.run_at <= now)
            )
            task = next(ready, None)
            if task is None:
                raise NoTaskAvailableError()
            claimed = replace(
                task,
                status=Status.RUNNING,
                locked_by=worker_id,
                locked_until=now + lease_duration,
                attempts=task.attempts + 1,
                updated_at=now,
            )
            tasks[task.id] = claimed
            return claimed

    def complete_task(self, task_id: str, ctx: Context | None = None) -> None:
        """Mark a task as completed."""
        self._release(task_id, ctx, lambda task, now: {"status": Status.COMPLETED})

    def fail_task(
        self,
        task_id: str,
        message: str,
        retry_delay: timedelta,
        ctx: Context | None = None,
    ) -> None:
        """Record a failure: reschedule the task if it may retry, else mark it dead."""

        def change(task: Task, now: datetime) -> dict[str, Any]:
            if task.can_retry():
                return {
                    "last_error": message,
                    "status": Status.PENDING,
                    "run_at": now + retry_delay,
                }
            return {"last_error": message, "status": Status.DEAD}

        self._release(task_id, ctx, change)