from datetime import datetime, timedelta, timezone

import pytest

from dispatchq.store import (
    CancelledError,
    Context,
    MemoryStore,
    NoTaskAvailableError,
    TaskNotFoundError,
)
from dispatchq.task import Status, Task

LEASE = timedelta(seconds=30)


def _now():
    return datetime.now(timezone.utc)


def _cancelled():
    ctx = Context()
    ctx.cancel()
    return ctx


def _task(**changes):
    fields = {
        "id": "task-1",
        "type": "send_email",
        "status": Status.PENDING,
        "max_attempts": 3,
    }
    fields.update(changes)
    return Task(**fields)


def _store_with(*tasks):
    store = MemoryStore()
    for task in tasks:
        store.create_task(task)
    return store


def test_context_cancel_sets_flag_and_raises():
    ctx = Context()
    assert ctx.cancelled is False
    ctx.cancel()
    assert ctx.cancelled is True
    with pytest.raises(CancelledError):
        ctx.raise_if_cancelled()


def test_create_and_get_task():
    now = _now()
    want = _task(
        payload=b'{"email": "user@example.com"}',
        attempts=0,
        run_at=now,
        created_at=now,
        updated_at=now,
    )
    got = _store_with(want).get_task("task-1")
    assert (got.id, got.type, got.payload) == (want.id, want.type, want.payload)
    assert (got.status, got.attempts, got.max_attempts) == (
        want.status,
        want.attempts,
        want.max_attempts,
    )


@pytest.mark.parametrize(
    "call",
    [
        lambda store, ctx: store.create_task(Task(id="task-1"), ctx),
        lambda store, ctx: store.get_task("task-1", ctx),
        lambda store, ctx: store.claim_next_task("worker-1", LEASE, ctx),
        lambda store, ctx: store.complete_task("task-1", ctx),
        lambda store, ctx: store.fail_task("task-1", "boom", LEASE, ctx),
    ],
    ids=["create", "get", "claim", "complete", "fail"],
)
def test_operations_with_cancelled_context(call):
    store = MemoryStore()
    with pytest.raises(CancelledError):
        call(store, _cancelled())
    with pytest.raises(TaskNotFoundError):
        store.get_task("task-1")


@pytest.mark.parametrize(
    "call",
    [
        lambda store: store.get_task("missing-task"),
        lambda store: store.complete_task("missing-task"),
        lambda store: store.fail_task("missing-task", "boom", timedelta(seconds=1)),
    ],
    ids=["get", "complete", "fail"],
)
def test_missing_task_not_found(call):
    with pytest.raises(TaskNotFoundError):
        call(MemoryStore())


def test_claim_next_task_claims_ready_pending_task():
    now = _now()
    store = _store_with(
        _task(attempts=0, run_at=now - timedelta(minutes=1), created_at=now)
    )
    claimed = store.claim_next_task("worker-1", LEASE)
    assert claimed.id == "task-1"
    assert claimed.status == Status.RUNNING
    assert claimed.attempts == 1
    assert claimed.locked_by == "worker-1"
    assert claimed.locked_until > now

    stored = store.get_task("task-1")
    assert stored.status == Status.RUNNING
    assert stored.locked_by == "worker-1"


@pytest.mark.parametrize(
    "status, offset",
    [
        (Status.PENDING, timedelta(minutes=10)),
        (Status.RUNNING, timedelta(minutes=-1)),
    ],
    ids=["future", "non-pending"],
)
def test_claim_next_task_skips_unready_tasks(status, offset):
    store = _store_with(_task(status=status, run_at=_now() + offset))
    with pytest.raises(NoTaskAvailableError):
        store.claim_next_task("worker-1", LEASE)


def test_claim_next_task_returns_no_task_available():
    with pytest.raises(NoTaskAvailableError):
        MemoryStore().claim_next_task("worker-1", LEASE)


def test_claim_next_task_does_not_double_claim():
    store = _store_with(
        _task(id="single-task", run_at=_now() - timedelta(minutes=1))
    )
    first = store.claim_next_task("worker-1", LEASE)
    assert first.locked_by == "worker-1"
    with pytest.raises(NoTaskAvailableError):
        store.claim_next_task("worker-2", LEASE)
    stored = store.get_task("single-task")
    assert stored.locked_by == "worker-1"
    assert stored.attempts == 1


def test_complete_task_marks_task_completed():
    now = _now() - timedelta(hours=1)
    store = _store_with(
        _task(
            status=Status.RUNNING,
            attempts=1,
            run_at=now - timedelta(minutes=1),
            locked_by="worker-1",
            locked_until=now + LEASE,
            created_at=now,
            updated_at=now,
        )
    )
    store.complete_task("task-1")
    got = store.get_task("task-1")
    assert got.status == Status.COMPLETED
    assert got.locked_by is None
    assert got.locked_until is None
    assert got.updated_at > now


def test_fail_task_reschedules_when_attempts_remain():
    store = _store_with(
        _task(
            status=Status.RUNNING,
            attempts=1,
            locked_by="worker-1",
            locked_until=_now(),
        )
    )
    before = _now()
    store.fail_task("task-1", "smtp timeout", timedelta(minutes=5))
    got = store.get_task("task-1")
    assert got.status == Status.PENDING
    assert got.last_error == "smtp timeout"
    assert got.locked_by is None
    assert got.locked_until is None
    assert got.run_at >= before + timedelta(minutes=5)


def test_fail_task_marks_dead_when_attempts_exhausted():
    run_at = _now() - timedelta(minutes=1)
    store = _store_with(
        _task(status=Status.RUNNING, attempts=3, run_at=run_at, locked_by="worker-1")
    )
    store.fail_task("task-1", "boom", timedelta(minutes=5))
    got = store.get_task("task-1")
    assert got.status == Status.DEAD
    assert got.last_error == "boom"
    assert got.run_at == run_at
    assert got.locked_by is None
    assert got.is_terminal() is True