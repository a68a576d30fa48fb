# dispatchq

A small task queue library. Tasks are enqueued with a type and a payload,
claimed by workers for a limited lease, then completed or failed. A failed
task is retried after a delay until it runs out of attempts. After that it is
marked dead.

## Install

```
pip install dispatchq
```

## Modules

- `dispatchq.task` has the `Task` dataclass, the `Status` enum and
  `is_valid_status()`.
- `dispatchq.store` has the `Store` protocol, the in-memory `MemoryStore`,
  the cancellation `Context` and the storage errors.
- `dispatchq.service` has `Service`, which validates requests and fills in
  defaults on top of a store.

## Usage

```python
from datetime import timedelta

from dispatchq.service import Service
from dispatchq.store import MemoryStore
from dispatchq.task import Status, Task

store = MemoryStore()
queue = Service(store)

queue.enqueue(Task(id="task-1", type="send_email", payload=b'{"email": "user@example.com"}'))

claimed = queue.claim_next_task("worker-1", timedelta(seconds=30))
assert claimed.status is Status.RUNNING
assert claimed.locked_by == "worker-1"
assert claimed.attempts == 1

queue.complete_task(claimed.id)
assert queue.get_task("task-1").status is Status.COMPLETED
```

`Task` is a frozen dataclass. Each change a store makes replaces the stored
record with a new one, so read the task again to see its current state.

### Enqueueing

`Service.enqueue()` requires a non-empty `id` and `type`. It fills in values
that are missing:

- `status` becomes `Status.PENDING`.
- `max_attempts` becomes 3 if it is zero or negative.
- `run_at` and `created_at` become the current UTC time.

`updated_at` is always set to the current UTC time. The task is stored and
returned as it was stored. Values that were given explicitly are kept.

### Claiming

`claim_next_task(worker_id, lease_duration)` takes a pending task whose
`run_at` is not in the future. `MemoryStore` checks tasks in the order they
were first stored. The claimed task becomes `running`, its `attempts` goes up
by one, and it is locked to the worker until `now + lease_duration`. If no
task is ready, `NoTaskAvailableError` is raised.

### Failures and retries

`Service` offers no failure call. Record a failure on the store:

```python
store.fail_task("task-1", "smtp timeout", timedelta(minutes=1))
```

The message is kept in `last_error` and the lock is cleared. If
`task.can_retry()` is true (`attempts < max_attempts`), the task goes back to
`pending` with `run_at` set to `retry_delay` from now. Otherwise its status
becomes `dead`.

`Task.is_terminal()` is true for `completed` and `dead` tasks.

### Cancellation

Each operation accepts an optional `Context`. After `ctx.cancel()` has been
called, any `MemoryStore` call made with that context raises `CancelledError`
before it does anything.

```python
from dispatchq.store import CancelledError, Context

ctx = Context()
ctx.cancel()
try:
    store.get_task("task-1", ctx)
except CancelledError:
    pass
```

### Errors

- `TaskNotFoundError` and `NoTaskAvailableError` are both `StoreError`. They
  come from the store.
- `CancelledError` is raised for a cancelled `Context`.
- The service raises these when its arguments are invalid:
  - `TaskIDRequiredError`
  - `TaskTypeRequiredError`
  - `WorkerIDRequiredError`
  - `LeaseDurationInvalidError`, when the lease is not positive.

  All four are `QueueValidationError`, which is a `ValueError`.

### Custom storage

`Service` accepts any object that has the methods of the `Store` protocol:
`create_task`, `get_task`, `claim_next_task`, `complete_task` and
`fail_task`.

## What it does not do

- `MemoryStore` is the only storage provided, and it is not durable. Tasks
  are lost when the process exits.
- There is no database backend and no configuration loading.
- No command-line program, API server or worker process is included.
- Expired leases are not reclaimed. A `running` task whose lease has run out
  stays `running` until it is completed or failed.

## Running the tests

```
pip install -e ".[test]"
pytest
```