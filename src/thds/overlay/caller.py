"""Who is asking.

Overrides are partitioned by CallerId. By default the caller is whatever unit
of execution is running: the current asyncio task if there is one, otherwise the
current thread. Tests that want an identity independent of how they are
scheduled, or that want worker threads to share their identity, should use
`caller_scope`:

```
with caller_scope():
    store.replace_env("API_URL", "http://localhost:8080", current_caller())
    ...  # code under test reads get_env("API_URL", current_caller())
```
"""
import asyncio
import contextlib
import threading
import typing as ty
import uuid
from dataclasses import dataclass

from .errors import MustProvideCaller
from .stack_context import StackContext


@dataclass(frozen=True)
class CallerId:
    kind: str
    token: ty.Hashable

    def __str__(self) -> str:
        return f"{self.kind}:{self.token}"


_SCOPED_CALLER: StackContext[ty.Optional[CallerId]] = StackContext("overlay-caller", None)


def _running_task() -> ty.Optional["asyncio.Task"]:
    try:
        return asyncio.current_task()
    except RuntimeError:  # no running event loop in this thread
        return None


def current_caller() -> CallerId:
    scoped = _SCOPED_CALLER()
    if scoped is not None:
        return scoped
    # keyed on the objects themselves: ids and thread idents are reused once they die.
    task = _running_task()
    if task is not None:
        return CallerId("task", task)
    return CallerId("thread", threading.current_thread())


def new_caller() -> CallerId:
    return CallerId("scope", uuid.uuid4().hex)


@contextlib.contextmanager
def caller_scope(caller: ty.Optional[CallerId] = None) -> ty.Iterator[CallerId]:
    """Make `caller` (or a brand new identity) the current caller below this point on the stack."""
    if caller is not None:
        ensure_caller(caller, "caller_scope")
    with _SCOPED_CALLER.set(caller or new_caller()) as scoped:
        yield ty.cast(CallerId, scoped)


def ensure_caller(obj: object, operation: str) -> CallerId:
    if not isinstance(obj, CallerId):
        raise MustProvideCaller(f"{operation} must receive a CallerId, got {obj!r}")
    return obj
