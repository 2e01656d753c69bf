"""Stack-scoped values backed by ContextVars.

A StackContext is set with a `with` statement and reverts when the block exits.
Because it is a ContextVar underneath, a value set in one thread is invisible to
other threads, while asyncio tasks created inside the block start with it.
"""
import contextlib as cl
import contextvars as cv
import typing as ty

T = ty.TypeVar("T")


@cl.contextmanager
def stack_context(contextvar: cv.ContextVar[T], value: T) -> ty.Iterator[T]:
    token = contextvar.set(value)
    try:
        yield value
    finally:
        contextvar.reset(token)


class StackContext(ty.Generic[T]):
    """Create these at module level only, like the ContextVar they wrap."""

    def __init__(self, debug_name: str, default: T):
        self._contextvar = cv.ContextVar(debug_name, default=default)

    def set(self, value: T) -> ty.ContextManager[T]:
        return stack_context(self._contextvar, value)

    def __call__(self) -> T:
        return self._contextvar.get()
