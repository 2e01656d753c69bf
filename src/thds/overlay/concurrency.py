"""Carrying caller identity and overrides across threads.

asyncio tasks start with a copy of their creator's ContextVars, so an active
`caller_scope` follows them automatically. Threads do not, which is what the
executor here is for. For a worker that should keep its own identity but see
its parent's overrides, wrap the function with `inheriting_overrides`.
"""
import contextvars
import functools
import typing as ty
from concurrent.futures import ThreadPoolExecutor

from typing_extensions import ParamSpec

from . import store as _store
from .caller import current_caller
from .log import getLogger

P = ParamSpec("P")
R = ty.TypeVar("R")
logger = getLogger(__name__)


def copy_context() -> ty.Callable[[], None]:
    """Snapshot the current ContextVars; the returned callable applies them in another thread."""
    context = contextvars.copy_context()

    def copy_context_initializer() -> None:
        for var, value in context.items():
            var.set(value)

    return copy_context_initializer


def contextful_threadpool_executor(max_workers: ty.Optional[int] = None) -> ThreadPoolExecutor:
    return ThreadPoolExecutor(
        max_workers=max_workers,
        thread_name_prefix="overlay_contextful",
        initializer=copy_context(),
    )


def inheriting_overrides(
    func: ty.Callable[P, R], store: _store.StoreRef = None
) -> ty.Callable[P, R]:
    """Bind the current caller now; when the result is called, copy that caller's
    overrides onto whoever is then the current caller, and run `func`.
    """
    parent = current_caller()

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        resolved = _store.resolve(store)
        child = current_caller()
        if resolved is not None and child != parent and resolved.copy(parent, child) is None:
            logger.debug("No overrides to inherit", store=resolved.name, parent=parent, child=child)
        return func(*args, **kwargs)

    return wrapper
