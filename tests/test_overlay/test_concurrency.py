import asyncio
import threading
import uuid

import pytest

from thds.overlay import concurrency, store
from thds.overlay.caller import caller_scope, current_caller


def test_contextful_executor_carries_the_caller_scope():
    with concurrency.contextful_threadpool_executor() as executor:
        assert executor.submit(current_caller).result().kind == "thread"

    with caller_scope() as scoped:
        with concurrency.contextful_threadpool_executor() as executor:
            assert executor.submit(current_caller).result() == scoped


def test_worker_sees_scoped_overrides_through_contextful_executor(overrides):
    with caller_scope() as scoped:
        overrides.replace_env("X", "scoped", scoped)
        with concurrency.contextful_threadpool_executor() as executor:
            future = executor.submit(lambda: overrides.get_env("X", current_caller()))
            assert future.result() == "scoped"


def test_inheriting_overrides_copies_parent_overrides_to_a_thread(overrides, fake_env):
    fake_env.values["X"] = "real"
    parent = current_caller()
    overrides.replace_env("X", "parent", parent)
    seen = dict()

    def child():
        seen["caller"] = current_caller()
        seen["X"] = overrides.get_env("X", current_caller())

    thread = threading.Thread(target=concurrency.inheriting_overrides(child, overrides))
    thread.start()
    thread.join()

    assert seen["caller"] != parent
    assert seen["X"] == "parent"


def test_inheriting_overrides_without_parent_overrides_is_a_no_op(overrides, fake_env):
    fake_env.values["X"] = "real"
    results = list()

    def child():
        results.append(overrides.get_env("X", current_caller()))

    thread = threading.Thread(target=concurrency.inheriting_overrides(child, overrides))
    thread.start()
    thread.join()
    assert results == ["real"]


def test_inheriting_overrides_without_a_store_just_calls_through():
    wrapped = concurrency.inheriting_overrides(lambda x: x + 1, "never-started-" + uuid.uuid4().hex)
    assert wrapped(1) == 2


@pytest.mark.asyncio
async def test_inheriting_overrides_into_a_task(overrides, app_config):
    app_config.put("mod", "key", "global")
    overrides.replace_config("mod", "key", "parent", current_caller())

    def read():
        return overrides.get_config("mod", "key", current_caller())

    async def child(fn):
        return fn()

    plain, inherited = await asyncio.gather(
        asyncio.create_task(child(read)),
        asyncio.create_task(child(concurrency.inheriting_overrides(read, overrides))),
    )
    assert plain == "global"
    assert inherited == "parent"
