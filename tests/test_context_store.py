import asyncio

import pytest

from ctxlog.observability.context import ContextStore


def test_get_outside_scope_returns_empty_mapping() -> None:
    store = ContextStore()
    assert store.get() == {}
    assert store.active() is False


def test_merge_outside_scope_is_a_noop() -> None:
    store = ContextStore()
    store.merge({"user_id": "u1"})
    assert store.get() == {}
    assert store.active() is False


def test_run_returns_body_result_and_restores_previous_scope() -> None:
    store = ContextStore()

    def body(suffix: str) -> str:
        store.merge(step="body")
        return f"{store.get()['request']}-{suffix}"

    assert store.run({"request": "r1"}, body, "done") == "r1-done"
    assert store.get() == {}


def test_run_restores_scope_when_body_raises() -> None:
    store = ContextStore()

    def body() -> None:
        raise ValueError("boom")

    with pytest.raises(ValueError):
        store.run({"request": "r1"}, body)
    assert store.active() is False


def test_initial_mapping_is_copied() -> None:
    store = ContextStore()
    initial = {"request": "r1"}

    def body() -> None:
        store.merge(extra=True)

    store.run(initial, body)
    assert initial == {"request": "r1"}


def test_get_returns_a_snapshot() -> None:
    store = ContextStore()
    with store.scope({"a": 1}):
        snapshot = store.get()
        snapshot["a"] = 2
        assert store.get() == {"a": 1}


def test_last_write_wins() -> None:
    store = ContextStore()
    with store.scope():
        store.merge({"k": "v1"})
        store.merge({"k": "v2"})
        assert store.get()["k"] == "v2"


def test_nested_scope_is_independent_and_outer_is_restored() -> None:
    store = ContextStore()
    with store.scope({"outer": True}):
        with store.scope({"inner": True}):
            store.merge(k=1)
            assert store.get() == {"inner": True, "k": 1}
        assert store.get() == {"outer": True}


async def test_mutation_in_child_task_is_visible_to_parent() -> None:
    store = ContextStore()

    async def deep() -> None:
        await asyncio.sleep(0)
        store.merge(user_id="u1")

    async def handler() -> dict:
        await asyncio.create_task(deep())
        return store.get()

    assert await store.arun({"request": "r1"}, handler) == {"request": "r1", "user_id": "u1"}


async def test_mutation_in_worker_thread_is_visible_to_caller() -> None:
    store = ContextStore()
    with store.scope({"request": "r1"}):
        await asyncio.to_thread(store.merge, {"from_thread": True})
        assert store.get()["from_thread"] is True


async def test_concurrent_scopes_are_isolated() -> None:
    store = ContextStore()
    first_wrote = asyncio.Event()
    second_wrote = asyncio.Event()
    seen: dict[str, dict] = {}

    async def first() -> None:
        store.merge(user_id="a")
        first_wrote.set()
        await second_wrote.wait()
        seen["first"] = store.get()

    async def second() -> None:
        await first_wrote.wait()
        store.merge(user_id="b")
        second_wrote.set()
        seen["second"] = store.get()

    await asyncio.gather(
        store.arun({"request": "r1"}, first),
        store.arun({"request": "r2"}, second),
    )

    assert seen["first"] == {"request": "r1", "user_id": "a"}
    assert seen["second"] == {"request": "r2", "user_id": "b"}


async def test_reads_never_observe_later_writes() -> None:
    store = ContextStore()

    async def handler() -> tuple[dict, dict]:
        before = store.get()
        await asyncio.sleep(0)
        store.merge(stage="after")
        return before, store.get()

    before, after = await store.arun({}, handler)
    assert "stage" not in before
    assert after["stage"] == "after"
