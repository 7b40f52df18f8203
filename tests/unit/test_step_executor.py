import asyncio

import pytest

from codeagent.errors import StepFailedError
from codeagent.workflow.executor import StepExecutor
from codeagent.workflow.store import InMemoryStepStore, SqliteStepStore, StepRecord


@pytest.mark.asyncio
async def test_completed_step_is_replayed_without_rerunning() -> None:
    executor = StepExecutor(InMemoryStepStore())
    calls = 0

    async def op() -> dict[str, int]:
        nonlocal calls
        calls += 1
        return {"value": 42}

    first = await executor.execute("run_1", "compute", op)
    second = await executor.execute("run_1", "compute", op)

    assert calls == 1
    assert first.ok is True
    assert first.result == {"value": 42}
    assert first.replayed is False
    assert second.result == {"value": 42}
    assert second.replayed is True


@pytest.mark.asyncio
async def test_failure_is_captured_and_cached() -> None:
    executor = StepExecutor(InMemoryStepStore())
    calls = 0

    async def op() -> str:
        nonlocal calls
        calls += 1
        raise RuntimeError("boom")

    first = await executor.execute("run_1", "explode", op)
    second = await executor.execute("run_1", "explode", op)

    assert calls == 1
    assert first.ok is False
    assert first.error == {"type": "RuntimeError", "message": "boom"}
    assert second.ok is False
    assert second.replayed is True


@pytest.mark.asyncio
async def test_sync_operation_is_supported() -> None:
    executor = StepExecutor(InMemoryStepStore())
    record = await executor.execute("run_1", "sync", lambda: [1, 2, 3])
    assert record.ok is True
    assert record.result == [1, 2, 3]


@pytest.mark.asyncio
async def test_non_serializable_result_is_recorded_as_failure() -> None:
    executor = StepExecutor(InMemoryStepStore())
    record = await executor.execute("run_1", "bad", lambda: object())
    assert record.ok is False
    assert record.error is not None
    assert record.error["type"] == "TypeError"


@pytest.mark.asyncio
async def test_fresh_result_matches_its_replay() -> None:
    executor = StepExecutor(InMemoryStepStore())
    first = await executor.execute("run_1", "tuple", lambda: {"pair": (1, 2)})
    second = await executor.execute("run_1", "tuple", lambda: None)
    assert first.result == {"pair": [1, 2]}
    assert second.result == first.result


@pytest.mark.asyncio
async def test_runs_are_isolated() -> None:
    executor = StepExecutor(InMemoryStepStore())
    a = await executor.execute("run_a", "step", lambda: "a")
    b = await executor.execute("run_b", "step", lambda: "b")
    assert a.result == "a"
    assert b.result == "b"
    assert b.replayed is False


@pytest.mark.asyncio
async def test_concurrent_calls_for_same_key_run_once() -> None:
    executor = StepExecutor(InMemoryStepStore())
    calls = 0

    async def op() -> int:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return calls

    records = await asyncio.gather(*(executor.execute("run_1", "race", op) for _ in range(5)))

    assert calls == 1
    assert {record.result for record in records} == {1}
    assert sum(1 for record in records if not record.replayed) == 1


@pytest.mark.asyncio
async def test_step_context_numbers_repeated_names() -> None:
    store = InMemoryStepStore()
    executor = StepExecutor(store)
    step = executor.context("run_1")

    await step.run("terminal", lambda: "first")
    await step.run("terminal", lambda: "second")
    await step.run("readFiles", lambda: "[]")
    await step.run("terminal", lambda: "third")

    names = [record.step_name for record in store.records("run_1")]
    assert names == ["terminal", "terminal:1", "readFiles", "terminal:2"]


@pytest.mark.asyncio
async def test_new_context_replays_in_call_order() -> None:
    executor = StepExecutor(InMemoryStepStore())
    first = executor.context("run_1")
    await first.run("terminal", lambda: "ls output")
    await first.run("terminal", lambda: "npm output")

    restarted = executor.context("run_1")
    one = await restarted.run("terminal", lambda: "never")
    two = await restarted.run("terminal", lambda: "never")
    three = await restarted.run("terminal", lambda: "fresh")

    assert (one.result, one.replayed) == ("ls output", True)
    assert (two.result, two.replayed) == ("npm output", True)
    assert (three.result, three.replayed) == ("fresh", False)


def test_unwrap_raises_for_failed_record() -> None:
    record = StepRecord(
        run_id="run_1",
        step_name="get-sandbox-id",
        ok=False,
        error={"type": "SandboxError", "message": "quota exceeded"},
    )
    with pytest.raises(StepFailedError) as excinfo:
        record.unwrap()
    assert excinfo.value.step_name == "get-sandbox-id"
    assert "quota exceeded" in str(excinfo.value)


def test_unwrap_returns_result() -> None:
    record = StepRecord(run_id="run_1", step_name="x", ok=True, result={"a": 1})
    assert record.unwrap() == {"a": 1}


def test_in_memory_put_keeps_first_record() -> None:
    store = InMemoryStepStore()
    first = store.put(StepRecord(run_id="r", step_name="s", ok=True, result=1))
    second = store.put(StepRecord(run_id="r", step_name="s", ok=True, result=2))
    assert first.result == 1
    assert second.result == 1


@pytest.mark.asyncio
async def test_sqlite_store_survives_a_new_executor() -> None:
    calls = 0

    async def op() -> dict[str, str]:
        nonlocal calls
        calls += 1
        return {"sandbox": "sbx_1"}

    first = await StepExecutor(SqliteStepStore()).execute("run_1", "get-sandbox-id", op)
    second = await StepExecutor(SqliteStepStore()).execute("run_1", "get-sandbox-id", op)

    assert calls == 1
    assert first.result == {"sandbox": "sbx_1"}
    assert second.result == {"sandbox": "sbx_1"}
    assert second.replayed is True


@pytest.mark.asyncio
async def test_sqlite_store_keeps_failures() -> None:
    executor = StepExecutor(SqliteStepStore())

    def op() -> None:
        raise ValueError("bad input")

    await executor.execute("run_1", "fails", op)
    record = SqliteStepStore().get("run_1", "fails")

    assert record is not None
    assert record.ok is False
    assert record.error == {"type": "ValueError", "message": "bad input"}


def test_sqlite_put_returns_existing_record() -> None:
    store = SqliteStepStore()
    store.put(StepRecord(run_id="r", step_name="s", ok=True, result="first"))
    authoritative = store.put(StepRecord(run_id="r", step_name="s", ok=True, result="second"))
    assert authoritative.result == "first"


@pytest.mark.asyncio
async def test_release_drops_locks_but_keeps_records() -> None:
    store = InMemoryStepStore()
    executor = StepExecutor(store)
    await executor.execute("run_1", "a", lambda: 1)
    executor.release("run_1")
    record = await executor.execute("run_1", "a", lambda: 2)
    assert record.result == 1
    assert record.replayed is True
