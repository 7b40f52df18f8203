from typing import Any

import pytest
from conftest import FakeBackend

from codeagent.agents.state import AgentState
from codeagent.db.connection import get_conn
from codeagent.db.queries import list_messages
from codeagent.orchestrator.finalizer import ERROR_MESSAGE, FRAGMENT_TITLE, Finalizer
from codeagent.sandbox.session import SandboxSession
from codeagent.workflow.executor import StepExecutor
from codeagent.workflow.store import InMemoryStepStore


class BrokenBackend(FakeBackend):
    async def create(self, template: str):
        raise RuntimeError("sandbox quota exceeded")


def _finalizer(backend: FakeBackend, **kwargs: Any) -> Finalizer:
    step = StepExecutor(InMemoryStepStore()).context("run_1")
    return Finalizer(step, SandboxSession(backend, step, "code-agent-nextjs"), **kwargs)


@pytest.mark.asyncio
async def test_success_persists_message_and_fragment(fake_backend: FakeBackend) -> None:
    state = AgentState(
        summary="<task_summary>Made a page</task_summary>",
        files={"app/page.tsx": "export default function Page() {}"},
    )

    result = await _finalizer(fake_backend, port=3000).finalize(state)

    assert result.is_error is False
    assert result.persisted is True
    assert result.url == "https://3000-sbx-1.sandbox.test"
    assert result.title == FRAGMENT_TITLE
    assert result.files == state.files
    with get_conn() as conn:
        messages = list_messages(conn)
    assert len(messages) == 1
    assert messages[0]["type"] == "result"
    assert messages[0]["role"] == "assistant"
    assert messages[0]["content"] == state.summary
    assert messages[0]["fragment"] == {
        "sandbox_url": "https://3000-sbx-1.sandbox.test",
        "title": "Fragment",
        "files": {"app/page.tsx": "export default function Page() {}"},
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "state",
    [
        AgentState(),
        AgentState(summary="<task_summary>done</task_summary>"),
        AgentState(files={"a.txt": "a"}),
    ],
)
async def test_incomplete_state_stores_error_without_fragment(
    fake_backend: FakeBackend, state: AgentState
) -> None:
    result = await _finalizer(fake_backend).finalize(state)

    assert result.is_error is True
    assert result.url is None
    assert result.files == {}
    assert result.summary is None
    with get_conn() as conn:
        messages = list_messages(conn)
    assert [(m["content"], m["type"], m["fragment"]) for m in messages] == [
        (ERROR_MESSAGE, "error", None)
    ]


@pytest.mark.asyncio
async def test_save_failure_returns_unpersisted_result(fake_backend: FakeBackend) -> None:
    def save(*args: Any, **kwargs: Any) -> dict[str, Any]:
        raise OSError("disk full")

    state = AgentState(summary="<task_summary>ok</task_summary>", files={"a.txt": "a"})
    result = await _finalizer(fake_backend, save=save).finalize(state)

    assert result.is_error is False
    assert result.persisted is False
    assert result.url is not None
    assert result.files == {"a.txt": "a"}


@pytest.mark.asyncio
async def test_error_save_failure_is_not_raised(fake_backend: FakeBackend) -> None:
    def save(*args: Any, **kwargs: Any) -> dict[str, Any]:
        raise OSError("disk full")

    result = await _finalizer(fake_backend, save=save).finalize(AgentState())

    assert result.is_error is True
    assert result.persisted is False


@pytest.mark.asyncio
async def test_url_failure_falls_back_to_error() -> None:
    saved: list[tuple[Any, ...]] = []

    def save(*args: Any) -> dict[str, Any]:
        saved.append(args)
        return {"id": "msg_1", "fragment_id": None, "created_at": "now"}

    state = AgentState(summary="<task_summary>ok</task_summary>", files={"a.txt": "a"})
    result = await _finalizer(BrokenBackend(), save=save).finalize(state)

    assert result.is_error is True
    assert saved == [(ERROR_MESSAGE, "assistant", "error", None)]
