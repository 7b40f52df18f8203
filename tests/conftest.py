import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from codeagent.config import get_settings
from codeagent.db.migrations.runner import run_migrations
from codeagent.errors import CommandFailedError
from codeagent.providers.base import ModelResponse
from codeagent.sandbox.base import CommandOutput, OutputCallback
from codeagent.tasks import reset_workflow_runner


@pytest.fixture(autouse=True)
def test_env(tmp_path: Path):
    os.environ["APP_ENV"] = "dev"
    os.environ["APP_DB"] = str(tmp_path / "test.db")
    os.environ["LOCAL_SANDBOX_ROOT"] = str(tmp_path / "sandboxes")
    os.environ["SANDBOX_BACKEND"] = "local"
    os.environ["AGENT_PROMPT_PATH"] = ""
    get_settings.cache_clear()
    run_migrations()
    reset_workflow_runner()
    yield
    get_settings.cache_clear()
    reset_workflow_runner()


class FakeHandle:
    def __init__(self, backend: "FakeBackend", sandbox_id: str) -> None:
        self._backend = backend
        self._sandbox_id = sandbox_id

    @property
    def sandbox_id(self) -> str:
        return self._sandbox_id

    @property
    def files(self) -> dict[str, str]:
        return self._backend.files.setdefault(self._sandbox_id, {})

    async def run(
        self,
        command: str,
        *,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
        timeout_seconds: float,
    ) -> CommandOutput:
        del timeout_seconds
        self._backend.commands.append(command)
        scripted = self._backend.command_results.get(command)
        if isinstance(scripted, Exception):
            on_stdout("partial stdout")
            on_stderr("partial stderr")
            raise scripted
        if scripted is not None:
            on_stdout(scripted.stdout)
            return scripted
        on_stdout(f"ran: {command}")
        return CommandOutput(stdout=f"ran: {command}", stderr="", exit_code=0)

    async def write(self, path: str, content: str) -> None:
        if path in self._backend.fail_writes:
            raise OSError(f"permission denied: {path}")
        self._backend.writes.append(path)
        self.files[path] = content

    async def read(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(f"no such file: {path}")
        return self.files[path]

    def get_url(self, port: int) -> str:
        return f"https://{port}-{self._sandbox_id}.sandbox.test"


class FakeBackend:
    """In-memory sandbox backend that records every call."""

    def __init__(self) -> None:
        self.created = 0
        self.connected = 0
        self.commands: list[str] = []
        self.writes: list[str] = []
        self.files: dict[str, dict[str, str]] = {}
        self.fail_writes: set[str] = set()
        self.command_results: dict[str, CommandOutput | Exception] = {}

    async def create(self, template: str) -> FakeHandle:
        del template
        self.created += 1
        sandbox_id = f"sbx-{self.created}"
        self.files[sandbox_id] = {}
        return FakeHandle(self, sandbox_id)

    async def connect(self, sandbox_id: str) -> FakeHandle:
        self.connected += 1
        if sandbox_id not in self.files:
            raise RuntimeError(f"unknown sandbox {sandbox_id}")
        return FakeHandle(self, sandbox_id)


class ScriptedProvider:
    """Returns scripted responses in order, repeating the last one."""

    def __init__(self, responses: list[ModelResponse] | Callable[[int], ModelResponse]) -> None:
        self._responses = responses
        self.calls = 0
        self.messages_by_call: list[list[dict[str, Any]]] = []
        self.temperatures: list[float] = []

    async def generate(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
    ) -> ModelResponse:
        del tools, max_tokens
        self.messages_by_call.append(list(messages))
        self.temperatures.append(temperature)
        index = self.calls
        self.calls += 1
        if callable(self._responses):
            return self._responses(index)
        return self._responses[min(index, len(self._responses) - 1)]

    async def health_check(self) -> bool:
        return True


def tool_call(name: str, arguments: object, call_id: str = "call_1") -> dict[str, Any]:
    return {"id": call_id, "name": name, "arguments": arguments}


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def command_failure() -> Callable[..., CommandFailedError]:
    def _make(message: str = "exit status 1", **kwargs: Any) -> CommandFailedError:
        return CommandFailedError(message, **kwargs)

    return _make
