"""Sandbox contracts."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

OutputCallback = Callable[[str], None]


@dataclass(slots=True)
class CommandOutput:
    stdout: str
    stderr: str
    exit_code: int


class SandboxHandle(Protocol):
    """One live isolated environment."""

    @property
    def sandbox_id(self) -> str: ...

    async def run(
        self,
        command: str,
        *,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
        timeout_seconds: float,
    ) -> CommandOutput:
        """Run a shell command. Raises when it cannot run or exits non-zero."""
        ...

    async def write(self, path: str, content: str) -> None: ...

    async def read(self, path: str) -> str: ...

    def get_url(self, port: int) -> str: ...


class SandboxBackend(Protocol):
    async def create(self, template: str) -> SandboxHandle: ...

    async def connect(self, sandbox_id: str) -> SandboxHandle: ...
