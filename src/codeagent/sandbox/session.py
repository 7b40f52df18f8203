"""Per-run sandbox session.

The sandbox is created once per run inside the durable step
``get-sandbox-id``; a restarted run reconnects to the same environment
instead of creating a new one.
"""

import logging

from codeagent.errors import CommandFailedError
from codeagent.sandbox.base import CommandOutput, SandboxBackend, SandboxHandle
from codeagent.workflow.executor import StepContext

logger = logging.getLogger(__name__)


class SandboxSession:
    def __init__(
        self,
        backend: SandboxBackend,
        step: StepContext,
        template: str,
        *,
        command_timeout_seconds: float = 300.0,
    ) -> None:
        self._backend = backend
        self._step = step
        self._template = template
        self._command_timeout_seconds = command_timeout_seconds
        self._sandbox_id: str | None = None
        self._handle: SandboxHandle | None = None

    async def sandbox_id(self) -> str:
        if self._sandbox_id is None:
            record = await self._step.run("get-sandbox-id", self._create)
            self._sandbox_id = str(record.unwrap())
        return self._sandbox_id

    async def _create(self) -> str:
        handle = await self._backend.create(self._template)
        self._handle = handle
        logger.info("Created sandbox %s from template %s", handle.sandbox_id, self._template)
        return handle.sandbox_id

    async def resolve(self) -> SandboxHandle:
        sandbox_id = await self.sandbox_id()
        if self._handle is None or self._handle.sandbox_id != sandbox_id:
            self._handle = await self._backend.connect(sandbox_id)
        return self._handle

    async def run_command(self, command: str) -> CommandOutput:
        """Run ``command`` in the sandbox.

        Raises CommandFailedError on any failure, carrying whatever stdout and
        stderr were streamed before it.
        """
        stdout: list[str] = []
        stderr: list[str] = []
        try:
            handle = await self.resolve()
            return await handle.run(
                command,
                on_stdout=stdout.append,
                on_stderr=stderr.append,
                timeout_seconds=self._command_timeout_seconds,
            )
        except CommandFailedError as exc:
            # Prefer what the backend captured; fall back to the streamed buffers.
            raise CommandFailedError(
                str(exc),
                stdout=exc.stdout or "".join(stdout),
                stderr=exc.stderr or "".join(stderr),
                exit_code=exc.exit_code,
            ) from exc
        except Exception as exc:
            raise CommandFailedError(
                str(exc),
                stdout="".join(stdout),
                stderr="".join(stderr),
                exit_code=getattr(exc, "exit_code", None),
            ) from exc

    async def write_file(self, path: str, content: str) -> None:
        handle = await self.resolve()
        await handle.write(path, content)

    async def read_file(self, path: str) -> str:
        handle = await self.resolve()
        return await handle.read(path)

    async def get_url(self, port: int) -> str:
        async def _url() -> str:
            handle = await self.resolve()
            return handle.get_url(port)

        record = await self._step.run("get-sandbox-url", _url)
        return str(record.unwrap())
