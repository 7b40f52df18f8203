"""E2B remote sandbox backend."""

from e2b_code_interpreter import AsyncSandbox, CommandExitException

from codeagent.errors import CommandFailedError
from codeagent.sandbox.base import CommandOutput, OutputCallback


class E2BHandle:
    def __init__(self, sandbox: AsyncSandbox) -> None:
        self._sandbox = sandbox

    @property
    def sandbox_id(self) -> str:
        return str(self._sandbox.sandbox_id)

    async def run(
        self,
        command: str,
        *,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
        timeout_seconds: float,
    ) -> CommandOutput:
        try:
            result = await self._sandbox.commands.run(
                command,
                on_stdout=lambda data: on_stdout(str(data)),
                on_stderr=lambda data: on_stderr(str(data)),
                timeout=timeout_seconds,
            )
        except CommandExitException as exc:
            raise CommandFailedError(
                str(exc),
                stdout=exc.stdout or "",
                stderr=exc.stderr or "",
                exit_code=exc.exit_code,
            ) from exc
        return CommandOutput(
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            exit_code=int(result.exit_code),
        )

    async def write(self, path: str, content: str) -> None:
        await self._sandbox.files.write(path, content)

    async def read(self, path: str) -> str:
        return str(await self._sandbox.files.read(path))

    def get_url(self, port: int) -> str:
        return f"https://{self._sandbox.get_host(port)}"


class E2BBackend:
    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key or None

    async def create(self, template: str) -> E2BHandle:
        sandbox = await AsyncSandbox.create(template=template, api_key=self._api_key)
        return E2BHandle(sandbox)

    async def connect(self, sandbox_id: str) -> E2BHandle:
        sandbox = await AsyncSandbox.connect(sandbox_id, api_key=self._api_key)
        return E2BHandle(sandbox)
