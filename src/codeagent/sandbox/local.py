"""Local sandbox backend: one workspace directory per sandbox on this host.

Meant for development and tests. Commands run through the host shell with
the workspace as their working directory; it is not an isolation boundary.
"""

import asyncio
import codecs
import logging
import os
import shutil
from pathlib import Path

from codeagent.errors import CommandFailedError, SandboxError
from codeagent.ids import new_id
from codeagent.sandbox.base import CommandOutput, OutputCallback

logger = logging.getLogger(__name__)

_READ_CHUNK = 4096
ENV_ALLOWLIST = ("PATH", "HOME", "LANG", "LC_ALL", "TZ")


def _is_subpath(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def _sanitize_env() -> dict[str, str]:
    return {key: os.environ[key] for key in ENV_ALLOWLIST if key in os.environ}


async def _pump(
    stream: asyncio.StreamReader | None,
    chunks: list[str],
    callback: OutputCallback,
) -> None:
    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(_READ_CHUNK)
        text = decoder.decode(data, final=not data)
        if text:
            chunks.append(text)
            callback(text)
        if not data:
            return


class LocalHandle:
    def __init__(self, sandbox_id: str, workspace: Path) -> None:
        self._sandbox_id = sandbox_id
        self.workspace = workspace

    @property
    def sandbox_id(self) -> str:
        return self._sandbox_id

    def _resolve_path(self, path: str) -> Path:
        raw = Path(path)
        candidate = (raw if raw.is_absolute() else self.workspace / raw).resolve()
        if not _is_subpath(candidate, self.workspace):
            raise SandboxError(f"path escapes sandbox workspace: {path}")
        return candidate

    async def run(
        self,
        command: str,
        *,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
        timeout_seconds: float,
    ) -> CommandOutput:
        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=str(self.workspace),
            env=_sanitize_env(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            await asyncio.wait_for(
                asyncio.gather(
                    _pump(process.stdout, stdout_chunks, on_stdout),
                    _pump(process.stderr, stderr_chunks, on_stderr),
                    process.wait(),
                ),
                timeout=timeout_seconds,
            )
        except TimeoutError as exc:
            process.kill()
            await process.wait()
            raise CommandFailedError(
                f"command timed out after {timeout_seconds}s",
                stdout="".join(stdout_chunks),
                stderr="".join(stderr_chunks),
            ) from exc

        stdout = "".join(stdout_chunks)
        stderr = "".join(stderr_chunks)
        exit_code = int(process.returncode or 0)
        if exit_code != 0:
            raise CommandFailedError(
                f"command exited with status {exit_code}",
                stdout=stdout,
                stderr=stderr,
                exit_code=exit_code,
            )
        return CommandOutput(stdout=stdout, stderr=stderr, exit_code=exit_code)

    async def write(self, path: str, content: str) -> None:
        target = self._resolve_path(path)
        await asyncio.to_thread(_write_text, target, content)

    async def read(self, path: str) -> str:
        target = self._resolve_path(path)
        if not target.is_file():
            raise SandboxError(f"file not found: {path}")
        return await asyncio.to_thread(target.read_text, encoding="utf-8")

    def get_url(self, port: int) -> str:
        return f"http://127.0.0.1:{port}"


def _write_text(target: Path, content: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


class LocalBackend:
    def __init__(self, root: str | Path, template_root: str | Path | None = None) -> None:
        self.root = Path(root).expanduser().resolve()
        self.template_root = Path(template_root).expanduser().resolve() if template_root else None

    async def create(self, template: str) -> LocalHandle:
        sandbox_id = new_id("sbx")
        workspace = self.root / sandbox_id
        source = self.template_root / template if self.template_root else None
        if source is not None and source.is_dir():
            await asyncio.to_thread(shutil.copytree, source, workspace)
        else:
            workspace.mkdir(parents=True, exist_ok=False)
            logger.debug("No local template %r; created empty workspace %s", template, workspace)
        return LocalHandle(sandbox_id, workspace)

    async def connect(self, sandbox_id: str) -> LocalHandle:
        workspace = (self.root / sandbox_id).resolve()
        if not _is_subpath(workspace, self.root) or not workspace.is_dir():
            raise SandboxError(f"unknown sandbox: {sandbox_id}")
        return LocalHandle(sandbox_id, workspace)
