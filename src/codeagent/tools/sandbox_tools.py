"""The agent's sandbox tools: terminal, createOrUpdateFiles, readFiles.

Each call runs inside one durable step, and every outcome, including
failures, comes back to the model as a string it can read and react to.
"""

import json
import logging

from pydantic import BaseModel, Field

from codeagent.errors import CommandFailedError
from codeagent.tools.registry import ToolContext, ToolRegistry
from codeagent.workflow.store import StepRecord

logger = logging.getLogger(__name__)


class TerminalParams(BaseModel):
    command: str


class FileWrite(BaseModel):
    path: str
    content: str


class WriteFilesParams(BaseModel):
    files: list[FileWrite]


class ReadFilesParams(BaseModel):
    files: list[str] = Field(..., description="Paths of the files to read.")


def format_command_failure(exc: CommandFailedError) -> str:
    return f"Command failed: {exc} \nstdout: {exc.stdout} \nstderr: {exc.stderr}"


def _record_text(record: StepRecord) -> str:
    if record.ok:
        return str(record.result)
    error = record.error or {}
    return f"Error: {error.get('message', 'step failed')}"


async def terminal(params: TerminalParams, ctx: ToolContext) -> str:
    async def _run() -> str:
        try:
            output = await ctx.sandbox.run_command(params.command)
        except CommandFailedError as exc:
            message = format_command_failure(exc)
            logger.error(message)
            return message
        return output.stdout

    record = await ctx.step.run("terminal", _run)
    return _record_text(record)


async def create_or_update_files(params: WriteFilesParams, ctx: ToolContext) -> str:
    async def _write() -> dict[str, str] | str:
        updated = dict(ctx.state.files)
        try:
            for file in params.files:
                await ctx.sandbox.write_file(file.path, file.content)
                updated[file.path] = file.content
        except Exception as exc:
            return f"Error: {exc}"
        return updated

    record = await ctx.step.run("createOrUpdateFiles", _write)
    if record.ok and isinstance(record.result, dict):
        # Only a complete batch reaches the shared state.
        ctx.state.merge_files(record.result)
        paths = ", ".join(file.path for file in params.files)
        return f"Updated {len(params.files)} file(s): {paths}"
    return _record_text(record)


async def read_files(params: ReadFilesParams, ctx: ToolContext) -> str:
    async def _read() -> str:
        try:
            contents = []
            for path in params.files:
                content = await ctx.sandbox.read_file(path)
                contents.append({"path": path, "content": content})
        except Exception as exc:
            return f"Error: {exc}"
        return json.dumps(contents)

    record = await ctx.step.run("readFiles", _read)
    return _record_text(record)


def build_tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        "terminal",
        "Use the terminal to run commands.",
        TerminalParams,
        terminal,
    )
    registry.register(
        "createOrUpdateFiles",
        "Create or update files in the sandbox.",
        WriteFilesParams,
        create_or_update_files,
    )
    registry.register(
        "readFiles",
        "Read files from the sandbox.",
        ReadFilesParams,
        read_files,
    )
    return registry
