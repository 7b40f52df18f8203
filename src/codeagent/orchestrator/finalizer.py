"""Turns the final agent state into a persisted artifact and the public result."""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from codeagent.agents.state import AgentState
from codeagent.db.connection import get_conn
from codeagent.db.queries import MessageRole, MessageType, create_message
from codeagent.errors import CodeAgentError
from codeagent.sandbox.session import SandboxSession
from codeagent.workflow.executor import StepContext

FRAGMENT_TITLE = "Fragment"
ERROR_MESSAGE = "Something went wrong. Please try again."
DEFAULT_SANDBOX_PORT = 3000
logger = logging.getLogger(__name__)

SaveMessage = Callable[..., dict[str, Any]]


class RunResult(BaseModel):
    url: str | None = None
    title: str = FRAGMENT_TITLE
    files: dict[str, str] = Field(default_factory=dict)
    summary: str | None = None
    is_error: bool = False
    persisted: bool = True


def save_message(
    content: str,
    role: MessageRole,
    type: MessageType,
    fragment: dict[str, Any] | None = None,
) -> dict[str, Any]:
    with get_conn() as conn:
        return create_message(conn, content, role, type, fragment)


class Finalizer:
    def __init__(
        self,
        step: StepContext,
        sandbox: SandboxSession,
        *,
        port: int = DEFAULT_SANDBOX_PORT,
        save: SaveMessage = save_message,
    ) -> None:
        self._step = step
        self._sandbox = sandbox
        self._port = port
        self._save = save

    async def finalize(self, state: AgentState) -> RunResult:
        """Persist the run's outcome. Never raises for persistence failures.

        Success needs both a summary and at least one file; anything else
        stores the generic error message and reports nothing of the partial
        state.
        """
        if not state.summary or not state.files:
            logger.warning(
                "Run finished without a usable result (summary=%s, files=%d)",
                bool(state.summary),
                len(state.files),
            )
            return await self._finalize_error()

        try:
            url = await self._sandbox.get_url(self._port)
        except CodeAgentError as exc:
            logger.error("Could not resolve the sandbox URL: %s", exc)
            return await self._finalize_error()

        summary = state.summary
        files = dict(state.files)
        record = await self._step.run(
            "save-result",
            lambda: self._save(
                summary,
                "assistant",
                "result",
                {"sandbox_url": url, "files": files, "title": FRAGMENT_TITLE},
            ),
        )
        if not record.ok:
            logger.error("Saving the result failed; returning it unpersisted: %s", record.error)
        return RunResult(
            url=url,
            title=FRAGMENT_TITLE,
            files=files,
            summary=summary,
            is_error=False,
            persisted=record.ok,
        )

    async def _finalize_error(self) -> RunResult:
        record = await self._step.run(
            "save-result",
            lambda: self._save(ERROR_MESSAGE, "assistant", "error", None),
        )
        if not record.ok:
            logger.error("Saving the error message failed: %s", record.error)
        return RunResult(is_error=True, persisted=record.ok)
