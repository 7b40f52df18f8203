"""Tool runtime: schema validation, dispatch and trace events."""

import json
import logging
import sqlite3
from typing import Any

from pydantic import ValidationError

from codeagent.db.connection import get_conn
from codeagent.errors import CodeAgentError, SchemaValidationError, ToolError, ToolNotFoundError
from codeagent.events.models import EventInput
from codeagent.events.writer import emit_event, redact_payload
from codeagent.ids import new_id
from codeagent.tools.registry import ToolContext, ToolRegistry
from codeagent.workflow.store import ConnectionFactory

logger = logging.getLogger(__name__)


def _format_validation_error(tool_name: str, exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        problems.append(f"{location}: {error.get('msg', 'invalid')}")
    return f"invalid arguments for tool {tool_name!r}: " + "; ".join(problems)


class ToolRuntime:
    """Validates and dispatches tool calls.

    Arguments are checked against the tool's parameter model before the
    handler runs, so a malformed call never reaches a durable step or the
    sandbox. With ``connect=None`` no trace events are written.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        connect: ConnectionFactory | None = get_conn,
    ) -> None:
        self.registry = registry
        self._connect = connect

    def _emit(
        self,
        run_id: str,
        span_id: str,
        parent_span_id: str | None,
        event_type: str,
        payload: dict[str, Any],
    ) -> None:
        """Write one trace event. Tracing is best-effort; store errors are logged."""
        if self._connect is None:
            return
        try:
            with self._connect() as conn:
                emit_event(
                    conn,
                    EventInput(
                        run_id=run_id,
                        span_id=span_id,
                        parent_span_id=parent_span_id,
                        event_type=event_type,
                        component="tools.runtime",
                        payload_json=json.dumps(redact_payload(payload)),
                    ),
                )
        except sqlite3.Error:
            logger.warning(
                "Could not write %s trace event for run %s",
                event_type,
                run_id,
                exc_info=True,
            )

    async def execute(self, ctx: ToolContext, tool_name: str, arguments: object) -> str:
        span_id = new_id("spn")
        start_payload = {"tool": tool_name, "arguments": arguments}

        def _fail(kind: str, exc: CodeAgentError) -> CodeAgentError:
            self._emit(ctx.run_id, span_id, None, "tool.call.start", start_payload)
            self._emit(
                ctx.run_id,
                new_id("spn"),
                span_id,
                "tool.call.end",
                {"tool": tool_name, "error": {"kind": kind, "message": str(exc)}},
            )
            return exc

        tool = self.registry.get(tool_name)
        if tool is None:
            raise _fail("unknown_tool", ToolNotFoundError(f"unknown tool: {tool_name}"))

        if not isinstance(arguments, dict):
            raise _fail(
                "schema_violation",
                SchemaValidationError(
                    f"invalid arguments for tool {tool_name!r}: expected a JSON object"
                ),
            )
        try:
            params = tool.params_model.model_validate(arguments)
        except ValidationError as exc:
            raise _fail(
                "schema_violation",
                SchemaValidationError(_format_validation_error(tool_name, exc)),
            ) from exc

        # Traced only when the handler ran at least one step fresh.
        executed_before = ctx.step.executed
        try:
            result = await tool.handler(params, ctx)
        except CodeAgentError as exc:
            _fail("runtime_exception", exc)
            raise
        except Exception as exc:
            logger.exception("Tool %s raised", tool_name)
            raise _fail("runtime_exception", ToolError(f"tool {tool_name!r} failed: {exc}")) from exc

        if ctx.step.executed == executed_before:
            logger.debug("Tool %s replayed for run %s; not traced again", tool_name, ctx.run_id)
            return result
        self._emit(ctx.run_id, span_id, None, "tool.call.start", start_payload)
        self._emit(
            ctx.run_id,
            new_id("spn"),
            span_id,
            "tool.call.end",
            {"tool": tool_name, "result": result},
        )
        return result
