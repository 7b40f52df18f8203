"""Trace event emission helpers."""

import sqlite3
from typing import Any, cast

from codeagent.db.queries import now_iso
from codeagent.events.models import EventInput
from codeagent.ids import new_id

SENSITIVE_KEYS = {
    "access_token",
    "api_key",
    "authorization",
    "password",
}
MAX_TRACE_TEXT = 2000


def _redact_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: "[REDACTED]" if str(key).lower() in SENSITIVE_KEYS else _redact_value(nested)
            for key, nested in value.items()
        }
    if isinstance(value, list):
        return [_redact_value(item) for item in value]
    if isinstance(value, str) and len(value) > MAX_TRACE_TEXT:
        return value[:MAX_TRACE_TEXT] + "…"
    return value


def redact_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Mask secrets and clip long strings (file bodies, command output)."""
    return cast(dict[str, Any], _redact_value(payload))


def emit_event(conn: sqlite3.Connection, event: EventInput) -> str:
    event_id = new_id("evt")
    conn.execute(
        """
        INSERT INTO events(
          id, run_id, span_id, parent_span_id,
          event_type, component, payload_json, created_at
        ) VALUES(?,?,?,?,?,?,?,?)
        """,
        (
            event_id,
            event.run_id,
            event.span_id,
            event.parent_span_id,
            event.event_type,
            event.component,
            event.payload_json,
            now_iso(),
        ),
    )
    return event_id
