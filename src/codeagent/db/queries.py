"""Query helpers for step records and persisted run artifacts."""

import json
import sqlite3
from datetime import UTC, datetime
from typing import Any, Literal

from codeagent.ids import new_id

MessageRole = Literal["user", "assistant"]
MessageType = Literal["result", "error"]


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def insert_step_record(
    conn: sqlite3.Connection,
    run_id: str,
    step_name: str,
    ok: bool,
    result_json: str | None,
    error_json: str | None,
) -> bool:
    """Insert a step record unless one already exists. Returns True if inserted."""
    cursor = conn.execute(
        "INSERT OR IGNORE INTO workflow_steps("
        "run_id, step_name, ok, result_json, error_json, created_at"
        ") VALUES(?,?,?,?,?,?)",
        (run_id, step_name, 1 if ok else 0, result_json, error_json, now_iso()),
    )
    return cursor.rowcount == 1


def get_step_record(
    conn: sqlite3.Connection, run_id: str, step_name: str
) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT run_id, step_name, ok, result_json, error_json, created_at "
        "FROM workflow_steps WHERE run_id=? AND step_name=?",
        (run_id, step_name),
    ).fetchone()


def list_step_records(conn: sqlite3.Connection, run_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT step_name, ok, error_json, created_at FROM workflow_steps "
        "WHERE run_id=? ORDER BY created_at, rowid",
        (run_id,),
    ).fetchall()
    return [
        {
            "step_name": str(row["step_name"]),
            "ok": bool(row["ok"]),
            "error": json.loads(row["error_json"]) if row["error_json"] else None,
            "created_at": str(row["created_at"]),
        }
        for row in rows
    ]


def create_message(
    conn: sqlite3.Connection,
    content: str,
    role: MessageRole,
    type: MessageType,
    fragment: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Store one message, and its fragment when given, in a single transaction.

    ``fragment`` carries ``sandbox_url``, ``files`` and ``title``.
    """
    message_id = new_id("msg")
    created_at = now_iso()
    conn.execute("BEGIN IMMEDIATE")
    try:
        conn.execute(
            "INSERT INTO messages(id, content, role, type, created_at) VALUES(?,?,?,?,?)",
            (message_id, content, role, type, created_at),
        )
        fragment_id: str | None = None
        if fragment is not None:
            fragment_id = new_id("frg")
            conn.execute(
                "INSERT INTO fragments("
                "id, message_id, sandbox_url, title, files_json, created_at"
                ") VALUES(?,?,?,?,?,?)",
                (
                    fragment_id,
                    message_id,
                    str(fragment["sandbox_url"]),
                    str(fragment["title"]),
                    json.dumps(fragment["files"], sort_keys=True),
                    created_at,
                ),
            )
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
    return {"id": message_id, "fragment_id": fragment_id, "created_at": created_at}


def list_messages(conn: sqlite3.Connection, limit: int = 50) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT m.id, m.content, m.role, m.type, m.created_at, "
        "f.sandbox_url, f.title, f.files_json "
        "FROM messages m LEFT JOIN fragments f ON f.message_id = m.id "
        "ORDER BY m.created_at DESC, m.rowid DESC LIMIT ?",
        (max(1, int(limit)),),
    ).fetchall()
    messages: list[dict[str, Any]] = []
    for row in rows:
        item: dict[str, Any] = {
            "id": str(row["id"]),
            "content": str(row["content"]),
            "role": str(row["role"]),
            "type": str(row["type"]),
            "created_at": str(row["created_at"]),
            "fragment": None,
        }
        if row["files_json"] is not None:
            item["fragment"] = {
                "sandbox_url": str(row["sandbox_url"]),
                "title": str(row["title"]),
                "files": json.loads(row["files_json"]),
            }
        messages.append(item)
    return messages
