"""Step record stores keyed by (run_id, step_name)."""

import json
import sqlite3
import threading
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Protocol

from codeagent.db.connection import get_conn
from codeagent.db.queries import get_step_record, insert_step_record
from codeagent.errors import StepFailedError


@dataclass(frozen=True, slots=True)
class StepRecord:
    """The one authoritative outcome of a step within a run.

    ``replayed`` is not stored; the executor sets it on records served from
    the store instead of a fresh execution.
    """

    run_id: str
    step_name: str
    ok: bool
    result: Any = None
    error: dict[str, str] | None = None
    replayed: bool = False

    def unwrap(self) -> Any:
        if self.ok:
            return self.result
        error = self.error or {}
        raise StepFailedError(
            self.step_name,
            error.get("type", "Exception"),
            error.get("message", ""),
        )


class StepStore(Protocol):
    def get(self, run_id: str, step_name: str) -> StepRecord | None: ...

    def put(self, record: StepRecord) -> StepRecord:
        """Insert unless the key exists; return whichever record is authoritative."""
        ...


class InMemoryStepStore:
    def __init__(self) -> None:
        self._records: dict[tuple[str, str], StepRecord] = {}
        self._lock = threading.Lock()

    def get(self, run_id: str, step_name: str) -> StepRecord | None:
        with self._lock:
            return self._records.get((run_id, step_name))

    def put(self, record: StepRecord) -> StepRecord:
        with self._lock:
            return self._records.setdefault((record.run_id, record.step_name), record)

    def records(self, run_id: str) -> list[StepRecord]:
        with self._lock:
            return [record for key, record in self._records.items() if key[0] == run_id]


ConnectionFactory = Callable[[], AbstractContextManager[sqlite3.Connection]]


class SqliteStepStore:
    """Step records in the ``workflow_steps`` table; survives process restarts."""

    def __init__(self, connect: ConnectionFactory = get_conn) -> None:
        self._connect = connect

    def get(self, run_id: str, step_name: str) -> StepRecord | None:
        with self._connect() as conn:
            row = get_step_record(conn, run_id, step_name)
        if row is None:
            return None
        return StepRecord(
            run_id=str(row["run_id"]),
            step_name=str(row["step_name"]),
            ok=bool(row["ok"]),
            result=json.loads(row["result_json"]) if row["result_json"] is not None else None,
            error=json.loads(row["error_json"]) if row["error_json"] else None,
        )

    def put(self, record: StepRecord) -> StepRecord:
        with self._connect() as conn:
            inserted = insert_step_record(
                conn,
                record.run_id,
                record.step_name,
                record.ok,
                json.dumps(record.result) if record.ok else None,
                json.dumps(record.error) if record.error else None,
            )
        if inserted:
            return record
        existing = self.get(record.run_id, record.step_name)
        assert existing is not None
        return existing
