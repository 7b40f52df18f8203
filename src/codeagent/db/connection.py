"""SQLite connections for step records, run artifacts and trace events."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from codeagent.config import get_settings

PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA busy_timeout = 30000",
)


def connect(db_path: str | None = None) -> sqlite3.Connection:
    """Open an autocommit connection to ``db_path`` (default: APP_DB)."""
    path = db_path or get_settings().app_db
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, timeout=30.0, isolation_level=None)
    conn.row_factory = sqlite3.Row
    for pragma in PRAGMAS:
        conn.execute(pragma)
    return conn


@contextmanager
def get_conn(db_path: str | None = None) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
    finally:
        conn.close()


def db_ready(db_path: str | None = None) -> bool:
    """True when the database opens and the step table is migrated."""
    try:
        with get_conn(db_path) as conn:
            conn.execute("SELECT 1 FROM workflow_steps LIMIT 1").fetchall()
    except sqlite3.Error:
        return False
    return True
