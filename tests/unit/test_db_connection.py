from pathlib import Path

from codeagent.db.connection import connect, db_ready, get_conn


def test_connect_creates_parent_dir_and_uses_wal(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "steps.db"
    conn = connect(str(path))
    try:
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        foreign_keys = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    finally:
        conn.close()
    assert path.exists()
    assert mode == "wal"
    assert foreign_keys == 1


def test_get_conn_defaults_to_configured_db() -> None:
    with get_conn() as conn:
        tables = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        }
    assert {"workflow_steps", "messages", "fragments", "events"} <= tables


def test_db_ready(tmp_path: Path) -> None:
    assert db_ready() is True
    assert db_ready(str(tmp_path / "unmigrated.db")) is False
