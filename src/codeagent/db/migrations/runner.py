"""Simple SQL migration runner."""

from pathlib import Path

from codeagent.db.connection import get_conn

MIGRATIONS_DIR = Path(__file__).resolve().parent


def run_migrations() -> list[str]:
    """Apply pending migrations in filename order and return the names applied."""
    newly_applied: list[str] = []
    with get_conn() as conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations("
            "name TEXT PRIMARY KEY, "
            "applied_at TEXT NOT NULL)"
        )
        applied = {
            row[0] for row in conn.execute("SELECT name FROM schema_migrations").fetchall()
        }
        for file in sorted(MIGRATIONS_DIR.glob("*.sql")):
            if file.name in applied:
                continue
            # Migration files only use IF NOT EXISTS statements, so a crash
            # between the script and the bookkeeping insert is safe to rerun.
            conn.executescript(file.read_text())
            conn.execute(
                "INSERT OR IGNORE INTO schema_migrations(name, applied_at) "
                "VALUES(?, datetime('now'))",
                (file.name,),
            )
            newly_applied.append(file.name)
    return newly_applied


if __name__ == "__main__":
    run_migrations()
