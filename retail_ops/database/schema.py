from pathlib import Path
import sqlite3

SQL = r"""
/* Single-row snapshot of the persistent AppState, stored as a backup document. */
CREATE TABLE IF NOT EXISTS app_state (
    id          INTEGER PRIMARY KEY CHECK (id = 1),
    document    TEXT NOT NULL,
    saved_at    TEXT NOT NULL
);

/* Append-only record of documents replaced by a restore. */
CREATE TABLE IF NOT EXISTS restore_history (
    restore_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    replaced    TEXT NOT NULL,
    restored_at TEXT NOT NULL,
    source_path TEXT
);
"""


def init_schema(db_path: Path | str) -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.executescript(SQL)
        conn.commit()
