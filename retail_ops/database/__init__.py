# retail_ops/database/__init__.py
from __future__ import annotations

from pathlib import Path
import sqlite3

from ..constants import SCHEMA_VERSION
from . import schema as schema_module
from .versioning import get_current_version, set_current_version


def get_connection(db_path: Path | str) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode
      - row_factory = sqlite3.Row
    Ensures the schema and version row exist (idempotent).
    """
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        schema_module.init_schema(db_path)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL;")
    if str(db_path) == ":memory:":
        conn.executescript(schema_module.SQL)

    if get_current_version(conn) is None:
        set_current_version(conn, SCHEMA_VERSION)

    conn.commit()
    return conn


__all__ = [
    "get_connection",
]
