from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, Optional


class DomainError(Exception):
    pass


class StateRepo:
    """Reads and writes the single persisted AppState document."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---- Queries ----------------------------------------------------------

    def load_document(self) -> Optional[Dict[str, Any]]:
        """The last saved document, or None on a fresh database."""
        row = self.conn.execute("SELECT document FROM app_state WHERE id = 1").fetchone()
        if row is None:
            return None
        try:
            doc = json.loads(row["document"])
        except ValueError as exc:
            raise DomainError(f"Stored state is not valid JSON: {exc}") from exc
        if not isinstance(doc, dict):
            raise DomainError("Stored state is not a JSON object.")
        return doc

    def saved_at(self) -> Optional[str]:
        row = self.conn.execute("SELECT saved_at FROM app_state WHERE id = 1").fetchone()
        return row["saved_at"] if row else None

    def restore_count(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM restore_history").fetchone()[0])

    # ---- Commands ---------------------------------------------------------

    def save_document(self, document: Dict[str, Any], saved_at: str) -> None:
        payload = json.dumps(document, ensure_ascii=False)
        with self.conn:
            self.conn.execute(
                "INSERT INTO app_state(id, document, saved_at) VALUES (1, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET document = excluded.document, saved_at = excluded.saved_at",
                (payload, saved_at),
            )

    def record_restore(self, replaced: Dict[str, Any], restored_at: str, source_path: str | None = None) -> None:
        """Keep the pre-restore document around so a bad restore can be undone by hand."""
        with self.conn:
            self.conn.execute(
                "INSERT INTO restore_history(replaced, restored_at, source_path) VALUES (?, ?, ?)",
                (json.dumps(replaced, ensure_ascii=False), restored_at, source_path),
            )

    def clear(self) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM app_state")
