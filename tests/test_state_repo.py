# tests/test_state_repo.py
import sqlite3

import pytest

from retail_ops.constants import SCHEMA_VERSION
from retail_ops.database import get_connection
from retail_ops.database.repositories import StateDomainError, StateRepo
from retail_ops.database.versioning import get_current_version
from retail_ops.modules.state.controller import open_store


def test_fresh_database_has_schema_and_no_document(conn, repo):
    assert get_current_version(conn) == SCHEMA_VERSION
    assert repo.load_document() is None
    assert repo.saved_at() is None


def test_save_and_load_round_trip(stocked_store, repo):
    doc = stocked_store.backup_document()
    repo.save_document(doc, "2026-03-14T10:30:00+00:00")
    assert repo.load_document() == doc
    assert repo.saved_at() == "2026-03-14T10:30:00+00:00"

    # single row: the second save overwrites
    stocked_store.add_customer("Mika")
    repo.save_document(stocked_store.backup_document(), "2026-03-14T11:00:00+00:00")
    assert len(repo.load_document()["customers"]) == 2
    assert repo.conn.execute("SELECT COUNT(*) FROM app_state").fetchone()[0] == 1


def test_open_store_restores_persisted_state(stocked_store, repo, clock):
    repo.save_document(stocked_store.backup_document(), "t")
    reopened = open_store(repo, clock=clock)
    assert reopened.state == stocked_store.state.without_session()


def test_open_store_survives_unreadable_document(repo, conn, clock):
    with conn:
        conn.execute("INSERT INTO app_state(id, document, saved_at) VALUES (1, '{broken', 't')")
    with pytest.raises(StateDomainError):
        repo.load_document()
    store = open_store(repo, clock=clock)
    assert store.state.batches == ()
    assert len(store.state.missions) == 7


def test_open_store_survives_corrupt_document(repo, clock):
    repo.save_document({"batches": []}, "t")
    assert open_store(repo, clock=clock).state.batches == ()


def test_restore_history_and_clear(repo, stocked_store):
    repo.record_restore(stocked_store.backup_document(), "t", "/tmp/x.rbak")
    assert repo.restore_count() == 1
    repo.save_document(stocked_store.backup_document(), "t")
    repo.clear()
    assert repo.load_document() is None


def test_get_connection_is_idempotent(tmp_path):
    path = tmp_path / "again.db"
    get_connection(path).close()
    con = get_connection(path)
    try:
        assert isinstance(con, sqlite3.Connection)
        assert get_current_version(con) == SCHEMA_VERSION
    finally:
        con.close()


def test_in_memory_connection():
    con = get_connection(":memory:")
    try:
        repo = StateRepo(con)
        repo.save_document({"k": 1}, "t")
        assert repo.load_document() == {"k": 1}
    finally:
        con.close()
