# tests/test_backup_service.py
import json
import logging
from types import SimpleNamespace

import pytest

from retail_ops.errors import CorruptBackup
from retail_ops.modules.backup_restore import fsops
from retail_ops.modules.backup_restore.logging_utils import get_logger, log_event
from retail_ops.modules.backup_restore.service import BackupJob, RestoreJob, read_backup, write_backup
from retail_ops.modules.backup_restore.validators import validate_backup_destination, with_backup_extension


def recorder():
    """Callbacks namespace that records every call."""
    calls = []
    ns = SimpleNamespace(
        phase=lambda text: calls.append(("phase", text)),
        progress=lambda pct: calls.append(("progress", pct)),
        log=lambda line: calls.append(("log", line)),
        loaded=lambda doc: calls.append(("loaded", doc)),
        finished=lambda ok, msg, path: calls.append(("finished", ok, msg, path)),
    )
    return ns, calls


# =========================
# Files
# =========================
def test_write_then_read_backup(stocked_store, tmp_path):
    doc = stocked_store.backup_document()
    path = write_backup(str(tmp_path / "nightly"), doc)
    assert path.endswith(".rbak")
    assert read_backup(path) == doc


def test_atomic_write_replaces_existing_file(tmp_path):
    target = tmp_path / "x.rbak"
    target.write_text("old", encoding="utf-8")
    n = fsops.atomic_write_text(str(target), "new contents")
    assert n == len("new contents")
    assert target.read_text(encoding="utf-8") == "new contents"
    assert [p.name for p in tmp_path.iterdir()] == ["x.rbak"]


def test_read_backup_rejects_bad_files(tmp_path):
    with pytest.raises(RuntimeError):
        read_backup(str(tmp_path / "missing.rbak"))

    empty = tmp_path / "empty.rbak"
    empty.write_text("", encoding="utf-8")
    with pytest.raises(RuntimeError):
        read_backup(str(empty))

    garbage = tmp_path / "garbage.rbak"
    garbage.write_text("{{{{", encoding="utf-8")
    with pytest.raises(CorruptBackup):
        read_backup(str(garbage))

    no_marker = tmp_path / "nomarker.rbak"
    no_marker.write_text(json.dumps({"batches": []}), encoding="utf-8")
    with pytest.raises(CorruptBackup):
        read_backup(str(no_marker))


def test_destination_validation(tmp_path):
    with pytest.raises(RuntimeError):
        validate_backup_destination(str(tmp_path / "nope" / "a.rbak"), 10, 10**9)
    with pytest.raises(RuntimeError):
        validate_backup_destination(str(tmp_path / "a.rbak"), 1000, 10)
    validate_backup_destination(str(tmp_path / "a.rbak"), 1000, 10**9)
    assert with_backup_extension("a.RBAK") == "a.RBAK"
    assert with_backup_extension("a.json") == "a.json.rbak"


def test_log_event_writes_json_lines(tmp_path):
    logger = logging.getLogger("retail_ops.backup")
    logger.handlers.clear()
    logger = get_logger(str(tmp_path / "backup.log"))
    try:
        log_event(logger, "backup", "done", "ok", {"op": "ignored", "bytes": 12})
        for h in logger.handlers:
            h.flush()
        line = json.loads((tmp_path / "backup.log").read_text(encoding="utf-8").strip().splitlines()[-1])
        assert line["msg"] == "ok"
        assert line["extra"] == {"op": "backup", "phase": "done", "bytes": 12}
    finally:
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)


# =========================
# Jobs (inline)
# =========================
def test_backup_job_reports_success(stocked_store, tmp_path):
    cb, calls = recorder()
    BackupJob().run(str(tmp_path / "job"), stocked_store.backup_document(), cb)
    finished = [c for c in calls if c[0] == "finished"]
    assert len(finished) == 1
    _, ok, message, path = finished[0]
    assert ok is True
    assert message == "Backup completed successfully."
    assert path.endswith("job.rbak")
    assert ("progress", 100) in calls


def test_restore_job_hands_back_validated_document(stocked_store, tmp_path):
    doc = stocked_store.backup_document()
    path = write_backup(str(tmp_path / "r.rbak"), doc)
    cb, calls = recorder()
    RestoreJob().run(path, cb)
    assert ("loaded", doc) in calls
    assert calls[-1][:2] == ("finished", True)


def test_restore_job_failure_never_calls_loaded(tmp_path):
    bad = tmp_path / "bad.rbak"
    bad.write_text('{"timestamp": "x"}', encoding="utf-8")
    cb, calls = recorder()
    RestoreJob().run(str(bad), cb)
    assert not [c for c in calls if c[0] == "loaded"]
    assert calls[-1][0] == "finished" and calls[-1][1] is False
    assert "CorruptBackup" in calls[-1][2]


def test_callback_errors_do_not_abort_job(stocked_store, tmp_path):
    def boom(*_a):
        raise RuntimeError("ui went away")

    done = []
    cb = SimpleNamespace(phase=boom, progress=boom, finished=lambda ok, msg, path: done.append(ok))
    BackupJob().run(str(tmp_path / "b"), stocked_store.backup_document(), cb)
    assert done == [True]


# =========================
# Jobs (thread pool)
# =========================
def test_backup_job_async(qtbot, stocked_store, tmp_path):
    cb, calls = recorder()
    BackupJob().run_async(str(tmp_path / "async"), stocked_store.backup_document(), cb)
    qtbot.waitUntil(lambda: any(c[0] == "finished" for c in calls), timeout=5000)
    assert (tmp_path / "async.rbak").exists()
