"""
modules/state/controller.py

Purpose
-------
Qt-side wiring around a ``Store``:

- re-emits every committed snapshot as ``snapshot_changed``
- debounced autosave of the persistent document to sqlite (``StateRepo``)
- periodic mission evaluation on a QTimer
- enrichment requests out, enrichment answers merged back on the GUI thread
- backup/restore file jobs on the thread pool, restore applied on the GUI thread

Nothing here holds business rules; it only decides *when* store operations run.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from ...constants import AUTOSAVE_DELAY_MS, MISSION_TICK_MS
from ...database.repositories import StateDomainError, StateRepo
from ...errors import CorruptBackup, OpResult
from ...utils.helpers import Clock, local_now
from ..backup_restore import codec
from ..enrichment.prompts import EnrichmentRequest
from ..enrichment.service import EnrichmentService
from .models import AppState
from .notifications import NotificationCenter
from .store import Store


def open_store(
    repo: Optional[StateRepo],
    *,
    clock: Clock = local_now,
    logger: Optional[logging.Logger] = None,
) -> Store:
    """
    Build a Store from the last persisted document. A missing or unreadable
    document starts from the initial state; the bad document is left in place.
    """
    log = logger or logging.getLogger(__name__)
    state: Optional[AppState] = None
    if repo is not None:
        try:
            document = repo.load_document()
            if document is not None:
                state = codec.deserialize(document)
        except (StateDomainError, CorruptBackup) as exc:
            log.error("persisted state unreadable, starting fresh: %s", exc)
    return Store(state, clock=clock)


class _JobCallbacks:
    """Adapts service callbacks (worker thread) to controller signals."""

    def __init__(self, owner: "StoreController", op: str) -> None:
        self._owner = owner
        self._op = op

    def phase(self, text: str) -> None:
        self._owner.job_phase.emit(self._op, text)

    def progress(self, pct: int) -> None:
        self._owner.job_progress.emit(self._op, pct)

    def log(self, line: str) -> None:
        self._owner.job_phase.emit(self._op, line)

    def loaded(self, document: Dict[str, Any]) -> None:
        self._owner._restore_loaded.emit(document)

    def finished(self, ok: bool, message: str, path: Optional[str]) -> None:
        if self._op == "backup":
            self._owner.backup_finished.emit(ok, message, path)
        elif not ok:
            self._owner.restore_finished.emit(False, message, path)


class StoreController(QObject):
    snapshot_changed = Signal(object)              # AppState
    job_phase = Signal(str, str)                   # op, text
    job_progress = Signal(str, int)                # op, pct
    backup_finished = Signal(bool, str, object)    # ok, message, path | None
    restore_finished = Signal(bool, str, object)   # ok, message, path | None

    # worker thread -> GUI thread hop for validated restore documents
    _restore_loaded = Signal(object)

    def __init__(
        self,
        store: Store,
        repo: Optional[StateRepo] = None,
        notifications: Optional[NotificationCenter] = None,
        enrichment: Optional[EnrichmentService] = None,
        logger: Optional[logging.Logger] = None,
        backup_logger: Optional[logging.Logger] = None,
        autosave_delay_ms: int = AUTOSAVE_DELAY_MS,
        mission_tick_ms: int = MISSION_TICK_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.store = store
        self.repo = repo
        self.notifications = notifications or NotificationCenter(parent=self)
        self.enrichment = enrichment or EnrichmentService(parent=self)
        self._log = logger or logging.getLogger(__name__)
        self._backup_log = backup_logger or self._log
        self._pending_restore_path: Optional[str] = None

        store.set_notifier(self.notifications.post)
        self._unsubscribe = store.subscribe(self._on_state_changed)

        self._autosave_timer = QTimer(self)
        self._autosave_timer.setSingleShot(True)
        self._autosave_timer.setInterval(autosave_delay_ms)
        self._autosave_timer.timeout.connect(self.save_now)

        self._mission_timer = QTimer(self)
        self._mission_timer.setInterval(mission_tick_ms)
        self._mission_timer.timeout.connect(self.tick_missions)

        self.enrichment.completed.connect(self._on_enrichment_completed)
        self._restore_loaded.connect(self._apply_restore)

    # -------- lifecycle --------

    def start(self) -> None:
        self.tick_missions()
        self._mission_timer.start()

    def teardown(self) -> None:
        self._mission_timer.stop()
        if self._autosave_timer.isActive():
            self._autosave_timer.stop()
            self.save_now()
        self._unsubscribe()

    # -------- persistence --------

    def _on_state_changed(self, old: AppState, new: AppState) -> None:
        self.snapshot_changed.emit(new)
        if self.repo is not None and old.without_session() != new.without_session():
            self._autosave_timer.start()

    @Slot()
    def save_now(self) -> bool:
        if self.repo is None:
            return False
        try:
            self.repo.save_document(self.store.backup_document(), self.store.now_iso())
        except Exception as exc:
            self._log.error("autosave failed: %s", exc)
            self.notifications.post("Could not save data locally.", "ERROR")
            return False
        return True

    # -------- missions --------

    @Slot()
    def tick_missions(self) -> None:
        self.store.evaluate_missions()

    # -------- enrichment --------

    def request_enrichment(self, request: EnrichmentRequest) -> None:
        if not self.enrichment.available:
            self.store.apply_enrichment(request, None)
            return
        self.enrichment.request(request)

    @Slot(object, object)
    def _on_enrichment_completed(self, request: EnrichmentRequest, payload: Any) -> None:
        self.store.apply_enrichment(request, payload)

    # -------- backup / restore --------

    def backup_to(self, dest_file: str) -> None:
        from ..backup_restore.service import BackupJob  # lazy import

        job = BackupJob(logger=self._backup_log)
        job.run_async(dest_file, self.store.backup_document(), _JobCallbacks(self, "backup"))

    def restore_from(self, src_file: str) -> None:
        from ..backup_restore.service import RestoreJob  # lazy import

        job = RestoreJob(logger=self._backup_log)
        self._pending_restore_path = src_file
        job.run_async(src_file, _JobCallbacks(self, "restore"))

    @Slot(object)
    def _apply_restore(self, document: Dict[str, Any]) -> None:
        path, self._pending_restore_path = self._pending_restore_path, None
        self.apply_restore_document(document, path)

    def apply_restore_document(self, document: Dict[str, Any], source_path: Optional[str] = None) -> OpResult:
        before = self.store.backup_document()
        result = self.store.restore(document)
        if result.ok:
            if self.repo is not None:
                self.repo.record_restore(before, self.store.now_iso(), source_path)
                self.save_now()
            self.restore_finished.emit(True, "Restore completed successfully.", source_path)
        else:
            self.restore_finished.emit(False, result.message, source_path)
        return result
