"""
modules/backup_restore/service.py

Purpose
-------
Move backup documents between the store and ``*.rbak`` files, either inline
(``write_backup`` / ``read_backup``) or off the UI thread (``BackupJob`` /
``RestoreJob``) with progress reported through duck-typed callbacks.

Public interface
----------------
- write_backup(dest_file, document, *, logger=None) -> str          (final path)
- read_backup(src_file, *, logger=None) -> dict                      (validated)
- BackupJob.run_async(dest_file: str, document: dict, callbacks) -> None
- RestoreJob.run_async(src_file: str, callbacks) -> None

Where callbacks is any object (or simple namespace) that exposes:
- phase(text: str)
- progress(pct: int)                  # 0..100, or negative for indeterminate
- log(line: str)
- loaded(document: dict)              # RestoreJob only; validated, not yet applied
- finished(success: bool, message: str, path: Optional[str])

A restore job never touches the store. It hands the validated document to
``loaded`` and the owner of the store applies it on its own thread.
"""

from __future__ import annotations

import json
import logging
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Slot

from ...errors import CorruptBackup
from . import codec, fsops
from .logging_utils import log_event
from .validators import validate_backup_destination, validate_backup_source, with_backup_extension


# ----------------------------
# Utilities
# ----------------------------

def _safe_call(fn: Optional[Callable], *args, **kwargs) -> None:
    """Call a callback if present; UI callback failures must not kill the worker."""
    if fn is None:
        return
    try:
        fn(*args, **kwargs)
    except Exception:
        logging.getLogger(__name__).debug("callback failed:\n%s", traceback.format_exc())


def _fmt_err(msg: str, exc: BaseException | None = None) -> str:
    if exc is None:
        return msg
    return f"{msg}\n\n{exc.__class__.__name__}: {exc}"


@dataclass
class _Callbacks:
    phase: Optional[Callable[[str], None]] = None
    progress: Optional[Callable[[int], None]] = None
    log: Optional[Callable[[str], None]] = None
    loaded: Optional[Callable[[Dict[str, Any]], None]] = None
    finished: Optional[Callable[[bool, str, Optional[str]], None]] = None

    @classmethod
    def of(cls, callbacks) -> "_Callbacks":
        return cls(**{name: getattr(callbacks, name, None) for name in cls.__dataclass_fields__})


# ----------------------------
# Inline API
# ----------------------------

def write_backup(dest_file: str, document: Mapping[str, Any], *, logger: Optional[logging.Logger] = None) -> str:
    """Encode `document` and write it atomically; the ``.rbak`` extension is enforced."""
    dest = with_backup_extension(dest_file)
    text = json.dumps(document, ensure_ascii=False, indent=2)
    size = len(text.encode("utf-8"))
    free = fsops.get_free_space_bytes(str(Path(dest).parent))
    validate_backup_destination(dest, size, free)
    written = fsops.atomic_write_text(dest, text, verbose=logger is not None, logger=logger)
    if logger is not None:
        log_event(logger, "backup", "done", "backup written", {"path": dest, "bytes": written})
    return dest


def read_backup(src_file: str, *, logger: Optional[logging.Logger] = None) -> Dict[str, Any]:
    """
    Read and fully validate a backup file without applying it.
    Raises RuntimeError for file problems and CorruptBackup for content problems.
    """
    validate_backup_source(src_file)
    text = fsops.read_text(src_file)
    try:
        document = json.loads(text)
    except ValueError as exc:
        raise CorruptBackup(f"Backup is not valid JSON: {exc}") from exc
    restored = codec.deserialize(document)
    if logger is not None:
        log_event(
            logger, "restore", "decode", "backup validated",
            {"path": src_file, "batches": len(restored.batches), "sales": len(restored.sales)},
        )
    return document


# ----------------------------
# Base runnable
# ----------------------------

class _JobRunnable(QRunnable):
    """Thin QRunnable wrapper that executes a callable."""
    def __init__(self, work: Callable[[], None]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._work = work

    @Slot()
    def run(self) -> None:  # type: ignore[override]
        self._work()


# ----------------------------
# Backup Job
# ----------------------------

class BackupJob(QObject):
    def __init__(self, logger: Optional[logging.Logger] = None, pool: Optional[QThreadPool] = None) -> None:
        super().__init__()
        self._pool = pool or QThreadPool.globalInstance()
        self._log = logger or logging.getLogger(__name__)

    def run_async(self, dest_file: str, document: Mapping[str, Any], callbacks) -> None:
        self._pool.start(_JobRunnable(lambda: self.run(dest_file, document, callbacks)))

    def run(self, dest_file: str, document: Mapping[str, Any], callbacks) -> None:
        cb = _Callbacks.of(callbacks)
        try:
            _safe_call(cb.phase, "Preflight")
            _safe_call(cb.progress, -1)
            log_event(self._log, "backup", "preflight", "backup requested", {"dest": dest_file})

            _safe_call(cb.phase, "Saving")
            _safe_call(cb.progress, 50)
            final = write_backup(dest_file, document, logger=self._log)

            _safe_call(cb.progress, 100)
            _safe_call(cb.log, f"Backup written to: {final}")
            _safe_call(cb.finished, True, "Backup completed successfully.", final)
        except Exception as exc:
            self._log.debug("Backup failed:\n%s", traceback.format_exc())
            log_event(self._log, "backup", "error", str(exc), level=logging.WARNING)
            _safe_call(cb.finished, False, _fmt_err("Backup failed.", exc), None)


# ----------------------------
# Restore Job
# ----------------------------

class RestoreJob(QObject):
    def __init__(self, logger: Optional[logging.Logger] = None, pool: Optional[QThreadPool] = None) -> None:
        super().__init__()
        self._pool = pool or QThreadPool.globalInstance()
        self._log = logger or logging.getLogger(__name__)

    def run_async(self, src_file: str, callbacks) -> None:
        self._pool.start(_JobRunnable(lambda: self.run(src_file, callbacks)))

    def run(self, src_file: str, callbacks) -> None:
        cb = _Callbacks.of(callbacks)
        try:
            _safe_call(cb.phase, "Validating backup")
            _safe_call(cb.progress, 10)
            log_event(self._log, "restore", "preflight", "restore requested", {"src": src_file})

            document = read_backup(src_file, logger=self._log)
            _safe_call(cb.progress, 80)

            _safe_call(cb.phase, "Applying")
            _safe_call(cb.loaded, document)
            _safe_call(cb.progress, 100)
            _safe_call(cb.finished, True, "Backup loaded.", src_file)
        except Exception as exc:
            self._log.debug("Restore failed:\n%s", traceback.format_exc())
            log_event(self._log, "restore", "error", str(exc), level=logging.WARNING)
            _safe_call(cb.finished, False, _fmt_err("Restore failed.", exc), None)
