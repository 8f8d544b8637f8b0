"""
modules/backup_restore/fsops.py

Purpose
-------
File-system helpers for backup files: permission checks, free-space checks and
an atomic text write (temp file in the destination folder, fsync, os.replace).

Public interface
----------------
- ensure_writable_dir(path: str) -> None
- get_free_space_bytes(path: str) -> int
- atomic_write_text(dest: str, text: str, *, verbose: bool = False, logger: Optional[logging.Logger] = None, strict_verify: bool = False) -> int
- read_text(path: str) -> str

Notes
-----
- A crash mid-write leaves either the previous file or the new one, never a
  truncated mix.
- `verbose`/`logger` emit one key=value line per step; `strict_verify` adds a
  SHA-256 of the final file.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

__all__ = [
    "ensure_writable_dir",
    "get_free_space_bytes",
    "atomic_write_text",
    "read_text",
]

# ----------------------------
# Helpers (private)
# ----------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _log(logger: Optional[logging.Logger], verbose: bool, message: str, **fields) -> None:
    if not (verbose and logger):
        return
    parts = [message]
    for k, v in fields.items():
        parts.append(f"{k}={v}")
    logger.info(" ".join(parts))


def _sha256(path: Path, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def _fsync_dir(path: Path) -> None:
    """Best-effort fsync for a directory (needed after os.replace on POSIX)."""
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        # Windows cannot open directories
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


# ----------------------------
# Public API
# ----------------------------

def ensure_writable_dir(path: str) -> None:
    """
    Validate that `path` exists, is a directory, and is writable.
    Raise RuntimeError with a helpful message if not.
    """
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"Destination folder does not exist: {p}")
    if not p.is_dir():
        raise RuntimeError(f"Destination path is not a folder: {p}")
    if not os.access(str(p), os.W_OK | os.X_OK):
        raise RuntimeError(f"Destination folder is not writable: {p}")

    try:
        tmp = tempfile.NamedTemporaryFile(prefix=".permcheck_", dir=str(p), delete=True)
        tmp.close()
    except OSError as exc:
        raise RuntimeError(f"Unable to write to destination folder: {p} ({exc})") from exc


def get_free_space_bytes(path: str) -> int:
    target = Path(path)
    if not target.exists():
        target = target.parent if target.parent.exists() else Path.home()
    return int(shutil.disk_usage(str(target)).free)


def atomic_write_text(
    dest: str,
    text: str,
    *,
    verbose: bool = False,
    logger: Optional[logging.Logger] = None,
    strict_verify: bool = False,
) -> int:
    """
    Write `text` (UTF-8) to `dest` atomically and return the byte count.
    The temp file lives next to `dest` so the final rename never crosses volumes.
    """
    dest_p = Path(dest).resolve()
    dest_p.parent.mkdir(parents=True, exist_ok=True)
    data = text.encode("utf-8")
    _log(logger, verbose, "atomic_write.start", ts=_now_iso(), dest=str(dest_p), size=len(data))

    fd, tmp_name = tempfile.mkstemp(prefix=".rbak_", suffix=".part", dir=str(dest_p.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        _log(logger, verbose, "atomic_write.to_tmp", ts=_now_iso(), tmp=str(tmp))
        os.replace(str(tmp), str(dest_p))
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    _fsync_dir(dest_p.parent)
    _log(logger, verbose, "atomic_write.replaced", ts=_now_iso(), final=str(dest_p), final_size=dest_p.stat().st_size)

    if strict_verify:
        _log(logger, verbose, "atomic_write.sha256", ts=_now_iso(), file=str(dest_p), sha256=_sha256(dest_p))
    return len(data)


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()
