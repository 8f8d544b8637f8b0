"""
modules/backup_restore/validators.py

Preflight checks for backup files, with messages fit to show the operator.

- validate_backup_destination(dest_file, payload_size, free_space) -> None
- validate_backup_source(path) -> None
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterable

from ...constants import BACKUP_EXTENSION


def _human_size(num: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(max(0, int(num)))
    for u in units:
        if size < 1024.0 or u == units[-1]:
            return f"{size:.1f} {u}"
        size /= 1024.0
    return f"{size:.1f} TB"


def _windows_reserved_names() -> Iterable[str]:
    return {
        "con", "prn", "aux", "nul",
        *(f"com{i}" for i in range(1, 10)),
        *(f"lpt{i}" for i in range(1, 10)),
    }


def with_backup_extension(path: str) -> str:
    p = Path(path)
    return str(p) if p.suffix.lower() == BACKUP_EXTENSION else str(p) + BACKUP_EXTENSION


def validate_backup_destination(dest_file: str, payload_size: int, free_space: int) -> None:
    """
    Rules:
      - Parent folder must exist and be writable.
      - File name must be non-empty and not an existing directory.
      - Free space must cover twice the payload (temp file + final file).
    Raises RuntimeError on failure.
    """
    if payload_size < 0:
        raise RuntimeError("Backup payload size is invalid (negative bytes reported).")

    path = Path(dest_file)
    parent = path.parent if path.parent != Path("") else Path.cwd()

    if not parent.exists():
        raise RuntimeError(f"Destination folder does not exist: {parent}")
    if not (parent.is_dir() and os.access(str(parent), os.W_OK | os.X_OK)):
        raise RuntimeError(f"Destination folder is not writable: {parent}")

    if not path.name.strip():
        raise RuntimeError("Please provide a file name for the backup.")
    if sys.platform.startswith("win"):
        if path.stem.lower().rstrip(".") in _windows_reserved_names():
            raise RuntimeError(f"The backup filename '{path.stem}' is reserved on Windows.")
        if path.name.endswith((" ", ".")):
            raise RuntimeError("Windows filenames cannot end with a space or dot.")

    if path.exists() and path.is_dir():
        raise RuntimeError("Destination path points to a directory, not a file.")

    required = payload_size * 2
    if free_space < required:
        raise RuntimeError(
            "Not enough free space in the destination folder.\n"
            f"Required (approx): {_human_size(required)}\n"
            f"Available: {_human_size(free_space)}"
        )


def validate_backup_source(path: str) -> None:
    """The file must exist, be readable, and not be empty."""
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"Backup file not found: {p}")
    if not p.is_file():
        raise RuntimeError(f"Backup path is not a file: {p}")
    if not os.access(str(p), os.R_OK):
        raise RuntimeError(f"Backup file is not readable: {p}")
    if p.stat().st_size <= 0:
        raise RuntimeError("The backup file is empty (0 bytes).")
