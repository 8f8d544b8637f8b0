"""
modules/backup_restore/logging_utils.py

Purpose
-------
Append-only JSON-lines telemetry for backup and restore runs.

Public API
----------
- get_logger(file_path=None) -> logging.Logger
- log_event(logger, op, phase, message, extra=None, level=INFO)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

__all__ = ["get_logger", "log_event"]

_LOGGER_NAME = "retail_ops.backup"


def get_logger(file_path: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Return the backup logger. With `file_path` the JSON lines go to that file
    (WARNING+ also mirrored to stderr); without it they go to stderr only.
    Handlers are attached once per process.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    stderr = logging.StreamHandler()
    stderr.setFormatter(_JsonLineFormatter())

    if file_path is None:
        stderr.setLevel(level)
        logger.addHandler(stderr)
        return logger

    log_file = Path(file_path)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_file), mode="a", encoding="utf-8", delay=True)
    except OSError:
        stderr.setLevel(level)
        logger.addHandler(stderr)
        return logger

    fh.setLevel(level)
    fh.setFormatter(_JsonLineFormatter())
    logger.addHandler(fh)

    stderr.setLevel(logging.WARNING)
    logger.addHandler(stderr)
    return logger


class _JsonLineFormatter(logging.Formatter):
    """
      {"ts":"2026-03-01T09:00:00.000Z","level":"INFO","name":"retail_ops.backup","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        extra = getattr(record, "extra_payload", None)
        if isinstance(extra, dict):
            payload["extra"] = extra
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Args:
        op: "backup" or "restore".
        phase: "preflight", "encode", "write", "read", "decode", "done".
        extra: file paths, sizes, record counts; never overrides op/phase.
    """
    extra_payload: Dict[str, object] = {"op": op, "phase": phase}
    for k, v in (extra or {}).items():
        extra_payload.setdefault(k, v)
    logger.log(level, message, extra={"extra_payload": extra_payload})
