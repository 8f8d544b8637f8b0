from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .constants import DB_FILE_NAME, LOG_DIR_NAME

ENV_DATA_DIR = "RETAIL_OPS_DATA_DIR"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    log_dir: Path


def _default_data_dir() -> Path:
    return Path.home() / ".retail_ops"


def get_settings(data_dir: Optional[str] = None) -> Settings:
    # Priority order:
    # 1) Explicit argument (tests, embedding hosts)
    # 2) Environment variable
    # 3) Default folder in the user's home
    if data_dir:
        base = Path(data_dir)
    elif os.getenv(ENV_DATA_DIR):
        base = Path(os.getenv(ENV_DATA_DIR, ""))
    else:
        base = _default_data_dir()
    base = base.expanduser().resolve()

    # ensure data dir exists early
    base.mkdir(parents=True, exist_ok=True)
    return Settings(
        data_dir=base,
        db_path=base / DB_FILE_NAME,
        log_dir=base / LOG_DIR_NAME,
    )
