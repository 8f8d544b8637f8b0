"""
Headless entry point.

``bootstrap`` opens the data folder, the sqlite state store and the log file,
and returns a running :class:`StoreController`. ``main`` prints a status line
for the persisted state and exits; ``--watch`` keeps the event loop alive so
autosave and mission ticks run until interrupted.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable, Optional

from PySide6.QtCore import QCoreApplication

from .config import Settings, get_settings
from .database import get_connection
from .database.repositories import StateRepo
from .modules.backup_restore.logging_utils import get_logger as get_backup_logger
from .modules.enrichment.service import EnrichmentService
from .modules.state.controller import StoreController, open_store
from .utils.loggers import get_logger

LOG_FILE_NAME = "retail_ops.log"
BACKUP_LOG_FILE_NAME = "backup_ops.jsonl"


@dataclass
class Runtime:
    settings: Settings
    controller: StoreController

    def close(self) -> None:
        self.controller.teardown()
        if self.controller.repo is not None:
            self.controller.repo.conn.close()


def bootstrap(data_dir: Optional[str] = None, provider: Optional[Callable] = None) -> Runtime:
    settings = get_settings(data_dir)
    logger = get_logger(log_file=settings.log_dir / LOG_FILE_NAME)

    conn = get_connection(settings.db_path)
    repo = StateRepo(conn)
    store = open_store(repo, logger=logger)
    controller = StoreController(
        store,
        repo=repo,
        enrichment=EnrichmentService(provider=provider, logger=logger),
        logger=logger,
        backup_logger=get_backup_logger(str(settings.log_dir / BACKUP_LOG_FILE_NAME)),
    )
    controller.start()
    logger.info("retail_ops started (data: %s)", settings.data_dir)
    return Runtime(settings=settings, controller=controller)


def status_line(runtime: Runtime) -> str:
    store = runtime.controller.store
    state = store.state
    summary = store.shift_summary()
    sym = state.settings.currency_symbol
    return (
        f"shift={summary.state} cash={sym}{state.financials.cash_on_hand:.2f} "
        f"bank={sym}{state.financials.bank_balance:.2f} batches={len(state.batches)} "
        f"sales={len(state.sales)} expected={sym}{summary.expected_cash:.2f}"
    )


def main(argv: Optional[list] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    watch = "--watch" in argv
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    runtime = bootstrap()
    try:
        print(status_line(runtime))
        if watch:
            return app.exec()
        return 0
    finally:
        runtime.close()


if __name__ == "__main__":
    sys.exit(main())
