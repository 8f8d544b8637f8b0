# retail_ops/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own state: no shared DB, sqlite lives in tmp_path
# - Time is injected: the store clock is frozen at FIXED_NOW
# - Notifications are captured into a plain list for assertions
# - Silence benign Qt signal warnings
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import re
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

# Run Qt headless when no display is available
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6 import QtCore

from retail_ops.database import get_connection
from retail_ops.database.repositories import StateRepo
from retail_ops.modules.state.store import Store

FIXED_NOW = datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):
    return qapp


_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
    r"^QBasicTimer::stop: Failed\. Platform timer not running\.",
]

@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        for r in rx:
            if r.search(text):
                return
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(message)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Clock ----------
class FakeClock:
    """Callable clock; tests move it with advance()."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# ---------- Store ----------
@pytest.fixture()
def notes() -> List[Tuple[str, str]]:
    return []


@pytest.fixture()
def store(clock, notes) -> Store:
    return Store(clock=clock, notify=lambda msg, sev: notes.append((msg, sev)))


@pytest.fixture()
def stocked_store(store: Store) -> Store:
    """Store with the reference batch: 100 acquired, 10 cut, 300 + 20 cost."""
    res = store.add_batch(
        batch_id="B1",
        name="House Blend",
        acquired_weight=100,
        provider_cut=10,
        purchase_price=300,
        fees=20,
        target_retail_price=12,
    )
    assert res.ok, res.message
    return store


# ---------- Persistence ----------
@pytest.fixture()
def conn(tmp_path):
    con = get_connection(tmp_path / "retail_ops.db")
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def repo(conn) -> StateRepo:
    return StateRepo(conn)
