"""
modules/enrichment/service.py

Purpose
-------
Fulfil enrichment requests off the UI thread and hand the result back as a Qt
signal. Whatever goes wrong (no provider configured, provider raises, JSON
kinds that do not parse) the request completes with ``payload=None``, which
the store treats as "no enrichment available".

Public interface
----------------
- EnrichmentService(provider).request(req) -> None     (async, QThreadPool)
- EnrichmentService.fulfil(req) -> payload | None      (same work, synchronous)
- signal completed(EnrichmentRequest, object)

``provider`` is any callable ``(kind: str, prompt: str) -> str | dict | None``.
"""
from __future__ import annotations

import json
import logging
import traceback
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot

from .prompts import JSON_KINDS, EnrichmentRequest

Provider = Callable[[str, str], Any]


class _JobRunnable(QRunnable):
    """Thin QRunnable wrapper that executes a callable."""

    def __init__(self, work: Callable[[], None]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._work = work

    @Slot()
    def run(self) -> None:  # type: ignore[override]
        self._work()


class EnrichmentService(QObject):
    # Queued across threads; receivers run on the thread that owns this object.
    completed = Signal(object, object)

    def __init__(
        self,
        provider: Optional[Provider] = None,
        pool: Optional[QThreadPool] = None,
        logger: Optional[logging.Logger] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._provider = provider
        self._pool = pool or QThreadPool.globalInstance()
        self._log = logger or logging.getLogger(__name__)

    @property
    def available(self) -> bool:
        return self._provider is not None

    def request(self, req: EnrichmentRequest) -> None:
        """Fire and forget; the result arrives via ``completed``."""
        self._pool.start(_JobRunnable(lambda: self.completed.emit(req, self.fulfil(req))))

    def fulfil(self, req: EnrichmentRequest) -> Any:
        if self._provider is None:
            self._log.info("enrichment %s skipped: no provider configured", req.kind)
            return None
        try:
            raw = self._provider(req.kind, req.prompt)
        except Exception:
            self._log.warning("enrichment %s failed:\n%s", req.kind, traceback.format_exc())
            return None
        return self._coerce(req, raw)

    def _coerce(self, req: EnrichmentRequest, raw: Any) -> Any:
        if raw is None:
            return None
        if req.kind not in JSON_KINDS:
            text = str(raw).strip()
            return text or None
        if isinstance(raw, dict):
            return raw
        try:
            parsed = json.loads(_strip_fences(str(raw)))
        except ValueError:
            self._log.warning("enrichment %s returned unparsable JSON", req.kind)
            return None
        return parsed if isinstance(parsed, dict) else None


def _strip_fences(text: str) -> str:
    """Models like to wrap JSON in ```json fences."""
    t = text.strip()
    if t.startswith("```"):
        t = t.split("\n", 1)[1] if "\n" in t else ""
        if t.rstrip().endswith("```"):
            t = t.rstrip()[:-3]
    return t.strip()
