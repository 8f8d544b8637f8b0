"""
Domain error taxonomy and the result envelope returned by the state owner.

Pure modules raise the exceptions below; ``Store`` catches ``DomainError`` at its
public boundary and hands the caller an ``OpResult`` instead, so a UI layer can
render a notification without unwinding its own control flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class DomainError(Exception):
    """Base for every error the core reports to callers."""
    kind = "DomainError"


class ValidationError(DomainError, ValueError):
    """Malformed input: non-numeric where a number is required, bad enum, etc."""
    kind = "ValidationError"


class InsufficientStock(DomainError):
    kind = "InsufficientStock"

    def __init__(self, batch_id: str, requested: float, available: float):
        super().__init__(
            f"Insufficient stock in batch {batch_id}: requested {requested:g}, available {available:g}."
        )
        self.batch_id = batch_id
        self.requested = requested
        self.available = available


class NotFound(DomainError):
    kind = "NotFound"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class CorruptBackup(DomainError):
    """Restore document failed structural checks; nothing was applied."""
    kind = "CorruptBackup"


class InvalidTransition(DomainError):
    """Shift ledger action attempted from a state that does not allow it."""
    kind = "InvalidTransition"


@dataclass(frozen=True)
class OpResult:
    ok: bool
    value: Any = None
    error: Optional[DomainError] = None

    @property
    def kind(self) -> str:
        return "OK" if self.ok else type(self.error).kind  # type: ignore[union-attr]

    @property
    def message(self) -> str:
        return "" if self.error is None else str(self.error)

    @classmethod
    def success(cls, value: Any = None) -> "OpResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "OpResult":
        return cls(ok=False, error=error)
