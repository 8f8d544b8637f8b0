"""
modules/ledger/shift.py

Purpose
-------
Per-session drawer reconciliation.

    NOT_STARTED --start--> OPEN --begin_count--> COUNTING --close--> CLOSED
         ^                  |  ^                    |                  |
         +----end_shift-----+  +------reopen--------+------reopen------+

While OPEN nothing is accumulated: revenue and deductions are recomputed from
the full sale/expense log filtered to the calendar day of ``now`` on every
read, so a retroactively deleted expense is reflected immediately.

    expected_cash = opening_float + today_revenue - today_deductions
    variance      = counted_cash - expected_cash      (negative = money missing)

Public API
----------
- start(ledger, opening_float, now_iso="") -> ShiftLedger
- begin_count(ledger, sales, expenses, now) -> ShiftLedger
- submit_count(ledger, counted_cash) -> ShiftLedger
- close(ledger, now_iso="") -> ShiftLedger
- reopen(ledger) -> ShiftLedger
- end_shift(ledger) -> ShiftLedger
- summarize(ledger, sales, expenses, now) -> ShiftSummary
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from ...errors import InvalidTransition, ValidationError
from ...utils.helpers import is_same_calendar_day, parse_amount, safe_round

NOT_STARTED = "NOT_STARTED"
OPEN = "OPEN"
COUNTING = "COUNTING"
CLOSED = "CLOSED"

__all__ = [
    "NOT_STARTED", "OPEN", "COUNTING", "CLOSED",
    "ShiftLedger", "ShiftSummary",
    "start", "begin_count", "submit_count", "close", "reopen", "end_shift",
    "todays_revenue", "todays_deductions", "summarize",
]


@dataclass(frozen=True)
class ShiftLedger:
    state: str = NOT_STARTED
    opening_float: float = 0.0
    started_at: str = ""
    frozen_expected_cash: Optional[float] = None
    counted_cash: Optional[float] = None
    variance: Optional[float] = None
    closed_at: str = ""


@dataclass(frozen=True)
class ShiftSummary:
    state: str
    opening_float: float
    today_revenue: float
    today_deductions: float
    expected_cash: float
    counted_cash: Optional[float]
    variance: Optional[float]


def _require(ledger: ShiftLedger, *allowed: str, action: str) -> None:
    if ledger.state not in allowed:
        raise InvalidTransition(f"Cannot {action} while shift is {ledger.state}.")


# ---- Derived figures ------------------------------------------------------

def todays_revenue(sales: Iterable, now: datetime) -> float:
    return safe_round(sum(s.amount for s in sales if is_same_calendar_day(s.timestamp, now)))


def todays_deductions(expenses: Iterable, now: datetime) -> float:
    return safe_round(sum(e.amount for e in expenses if is_same_calendar_day(e.timestamp, now)))


def _live_expected(ledger: ShiftLedger, sales: Iterable, expenses: Iterable, now: datetime) -> float:
    return safe_round(ledger.opening_float + todays_revenue(sales, now) - todays_deductions(expenses, now))


def summarize(ledger: ShiftLedger, sales: Iterable, expenses: Iterable, now: datetime) -> ShiftSummary:
    sales = tuple(sales)
    expenses = tuple(expenses)
    if ledger.state in (COUNTING, CLOSED) and ledger.frozen_expected_cash is not None:
        expected = ledger.frozen_expected_cash
    else:
        expected = _live_expected(ledger, sales, expenses, now)
    return ShiftSummary(
        state=ledger.state,
        opening_float=ledger.opening_float,
        today_revenue=todays_revenue(sales, now),
        today_deductions=todays_deductions(expenses, now),
        expected_cash=expected,
        counted_cash=ledger.counted_cash,
        variance=ledger.variance,
    )


# ---- Transitions ----------------------------------------------------------

def start(ledger: ShiftLedger, opening_float, now_iso: str = "") -> ShiftLedger:
    _require(ledger, NOT_STARTED, action="start a shift")
    amount = parse_amount(opening_float)
    if amount < 0:
        raise ValidationError("Opening float cannot be negative.")
    return ShiftLedger(state=OPEN, opening_float=amount, started_at=now_iso)


def begin_count(ledger: ShiftLedger, sales: Iterable, expenses: Iterable, now: datetime) -> ShiftLedger:
    _require(ledger, OPEN, action="count the drawer")
    return replace(
        ledger,
        state=COUNTING,
        frozen_expected_cash=_live_expected(ledger, sales, expenses, now),
        counted_cash=None,
        variance=None,
    )


def submit_count(ledger: ShiftLedger, counted_cash) -> ShiftLedger:
    """Record the operator's count; may be resubmitted until the shift is closed."""
    _require(ledger, COUNTING, action="submit a cash count")
    counted = parse_amount(counted_cash)
    expected = ledger.frozen_expected_cash or 0.0
    return replace(ledger, counted_cash=counted, variance=safe_round(counted - expected))


def close(ledger: ShiftLedger, now_iso: str = "") -> ShiftLedger:
    _require(ledger, COUNTING, action="close the shift")
    if ledger.counted_cash is None:
        raise ValidationError("Enter the counted cash before closing the shift.")
    return replace(ledger, state=CLOSED, closed_at=now_iso)


def reopen(ledger: ShiftLedger) -> ShiftLedger:
    """Correction path: discard the count and go back to live accumulation."""
    _require(ledger, COUNTING, CLOSED, action="reopen the shift")
    return replace(
        ledger,
        state=OPEN,
        frozen_expected_cash=None,
        counted_cash=None,
        variance=None,
        closed_at="",
    )


def end_shift(ledger: ShiftLedger) -> ShiftLedger:
    _require(ledger, OPEN, CLOSED, action="end the shift")
    return ShiftLedger()
