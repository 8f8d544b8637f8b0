"""
Drawer deductions (operational expenses): cash leaving the till that is not
tied to a batch. Append-only apart from deletion by id.

Deleting an entry puts its amount back into cash on hand; shift figures are
recomputed from the surviving entries, never adjusted by delta.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from ...errors import NotFound
from ...utils.helpers import new_id, safe_round
from ...utils.validators import require_non_negative, require_text
from ..state.models import AppState, OperationalExpense, remove_by_id


def add_operational_expense(
    state: AppState,
    description: str,
    amount,
    category: str = "Payout",
    *,
    now_iso: str = "",
    expense_id: Optional[str] = None,
) -> Tuple[AppState, OperationalExpense]:
    expense = OperationalExpense(
        id=expense_id or new_id(),
        description=require_text(description, "Description"),
        amount=safe_round(require_non_negative(amount, "Amount")),
        category=(category or "Misc").strip() or "Misc",
        timestamp=now_iso,
    )
    financials = replace(
        state.financials,
        cash_on_hand=safe_round(state.financials.cash_on_hand - expense.amount),
    )
    return (
        replace(
            state,
            operational_expenses=state.operational_expenses + (expense,),
            financials=financials,
        ),
        expense,
    )


def delete_operational_expense(state: AppState, expense_id: str) -> Tuple[AppState, OperationalExpense]:
    expense = next((e for e in state.operational_expenses if e.id == expense_id), None)
    if expense is None:
        raise NotFound("Expense", expense_id)
    financials = replace(
        state.financials,
        cash_on_hand=safe_round(state.financials.cash_on_hand + expense.amount),
    )
    return (
        replace(
            state,
            operational_expenses=remove_by_id(state.operational_expenses, expense_id),
            financials=financials,
        ),
        expense,
    )


def total_by_category(expenses) -> dict:
    """{category: total} across the given expenses, rounded."""
    out: dict = {}
    for e in expenses:
        out[e.category] = out.get(e.category, 0.0) + e.amount
    return {k: safe_round(v) for k, v in out.items()}
