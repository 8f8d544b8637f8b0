"""
Batch lifecycle on a state snapshot: acquire, edit, delete, batch expenses.

Every function takes the current ``AppState`` and returns ``(new_state, batch)``;
nothing is mutated in place. Validation failures raise ``ValidationError`` /
``NotFound`` and leave the input snapshot untouched.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from ...errors import NotFound, ValidationError
from ...utils.helpers import new_id, safe_round
from ...utils.validators import require_non_negative, require_positive, require_text
from ..state.models import AppState, Batch, BatchExpense, remove_by_id, replace_by_id
from .costing import new_batch, recompute_cost

# Fields an operator may edit directly; everything numeric is non-negative.
_NUMERIC_FIELDS = (
    "acquired_weight",
    "provider_cut",
    "personal_use",
    "loss",
    "purchase_price",
    "fees",
    "current_stock",
    "target_retail_price",
    "wholesale_price",
)
_TEXT_FIELDS = ("name", "notes")


def require_batch(state: AppState, batch_id: str) -> Batch:
    batch = state.batch(batch_id)
    if batch is None:
        raise NotFound("Batch", batch_id)
    return batch


def add_batch(
    state: AppState,
    *,
    name: str,
    acquired_weight,
    provider_cut=0.0,
    purchase_price=0.0,
    fees=0.0,
    target_retail_price=None,
    wholesale_price=None,
    notes: str = "",
    now_iso: str = "",
    batch_id: Optional[str] = None,
) -> Tuple[AppState, Batch]:
    """
    Register an acquisition. Purchase price and fees leave the cash drawer.
    Retail/wholesale prices default to the store settings.
    """
    settings = state.settings
    batch = new_batch(
        batch_id=batch_id or new_id(),
        name=require_text(name, "Batch name"),
        acquired_weight=require_non_negative(acquired_weight, "Acquired weight"),
        provider_cut=require_non_negative(provider_cut, "Provider cut"),
        purchase_price=require_non_negative(purchase_price, "Purchase price"),
        fees=require_non_negative(fees, "Fees"),
        target_retail_price=(
            settings.default_price_per_unit if target_retail_price is None
            else require_non_negative(target_retail_price, "Retail price")
        ),
        wholesale_price=(
            settings.default_wholesale_price if wholesale_price is None
            else require_non_negative(wholesale_price, "Wholesale price")
        ),
        date_added=now_iso,
        notes=(notes or "").strip(),
    )
    if state.batch(batch.id) is not None:
        raise ValidationError(f"Batch id already exists: {batch.id}")

    outlay = batch.purchase_price + batch.fees
    financials = replace(
        state.financials,
        cash_on_hand=safe_round(state.financials.cash_on_hand - outlay),
    )
    return replace(state, batches=(batch,) + state.batches, financials=financials), batch


def update_batch(state: AppState, batch_id: str, **changes) -> Tuple[AppState, Batch]:
    batch = require_batch(state, batch_id)
    unknown = set(changes) - set(_NUMERIC_FIELDS) - set(_TEXT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown batch field(s): {', '.join(sorted(unknown))}")

    clean = {}
    for key, value in changes.items():
        if key in _NUMERIC_FIELDS:
            clean[key] = require_non_negative(value, key.replace("_", " ").capitalize())
        elif key == "name":
            clean[key] = require_text(value, "Batch name")
        else:
            clean[key] = (value or "").strip()

    updated = recompute_cost(replace(batch, **clean))
    return replace(state, batches=replace_by_id(state.batches, updated)), updated


def delete_batch(state: AppState, batch_id: str) -> Tuple[AppState, Batch]:
    """Hard remove. Sales keep their own copy of batch name and cost basis."""
    batch = require_batch(state, batch_id)
    return replace(state, batches=remove_by_id(state.batches, batch_id)), batch


def add_batch_expense(
    state: AppState,
    batch_id: str,
    description: str,
    amount,
    *,
    now_iso: str = "",
    expense_id: Optional[str] = None,
) -> Tuple[AppState, Batch]:
    batch = require_batch(state, batch_id)
    expense = BatchExpense(
        id=expense_id or new_id(),
        description=require_text(description, "Expense description"),
        amount=safe_round(require_positive(amount, "Expense amount")),
        timestamp=now_iso,
    )
    updated = recompute_cost(replace(batch, extra_expenses=batch.extra_expenses + (expense,)))
    return replace(state, batches=replace_by_id(state.batches, updated)), updated


def remove_batch_expense(state: AppState, batch_id: str, expense_id: str) -> Tuple[AppState, Batch]:
    batch = require_batch(state, batch_id)
    if not any(e.id == expense_id for e in batch.extra_expenses):
        raise NotFound("Batch expense", expense_id)
    updated = recompute_cost(replace(batch, extra_expenses=remove_by_id(batch.extra_expenses, expense_id)))
    return replace(state, batches=replace_by_id(state.batches, updated)), updated
