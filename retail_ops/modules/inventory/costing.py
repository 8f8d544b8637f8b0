"""
modules/inventory/costing.py

Purpose
-------
Single home of the batch cost rules. Every path that edits acquisition
weights, prices, fees or batch expenses ends with ``recompute_cost``.

    sellable_weight    = max(0.1, acquired - provider_cut - personal_use - loss)
    true_cost_per_unit = (purchase_price + fees + sum(extra_expenses)) / sellable_weight

Degenerate inputs (e.g. a provider cut larger than the acquired weight) are not
rejected; the sellable floor of 0.1 keeps the division defined.
"""
from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, Optional

from ...constants import MIN_SELLABLE_WEIGHT
from ...utils.helpers import safe_round

if TYPE_CHECKING:  # pragma: no cover
    from ..state.models import Batch, BatchExpense

__all__ = [
    "sellable_weight_of",
    "unit_cost_of",
    "recompute_cost",
    "new_batch",
    "batch_status",
]


def sellable_weight_of(acquired: float, provider_cut: float, personal_use: float, loss: float) -> float:
    return max(MIN_SELLABLE_WEIGHT, safe_round(acquired - provider_cut - personal_use - loss))


def unit_cost_of(total_cost: float, sellable_weight: float) -> float:
    return total_cost / sellable_weight


def recompute_cost(batch: "Batch") -> "Batch":
    """
    Normalize a batch after any cost-relevant edit.

    Inputs are passed through ``safe_round``; ``current_stock`` is clamped into
    ``[0, sellable_weight]`` so stock shrinks in lockstep when personal use or
    loss grow after creation. Derived values are properties of ``Batch`` and are
    never stored.
    """
    rounded = replace(
        batch,
        acquired_weight=safe_round(batch.acquired_weight),
        provider_cut=safe_round(batch.provider_cut),
        personal_use=safe_round(batch.personal_use),
        loss=safe_round(batch.loss),
        purchase_price=safe_round(batch.purchase_price),
        fees=safe_round(batch.fees),
        extra_expenses=tuple(replace(e, amount=safe_round(e.amount)) for e in batch.extra_expenses),
    )
    stock = min(max(0.0, safe_round(batch.current_stock)), rounded.sellable_weight)
    return replace(rounded, current_stock=safe_round(stock))


def new_batch(
    *,
    batch_id: str,
    name: str,
    acquired_weight: float,
    provider_cut: float = 0.0,
    purchase_price: float = 0.0,
    fees: float = 0.0,
    target_retail_price: float = 0.0,
    wholesale_price: float = 0.0,
    date_added: str = "",
    notes: str = "",
    extra_expenses: Optional[Iterable["BatchExpense"]] = None,
) -> "Batch":
    """Fresh acquisition: the whole sellable weight becomes initial stock."""
    from ..state.models import Batch

    draft = Batch(
        id=batch_id,
        name=name,
        acquired_weight=acquired_weight,
        provider_cut=provider_cut,
        purchase_price=purchase_price,
        fees=fees,
        extra_expenses=tuple(extra_expenses or ()),
        target_retail_price=safe_round(target_retail_price),
        wholesale_price=safe_round(wholesale_price),
        date_added=date_added,
        notes=notes,
    )
    draft = replace(draft, current_stock=draft.sellable_weight)
    return recompute_cost(draft)


def batch_status(batch: "Batch", low_stock_threshold: float) -> str:
    if batch.current_stock <= 0:
        return "Sold Out"
    if batch.current_stock < low_stock_threshold:
        return "Low"
    return "Active"
