"""
Non-sale stock movements.

- PERSONAL:   weight taken for own use; personal_use grows, stock shrinks.
- LOSS:       waste/theft write-off; loss grows, stock shrinks. Optionally
              booked as a ``Loss/Waste`` drawer deduction valued at cost.
- CORRECTION: stocktake result; stock is set to the counted weight.

PERSONAL and LOSS reduce the sellable weight, so the batch's true cost per unit
rises; ``recompute_cost`` then clamps stock into the new sellable range.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from ...constants import (
    ADJUST_CORRECTION,
    ADJUST_LOSS,
    ADJUST_PERSONAL,
    ADJUSTMENT_KINDS,
    LOSS_EXPENSE_CATEGORY,
)
from ...errors import ValidationError
from ...utils.helpers import safe_round
from ...utils.validators import require_non_negative, require_positive
from ..expense.operations import add_operational_expense
from ..state.models import AppState, Batch, replace_by_id
from .batches import require_batch
from .costing import recompute_cost


def adjust_stock(
    state: AppState,
    batch_id: str,
    kind: str,
    weight,
    *,
    now_iso: str = "",
    book_loss_expense: bool = False,
) -> Tuple[AppState, Batch]:
    kind = (kind or "").strip().upper()
    if kind not in ADJUSTMENT_KINDS:
        raise ValidationError(f"Adjustment must be one of: {', '.join(ADJUSTMENT_KINDS)}")

    batch = require_batch(state, batch_id)

    if kind == ADJUST_CORRECTION:
        counted = safe_round(require_non_negative(weight, "Counted stock"))
        updated = recompute_cost(replace(batch, current_stock=counted))
        return replace(state, batches=replace_by_id(state.batches, updated)), updated

    amount = safe_round(require_positive(weight, "Adjustment weight"))
    if kind == ADJUST_PERSONAL:
        draft = replace(
            batch,
            personal_use=batch.personal_use + amount,
            current_stock=batch.current_stock - amount,
        )
    else:
        draft = replace(
            batch,
            loss=batch.loss + amount,
            current_stock=batch.current_stock - amount,
        )
    updated = recompute_cost(draft)
    new_state = replace(state, batches=replace_by_id(state.batches, updated))

    if kind == ADJUST_LOSS and book_loss_expense:
        # valued at the cost per unit before the write-off
        new_state, _ = add_operational_expense(
            new_state,
            f"Loss/Theft: {batch.name} ({amount:g})",
            safe_round(amount * batch.true_cost_per_unit),
            LOSS_EXPENSE_CATEGORY,
            now_iso=now_iso,
        )
    return new_state, updated
