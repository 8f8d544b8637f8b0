"""
modules/sales/processor.py

Purpose
-------
Validate and record one sale as a single snapshot transition: the sale record,
the batch stock decrement, the customer ledger entry and the cash/bank credit
are produced together or not at all.

Rules
-----
- weight > 0, amount >= 0 (both rounded to 2 dp before use)
- batch.current_stock >= weight - STOCK_TOLERANCE, else InsufficientStock
- cost_basis = round(weight * batch.true_cost_per_unit), profit = round(amount - cost_basis)
- Selling exactly the remaining stock leaves the batch at 0 ("Sold Out"), not deleted.
- XP gained = whole currency units + XP of any achievement the sale unlocks.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ...constants import DEFAULT_SALES_REP, PAYMENT_METHODS, STOCK_TOLERANCE
from ...errors import InsufficientStock, NotFound, ValidationError
from ...utils.helpers import new_id, safe_round
from ...utils.validators import parse_float
from ..state.models import Achievement, AppState, Batch, Customer, Sale, replace_by_id
from .progression import earned_xp, level_for_xp, unlocked_achievements

__all__ = ["SaleOutcome", "process_sale"]


@dataclass(frozen=True)
class SaleOutcome:
    state: AppState
    sale: Sale
    batch: Batch
    customer: Customer
    earned_xp: int
    leveled_up: bool
    achievements: Tuple[Achievement, ...] = ()


def process_sale(
    state: AppState,
    batch_id: str,
    customer_id: str,
    weight,
    amount,
    *,
    payment_method: str = "CASH",
    sales_rep: str = DEFAULT_SALES_REP,
    target_price=None,
    now_iso: str = "",
    sale_id: Optional[str] = None,
) -> SaleOutcome:
    raw_weight = parse_float(weight)
    raw_amount = parse_float(amount)
    if raw_weight <= 0:
        raise ValidationError("Weight must be greater than zero.")
    if raw_amount < 0:
        raise ValidationError("Amount cannot be negative.")
    weight = safe_round(raw_weight)
    amount = safe_round(raw_amount)
    if weight <= 0:
        raise ValidationError(f"Weight {raw_weight:g} rounds to zero at two decimal places.")
    method = (payment_method or "").strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")

    batch = state.batch(batch_id)
    if batch is None:
        raise NotFound("Batch", batch_id)
    customer = state.customer(customer_id)
    if customer is None:
        raise NotFound("Customer", customer_id)

    if weight > batch.current_stock + STOCK_TOLERANCE:
        raise InsufficientStock(batch_id, weight, batch.current_stock)

    unit_target = batch.target_retail_price if target_price is None else parse_float(target_price)
    cost_basis = safe_round(weight * batch.true_cost_per_unit)

    sale = Sale(
        id=sale_id or new_id(),
        batch_id=batch.id,
        customer_id=customer.id,
        weight=weight,
        amount=amount,
        cost_basis=cost_basis,
        profit=safe_round(amount - cost_basis),
        timestamp=now_iso,
        batch_name=batch.name,
        customer_name=customer.name,
        sales_rep=(sales_rep or DEFAULT_SALES_REP).strip() or DEFAULT_SALES_REP,
        variance=safe_round(amount - weight * unit_target),
        payment_method=method,
    )

    # the tolerance may let weight exceed stock by a hair; never go negative
    updated_batch = replace(batch, current_stock=max(0.0, safe_round(batch.current_stock - weight)))

    # achievements are judged against the customer as it was before this sale
    unlocked = unlocked_achievements(customer, amount, now_iso)
    xp_gain = earned_xp(amount) + sum(a.xp_value for a in unlocked)
    new_xp = customer.xp + xp_gain
    new_level = level_for_xp(new_xp)
    updated_customer = replace(
        customer,
        total_spent=safe_round(customer.total_spent + amount),
        last_purchase=sale.timestamp,
        transaction_history=customer.transaction_history + (sale,),
        xp=new_xp,
        level=new_level,
        achievements=customer.achievements + unlocked,
    )

    fin = state.financials
    if method == "CASH":
        financials = replace(fin, cash_on_hand=safe_round(fin.cash_on_hand + amount))
    else:
        financials = replace(fin, bank_balance=safe_round(fin.bank_balance + amount))

    new_state = replace(
        state,
        sales=state.sales + (sale,),
        batches=replace_by_id(state.batches, updated_batch),
        customers=replace_by_id(state.customers, updated_customer),
        financials=financials,
    )
    return SaleOutcome(
        state=new_state,
        sale=sale,
        batch=updated_batch,
        customer=updated_customer,
        earned_xp=xp_gain,
        leveled_up=new_level > customer.level,
        achievements=unlocked,
    )
