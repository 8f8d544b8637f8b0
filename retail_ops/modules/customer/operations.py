"""
Customer registry. Ledger fields (total_spent, transaction_history, xp, level)
are owned by the sale processor and cannot be edited here.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional, Tuple

from ...constants import WALK_IN_CUSTOMER_ID, WALK_IN_CUSTOMER_NAME
from ...errors import NotFound, ValidationError
from ...utils.helpers import new_id
from ...utils.validators import require_text, require_text_list
from ..state.models import AppState, Customer, replace_by_id

_EDITABLE = ("name", "notes", "tags", "ghost_id", "visual_description")


def _clean_tags(tags: Optional[Iterable[str]]) -> Tuple[str, ...]:
    return require_text_list(tags, "Tags")


def walk_in_customer() -> Customer:
    return Customer(
        id=WALK_IN_CUSTOMER_ID,
        name=WALK_IN_CUSTOMER_NAME,
        notes="Anonymous interactions.",
        tags=("GUEST",),
    )


def ensure_walk_in(state: AppState) -> AppState:
    if state.customer(WALK_IN_CUSTOMER_ID) is not None:
        return state
    return replace(state, customers=state.customers + (walk_in_customer(),))


def add_customer(
    state: AppState,
    name: str,
    notes: str = "",
    tags: Optional[Iterable[str]] = None,
    *,
    ghost_id: str = "",
    customer_id: Optional[str] = None,
) -> Tuple[AppState, Customer]:
    customer = Customer(
        id=customer_id or new_id(),
        name=require_text(name, "Name"),
        notes=(notes or "").strip(),
        tags=_clean_tags(tags),
        ghost_id=(ghost_id or "").strip(),
    )
    if state.customer(customer.id) is not None:
        raise ValidationError(f"Customer id already exists: {customer.id}")
    return replace(state, customers=(customer,) + state.customers), customer


def update_customer(state: AppState, customer_id: str, **changes) -> Tuple[AppState, Customer]:
    customer = state.customer(customer_id)
    if customer is None:
        raise NotFound("Customer", customer_id)
    unknown = set(changes) - set(_EDITABLE)
    if unknown:
        raise ValidationError(f"Field(s) not editable: {', '.join(sorted(unknown))}")

    clean = dict(changes)
    if "name" in clean:
        clean["name"] = require_text(clean["name"], "Name")
    if "tags" in clean:
        clean["tags"] = _clean_tags(clean["tags"])
    for key in ("notes", "ghost_id", "visual_description"):
        if key in clean:
            clean[key] = (clean[key] or "").strip()

    updated = replace(customer, **clean)
    return replace(state, customers=replace_by_id(state.customers, updated)), updated


def find_by_ghost_id(state: AppState, ghost_id: str) -> Optional[Customer]:
    if not ghost_id:
        return None
    return next((c for c in state.customers if c.ghost_id == ghost_id), None)
