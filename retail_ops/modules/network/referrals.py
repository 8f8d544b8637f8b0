"""
Partners and referral commissions.

A referral credits its commission to cash on hand and rolls volume/commission
up into the partner record. When no commission is given it accrues at the
store's ``commission_rate`` percent of the referred amount.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from ...errors import NotFound
from ...utils.helpers import new_id, safe_round
from ...utils.validators import require_non_negative, require_text
from ..state.models import AppState, Partner, Referral, remove_by_id, replace_by_id


def add_partner(
    state: AppState,
    name: str,
    partner_type: str = "Supplier",
    notes: str = "",
    *,
    partner_id: Optional[str] = None,
) -> Tuple[AppState, Partner]:
    partner = Partner(
        id=partner_id or new_id(),
        name=require_text(name, "Partner name"),
        type=(partner_type or "Supplier").strip(),
        notes=(notes or "").strip(),
    )
    return replace(state, partners=state.partners + (partner,)), partner


def delete_partner(state: AppState, partner_id: str) -> Tuple[AppState, Partner]:
    partner = state.partner(partner_id)
    if partner is None:
        raise NotFound("Partner", partner_id)
    return replace(state, partners=remove_by_id(state.partners, partner_id)), partner


def commission_for(amount: float, rate_percent: float) -> float:
    return safe_round(amount * rate_percent / 100)


def add_referral(
    state: AppState,
    partner_id: str,
    customer_id: str,
    amount,
    commission=None,
    notes: str = "",
    *,
    now_iso: str = "",
    referral_id: Optional[str] = None,
) -> Tuple[AppState, Referral]:
    partner = state.partner(partner_id)
    if partner is None:
        raise NotFound("Partner", partner_id)
    customer = state.customer(customer_id)
    if customer is None:
        raise NotFound("Customer", customer_id)

    amount = safe_round(require_non_negative(amount, "Referral amount"))
    if commission is None or commission == "":
        commission = commission_for(amount, state.settings.commission_rate)
    else:
        commission = safe_round(require_non_negative(commission, "Commission"))

    referral = Referral(
        id=referral_id or new_id(),
        partner_id=partner.id,
        partner_name=partner.name,
        customer_id=customer.id,
        customer_name=customer.name,
        amount=amount,
        commission=commission,
        timestamp=now_iso,
        notes=(notes or "").strip(),
    )
    updated_partner = replace(
        partner,
        total_volume_generated=safe_round(partner.total_volume_generated + amount),
        total_commission_earned=safe_round(partner.total_commission_earned + commission),
    )
    financials = replace(
        state.financials,
        cash_on_hand=safe_round(state.financials.cash_on_hand + commission),
    )
    return (
        replace(
            state,
            referrals=state.referrals + (referral,),
            partners=replace_by_id(state.partners, updated_partner),
            financials=financials,
        ),
        referral,
    )
