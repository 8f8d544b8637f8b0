"""
modules/enrichment/prompts.py

Request descriptors for optional text/image generation. The core only builds
these from a snapshot; fulfilling them is somebody else's job (see service.py)
and the answer comes back through ``Store.apply_enrichment``.

Kinds
-----
- briefing: free text, stored as ``AppState.briefing``
- forecast: JSON object, stored as ``AppState.intelligence``
- profile:  JSON object, stored on the customer
- avatar:   image reference/data URI string, stored on the customer
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from jinja2 import Template

from ...utils.helpers import safe_round
from ..state.models import AppState, Customer

BRIEFING = "briefing"
FORECAST = "forecast"
PROFILE = "profile"
AVATAR = "avatar"
KINDS: Tuple[str, ...] = (BRIEFING, FORECAST, PROFILE, AVATAR)
JSON_KINDS: Tuple[str, ...] = (FORECAST, PROFILE)


@dataclass(frozen=True)
class EnrichmentRequest:
    kind: str
    prompt: str
    target_id: str = ""


_BRIEFING_TMPL = Template(
    """Write a short operational briefing for the store operator {{ alias }}.
Revenue to date: {{ currency }}{{ "%.2f"|format(revenue) }} across {{ sale_count }} sales.
Net profit: {{ currency }}{{ "%.2f"|format(profit) }}.
Cash on hand: {{ currency }}{{ "%.2f"|format(cash) }}; bank: {{ currency }}{{ "%.2f"|format(bank) }}.
{% if low_stock %}Running low:{% for b in low_stock %} {{ b.name }} ({{ b.current_stock }}){% if not loop.last %},{% endif %}{% endfor %}.
{% else %}No batch is below the low-stock threshold.
{% endif %}Keep it under 120 words."""
)

_FORECAST_TMPL = Template(
    """Return JSON with keys "restock" (list of {batchId, batchName, daysRemaining, suggestedReorder})
and "forecast" ({period, predictedRevenue, predictedVolume}).
Recent sales (newest last):
{% for s in sales %}- {{ s.timestamp }} batch={{ s.batch_id }} weight={{ s.weight }} amount={{ s.amount }}
{% endfor %}Current stock:
{% for b in batches %}- {{ b.id }} {{ b.name }}: {{ b.current_stock }}
{% endfor %}"""
)

_PROFILE_TMPL = Template(
    """Return a JSON behavioural profile for this client.
Name: {{ c.name }}
Transactions: {{ c.transaction_history|length }}, total spent: {{ "%.2f"|format(c.total_spent) }}, last purchase: {{ c.last_purchase or "never" }}
Tags: {{ c.tags|join(", ") or "none" }}
Notes: {{ c.notes or "none" }}"""
)

_AVATAR_TMPL = Template(
    """Character portrait, head and shoulders, high contrast digital art, of: {{ description }}"""
)


def briefing_request(state: AppState, recent: int = 50) -> EnrichmentRequest:
    sales = state.sales[-recent:]
    threshold = state.settings.low_stock_threshold
    prompt = _BRIEFING_TMPL.render(
        alias=state.settings.operator_alias,
        currency=state.settings.currency_symbol,
        revenue=safe_round(sum(s.amount for s in sales)),
        profit=safe_round(sum(s.profit for s in sales)),
        sale_count=len(sales),
        cash=state.financials.cash_on_hand,
        bank=state.financials.bank_balance,
        low_stock=[b for b in state.batches if 0 < b.current_stock < threshold],
    )
    return EnrichmentRequest(kind=BRIEFING, prompt=prompt)


def forecast_request(state: AppState, recent: int = 100) -> EnrichmentRequest:
    prompt = _FORECAST_TMPL.render(
        sales=state.sales[-recent:],
        batches=[b for b in state.batches if b.current_stock > 0],
    )
    return EnrichmentRequest(kind=FORECAST, prompt=prompt)


def profile_request(customer: Customer) -> EnrichmentRequest:
    return EnrichmentRequest(kind=PROFILE, prompt=_PROFILE_TMPL.render(c=customer), target_id=customer.id)


def avatar_request(customer: Customer) -> EnrichmentRequest:
    description = customer.visual_description or customer.name
    return EnrichmentRequest(kind=AVATAR, prompt=_AVATAR_TMPL.render(description=description), target_id=customer.id)
