"""
Customer progression.

- One XP per whole currency unit spent.
- Achievements unlock once per customer and add their own XP on the sale that
  unlocks them.
- ``level = floor(sqrt(xp / 100)) + 1``; at PRESTIGE_LEVEL a customer may
  prestige, which resets level and XP and bumps ``prestige``.
"""
from __future__ import annotations

import math
from dataclasses import replace
from typing import Tuple

from ...errors import ValidationError
from ..state.models import Achievement, Customer

PRESTIGE_LEVEL = 50

THE_PLUG = "the_plug"
FRESH_MEAT = "fresh_meat"
BIG_TICKET_AMOUNT = 500


def earned_xp(amount: float) -> int:
    return int(math.floor(max(0.0, amount)))


def level_for_xp(xp: int) -> int:
    return int(math.floor(math.sqrt(max(0, xp) / 100))) + 1


def unlocked_achievements(customer: Customer, amount: float, now_iso: str) -> Tuple[Achievement, ...]:
    """Achievements this sale unlocks for ``customer`` (evaluated before the sale is recorded)."""
    owned = {a.id for a in customer.achievements}
    found = []
    if amount >= BIG_TICKET_AMOUNT and THE_PLUG not in owned:
        found.append(Achievement(
            id=THE_PLUG, title="The Plug", description="Dropped 500+ in one go.",
            icon="\U0001F50C", xp_value=500, unlocked_at=now_iso, rarity="LEGENDARY", discount_mod=5.0,
        ))
    if not customer.transaction_history and FRESH_MEAT not in owned:
        found.append(Achievement(
            id=FRESH_MEAT, title="Fresh Meat", description="First time buyer.",
            icon="\U0001F969", xp_value=100, unlocked_at=now_iso, rarity="COMMON", discount_mod=0.5,
        ))
    return tuple(found)


def prestige(customer: Customer) -> Customer:
    if customer.level < PRESTIGE_LEVEL:
        raise ValidationError("Prestige Requirements Not Met.")
    return replace(customer, level=1, xp=0, prestige=customer.prestige + 1)
