"""
Default mission catalog.

Each ``check`` is a read-only projection over a ``MissionSnapshot``; progress
and completion flags are owned by the evaluator.
"""
from __future__ import annotations

from typing import Tuple

from ...constants import WALK_IN_CUSTOMER_ID
from ..state.models import Mission, MissionSnapshot


def _total_revenue(data: MissionSnapshot) -> float:
    return sum(s.amount for s in data.sales)


def _total_profit(data: MissionSnapshot) -> float:
    return sum(s.profit for s in data.sales)


def _batch_count(data: MissionSnapshot) -> float:
    return len(data.batches)


def _units_held(data: MissionSnapshot) -> float:
    return sum(b.current_stock for b in data.batches)


def _registered_clients(data: MissionSnapshot) -> float:
    return len([c for c in data.customers if c.id != WALK_IN_CUSTOMER_ID])


def _top_client_level(data: MissionSnapshot) -> float:
    return max([0] + [c.level for c in data.customers])


def _distinct_batches_sold(data: MissionSnapshot) -> float:
    return len({s.batch_id for s in data.sales})


def default_missions() -> Tuple[Mission, ...]:
    return (
        # --- FINANCIAL ---
        Mission("FIN_1", "First Thousand", "Achieve a total revenue of 1,000 across all sales.",
                "FINANCIAL", 1000, reward_rep=50, reward_sp=1, check=_total_revenue),
        Mission("FIN_2", "Profit Engine", "Generate 5,000 in total net profit.",
                "FINANCIAL", 5000, reward_rep=100, reward_sp=2, check=_total_profit),
        # --- LOGISTICS ---
        Mission("LOG_1", "Stocker", "Acquire 5 different inventory batches.",
                "LOGISTICS", 5, reward_rep=25, reward_sp=1, check=_batch_count),
        Mission("LOG_2", "Full Shelf", "Hold over 500 units of inventory at one time.",
                "LOGISTICS", 500, reward_rep=75, reward_sp=1, check=_units_held),
        # --- CLIENTELE ---
        Mission("CLI_1", "The Rolodex", "Register 10 unique clients.",
                "CLIENTELE", 10, reward_rep=50, reward_sp=1, check=_registered_clients),
        Mission("CLI_2", "The Regular", "Get one client to Level 10.",
                "CLIENTELE", 10, reward_rep=150, reward_sp=2, check=_top_client_level),
        # --- STRATEGIC ---
        Mission("STR_1", "Diversify", "Sell product from 3 different batches.",
                "STRATEGIC", 3, reward_rep=40, reward_sp=1, check=_distinct_batches_sold),
    )
