# tests/test_costing.py
from dataclasses import replace

import pytest

from retail_ops.modules.inventory.costing import batch_status, new_batch, recompute_cost
from retail_ops.modules.state.models import BatchExpense


def reference_batch():
    return new_batch(
        batch_id="B1",
        name="House Blend",
        acquired_weight=100,
        provider_cut=10,
        purchase_price=300,
        fees=20,
        target_retail_price=12,
    )


# =========================
# Derived cost figures
# =========================
def test_reference_batch_cost():
    b = reference_batch()
    assert b.sellable_weight == 90
    assert b.true_cost_per_unit == pytest.approx(3.5556, abs=1e-4)
    assert b.current_stock == 90


def test_extra_expenses_raise_unit_cost():
    b = reference_batch()
    b2 = recompute_cost(replace(b, extra_expenses=(BatchExpense("E1", "Transport", 40.0),)))
    assert b2.total_cost == 360
    assert b2.true_cost_per_unit == pytest.approx(4.0)


def test_sellable_weight_never_below_floor():
    b = new_batch(batch_id="X", name="Odd", acquired_weight=5, provider_cut=8, purchase_price=10)
    assert b.sellable_weight == 0.1
    assert b.true_cost_per_unit == pytest.approx(100.0)
    assert b.current_stock == 0.1


def test_recompute_clamps_stock_into_sellable_range():
    b = reference_batch()
    shrunk = recompute_cost(replace(b, personal_use=15))
    assert shrunk.sellable_weight == 75
    assert shrunk.current_stock == 75

    negative = recompute_cost(replace(b, current_stock=-3))
    assert negative.current_stock == 0


def test_recompute_is_idempotent():
    b = recompute_cost(replace(reference_batch(), loss=1.333, fees=20.005))
    assert recompute_cost(b) == b


def test_batch_status():
    b = reference_batch()
    assert batch_status(b, 28) == "Active"
    assert batch_status(replace(b, current_stock=10), 28) == "Low"
    assert batch_status(replace(b, current_stock=0), 28) == "Sold Out"
