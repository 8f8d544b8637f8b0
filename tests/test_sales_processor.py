# tests/test_sales_processor.py
from dataclasses import replace

import pytest

from retail_ops.constants import STOCK_TOLERANCE, WALK_IN_CUSTOMER_ID
from retail_ops.errors import InsufficientStock, NotFound, ValidationError
from retail_ops.modules.inventory.costing import batch_status
from retail_ops.modules.sales.processor import process_sale
from retail_ops.modules.sales.progression import earned_xp, level_for_xp, prestige
from retail_ops.modules.state.models import Customer, replace_by_id
from retail_ops.modules.state.store import Store


# =========================
# Happy path
# =========================
def test_sale_records_cost_profit_and_stock(stocked_store):
    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 10, 150)
    assert res.ok, res.message

    sale = res.value.sale
    assert sale.cost_basis == 35.56
    assert sale.profit == 114.44
    assert sale.variance == 30.0          # 150 - 10 * 12
    assert sale.batch_name == "House Blend"
    assert sale.payment_method == "CASH"

    state = stocked_store.state
    assert state.batch("B1").current_stock == 80
    assert state.sales == (sale,)
    assert state.financials.cash_on_hand == -320 + 150


def test_sale_updates_customer_ledger(stocked_store):
    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 10, 150)
    customer = stocked_store.get_customer(WALK_IN_CUSTOMER_ID)
    assert customer.total_spent == 150
    assert customer.transaction_history == (res.value.sale,)
    assert customer.last_purchase == res.value.sale.timestamp
    assert customer.xp == 250             # 150 spent + 100 for the first purchase
    assert customer.level == 2
    assert res.value.leveled_up is True
    assert [a.id for a in customer.achievements] == ["fresh_meat"]


def test_bank_payment_credits_bank_balance(stocked_store):
    stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 5, 60, payment_method="bank")
    fin = stocked_store.state.financials
    assert fin.bank_balance == 60
    assert fin.cash_on_hand == -320


def test_selling_remaining_stock_leaves_sold_out_batch(stocked_store):
    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 90, 900)
    assert res.ok
    batch = stocked_store.get_batch("B1")
    assert batch is not None
    assert batch.current_stock == 0
    assert batch_status(batch, 28) == "Sold Out"


def test_cost_basis_is_frozen_at_sale_time(stocked_store):
    sale = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 10, 150).value.sale
    stocked_store.add_batch_expense("B1", "Late courier invoice", 90)
    assert stocked_store.get_batch("B1").true_cost_per_unit == pytest.approx(410 / 90)
    assert stocked_store.state.sales[0].cost_basis == sale.cost_basis == 35.56


# =========================
# Rejections leave state untouched
# =========================
def test_insufficient_stock_is_rejected(stocked_store, notes):
    stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 10, 150)
    before = stocked_store.state

    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 85, 1000)
    assert not res.ok
    assert res.kind == "InsufficientStock"
    assert isinstance(res.error, InsufficientStock)
    assert res.error.available == 80
    assert stocked_store.state is before
    assert notes[-1][1] == "ERROR"


@pytest.mark.parametrize(
    "weight, amount, method, kind",
    [
        (0, 10, "CASH", "ValidationError"),
        (-1, 10, "CASH", "ValidationError"),
        (1, -5, "CASH", "ValidationError"),
        ("abc", 10, "CASH", "ValidationError"),
        (1, 10, "CRYPTO", "ValidationError"),
    ],
)
def test_invalid_inputs_are_rejected(stocked_store, weight, amount, method, kind):
    before = stocked_store.state
    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, weight, amount, payment_method=method)
    assert res.kind == kind
    assert stocked_store.state is before


def test_unknown_batch_or_customer(stocked_store):
    assert stocked_store.process_sale("NOPE", WALK_IN_CUSTOMER_ID, 1, 10).kind == "NotFound"
    assert stocked_store.process_sale("B1", "ghost", 1, 10).kind == "NotFound"


def test_pure_processor_raises(stocked_store):
    state = stocked_store.state
    with pytest.raises(InsufficientStock):
        process_sale(state, "B1", WALK_IN_CUSTOMER_ID, 500, 10)
    with pytest.raises(NotFound):
        process_sale(state, "B1", "ghost", 1, 10)
    with pytest.raises(ValidationError):
        process_sale(state, "B1", WALK_IN_CUSTOMER_ID, 0, 10)


def test_free_sale_is_allowed(stocked_store):
    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 1, 0)
    assert res.ok
    assert res.value.sale.profit == pytest.approx(-3.56)
    assert res.value.earned_xp == 100      # first-purchase achievement only


# =========================
# Progression
# =========================
@pytest.mark.parametrize(
    "xp, level",
    [(0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (10_000, 11)],
)
def test_level_for_xp(xp, level):
    assert level_for_xp(xp) == level


def test_earned_xp_is_whole_currency_units():
    assert earned_xp(149.99) == 149
    assert earned_xp(0) == 0


def test_sub_cent_weight_reports_rounding(stocked_store):
    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 0.004, 1)
    assert res.kind == "ValidationError"
    assert "rounds to zero" in res.message


# =========================
# Achievements & prestige
# =========================
def test_big_first_ticket_unlocks_both_achievements(stocked_store, notes):
    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 40, 500)
    assert {a.id for a in res.value.achievements} == {"the_plug", "fresh_meat"}
    assert res.value.earned_xp == 500 + 500 + 100
    customer = stocked_store.get_customer(WALK_IN_CUSTOMER_ID)
    assert customer.xp == 1100
    assert customer.level == 4
    assert "Achievement unlocked: The Plug." in notes[-1][0]


def test_achievements_unlock_only_once(stocked_store):
    stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 40, 500)
    res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 40, 600)
    assert res.value.achievements == ()
    assert res.value.earned_xp == 600
    ids = [a.id for a in stocked_store.get_customer(WALK_IN_CUSTOMER_ID).achievements]
    assert sorted(ids) == ["fresh_meat", "the_plug"]


def test_prestige_requires_level_fifty(stocked_store, notes):
    res = stocked_store.trigger_prestige(WALK_IN_CUSTOMER_ID)
    assert res.kind == "ValidationError"
    assert notes[-1] == ("Prestige Requirements Not Met.", "ERROR")
    assert stocked_store.trigger_prestige("ghost").kind == "NotFound"


def test_prestige_resets_level_and_xp(store, clock, notes):
    mika = store.add_customer("Mika").value
    state = store.state
    veteran = replace(mika, xp=240_100, level=level_for_xp(240_100))
    assert veteran.level == 50
    veteran_store = Store(
        replace(state, customers=replace_by_id(state.customers, veteran)),
        clock=clock,
        notify=lambda m, s: notes.append((m, s)),
    )

    res = veteran_store.trigger_prestige(mika.id)
    assert res.ok
    assert (res.value.level, res.value.xp, res.value.prestige) == (1, 0, 1)
    assert notes[-1] == ("Mika has entered Prestige!", "SUCCESS")


def test_prestige_pure_function():
    with pytest.raises(ValidationError):
        prestige(Customer(id="c", name="c", level=49))


# =========================
# Ledger consistency over many sales
# =========================
SEQUENCES = [
    [(0.1, 1.45)] * 10,
    [(1.33, 14.35), (2.67, 31.9), (0.01, 0.07), (5.5, 66.66)],
    [(30, 360), (30, 359.99), (30, 360.01)],          # sells out exactly
    [(12.345, 99.995), (7.777, 0.005), (69.868, 1234.567)],
]


@pytest.mark.parametrize("lines", SEQUENCES)
def test_total_spent_matches_history(stocked_store, lines):
    for weight, amount in lines:
        assert stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, weight, amount).ok
    customer = stocked_store.get_customer(WALK_IN_CUSTOMER_ID)
    assert len(customer.transaction_history) == len(lines)
    assert customer.total_spent == pytest.approx(
        sum(s.amount for s in customer.transaction_history), abs=STOCK_TOLERANCE
    )


@pytest.mark.parametrize("lines", SEQUENCES)
def test_stock_never_goes_negative(stocked_store, lines):
    for weight, amount in lines:
        res = stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, weight, amount)
        assert res.ok or res.kind == "InsufficientStock"
        assert stocked_store.get_batch("B1").current_stock >= 0
    batch = stocked_store.get_batch("B1")
    sold = sum(s.weight for s in stocked_store.state.sales)
    assert batch.current_stock == pytest.approx(90 - sold, abs=STOCK_TOLERANCE)


def test_exact_sell_out_then_reject(stocked_store):
    for _ in range(3):
        assert stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 30, 360).ok
    assert stocked_store.get_batch("B1").current_stock == 0
    assert stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 0.01, 1).kind == "InsufficientStock"
    assert stocked_store.get_batch("B1").current_stock == 0
