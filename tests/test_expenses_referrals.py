# tests/test_expenses_referrals.py
from retail_ops.constants import WALK_IN_CUSTOMER_ID
from retail_ops.modules.expense.operations import total_by_category
from retail_ops.modules.network.referrals import commission_for


# =========================
# Drawer deductions
# =========================
def test_expense_leaves_the_drawer_and_refunds_on_delete(store, notes):
    res = store.add_operational_expense("Window repair", 75.5, "Repairs")
    assert res.ok
    expense = res.value
    assert expense.timestamp == store.now_iso()
    assert store.state.financials.cash_on_hand == -75.5
    assert notes[-1] == ("Drawer deduction recorded.", "WARNING")

    assert store.delete_operational_expense(expense.id).ok
    assert store.state.operational_expenses == ()
    assert store.state.financials.cash_on_hand == 0


def test_expense_validation(store):
    assert store.add_operational_expense("", 10).kind == "ValidationError"
    assert store.add_operational_expense("Tips", -1).kind == "ValidationError"
    assert store.delete_operational_expense("nope").kind == "NotFound"


def test_blank_category_becomes_misc(store):
    assert store.add_operational_expense("Stuff", 3, "  ").value.category == "Misc"


def test_total_by_category(store):
    store.add_operational_expense("Rent", 400, "Rent")
    store.add_operational_expense("Pens", 2.25, "Supplies")
    store.add_operational_expense("Tape", 1.1, "Supplies")
    assert total_by_category(store.state.operational_expenses) == {"Rent": 400, "Supplies": 3.35}


# =========================
# Partners & referrals
# =========================
def test_referral_defaults_commission_from_settings(store):
    partner = store.add_partner("Dex", "Referrer").value
    res = store.add_referral(partner.id, WALK_IN_CUSTOMER_ID, 250)
    assert res.ok
    ref = res.value
    assert ref.commission == 12.5             # 5% default rate
    assert ref.partner_name == "Dex"
    p = store.state.partner(partner.id)
    assert p.total_volume_generated == 250
    assert p.total_commission_earned == 12.5
    assert store.state.financials.cash_on_hand == 12.5


def test_referral_with_explicit_commission(store):
    partner = store.add_partner("Vee").value
    assert store.add_referral(partner.id, WALK_IN_CUSTOMER_ID, 100, commission=20).value.commission == 20


def test_referral_requires_known_partner_and_customer(store):
    partner = store.add_partner("Dex").value
    assert store.add_referral("nope", WALK_IN_CUSTOMER_ID, 10).kind == "NotFound"
    assert store.add_referral(partner.id, "nope", 10).kind == "NotFound"
    assert store.add_referral(partner.id, WALK_IN_CUSTOMER_ID, -10).kind == "ValidationError"


def test_delete_partner(store):
    partner = store.add_partner("Dex").value
    assert store.delete_partner(partner.id).ok
    assert store.state.partners == ()
    assert store.delete_partner(partner.id).kind == "NotFound"


def test_commission_for_rounds():
    assert commission_for(33.33, 5) == 1.67
