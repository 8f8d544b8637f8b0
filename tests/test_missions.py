# tests/test_missions.py
from retail_ops.constants import WALK_IN_CUSTOMER_ID
from retail_ops.modules.inventory.costing import new_batch
from retail_ops.modules.missions.catalog import default_missions
from retail_ops.modules.missions.evaluator import claim, evaluate
from retail_ops.modules.state.models import MissionSnapshot


def mission(store, mission_id):
    return store.state.mission(mission_id)


def test_catalog_ids_are_unique():
    ids = [m.id for m in default_missions()]
    assert len(ids) == len(set(ids)) == 7


def test_evaluate_on_empty_snapshot_completes_nothing():
    missions, newly = evaluate(default_missions(), MissionSnapshot())
    assert newly == []
    assert all(not m.is_complete for m in missions)


def test_revenue_mission_completes_and_notifies(stocked_store, notes):
    stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 90, 1000)
    newly = stocked_store.evaluate_missions()

    assert [m.id for m in newly] == ["FIN_1"]
    fin1 = mission(stocked_store, "FIN_1")
    assert fin1.is_complete and not fin1.is_claimed
    assert fin1.progress == 1000
    assert mission(stocked_store, "STR_1").progress == 1
    assert ("Contract Complete: First Thousand", "SUCCESS") in notes

    # a second pass reports nothing new
    assert stocked_store.evaluate_missions() == []


def test_claim_pays_reward_exactly_once(stocked_store):
    stocked_store.process_sale("B1", WALK_IN_CUSTOMER_ID, 90, 1000)
    stocked_store.evaluate_missions()
    rep, sp = stocked_store.state.settings.reputation_score, stocked_store.state.settings.skill_points

    first = stocked_store.claim_mission("FIN_1")
    assert first.ok
    assert first.value.rep == 50 and first.value.sp == 1
    assert stocked_store.state.settings.reputation_score == rep + 50
    assert stocked_store.state.settings.skill_points == sp + 1
    assert mission(stocked_store, "FIN_1").is_claimed

    before = stocked_store.state
    second = stocked_store.claim_mission("FIN_1")
    assert second.ok and second.value is None
    assert stocked_store.state is before


def test_claiming_incomplete_or_unknown_mission_is_a_no_op(store):
    before = store.state
    assert store.claim_mission("FIN_2").value is None
    assert store.claim_mission("NOPE").value is None
    assert store.state is before


def test_completion_is_sticky(store):
    store.add_batch(batch_id="BIG", name="Bulk", acquired_weight=600, purchase_price=600)
    store.evaluate_missions()
    assert mission(store, "LOG_2").is_complete

    store.process_sale("BIG", WALK_IN_CUSTOMER_ID, 200, 2000)
    store.evaluate_missions()
    log2 = mission(store, "LOG_2")
    assert log2.progress == 400
    assert log2.is_complete


def test_claimed_missions_are_not_re_evaluated():
    batches = tuple(new_batch(batch_id=f"B{i}", name=f"Batch {i}", acquired_weight=10) for i in range(5))
    missions, _ = evaluate(default_missions(), MissionSnapshot(batches=batches))
    missions, reward = claim(missions, "LOG_1")
    assert reward is not None
    frozen = next(m for m in missions if m.id == "LOG_1")
    again, newly = evaluate(missions, MissionSnapshot())
    assert next(m for m in again if m.id == "LOG_1") == frozen
    assert newly == []
