"""
modules/state/store.py

Purpose
-------
The single owner of the current ``AppState``. Its public methods are the only
way to change business state; each one

  1. runs a pure transform over the current snapshot,
  2. on success swaps in the new snapshot in one assignment and tells
     listeners ``(old, new)``,
  3. returns an ``OpResult`` instead of raising, and posts a short
     categorized notification through the ``notify`` callback.

A failed operation leaves the snapshot exactly as it was.

Callbacks
---------
- notify(message: str, severity: str)  severity in SUCCESS/ERROR/WARNING/INFO
- listeners: (old: AppState, new: AppState) -> None
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, List, Mapping, Optional, Tuple

from ...errors import DomainError, NotFound, OpResult, ValidationError
from ...utils.helpers import Clock, local_now, now_iso
from ...utils.validators import require_non_negative, require_text_list
from ..backup_restore import codec
from ..customer import operations as customers
from ..enrichment.prompts import AVATAR, BRIEFING, FORECAST, PROFILE, EnrichmentRequest
from ..expense import operations as expenses
from ..inventory import adjustments, batches
from ..ledger import shift as shift_ledger
from ..missions.catalog import default_missions
from ..missions.evaluator import Reward, claim, evaluate
from ..network import referrals
from ..sales.processor import SaleOutcome, process_sale
from ..sales.progression import prestige
from .models import AppSettings, AppState, Mission, StagedTransaction, replace_by_id

_log = logging.getLogger(__name__)

Listener = Callable[[AppState, AppState], None]
Notify = Callable[[str, str], None]
Transform = Callable[[AppState], Tuple[AppState, Any]]

_SETTINGS_NUMERIC = (
    "default_price_per_unit",
    "default_wholesale_price",
    "default_cost_estimate",
    "low_stock_threshold",
    "commission_rate",
)


def initial_state() -> AppState:
    return customers.ensure_walk_in(AppState(missions=default_missions()))


def _reconcile_loaded(state: AppState) -> AppState:
    """Defaults every loaded/restored snapshot must carry."""
    state = customers.ensure_walk_in(state)
    if not state.missions:
        state = replace(state, missions=default_missions())
    return state


class Store:
    def __init__(
        self,
        state: Optional[AppState] = None,
        *,
        clock: Clock = local_now,
        notify: Optional[Notify] = None,
    ) -> None:
        self._state = _reconcile_loaded(state) if state is not None else initial_state()
        self._clock = clock
        self._notify = notify
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> AppState:
        return self._state

    def now(self):
        return self._clock()

    def now_iso(self) -> str:
        return now_iso(self._clock)

    def get_batch(self, batch_id: str):
        return self._state.batch(batch_id)

    def get_customer(self, customer_id: str):
        return self._state.customer(customer_id)

    def shift_summary(self) -> shift_ledger.ShiftSummary:
        s = self._state
        return shift_ledger.summarize(s.shift, s.sales, s.operational_expenses, self.now())

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_notifier(self, notify: Optional[Notify]) -> None:
        self._notify = notify

    def notify(self, message: str, severity: str = "INFO") -> None:
        """Post a notification that is not tied to a state change."""
        self._post(message, severity)

    def _post(self, message: str, severity: str) -> None:
        if self._notify is not None and message:
            self._notify(message, severity)

    def _commit(self, new_state: AppState) -> None:
        if new_state is self._state:
            return
        old, self._state = self._state, new_state
        for listener in list(self._listeners):
            listener(old, new_state)

    def _run(
        self,
        action: str,
        transform: Transform,
        success: Optional[Callable[[Any], str]] = None,
        severity: str = "SUCCESS",
    ) -> OpResult:
        try:
            new_state, value = transform(self._state)
        except DomainError as exc:
            _log.info("%s rejected: %s: %s", action, exc.kind, exc)
            self._post(str(exc), "ERROR")
            return OpResult.failure(exc)
        self._commit(new_state)
        if success is not None:
            self._post(success(value), severity)
        return OpResult.success(value)

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def add_batch(self, **fields) -> OpResult:
        stamp = self.now_iso()
        return self._run(
            "add_batch",
            lambda s: batches.add_batch(s, now_iso=stamp, **fields),
            lambda b: f'Batch "{b.name}" added successfully.',
        )

    def update_batch(self, batch_id: str, **changes) -> OpResult:
        return self._run(
            "update_batch",
            lambda s: batches.update_batch(s, batch_id, **changes),
            lambda b: f'Batch "{b.name}" updated.',
        )

    def delete_batch(self, batch_id: str) -> OpResult:
        return self._run(
            "delete_batch",
            lambda s: batches.delete_batch(s, batch_id),
            lambda b: "Batch deleted.",
            "WARNING",
        )

    def add_batch_expense(self, batch_id: str, description: str, amount) -> OpResult:
        stamp = self.now_iso()
        return self._run(
            "add_batch_expense",
            lambda s: batches.add_batch_expense(s, batch_id, description, amount, now_iso=stamp),
            lambda b: f'Expense added to "{b.name}".',
        )

    def remove_batch_expense(self, batch_id: str, expense_id: str) -> OpResult:
        return self._run(
            "remove_batch_expense",
            lambda s: batches.remove_batch_expense(s, batch_id, expense_id),
            lambda b: f'Expense removed from "{b.name}".',
            "INFO",
        )

    def adjust_stock(self, batch_id: str, kind: str, weight, *, book_loss_expense: bool = False) -> OpResult:
        stamp = self.now_iso()
        return self._run(
            "adjust_stock",
            lambda s: adjustments.adjust_stock(
                s, batch_id, kind, weight, now_iso=stamp, book_loss_expense=book_loss_expense
            ),
            lambda b: f'Stock adjusted for "{b.name}".',
            "INFO",
        )

    # ------------------------------------------------------------------
    # Customers & sales
    # ------------------------------------------------------------------

    def add_customer(self, name: str, notes: str = "", tags=None, **kwargs) -> OpResult:
        return self._run(
            "add_customer",
            lambda s: customers.add_customer(s, name, notes, tags, **kwargs),
            lambda c: "New client registered.",
        )

    def update_customer(self, customer_id: str, **changes) -> OpResult:
        return self._run(
            "update_customer",
            lambda s: customers.update_customer(s, customer_id, **changes),
            lambda c: "Client data updated.",
        )

    def process_sale(
        self,
        batch_id: str,
        customer_id: str,
        weight,
        amount,
        *,
        payment_method: str = "CASH",
        sales_rep: str = "Admin",
        target_price=None,
    ) -> OpResult:
        """Value on success is a ``SaleOutcome`` (sale, batch, customer, xp)."""
        stamp = self.now_iso()

        def _transform(s: AppState) -> Tuple[AppState, SaleOutcome]:
            outcome = process_sale(
                s, batch_id, customer_id, weight, amount,
                payment_method=payment_method,
                sales_rep=sales_rep,
                target_price=target_price,
                now_iso=stamp,
            )
            # a completed sale consumes whatever the POS had staged
            return replace(outcome.state, staged_transaction=None), outcome

        def _message(outcome: SaleOutcome) -> str:
            msg = f"Sale processed. +{outcome.earned_xp} XP."
            if outcome.leveled_up:
                msg += f" LEVEL UP to {outcome.customer.level}!"
            for achievement in outcome.achievements:
                msg += f" Achievement unlocked: {achievement.title}."
            return msg

        return self._run("process_sale", _transform, _message)

    def trigger_prestige(self, customer_id: str) -> OpResult:
        """Reset a level-50 customer to level 1 / 0 XP and add one prestige rank."""
        def _transform(s: AppState):
            customer = s.customer(customer_id)
            if customer is None:
                raise NotFound("Customer", customer_id)
            updated = prestige(customer)
            return replace(s, customers=replace_by_id(s.customers, updated)), updated

        return self._run("trigger_prestige", _transform, lambda c: f"{c.name} has entered Prestige!")

    def stage_transaction(self, tx: Optional[StagedTransaction]) -> OpResult:
        return self._run(
            "stage_transaction",
            lambda s: (replace(s, staged_transaction=tx), tx),
            (lambda t: "Transaction staged for POS.") if tx is not None else None,
            "INFO",
        )

    # ------------------------------------------------------------------
    # Cash flow
    # ------------------------------------------------------------------

    def add_operational_expense(self, description: str, amount, category: str = "Payout") -> OpResult:
        stamp = self.now_iso()
        return self._run(
            "add_operational_expense",
            lambda s: expenses.add_operational_expense(s, description, amount, category, now_iso=stamp),
            lambda e: "Drawer deduction recorded.",
            "WARNING",
        )

    def delete_operational_expense(self, expense_id: str) -> OpResult:
        return self._run(
            "delete_operational_expense",
            lambda s: expenses.delete_operational_expense(s, expense_id),
            lambda e: "Expense removed from ledger.",
            "INFO",
        )

    def add_partner(self, name: str, partner_type: str = "Supplier", notes: str = "") -> OpResult:
        return self._run(
            "add_partner",
            lambda s: referrals.add_partner(s, name, partner_type, notes),
            lambda p: f"Partner {p.name} added.",
        )

    def delete_partner(self, partner_id: str) -> OpResult:
        return self._run(
            "delete_partner",
            lambda s: referrals.delete_partner(s, partner_id),
            lambda p: "Partner removed.",
            "WARNING",
        )

    def add_referral(self, partner_id: str, customer_id: str, amount, commission=None, notes: str = "") -> OpResult:
        stamp = self.now_iso()
        symbol = self._state.settings.currency_symbol
        return self._run(
            "add_referral",
            lambda s: referrals.add_referral(s, partner_id, customer_id, amount, commission, notes, now_iso=stamp),
            lambda r: f"Referral logged. +{symbol}{r.commission:.2f} to wallet.",
        )

    def update_settings(self, **changes) -> OpResult:
        def _transform(s: AppState) -> Tuple[AppState, AppSettings]:
            unknown = set(changes) - set(AppSettings.__dataclass_fields__)
            if unknown:
                raise ValidationError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
            clean = dict(changes)
            for key in _SETTINGS_NUMERIC:
                if key in clean:
                    clean[key] = require_non_negative(clean[key], key.replace("_", " "))
            for key in ("staff_members", "expense_categories"):
                if key in clean:
                    clean[key] = require_text_list(clean[key], key.replace("_", " ").capitalize())
            settings = replace(s.settings, **clean)
            return replace(s, settings=settings), settings

        return self._run("update_settings", _transform, lambda _: "System settings saved.")

    # ------------------------------------------------------------------
    # Shift ledger
    # ------------------------------------------------------------------

    def _shift(self, action: str, step: Callable[[AppState], shift_ledger.ShiftLedger], message: str, severity="INFO") -> OpResult:
        def _transform(s: AppState):
            ledger = step(s)
            return replace(s, shift=ledger), ledger

        return self._run(action, _transform, lambda _: message, severity)

    def start_shift(self, opening_float) -> OpResult:
        stamp = self.now_iso()
        return self._shift("start_shift", lambda s: shift_ledger.start(s.shift, opening_float, stamp), "Shift started.")

    def begin_cash_count(self) -> OpResult:
        now = self.now()
        return self._shift(
            "begin_cash_count",
            lambda s: shift_ledger.begin_count(s.shift, s.sales, s.operational_expenses, now),
            "Drawer count started.",
        )

    def submit_cash_count(self, counted_cash) -> OpResult:
        def _message(ledger) -> str:
            return f"Counted {ledger.counted_cash:.2f}; variance {ledger.variance:+.2f}."

        def _transform(s: AppState):
            ledger = shift_ledger.submit_count(s.shift, counted_cash)
            return replace(s, shift=ledger), ledger

        return self._run("submit_cash_count", _transform, _message, "INFO")

    def close_shift(self) -> OpResult:
        stamp = self.now_iso()
        return self._shift("close_shift", lambda s: shift_ledger.close(s.shift, stamp), "Shift closed.", "SUCCESS")

    def reopen_shift(self) -> OpResult:
        return self._shift("reopen_shift", lambda s: shift_ledger.reopen(s.shift), "Shift reopened for correction.", "WARNING")

    def end_shift(self) -> OpResult:
        return self._shift("end_shift", lambda s: shift_ledger.end_shift(s.shift), "Shift ended.")

    # ------------------------------------------------------------------
    # Missions
    # ------------------------------------------------------------------

    def evaluate_missions(self) -> List[Mission]:
        """Recompute progress; returns missions completed by this pass."""
        missions, newly = evaluate(self._state.missions, self._state.mission_snapshot())
        if missions != self._state.missions or newly:
            self._commit(replace(self._state, missions=missions))
        for m in newly:
            self._post(f"Contract Complete: {m.title}", "SUCCESS")
        return newly

    def claim_mission(self, mission_id: str) -> OpResult:
        """Value is the ``Reward`` or ``None`` when there is nothing to claim."""
        def _transform(s: AppState) -> Tuple[AppState, Optional[Reward]]:
            missions, reward = claim(s.missions, mission_id)
            if reward is None:
                return s, None
            settings = replace(
                s.settings,
                reputation_score=s.settings.reputation_score + reward.rep,
                skill_points=s.settings.skill_points + reward.sp,
            )
            return replace(s, missions=missions, settings=settings), reward

        result = self._run("claim_mission", _transform)
        if result.ok and result.value is not None:
            self._post(f"Reward Claimed: +{result.value.rep} REP, +{result.value.sp} SP", "SUCCESS")
        return result

    # ------------------------------------------------------------------
    # Enrichment merge
    # ------------------------------------------------------------------

    def apply_enrichment(self, request: EnrichmentRequest, payload: Any) -> OpResult:
        """Merge an enrichment answer; ``payload=None`` means nothing arrived."""
        if payload is None:
            self._post("No enrichment available.", "INFO")
            return OpResult.success(False)

        def _transform(s: AppState):
            if request.kind == BRIEFING:
                return replace(s, briefing=str(payload)), True
            if request.kind == FORECAST:
                intel = dict(payload)
                intel.setdefault("lastGenerated", self.now_iso())
                return replace(s, intelligence=intel), True
            if request.kind in (PROFILE, AVATAR):
                if s.customer(request.target_id) is None:
                    raise NotFound("Customer", request.target_id)
                if request.kind == PROFILE:
                    return _with_customer(s, request.target_id, profile=dict(payload)), True
                return _with_customer(s, request.target_id, avatar_image=str(payload)), True
            raise ValidationError(f"Unknown enrichment kind: {request.kind}")

        return self._run("apply_enrichment", _transform)

    # ------------------------------------------------------------------
    # Backup / restore
    # ------------------------------------------------------------------

    def backup_document(self) -> dict:
        return codec.serialize(self._state, self.now_iso())

    def restore(self, document: Mapping[str, Any]) -> OpResult:
        """
        Replace every persistent collection with the document's, or nothing.
        The running shift ledger is kept; it tracks the physical drawer.
        """
        def _transform(s: AppState):
            restored = _reconcile_loaded(codec.deserialize(document))
            return replace(restored, shift=s.shift), restored

        return self._run("restore", _transform, lambda _: "Database restored.")


def _with_customer(state: AppState, customer_id: str, **fields) -> AppState:
    updated = replace(state.customer(customer_id), **fields)
    return replace(state, customers=replace_by_id(state.customers, updated))
