"""
modules/state/models.py

Immutable records that make up one state snapshot. Collections are tuples and
every edit goes through ``dataclasses.replace`` so that an observer holding an
old ``AppState`` never sees it change underneath.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional, Tuple, TypeVar

from ...constants import DEFAULT_SALES_REP
from ..inventory.costing import sellable_weight_of, unit_cost_of
from ..ledger.shift import ShiftLedger


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BatchExpense:
    id: str
    description: str
    amount: float
    timestamp: str = ""


@dataclass(frozen=True)
class Batch:
    id: str
    name: str
    acquired_weight: float
    provider_cut: float = 0.0
    personal_use: float = 0.0
    loss: float = 0.0
    purchase_price: float = 0.0
    fees: float = 0.0
    extra_expenses: Tuple[BatchExpense, ...] = ()
    current_stock: float = 0.0
    target_retail_price: float = 0.0
    wholesale_price: float = 0.0
    date_added: str = ""
    notes: str = ""

    @property
    def extra_expense_total(self) -> float:
        return sum(e.amount for e in self.extra_expenses)

    @property
    def total_cost(self) -> float:
        return self.purchase_price + self.fees + self.extra_expense_total

    @property
    def sellable_weight(self) -> float:
        return sellable_weight_of(self.acquired_weight, self.provider_cut, self.personal_use, self.loss)

    @property
    def true_cost_per_unit(self) -> float:
        return unit_cost_of(self.total_cost, self.sellable_weight)


# ---------------------------------------------------------------------------
# Sales & customers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Sale:
    """Frozen at transaction time; cost_basis/profit never follow later batch edits."""
    id: str
    batch_id: str
    customer_id: str
    weight: float
    amount: float
    cost_basis: float
    profit: float
    timestamp: str
    batch_name: str = ""
    customer_name: str = ""
    sales_rep: str = DEFAULT_SALES_REP
    variance: float = 0.0
    payment_method: str = "CASH"


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str = ""
    icon: str = ""
    xp_value: int = 0
    unlocked_at: str = ""
    rarity: str = "COMMON"
    discount_mod: float = 0.0


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    notes: str = ""
    tags: Tuple[str, ...] = ()
    total_spent: float = 0.0
    last_purchase: str = ""
    transaction_history: Tuple[Sale, ...] = ()
    xp: int = 0
    level: int = 1
    prestige: int = 0
    achievements: Tuple[Achievement, ...] = ()
    ghost_id: str = ""
    visual_description: str = ""
    avatar_image: str = ""
    profile: Optional[Mapping[str, Any]] = None


# ---------------------------------------------------------------------------
# Cash flow
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OperationalExpense:
    id: str
    description: str
    amount: float
    category: str
    timestamp: str


@dataclass(frozen=True)
class Partner:
    id: str
    name: str
    type: str = "Supplier"
    notes: str = ""
    total_volume_generated: float = 0.0
    total_commission_earned: float = 0.0


@dataclass(frozen=True)
class Referral:
    id: str
    partner_id: str
    partner_name: str
    customer_id: str
    customer_name: str
    amount: float
    commission: float
    timestamp: str
    notes: str = ""


@dataclass(frozen=True)
class Financials:
    cash_on_hand: float = 0.0
    bank_balance: float = 0.0


@dataclass(frozen=True)
class AppSettings:
    inventory_type: str = "GRASS"
    default_price_per_unit: float = 10.0
    default_wholesale_price: float = 6.0
    default_cost_estimate: float = 3.0
    currency_symbol: str = "$"
    low_stock_threshold: float = 28.0
    staff_members: Tuple[str, ...] = (DEFAULT_SALES_REP,)
    expense_categories: Tuple[str, ...] = ("Payout", "Supplies", "Transport", "Marketing", "Misc")
    commission_rate: float = 5.0
    reputation_score: int = 500
    skill_points: int = 0
    operator_alias: str = "Unknown_Operator"


# ---------------------------------------------------------------------------
# Missions & staging
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Mission:
    id: str
    title: str
    description: str
    category: str
    goal: float
    reward_rep: int = 0
    reward_sp: int = 0
    progress: float = 0.0
    is_complete: bool = False
    is_claimed: bool = False
    check: Optional[Callable[["MissionSnapshot"], float]] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class MissionSnapshot:
    sales: Tuple[Sale, ...] = ()
    customers: Tuple[Customer, ...] = ()
    batches: Tuple[Batch, ...] = ()


@dataclass(frozen=True)
class StagedTransaction:
    batch_id: str
    weight: float
    amount: float
    customer_name: str = ""
    customer_id: str = ""
    is_remote: bool = False
    ghost_id: str = ""


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AppState:
    batches: Tuple[Batch, ...] = ()
    customers: Tuple[Customer, ...] = ()
    sales: Tuple[Sale, ...] = ()
    operational_expenses: Tuple[OperationalExpense, ...] = ()
    partners: Tuple[Partner, ...] = ()
    referrals: Tuple[Referral, ...] = ()
    financials: Financials = field(default_factory=Financials)
    settings: AppSettings = field(default_factory=AppSettings)
    missions: Tuple[Mission, ...] = ()
    # session-scoped, never written to backups
    shift: ShiftLedger = field(default_factory=ShiftLedger)
    staged_transaction: Optional[StagedTransaction] = None
    briefing: str = ""
    intelligence: Optional[Mapping[str, Any]] = None

    def batch(self, batch_id: str) -> Optional[Batch]:
        return _find(self.batches, batch_id)

    def customer(self, customer_id: str) -> Optional[Customer]:
        return _find(self.customers, customer_id)

    def partner(self, partner_id: str) -> Optional[Partner]:
        return _find(self.partners, partner_id)

    def mission(self, mission_id: str) -> Optional[Mission]:
        return _find(self.missions, mission_id)

    def mission_snapshot(self) -> MissionSnapshot:
        return MissionSnapshot(sales=self.sales, customers=self.customers, batches=self.batches)

    def without_session(self) -> "AppState":
        """Copy with session-scoped fields reset (what a backup round-trips)."""
        return replace(
            self,
            shift=ShiftLedger(),
            staged_transaction=None,
            briefing="",
            intelligence=None,
        )


T = TypeVar("T")


def _find(items: Tuple[T, ...], item_id: str) -> Optional[T]:
    for item in items:
        if getattr(item, "id") == item_id:
            return item
    return None


def replace_by_id(items: Tuple[T, ...], updated: T) -> Tuple[T, ...]:
    uid = getattr(updated, "id")
    return tuple(updated if getattr(i, "id") == uid else i for i in items)


def remove_by_id(items: Tuple[T, ...], item_id: str) -> Tuple[T, ...]:
    return tuple(i for i in items if getattr(i, "id") != item_id)
