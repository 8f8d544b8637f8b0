"""
modules/backup_restore/codec.py

Purpose
-------
Convert a state snapshot to a portable JSON document and back.

Document shape
--------------
{
  "version": "2.1", "timestamp": "<iso>",
  "batches": [...], "customers": [...], "sales": [...],
  "operationalExpenses": [...], "partners": [...], "referrals": [...],
  "financials": {...}, "missions": [...], "settings": {...}
}

Loading rules
-------------
- A document without a recognizable ``version``/``timestamp`` marker is a
  CorruptBackup.
- Fields missing from older documents get defaults (``loss`` -> 0, ``tags`` -> [],
  ...). Legacy key names (``orderedWeight``, ``expenses``, ``lastPurchase``) are
  accepted as aliases; stored derived values (``trueCostPerGram``,
  ``actualWeight``) are ignored and recomputed.
- Decoding builds a complete new ``AppState`` or raises; callers swap state only
  after it returns, so nothing is ever half-applied.
- Session-scoped state (shift ledger, staged transaction, enrichment output) is
  not part of the document.

Public API
----------
- serialize(state, now_iso) -> dict
- deserialize(document) -> AppState
- dumps(state, now_iso) -> str
- loads(text) -> AppState
- encode_batches(batches) -> list[dict]
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from ...constants import BACKUP_VERSION
from ...errors import CorruptBackup
from ...utils.validators import try_parse_float
from ..inventory.costing import recompute_cost
from ..missions.catalog import default_missions
from ..state.models import (
    Achievement,
    AppSettings,
    AppState,
    Batch,
    BatchExpense,
    Customer,
    Financials,
    Mission,
    OperationalExpense,
    Partner,
    Referral,
    Sale,
)

_log = logging.getLogger(__name__)

__all__ = ["serialize", "deserialize", "dumps", "loads", "encode_batches"]

_VERSION_RX = re.compile(r"^\d+(\.\d+)*$")
_REQUIRED = object()


class _Field(NamedTuple):
    key: str
    attr: str
    kind: str
    default: Any = None
    aliases: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Field tables (document key, attribute, kind, default, legacy aliases)
# ---------------------------------------------------------------------------

_BATCH_EXPENSE_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("description", "description", "str", ""),
    _Field("amount", "amount", "num", 0.0),
    _Field("timestamp", "timestamp", "str", ""),
)

_BATCH_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("name", "name", "str", ""),
    _Field("acquiredWeight", "acquired_weight", "num", 0.0, ("orderedWeight",)),
    _Field("providerCut", "provider_cut", "num", 0.0),
    _Field("personalUse", "personal_use", "num", 0.0),
    _Field("loss", "loss", "num", 0.0),
    _Field("purchasePrice", "purchase_price", "num", 0.0),
    _Field("fees", "fees", "num", 0.0),
    _Field("extraExpenses", "extra_expenses", "batch_expenses", (), ("expenses",)),
    _Field("currentStock", "current_stock", "num", 0.0),
    _Field("targetRetailPrice", "target_retail_price", "num", 0.0),
    _Field("wholesalePrice", "wholesale_price", "num", 0.0),
    _Field("dateAdded", "date_added", "str", ""),
    _Field("notes", "notes", "str", ""),
)

_SALE_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("batchId", "batch_id", "str", _REQUIRED),
    _Field("customerId", "customer_id", "str", _REQUIRED),
    _Field("weight", "weight", "num", 0.0),
    _Field("amount", "amount", "num", 0.0),
    _Field("costBasis", "cost_basis", "num", 0.0),
    _Field("profit", "profit", "num", 0.0),
    _Field("timestamp", "timestamp", "str", ""),
    _Field("batchName", "batch_name", "str", ""),
    _Field("customerName", "customer_name", "str", ""),
    _Field("salesRep", "sales_rep", "str", "Admin"),
    _Field("variance", "variance", "num", 0.0),
    _Field("paymentMethod", "payment_method", "str", "CASH"),
)

_ACHIEVEMENT_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("title", "title", "str", ""),
    _Field("description", "description", "str", ""),
    _Field("icon", "icon", "str", ""),
    _Field("xpValue", "xp_value", "int", 0),
    _Field("unlockedAt", "unlocked_at", "str", ""),
    _Field("rarity", "rarity", "str", "COMMON"),
    _Field("discountMod", "discount_mod", "num", 0.0),
)

_CUSTOMER_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("name", "name", "str", ""),
    _Field("notes", "notes", "str", ""),
    _Field("tags", "tags", "str_list", ()),
    _Field("totalSpent", "total_spent", "num", 0.0),
    _Field("lastPurchaseTimestamp", "last_purchase", "str", "", ("lastPurchase",)),
    _Field("transactionHistory", "transaction_history", "sales", ()),
    _Field("xp", "xp", "int", 0),
    _Field("level", "level", "int", 1),
    _Field("prestige", "prestige", "int", 0),
    _Field("achievements", "achievements", "achievements", ()),
    _Field("ghostId", "ghost_id", "str", ""),
    _Field("visualDescription", "visual_description", "str", ""),
    _Field("avatarImage", "avatar_image", "str", ""),
    _Field("profile", "profile", "mapping", None, ("psychProfile",)),
)

_EXPENSE_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("description", "description", "str", ""),
    _Field("amount", "amount", "num", 0.0),
    _Field("category", "category", "str", "Misc"),
    _Field("timestamp", "timestamp", "str", ""),
)

_PARTNER_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("name", "name", "str", ""),
    _Field("type", "type", "str", "Supplier"),
    _Field("notes", "notes", "str", ""),
    _Field("totalVolumeGenerated", "total_volume_generated", "num", 0.0),
    _Field("totalCommissionEarned", "total_commission_earned", "num", 0.0),
)

_REFERRAL_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("partnerId", "partner_id", "str", ""),
    _Field("partnerName", "partner_name", "str", ""),
    _Field("customerId", "customer_id", "str", ""),
    _Field("customerName", "customer_name", "str", ""),
    _Field("amount", "amount", "num", 0.0),
    _Field("commission", "commission", "num", 0.0),
    _Field("timestamp", "timestamp", "str", ""),
    _Field("notes", "notes", "str", ""),
)

_FINANCIALS_FIELDS = (
    _Field("cashOnHand", "cash_on_hand", "num", 0.0),
    _Field("bankBalance", "bank_balance", "num", 0.0),
)

_DEFAULT_SETTINGS = AppSettings()
_SETTINGS_FIELDS = (
    _Field("inventoryType", "inventory_type", "str", _DEFAULT_SETTINGS.inventory_type),
    _Field("defaultPricePerUnit", "default_price_per_unit", "num",
           _DEFAULT_SETTINGS.default_price_per_unit, ("defaultPricePerGram",)),
    _Field("defaultWholesalePrice", "default_wholesale_price", "num", _DEFAULT_SETTINGS.default_wholesale_price),
    _Field("defaultCostEstimate", "default_cost_estimate", "num", _DEFAULT_SETTINGS.default_cost_estimate),
    _Field("currencySymbol", "currency_symbol", "str", _DEFAULT_SETTINGS.currency_symbol),
    _Field("lowStockThreshold", "low_stock_threshold", "num", _DEFAULT_SETTINGS.low_stock_threshold),
    _Field("staffMembers", "staff_members", "str_list", _DEFAULT_SETTINGS.staff_members),
    _Field("expenseCategories", "expense_categories", "str_list", _DEFAULT_SETTINGS.expense_categories),
    _Field("commissionRate", "commission_rate", "num", _DEFAULT_SETTINGS.commission_rate),
    _Field("reputationScore", "reputation_score", "int", _DEFAULT_SETTINGS.reputation_score),
    _Field("skillPoints", "skill_points", "int", _DEFAULT_SETTINGS.skill_points),
    _Field("operatorAlias", "operator_alias", "str", _DEFAULT_SETTINGS.operator_alias),
)

_MISSION_FIELDS = (
    _Field("id", "id", "str", _REQUIRED),
    _Field("progress", "progress", "num", 0.0),
    _Field("isComplete", "is_complete", "bool", False),
    _Field("isClaimed", "is_claimed", "bool", False),
)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def _encode_value(kind: str, value: Any) -> Any:
    if kind == "batch_expenses":
        return [_encode(e, _BATCH_EXPENSE_FIELDS) for e in value]
    if kind == "sales":
        return [_encode(s, _SALE_FIELDS) for s in value]
    if kind == "achievements":
        return [_encode(a, _ACHIEVEMENT_FIELDS) for a in value]
    if kind == "str_list":
        return list(value)
    if kind == "mapping":
        return None if value is None else dict(value)
    return value


def _encode(obj: Any, fields: Sequence[_Field]) -> Dict[str, Any]:
    return {f.key: _encode_value(f.kind, getattr(obj, f.attr)) for f in fields}


def serialize(state: AppState, now_iso: str) -> Dict[str, Any]:
    """Versioned, timestamped structural copy of everything that outlives a session."""
    return {
        "version": BACKUP_VERSION,
        "timestamp": now_iso,
        "batches": encode_batches(state.batches),
        "customers": [_encode(c, _CUSTOMER_FIELDS) for c in state.customers],
        "sales": [_encode(s, _SALE_FIELDS) for s in state.sales],
        "operationalExpenses": [_encode(e, _EXPENSE_FIELDS) for e in state.operational_expenses],
        "partners": [_encode(p, _PARTNER_FIELDS) for p in state.partners],
        "referrals": [_encode(r, _REFERRAL_FIELDS) for r in state.referrals],
        "financials": _encode(state.financials, _FINANCIALS_FIELDS),
        "missions": [_encode(m, _MISSION_FIELDS) for m in state.missions],
        "settings": _encode(state.settings, _SETTINGS_FIELDS),
    }


def encode_batches(batches: Sequence[Batch]) -> List[Dict[str, Any]]:
    """Batch records in backup shape; also the STOCK_UPDATE wire payload."""
    return [_encode(b, _BATCH_FIELDS) for b in batches]


def dumps(state: AppState, now_iso: str, indent: Optional[int] = 2) -> str:
    return json.dumps(serialize(state, now_iso), ensure_ascii=False, indent=indent)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _decode_value(kind: str, value: Any, where: str) -> Any:
    if kind == "str":
        return str(value)
    if kind == "num":
        ok, val = try_parse_float(value)
        if not ok:
            raise CorruptBackup(f"{where} is not a number: {value!r}")
        return val
    if kind == "int":
        ok, val = try_parse_float(value)
        if not ok:
            raise CorruptBackup(f"{where} is not a number: {value!r}")
        return int(val)
    if kind == "bool":
        if not isinstance(value, bool):
            raise CorruptBackup(f"{where} must be true or false: {value!r}")
        return value
    if kind == "str_list":
        return tuple(str(x) for x in _require_list(value, where))
    if kind == "mapping":
        if not isinstance(value, Mapping):
            raise CorruptBackup(f"{where} must be an object.")
        return dict(value)
    if kind == "batch_expenses":
        return tuple(_decode_list(value, _BATCH_EXPENSE_FIELDS, BatchExpense, where))
    if kind == "sales":
        return tuple(_decode_list(value, _SALE_FIELDS, Sale, where))
    if kind == "achievements":
        return tuple(_decode_list(value, _ACHIEVEMENT_FIELDS, Achievement, where))
    raise CorruptBackup(f"{where}: unsupported field kind {kind}")  # pragma: no cover


def _decode_fields(raw: Any, fields: Sequence[_Field], where: str) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise CorruptBackup(f"{where} must be an object.")
    out: Dict[str, Any] = {}
    for f in fields:
        present = next((k for k in (f.key,) + f.aliases if k in raw), None)
        value = raw[present] if present is not None else None
        if value is None:
            if f.default is _REQUIRED:
                raise CorruptBackup(f"{where} is missing required field '{f.key}'.")
            out[f.attr] = f.default
            continue
        out[f.attr] = _decode_value(f.kind, value, f"{where}.{f.key}")
    return out


def _require_list(value: Any, where: str) -> list:
    if not isinstance(value, list):
        raise CorruptBackup(f"{where} must be a list.")
    return value


def _decode_list(value: Any, fields: Sequence[_Field], factory: Callable[..., Any], where: str) -> List[Any]:
    items = [factory(**_decode_fields(raw, fields, f"{where}[{i}]")) for i, raw in enumerate(_require_list(value, where))]
    seen = set()
    for item in items:
        if item.id in seen:
            raise CorruptBackup(f"{where} contains duplicate id {item.id!r}.")
        seen.add(item.id)
    return items


def _collection(doc: Mapping[str, Any], key: str, fields: Sequence[_Field], factory) -> Tuple[Any, ...]:
    if doc.get(key) is None:
        return ()
    return tuple(_decode_list(doc[key], fields, factory, key))


def _merge_missions(raw: Any) -> Tuple[Mission, ...]:
    catalog = default_missions()
    if raw is None:
        return catalog
    saved = {m["id"]: m for m in (_decode_fields(r, _MISSION_FIELDS, f"missions[{i}]")
                                  for i, r in enumerate(_require_list(raw, "missions")))}
    known = {m.id for m in catalog}
    for mission_id in saved.keys() - known:
        _log.warning("backup mission %s is not in the catalog; dropped", mission_id)
    return tuple(
        replace(
            m,
            progress=saved[m.id]["progress"],
            is_complete=saved[m.id]["is_complete"] or saved[m.id]["is_claimed"],
            is_claimed=saved[m.id]["is_claimed"],
        ) if m.id in saved else m
        for m in catalog
    )


def _check_marker(doc: Any) -> None:
    if not isinstance(doc, Mapping):
        raise CorruptBackup("Backup document must be a JSON object.")
    version = doc.get("version")
    timestamp = doc.get("timestamp")
    if not isinstance(version, str) or not _VERSION_RX.match(version.strip()):
        raise CorruptBackup("Backup is missing a recognizable version marker.")
    if not isinstance(timestamp, str) or not timestamp.strip():
        raise CorruptBackup("Backup is missing its timestamp marker.")


def deserialize(document: Any) -> AppState:
    _check_marker(document)
    doc: Mapping[str, Any] = document

    if doc["version"].split(".")[0] != BACKUP_VERSION.split(".")[0]:
        _log.warning("backup version %s differs from current %s; applying defaults",
                     doc["version"], BACKUP_VERSION)

    batches = tuple(recompute_cost(b) for b in _collection(doc, "batches", _BATCH_FIELDS, Batch))
    settings_raw = doc.get("settings")
    financials_raw = doc.get("financials")

    return AppState(
        batches=batches,
        customers=_collection(doc, "customers", _CUSTOMER_FIELDS, Customer),
        sales=_collection(doc, "sales", _SALE_FIELDS, Sale),
        operational_expenses=_collection(doc, "operationalExpenses", _EXPENSE_FIELDS, OperationalExpense),
        partners=_collection(doc, "partners", _PARTNER_FIELDS, Partner),
        referrals=_collection(doc, "referrals", _REFERRAL_FIELDS, Referral),
        financials=Financials(**_decode_fields(financials_raw or {}, _FINANCIALS_FIELDS, "financials")),
        settings=AppSettings(**_decode_fields(settings_raw or {}, _SETTINGS_FIELDS, "settings")),
        missions=_merge_missions(doc.get("missions")),
    )


def loads(text: str) -> AppState:
    try:
        document = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise CorruptBackup(f"Backup is not valid JSON: {exc}") from exc
    return deserialize(document)
