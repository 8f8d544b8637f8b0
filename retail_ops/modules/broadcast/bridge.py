"""
modules/broadcast/bridge.py

Purpose
-------
Connect the store to a realtime channel shared with remote customer portals.

Events
------
- STOCK_UPDATE   (out)  batch list, after any change to batches and on request
- REQUEST_STOCK  (in)   answered with STOCK_UPDATE
- NEW_ORDER      (in)   {customer, ghostId, total, items: [{batchId, weight, price}]}
                        -> staged transaction for the POS + notification
- CHAT_MESSAGE   (both) {id, sender, text, timestamp, isEncrypted}; text is
                        scrambled with the channel id

The channel is any object with ``send(event, payload)`` and
``on(event, handler)``. Transport failures are logged and dropped; the core
never sees them.
"""
from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Protocol

from ...utils.helpers import new_id, safe_round
from ...utils.validators import try_parse_float
from ..backup_restore.codec import encode_batches
from ..customer.operations import find_by_ghost_id
from ..state.models import AppState, StagedTransaction
from ..state.store import Store
from .scrambler import scramble, unscramble

STOCK_UPDATE = "STOCK_UPDATE"
REQUEST_STOCK = "REQUEST_STOCK"
NEW_ORDER = "NEW_ORDER"
CHAT_MESSAGE = "CHAT_MESSAGE"

SENDER_MANAGER = "MANAGER"
SENDER_CUSTOMER = "CUSTOMER"


class ChannelLike(Protocol):
    def send(self, event: str, payload: Any) -> None: ...
    def on(self, event: str, handler: Callable[[Any], None]) -> None: ...


@dataclass(frozen=True)
class ChatMessage:
    id: str
    sender: str
    text: str
    timestamp: str
    is_encrypted: bool = True


class BroadcastBridge:
    def __init__(
        self,
        store: Store,
        channel: ChannelLike,
        channel_id: str,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._channel = channel
        self._channel_id = channel_id
        self._log = logger or logging.getLogger(__name__)
        self.messages: List[ChatMessage] = []

        channel.on(REQUEST_STOCK, self._on_request_stock)
        channel.on(NEW_ORDER, self._on_new_order)
        channel.on(CHAT_MESSAGE, self._on_chat_message)
        self._unsubscribe = store.subscribe(self._on_state_changed)

    def close(self) -> None:
        self._unsubscribe()

    # ---- outbound ----------------------------------------------------

    def _send(self, event: str, payload: Any) -> bool:
        try:
            self._channel.send(event, payload)
        except Exception:
            self._log.warning("broadcast %s failed:\n%s", event, traceback.format_exc())
            return False
        return True

    def publish_stock(self) -> bool:
        return self._send(STOCK_UPDATE, encode_batches(self._store.state.batches))

    def send_manager_message(self, text: str) -> ChatMessage:
        msg = ChatMessage(
            id=new_id(),
            sender=SENDER_MANAGER,
            text=text,
            timestamp=self._store.now_iso(),
        )
        self.messages.append(msg)
        self._send(CHAT_MESSAGE, {
            "id": msg.id,
            "sender": msg.sender,
            "text": scramble(text, self._channel_id),
            "timestamp": msg.timestamp,
            "isEncrypted": True,
        })
        return msg

    def clear_chat(self) -> None:
        self.messages.clear()

    # ---- inbound -----------------------------------------------------

    def _on_state_changed(self, old: AppState, new: AppState) -> None:
        if old.batches != new.batches:
            self.publish_stock()

    def _on_request_stock(self, _payload: Any = None) -> None:
        self.publish_stock()

    def _on_new_order(self, payload: Any) -> None:
        if not isinstance(payload, Mapping):
            self._log.warning("NEW_ORDER ignored: payload is not an object")
            return
        ghost_id = str(payload.get("ghostId") or "")
        linked = find_by_ghost_id(self._store.state, ghost_id) if ghost_id else None
        display_name = linked.name if linked else (payload.get("customer") or "Ghost Guest")

        _, total = try_parse_float(payload.get("total"))
        symbol = self._store.state.settings.currency_symbol
        self._store.notify(f"New Remote Order from {display_name}: {symbol}{(total or 0.0):.2f}", "SUCCESS")

        items = payload.get("items") or []
        if not isinstance(items, list):
            self._log.warning("NEW_ORDER items ignored: expected a list, got %s", type(items).__name__)
            return
        if not items or not isinstance(items[0], Mapping):
            return
        item = items[0]
        ok_w, weight = try_parse_float(item.get("weight"))
        ok_p, price = try_parse_float(item.get("price"))
        if not (ok_w and ok_p):
            self._log.warning("NEW_ORDER item ignored: bad weight/price %r", item)
            return
        self._store.stage_transaction(StagedTransaction(
            batch_id=str(item.get("batchId") or ""),
            weight=weight,
            amount=safe_round(weight * price),
            customer_name=display_name,
            customer_id=linked.id if linked else "",
            is_remote=True,
            ghost_id=ghost_id,
        ))

    def _on_chat_message(self, payload: Any) -> None:
        if not isinstance(payload, Mapping) or payload.get("sender") != SENDER_CUSTOMER:
            return
        msg = ChatMessage(
            id=str(payload.get("id") or new_id()),
            sender=SENDER_CUSTOMER,
            text=unscramble(str(payload.get("text") or ""), self._channel_id),
            timestamp=str(payload.get("timestamp") or self._store.now_iso()),
        )
        self.messages.append(msg)
        self._store.notify("New encrypted message received.", "INFO")
