"""
Persistence host for the cart state machine.

CartStorage keeps one JSON blob per cart key in the `cart_slots` table.
CartSession owns the current state for one key: it reads the slot once when
created and writes it after every transition. If a write fails the session
keeps its in-memory state, which stays authoritative while the session is cached.
"""
from __future__ import annotations

import json
import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from filelock import Timeout

from farmly.config import settings
from farmly.core import cart_machine
from farmly.core.cart_machine import AddAction
from farmly.database import FileBackedDB, db as default_db
from farmly.models.cart import CartLine, CartState

logger = logging.getLogger(__name__)


class CartStorage:
    def __init__(self, db: FileBackedDB = default_db, table: Optional[str] = None):
        self.db = db
        self.table = table or settings.CART_STORAGE_TABLE

    def load(self, key: str) -> CartState:
        """Read the stored cart for `key`; anything missing or malformed reads as an empty cart."""
        try:
            row = self.db.get_record(self.table, "key", key)
        except (OSError, ValueError, Timeout) as exc:
            logger.warning("cart slot %s unreadable, starting empty: %s", key, exc)
            return CartState.empty()
        if not row or not row.get("value"):
            return CartState.empty()
        try:
            return CartState.from_dict(json.loads(row["value"]))
        except (ValueError, TypeError, KeyError, OverflowError) as exc:
            logger.warning("cart slot %s holds a malformed cart, starting empty: %s", key, exc)
            return CartState.empty()

    def save(self, key: str, state: CartState) -> None:
        self.db.upsert_record(
            self.table,
            "key",
            key,
            {
                "value": json.dumps(state.to_dict(), ensure_ascii=False),
                "updated_at": datetime.utcnow().isoformat(sep=" "),
            },
        )



class CartSession:
    """
    Current cart for one key. Every read-modify-write runs under the session lock,
    so concurrent requests on the same key apply one after another.
    """

    def __init__(self, key: str, storage: CartStorage):
        self.key = key
        self.storage = storage
        self.lock = threading.RLock()
        self.state = storage.load(key)

    def _commit(self, new_state: CartState) -> CartState:
        self.state = new_state
        try:
            self.storage.save(self.key, new_state)
        except (OSError, ValueError, Timeout) as exc:
            logger.warning("could not persist cart %s, keeping it in memory: %s", self.key, exc)
        return self.state

    def add(self, item: CartLine, kind: Any, event_id: Optional[int] = None) -> Tuple[CartState, AddAction]:
        """Returns the new state and what the add did."""
        with self.lock:
            action = cart_machine.plan_add(self.state, kind, event_id, item.product_id)
            new_state = cart_machine.add_item(self.state, item, kind, event_id)
            if new_state == self.state:
                # unknown kind, exhausted stock or a merge that changed nothing
                action = AddAction.REJECT
            logger.debug("cart %s add product=%s action=%s", self.key, item.product_id, action.value)
            return self._commit(new_state), action

    def remove(self, product_id: int) -> CartState:
        with self.lock:
            return self._commit(cart_machine.remove_item(self.state, product_id))

    def update_quantity(self, product_id: int, quantity: Any) -> CartState:
        with self.lock:
            return self._commit(cart_machine.update_quantity(self.state, product_id, quantity))

    def clear(self) -> CartState:
        with self.lock:
            return self._commit(cart_machine.clear())

    def summary(self, state: Optional[CartState] = None) -> Dict[str, Any]:
        state = self.state if state is None else state
        out = state.to_dict()
        out["totalPrice"] = cart_machine.total_price(state)
        out["itemCount"] = cart_machine.item_count(state)
        return out


class CartRegistry:
    """
    Key -> CartSession map, least recently used first out once it holds `max_sessions`.
    An evicted cart is read back from storage on its next access.
    """

    def __init__(self, storage: Optional[CartStorage] = None, max_sessions: Optional[int] = None):
        self.storage = storage or CartStorage()
        self.max_sessions = max_sessions or settings.CART_SESSION_CACHE_SIZE
        self._sessions: "OrderedDict[str, CartSession]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> CartSession:
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = CartSession(key, self.storage)
                self._sessions[key] = session
            else:
                self._sessions.move_to_end(key)
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("cart session %s evicted", evicted)
            return session

    def __len__(self) -> int:
        return len(self._sessions)

    def reset(self) -> None:
        with self._lock:
            self._sessions.clear()


registry = CartRegistry()
