"""
Cart consolidation: how an added line joins the current cart.

States are Empty, StandardActive and PreorderActive(event_id). Adding a line
of the other kind, or a preorder line for another event, throws the current
lines away and starts a new cart with just that line. Otherwise the line is
merged into an existing line for the same product or appended.

Every function here is pure: it takes a CartState and returns a new one,
never raises, and never mutates its input. Persisting the result is the
caller's job (see farmly.services.cart_store).
"""
from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Any, Optional

from farmly.models.cart import CartLine, CartState, OrderKind

logger = logging.getLogger(__name__)

MAX_LINE_QUANTITY = 9999


class AddAction(str, Enum):
    REPLACE_KIND = "replace_kind"
    REPLACE_EVENT = "replace_event"
    MERGE = "merge"
    APPEND = "append"
    REJECT = "reject"


def _coerce_kind(kind: Any) -> Optional[OrderKind]:
    try:
        parsed = OrderKind.parse(kind)
    except ValueError:
        return None
    return None if parsed is OrderKind.NONE else parsed


def _whole(value: Any) -> Optional[int]:
    """Integer part of `value`, or None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        parsed = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(parsed):
        return None
    return int(math.floor(parsed))


def clamp_quantity(quantity: Any, stock: Optional[int] = None) -> int:
    """
    Floor to an integer between 1 and MAX_LINE_QUANTITY, capped at `stock` when it is known.
    Returns 0 only when the known stock is exhausted.
    """
    normalized = _whole(quantity)
    normalized = 1 if normalized is None else min(max(1, normalized), MAX_LINE_QUANTITY)
    max_allowed = _whole(stock)
    if max_allowed is None:
        return normalized
    if max_allowed <= 0:
        return 0
    return min(normalized, max_allowed)


def plan_add(state: CartState, kind: Any, event_id: Optional[int] = None, product_id: Optional[int] = None) -> AddAction:
    """Decide what add_item would do, without looking at stock."""
    parsed = _coerce_kind(kind)
    if parsed is None:
        return AddAction.REJECT
    if state.kind is not OrderKind.NONE and state.kind is not parsed:
        return AddAction.REPLACE_KIND
    if parsed is OrderKind.PREORDER and state.event_id is not None and state.event_id != event_id:
        return AddAction.REPLACE_EVENT
    if product_id is not None and state.find(product_id) is not None:
        return AddAction.MERGE
    return AddAction.APPEND


def add_item(state: CartState, item: CartLine, kind: Any, event_id: Optional[int] = None) -> CartState:
    action = plan_add(state, kind, event_id, item.product_id)
    if action is AddAction.REJECT:
        logger.info("cart add rejected: unknown order kind %r", kind)
        return state
    parsed = OrderKind.parse(kind)
    new_event = event_id if parsed is OrderKind.PREORDER else None

    if action in (AddAction.REPLACE_KIND, AddAction.REPLACE_EVENT):
        quantity = clamp_quantity(item.quantity, item.stock)
        if quantity == 0:
            return state
        logger.info("cart reset (%s): %s/%s -> %s/%s", action.value, state.kind.value, state.event_id, parsed.value, new_event)
        return CartState(kind=parsed, event_id=new_event, lines=(item.with_quantity(quantity),))

    if action is AddAction.MERGE:
        existing = state.find(item.product_id)
        stock = _whole(item.stock if item.stock is not None else existing.stock)
        if stock is not None and stock <= 0:
            return state
        quantity = clamp_quantity(clamp_quantity(existing.quantity) + clamp_quantity(item.quantity), stock)
        if quantity == existing.quantity:
            return state
        # price and names of the line already in the cart stand
        lines = tuple(
            line.with_quantity(quantity, stock) if line.product_id == item.product_id else line
            for line in state.lines
        )
        return CartState(
            kind=parsed,
            event_id=state.event_id if state.event_id is not None else new_event,
            lines=lines,
        )

    quantity = clamp_quantity(item.quantity, item.stock)
    if quantity == 0:
        return state
    return CartState(
        kind=parsed,
        event_id=state.event_id if state.event_id is not None else new_event,
        lines=state.lines + (item.with_quantity(quantity),),
    )


def remove_item(state: CartState, product_id: int) -> CartState:
    # kind and event stay until an explicit clear
    lines = tuple(line for line in state.lines if line.product_id != product_id)
    return CartState(kind=state.kind, event_id=state.event_id, lines=lines)


def update_quantity(state: CartState, product_id: int, quantity: Any) -> CartState:
    line = state.find(product_id)
    if line is None:
        return state
    normalized = clamp_quantity(quantity, line.stock)
    if normalized == 0 or normalized == line.quantity:
        return state
    lines = tuple(
        l.with_quantity(normalized) if l.product_id == product_id else l for l in state.lines
    )
    return CartState(kind=state.kind, event_id=state.event_id, lines=lines)


def clear() -> CartState:
    return CartState.empty()


def total_price(state: CartState) -> float:
    return float(sum(line.line_total() for line in state.lines))


def item_count(state: CartState) -> int:
    return int(sum(line.quantity for line in state.lines))
