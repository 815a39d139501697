"""
Checkout: hand a consolidated cart to order recording and clear it on success.

    submission = build_submission(session.state, user_info)
    order = submit_cart(session, user_info)          # records the order, clears the cart

The submission has the shape {"cartItems": [...], "eventId"?: int, "userInfo": {...}}.
A failed submission raises a CheckoutError subclass and leaves the cart untouched.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from pydantic import BaseModel, ValidationError

from farmly.api.schemas.checkout import CheckoutRequest, PreorderRequest
from farmly.core import cart_machine
from farmly.database import FileBackedDB, db as default_db
from farmly.models.cart import CartState, OrderKind
from farmly.models.order import Order, OrderItem
from farmly.services.cart_store import CartSession

logger = logging.getLogger(__name__)


class CheckoutError(Exception):
    status_code = 400


class EmptyCartError(CheckoutError):
    pass


class CartKindMismatch(CheckoutError):
    pass


class InvalidSubmission(CheckoutError):
    status_code = 422


class EventNotFound(CheckoutError):
    status_code = 404


class ProductsUnavailable(CheckoutError):
    pass


Submitter = Callable[[Dict[str, Any]], Order]


def build_submission(state: CartState, user_info: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(user_info, BaseModel):
        user_info = user_info.model_dump(by_alias=True, exclude_none=True, mode="json")
    payload: Dict[str, Any] = {
        "cartItems": [
            {
                "productId": line.product_id,
                "productName": line.product_name,
                "sellerName": line.seller_name,
                "unitPrice": float(line.unit_price),
                "quantity": int(line.quantity),
            }
            for line in state.lines
        ],
        "userInfo": dict(user_info or {}),
    }
    if state.kind is OrderKind.PREORDER:
        payload["eventId"] = state.event_id
    return payload


def _pickup_line(event: Dict[str, Any]) -> str:
    locality = " ".join(p for p in (event.get("postal_code"), event.get("city")) if p)
    return " • ".join(p for p in (event.get("street"), locality, event.get("country")) if p)


def _save(db: FileBackedDB, order: Order) -> Order:
    order.created_at = datetime.utcnow()
    order.total_price = order.compute_total()
    order.record_created(actor=order.email or (str(order.buyer_id) if order.buyer_id else None))
    saved = db.create_record("orders", order.to_dict(), id_field="id")
    order.id = int(saved["id"])
    return order


def place_standard_order(request: CheckoutRequest, db: FileBackedDB = default_db) -> Order:
    info = request.user_info
    order = Order(
        order_type="STANDARD",
        buyer_id=info.buyer_id,
        email=str(info.email) if info.email else None,
        contact_name=info.contact_name,
        contact_phone=info.contact_phone,
        delivery_city=info.delivery_city,
        delivery_street=info.delivery_street,
        delivery_postal_code=info.delivery_postal_code,
        delivery_country=info.delivery_country,
        payment_method=info.payment_method,
        items=[
            OrderItem(
                product_id=it.product_id,
                product_name=it.product_name,
                seller_name=it.seller_name,
                unit_price=it.unit_price,
                quantity=it.quantity,
            )
            for it in request.cart_items
        ],
    )
    return _save(db, order)


def place_preorder(request: PreorderRequest, db: FileBackedDB = default_db) -> Order:
    event = db.get_record("events", "id", request.event_id)
    if not event:
        raise EventNotFound("Event not found")

    offers = {}
    for row in db.filter_records("event_products", "event_id", request.event_id):
        try:
            offers[int(float(row.get("product_id")))] = row
        except (TypeError, ValueError):
            continue
    missing = [it.product_id for it in request.cart_items if it.product_id not in offers]
    if missing:
        raise ProductsUnavailable("Some products are not available for this event")

    info = request.user_info
    items = []
    for it in request.cart_items:
        offer = offers[it.product_id]
        stall = (offer.get("stall_name") or "").strip() or None
        items.append(
            OrderItem(
                product_id=it.product_id,
                product_name=it.product_name,
                seller_name=offer.get("seller_name") or it.seller_name,
                unit_price=it.unit_price,
                quantity=it.quantity,
                stall_name=stall,
            )
        )
    order = Order(
        order_type="PREORDER",
        event_id=request.event_id,
        buyer_id=info.buyer_id,
        email=str(info.email),
        contact_name=info.contact_name,
        contact_phone=info.contact_phone,
        delivery_city=event.get("city") or "",
        delivery_street=event.get("street") or "",
        delivery_postal_code=event.get("postal_code") or "",
        delivery_country=event.get("country") or "",
        payment_method="CASH",
        items=items,
    )
    order = _save(db, order)
    logger.info("preorder %s for event %s, pickup at %s", order.order_number[:8], request.event_id, _pickup_line(event))
    return order


def record_order(submission: Dict[str, Any], db: FileBackedDB = default_db) -> Order:
    """Default submitter: validate the submission and write the order."""
    try:
        if "eventId" in submission:
            return place_preorder(PreorderRequest.model_validate(submission), db)
        return place_standard_order(CheckoutRequest.model_validate(submission), db)
    except ValidationError as exc:
        messages = "; ".join(err.get("msg", "") for err in exc.errors())
        raise InvalidSubmission(messages or "Invalid checkout submission") from exc


def submit_cart(
    session: CartSession,
    user_info: Union[BaseModel, Dict[str, Any]],
    expected_kind: OrderKind = OrderKind.STANDARD,
    submitter: Optional[Submitter] = None,
) -> Order:
    """
    Submit the session's cart. The cart must be non-empty and of `expected_kind`;
    it is cleared only after the submitter returns an order. The session lock is held
    throughout, so no add can slip in between submitting and clearing.
    """
    with session.lock:
        state = session.state
        if state.is_empty:
            raise EmptyCartError("Cart cannot be empty")
        if state.kind is not expected_kind:
            raise CartKindMismatch(f"Cart holds {state.kind.value} items, expected {expected_kind.value}")
        if expected_kind is OrderKind.PREORDER and state.event_id is None:
            raise CartKindMismatch("Preorder cart has no event")

        submission = build_submission(state, user_info)
        order = (submitter or record_order)(submission)
        logger.info(
            "checkout %s: order %s total=%.2f items=%d",
            session.key, order.order_number[:8], cart_machine.total_price(state), cart_machine.item_count(state),
        )
        session.clear()
        return order
