from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Body
from datetime import datetime
import json
import logging

from farmly.api.deps import get_db
from farmly.database import FileBackedDB
from farmly.models.order import Order
from farmly.core.state_machine import InvalidTransition, OptimisticLockError
from farmly.services.payment import PaymentError, process_payment
from farmly.api.schemas.order import CancelRequest, PaymentRequest, TransitionRequest

router = APIRouter(prefix="/api/orders", tags=["orders"])
logger = logging.getLogger(__name__)


def _load_order(db: FileBackedDB, order_number: str) -> Order:
    row = db.get_record("orders", "order_number", order_number)
    if not row:
        raise HTTPException(status_code=404, detail="Order not found")
    return Order.from_dict(row)


def _persist_status(db: FileBackedDB, order: Order) -> Order:
    updates = {
        "status": order.status,
        "status_history": json.dumps(order.status_history or [], ensure_ascii=False),
        "version": int(order.version),
        "total_price": float(order.total_price or 0.0),
        "items": json.dumps([it.to_dict() for it in order.items], ensure_ascii=False),
    }
    updated = db.update_record("orders", "order_number", order.order_number, updates)
    if not updated:
        raise HTTPException(status_code=500, detail="Failed to persist order update")
    return Order.from_dict(updated)


def _public(db: FileBackedDB, order: Order) -> Dict[str, Any]:
    event = db.get_record("events", "id", order.event_id) if order.event_id else None
    return order.to_public(event)


@router.get("/{order_number}")
def get_order(order_number: str, db: FileBackedDB = Depends(get_db)):
    """
    Public order tracking by order number.
    """
    return _public(db, _load_order(db, order_number))


@router.post("/{order_number}/pay")
def pay_order(order_number: str, payment: PaymentRequest = Body(...), db: FileBackedDB = Depends(get_db)):
    """
    Charge a CARD order. On success the order is marked paid; the status stays as it is.
    """
    order = _load_order(db, order_number)
    if order.payment_method != "CARD":
        raise HTTPException(status_code=400, detail="Order is paid in cash at delivery or pickup")
    if order.status == "CANCELED":
        raise HTTPException(status_code=400, detail="Order is canceled")
    if order.is_paid:
        raise HTTPException(status_code=400, detail="Order is already paid")
    if order.total_price <= 0:
        raise HTTPException(status_code=400, detail="Nothing left to pay on this order")

    try:
        result = process_payment(order.total_price, payment.model_dump())
    except PaymentError as e:
        raise HTTPException(status_code=502, detail=f"Payment gateway error: {e}")

    if not result.get("success"):
        db.update_record("orders", "order_number", order_number, {
            "last_payment_tx": result.get("transaction_id"),
            "last_payment_msg": result.get("message") or "failure",
        })
        raise HTTPException(status_code=402, detail="Payment failed: " + (result.get("message") or "unknown"))

    db.update_record("orders", "order_number", order_number, {
        "is_paid": True,
        "paid_at": datetime.utcnow().isoformat(sep=" "),
        "last_payment_tx": result.get("transaction_id"),
        "last_payment_msg": result.get("message") or "ok",
    })
    logger.info("order %s paid (%s)", order_number[:8], result.get("transaction_id"))
    return {"ok": True, "transaction": result}


@router.patch("/{order_number}/cancel")
def cancel_order(order_number: str, payload: Optional[CancelRequest] = Body(None), db: FileBackedDB = Depends(get_db)):
    """
    Cancel the whole order: status CANCELED, every item CANCELED.
    """
    order = _load_order(db, order_number)
    if order.status == "CANCELED":
        raise HTTPException(status_code=400, detail="Order already canceled")
    try:
        order.cancel(
            actor=(payload.actor if payload else None) or order.email,
            expected_version=payload.expected_version if payload else None,
        )
    except InvalidTransition as it:
        raise HTTPException(status_code=400, detail=str(it))
    except OptimisticLockError as ol:
        raise HTTPException(status_code=409, detail=str(ol))
    saved = _persist_status(db, order)
    return {"message": "Order canceled successfully", "order": _public(db, saved)}


@router.patch("/{order_number}/items/{product_id}/cancel")
def cancel_order_item(order_number: str, product_id: int, payload: Optional[CancelRequest] = Body(None),
                      db: FileBackedDB = Depends(get_db)):
    """
    Cancel one product line. The order keeps its status and its total drops to the
    lines still ACTIVE.
    """
    order = _load_order(db, order_number)
    try:
        item = order.cancel_item(
            product_id,
            actor=(payload.actor if payload else None) or order.email,
            expected_version=payload.expected_version if payload else None,
        )
    except LookupError as le:
        raise HTTPException(status_code=404, detail=str(le))
    except InvalidTransition as it:
        raise HTTPException(status_code=400, detail=str(it))
    except OptimisticLockError as ol:
        raise HTTPException(status_code=409, detail=str(ol))
    saved = _persist_status(db, order)
    logger.info("order %s: item %s canceled, total now %.2f", order_number[:8], item.product_id, saved.total_price)
    return {
        "message": "Product from order canceled successfully",
        "newTotalPrice": saved.total_price,
        "order": _public(db, saved),
    }


@router.post("/{order_number}/transition")
def transition_order_status(order_number: str, payload: TransitionRequest, db: FileBackedDB = Depends(get_db)):
    """
    Move an order along its lifecycle (PENDING -> ONWAY -> COMPLETED, or CANCELED).
    Body: { "status": "<target>", "expectedVersion": <int, optional> }
    """
    order = _load_order(db, order_number)
    try:
        if payload.status.strip().upper() == "CANCELED":
            order.cancel(actor=payload.actor, expected_version=payload.expected_version)
        else:
            order.transition_to(payload.status, actor=payload.actor, meta=payload.meta,
                                expected_version=payload.expected_version)
    except InvalidTransition as it:
        raise HTTPException(status_code=400, detail=str(it))
    except OptimisticLockError as ol:
        raise HTTPException(status_code=409, detail=str(ol))
    saved = _persist_status(db, order)
    return {"ok": True, "order": _public(db, saved)}
