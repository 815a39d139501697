# farmly/models/order.py
from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Optional, Dict, Any, List
from datetime import datetime
import json
import uuid

from farmly.core.state_machine import InvalidTransition, OptimisticLockError, StatusMachine


def _as_bool(raw: Any) -> bool:
    # the CSV store hands booleans back as 'True'/'False'
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "y", "t")
    return bool(raw)


def _as_int(raw: Any) -> Optional[int]:
    if raw in (None, ""):
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return None


def _load_json_list(raw: Any) -> List[Any]:
    if isinstance(raw, list):
        return raw
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return parsed if isinstance(parsed, list) else []


@dataclass
class OrderItem:
    product_id: int
    product_name: str = ""
    seller_name: str = ""
    unit_price: float = 0.0
    quantity: int = 1
    stall_name: Optional[str] = None
    status: str = "ACTIVE"  # ACTIVE, CANCELED

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=int(d.get("productId", d.get("product_id")) or 0),
            product_name=d.get("productName") or d.get("product_name") or "",
            seller_name=d.get("sellerName") or d.get("seller_name") or "",
            unit_price=float(d.get("unitPrice", d.get("unit_price")) or 0.0),
            quantity=int(float(d.get("quantity") or 1)),
            stall_name=d.get("stallName") or d.get("stall_name") or None,
            status=d.get("status") or "ACTIVE",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "sellerName": self.seller_name,
            "unitPrice": float(self.unit_price),
            "quantity": int(self.quantity),
            "stallName": self.stall_name,
            "status": self.status,
        }


@dataclass
class Order:
    """
    Order recorded at checkout. STANDARD orders are delivered to the buyer's
    address; PREORDER orders are picked up at the event's location.
    """
    id: Optional[int] = None
    order_number: str = field(default_factory=lambda: uuid.uuid4().hex)
    order_type: str = "STANDARD"  # STANDARD, PREORDER
    event_id: Optional[int] = None
    buyer_id: Optional[int] = None
    email: Optional[str] = None
    contact_name: str = ""
    contact_phone: str = ""
    delivery_city: str = ""
    delivery_street: str = ""
    delivery_postal_code: str = ""
    delivery_country: str = ""
    payment_method: str = "CASH"  # CARD, CASH
    total_price: float = 0.0
    status: str = "PENDING"  # PENDING, ONWAY, COMPLETED, CANCELED
    is_paid: bool = False
    items: List[OrderItem] = field(default_factory=list)
    status_history: List[Dict[str, Any]] = field(default_factory=list)
    version: int = 0
    created_at: Optional[datetime] = None
    paid_at: Optional[str] = None
    last_payment_tx: Optional[str] = None

    ALLOWED_TRANSITIONS = {
        "PENDING": ["ONWAY", "COMPLETED", "CANCELED"],
        "ONWAY": ["COMPLETED", "CANCELED"],
        "COMPLETED": [],
        "CANCELED": [],
    }

    def _make_state_machine(self) -> StatusMachine:
        return StatusMachine(state=self.status, allowed_transitions=self.ALLOWED_TRANSITIONS,
                             version=self.version, history=list(self.status_history))

    def _sync(self, result: Dict[str, Any]) -> None:
        self.status = result["state"]
        self.status_history = result["history"]
        self.version = int(result["version"])

    def record_created(self, actor: Optional[str] = None) -> None:
        sm = self._make_state_machine()
        label = "Preorder" if self.order_type == "PREORDER" else "Order"
        sm.record("ORDER_CREATED", actor=actor, message=f"{label} #{self.order_number[:8]} was created")
        self.status_history = sm.history

    def transition_to(self, new_status: str, actor: Optional[str] = None, meta: Optional[Dict[str, Any]] = None,
                      expected_version: Optional[int] = None) -> None:
        """Raises InvalidTransition or OptimisticLockError; on success bumps version."""
        sm = self._make_state_machine()
        self._sync(sm.apply(new_status, actor=actor, meta=meta, expected_version=expected_version))

    def cancel(self, actor: Optional[str] = None, expected_version: Optional[int] = None) -> None:
        sm = self._make_state_machine()
        result = sm.apply("CANCELED", actor=actor, action="ORDER_CANCELED",
                          message="Customer canceled the entire order", expected_version=expected_version)
        self._sync(result)
        for it in self.items:
            it.status = "CANCELED"

    def find_item(self, product_id: int) -> Optional[OrderItem]:
        for it in self.items:
            if it.product_id == product_id:
                return it
        return None

    def cancel_item(self, product_id: int, actor: Optional[str] = None,
                    expected_version: Optional[int] = None) -> OrderItem:
        """
        Cancel one line. The status stays; the total is recomputed over the lines still ACTIVE.
        Raises LookupError for an unknown product, InvalidTransition when the order is
        closed or the line already canceled, OptimisticLockError on a stale version.
        """
        sm = self._make_state_machine()
        if expected_version is not None and int(expected_version) != self.version:
            raise OptimisticLockError(f"Version mismatch (expected {expected_version}, got {self.version})")
        item = self.find_item(product_id)
        if item is None:
            raise LookupError(f"Product {product_id} is not part of this order")
        if sm.is_terminal():
            raise InvalidTransition(f"Order is {self.status}; its items can no longer be canceled")
        if item.status == "CANCELED":
            raise InvalidTransition(f'Item "{item.product_name}" is already canceled')

        item.status = "CANCELED"
        self.total_price = self.compute_total()
        sm.record("ITEM_CANCELED", actor=actor, message=f'Item "{item.product_name}" was canceled',
                  meta={"productId": product_id, "newTotalPrice": self.total_price})
        self.status_history = sm.history
        self.version += 1
        return item

    def compute_total(self) -> float:
        return float(sum(it.unit_price * it.quantity for it in self.items if it.status == "ACTIVE"))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Order":
        if d is None:
            raise ValueError("Cannot construct Order from None")
        created_at_raw = d.get("created_at")
        created_at = None
        if created_at_raw:
            if isinstance(created_at_raw, datetime):
                created_at = created_at_raw
            else:
                try:
                    created_at = datetime.fromisoformat(str(created_at_raw))
                except ValueError:
                    created_at = None
        return cls(
            id=_as_int(d.get("id")),
            order_number=str(d.get("order_number") or uuid.uuid4().hex),
            order_type=d.get("order_type") or "STANDARD",
            event_id=_as_int(d.get("event_id")),
            buyer_id=_as_int(d.get("buyer_id")),
            email=d.get("email") or None,
            contact_name=d.get("contact_name") or "",
            contact_phone=d.get("contact_phone") or "",
            delivery_city=d.get("delivery_city") or "",
            delivery_street=d.get("delivery_street") or "",
            delivery_postal_code=d.get("delivery_postal_code") or "",
            delivery_country=d.get("delivery_country") or "",
            payment_method=d.get("payment_method") or "CASH",
            total_price=float(d.get("total_price") or 0.0),
            status=d.get("status") or "PENDING",
            is_paid=_as_bool(d.get("is_paid", False)),
            items=[OrderItem.from_dict(it) for it in _load_json_list(d.get("items")) if isinstance(it, dict)],
            status_history=_load_json_list(d.get("status_history")),
            version=_as_int(d.get("version")) or 0,
            created_at=created_at,
            paid_at=d.get("paid_at") or None,
            last_payment_tx=d.get("last_payment_tx") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Flatten for the CSV store: items and history become JSON strings."""
        out = asdict(self)
        out["items"] = json.dumps([it.to_dict() for it in self.items], ensure_ascii=False)
        out["status_history"] = json.dumps(self.status_history or [], ensure_ascii=False)
        out["total_price"] = float(self.total_price)
        out["is_paid"] = bool(self.is_paid)
        out["version"] = int(self.version or 0)
        out["created_at"] = self.created_at.isoformat(sep=" ") if self.created_at else ""
        return out

    def to_public(self, event: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Shape returned by the public order lookup."""
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "status": self.status,
            "orderType": self.order_type,
            "createdAt": self.created_at.isoformat(sep=" ") if self.created_at else None,
            "isPaid": self.is_paid,
            "paymentMethod": self.payment_method,
            "totalPrice": float(self.total_price or 0.0),
            "version": self.version,
            "contact": {"name": self.contact_name, "phone": self.contact_phone, "email": self.email},
            "delivery": {
                "city": self.delivery_city,
                "street": self.delivery_street,
                "postalCode": self.delivery_postal_code,
                "country": self.delivery_country,
            },
            "event": (
                {
                    "id": _as_int(event.get("id")),
                    "title": event.get("title"),
                    "startDate": event.get("start_date"),
                    "endDate": event.get("end_date"),
                    "city": event.get("city"),
                    "street": event.get("street"),
                    "postalCode": event.get("postal_code"),
                    "country": event.get("country"),
                }
                if event
                else None
            ),
            "items": [it.to_dict() for it in self.items],
        }
