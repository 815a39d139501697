# farmly/models/cart.py
from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class OrderKind(str, Enum):
    NONE = "NONE"
    STANDARD = "STANDARD"
    PREORDER = "PREORDER"

    @classmethod
    def parse(cls, raw: Any) -> "OrderKind":
        """Stored carts use null for an empty kind; anything unknown is a ValueError."""
        if raw is None or raw == "":
            return cls.NONE
        if isinstance(raw, cls):
            return raw
        return cls(str(raw).upper())


@dataclass(frozen=True)
class CartLine:
    product_id: int
    product_name: str = ""
    seller_name: str = ""
    unit_price: float = 0.0
    quantity: int = 1
    stock: Optional[int] = None  # last known stock; None when unknown

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CartLine":
        """Strict: stored lines are read back verbatim, so missing ids or bad numbers raise."""
        if not isinstance(d, dict):
            raise ValueError("Cart line must be an object")
        product_id = d.get("productId", d.get("product_id"))
        if product_id is None or isinstance(product_id, bool):
            raise ValueError("Cart line has no productId")
        stock = d.get("stock")
        return cls(
            product_id=int(product_id),
            product_name=str(d.get("productName", d.get("product_name")) or ""),
            seller_name=str(d.get("sellerName", d.get("seller_name")) or ""),
            unit_price=float(d.get("unitPrice", d.get("unit_price", 0.0))),
            quantity=int(d.get("quantity", 1)),
            stock=None if stock is None else int(stock),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": int(self.product_id),
            "productName": self.product_name,
            "sellerName": self.seller_name,
            "unitPrice": float(self.unit_price),
            "quantity": int(self.quantity),
            "stock": self.stock,
        }

    def with_quantity(self, quantity: int, stock: Optional[int] = None) -> "CartLine":
        return replace(self, quantity=quantity, stock=self.stock if stock is None else stock)

    def line_total(self) -> float:
        return float(self.unit_price) * int(self.quantity)


@dataclass(frozen=True)
class CartState:
    """
    Client cart: one order kind at a time, and for preorders one event.
    Values are immutable; cart_machine returns a new state for every transition.
    Serialised as {"type": ..., "eventId": ..., "items": [...]}.
    """
    kind: OrderKind = OrderKind.NONE
    event_id: Optional[int] = None
    lines: Tuple[CartLine, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "CartState":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, product_id: int) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CartState":
        if not isinstance(d, dict):
            raise ValueError("Cart state must be an object")
        raw_items = d.get("items")
        if not isinstance(raw_items, list):
            raise ValueError("Cart state has no items list")
        event_id = d.get("eventId")
        kind = OrderKind.parse(d.get("type"))
        return cls(
            kind=kind,
            event_id=int(event_id) if event_id is not None and kind is OrderKind.PREORDER else None,
            lines=tuple(CartLine.from_dict(it) for it in raw_items),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": None if self.kind is OrderKind.NONE else self.kind.value,
            "eventId": self.event_id,
            "items": [line.to_dict() for line in self.lines],
        }
