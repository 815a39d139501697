from typing import Dict, Any
from fastapi import APIRouter, Depends
from farmly.api.deps import get_cart_registry
from farmly.api.schemas.cart import AddItemRequest, QuantityUpdate
from farmly.services.cart_store import CartRegistry

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("/{cart_key}", response_model=Dict[str, Any])
def get_cart(cart_key: str, carts: CartRegistry = Depends(get_cart_registry)):
    """
    Current cart for `cart_key`. An unknown key is an empty cart, not a 404.
    """
    return carts.get(cart_key).summary()


@router.post("/{cart_key}/items", response_model=Dict[str, Any])
def add_item(cart_key: str, payload: AddItemRequest, carts: CartRegistry = Depends(get_cart_registry)):
    """
    Add a line. A line of another order kind, or a preorder line for another
    event, replaces the whole cart; `action` in the response says what happened
    (append, merge, replace_kind, replace_event or reject).
    """
    session = carts.get(cart_key)
    state, action = session.add(payload.item.to_line(), payload.kind, payload.event_id)
    out = session.summary(state)
    out["action"] = action.value
    return out


@router.patch("/{cart_key}/items/{product_id}", response_model=Dict[str, Any])
def update_item_quantity(cart_key: str, product_id: int, payload: QuantityUpdate,
                         carts: CartRegistry = Depends(get_cart_registry)):
    session = carts.get(cart_key)
    return session.summary(session.update_quantity(product_id, payload.quantity))


@router.delete("/{cart_key}/items/{product_id}", response_model=Dict[str, Any])
def remove_item(cart_key: str, product_id: int, carts: CartRegistry = Depends(get_cart_registry)):
    session = carts.get(cart_key)
    return session.summary(session.remove(product_id))


@router.delete("/{cart_key}", response_model=Dict[str, Any])
def clear_cart(cart_key: str, carts: CartRegistry = Depends(get_cart_registry)):
    session = carts.get(cart_key)
    return session.summary(session.clear())
