from fastapi import APIRouter, Depends, HTTPException

from farmly.api.deps import get_cart_registry, get_db
from farmly.api.schemas.checkout import CheckoutBody, CheckoutResult, PreorderBody
from farmly.database import FileBackedDB
from farmly.models.cart import OrderKind
from farmly.services.cart_store import CartRegistry
from farmly.services.checkout import CheckoutError, record_order, submit_cart

router = APIRouter(tags=["checkout"])


def _checkout(cart_key: str, user_info, kind: OrderKind, carts: CartRegistry, db: FileBackedDB) -> CheckoutResult:
    session = carts.get(cart_key)
    try:
        order = submit_cart(session, user_info, expected_kind=kind, submitter=lambda s: record_order(s, db))
    except CheckoutError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    message = "Preorder created" if kind is OrderKind.PREORDER else "Order was successfully created"
    return CheckoutResult(message=message, order_id=order.id, order_number=order.order_number,
                          total_price=order.total_price)


@router.post("/api/checkout/{cart_key}", response_model=CheckoutResult)
def checkout(cart_key: str, payload: CheckoutBody, carts: CartRegistry = Depends(get_cart_registry),
             db: FileBackedDB = Depends(get_db)):
    """
    Place a STANDARD order from the cart stored under `cart_key`.
    Body: { "userInfo": {contactName, contactPhone, delivery*, paymentMethod, email | buyerId} }
    The cart is cleared once the order is recorded.
    """
    return _checkout(cart_key, payload.user_info, OrderKind.STANDARD, carts, db)


@router.post("/api/checkout-preorder/{cart_key}", response_model=CheckoutResult)
def checkout_preorder(cart_key: str, payload: PreorderBody, carts: CartRegistry = Depends(get_cart_registry),
                      db: FileBackedDB = Depends(get_db)):
    """
    Place a PREORDER (cash, pickup at the event) from the cart stored under `cart_key`.
    404 if the cart's event is gone, 400 if a product is not offered at that event.
    """
    return _checkout(cart_key, payload.user_info, OrderKind.PREORDER, carts, db)
