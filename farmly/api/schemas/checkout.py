from typing import Literal, Optional
from pydantic import EmailStr, Field, conlist, constr, model_validator

from farmly.api.schemas.base import CamelModel

PHONE_PATTERN = r"^\+?\d{6,15}$"


class CheckoutItem(CamelModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1, description="Quantity must be at least 1")
    unit_price: float = Field(..., ge=0.0)
    product_name: constr(strip_whitespace=True, min_length=1)
    seller_name: constr(strip_whitespace=True, min_length=1)


class CheckoutUserInfo(CamelModel):
    buyer_id: Optional[int] = Field(None, gt=0)
    email: Optional[EmailStr] = None
    contact_name: constr(strip_whitespace=True, min_length=1)
    contact_phone: constr(strip_whitespace=True, pattern=PHONE_PATTERN)
    delivery_city: constr(strip_whitespace=True, min_length=1, max_length=100)
    delivery_street: constr(strip_whitespace=True, min_length=1, max_length=150)
    delivery_postal_code: constr(strip_whitespace=True, min_length=1, max_length=20)
    delivery_country: constr(strip_whitespace=True, min_length=1, max_length=100)
    payment_method: Literal["CARD", "CASH"]

    @model_validator(mode="after")
    def _buyer_or_email(self):
        if not self.buyer_id and not self.email:
            raise ValueError("Either buyerId or email must be provided")
        return self


class PreorderUserInfo(CamelModel):
    buyer_id: Optional[int] = Field(None, gt=0)
    email: EmailStr
    contact_name: constr(strip_whitespace=True, min_length=1)
    contact_phone: constr(strip_whitespace=True, pattern=PHONE_PATTERN)


class CheckoutRequest(CamelModel):
    cart_items: conlist(CheckoutItem, min_length=1)
    user_info: CheckoutUserInfo


class PreorderRequest(CamelModel):
    event_id: int
    cart_items: conlist(CheckoutItem, min_length=1)
    user_info: PreorderUserInfo


class CheckoutBody(CamelModel):
    user_info: CheckoutUserInfo


class PreorderBody(CamelModel):
    user_info: PreorderUserInfo


class CheckoutResult(CamelModel):
    message: str
    order_id: int
    order_number: str
    total_price: float
