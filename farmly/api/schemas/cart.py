from typing import Literal, Optional
from pydantic import BaseModel, Field, constr

from farmly.api.schemas.base import CamelModel
from farmly.models.cart import CartLine


class CartLineSchema(CamelModel):
    product_id: int = Field(..., gt=0)
    product_name: constr(strip_whitespace=True, min_length=1)
    seller_name: str = ""
    unit_price: float = Field(..., ge=0.0)
    quantity: int = Field(1, ge=1)
    stock: Optional[int] = None

    def to_line(self) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            product_name=self.product_name,
            seller_name=self.seller_name,
            unit_price=self.unit_price,
            quantity=self.quantity,
            stock=self.stock,
        )


class AddItemRequest(CamelModel):
    item: CartLineSchema
    kind: Literal["STANDARD", "PREORDER"] = "STANDARD"
    event_id: Optional[int] = None


class QuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=1)
