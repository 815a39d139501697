from typing import Optional
from pydantic import Field

from farmly.api.schemas.base import CamelModel


class ProductOut(CamelModel):
    id: int
    name: str
    category: str = "Other"
    description: Optional[str] = ""
    price: float = 0.0
    stock: int = 0
    farm_id: Optional[int] = None
    seller_name: Optional[str] = None
    rating: Optional[float] = None
    created_at: Optional[str] = None


class FarmOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = ""
    city: str = ""
    street: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = ""
    created_at: Optional[str] = None


class StallOfferOut(CamelModel):
    id: int
    event_id: int
    product_id: int
    product_name: str = ""
    seller_name: str = ""
    stall_name: Optional[str] = None
    price: float = 0.0
    stock: int = 0


class EventOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = ""
    start_date: str
    end_date: str
    city: str = ""
    street: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = ""


class ReviewCreate(CamelModel):
    rating: int = Field(..., ge=1, le=5, description="Rating between 1 and 5")
    comment: str = ""
    author_name: Optional[str] = None


class ReviewOut(CamelModel):
    id: int
    product_id: int
    rating: int
    comment: str = ""
    author_name: Optional[str] = None
    created_at: Optional[str] = None
