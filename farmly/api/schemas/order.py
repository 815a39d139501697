from typing import Optional, Any, Dict
from pydantic import BaseModel, Field

from farmly.api.schemas.base import CamelModel


class PaymentRequest(BaseModel):
    type: str = Field("card", description="Payment type (e.g. 'card','test')")
    card_last4: Optional[str] = Field(None, description="Last 4 digits of card (the test gateway accepts '4242')")


class CancelRequest(CamelModel):
    actor: Optional[str] = Field(None, description="Who cancels (recorded in history)")
    expected_version: Optional[int] = Field(None, description="Optimistic-lock expected version")


class TransitionRequest(CamelModel):
    status: str = Field(..., min_length=1, description="Target status: ONWAY, COMPLETED or CANCELED")
    actor: Optional[str] = None
    meta: Optional[Dict[str, Any]] = Field(None, description="Optional transition metadata")
    expected_version: Optional[int] = None
