"""
Pydantic models for payments.

Payments are simulated: card and mobile money payments settle
immediately (after an optional delay) while cash payments stay
``PENDING`` until confirmed by the vendor or staff.  Only the last
four card digits are ever stored.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


PaymentMethod = Literal["card", "mobile_money", "cash"]
MobileProvider = Literal["mpesa", "airtel", "orange"]


class PaymentProcess(BaseModel):
    """Checkout payment request."""

    booking_id: int
    method: PaymentMethod = Field(..., example="card")
    card_number: Optional[str] = Field(None, example="4242 4242 4242 4242")
    expiry: Optional[str] = Field(None, example="12/29", description="MM/YY")
    cvv: Optional[str] = Field(None, example="123")
    card_name: Optional[str] = Field(None, example="Jane Mbuyi")
    mobile_number: Optional[str] = Field(None, example="+243810000000")
    mobile_provider: Optional[MobileProvider] = None


class PaymentRead(BaseModel):
    id: int
    booking_id: int
    user_id: int
    amount: float
    currency: str
    method: Optional[str] = None
    provider: Optional[str] = None
    status: str
    transaction_id: Optional[str] = None
    card_last4: Optional[str] = None
    notes: Optional[str] = None
    confirmed_by: Optional[int] = None
    confirmed_at: Optional[str] = None
    booking_status: Optional[str] = None
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class PaymentMethodInfo(BaseModel):
    id: str
    name: str
    description: str
    providers: List[str] = Field(default_factory=list)
