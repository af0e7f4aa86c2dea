"""
Pydantic models for the cart, checkout and bookings.

A booking groups one or more services of a single vendor.  Prices are
always taken from the catalogue at booking time and copied onto the
booking items, so later price changes do not alter existing bookings.
"""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .common import Pagination


ServiceType = Literal["AT_HOME", "SALON"]


class BookingItemIn(BaseModel):
    service_id: int
    quantity: int = Field(1, ge=1, le=20)


class QuoteRequest(BaseModel):
    """Cart contents submitted for a checkout summary."""

    vendor_id: int
    items: List[BookingItemIn] = Field(..., min_length=1)


class QuoteItem(BaseModel):
    service_id: int
    name: str
    price: float
    quantity: int
    duration: int
    line_total: float


class QuoteRead(BaseModel):
    vendor_id: int
    items: List[QuoteItem]
    subtotal: float
    tax: float
    total: float
    duration: int
    currency: str


class BookingCreate(QuoteRequest):
    service_type: ServiceType = "SALON"
    scheduled_date: str = Field(..., example="2026-11-02", description="YYYY-MM-DD")
    scheduled_time: str = Field(..., example="14:30", description="HH:MM, 24h clock")
    address_id: Optional[int] = None
    phone: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("scheduled_date")
    @classmethod
    def check_date(cls, v: str) -> str:
        try:
            date.fromisoformat(v)
        except ValueError:
            raise ValueError("scheduled_date must be in YYYY-MM-DD format")
        return v

    @field_validator("scheduled_time")
    @classmethod
    def check_time(cls, v: str) -> str:
        hours, sep, minutes = v.partition(":")
        if (
            not sep
            or len(hours) != 2
            or len(minutes) != 2
            or not hours.isdigit()
            or not minutes.isdigit()
            or int(hours) > 23
            or int(minutes) > 59
        ):
            raise ValueError("scheduled_time must be in HH:MM format")
        return v


class BookingItemRead(BaseModel):
    service_id: int
    name: str
    quantity: int
    price: float
    duration: int


class BookingRead(BaseModel):
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    vendor_id: int
    vendor_name: Optional[str] = None
    beautician_id: Optional[int] = None
    beautician_name: Optional[str] = None
    address_id: Optional[int] = None
    service_type: str
    status: str
    scheduled_date: str
    scheduled_time: str
    duration: int
    subtotal: float
    tax: float
    total: float
    phone: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    payment_status: Optional[str] = None
    items: List[BookingItemRead] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class BookingList(BaseModel):
    bookings: List[BookingRead]
    pagination: Pagination


class BookingStatusUpdate(BaseModel):
    status: str = Field(..., example="CONFIRMED")


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingEventRead(BaseModel):
    id: int
    booking_id: int
    type: str
    data: Optional[dict] = None
    created_by: Optional[int] = None
    created_at: str


class BookingStats(BaseModel):
    active_bookings: int
    completed_bookings: int
    pending_payments: int
    total_bookings: int
    total_spent: float


class AssignBeautician(BaseModel):
    beautician_id: int
