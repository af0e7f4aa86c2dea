"""
Pydantic models for product orders and their delivery timeline.

An order may contain products of several vendors.  Prices are taken
from the catalogue when the order is placed and copied onto the items;
the client only sends product ids and quantities.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .common import Pagination


OrderPaymentMethod = Literal["card", "mobile_money", "cash"]


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1, le=50)


class OrderCreate(BaseModel):
    items: List[OrderItemIn] = Field(..., min_length=1)
    address_id: int = Field(..., description="One of the customer's saved addresses")
    payment_method: OrderPaymentMethod = "cash"
    phone: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = Field(None, max_length=1000)


class OrderItemRead(BaseModel):
    product_id: int
    name: str
    vendor_id: int
    vendor_name: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float


class DeliveryEventRead(BaseModel):
    id: int
    status: str
    note: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    created_by: Optional[int] = None
    timestamp: str


class OrderRead(BaseModel):
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    status: str
    subtotal: float
    tax: float
    total: float
    currency: str
    shipping_address: Dict[str, Any]
    payment_method: str
    phone: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    items: List[OrderItemRead] = Field(default_factory=list)
    delivery_status: Optional[str] = Field(None, description="Status of the latest delivery event")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class OrderList(BaseModel):
    orders: List[OrderRead]
    pagination: Pagination


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class DeliveryStatusUpdate(BaseModel):
    status: str = Field(..., example="SHIPPED")
    note: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., example="CONFIRMED")
    note: Optional[str] = Field(None, max_length=500)


class DeliveryUpdateRead(BaseModel):
    order: OrderRead
    delivery_event: DeliveryEventRead


class DeliveryTimeline(BaseModel):
    order_id: int
    current_status: str
    timeline: List[DeliveryEventRead]
