"""
Pydantic models for the service catalogue.

A service belongs to exactly one vendor.  ``category`` is exchanged by
name (e.g. ``"Hair Styling"``) and resolved to a category row by the
service layer.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .common import Pagination
from .review import ReviewRead


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, example="Hair Cut & Style")
    description: Optional[str] = Field(None, example="Wash, cut and blow-dry")
    price: float = Field(..., gt=0, example=50.0)
    duration: int = Field(..., gt=0, description="Duration in minutes", example=60)
    category: Optional[str] = Field(None, example="Hair Styling")


class ServiceCreate(ServiceBase):
    is_active: bool = True


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    duration: Optional[int] = Field(None, gt=0)
    category: Optional[str] = None
    is_active: Optional[bool] = None


class ServiceRead(ServiceBase):
    id: int
    vendor_id: int
    vendor_name: Optional[str] = None
    is_active: bool
    rating: Optional[float] = None
    review_count: int = 0
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class ServiceList(BaseModel):
    services: List[ServiceRead]
    pagination: Pagination


class CategoryRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    service_count: int = 0


class VendorBrief(BaseModel):
    """The vendor behind a service or product, as shown on its detail page."""

    id: int
    shop_name: str
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    rating: Optional[float] = None
    review_count: int = 0


class ServiceDetail(ServiceRead):
    vendor: VendorBrief
    recent_reviews: List[ReviewRead] = Field(default_factory=list)
