"""
Pydantic models for vendors (salons) and their public listings.

``rating`` is computed from customer reviews and is ``None`` when a
vendor has not been reviewed yet.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .service import ServiceRead


class VendorRead(BaseModel):
    id: int
    shop_name: str
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    business_type: Optional[str] = None
    years_in_business: Optional[int] = None
    number_of_employees: Optional[int] = None
    services_offered: List[str] = Field(default_factory=list)
    operating_hours: Dict[str, str] = Field(default_factory=dict)
    status: str
    is_verified: bool
    owner_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    rating: Optional[float] = None
    review_count: int = 0
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class VendorSummary(VendorRead):
    """Vendor as shown in the public directory."""

    categories: List[str] = Field(default_factory=list)
    service_count: int = 0


class BeauticianBrief(BaseModel):
    id: int
    first_name: str
    last_name: str
    skills: List[str] = Field(default_factory=list)
    experience: int = 0


class VendorDetail(VendorSummary):
    services: List[ServiceRead] = Field(default_factory=list)
    beauticians: List[BeauticianBrief] = Field(default_factory=list)


class VendorUpdate(BaseModel):
    shop_name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    business_type: Optional[str] = None
    years_in_business: Optional[int] = Field(None, ge=0)
    number_of_employees: Optional[int] = Field(None, ge=0)
    services_offered: Optional[List[str]] = None
    operating_hours: Optional[Dict[str, str]] = Field(None, example={"monday": "09:00-18:00"})


class VendorStatusUpdate(BaseModel):
    status: str = Field(..., example="APPROVED")
    reason: Optional[str] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, example="Incomplete business documents")
