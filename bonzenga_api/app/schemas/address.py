"""
Pydantic models for customer addresses.

Addresses are used for at‑home bookings.  Each user has at most one
default address.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


AddressType = Literal["HOME", "WORK", "OTHER"]


class AddressBase(BaseModel):
    type: AddressType = "HOME"
    name: Optional[str] = Field(None, max_length=100, example="Home")
    street: str = Field(..., min_length=1, example="12 Avenue Kasa-Vubu")
    city: str = Field(..., min_length=1, example="Kinshasa")
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_default: bool = False


class AddressCreate(AddressBase):
    pass


class AddressUpdate(BaseModel):
    type: Optional[AddressType] = None
    name: Optional[str] = Field(None, max_length=100)
    street: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = Field(None, min_length=1)
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_default: Optional[bool] = None


class AddressRead(AddressBase):
    id: int
    user_id: int
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }
