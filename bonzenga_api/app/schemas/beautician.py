"""Pydantic models for beautician profiles."""

from typing import List, Optional

from pydantic import BaseModel, Field


class BeauticianRead(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    vendor_id: Optional[int] = None
    vendor_name: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: int = 0
    certifications: List[str] = Field(default_factory=list)
    bio: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    status: str
    is_verified: bool
    created_at: Optional[str] = None


class BeauticianUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    skills: Optional[List[str]] = None
    experience: Optional[int] = Field(None, ge=0)
    certifications: Optional[List[str]] = None
    bio: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
