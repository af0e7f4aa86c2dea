"""
Pydantic models used by the admin and manager consoles.

Aggregated dashboards and reports are returned as plain dictionaries
(see ``StatisticsService``); only request bodies and list rows are
modelled here.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .user import UserBase, UserRead


class UserStatusUpdate(BaseModel):
    status: str = Field(..., example="SUSPENDED")


class ManagerCreate(UserBase):
    password: str = Field(..., min_length=6)


class CommissionUpdate(BaseModel):
    rate: float = Field(..., ge=0, le=100, description="Commission percentage", example=15)


class AdminUserRead(UserRead):
    total_bookings: int = 0
    total_spent: float = 0.0
    last_booking_at: Optional[str] = None
